"""
conftest.py - Shared pytest fixtures for lending pool tests

Provides common fixtures used across unit, conformance and functional tests:
- Flat (zero-interest) and interest-bearing services with funded accounts
- Signed origins for the standard test accounts
"""

import pytest
from decimal import Decimal

from lending_pool import SignedOrigin

from tests.fakes import make_service, flat_config, example_config


STARTING_FUNDS = {"alice": Decimal("10000"), "bob": Decimal("10000"), "carol": Decimal("500")}


@pytest.fixture
def alice():
    return SignedOrigin("alice")


@pytest.fixture
def bob():
    return SignedOrigin("bob")


@pytest.fixture
def carol():
    return SignedOrigin("carol")


@pytest.fixture
def flat_service():
    """Zero-interest service at height 0 with funded alice, bob and carol."""
    return make_service(flat_config(), funds=STARTING_FUNDS)


@pytest.fixture
def service():
    """Interest-bearing service (example rates) at height 0 with funded accounts."""
    return make_service(example_config(), funds=STARTING_FUNDS)


@pytest.fixture
def currency(service):
    return service.gateway.currency


@pytest.fixture
def flat_currency(flat_service):
    return flat_service.gateway.currency
