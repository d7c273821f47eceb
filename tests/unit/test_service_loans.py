"""
test_service_loans.py - Unit tests for LendingService.borrow() and repay()

Tests:
- Borrowing up to collateral_ratio of the accrued deposit
- Borrow validation order: pool reserve, then allowed amount
- Debt accrual at the borrow rate
- Repayment, including clamping of overpayment
"""

import pytest
from decimal import Decimal

from lending_pool import (
    Borrowed, LoanRepaid, EngineConfig,
    Unauthorized, InsufficientPoolReserve, ExceedsAllowedBorrow, InsufficientCallerFunds,
)

from tests.fakes import EPSILON, JournalingStore, flat_config, make_service, service_state


class TestBorrow:
    """Tests for borrow()."""

    def test_borrow_pays_out(self, flat_service, alice, flat_currency):
        flat_service.deposit(alice, Decimal("1000"))
        event = flat_service.borrow(alice, Decimal("300"))
        assert event == Borrowed("alice", Decimal("300"), 0)
        assert flat_service.get_debt("alice") == Decimal("300")
        assert flat_service.get_pool_reserve() == Decimal("700")
        assert flat_currency.balance_of("alice") == Decimal("9300")

    def test_borrow_up_to_collateral_ratio(self, flat_service, alice):
        flat_service.deposit(alice, Decimal("1000"))
        flat_service.borrow(alice, Decimal("750"))
        assert flat_service.get_debt("alice") == Decimal("750")

    def test_borrow_past_collateral_ratio(self, flat_service, alice):
        flat_service.deposit(alice, Decimal("1000"))
        before = service_state(flat_service)
        with pytest.raises(ExceedsAllowedBorrow):
            flat_service.borrow(alice, Decimal("750") + EPSILON)
        assert service_state(flat_service) == before

    def test_allowed_amount_is_exact_boundary(self, flat_service, alice):
        flat_service.deposit(alice, Decimal("1000"))
        flat_service.borrow(alice, Decimal("200"))
        allowed = flat_service.get_allowed_borrowing_amount("alice").allowed_borrowing_amount
        flat_service.borrow(alice, allowed)
        with pytest.raises(ExceedsAllowedBorrow):
            flat_service.borrow(alice, EPSILON)

    def test_borrow_without_deposit(self, flat_service, alice, bob):
        flat_service.deposit(bob, Decimal("1000"))
        with pytest.raises(ExceedsAllowedBorrow):
            flat_service.borrow(alice, Decimal("1"))

    def test_reserve_checked_before_allowed_amount(self, flat_service, alice):
        flat_service.deposit(alice, Decimal("100"))
        # 500 exceeds both the reserve and the allowed 75
        with pytest.raises(InsufficientPoolReserve):
            flat_service.borrow(alice, Decimal("500"))

    def test_reserve_limits_borrow_at_full_ratio(self, alice, bob):
        service = make_service(
            flat_config(collateral_ratio=Decimal("1")),
            funds={"alice": Decimal("1000"), "bob": Decimal("1000")},
        )
        service.deposit(alice, Decimal("100"))
        service.deposit(bob, Decimal("100"))
        service.borrow(bob, Decimal("100"))
        before = service_state(service)
        with pytest.raises(InsufficientPoolReserve):
            service.borrow(alice, Decimal("100") + EPSILON)
        assert service_state(service) == before
        service.borrow(alice, Decimal("100"))
        assert service.get_pool_reserve() == Decimal("0")

    def test_zero_collateral_ratio_blocks_borrowing(self, alice):
        service = make_service(
            flat_config(collateral_ratio=Decimal("0")),
            funds={"alice": Decimal("1000")},
        )
        service.deposit(alice, Decimal("1000"))
        with pytest.raises(ExceedsAllowedBorrow):
            service.borrow(alice, EPSILON)

    def test_debt_accrues_at_borrow_rate(self, service, alice):
        service.deposit(alice, Decimal("1000"))
        service.borrow(alice, Decimal("100"))
        service.clock.advance(1)
        assert service.get_debt("alice") == Decimal("100.00128727")

    def test_second_borrow_reanchors(self, service, alice):
        service.deposit(alice, Decimal("1000"))
        service.borrow(alice, Decimal("100"))
        service.clock.advance(1)
        service.borrow(alice, Decimal("100"))
        record = service.store.get("alice")
        assert record.borrow_anchor == 1
        assert record.borrow_principal.to_decimal() == Decimal("200.00128727")
        # deposit side untouched
        assert record.deposit_anchor == 0

    def test_unsigned_origin_rejected(self, flat_service):
        with pytest.raises(Unauthorized):
            flat_service.borrow("alice", Decimal("1"))

    def test_failed_borrow_writes_nothing(self, alice):
        store = JournalingStore()
        service = make_service(flat_config(), funds={"alice": Decimal("100")}, store=store)
        service.deposit(alice, Decimal("100"))
        store.puts.clear()
        with pytest.raises(ExceedsAllowedBorrow):
            service.borrow(alice, Decimal("76"))
        assert store.puts == []


class TestRepay:
    """Tests for repay()."""

    def test_partial_repay(self, flat_service, alice, flat_currency):
        flat_service.deposit(alice, Decimal("1000"))
        flat_service.borrow(alice, Decimal("500"))
        event = flat_service.repay(alice, Decimal("200"))
        assert event == LoanRepaid("alice", Decimal("200"), 0)
        assert flat_service.get_debt("alice") == Decimal("300")
        assert flat_currency.balance_of("alice") == Decimal("9300")

    def test_overpayment_is_clamped(self, flat_service, alice, flat_currency):
        flat_service.deposit(alice, Decimal("1000"))
        flat_service.borrow(alice, Decimal("500"))
        event = flat_service.repay(alice, Decimal("800"))
        assert event.amount == Decimal("500")
        assert flat_service.get_debt("alice") == Decimal("0")
        assert flat_currency.balance_of("alice") == Decimal("9000")
        assert flat_service.get_pool_reserve() == Decimal("1000")

    def test_repay_without_debt_moves_nothing(self, flat_service, alice, flat_currency):
        transfers = len(flat_currency.transfer_log)
        event = flat_service.repay(alice, Decimal("50"))
        assert event == LoanRepaid("alice", Decimal("0"), 0)
        assert len(flat_currency.transfer_log) == transfers

    def test_repay_accrued_interest(self, service, alice):
        service.deposit(alice, Decimal("1000"))
        service.borrow(alice, Decimal("100"))
        service.clock.advance(1)
        event = service.repay(alice, Decimal("1000"))
        assert event.amount == Decimal("100.00128727")
        assert event.height == 1
        assert service.get_debt("alice") == Decimal("0")

    def test_caller_cannot_cover_repayment(self, flat_service, carol, flat_currency):
        flat_service.deposit(carol, Decimal("400"))
        flat_service.borrow(carol, Decimal("300"))
        flat_currency.transfer("carol", "bob", Decimal("400"))
        before = service_state(flat_service)
        with pytest.raises(InsufficientCallerFunds):
            flat_service.repay(carol, Decimal("300"))
        assert service_state(flat_service) == before

    def test_repay_frees_borrowing_capacity(self, flat_service, alice):
        flat_service.deposit(alice, Decimal("1000"))
        flat_service.borrow(alice, Decimal("750"))
        flat_service.repay(alice, Decimal("250"))
        info = flat_service.get_allowed_borrowing_amount("alice")
        assert info.allowed_borrowing_amount == Decimal("250")

    def test_repay_does_not_touch_deposit_side(self, service, alice):
        service.deposit(alice, Decimal("1000"))
        service.borrow(alice, Decimal("100"))
        service.clock.advance(3)
        service.repay(alice, Decimal("10"))
        record = service.store.get("alice")
        assert record.deposit_anchor == 0
        assert record.borrow_anchor == 3

    def test_unsigned_origin_rejected(self, flat_service):
        with pytest.raises(Unauthorized):
            flat_service.repay(None, Decimal("1"))


class TestDefaultRates:
    """Borrowing under the default deployment parameters."""

    def test_one_year_at_default_rates(self, alice):
        service = make_service(EngineConfig(), funds={"alice": Decimal("1000"), "bob": Decimal("1000")})
        service.deposit(alice, Decimal("800"))
        service.borrow(alice, Decimal("300"))
        service.clock.advance(service.config.periods_per_year)
        assert abs(service.get_balance("alice") - Decimal("840")) < Decimal("0.1")
        assert abs(service.get_debt("alice") - Decimal("321")) < Decimal("0.1")
