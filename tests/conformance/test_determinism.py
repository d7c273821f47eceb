"""
Determinism Conformance Tests

INVARIANT: Given identical inputs, the service produces identical outputs.

    ∀ operation sequences I:
        service1.process(I) = service2.process(I)

Interest is lazy: queries compute accrual on read and never materialize it,
so interleaving queries with operations cannot change any later result.
"""

from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal

from tests.fakes import OPERATIONS, example_config, make_service, run_operation, service_state


FUNDS = {"alice": Decimal("5000"), "bob": Decimal("5000")}


@st.composite
def operation_step(draw):
    return (
        draw(st.sampled_from(OPERATIONS)),
        draw(st.sampled_from(["alice", "bob"])),
        draw(st.decimals(min_value=Decimal("0"), max_value=Decimal("3000"), places=6,
                         allow_nan=False, allow_infinity=False)),
        draw(st.integers(min_value=0, max_value=100_000)),
    )


def _replay(steps, query_between: bool = False):
    service = make_service(example_config(), funds=FUNDS)
    for operation, account, amount, advance in steps:
        service.clock.advance(advance)
        if query_between:
            for name in FUNDS:
                service.get_balance(name)
                service.get_debt(name)
                service.get_allowed_borrowing_amount(name)
        run_operation(service, operation, account, amount)
    return service


class TestDeterminismProperties:
    """Property-based determinism tests."""

    @given(st.lists(operation_step(), min_size=1, max_size=20))
    @settings(max_examples=30, deadline=None)
    def test_identical_sequences_produce_identical_state(self, steps):
        """
        PROPERTY: Two services processing the same steps reach the same state.
        """
        first = _replay(steps)
        second = _replay(steps)

        assert service_state(first) == service_state(second)
        assert first.gateway.currency.transfer_log == second.gateway.currency.transfer_log

    @given(st.lists(operation_step(), min_size=1, max_size=20))
    @settings(max_examples=30, deadline=None)
    def test_queries_do_not_change_outcomes(self, steps):
        """
        PROPERTY: Interleaving queries with operations changes nothing.
        """
        quiet = _replay(steps)
        queried = _replay(steps, query_between=True)

        assert service_state(quiet) == service_state(queried)
        for name in FUNDS:
            assert quiet.get_balance(name) == queried.get_balance(name)
            assert quiet.get_debt(name) == queried.get_debt(name)

    @given(
        st.decimals(min_value=Decimal("0.01"), max_value=Decimal("3000"), places=2,
                    allow_nan=False, allow_infinity=False),
        st.integers(min_value=0, max_value=10 ** 7),
    )
    @settings(max_examples=50, deadline=None)
    def test_repeated_queries_agree(self, amount, advance):
        """
        PROPERTY: A query is a pure function of stored state and height.
        """
        service = make_service(example_config(), funds=FUNDS)
        run_operation(service, "deposit", "alice", amount)
        service.clock.advance(advance)

        assert service.get_balance("alice") == service.get_balance("alice")
        assert service.get_deposit_apy() == service.get_deposit_apy()
