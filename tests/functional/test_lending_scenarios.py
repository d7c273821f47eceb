"""
test_lending_scenarios.py - End-to-end lending pool scenarios

Multi-participant flows over long horizons, checked against closed-form
expectations and the currency ledger's conservation law.
"""

import pytest
from decimal import Decimal

from lending_pool import (
    EngineConfig, SignedOrigin, create_in_memory_service,
    Call, dispatch, query,
    Deposited, Borrowed, LoanRepaid, Withdrawn,
    InsufficientPoolReserve, ExceedsAllowedBorrow,
)


YEAR = 5_256_000


def _funded_service(config=None, **funds):
    service = create_in_memory_service(config)
    currency = service.gateway.currency
    for account, amount in funds.items():
        currency.register_account(account)
        currency.issue(account, Decimal(amount))
    return service


class TestYearLongScenario:
    """Deposit, borrow, let a year pass, settle everything."""

    def test_borrower_and_saver_over_one_year(self):
        service = _funded_service(alice="1000", bob="5000")
        alice, bob = SignedOrigin("alice"), SignedOrigin("bob")
        currency = service.gateway.currency

        service.deposit(alice, Decimal("800"))
        service.deposit(bob, Decimal("2000"))
        service.borrow(alice, Decimal("300"))

        service.clock.advance(YEAR)

        assert abs(service.get_balance("alice") - Decimal("840")) < Decimal("0.01")
        assert abs(service.get_balance("bob") - Decimal("2100")) < Decimal("0.01")
        assert abs(service.get_debt("alice") - Decimal("321")) < Decimal("0.01")

        repaid = service.repay(alice, Decimal("10000"))
        assert repaid.amount == service.events.last().amount
        assert service.get_debt("alice") == Decimal("0")

        withdrawn = service.withdraw(alice, service.get_balance("alice"))
        assert service.get_balance("alice") == Decimal("0")
        assert currency.balance_of("alice") == (
            Decimal("1000") - Decimal("800") + Decimal("300") - repaid.amount + withdrawn.amount
        )

        # Interest owed to bob exceeds what the reserve holds
        with pytest.raises(InsufficientPoolReserve):
            service.withdraw(bob, service.get_balance("bob"))
        service.withdraw(bob, service.get_pool_reserve())
        assert service.get_pool_reserve() == Decimal("0")

        assert currency.verify_conservation()['valid']
        assert [e.name for e in service.events] == [
            "Deposited", "Deposited", "Borrowed", "LoanRepaid", "Withdrawn", "Withdrawn",
        ]

    def test_debt_outgrows_collateral(self):
        """At 7% vs 5%, a maxed-out loan loses all headroom within the year."""
        service = _funded_service(alice="1000", bob="1000")
        alice = SignedOrigin("alice")
        service.deposit(alice, Decimal("1000"))
        service.borrow(alice, Decimal("750"))

        service.clock.advance(YEAR // 12)
        info = service.get_allowed_borrowing_amount("alice")
        assert info.allowed_borrowing_amount == Decimal("0")
        assert info.borrowing_balance > Decimal("750")

        with pytest.raises(ExceedsAllowedBorrow):
            service.borrow(alice, Decimal("0.01"))

        # Paying down part of the debt restores headroom
        service.repay(alice, Decimal("100"))
        assert service.get_allowed_borrowing_amount("alice").allowed_borrowing_amount > 0

    def test_monthly_deposits_compound(self):
        service = _funded_service(alice="12000")
        alice = SignedOrigin("alice")
        for _ in range(12):
            service.deposit(alice, Decimal("1000"))
            service.clock.advance(YEAR // 12)

        balance = service.get_balance("alice")
        # Each deposit earns for between 1 and 12 months at 5% APY
        assert Decimal("12000") < balance < Decimal("12000") * Decimal("1.05")
        assert len(service.events.of_type(Deposited)) == 12


class TestHostDrivenScenario:
    """The same flows driven through dispatch() and query()."""

    def test_dispatch_loop(self):
        service = _funded_service(alice="1000", bob="1000")
        alice, bob = SignedOrigin("alice"), SignedOrigin("bob")

        calls = [
            Call("deposit", alice, "500"),
            Call("withdraw", bob, "1"),
            Call("borrow", alice, "400"),
            Call("borrow", alice, "375"),
            Call("deposit", bob, "1000"),
            Call("repay", alice, "1000"),
            Call("withdraw", alice, "600"),
        ]
        outcomes = []
        for call in calls:
            outcomes.append(dispatch(service, call).error_name)
            service.clock.advance(10)

        assert outcomes == [None, "NoDepositFound", "ExceedsAllowedBorrow", None, None, None, "InsufficientUserFunds"]
        assert [type(e) for e in service.events] == [Deposited, Borrowed, Deposited, LoanRepaid]

        balance = query(service, "getBalance", "alice")["balance"]
        assert Decimal(balance) == service.get_balance("alice")
        assert query(service, "getDebt", "alice") == {"balance": "0"}

        result = dispatch(service, Call("withdraw", alice, balance))
        assert result.applied
        assert isinstance(result.event, Withdrawn)


class TestNarrowFormat:
    """A 64-bit, 9-decimal engine runs the same flows."""

    def test_flows_with_64_bit_amounts(self):
        config = EngineConfig(deposit_rate="0.000000009", borrow_rate="0.000000013", decimals=9, bits=64)
        service = _funded_service(config, alice="1000")
        alice = SignedOrigin("alice")

        service.deposit(alice, Decimal("100"))
        service.borrow(alice, Decimal("75"))
        service.clock.advance(YEAR)

        # Rates are stored at 9 decimals, so a year of accrual is exactly the APY
        assert service.get_balance("alice") == Decimal("100") * (1 + service.get_deposit_apy())
        assert service.get_debt("alice") == Decimal("75") * (1 + service.get_borrowing_apy())
        assert service.store.get("alice").deposit_principal.bits == 64

    def test_64_bit_saturates_instead_of_overflowing(self):
        config = EngineConfig(deposit_rate="0.000000009", decimals=9, bits=64)
        service = _funded_service(config, alice="1000000000")
        alice = SignedOrigin("alice")
        service.deposit(alice, Decimal("1000000000"))
        service.clock.advance(YEAR * 100)

        # 2**64 - 1 units of 1e-9
        assert service.get_balance("alice") == Decimal("18446744073.709551615")


class TestTutorial:
    """The tutorial script runs end to end."""

    def test_demo_runs(self, monkeypatch, capsys):
        import demo
        monkeypatch.setattr(demo, "QUICK_MODE", True)
        service = demo.main()

        out = capsys.readouterr().out
        assert "TUTORIAL COMPLETE" in out
        assert "raised NoDepositFound" in out
        assert "raised InsufficientPoolReserve" in out
        assert "Reserve account registered: True" in out
        assert "Pool Records" in out
        assert service.gateway.currency.verify_conservation()['valid']
