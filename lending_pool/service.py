"""
service.py - Lending Pool Service

LendingService is the only component that writes account records.

Every mutating operation follows the same sequence:
    1. Resolve the caller's account (CallerResolver) and the height (Clock)
    2. Read the account record (LedgerStore)
    3. Accrue interest up to the current height (interest.py)
    4. Validate the operation against the accrued values
    5. Build the replacement record
    6. Move funds (TransferGateway) - may raise
    7. Write the record and emit the event

Steps 1-6 never touch the store, so any failure leaves stored state exactly
as it was. There is nothing to roll back.

Policy:
    - Deposits are accepted while the account carries debt.
    - Repayments above the accrued debt are clamped to the debt.
"""

from __future__ import annotations
from dataclasses import replace
from decimal import Decimal
from typing import Any, Optional, Tuple

from .core import (
    EngineConfig, AccountRecord, BorrowingInfo,
    CallerResolver, Clock, EventSink,
    LendingEvent, Deposited, Withdrawn, Borrowed, LoanRepaid,
    LendingError, NoDepositFound, InsufficientUserFunds,
    InsufficientPoolReserve, ExceedsAllowedBorrow,
)
from .currency import InMemoryCurrencyLedger
from .fixed_point import FixedPoint
from .gateway import TransferGateway
from .interest import accrue, annualized_yield
from .runtime import BlockClock, EventLog, SignedOriginResolver
from .store import InMemoryLedgerStore, LedgerStore


class LendingService:
    """
    Deposit/borrow pool with lazily compounded interest and an LTV limit.

    Queries take an account identifier and never mutate state. Mutating
    operations take a request origin, which must resolve to a signed account.

    Thread Safety:
        Not thread-safe. The host must run one operation at a time.

    Example:
        service = create_in_memory_service()
        service.gateway.currency.issue("alice", Decimal("1000"))
        service.deposit(SignedOrigin("alice"), Decimal("500"))
        service.clock.advance(100)
        service.get_balance("alice")
    """

    def __init__(
        self,
        config: EngineConfig,
        store: LedgerStore,
        gateway: TransferGateway,
        clock: Clock,
        resolver: CallerResolver,
        events: EventSink,
        verbose: bool = False,
    ):
        """
        Args:
            config: Rates, collateral ratio and fixed-point format
            store: Account record storage
            gateway: Fund movement to and from the pool reserve
            clock: Current height
            resolver: Request origin to account resolution
            events: Receiver of one event per successful mutation
            verbose: Print one line per applied or rejected operation
        """
        self.config = config
        self.store = store
        self.gateway = gateway
        self.clock = clock
        self.resolver = resolver
        self.events = events
        self.verbose = verbose

        self._deposit_rate = config.fixed(config.deposit_rate)
        self._borrow_rate = config.fixed(config.borrow_rate)
        self._collateral_ratio = config.fixed(config.collateral_ratio)

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def get_balance(self, account: str) -> Decimal:
        """Accrued deposit balance at the current height."""
        record = self.store.get(account)
        return self._accrued_deposit(record, self.clock.now()).to_decimal()

    def get_debt(self, account: str) -> Decimal:
        """Accrued loan balance at the current height."""
        record = self.store.get(account)
        return self._accrued_debt(record, self.clock.now()).to_decimal()

    def get_allowed_borrowing_amount(self, account: str) -> BorrowingInfo:
        """Current debt and the maximum additional amount borrow() would accept."""
        record = self.store.get(account)
        now = self.clock.now()
        debt = self._accrued_debt(record, now)
        allowed = self._allowed_borrow(self._accrued_deposit(record, now), debt)
        return BorrowingInfo(
            borrowing_balance=debt.to_decimal(),
            allowed_borrowing_amount=allowed.to_decimal(),
        )

    def get_deposit_apy(self) -> Decimal:
        return annualized_yield(self._deposit_rate, self.config.periods_per_year).to_decimal()

    def get_borrowing_apy(self) -> Decimal:
        return annualized_yield(self._borrow_rate, self.config.periods_per_year).to_decimal()

    def get_pool_reserve(self) -> Decimal:
        return self.gateway.reserve()

    # ========================================================================
    # MUTATING OPERATIONS
    # ========================================================================

    def deposit(self, origin: Any, amount: Any) -> Deposited:
        """
        Move amount from the caller into the pool and credit it as deposit.

        Raises:
            Unauthorized: If origin is not signed
            InsufficientCallerFunds: If the caller cannot cover amount
        """
        account, now, record = self._begin("deposit", origin)
        value = self._amount(amount)

        accrued = self._accrued_deposit(record, now)
        updated = replace(
            record,
            deposit_principal=accrued.saturating_add(value),
            deposit_anchor=now,
        )

        self._collect("deposit", account, value)
        return self._commit(account, updated, Deposited(account, value.to_decimal(), now))

    def withdraw(self, origin: Any, amount: Any) -> Withdrawn:
        """
        Pay amount out of the caller's accrued deposit.

        Raises:
            Unauthorized: If origin is not signed
            NoDepositFound: If the account has never held a deposit
            InsufficientUserFunds: If amount exceeds the accrued deposit
            InsufficientPoolReserve: If amount exceeds the pool reserve
        """
        account, now, record = self._begin("withdraw", origin)
        value = self._amount(amount)

        if not record.has_deposit_history():
            raise self._reject("withdraw", NoDepositFound(f"{account} has never deposited"))

        accrued = self._accrued_deposit(record, now)
        if value > accrued:
            raise self._reject("withdraw", InsufficientUserFunds(
                f"{account} has {accrued}, cannot withdraw {value}"
            ))
        self._check_reserve("withdraw", value)

        updated = replace(
            record,
            deposit_principal=accrued.saturating_sub(value),
            deposit_anchor=now,
        )

        self._pay_out("withdraw", account, value)
        return self._commit(account, updated, Withdrawn(account, value.to_decimal(), now))

    def borrow(self, origin: Any, amount: Any) -> Borrowed:
        """
        Lend amount from the pool against the caller's deposit.

        Allowed borrowing is accrued_deposit * collateral_ratio - accrued_debt.

        Raises:
            Unauthorized: If origin is not signed
            InsufficientPoolReserve: If amount exceeds the pool reserve
            ExceedsAllowedBorrow: If amount exceeds allowed borrowing
        """
        account, now, record = self._begin("borrow", origin)
        value = self._amount(amount)

        debt = self._accrued_debt(record, now)
        allowed = self._allowed_borrow(self._accrued_deposit(record, now), debt)

        self._check_reserve("borrow", value)
        if value > allowed:
            raise self._reject("borrow", ExceedsAllowedBorrow(
                f"{account} may borrow {allowed}, requested {value}"
            ))

        updated = replace(
            record,
            borrow_principal=debt.saturating_add(value),
            borrow_anchor=now,
        )

        self._pay_out("borrow", account, value)
        return self._commit(account, updated, Borrowed(account, value.to_decimal(), now))

    def repay(self, origin: Any, amount: Any) -> LoanRepaid:
        """
        Pay down the caller's accrued debt.

        Amounts above the accrued debt are clamped to it; only the clamped
        amount is transferred and reported in the event.

        Raises:
            Unauthorized: If origin is not signed
            InsufficientCallerFunds: If the caller cannot cover the clamped amount
        """
        account, now, record = self._begin("repay", origin)
        value = self._amount(amount)

        debt = self._accrued_debt(record, now)
        paid = min(value, debt)
        updated = replace(
            record,
            borrow_principal=debt.saturating_sub(paid),
            borrow_anchor=now,
        )

        self._collect("repay", account, paid)
        return self._commit(account, updated, LoanRepaid(account, paid.to_decimal(), now))

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _amount(self, amount: Any) -> FixedPoint:
        if isinstance(amount, FixedPoint):
            if (amount.decimals, amount.bits) != (self.config.decimals, self.config.bits):
                raise ValueError(
                    f"Amount format ({amount.decimals}, {amount.bits}) does not match "
                    f"engine format ({self.config.decimals}, {self.config.bits})"
                )
            return amount
        return self.config.fixed(amount)

    def _accrued_deposit(self, record: AccountRecord, now: int) -> FixedPoint:
        return accrue(record.deposit_principal, record.deposit_anchor, now, self._deposit_rate)

    def _accrued_debt(self, record: AccountRecord, now: int) -> FixedPoint:
        return accrue(record.borrow_principal, record.borrow_anchor, now, self._borrow_rate)

    def _allowed_borrow(self, deposit: FixedPoint, debt: FixedPoint) -> FixedPoint:
        return deposit.saturating_mul(self._collateral_ratio).saturating_sub(debt)

    def _begin(self, operation: str, origin: Any) -> Tuple[str, int, AccountRecord]:
        try:
            account = self.resolver.resolve(origin)
        except LendingError as exc:
            raise self._reject(operation, exc)
        return account, self.clock.now(), self.store.get(account)

    def _check_reserve(self, operation: str, value: FixedPoint) -> None:
        reserve = self.gateway.reserve()
        if value.to_decimal() > reserve:
            raise self._reject(operation, InsufficientPoolReserve(
                f"pool reserve holds {reserve}, requested {value}"
            ))

    def _collect(self, operation: str, account: str, value: FixedPoint) -> None:
        try:
            self.gateway.collect(account, value)
        except LendingError as exc:
            raise self._reject(operation, exc)

    def _pay_out(self, operation: str, account: str, value: FixedPoint) -> None:
        try:
            self.gateway.pay_out(account, value)
        except LendingError as exc:
            raise self._reject(operation, exc)

    def _commit(self, account: str, record: AccountRecord, event: LendingEvent) -> Any:
        self.store.put(account, record)
        self.events.emit(event)
        if self.verbose:
            print(f"✓ {event.name.upper()}: {account} {event.amount} @ height {event.height}")
        return event

    def _reject(self, operation: str, error: LendingError) -> LendingError:
        if self.verbose:
            print(f"✗ REJECTED {operation}: {type(error).__name__}: {error}")
        return error


def create_in_memory_service(
    config: Optional[EngineConfig] = None,
    height: int = 0,
    verbose: bool = False,
) -> LendingService:
    """
    Build a LendingService wired to the in-memory collaborators.

    The collaborators stay reachable through the service:
    service.store, service.gateway.currency, service.clock, service.events.

    Args:
        config: Engine parameters (default: EngineConfig())
        height: Starting height of the clock
        verbose: Print status lines from the service and the currency ledger
    """
    config = config or EngineConfig()
    currency = InMemoryCurrencyLedger(verbose=verbose)
    return LendingService(
        config=config,
        store=InMemoryLedgerStore(AccountRecord.empty(config.decimals, config.bits)),
        gateway=TransferGateway(currency),
        clock=BlockClock(height),
        resolver=SignedOriginResolver(),
        events=EventLog(),
        verbose=verbose,
    )
