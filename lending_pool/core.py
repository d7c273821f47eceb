"""
Core types for the lending pool ledger.

This module provides the foundational data structures and protocols:
1. Protocols: Clock, CallerResolver, CurrencyLedger, EventSink (collaborators)
2. Immutable data structures: AccountRecord, EngineConfig, BorrowingInfo
3. Events: Deposited, Withdrawn, Borrowed, LoanRepaid
4. Exceptions: LendingError and the operation-specific error types

Nothing in this module mutates state. LendingService (service.py) is the only
component that writes account records.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from typing import Any, Mapping, Protocol, runtime_checkable

from .fixed_point import FixedPoint, DEFAULT_DECIMALS, DEFAULT_BITS


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Rates and balances cross the API boundary as Decimal. Conversion into
# FixedPoint is exact up to the configured number of decimals, provided the
# context keeps enough significant digits.
#
_LENDING_DECIMAL_CONTEXT = getcontext()
_LENDING_DECIMAL_CONTEXT.prec = 50
_LENDING_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Account holding the funds available for withdrawals and loans.
POOL_RESERVE_ACCOUNT = "pool"

# Reference deployment: 6-second heights, 5% deposit APY, 7% borrowing APY.
# Rate per height = ln(1 + APY) / heights per year.
DEFAULT_DEPOSIT_RATE = Decimal("0.0000000092828")
DEFAULT_BORROW_RATE = Decimal("0.0000000128727")
DEFAULT_PERIODS_PER_YEAR = 5_256_000
DEFAULT_COLLATERAL_RATIO = Decimal("0.75")

# Anchor of a record that has never been written.
GENESIS_HEIGHT = 0


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LendingError(Exception):
    """Base exception for all lending operation failures."""
    pass


class Unauthorized(LendingError):
    """Raised when the request origin does not resolve to a signed account."""
    pass


class NoDepositFound(LendingError):
    """Raised on withdraw when the account has never held a deposit."""
    pass


class InsufficientUserFunds(LendingError):
    """Raised when a withdrawal exceeds the account's accrued deposit."""
    pass


class InsufficientPoolReserve(LendingError):
    """Raised when a withdrawal or loan exceeds the pool reserve balance."""
    pass


class ExceedsAllowedBorrow(LendingError):
    """Raised when a loan would push debt past the collateral ratio."""
    pass


class InsufficientCallerFunds(LendingError):
    """Raised when the caller cannot cover a transfer into the pool."""
    pass


# ============================================================================
# CONFIGURATION
# ============================================================================

def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """
    Process-wide engine parameters, fixed at construction.

    Attributes:
        deposit_rate: Interest per height on deposits (e.g., 0.0000000092828)
        borrow_rate: Interest per height on loans
        periods_per_year: Heights per year, used for APY
        collateral_ratio: Maximum fraction of accrued deposit that may be borrowed
        decimals: Fixed-point decimal places for all amounts and rates
        bits: Width of the fixed-point backing integer
    """
    deposit_rate: Decimal = DEFAULT_DEPOSIT_RATE
    borrow_rate: Decimal = DEFAULT_BORROW_RATE
    periods_per_year: int = DEFAULT_PERIODS_PER_YEAR
    collateral_ratio: Decimal = DEFAULT_COLLATERAL_RATIO
    decimals: int = DEFAULT_DECIMALS
    bits: int = DEFAULT_BITS

    def __post_init__(self):
        """Convert float/str values to Decimal and validate ranges."""
        object.__setattr__(self, 'deposit_rate', _to_decimal(self.deposit_rate))
        object.__setattr__(self, 'borrow_rate', _to_decimal(self.borrow_rate))
        object.__setattr__(self, 'collateral_ratio', _to_decimal(self.collateral_ratio))

        for name in ('deposit_rate', 'borrow_rate', 'collateral_ratio'):
            value = getattr(self, name)
            if not value.is_finite():
                raise ValueError(f"{name} must be finite, got {value}")
            if value < 0:
                raise ValueError(f"{name} cannot be negative, got {value}")
        if self.collateral_ratio > 1:
            raise ValueError(f"collateral_ratio must be in [0, 1], got {self.collateral_ratio}")
        if self.periods_per_year <= 0:
            raise ValueError(f"periods_per_year must be positive, got {self.periods_per_year}")
        if self.decimals <= 0:
            raise ValueError(f"decimals must be positive, got {self.decimals}")
        if self.bits <= 0:
            raise ValueError(f"bits must be positive, got {self.bits}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> EngineConfig:
        """
        Build a config from a host-supplied mapping.

        Missing keys take their defaults.

        Raises:
            ValueError: If the mapping contains unknown keys.
        """
        unknown = set(values) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown engine config keys: {sorted(unknown)}")
        return cls(**values)

    def fixed(self, value: Any) -> FixedPoint:
        """Convert a Decimal-like value to this engine's fixed-point format."""
        return FixedPoint.from_decimal(_to_decimal(value), self.decimals, self.bits)

    def zero(self) -> FixedPoint:
        return FixedPoint.zero(self.decimals, self.bits)


# ============================================================================
# ACCOUNT RECORD
# ============================================================================

_ZERO = FixedPoint.zero()


@dataclass(frozen=True, slots=True)
class AccountRecord:
    """
    Per-account principal and accrual anchors.

    Attributes:
        deposit_principal: Deposit principal as of deposit_anchor
        deposit_anchor: Height of the last deposit adjustment
        borrow_principal: Loan principal as of borrow_anchor
        borrow_anchor: Height of the last loan adjustment

    The all-zero record is what the store returns for unseen accounts.
    """
    deposit_principal: FixedPoint = _ZERO
    deposit_anchor: int = GENESIS_HEIGHT
    borrow_principal: FixedPoint = _ZERO
    borrow_anchor: int = GENESIS_HEIGHT

    def __post_init__(self):
        if self.deposit_anchor < 0 or self.borrow_anchor < 0:
            raise ValueError("Accrual anchors cannot be negative")
        dep, bor = self.deposit_principal, self.borrow_principal
        if (dep.decimals, dep.bits) != (bor.decimals, bor.bits):
            raise ValueError("Deposit and borrow principals use different fixed-point formats")

    @classmethod
    def empty(cls, decimals: int = DEFAULT_DECIMALS, bits: int = DEFAULT_BITS) -> AccountRecord:
        zero = FixedPoint.zero(decimals, bits)
        return cls(deposit_principal=zero, borrow_principal=zero)

    def is_empty(self) -> bool:
        return (
            self.deposit_principal.is_zero()
            and self.borrow_principal.is_zero()
            and self.deposit_anchor == GENESIS_HEIGHT
            and self.borrow_anchor == GENESIS_HEIGHT
        )

    def has_deposit_history(self) -> bool:
        """False only for a deposit side that was never written."""
        return not (self.deposit_principal.is_zero() and self.deposit_anchor == GENESIS_HEIGHT)


# ============================================================================
# QUERY RESULTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class BorrowingInfo:
    """Current debt and the maximum additional amount that may be borrowed."""
    borrowing_balance: Decimal
    allowed_borrowing_amount: Decimal


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LendingEvent:
    """
    Notification emitted after a successful mutating operation.

    Attributes:
        account: Account the operation applied to
        amount: Amount actually moved
        height: Height at which the operation executed
    """
    account: str
    amount: Decimal
    height: int

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, slots=True)
class Deposited(LendingEvent):
    pass


@dataclass(frozen=True, slots=True)
class Withdrawn(LendingEvent):
    pass


@dataclass(frozen=True, slots=True)
class Borrowed(LendingEvent):
    pass


@dataclass(frozen=True, slots=True)
class LoanRepaid(LendingEvent):
    pass


# ============================================================================
# COLLABORATOR PROTOCOLS
# ============================================================================

@runtime_checkable
class Clock(Protocol):
    """Source of the current height. Monotonically non-decreasing."""

    def now(self) -> int:
        ...


@runtime_checkable
class CallerResolver(Protocol):
    """Maps a request origin to an account identifier."""

    def resolve(self, origin: Any) -> str:
        """
        Return the authenticated account for an origin.

        Raises:
            Unauthorized: If the origin is unsigned or unauthenticated.
        """
        ...


@runtime_checkable
class CurrencyLedger(Protocol):
    """
    Value-transfer primitive the pool settles against.

    transfer() either moves the full amount or raises without side effects.
    """

    def transfer(self, source: str, dest: str, amount: Decimal) -> None:
        """
        Raises:
            InsufficientFunds: If source cannot cover amount.
        """
        ...

    def balance_of(self, account: str) -> Decimal:
        ...


@runtime_checkable
class EventSink(Protocol):
    """Ordered, append-only receiver of lending events."""

    def emit(self, event: LendingEvent) -> None:
        ...
