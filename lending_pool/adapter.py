"""
adapter.py - Host Translation Layer

Thin layer between a host runtime and LendingService:

    dispatch(service, call)  -> DispatchResult   (mutating calls)
    query(service, method)   -> Dict[str, str]   (read-only queries)

dispatch() turns LendingError into a REJECTED result so a host loop can
record the outcome and move on. query() renders Decimal results as plain
strings under camelCase keys, the shape query clients consume.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .core import LendingError, LendingEvent
from .service import LendingService


MUTATING_CALLS = ("deposit", "withdraw", "borrow", "repay")


class DispatchOutcome(Enum):
    """
    Outcome of a dispatched call.

    APPLIED: The operation succeeded and emitted its event.
    REJECTED: The operation failed validation or transfer; state is unchanged.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Call:
    """
    A mutating request as received from the host.

    Attributes:
        name: One of deposit, withdraw, borrow, repay
        origin: Request origin passed to the service's CallerResolver
        amount: Requested amount (Decimal, int or str)
    """
    name: str
    origin: Any
    amount: Any

    def __post_init__(self):
        if self.name not in MUTATING_CALLS:
            raise ValueError(f"Unknown call {self.name!r}, expected one of {MUTATING_CALLS}")


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of a dispatched call plus the event or the error."""
    outcome: DispatchOutcome
    event: Optional[LendingEvent] = None
    error: Optional[LendingError] = None

    @property
    def applied(self) -> bool:
        return self.outcome is DispatchOutcome.APPLIED

    @property
    def error_name(self) -> Optional[str]:
        return type(self.error).__name__ if self.error is not None else None


def dispatch(service: LendingService, call: Call) -> DispatchResult:
    """
    Execute a mutating call against the service.

    Returns:
        DispatchResult with outcome APPLIED and the emitted event, or
        REJECTED and the LendingError that aborted the call.
        Other exceptions (invalid amounts, programming errors) propagate.
    """
    operation = getattr(service, call.name)
    try:
        event = operation(call.origin, call.amount)
    except LendingError as exc:
        return DispatchResult(DispatchOutcome.REJECTED, error=exc)
    return DispatchResult(DispatchOutcome.APPLIED, event=event)


def _format_amount(value: Decimal) -> str:
    """
    Render a Decimal without exponent or trailing zeros.

    Decimal("100.000000000000000000") -> "100"
    Decimal("0E-18") -> "0"
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits) + 2)
        normalized = value.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, 'f')


def _balance(service: LendingService, account: Optional[str]) -> Dict[str, str]:
    return {"balance": _format_amount(service.get_balance(_require(account)))}


def _debt(service: LendingService, account: Optional[str]) -> Dict[str, str]:
    return {"balance": _format_amount(service.get_debt(_require(account)))}


def _allowed(service: LendingService, account: Optional[str]) -> Dict[str, str]:
    info = service.get_allowed_borrowing_amount(_require(account))
    return {
        "borrowingBalance": _format_amount(info.borrowing_balance),
        "allowedBorrowingAmount": _format_amount(info.allowed_borrowing_amount),
    }


def _deposit_apy(service: LendingService, account: Optional[str]) -> Dict[str, str]:
    return {"balance": _format_amount(service.get_deposit_apy())}


def _borrowing_apy(service: LendingService, account: Optional[str]) -> Dict[str, str]:
    return {"balance": _format_amount(service.get_borrowing_apy())}


def _require(account: Optional[str]) -> str:
    if not account:
        raise ValueError("This query requires an account")
    return account


QUERY_METHODS: Dict[str, Callable[[LendingService, Optional[str]], Dict[str, str]]] = {
    "getBalance": _balance,
    "getDebt": _debt,
    "getAllowedBorrowingAmount": _allowed,
    "getDepositApy": _deposit_apy,
    "getBorrowingApy": _borrowing_apy,
}


def query(service: LendingService, method: str, account: Optional[str] = None) -> Dict[str, str]:
    """
    Run a read-only query and render the result as strings.

    Args:
        service: Service to query
        method: One of QUERY_METHODS
        account: Account identifier (required for per-account queries)

    Raises:
        ValueError: For an unknown method or a missing account
    """
    handler = QUERY_METHODS.get(method)
    if handler is None:
        raise ValueError(f"Unknown query method {method!r}")
    return handler(service, account)
