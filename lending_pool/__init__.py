"""
lending_pool - Interest-Bearing Deposit/Borrow Pool Ledger

Deterministic accounting for a single-asset lending pool: per-account
deposit and loan principal, interest compounded per height, and a
loan-to-value limit on borrowing against pool reserves.

Usage:
    from decimal import Decimal
    from lending_pool import create_in_memory_service, SignedOrigin

    service = create_in_memory_service()
    currency = service.gateway.currency
    currency.register_account("alice")
    currency.issue("alice", Decimal("1000"))

    alice = SignedOrigin("alice")
    service.deposit(alice, Decimal("800"))
    service.borrow(alice, Decimal("300"))      # up to 75% of the deposit

    service.clock.advance(5_256_000)           # one year of 6-second heights
    service.get_balance("alice")               # ~840 at 5% APY
    service.get_debt("alice")                  # ~321 at 7% APY
"""

# Core types
from .core import (
    AccountRecord,
    EngineConfig,
    BorrowingInfo,
    LendingEvent,
    Deposited,
    Withdrawn,
    Borrowed,
    LoanRepaid,
    Clock,
    CallerResolver,
    CurrencyLedger,
    EventSink,
    LendingError,
    Unauthorized,
    NoDepositFound,
    InsufficientUserFunds,
    InsufficientPoolReserve,
    ExceedsAllowedBorrow,
    InsufficientCallerFunds,
    POOL_RESERVE_ACCOUNT,
    GENESIS_HEIGHT,
    DEFAULT_DEPOSIT_RATE,
    DEFAULT_BORROW_RATE,
    DEFAULT_PERIODS_PER_YEAR,
    DEFAULT_COLLATERAL_RATIO,
)

# Fixed-point arithmetic
from .fixed_point import (
    FixedPoint,
    DEFAULT_DECIMALS,
    DEFAULT_BITS,
    GUARD_DIGITS,
)

# Interest
from .interest import (
    accrue,
    annualized_yield,
    compound_multiplier,
)

# Storage
from .store import LedgerStore, InMemoryLedgerStore

# Currency ledger
from .currency import (
    InMemoryCurrencyLedger,
    Transfer,
    CurrencyError,
    InsufficientFunds,
    AccountNotRegistered,
    ISSUER_ACCOUNT,
)

# Collaborators
from .gateway import TransferGateway
from .runtime import BlockClock, SignedOrigin, SignedOriginResolver, EventLog

# Service
from .service import LendingService, create_in_memory_service

# Host adapter
from .adapter import (
    Call,
    DispatchOutcome,
    DispatchResult,
    dispatch,
    query,
    QUERY_METHODS,
)


__all__ = [
    # Core
    'AccountRecord', 'EngineConfig', 'BorrowingInfo',
    'LendingEvent', 'Deposited', 'Withdrawn', 'Borrowed', 'LoanRepaid',
    'Clock', 'CallerResolver', 'CurrencyLedger', 'EventSink',
    'LendingError', 'Unauthorized', 'NoDepositFound', 'InsufficientUserFunds',
    'InsufficientPoolReserve', 'ExceedsAllowedBorrow', 'InsufficientCallerFunds',
    'POOL_RESERVE_ACCOUNT', 'GENESIS_HEIGHT',
    'DEFAULT_DEPOSIT_RATE', 'DEFAULT_BORROW_RATE',
    'DEFAULT_PERIODS_PER_YEAR', 'DEFAULT_COLLATERAL_RATIO',
    # Fixed point
    'FixedPoint', 'DEFAULT_DECIMALS', 'DEFAULT_BITS', 'GUARD_DIGITS',
    # Interest
    'accrue', 'annualized_yield', 'compound_multiplier',
    # Storage
    'LedgerStore', 'InMemoryLedgerStore',
    # Currency
    'InMemoryCurrencyLedger', 'Transfer', 'CurrencyError', 'InsufficientFunds',
    'AccountNotRegistered', 'ISSUER_ACCOUNT',
    # Collaborators
    'TransferGateway', 'BlockClock', 'SignedOrigin', 'SignedOriginResolver', 'EventLog',
    # Service
    'LendingService', 'create_in_memory_service',
    # Adapter
    'Call', 'DispatchOutcome', 'DispatchResult', 'dispatch', 'query', 'QUERY_METHODS',
]
