"""
currency.py - In-Memory Currency Ledger

Reference implementation of the CurrencyLedger protocol: a single-currency,
double-entry balance book that the lending pool settles against.

Key responsibilities:
    - Holds one Decimal balance per registered account
    - Executes transfers atomically (validated first, then applied)
    - Keeps an append-only log of every applied Transfer
    - Issues new funds only through the issuer account, which is exempt
      from balance validation (total supply stays at zero)
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Set, Any

from .core import POOL_RESERVE_ACCOUNT


# Reserved account for issuance. Exempt from balance validation.
ISSUER_ACCOUNT = "issuer"

CONSERVATION_TOLERANCE = Decimal("0")


class CurrencyError(Exception):
    """Base exception for currency ledger errors."""
    pass


class InsufficientFunds(CurrencyError):
    """Raised when a transfer would take an account balance below zero."""
    pass


class AccountNotRegistered(CurrencyError):
    """Raised when a transfer names an account the ledger does not know."""
    pass


@dataclass(frozen=True, slots=True)
class Transfer:
    """
    An applied movement of funds between two accounts.

    Attributes:
        amount: Amount moved (positive, finite)
        source: Account debited
        dest: Account credited
        sequence_number: Monotonic position in the ledger's transfer log
    """
    amount: Decimal
    source: str
    dest: str
    sequence_number: int

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Transfer source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Transfer dest cannot be empty")
        if not isinstance(self.amount, Decimal):
            raise ValueError(f"Transfer amount must be Decimal, got {type(self.amount)}")
        if not self.amount.is_finite():
            raise ValueError(f"Transfer amount must be finite, got {self.amount}")
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Transfer(#{self.sequence_number} {self.amount}: {self.source}→{self.dest})"


class InMemoryCurrencyLedger:
    """
    Single-currency balance book with full validation and a transfer log.

    Design Principles:
        - Always validates: a transfer that would overdraw its source, or that
          names an unknown account, raises before any balance changes.
        - Always logs: every applied transfer is appended to transfer_log.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own instance.

    Example:
        currency = InMemoryCurrencyLedger()
        currency.register_account("alice")
        currency.issue("alice", Decimal("1000"))
        currency.transfer("alice", POOL_RESERVE_ACCOUNT, Decimal("250"))
    """

    def __init__(self, verbose: bool = False, test_mode: bool = False):
        """
        Create a currency ledger with the issuer and pool reserve registered.

        Args:
            verbose: Print one line per transfer (default: False)
            test_mode: Allow set_balance() calls (default: False)
        """
        self.balances: Dict[str, Decimal] = {}
        self.registered_accounts: Set[str] = set()
        self.transfer_log: List[Transfer] = []
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0

        self.register_account(ISSUER_ACCOUNT)
        self.register_account(POOL_RESERVE_ACCOUNT)

    # ========================================================================
    # READ-ONLY
    # ========================================================================

    def balance_of(self, account: str) -> Decimal:
        """
        Balance of an account.

        Raises:
            AccountNotRegistered: If the account is not registered
        """
        if account not in self.registered_accounts:
            raise AccountNotRegistered(f"Account {account} not registered")
        return self.balances[account]

    def is_registered(self, account: str) -> bool:
        return account in self.registered_accounts

    def total_supply(self) -> Decimal:
        """
        Sum of all balances, issuer included.

        Accounts are summed in sorted order for deterministic accumulation.
        Double-entry keeps this at zero.
        """
        return sum(
            (self.balances[a] for a in sorted(self.registered_accounts)),
            Decimal("0"),
        )

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Check that all transfers balanced.

        Returns:
            Dict with keys:
            - 'valid': bool - True if total supply is zero
            - 'supply': Decimal - Current total supply
            - 'issued': Decimal - Amount held outside the issuer account
        """
        supply = self.total_supply()
        return {
            'valid': abs(supply) <= CONSERVATION_TOLERANCE,
            'supply': supply,
            'issued': -self.balances[ISSUER_ACCOUNT],
        }

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_account(self, account: str) -> str:
        """
        Register a new account with a zero balance.

        Raises:
            ValueError: If the account is empty or already registered
        """
        if not account or not account.strip():
            raise ValueError("account cannot be empty")
        if account in self.registered_accounts:
            raise ValueError(f"Account {account} already registered")
        self.registered_accounts.add(account)
        self.balances[account] = Decimal("0")
        return account

    def set_balance(self, account: str, amount: Decimal) -> None:
        """
        Set an account balance directly.

        WARNING: Bypasses double-entry accounting. Only available in test mode.
        Use issue() and transfer() otherwise.

        Raises:
            CurrencyError: If called when test_mode is False
            AccountNotRegistered: If the account is not registered
        """
        if not self._test_mode:
            raise CurrencyError(
                "set_balance() is disabled in production mode. "
                "Use issue() and transfer() to modify balances. "
                "Set test_mode=True when creating the ledger for testing."
            )
        if account not in self.registered_accounts:
            raise AccountNotRegistered(f"Account {account} not registered")
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        self.balances[account] = amount

    # ========================================================================
    # TRANSFERS (Mutating)
    # ========================================================================

    def issue(self, account: str, amount: Decimal) -> Optional[Transfer]:
        """Fund an account from the issuer."""
        return self.transfer(ISSUER_ACCOUNT, account, amount)

    def transfer(self, source: str, dest: str, amount: Decimal) -> Optional[Transfer]:
        """
        Move funds from source to dest atomically.

        A zero amount is a no-op and returns None.

        Returns:
            The applied Transfer record, or None for a zero amount

        Raises:
            ValueError: If the amount is negative or not finite
            AccountNotRegistered: If either account is not registered
            InsufficientFunds: If source (other than the issuer) cannot cover amount
        """
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        if not amount.is_finite() or amount < 0:
            raise ValueError(f"Transfer amount must be finite and non-negative, got {amount}")
        if amount == 0:
            return None

        for account in (source, dest):
            if account not in self.registered_accounts:
                if self.verbose:
                    print(f"✗ REJECTED: account not registered: {account}")
                raise AccountNotRegistered(f"Account {account} not registered")

        available = self.balances[source]
        if source != ISSUER_ACCOUNT and available < amount:
            if self.verbose:
                print(f"✗ REJECTED: {source} has {available}, needs {amount}")
            raise InsufficientFunds(
                f"{source} has {available}, cannot transfer {amount}"
            )

        record = Transfer(amount, source, dest, self._next_sequence)
        self._next_sequence += 1
        self.balances[source] -= amount
        self.balances[dest] += amount
        self.transfer_log.append(record)

        if self.verbose:
            print(f"✓ {record!r}")
        return record
