"""
store.py - Account Record Storage

LedgerStore is the storage seam between the lending logic and whatever keeps
the records. Reads of unseen accounts return the empty record; writes replace
the whole record.

No internal locking. The host runs one operation at a time.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .core import AccountRecord


@runtime_checkable
class LedgerStore(Protocol):
    """Key-value mapping from account identifier to AccountRecord."""

    def get(self, account: str) -> AccountRecord:
        """Return the account's record, or the empty record if unseen."""
        ...

    def put(self, account: str, record: AccountRecord) -> None:
        """Overwrite the account's record."""
        ...


class InMemoryLedgerStore:
    """
    Dictionary-backed LedgerStore.

    Records are immutable, so get() hands out the stored instance directly.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own store.
    """

    def __init__(self, empty_record: Optional[AccountRecord] = None):
        """
        Args:
            empty_record: Record returned for unseen accounts. Defaults to
                          AccountRecord() in the default fixed-point format.
        """
        self._records: Dict[str, AccountRecord] = {}
        self._empty = empty_record if empty_record is not None else AccountRecord()
        if not self._empty.is_empty():
            raise ValueError("empty_record must have all-zero fields")

    def get(self, account: str) -> AccountRecord:
        return self._records.get(account, self._empty)

    def put(self, account: str, record: AccountRecord) -> None:
        if not account or not account.strip():
            raise ValueError("account cannot be empty")
        if not isinstance(record, AccountRecord):
            raise ValueError(f"Expected AccountRecord, got {type(record)}")
        stored = record.deposit_principal
        expected = self._empty.deposit_principal
        if (stored.decimals, stored.bits) != (expected.decimals, expected.bits):
            raise ValueError(
                f"Record format ({stored.decimals}, {stored.bits}) does not match "
                f"store format ({expected.decimals}, {expected.bits})"
            )
        self._records[account] = record

    def __contains__(self, account: str) -> bool:
        return account in self._records

    def __len__(self) -> int:
        return len(self._records)

    def accounts(self) -> List[str]:
        """Accounts that have been written at least once, sorted."""
        return sorted(self._records)

    def snapshot(self) -> Dict[str, AccountRecord]:
        """Copy of all stored records."""
        return dict(self._records)
