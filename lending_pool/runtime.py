"""
runtime.py - Host-Side Collaborators

In-memory implementations of the collaborator protocols in core.py:

    BlockClock            -> Clock
    SignedOriginResolver  -> CallerResolver
    EventLog              -> EventSink

A production host supplies its own; these drive tests, demos and embedded use.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Type

from .core import LendingEvent, Unauthorized


class BlockClock:
    """
    Monotonic height counter.

    Height can only move forward, never backward.
    """

    def __init__(self, height: int = 0):
        if height < 0:
            raise ValueError(f"height cannot be negative, got {height}")
        self._height = height

    def now(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the clock forward by a number of heights. Returns the new height."""
        if blocks < 0:
            raise ValueError(f"Cannot move time backwards: advance({blocks})")
        self._height += blocks
        return self._height

    def set_height(self, height: int) -> None:
        """
        Jump to an absolute height.

        Raises:
            ValueError: If height is before the current height
        """
        if height < self._height:
            raise ValueError(f"Cannot move time backwards: {height} < {self._height}")
        self._height = height


@dataclass(frozen=True, slots=True)
class SignedOrigin:
    """Origin of a request signed by an account."""
    account: str


class SignedOriginResolver:
    """Resolves SignedOrigin requests. Anything else is unauthorized."""

    def resolve(self, origin: Any) -> str:
        if isinstance(origin, SignedOrigin) and origin.account and origin.account.strip():
            return origin.account
        raise Unauthorized(f"Origin is not signed: {origin!r}")


class EventLog:
    """Ordered, append-only in-memory event sink."""

    def __init__(self):
        self._events: List[LendingEvent] = []

    def emit(self, event: LendingEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> Tuple[LendingEvent, ...]:
        return tuple(self._events)

    def last(self) -> Optional[LendingEvent]:
        return self._events[-1] if self._events else None

    def of_type(self, event_type: Type[LendingEvent]) -> List[LendingEvent]:
        return [e for e in self._events if isinstance(e, event_type)]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[LendingEvent]:
        return iter(tuple(self._events))
