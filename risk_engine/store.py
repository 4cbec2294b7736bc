"""
Transaction record store interface.

The engine only ever reads a user's history; persistence belongs to the
caller.  ``InMemoryTransactionStore`` is a process-local implementation
suitable for tests, demos and the CLI.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Iterable, Optional, Protocol

from risk_engine.transaction import Transaction, as_utc, chronological


class TransactionStore(Protocol):
    """Persisted transaction records, grouped by user."""

    def append(self, transaction: Transaction) -> None: ...

    def history(self, user_id: str) -> tuple[Transaction, ...]: ...

    def all(self) -> tuple[Transaction, ...]: ...

    def clear(self) -> None: ...


class InMemoryTransactionStore:
    """Thread-safe, process-local ``TransactionStore``."""

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None) -> None:
        self._lock = threading.Lock()
        self._records: list[Transaction] = list(transactions or [])

    def append(self, transaction: Transaction) -> None:
        with self._lock:
            self._records.append(transaction)

    def history(self, user_id: str) -> tuple[Transaction, ...]:
        """Chronological snapshot of one user's transactions."""
        with self._lock:
            records = [t for t in self._records if t.user_id == user_id]
        return chronological(records)

    def all(self) -> tuple[Transaction, ...]:
        with self._lock:
            return chronological(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def trailing_activity(
    history: Iterable[Transaction],
    now: datetime,
    window: timedelta = timedelta(hours=24),
) -> tuple[int, float]:
    """Count and total amount of transactions in the trailing window.

    This is how callers derive ``Transaction.velocity`` and
    ``Transaction.total_amount_24h`` before scoring.  Entries without a
    timestamp, or later than ``now``, are ignored.
    """
    now = as_utc(now)
    recent = [
        t
        for t in history
        if t.timestamp is not None
        and timedelta(0) <= now - as_utc(t.timestamp) <= window
    ]
    return len(recent), float(sum(t.amount for t in recent))
