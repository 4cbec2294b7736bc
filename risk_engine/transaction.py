"""
Transaction records consumed by the risk engine.

A ``Transaction`` is immutable.  The time fields used by the rules
(``time_of_day`` and ``day_of_week``) are stored explicitly so a
transaction can be scored without a timestamp; ``Transaction.at``
derives them from one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


CATEGORIES = [
    "Shopping",
    "Food & Dining",
    "Electronics",
    "Travel",
    "Entertainment",
    "Healthcare",
    "Utilities",
    "Cryptocurrency",
    "Jewelry",
    "Gaming",
    "Other",
]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def day_of_week(ts: datetime) -> int:
    """Day index with Sunday as 0 and Saturday as 6."""
    return ts.isoweekday() % 7


@dataclass(frozen=True)
class Transaction:
    """A single payment transaction."""

    amount: float
    time_of_day: int
    day_of_week: int
    merchant: str
    category: str
    card_number: str = ""
    device_id: str = ""
    location: str = "Unknown"
    velocity: int = 0
    user_id: str = ""
    timestamp: Optional[datetime] = None
    ip_address: str = ""
    total_amount_24h: float = 0.0
    transaction_id: str = field(default="", compare=False)

    @classmethod
    def at(cls, timestamp: datetime, **fields: Any) -> "Transaction":
        """Build a transaction whose time fields come from ``timestamp``.

        Naive timestamps are assumed to be UTC.
        """
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            time_of_day=timestamp.hour,
            day_of_week=day_of_week(timestamp),
            timestamp=timestamp,
            **fields,
        )

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "transaction_id": self.transaction_id,
            "user_id": self.user_id,
            "amount": self.amount,
            "time_of_day": self.time_of_day,
            "day_of_week": self.day_of_week,
            "merchant": self.merchant,
            "category": self.category,
            "card_number": self.card_number,
            "device_id": self.device_id,
            "location": self.location,
            "velocity": self.velocity,
            "ip_address": self.ip_address,
            "total_amount_24h": self.total_amount_24h,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


def chronological(history) -> tuple[Transaction, ...]:
    """Snapshot ``history`` into a tuple ordered by timestamp.

    The sort is stable; entries without a timestamp keep their relative
    order ahead of the timestamped ones.
    """
    snapshot = tuple(history)
    return tuple(
        sorted(
            snapshot,
            key=lambda t: (
                t.timestamp is not None,
                as_utc(t.timestamp) if t.timestamp is not None else _EPOCH,
            ),
        )
    )


def as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts

