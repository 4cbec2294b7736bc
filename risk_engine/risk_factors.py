"""
Heuristic risk factor analysis.

Computes nine named, interpretable risk scores for a transaction from
its own attributes and the submitting user's recent history.  The
rules are pure Python and independent of the classifier, so they can
be tested and reused (the synthetic dataset generator shares
``amount_risk`` and ``time_risk``) without the numeric backend.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from risk_engine.config import DEFAULT_RULE_CONFIG, RuleConfig
from risk_engine.transaction import Transaction, as_utc, chronological


@dataclass(frozen=True)
class RiskFactors:
    """The nine heuristic risk scores, each in ``[0, 1]``."""

    amount_risk: float
    time_risk: float
    category_risk: float
    round_amount_risk: float
    velocity_risk: float
    merchant_risk: float
    device_risk: float
    location_risk: float
    pattern_risk: float

    def __post_init__(self) -> None:
        for name, value in asdict(self).items():
            object.__setattr__(self, name, _clamp(float(value)))

    def to_dict(self) -> dict[str, float]:
        """Serialize to dictionary."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------

def amount_risk(amount: float) -> float:
    if amount > 5000:
        return 1.0
    if amount > 1000:
        return 0.6
    if amount > 500:
        return 0.3
    return 0.1


def time_risk(hour: int) -> float:
    if 0 <= hour < 6:
        return 0.8
    if hour >= 22:
        return 0.6
    return 0.1


def category_risk(
    category: str,
    high_risk_categories: Iterable[str] = DEFAULT_RULE_CONFIG.high_risk_categories,
) -> float:
    return 1.0 if category in high_risk_categories else 0.0


def round_amount_risk(amount: float) -> float:
    return 1.0 if amount % 100 == 0 else 0.0


class RiskFactorAnalyzer:
    """Computes ``RiskFactors`` for a transaction against its user's history.

    History is treated as chronological; "last N" always means the N
    most recent entries by timestamp.
    """

    def __init__(self, rules: Optional[RuleConfig] = None) -> None:
        """
        Args:
            rules: Rule windows and category lists.  Defaults to
                ``DEFAULT_RULE_CONFIG``.
        """
        self._rules = rules or DEFAULT_RULE_CONFIG

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(
        self,
        transaction: Transaction,
        history: Iterable[Transaction] = (),
        now: Optional[datetime] = None,
    ) -> RiskFactors:
        """Compute all nine risk factors.

        Args:
            transaction: The transaction being scored.
            history: The user's previous transactions.
            now: Reference time for the velocity window.  Defaults to
                the transaction's timestamp, then to the current time.

        Returns:
            ``RiskFactors`` with every field clamped to ``[0, 1]``.
        """
        snapshot = chronological(history)
        rules = self._rules

        return RiskFactors(
            amount_risk=amount_risk(transaction.amount),
            time_risk=time_risk(transaction.time_of_day),
            category_risk=category_risk(
                transaction.category, rules.high_risk_categories
            ),
            round_amount_risk=round_amount_risk(transaction.amount),
            velocity_risk=self.velocity_risk(
                snapshot, self._reference_time(transaction, now)
            ),
            merchant_risk=self.merchant_risk(transaction, snapshot),
            device_risk=self.device_risk(transaction, snapshot),
            location_risk=self.location_risk(transaction),
            pattern_risk=self.pattern_risk(transaction, snapshot),
        )

    def velocity_risk(
        self, history: Sequence[Transaction], now: datetime
    ) -> float:
        """Fraction of the saturation count reached within the trailing window."""
        window = timedelta(minutes=self._rules.velocity_window_minutes)
        now = as_utc(now)
        count = sum(
            1
            for t in history
            if t.timestamp is not None
            and timedelta(0) <= now - as_utc(t.timestamp) <= window
        )
        saturation = self._rules.velocity_saturation
        return min(count, saturation) / saturation

    def merchant_risk(
        self, transaction: Transaction, history: Sequence[Transaction]
    ) -> float:
        recent = _last(history, self._rules.merchant_lookback)
        known = {t.merchant for t in recent}
        return 0.1 if transaction.merchant in known else 0.7

    def device_risk(
        self, transaction: Transaction, history: Sequence[Transaction]
    ) -> float:
        recent = _last(history, self._rules.device_lookback)
        known = {t.device_id for t in recent}
        return 0.1 if transaction.device_id in known else 0.6

    def location_risk(self, transaction: Transaction) -> float:
        location = (transaction.location or "").strip()
        if not location or location == self._rules.unknown_location:
            return 0.5
        return 0.1

    def pattern_risk(
        self, transaction: Transaction, history: Sequence[Transaction]
    ) -> float:
        """Deviation of the transaction from the user's recent behaviour.

        A user with no history gets a moderate 0.3 since deviation
        cannot be assessed.
        """
        if not history:
            return 0.3

        recent = _last(history, self._rules.pattern_lookback)
        mean_amount = sum(t.amount for t in recent) / len(recent)
        if mean_amount > 0:
            deviation = abs(transaction.amount - mean_amount) / mean_amount
        else:
            deviation = float("inf")

        seen_hours = {t.time_of_day for t in recent}
        seen_categories = {t.category for t in recent}

        risk = 0.0
        if deviation > 5:
            risk += 0.4
        if transaction.time_of_day not in seen_hours:
            risk += 0.3
        if transaction.category not in seen_categories:
            risk += 0.2
        return min(risk, 1.0)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _reference_time(
        transaction: Transaction, now: Optional[datetime]
    ) -> datetime:
        if now is not None:
            return now
        if transaction.timestamp is not None:
            return transaction.timestamp
        return datetime.now(timezone.utc)


def _last(history: Sequence[Transaction], n: int) -> Sequence[Transaction]:
    return history[-n:] if n > 0 else ()


def _clamp(value: float) -> float:
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, value))
