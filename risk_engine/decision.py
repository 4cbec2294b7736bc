"""
Dynamic-threshold fraud decisions.

The acceptance threshold starts at a base value and is adjusted per
transaction: most risk signals lower it so risky transactions are
easier to flag, while small or familiar transactions get a little more
tolerance.  The result is always clamped to ``[0.5, 0.9]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from risk_engine.risk_factors import RiskFactors
from risk_engine.transaction import Transaction


BASE_THRESHOLD = 0.7
MIN_THRESHOLD = 0.5
MAX_THRESHOLD = 0.9

# Ceiling on the probability reported to callers
MAX_REPORTED_PROBABILITY = 0.99


@dataclass
class Decision:
    """Verdict for a single transaction."""

    is_fraud: bool
    probability: float
    risk_factors: list[str] = field(default_factory=list)
    threshold: float = BASE_THRESHOLD

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "is_fraud": self.is_fraud,
            "probability": round(self.probability, 4),
            "risk_factors": list(self.risk_factors),
            "threshold": round(self.threshold, 4),
        }


class DecisionEngine:
    """Compares a model probability against a transaction-specific threshold."""

    def threshold(self, transaction: Transaction, factors: RiskFactors) -> float:
        """Compute the acceptance threshold for ``transaction``."""
        threshold = BASE_THRESHOLD

        if transaction.amount > 5000:
            threshold -= 0.1
        if factors.category_risk == 1:
            threshold -= 0.1
        if factors.velocity_risk > 0.7:
            threshold -= 0.15
        if factors.time_risk > 0.6:
            threshold -= 0.1

        if transaction.amount < 100:
            threshold += 0.1
        if factors.merchant_risk < 0.3:
            threshold += 0.05
        if factors.device_risk < 0.3:
            threshold += 0.05

        return max(MIN_THRESHOLD, min(MAX_THRESHOLD, threshold))

    def decide(
        self,
        probability: float,
        transaction: Transaction,
        factors: RiskFactors,
        reasons: list[str],
    ) -> Decision:
        """Build the ``Decision`` for a model probability.

        Args:
            probability: Classifier output in ``[0, 1]``.
            transaction: The scored transaction.
            factors: Its risk factors.
            reasons: Explanation lines to attach.

        Returns:
            ``Decision`` with ``is_fraud = probability > threshold`` and
            the reported probability capped at
            ``MAX_REPORTED_PROBABILITY``.
        """
        threshold = self.threshold(transaction, factors)
        return Decision(
            is_fraud=probability > threshold,
            probability=min(max(probability, 0.0), MAX_REPORTED_PROBABILITY),
            risk_factors=list(reasons),
            threshold=threshold,
        )
