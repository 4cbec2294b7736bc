"""
Human-readable explanations for elevated-risk transactions.

Turns the heuristic risk factors into an ordered list of reasons.  The
order is fixed: amount, time of day, category, round amount, velocity,
merchant, device, behavioural pattern.
"""

from __future__ import annotations

from risk_engine.risk_factors import RiskFactors
from risk_engine.transaction import Transaction


MODEL_ONLY_REASON = "Transaction flagged by AI model"


def explain(transaction: Transaction, factors: RiskFactors) -> list[str]:
    """Describe which heuristics fired for a transaction.

    Never returns an empty list: when no heuristic fires, the single
    ``MODEL_ONLY_REASON`` entry is returned.
    """
    reasons: list[str] = []
    amount = transaction.amount
    hour = transaction.time_of_day

    if amount > 5000:
        reasons.append(f"High transaction amount: ${amount:,.2f}")

    if 0 <= hour < 6:
        reasons.append("Transaction during unusual hours (midnight to 6 AM)")
    elif hour >= 22:
        reasons.append("Late night transaction (after 10 PM)")

    if factors.category_risk == 1:
        reasons.append(f"High-risk transaction category: {transaction.category}")

    if factors.round_amount_risk == 1 and amount >= 100:
        reasons.append("Suspicious round amount")

    if factors.velocity_risk > 0.7:
        reasons.append("Multiple transactions detected in short time period")

    if factors.merchant_risk > 0.5:
        reasons.append(
            f"Transaction with unfamiliar merchant: {transaction.merchant}"
        )

    if factors.device_risk > 0.5:
        reasons.append("Transaction from unrecognized device")

    if factors.pattern_risk > 0.5:
        reasons.append("Transaction pattern differs from normal behavior")

    return reasons or [MODEL_ONLY_REASON]
