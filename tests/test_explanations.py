"""Tests for the explanation generator."""

import pytest

from risk_engine.explanations import MODEL_ONLY_REASON, explain
from risk_engine.risk_factors import RiskFactors
from risk_engine.transaction import Transaction


def _txn(amount: float = 250.0, hour: int = 14, category: str = "Shopping",
         merchant: str = "Corner Shop") -> Transaction:
    return Transaction(
        amount=amount,
        time_of_day=hour,
        day_of_week=2,
        merchant=merchant,
        category=category,
    )


def _quiet(**overrides) -> RiskFactors:
    values = {
        "amount_risk": 0.1,
        "time_risk": 0.1,
        "category_risk": 0.0,
        "round_amount_risk": 0.0,
        "velocity_risk": 0.0,
        "merchant_risk": 0.1,
        "device_risk": 0.1,
        "location_risk": 0.1,
        "pattern_risk": 0.0,
    }
    values.update(overrides)
    return RiskFactors(**values)


# ── Fallback ─────────────────────────────────────────────────────────


def test_fallback_when_nothing_fires():
    assert explain(_txn(), _quiet()) == [MODEL_ONLY_REASON]


def test_never_empty():
    for amount in (1, 100, 6000):
        for hour in (0, 12, 23):
            assert len(explain(_txn(amount=amount, hour=hour), _quiet())) >= 1


# ── Individual reasons ───────────────────────────────────────────────


def test_high_amount_reason_includes_amount():
    reasons = explain(_txn(amount=9999), _quiet(amount_risk=1.0))
    assert reasons[0] == "High transaction amount: $9,999.00"


def test_unusual_hours_reason():
    reasons = explain(_txn(hour=3), _quiet(time_risk=0.8))
    assert reasons == ["Transaction during unusual hours (midnight to 6 AM)"]


def test_late_night_reason():
    reasons = explain(_txn(hour=22), _quiet(time_risk=0.6))
    assert reasons == ["Late night transaction (after 10 PM)"]


def test_category_reason_names_category():
    reasons = explain(_txn(category="Gaming"), _quiet(category_risk=1.0))
    assert reasons == ["High-risk transaction category: Gaming"]


@pytest.mark.parametrize("amount, fires", [(100, True), (2000, True), (0, False)])
def test_round_amount_reason_requires_at_least_100(amount, fires):
    reasons = explain(_txn(amount=amount), _quiet(round_amount_risk=1.0))
    assert ("Suspicious round amount" in reasons) is fires


def test_familiarity_and_pattern_reasons():
    reasons = explain(
        _txn(merchant="Mystery LLC"),
        _quiet(velocity_risk=1.0, merchant_risk=0.7, device_risk=0.6, pattern_risk=0.7),
    )
    assert reasons == [
        "Multiple transactions detected in short time period",
        "Transaction with unfamiliar merchant: Mystery LLC",
        "Transaction from unrecognized device",
        "Transaction pattern differs from normal behavior",
    ]


def test_velocity_at_two_thirds_does_not_fire():
    reasons = explain(_txn(), _quiet(velocity_risk=2 / 3))
    assert reasons == [MODEL_ONLY_REASON]


# ── Ordering ─────────────────────────────────────────────────────────


def test_reasons_follow_fixed_priority_order():
    txn = _txn(amount=9000, hour=2, category="Cryptocurrency", merchant="X")
    factors = RiskFactors(
        amount_risk=1.0, time_risk=0.8, category_risk=1.0, round_amount_risk=1.0,
        velocity_risk=1.0, merchant_risk=0.7, device_risk=0.6, location_risk=0.5,
        pattern_risk=0.9,
    )
    reasons = explain(txn, factors)
    assert len(reasons) == 8
    assert reasons[0].startswith("High transaction amount")
    assert "unusual hours" in reasons[1]
    assert reasons[2].startswith("High-risk transaction category")
    assert reasons[3] == "Suspicious round amount"
    assert reasons[4].startswith("Multiple transactions")
    assert reasons[5].startswith("Transaction with unfamiliar merchant")
    assert reasons[6] == "Transaction from unrecognized device"
    assert reasons[7].startswith("Transaction pattern differs")
