"""
Feature extraction for the fraud classifier.

The model input is a fixed-length vector: three directly normalized
transaction fields followed by the nine heuristic risk factors.  The
column order is a contract shared with the synthetic dataset
generator; changing it requires bumping ``FEATURE_SCHEMA_VERSION``
and retraining.
"""

from __future__ import annotations

import math
import numbers

import numpy as np

from risk_engine.exceptions import ValidationError
from risk_engine.risk_factors import RiskFactors
from risk_engine.transaction import Transaction


FEATURE_SCHEMA_VERSION = 1

FEATURE_COLUMNS: tuple[str, ...] = (
    "amount_normalized",
    "time_of_day_normalized",
    "day_of_week_normalized",
    "category_risk",
    "round_amount_risk",
    "velocity_risk",
    "merchant_risk",
    "device_risk",
    "location_risk",
    "pattern_risk",
    "amount_risk",
    "time_risk",
)

N_FEATURES = len(FEATURE_COLUMNS)

# Scale applied to the raw amount before it enters the model
AMOUNT_SCALE = 10000.0


def validate_transaction(transaction: Transaction) -> None:
    """Check the transaction fields the model consumes.

    Raises:
        ValidationError: If ``amount`` is not a positive finite number
            or a time field is outside its domain.
    """
    amount = transaction.amount
    if isinstance(amount, bool) or not isinstance(amount, numbers.Real):
        raise ValidationError(f"amount must be a number, got {amount!r}")
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError(f"amount must be positive and finite, got {amount!r}")

    _check_int_range("time_of_day", transaction.time_of_day, 0, 23)
    _check_int_range("day_of_week", transaction.day_of_week, 0, 6)


def build_feature_row(
    amount: float,
    time_of_day: float,
    day_of_week: float,
    factors: RiskFactors,
) -> list[float]:
    """Lay out one row in ``FEATURE_COLUMNS`` order."""
    return [
        amount / AMOUNT_SCALE,
        time_of_day / 24,
        day_of_week / 7,
        factors.category_risk,
        factors.round_amount_risk,
        factors.velocity_risk,
        factors.merchant_risk,
        factors.device_risk,
        factors.location_risk,
        factors.pattern_risk,
        factors.amount_risk,
        factors.time_risk,
    ]


class FeatureExtractor:
    """Maps a transaction and its risk factors onto the model input vector."""

    def extract(
        self, transaction: Transaction, factors: RiskFactors
    ) -> np.ndarray:
        """Build the feature vector for a single transaction.

        Args:
            transaction: The transaction being scored.
            factors: Risk factors already computed for it.

        Returns:
            1-D float array of length ``N_FEATURES``.

        Raises:
            ValidationError: If the transaction fails domain checks.
        """
        validate_transaction(transaction)
        row = build_feature_row(
            float(transaction.amount),
            transaction.time_of_day,
            transaction.day_of_week,
            factors,
        )
        return np.asarray(row, dtype=np.float64)

    def get_feature_columns(self) -> list[str]:
        """Return the feature column names in model input order."""
        return list(FEATURE_COLUMNS)


def _check_int_range(name: str, value, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise ValidationError(
            f"{name} must be between {low} and {high}, got {value}"
        )
