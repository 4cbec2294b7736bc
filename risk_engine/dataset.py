"""
Synthetic training data generator.

Produces labeled feature vectors with a known legitimate/fraud split
for training the classifier.  Rows follow the ``FEATURE_COLUMNS``
layout, and the ``amount_risk``/``time_risk`` columns are computed with
the same rules the analyzer applies at scoring time.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from risk_engine.features import FEATURE_COLUMNS, N_FEATURES, build_feature_row
from risk_engine.risk_factors import (
    RiskFactors,
    amount_risk,
    round_amount_risk,
    time_risk,
)


def generate_training_data(
    n_legit: int = 700,
    n_fraud: int = 300,
    seed: Optional[int] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Generate a shuffled, labeled training set.

    Args:
        n_legit: Number of legitimate samples.  Non-positive values
            produce none.
        n_fraud: Number of fraudulent samples.  Non-positive values
            produce none.
        seed: Random seed for reproducibility.

    Returns:
        Tuple ``(X, y)`` where ``X`` has shape ``(n, N_FEATURES)`` and
        ``y`` holds ``n`` labels (1 = fraud).
    """
    rng = np.random.default_rng(seed)
    n_legit = max(int(n_legit), 0)
    n_fraud = max(int(n_fraud), 0)

    rows: list[list[float]] = []
    labels: list[int] = []

    for _ in range(n_legit):
        rows.append(_legitimate_row(rng))
        labels.append(0)

    for _ in range(n_fraud):
        rows.append(_fraud_row(rng))
        labels.append(1)

    if not rows:
        return (
            np.empty((0, N_FEATURES), dtype=np.float64),
            np.empty(0, dtype=np.int64),
        )

    X = np.asarray(rows, dtype=np.float64)
    y = np.asarray(labels, dtype=np.int64)

    order = rng.permutation(len(y))
    return X[order], y[order]


def generate_training_frame(
    n_legit: int = 700,
    n_fraud: int = 300,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Same data as ``generate_training_data`` as a DataFrame.

    Columns are ``FEATURE_COLUMNS`` plus ``is_fraud``.
    """
    X, y = generate_training_data(n_legit=n_legit, n_fraud=n_fraud, seed=seed)
    df = pd.DataFrame(X, columns=list(FEATURE_COLUMNS))
    df["is_fraud"] = y
    return df


# ---------------------------------------------------------------------------
# Sample profiles
# ---------------------------------------------------------------------------

def _legitimate_row(rng: np.random.Generator) -> list[float]:
    """Low amounts during business hours on weekdays, familiar context."""
    amount = round(float(rng.uniform(10, 510)), 2)
    hour = int(rng.integers(8, 20))
    day = int(rng.integers(1, 6))
    velocity_count = int(rng.integers(0, 2))

    factors = RiskFactors(
        amount_risk=amount_risk(amount),
        time_risk=time_risk(hour),
        category_risk=1.0 if rng.random() < 0.1 else 0.0,
        round_amount_risk=round_amount_risk(amount),
        velocity_risk=min(velocity_count, 3) / 3,
        merchant_risk=float(rng.uniform(0.0, 0.3)),
        device_risk=float(rng.uniform(0.0, 0.2)),
        location_risk=float(rng.uniform(0.0, 0.2)),
        pattern_risk=float(rng.uniform(0.0, 0.3)),
    )
    return build_feature_row(amount, hour, day, factors)


def _fraud_row(rng: np.random.Generator) -> list[float]:
    """High, often round amounts skewed toward night, unfamiliar context."""
    amount = round(float(rng.uniform(1000, 10000)), 2)
    if rng.random() < 0.7:
        amount = float(round(amount / 100) * 100)

    # Mostly between midnight and 6 AM
    if rng.random() < 0.75:
        hour = int(rng.integers(0, 6))
    else:
        hour = int(rng.integers(0, 24))
    day = int(rng.integers(0, 7))
    velocity_count = int(rng.integers(2, 8))

    factors = RiskFactors(
        amount_risk=amount_risk(amount),
        time_risk=time_risk(hour),
        category_risk=1.0 if rng.random() < 0.6 else 0.0,
        round_amount_risk=round_amount_risk(amount),
        velocity_risk=min(velocity_count, 3) / 3,
        merchant_risk=float(rng.uniform(0.5, 1.0)),
        device_risk=float(rng.uniform(0.4, 1.0)),
        location_risk=float(rng.uniform(0.3, 1.0)),
        pattern_risk=float(rng.uniform(0.4, 1.0)),
    )
    return build_feature_row(amount, hour, day, factors)
