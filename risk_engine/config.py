"""Configuration defaults for the transaction risk engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DatasetConfig:
    """Size and seed of the synthetic training set."""

    n_legit: int = 700
    n_fraud: int = 300
    seed: Optional[int] = 42


@dataclass
class ClassifierConfig:
    """Network shape and fitting parameters for the classifier."""

    hidden_layer_sizes: tuple[int, ...] = (64, 32, 16)
    epochs: int = 50
    batch_size: int = 32
    validation_fraction: float = 0.2
    learning_rate: float = 0.001
    dropout_rates: tuple[float, ...] = (0.3, 0.2)
    random_state: Optional[int] = 42
    init_timeout_seconds: Optional[float] = None


@dataclass
class RuleConfig:
    """Windows and category lists used by the heuristic risk rules."""

    high_risk_categories: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {"Cryptocurrency", "Jewelry", "Electronics", "Gaming"}
        )
    )
    velocity_window_minutes: int = 60
    velocity_saturation: int = 3
    merchant_lookback: int = 20
    device_lookback: int = 10
    pattern_lookback: int = 10
    unknown_location: str = "Unknown"

    def __post_init__(self) -> None:
        for name in (
            "velocity_window_minutes",
            "velocity_saturation",
            "merchant_lookback",
            "device_lookback",
            "pattern_lookback",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")


DEFAULT_DATASET_CONFIG = DatasetConfig()
DEFAULT_CLASSIFIER_CONFIG = ClassifierConfig()
DEFAULT_RULE_CONFIG = RuleConfig()
