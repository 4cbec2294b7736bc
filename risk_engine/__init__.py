"""
Transaction Risk Engine
=======================

Assigns a fraud verdict to a single payment transaction at
authorization time by combining a neural-network classifier trained on
synthetic data with interpretable heuristic risk factors and a
transaction-specific decision threshold.
"""

__version__ = "1.0.0"

from risk_engine.transaction import Transaction
from risk_engine.risk_factors import RiskFactors, RiskFactorAnalyzer
from risk_engine.features import FEATURE_COLUMNS, FeatureExtractor
from risk_engine.dataset import generate_training_data, generate_training_frame
from risk_engine.classifier import ClassifierService, TrainingMetrics
from risk_engine.decision import Decision, DecisionEngine
from risk_engine.explanations import explain
from risk_engine.scorer import FraudScorer
from risk_engine.store import (
    InMemoryTransactionStore,
    TransactionStore,
    trailing_activity,
)
from risk_engine.exceptions import (
    InitializationError,
    NotInitializedError,
    RiskEngineError,
    ValidationError,
)

__all__ = [
    "Transaction",
    "RiskFactors",
    "RiskFactorAnalyzer",
    "FEATURE_COLUMNS",
    "FeatureExtractor",
    "generate_training_data",
    "generate_training_frame",
    "ClassifierService",
    "TrainingMetrics",
    "Decision",
    "DecisionEngine",
    "explain",
    "FraudScorer",
    "InMemoryTransactionStore",
    "TransactionStore",
    "trailing_activity",
    "RiskEngineError",
    "ValidationError",
    "NotInitializedError",
    "InitializationError",
]
