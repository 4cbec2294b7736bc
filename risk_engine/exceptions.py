"""
Error types raised by the risk engine.

Callers typically map ``ValidationError`` to a declined transaction,
``NotInitializedError`` to a "system not ready" response, and
``InitializationError`` to a hard failure.
"""

from __future__ import annotations


class RiskEngineError(Exception):
    """Base class for all risk engine errors."""


class ValidationError(RiskEngineError, ValueError):
    """A transaction or feature vector failed domain checks."""


class NotInitializedError(RiskEngineError, RuntimeError):
    """Scoring was attempted before the classifier finished training."""


class InitializationError(RiskEngineError):
    """Training data generation or model fitting failed (safe to retry)."""
