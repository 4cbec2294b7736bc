"""
Transaction scoring entry point.

Wires the risk factor analyzer, feature extractor, classifier, decision
engine and explanation generator into a single ``score`` call.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from risk_engine.classifier import ClassifierService
from risk_engine.decision import Decision, DecisionEngine
from risk_engine.exceptions import NotInitializedError
from risk_engine.explanations import explain
from risk_engine.features import FeatureExtractor, validate_transaction
from risk_engine.risk_factors import RiskFactorAnalyzer
from risk_engine.store import TransactionStore
from risk_engine.transaction import Transaction, chronological

logger = logging.getLogger(__name__)


class FraudScorer:
    """Assigns a fraud verdict to one transaction at a time.

    The classifier is injected so a single trained instance can be
    shared by every scorer in the process.
    """

    def __init__(
        self,
        classifier: ClassifierService,
        analyzer: Optional[RiskFactorAnalyzer] = None,
        extractor: Optional[FeatureExtractor] = None,
        decision_engine: Optional[DecisionEngine] = None,
    ) -> None:
        """
        Args:
            classifier: Shared ``ClassifierService``.
            analyzer: Heuristic risk factor analyzer.
            extractor: Feature vector builder.
            decision_engine: Dynamic-threshold decision engine.
        """
        self._classifier = classifier
        self._analyzer = analyzer or RiskFactorAnalyzer()
        self._extractor = extractor or FeatureExtractor()
        self._decision_engine = decision_engine or DecisionEngine()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def initialize(self, timeout: Optional[float] = None) -> None:
        """Train the shared classifier if it is not cached yet."""
        self._classifier.initialize(timeout=timeout)

    async def initialize_async(self, timeout: Optional[float] = None) -> None:
        await self._classifier.initialize_async(timeout=timeout)

    def score(
        self,
        transaction: Transaction,
        history: Iterable[Transaction] = (),
        now: Optional[datetime] = None,
    ) -> Decision:
        """Score a single transaction against its user's history.

        Args:
            transaction: The transaction awaiting authorization.
            history: The user's previous transactions.  Read once into
                a snapshot before any factor is computed.
            now: Reference time for the velocity window.

        Returns:
            ``Decision`` with verdict, capped probability and reasons.

        Raises:
            NotInitializedError: If the classifier has not been trained.
            ValidationError: If the transaction fails domain checks.
        """
        if not self._classifier.is_initialized:
            raise NotInitializedError(
                "Fraud scorer not initialized. Call initialize() first."
            )
        validate_transaction(transaction)

        snapshot = chronological(history)
        factors = self._analyzer.analyze(transaction, snapshot, now=now)
        features = self._extractor.extract(transaction, factors)
        probability = self._classifier.predict(features)
        reasons = explain(transaction, factors)

        decision = self._decision_engine.decide(
            probability, transaction, factors, reasons
        )
        logger.debug(
            "Scored transaction %s: probability=%.4f threshold=%.2f fraud=%s",
            transaction.transaction_id or "<unsaved>",
            decision.probability,
            decision.threshold,
            decision.is_fraud,
        )
        return decision

    def score_for_user(
        self,
        store: TransactionStore,
        transaction: Transaction,
        now: Optional[datetime] = None,
    ) -> Decision:
        """Score ``transaction`` against the history held in ``store``."""
        return self.score(transaction, store.history(transaction.user_id), now=now)
