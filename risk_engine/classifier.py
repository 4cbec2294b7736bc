"""
Fraud classifier training and inference.

``ClassifierService`` owns a single feed-forward network trained on
the synthetic dataset.  Training happens once per process (lazily or
eagerly) and the fitted model is cached for every later inference
call.  Concurrent initialization requests collapse into a single
training run.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Optional

import numpy as np
import torch
from sklearn.metrics import (
    accuracy_score,
    f1_score,
    precision_score,
    recall_score,
    roc_auc_score,
)
from sklearn.model_selection import train_test_split
from torch import nn
from torch.utils.data import DataLoader, TensorDataset

from risk_engine.config import (
    DEFAULT_CLASSIFIER_CONFIG,
    DEFAULT_DATASET_CONFIG,
    ClassifierConfig,
    DatasetConfig,
)
from risk_engine.dataset import generate_training_data
from risk_engine.exceptions import (
    InitializationError,
    NotInitializedError,
    ValidationError,
)
from risk_engine.features import N_FEATURES

logger = logging.getLogger(__name__)


@dataclass
class TrainingMetrics:
    """Evaluation of the fitted model on the held-out validation slice."""

    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1: float = 0.0
    roc_auc: float = float("nan")
    n_train: int = 0
    n_validation: int = 0
    epochs_run: int = 0
    final_loss: float = float("nan")

    def summary(self) -> str:
        """Return a human-readable summary."""
        lines = [
            "Classifier Training Metrics",
            "=" * 40,
            f"Train samples:      {self.n_train}",
            f"Validation samples: {self.n_validation}",
            f"Epochs:             {self.epochs_run}",
            f"Final loss:         {self.final_loss:.4f}",
            f"Accuracy:  {self.accuracy:.4f}",
            f"Precision: {self.precision:.4f}",
            f"Recall:    {self.recall:.4f}",
            f"F1 Score:  {self.f1:.4f}",
            f"ROC AUC:   {self.roc_auc:.4f}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "accuracy": round(self.accuracy, 4),
            "precision": round(self.precision, 4),
            "recall": round(self.recall, 4),
            "f1": round(self.f1, 4),
            "roc_auc": round(self.roc_auc, 4),
            "n_train": self.n_train,
            "n_validation": self.n_validation,
            "epochs_run": self.epochs_run,
            "final_loss": round(self.final_loss, 4),
        }


class ClassifierService:
    """Trains, caches and serves the fraud probability model.

    One instance is meant to be shared by every scoring caller.  The
    fitted model is read-only after training completes, so inference
    needs no locking.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        dataset: Optional[DatasetConfig] = None,
    ) -> None:
        """
        Args:
            config: Network and fitting parameters.
            dataset: Size and seed of the synthetic training set.
        """
        self._config = config or DEFAULT_CLASSIFIER_CONFIG
        self._dataset = dataset or DEFAULT_DATASET_CONFIG
        self._model: Optional[nn.Sequential] = None
        self._metrics: Optional[TrainingMetrics] = None
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="classifier-init"
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def initialize(self, timeout: Optional[float] = None) -> None:
        """Train and cache the model unless it is already cached.

        Safe to call repeatedly and from several threads at once: only
        one training run is ever in flight and every caller waits on it.

        Args:
            timeout: Seconds to wait for training.  Defaults to
                ``ClassifierConfig.init_timeout_seconds`` (no limit when
                ``None``).  A timed-out caller gets an error but the run
                keeps going and later callers reuse it.

        Raises:
            InitializationError: If training fails or times out.
        """
        future = self._ensure_training()
        if future is None:
            return
        if timeout is None:
            timeout = self._config.init_timeout_seconds
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise InitializationError(
                f"Classifier training did not finish within {timeout}s"
            ) from exc

    async def initialize_async(self, timeout: Optional[float] = None) -> None:
        """Awaitable ``initialize`` that does not block the event loop."""
        future = self._ensure_training()
        if future is None:
            return
        if timeout is None:
            timeout = self._config.init_timeout_seconds
        try:
            await asyncio.wait_for(
                asyncio.shield(asyncio.wrap_future(future)), timeout
            )
        except asyncio.TimeoutError as exc:
            raise InitializationError(
                f"Classifier training did not finish within {timeout}s"
            ) from exc

    def predict(self, features) -> float:
        """Return the fraud probability for one feature vector.

        Args:
            features: Sequence of ``N_FEATURES`` floats.

        Returns:
            Probability in ``[0, 1]``.

        Raises:
            NotInitializedError: If no model has been trained yet.
            ValidationError: If the vector has the wrong shape.
        """
        model = self._model
        if model is None:
            raise NotInitializedError(
                "Classifier not initialized. Call initialize() first."
            )
        x = np.asarray(features, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != N_FEATURES:
            raise ValidationError(
                f"Expected a vector of {N_FEATURES} features, got shape {x.shape}"
            )
        x = np.nan_to_num(x, nan=0.0, posinf=0.0, neginf=0.0)
        with torch.no_grad():
            output = model(torch.as_tensor(x.reshape(1, -1), dtype=torch.float32))
        proba = float(output[0, 0])
        return min(max(proba, 0.0), 1.0)

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    @property
    def network(self) -> Optional[nn.Sequential]:
        """The fitted network in evaluation mode, or ``None`` if not trained."""
        return self._model

    @property
    def metrics(self) -> Optional[TrainingMetrics]:
        """Validation metrics from training, or ``None`` if not trained."""
        return self._metrics

    def close(self) -> None:
        """Release the training worker thread.

        A cached model keeps serving predictions; a service closed before
        training finished can no longer be initialized.
        """
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_training(self) -> Optional[Future]:
        """Return the in-flight training future, starting one if needed.

        Returns ``None`` when a model is already cached.

        Raises:
            InitializationError: If the service was closed before a model
                was cached.
        """
        with self._lock:
            if self._model is not None:
                return None
            if self._closed:
                raise InitializationError("Classifier service is closed")
            if self._pending is None:
                logger.info("Starting classifier training")
                self._pending = self._executor.submit(self._train)
            return self._pending

    def _train(self) -> None:
        try:
            model, metrics = self._fit()
        except InitializationError as exc:
            logger.error("Classifier initialization failed: %s", exc)
            with self._lock:
                self._pending = None
            raise
        except Exception as exc:
            logger.exception("Classifier initialization failed")
            with self._lock:
                self._pending = None
            raise InitializationError(f"Classifier training failed: {exc}") from exc

        with self._lock:
            self._model = model
            self._metrics = metrics
            self._pending = None
        logger.info(
            "Classifier trained: accuracy=%.4f f1=%.4f roc_auc=%.4f",
            metrics.accuracy,
            metrics.f1,
            metrics.roc_auc,
        )

    def _fit(self) -> tuple[nn.Sequential, TrainingMetrics]:
        cfg = self._config
        X, y = generate_training_data(
            n_legit=self._dataset.n_legit,
            n_fraud=self._dataset.n_fraud,
            seed=self._dataset.seed,
        )
        if len(y) == 0:
            raise InitializationError("Cannot train classifier on zero samples")
        if np.unique(y).size < 2:
            raise InitializationError(
                "Training data must contain both legitimate and fraud samples"
            )

        X_train, X_val, y_train, y_val = train_test_split(
            X, y,
            test_size=cfg.validation_fraction,
            random_state=cfg.random_state,
            stratify=y,
        )

        # Seeding is scoped so training leaves the global torch RNG untouched
        with torch.random.fork_rng(devices=[]):
            generator = torch.Generator()
            if cfg.random_state is not None:
                torch.manual_seed(cfg.random_state)
                generator.manual_seed(cfg.random_state)
            network = build_network(
                N_FEATURES, cfg.hidden_layer_sizes, cfg.dropout_rates
            )
            final_loss = self._run_epochs(network, X_train, y_train, generator)

        network.eval()
        with torch.no_grad():
            y_proba = network(torch.as_tensor(X_val, dtype=torch.float32))
        y_proba = y_proba.squeeze(1).numpy()
        y_pred = (y_proba >= 0.5).astype(int)

        metrics = TrainingMetrics(
            accuracy=float(accuracy_score(y_val, y_pred)),
            precision=float(precision_score(y_val, y_pred, zero_division=0)),
            recall=float(recall_score(y_val, y_pred, zero_division=0)),
            f1=float(f1_score(y_val, y_pred, zero_division=0)),
            n_train=len(y_train),
            n_validation=len(y_val),
            epochs_run=cfg.epochs,
            final_loss=final_loss,
        )
        if np.unique(y_val).size == 2:
            metrics.roc_auc = float(roc_auc_score(y_val, y_proba))
        return network, metrics

    def _run_epochs(
        self,
        network: nn.Sequential,
        X_train: np.ndarray,
        y_train: np.ndarray,
        generator: torch.Generator,
    ) -> float:
        """Train for the configured epochs and return the final mean loss."""
        cfg = self._config
        loader = DataLoader(
            TensorDataset(
                torch.as_tensor(X_train, dtype=torch.float32),
                torch.as_tensor(y_train, dtype=torch.float32).reshape(-1, 1),
            ),
            batch_size=cfg.batch_size,
            shuffle=True,
            generator=generator,
        )
        optimizer = torch.optim.Adam(network.parameters(), lr=cfg.learning_rate)
        loss_fn = nn.BCELoss()

        network.train()
        epoch_loss = float("nan")
        for epoch in range(cfg.epochs):
            total = 0.0
            for xb, yb in loader:
                optimizer.zero_grad()
                loss = loss_fn(network(xb), yb)
                loss.backward()
                optimizer.step()
                total += loss.item() * len(yb)
            epoch_loss = total / len(loader.dataset)
            logger.debug("Epoch %d/%d: loss=%.4f", epoch + 1, cfg.epochs, epoch_loss)
        return epoch_loss


def build_network(
    n_features: int,
    hidden_layer_sizes: tuple[int, ...],
    dropout_rates: tuple[float, ...] = (),
) -> nn.Sequential:
    """Stack ReLU dense layers ending in a single sigmoid unit.

    ``dropout_rates[i]`` adds a dropout layer after hidden layer ``i``;
    layers past the end of ``dropout_rates`` get none.

    Args:
        n_features: Width of the input vector.
        hidden_layer_sizes: Units per hidden layer.
        dropout_rates: Dropout probability per hidden layer.

    Returns:
        Untrained ``nn.Sequential`` mapping ``(n, n_features)`` to
        fraud probabilities of shape ``(n, 1)``.
    """
    layers: list[nn.Module] = []
    width = n_features
    for i, size in enumerate(hidden_layer_sizes):
        layers.append(nn.Linear(width, size))
        layers.append(nn.ReLU())
        if i < len(dropout_rates) and dropout_rates[i] > 0:
            layers.append(nn.Dropout(dropout_rates[i]))
        width = size
    layers.append(nn.Linear(width, 1))
    layers.append(nn.Sigmoid())
    return nn.Sequential(*layers)
