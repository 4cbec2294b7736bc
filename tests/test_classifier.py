"""Tests for the ClassifierService (training, caching, inference)."""

import asyncio
import threading
import time

import numpy as np
import pytest
from torch import nn

import risk_engine.classifier as classifier_module
from risk_engine.classifier import ClassifierService, TrainingMetrics
from risk_engine.config import ClassifierConfig, DatasetConfig
from risk_engine.exceptions import (
    InitializationError,
    NotInitializedError,
    ValidationError,
)
from risk_engine.features import N_FEATURES


FAST_CONFIG = ClassifierConfig(epochs=5, random_state=0)
SMALL_DATASET = DatasetConfig(n_legit=140, n_fraud=60, seed=0)


def _service(dataset: DatasetConfig = SMALL_DATASET) -> ClassifierService:
    return ClassifierService(config=FAST_CONFIG, dataset=dataset)


@pytest.fixture(scope="module")
def trained() -> ClassifierService:
    service = _service()
    service.initialize()
    yield service
    service.close()


# ── Training ─────────────────────────────────────────────────────────


def test_initialize_caches_model(trained):
    assert trained.is_initialized


def test_metrics_populated_after_training(trained):
    metrics = trained.metrics
    assert isinstance(metrics, TrainingMetrics)
    assert metrics.n_train == 160
    assert metrics.n_validation == 40
    assert 0 < metrics.epochs_run <= FAST_CONFIG.epochs
    assert 0.0 <= metrics.accuracy <= 1.0
    assert 0.0 <= metrics.f1 <= 1.0
    assert 0.0 <= metrics.roc_auc <= 1.0
    assert "ROC AUC:" in metrics.summary()
    assert set(metrics.to_dict()) >= {"accuracy", "f1", "roc_auc"}


def test_initialize_is_idempotent(trained, monkeypatch):
    def fail():
        raise AssertionError("retrained a cached model")

    monkeypatch.setattr(trained, "_fit", fail)
    trained.initialize()
    trained.initialize()
    assert trained.is_initialized


def test_network_has_dropout_after_two_larger_layers(trained):
    layers = list(trained.network)
    widths = [m.out_features for m in layers if isinstance(m, nn.Linear)]
    assert widths == [64, 32, 16, 1]

    dropouts = [(i, m.p) for i, m in enumerate(layers) if isinstance(m, nn.Dropout)]
    assert [p for _, p in dropouts] == [0.3, 0.2]
    # Each dropout follows the ReLU of the 64- and 32-unit layers
    assert [layers[i - 2].out_features for i, _ in dropouts] == [64, 32]
    assert isinstance(layers[-1], nn.Sigmoid)
    assert not trained.network.training


def test_default_model_separates_profiles():
    service = ClassifierService()
    try:
        service.initialize()
        assert service.metrics.accuracy > 0.9
    finally:
        service.close()


# ── Inference ────────────────────────────────────────────────────────


def test_predict_before_initialize_raises():
    service = _service()
    try:
        with pytest.raises(NotInitializedError, match="not initialized"):
            service.predict(np.zeros(N_FEATURES))
    finally:
        service.close()


def test_predict_returns_probability(trained):
    rng = np.random.default_rng(0)
    for _ in range(10):
        p = trained.predict(rng.uniform(0, 1, size=N_FEATURES))
        assert isinstance(p, float)
        assert 0.0 <= p <= 1.0


def test_predict_accepts_plain_lists(trained):
    assert 0.0 <= trained.predict([0.5] * N_FEATURES) <= 1.0


@pytest.mark.parametrize("shape", [(N_FEATURES - 1,), (N_FEATURES + 1,), (2, N_FEATURES)])
def test_predict_rejects_wrong_shape(trained, shape):
    with pytest.raises(ValidationError):
        trained.predict(np.zeros(shape))


def test_predict_is_deterministic(trained):
    x = np.full(N_FEATURES, 0.4)
    assert trained.predict(x) == trained.predict(x)


# ── Failure handling ─────────────────────────────────────────────────


def test_zero_samples_fail_initialization():
    service = _service(DatasetConfig(n_legit=0, n_fraud=0, seed=0))
    try:
        with pytest.raises(InitializationError, match="zero samples"):
            service.initialize()
        assert not service.is_initialized
        assert service.metrics is None
    finally:
        service.close()


def test_single_class_fails_initialization():
    service = _service(DatasetConfig(n_legit=50, n_fraud=0, seed=0))
    try:
        with pytest.raises(InitializationError, match="both"):
            service.initialize()
        assert not service.is_initialized
    finally:
        service.close()


def test_failed_initialization_can_be_retried(monkeypatch):
    real_generate = classifier_module.generate_training_data
    calls = []

    def flaky_generate(**kwargs):
        calls.append(kwargs)
        if len(calls) == 1:
            raise MemoryError("simulated")
        return real_generate(**kwargs)

    monkeypatch.setattr(classifier_module, "generate_training_data", flaky_generate)
    service = _service()
    try:
        with pytest.raises(InitializationError, match="simulated"):
            service.initialize()
        assert not service.is_initialized

        service.initialize()
        assert service.is_initialized
        assert len(calls) == 2
    finally:
        service.close()


def test_initialize_after_close_raises_initialization_error():
    service = _service()
    service.close()
    with pytest.raises(InitializationError, match="closed"):
        service.initialize()
    with pytest.raises(InitializationError, match="closed"):
        asyncio.run(service.initialize_async())
    assert not service.is_initialized


def test_trained_model_still_serves_after_close():
    service = _service()
    service.initialize()
    service.close()
    service.initialize()
    assert 0.0 <= service.predict([0.5] * N_FEATURES) <= 1.0


# ── Single-flight initialization ─────────────────────────────────────


def test_concurrent_initialize_trains_once(monkeypatch):
    service = _service()
    real_fit = service._fit
    fit_calls = []

    def slow_fit():
        fit_calls.append(1)
        time.sleep(0.2)
        return real_fit()

    monkeypatch.setattr(service, "_fit", slow_fit)
    errors = []

    def worker():
        try:
            service.initialize()
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []
        assert len(fit_calls) == 1
        assert service.is_initialized
    finally:
        service.close()


def test_timeout_raises_and_training_continues(monkeypatch):
    service = _service()
    real_fit = service._fit
    release = threading.Event()
    fit_calls = []

    def gated_fit():
        fit_calls.append(1)
        release.wait(5)
        return real_fit()

    monkeypatch.setattr(service, "_fit", gated_fit)
    try:
        with pytest.raises(InitializationError, match="did not finish"):
            service.initialize(timeout=0.05)
        assert not service.is_initialized

        release.set()
        service.initialize()
        assert service.is_initialized
        assert len(fit_calls) == 1
    finally:
        service.close()


def test_initialize_async_trains_once(monkeypatch):
    service = _service()
    real_fit = service._fit
    fit_calls = []

    def counting_fit():
        fit_calls.append(1)
        return real_fit()

    monkeypatch.setattr(service, "_fit", counting_fit)

    async def run():
        await asyncio.gather(*(service.initialize_async() for _ in range(5)))

    try:
        asyncio.run(run())
        assert service.is_initialized
        assert len(fit_calls) == 1
    finally:
        service.close()


def test_initialize_async_timeout(monkeypatch):
    service = _service()
    release = threading.Event()
    real_fit = service._fit

    def gated_fit():
        release.wait(5)
        return real_fit()

    monkeypatch.setattr(service, "_fit", gated_fit)
    try:
        with pytest.raises(InitializationError):
            asyncio.run(service.initialize_async(timeout=0.05))
        release.set()
        service.initialize()
        assert service.is_initialized
    finally:
        service.close()
