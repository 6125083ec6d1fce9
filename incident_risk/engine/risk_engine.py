"""
Incident Risk Engine: owns the telemetry buffer, feature store and model.

Pipeline:
    raw events -> TelemetryBuffer -> FeatureBuilder -> feature-row store
        -> LabelBuilder + Scaler + LogisticModel   (train)
        -> Predictor                               (infer)
        -> AlertEvaluator                          (alerts)
        -> LabelBuilder + Backtester               (backtest)

All state lives on one engine instance. Operations are synchronous and
unsynchronized; callers sharing an instance across threads must serialize
access themselves.

Training is warm-started: weights and bias are never re-zeroed by
``train``. Call ``reset`` to start from scratch.
"""

from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import numpy as np
import structlog

from incident_risk.models.features import ETLResult, FeatureRow, PartialFeatureRow, TrainingRow
from incident_risk.models.prediction import (
    BacktestMetrics,
    EngineSummary,
    ModelState,
    PredictionResult,
    PreventiveAlert,
    TrainResult,
)
from incident_risk.models.telemetry import IngestResult, TelemetryEvent

from .alert_evaluator import AlertEvaluator
from .backtester import Backtester
from .feature_builder import FeatureBuilder
from .label_builder import LabelBuilder
from .model import LogisticModel
from .predictor import DEFAULT_TOP_FACTORS, Predictor
from .scaler import DEFAULT_STD_EPSILON, Scaler, feature_matrix
from .telemetry_buffer import DEFAULT_CAPACITY, TelemetryBuffer

logger = structlog.get_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IncidentRiskEngine:
    """
    In-memory incident risk prediction engine.

    Attributes:
        buffer: Bounded raw telemetry store
        scaler: Standardization statistics from the last training set
        model: Logistic model (weights + bias)
        predictor: Scoring and attribution
        clock: Callable returning the current UTC time (ETL lookback reference)

    Example:
        >>> engine = IncidentRiskEngine()
        >>> engine.ingest(events)
        >>> engine.run_etl(bucket_minutes=10, lookback_hours=168)
        >>> engine.train(horizon_hours=2, incident_threshold=0.2, learning_rate=0.1, epochs=80)
        >>> engine.infer_latest(service="payments")
    """

    def __init__(
        self,
        buffer_capacity: int = DEFAULT_CAPACITY,
        top_factor_count: int = DEFAULT_TOP_FACTORS,
        std_epsilon: float = DEFAULT_STD_EPSILON,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.buffer = TelemetryBuffer(capacity=buffer_capacity)
        self.feature_builder = FeatureBuilder()
        self.label_builder = LabelBuilder()
        self.scaler = Scaler(epsilon=std_epsilon)
        self.model = LogisticModel()
        self.predictor = Predictor(self.model, self.scaler, top_factor_count=top_factor_count)
        self.alert_evaluator = AlertEvaluator(self.predictor)
        self.backtester = Backtester(self.predictor)
        self.clock = clock
        self._feature_rows: list[FeatureRow] = []
        self.logger = structlog.get_logger()

    @property
    def feature_rows(self) -> list[FeatureRow]:
        """Rows produced by the most recent ETL run."""
        return list(self._feature_rows)

    # =========================================================================
    # Ingestion & ETL
    # =========================================================================

    def ingest(self, events: Sequence[TelemetryEvent]) -> IngestResult:
        result = self.buffer.ingest(events)
        self.logger.info(
            "telemetry_ingested",
            ingested=result.ingested,
            retained=result.retained,
        )
        return result

    def run_etl(
        self,
        bucket_minutes: int,
        lookback_hours: int,
        now: Optional[datetime] = None,
    ) -> ETLResult:
        """
        Rebuild the feature-row store from the buffer.

        The store is replaced, not appended to: it always reflects exactly
        the lookback window of this call.
        """
        rows = self.feature_builder.build(
            self.buffer.events,
            bucket_minutes=bucket_minutes,
            lookback_hours=lookback_hours,
            now=now or self.clock(),
        )
        self._feature_rows = rows

        self.logger.info(
            "etl_completed",
            generated_rows=len(rows),
            bucket_minutes=bucket_minutes,
            lookback_hours=lookback_hours,
        )
        return ETLResult(generated_rows=len(rows), dataset=rows)

    def build_training_rows(self, horizon_hours: float, incident_threshold: float) -> list[TrainingRow]:
        return self.label_builder.build(self._feature_rows, horizon_hours, incident_threshold)

    # =========================================================================
    # Training
    # =========================================================================

    def train(
        self,
        horizon_hours: float,
        incident_threshold: float,
        learning_rate: float,
        epochs: int,
    ) -> TrainResult:
        """
        Fit the scaler and continue SGD on the labeled feature store.

        Returns (0, 0) and leaves the model and scaler untouched when there
        is nothing to train on.
        """
        training_rows = self.build_training_rows(horizon_hours, incident_threshold)
        if not training_rows:
            self.logger.info("training_skipped", reason="no_training_rows")
            return TrainResult(trained_rows=0, positives=0)

        self.scaler.fit(training_rows)
        standardized = self.scaler.transform(feature_matrix(training_rows))
        labels = np.array([row.label for row in training_rows], dtype=np.float64)
        self.model.fit(standardized, labels, learning_rate=learning_rate, epochs=epochs)

        positives = int(labels.sum())
        self.logger.info(
            "model_trained",
            rows=len(training_rows),
            positives=positives,
            horizon_hours=horizon_hours,
            incident_threshold=incident_threshold,
            learning_rate=learning_rate,
            epochs=epochs,
        )
        return TrainResult(trained_rows=len(training_rows), positives=positives)

    # =========================================================================
    # Inference, alerts, evaluation
    # =========================================================================

    def infer_latest(
        self,
        service: Optional[str] = None,
        route: Optional[str] = None,
    ) -> list[PredictionResult]:
        return self.predictor.predict_latest(self._feature_rows, service=service, route=route)

    def infer_batch(self, items: Sequence[PartialFeatureRow]) -> list[PredictionResult]:
        return self.predictor.predict_batch(items)

    def evaluate_alerts(self, threshold: float) -> list[PreventiveAlert]:
        return self.alert_evaluator.evaluate(self._feature_rows, threshold)

    def backtest(
        self,
        horizon_hours: float,
        incident_threshold: float,
        top_k: int,
    ) -> BacktestMetrics:
        """Evaluate the current model; labeling parameters may differ from training."""
        rows = self.build_training_rows(horizon_hours, incident_threshold)
        return self.backtester.evaluate(rows, top_k=top_k)

    # =========================================================================
    # State
    # =========================================================================

    def reset(self) -> None:
        """Clear telemetry and features, zero the model and restore scaler defaults."""
        self.buffer.clear()
        self._feature_rows = []
        self.model.reset()
        self.scaler.reset()
        self.logger.info("engine_reset")

    def summary(self) -> EngineSummary:
        return EngineSummary(
            telemetry=self.buffer.summarize(),
            feature_rows=len(self._feature_rows),
        )

    def model_state(self) -> ModelState:
        return ModelState(
            weights=self.model.weights_by_feature(),
            bias=self.model.bias,
            means=self.scaler.means_by_feature(),
            stds=self.scaler.stds_by_feature(),
        )
