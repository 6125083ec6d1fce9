"""
Pydantic v2 data models for the incident risk engine.

Model Organization:
    - base: Request-side base model (camelCase aliases, unknown keys rejected)
    - enums: Feature identifiers and alert types
    - telemetry: Raw telemetry events and buffer summaries
    - features: Aggregated feature rows and labeled training rows
    - prediction: Predictions, alerts, training and backtest results
"""

from .base import WireModel
from .enums import FEATURE_KEYS, AlertType, FeatureKey
from .features import ETLResult, FeatureRow, PartialFeatureRow, TrainingRow
from .prediction import (
    BacktestMetrics,
    EngineSummary,
    FactorContribution,
    ModelState,
    PredictionResult,
    PreventiveAlert,
    TrainResult,
)
from .telemetry import IngestResult, TelemetryEvent, TelemetrySummary

__all__ = [
    # Base
    "WireModel",
    # Enumerations
    "FEATURE_KEYS",
    "AlertType",
    "FeatureKey",
    # Telemetry models
    "IngestResult",
    "TelemetryEvent",
    "TelemetrySummary",
    # Feature models
    "ETLResult",
    "FeatureRow",
    "PartialFeatureRow",
    "TrainingRow",
    # Prediction models
    "BacktestMetrics",
    "EngineSummary",
    "FactorContribution",
    "ModelState",
    "PredictionResult",
    "PreventiveAlert",
    "TrainResult",
]
