"""
Incident risk prediction engine.

This package contains the in-memory pipeline that turns raw service
telemetry into incident-risk predictions:

- Telemetry buffering: bounded FIFO store of raw events
- Feature building: per (service, route, bucket) aggregation
- Labeling: forward-looking incident labels within a horizon
- Training: standardization + online logistic regression (warm start)
- Prediction: risk scores with top contributing factors
- Alerting: threshold-based preventive alerts
- Backtesting: AUC, precision@K, recall

All components are pure in-memory computation with no I/O.
"""

from functools import lru_cache

from incident_risk.config import get_settings

from .alert_evaluator import AlertEvaluator
from .backtester import Backtester, pairwise_auc
from .feature_builder import FeatureBuilder, nearest_rank_percentile
from .label_builder import LabelBuilder
from .model import LogisticModel, sigmoid
from .predictor import Predictor
from .risk_engine import IncidentRiskEngine
from .scaler import Scaler
from .telemetry_buffer import TelemetryBuffer


@lru_cache
def get_risk_engine() -> IncidentRiskEngine:
    """
    Get the cached engine instance (singleton per process).

    Returns:
        IncidentRiskEngine configured from settings
    """
    settings = get_settings()
    return IncidentRiskEngine(
        buffer_capacity=settings.telemetry_buffer_capacity,
        top_factor_count=settings.top_factor_count,
        std_epsilon=settings.scaler_std_epsilon,
    )


__all__ = [
    "AlertEvaluator",
    "Backtester",
    "FeatureBuilder",
    "IncidentRiskEngine",
    "LabelBuilder",
    "LogisticModel",
    "Predictor",
    "Scaler",
    "TelemetryBuffer",
    "get_risk_engine",
    "nearest_rank_percentile",
    "pairwise_auc",
    "sigmoid",
]
