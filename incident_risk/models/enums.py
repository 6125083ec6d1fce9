"""
Enumeration types for the incident risk engine.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class FeatureKey(str, Enum):
    """
    Aggregated features computed per (service, route, bucket).

    Declaration order is the column order of every weight, mean and std
    vector held by the model and scaler.
    """

    ERROR_RATE = "error_rate"
    P95_LATENCY_MS = "p95_latency_ms"
    P99_LATENCY_MS = "p99_latency_ms"
    AVG_MEMORY_MB = "avg_memory_mb"
    AVG_CPU_PCT = "avg_cpu_pct"
    RETRIES_RATE = "retries_rate"
    TIMEOUT_RATE = "timeout_rate"
    TOTAL_REQUESTS = "total_requests"


class AlertType(str, Enum):
    """Alert kinds raised by the engine."""

    PREVENTIVE_INCIDENT_RISK = "preventive_incident_risk"


FEATURE_KEYS: tuple[FeatureKey, ...] = tuple(FeatureKey)
