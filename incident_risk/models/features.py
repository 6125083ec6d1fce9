"""
Feature row models produced by the ETL stage.

A FeatureRow aggregates every telemetry event of one
(service, route, bucket_start) triple. TrainingRow adds the forward-looking
incident label used for training and backtesting. PartialFeatureRow is the
externally supplied shape scored by batch inference.
"""

from datetime import datetime
from typing import Literal

import numpy as np
from pydantic import BaseModel, Field, field_validator

from .base import WireModel
from .enums import FEATURE_KEYS
from .telemetry import ensure_utc


class FeatureRow(WireModel):
    """
    Aggregated features for one bucket of one stream.

    Attributes:
        service: Service identifier
        route: Route identifier
        bucket_start: Inclusive start of the bucket (UTC)
        error_rate: Fraction of events with status_code >= 500
        p95_latency_ms: Nearest-rank 95th percentile latency
        p99_latency_ms: Nearest-rank 99th percentile latency
        avg_memory_mb: Mean memory usage
        avg_cpu_pct: Mean CPU utilisation
        retries_rate: Mean retries per event
        timeout_rate: Fraction of events flagged as timeout
        total_requests: Number of events in the bucket (empty buckets are never built)
    """

    service: str = Field(min_length=1)
    route: str = Field(min_length=1)
    bucket_start: datetime
    error_rate: float = Field(ge=0.0, le=1.0)
    p95_latency_ms: float = Field(ge=0.0)
    p99_latency_ms: float = Field(ge=0.0)
    avg_memory_mb: float = Field(ge=0.0)
    avg_cpu_pct: float = Field(ge=0.0, le=100.0)
    retries_rate: float = Field(ge=0.0)
    timeout_rate: float = Field(ge=0.0, le=1.0)
    total_requests: int = Field(ge=1)

    @field_validator("bucket_start")
    @classmethod
    def normalize_bucket_start(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def stream_key(self) -> tuple[str, str]:
        return (self.service, self.route)

    def feature_vector(self) -> np.ndarray:
        """Feature values in FeatureKey order."""
        return np.array(
            [float(getattr(self, key.value)) for key in FEATURE_KEYS],
            dtype=np.float64,
        )


class TrainingRow(FeatureRow):
    """A FeatureRow labeled 1 if an incident-like bucket follows within the horizon."""

    label: Literal[0, 1]


class PartialFeatureRow(FeatureRow):
    """
    Externally supplied row for batch scoring.

    Identity fields are required; every numeric feature is optional and
    defaults to 0.
    """

    error_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    p95_latency_ms: float = Field(default=0.0, ge=0.0)
    p99_latency_ms: float = Field(default=0.0, ge=0.0)
    avg_memory_mb: float = Field(default=0.0, ge=0.0)
    avg_cpu_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    retries_rate: float = Field(default=0.0, ge=0.0)
    timeout_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    total_requests: int = Field(default=0, ge=0)


class ETLResult(BaseModel):
    """Outcome of an ETL run."""

    generated_rows: int = Field(ge=0)
    dataset: list[FeatureRow] = Field(default_factory=list)
