"""
Raw telemetry models.

A TelemetryEvent is one observed request against a (service, route) pair.
Events are immutable once ingested; the field constraints here are the
validated contract the HTTP layer enforces before anything reaches the
engine.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import WireModel


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TelemetryEvent(WireModel):
    """
    One observed request.

    Attributes:
        timestamp: When the request was observed (UTC)
        service: Service identifier
        route: Route identifier within the service
        status_code: HTTP status code returned
        latency_ms: Request latency in milliseconds
        memory_mb: Process memory at observation time
        cpu_pct: CPU utilisation percentage (0-100)
        retries: Number of retries performed
        timeout: Whether the request timed out
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(description="Observation time (UTC)")
    service: str = Field(min_length=1, description="Service identifier")
    route: str = Field(min_length=1, description="Route identifier")
    status_code: int = Field(ge=100, le=599, description="HTTP status code")
    latency_ms: float = Field(ge=0.0, description="Latency in milliseconds")
    memory_mb: float = Field(ge=0.0, description="Memory usage in MB")
    cpu_pct: float = Field(ge=0.0, le=100.0, description="CPU utilisation percentage")
    retries: int = Field(ge=0, description="Retries performed")
    timeout: bool = Field(description="Whether the request timed out")

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


class TelemetrySummary(BaseModel):
    """Counts and ratios over the raw telemetry buffer."""

    total: int = Field(ge=0)
    error_rate: float = Field(ge=0.0, le=1.0)
    timeout_rate: float = Field(ge=0.0, le=1.0)


class IngestResult(BaseModel):
    """Outcome of a telemetry ingest call."""

    ingested: int = Field(ge=0, description="Events received in this call")
    retained: int = Field(ge=0, description="Events held by the buffer after eviction")
