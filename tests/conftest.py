"""
Pytest configuration and shared fixtures for the incident risk test suite.

Provides data factories for telemetry events, feature rows and training
rows, a synthetic degrading-service scenario, a fresh engine per test and
a FastAPI test client bound to the process-wide engine.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing app
os.environ["TESTING"] = "true"
os.environ["LOG_LEVEL"] = "warning"

from incident_risk.engine import IncidentRiskEngine, get_risk_engine
from incident_risk.models import FeatureRow, TelemetryEvent, TrainingRow

FIXED_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Pydantic model factories, reusable across all test suites
# ---------------------------------------------------------------------------


def make_event(
    timestamp: datetime = FIXED_NOW,
    service: str = "payments",
    route: str = "/v1/charge",
    status_code: int = 200,
    latency_ms: float = 100.0,
    memory_mb: float = 300.0,
    cpu_pct: float = 30.0,
    retries: int = 0,
    timeout: bool = False,
    **overrides,
) -> TelemetryEvent:
    """Factory function for creating test TelemetryEvent objects."""
    defaults = dict(
        timestamp=timestamp,
        service=service,
        route=route,
        status_code=status_code,
        latency_ms=latency_ms,
        memory_mb=memory_mb,
        cpu_pct=cpu_pct,
        retries=retries,
        timeout=timeout,
    )
    defaults.update(overrides)
    return TelemetryEvent(**defaults)


def make_feature_row(
    bucket_start: datetime = FIXED_NOW,
    service: str = "payments",
    route: str = "/v1/charge",
    error_rate: float = 0.0,
    timeout_rate: float = 0.0,
    **overrides,
) -> FeatureRow:
    """Factory function for creating test FeatureRow objects."""
    defaults = dict(
        service=service,
        route=route,
        bucket_start=bucket_start,
        error_rate=error_rate,
        p95_latency_ms=120.0,
        p99_latency_ms=150.0,
        avg_memory_mb=300.0,
        avg_cpu_pct=30.0,
        retries_rate=0.1,
        timeout_rate=timeout_rate,
        total_requests=10,
    )
    defaults.update(overrides)
    return FeatureRow(**defaults)


def make_training_row(label: int, **overrides) -> TrainingRow:
    """Factory function for creating test TrainingRow objects."""
    row = make_feature_row(**overrides)
    return TrainingRow(**row.model_dump(), label=label)


def make_stream(
    flags: list[bool],
    start: datetime = FIXED_NOW,
    step_minutes: int = 10,
    service: str = "payments",
    route: str = "/v1/charge",
) -> list[FeatureRow]:
    """Consecutive feature rows; a True flag makes that bucket incident-like."""
    return [
        make_feature_row(
            bucket_start=start + timedelta(minutes=i * step_minutes),
            service=service,
            route=route,
            error_rate=0.6 if flag else 0.0,
        )
        for i, flag in enumerate(flags)
    ]


def make_degrading_telemetry(
    end: datetime,
    count: int = 60,
    degraded: int = 20,
    service: str = "payments",
    route: str = "/v1/charge",
) -> list[TelemetryEvent]:
    """
    One event per minute over the ``count`` minutes before ``end``.

    The last ``degraded`` events show elevated latency, 5xx responses,
    retries and timeouts.
    """
    start = end - timedelta(minutes=count)
    events = []
    for i in range(count):
        unhealthy = i >= count - degraded
        events.append(
            make_event(
                timestamp=start + timedelta(minutes=i),
                service=service,
                route=route,
                status_code=503 if unhealthy else 200,
                latency_ms=1500.0 + i * 10 if unhealthy else 100.0 + i,
                memory_mb=800.0 if unhealthy else 300.0 + (i % 5),
                cpu_pct=92.0 if unhealthy else 30.0 + (i % 7),
                retries=3 if unhealthy else i % 2,
                timeout=unhealthy and i % 2 == 0,
            )
        )
    return events


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    """Fresh engine with a fixed clock."""
    return IncidentRiskEngine(clock=lambda: FIXED_NOW)


@pytest.fixture
def degrading_events():
    """60 events spanning the hour before FIXED_NOW, last 20 degraded."""
    return make_degrading_telemetry(end=FIXED_NOW)


@pytest.fixture
def trained_engine(engine, degrading_events):
    """Engine that has ingested, bucketed and trained on the degrading scenario."""
    engine.ingest(degrading_events)
    engine.run_etl(bucket_minutes=10, lookback_hours=168)
    engine.train(horizon_hours=2, incident_threshold=0.2, learning_rate=0.1, epochs=80)
    return engine


@pytest.fixture
def shared_engine():
    """The process-wide engine used by the API, reset around each test."""
    shared = get_risk_engine()
    shared.reset()
    yield shared
    shared.reset()


@pytest.fixture
def client(shared_engine):
    """FastAPI test client for integration tests."""
    from incident_risk.main import app

    with TestClient(app) as c:
        yield c
