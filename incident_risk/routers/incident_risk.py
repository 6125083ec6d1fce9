"""
Incident risk router: telemetry ingest, ETL, training, inference, alerts, backtest.

Request models carry the validated contract and accept snake_case or
camelCase keys, rejecting unknown ones; the engine does not
re-validate. Handlers are synchronous (run in the threadpool) and every
engine call goes through one module lock, since the engine itself holds
shared mutable state without internal synchronization.
"""

import threading
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from incident_risk.engine import IncidentRiskEngine, get_risk_engine
from incident_risk.models import PartialFeatureRow, TelemetryEvent, WireModel
from incident_risk.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

_engine_lock = threading.Lock()


class TelemetryIngestRequest(WireModel):
    """Batch of raw telemetry events."""

    events: list[TelemetryEvent] = Field(..., min_length=1)


class EtlRunRequest(WireModel):
    """Feature ETL parameters."""

    bucket_minutes: int = Field(default=5, ge=1, le=120, description="Bucket width (1-120 min)")
    lookback_hours: int = Field(default=24, ge=1, le=168, description="Lookback window (1-168 h)")


class TrainRequest(WireModel):
    """Model training parameters."""

    horizon_hours: int = Field(default=6, ge=1, le=48, description="Label horizon (1-48 h)")
    incident_threshold: float = Field(default=0.2, ge=0.01, le=1.0)
    learning_rate: float = Field(default=0.05, ge=0.0001, le=1.0)
    epochs: int = Field(default=100, ge=1, le=500)


class InferBatchRequest(WireModel):
    """Externally supplied feature rows to score."""

    items: list[PartialFeatureRow] = Field(..., min_length=1)


class AlertEvaluateRequest(WireModel):
    """Preventive alert threshold."""

    threshold: float = Field(default=0.8, ge=0.0, le=1.0)


class BacktestRequest(WireModel):
    """Backtest parameters (independent of the training parameters)."""

    horizon_hours: int = Field(default=6, ge=1, le=48)
    incident_threshold: float = Field(default=0.2, ge=0.01, le=1.0)
    top_k: int = Field(default=20, ge=1, le=1000)


@router.post("/telemetry", status_code=status.HTTP_202_ACCEPTED)
def ingest_telemetry(
    request: TelemetryIngestRequest,
    engine: IncidentRiskEngine = Depends(get_risk_engine),
):
    """Append raw telemetry events to the bounded buffer."""
    with _engine_lock:
        result = engine.ingest(request.events)
    return {"success": True, "data": result.model_dump(mode="json")}


@router.post("/etl/run")
def run_etl(
    request: Optional[EtlRunRequest] = None,
    engine: IncidentRiskEngine = Depends(get_risk_engine),
):
    """Rebuild the feature-row store from the telemetry buffer."""
    request = request or EtlRunRequest()
    logger.info("etl_request", bucket_minutes=request.bucket_minutes, lookback_hours=request.lookback_hours)

    with _engine_lock:
        result = engine.run_etl(
            bucket_minutes=request.bucket_minutes,
            lookback_hours=request.lookback_hours,
        )
    return {"success": True, "data": result.model_dump(mode="json")}


@router.post("/model/train")
def train_model(
    request: Optional[TrainRequest] = None,
    engine: IncidentRiskEngine = Depends(get_risk_engine),
):
    """
    Continue training the model on the labeled feature store.

    Training is warm-started from the current weights; use /reset to start fresh.
    """
    request = request or TrainRequest()
    logger.info("train_request", **request.model_dump())

    with _engine_lock:
        result = engine.train(
            horizon_hours=request.horizon_hours,
            incident_threshold=request.incident_threshold,
            learning_rate=request.learning_rate,
            epochs=request.epochs,
        )
    return {"success": True, "data": result.model_dump(mode="json")}


@router.get("/model")
def get_model_state(engine: IncidentRiskEngine = Depends(get_risk_engine)):
    """Return current weights, bias and scaler statistics."""
    with _engine_lock:
        state = engine.model_state()
    return {"success": True, "data": state.model_dump(mode="json")}


@router.post("/infer/batch")
def infer_batch(
    request: InferBatchRequest,
    engine: IncidentRiskEngine = Depends(get_risk_engine),
):
    """Score externally supplied rows; missing numeric features default to 0."""
    logger.info("infer_batch_request", count=len(request.items))
    with _engine_lock:
        predictions = engine.infer_batch(request.items)
    return {
        "success": True,
        "data": {"predictions": [p.model_dump(mode="json") for p in predictions]},
    }


@router.get("/infer/live")
def infer_live(
    service: Optional[str] = Query(default=None, description="Filter by service"),
    route: Optional[str] = Query(default=None, description="Filter by route"),
    engine: IncidentRiskEngine = Depends(get_risk_engine),
):
    """Score the latest bucket of every (service, route) stream."""
    with _engine_lock:
        predictions = engine.infer_latest(service=service, route=route)
    return {
        "success": True,
        "data": {"predictions": [p.model_dump(mode="json") for p in predictions]},
    }


@router.post("/alerts/evaluate")
def evaluate_alerts(
    request: Optional[AlertEvaluateRequest] = None,
    engine: IncidentRiskEngine = Depends(get_risk_engine),
):
    """Raise preventive alerts for latest predictions at or above the threshold."""
    request = request or AlertEvaluateRequest()
    with _engine_lock:
        alerts = engine.evaluate_alerts(request.threshold)
    return {
        "success": True,
        "data": {
            "alerts": [a.model_dump(mode="json") for a in alerts],
            "count": len(alerts),
        },
    }


@router.post("/backtest")
def run_backtest(
    request: Optional[BacktestRequest] = None,
    engine: IncidentRiskEngine = Depends(get_risk_engine),
):
    """Evaluate the current model: AUC, precision@K and incident recall."""
    request = request or BacktestRequest()
    logger.info("backtest_request", **request.model_dump())

    with _engine_lock:
        metrics = engine.backtest(
            horizon_hours=request.horizon_hours,
            incident_threshold=request.incident_threshold,
            top_k=request.top_k,
        )
    return {"success": True, "data": metrics.model_dump(mode="json")}


@router.get("/summary")
def get_summary(engine: IncidentRiskEngine = Depends(get_risk_engine)):
    """Telemetry buffer statistics and feature store size."""
    with _engine_lock:
        summary = engine.summary()
    return {"success": True, "data": summary.model_dump(mode="json")}


@router.post("/reset")
def reset_engine(engine: IncidentRiskEngine = Depends(get_risk_engine)):
    """Drop telemetry, features and learned weights."""
    logger.warning("engine_reset_requested")
    with _engine_lock:
        engine.reset()
    return {"success": True, "data": {"reset": True}}
