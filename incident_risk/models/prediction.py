"""
Prediction, alert, training and evaluation models.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import AlertType, FeatureKey
from .telemetry import TelemetrySummary


class FactorContribution(BaseModel):
    """Signed contribution weight[k] * standardized[k] of one feature to the logit."""

    feature: FeatureKey
    contribution: float


class PredictionResult(BaseModel):
    """
    Risk prediction for one feature row.

    Attributes:
        service: Service identifier
        route: Route identifier
        bucket_start: Bucket the prediction refers to
        risk_score: Probability the bucket precedes an incident within the horizon
        top_factors: Features with the largest absolute contribution, descending
    """

    service: str
    route: str
    bucket_start: datetime
    risk_score: float = Field(ge=0.0, le=1.0)
    top_factors: list[FactorContribution] = Field(default_factory=list)


class PreventiveAlert(PredictionResult):
    """A latest-bucket prediction whose risk score reached the alert threshold."""

    alert: AlertType = AlertType.PREVENTIVE_INCIDENT_RISK


class TrainResult(BaseModel):
    """Outcome of a training call."""

    trained_rows: int = Field(ge=0)
    positives: int = Field(ge=0)


class BacktestMetrics(BaseModel):
    """
    Model quality over a rebuilt labeled set.

    Attributes:
        auc: Pairwise-rank estimate of the ROC AUC (0 when a class is missing)
        precision_at_k: True positives among the top-k scores divided by k
        recall_incidents: True positives among the top-k divided by all positives
        support: Number of labeled rows evaluated
    """

    auc: float = Field(default=0.0, ge=0.0, le=1.0)
    precision_at_k: float = Field(default=0.0, ge=0.0, le=1.0)
    recall_incidents: float = Field(default=0.0, ge=0.0, le=1.0)
    support: int = Field(default=0, ge=0)


class ModelState(BaseModel):
    """Snapshot of the learned weights, bias and scaler statistics."""

    weights: dict[FeatureKey, float]
    bias: float
    means: dict[FeatureKey, float]
    stds: dict[FeatureKey, float]


class EngineSummary(BaseModel):
    """Buffer statistics plus the size of the current feature-row store."""

    telemetry: TelemetrySummary
    feature_rows: int = Field(ge=0)
