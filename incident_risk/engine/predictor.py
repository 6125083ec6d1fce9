"""
Predictor: standardizes feature rows and scores them with the model.

Every prediction carries its top contributing factors: the features with
the largest |weight[k] * standardized[k]|, in descending order, each
reported with its signed contribution.
"""

from typing import Iterable, Optional, Sequence

import numpy as np
import structlog

from incident_risk.models.enums import FEATURE_KEYS
from incident_risk.models.features import FeatureRow, PartialFeatureRow
from incident_risk.models.prediction import FactorContribution, PredictionResult

from .model import LogisticModel
from .scaler import Scaler, feature_matrix

logger = structlog.get_logger()

DEFAULT_TOP_FACTORS = 3


def latest_per_stream(
    rows: Iterable[FeatureRow],
    service: Optional[str] = None,
    route: Optional[str] = None,
) -> list[FeatureRow]:
    """
    Most recent row per (service, route), optionally filtered.

    Streams keep first-appearance order; on equal bucket_start the first
    row seen wins.
    """
    latest: dict[tuple[str, str], FeatureRow] = {}
    for row in rows:
        if service and row.service != service:
            continue
        if route and row.route != route:
            continue
        current = latest.get(row.stream_key)
        if current is None or row.bucket_start > current.bucket_start:
            latest[row.stream_key] = row
    return list(latest.values())


class Predictor:
    """
    Scores feature rows against the shared model and scaler.

    The predictor holds references, not copies: training or resetting the
    model is visible to the next prediction.

    Attributes:
        model: Logistic model providing weights and bias
        scaler: Scaler providing standardization statistics
        top_factor_count: Number of contributing factors to report
    """

    def __init__(
        self,
        model: LogisticModel,
        scaler: Scaler,
        top_factor_count: int = DEFAULT_TOP_FACTORS,
    ):
        self.model = model
        self.scaler = scaler
        self.top_factor_count = top_factor_count
        self.logger = structlog.get_logger()

    def predict(self, row: FeatureRow) -> PredictionResult:
        """Score one row and attribute the logit to its top features."""
        standardized = self.scaler.transform(row.feature_vector())
        contributions = self.model.contributions(standardized)

        ranked = sorted(
            zip(FEATURE_KEYS, contributions),
            key=lambda item: abs(item[1]),
            reverse=True,
        )
        top_factors = [
            FactorContribution(feature=key, contribution=float(value))
            for key, value in ranked[: self.top_factor_count]
        ]

        return PredictionResult(
            service=row.service,
            route=row.route,
            bucket_start=row.bucket_start,
            risk_score=self.model.score(standardized),
            top_factors=top_factors,
        )

    def predict_latest(
        self,
        rows: Iterable[FeatureRow],
        service: Optional[str] = None,
        route: Optional[str] = None,
    ) -> list[PredictionResult]:
        """Score the most recent row of every matching stream."""
        return [self.predict(row) for row in latest_per_stream(rows, service, route)]

    def predict_batch(self, items: Sequence[PartialFeatureRow]) -> list[PredictionResult]:
        """Score externally supplied rows; missing numeric features are 0."""
        self.logger.debug("batch_scoring", count=len(items))
        return [self.predict(item) for item in items]

    def score_rows(self, rows: Sequence[FeatureRow]) -> np.ndarray:
        """Risk scores for many rows, in input order."""
        standardized = self.scaler.transform(feature_matrix(rows))
        return np.array([self.model.score(z) for z in standardized], dtype=np.float64)
