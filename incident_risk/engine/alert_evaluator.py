"""
Alert Evaluator: preventive incident-risk alerts.

Scores the latest bucket of every stream and raises a
``preventive_incident_risk`` alert for each score at or above the
threshold.
"""

from typing import Iterable

import structlog

from incident_risk.models.features import FeatureRow
from incident_risk.models.prediction import PreventiveAlert

from .predictor import Predictor

logger = structlog.get_logger()


class AlertEvaluator:
    """
    Filters latest-bucket predictions against a risk threshold.

    Example:
        >>> evaluator = AlertEvaluator(predictor)
        >>> alerts = evaluator.evaluate(feature_rows, threshold=0.8)
    """

    def __init__(self, predictor: Predictor):
        self.predictor = predictor
        self.logger = structlog.get_logger()

    def evaluate(self, rows: Iterable[FeatureRow], threshold: float) -> list[PreventiveAlert]:
        """
        Args:
            rows: Current feature-row store
            threshold: Minimum risk score that raises an alert

        Returns:
            One alert per stream whose latest risk score >= threshold
        """
        predictions = self.predictor.predict_latest(rows)
        alerts = [
            PreventiveAlert(**prediction.model_dump())
            for prediction in predictions
            if prediction.risk_score >= threshold
        ]

        self.logger.info(
            "alerts_evaluated",
            streams=len(predictions),
            alerts_triggered=len(alerts),
            threshold=threshold,
        )
        for alert in alerts:
            self.logger.warning(
                "preventive_incident_risk",
                service=alert.service,
                route=alert.route,
                risk_score=round(alert.risk_score, 4),
                top_factor=alert.top_factors[0].feature.value if alert.top_factors else None,
            )
        return alerts
