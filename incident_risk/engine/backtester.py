"""
Backtester: evaluates the current model on a rebuilt labeled set.

Metrics:
    auc: Pairwise rank statistic. Every (positive, negative) score pair
        earns 1 if the positive scores higher, 0.5 on a tie and 0
        otherwise; the credit is divided by |P| * |N|. 0 when either
        class is empty.
    precision_at_k: True positives among the k highest scores, over k,
        where k = min(top_k, n).
    recall_incidents: True positives among the top k over all positives
        (0 without positives).

The AUC compares every pair, O(|P| * |N|) in time and memory. A
rank-sum formulation gives the same value in O(n log n) if backtest sets
grow large.
"""

from typing import Sequence

import numpy as np
import structlog

from incident_risk.models.features import TrainingRow
from incident_risk.models.prediction import BacktestMetrics

from .predictor import Predictor
from .telemetry_buffer import ratio

logger = structlog.get_logger()


def pairwise_auc(scores: np.ndarray, labels: np.ndarray) -> float:
    """
    Pairwise-comparison AUC.

    Args:
        scores: Risk score per row
        labels: 0/1 label per row

    Returns:
        AUC in [0, 1], or 0.0 if either class is missing
    """
    positives = scores[labels == 1]
    negatives = scores[labels == 0]
    if positives.size == 0 or negatives.size == 0:
        return 0.0

    diff = positives[:, None] - negatives[None, :]
    credit = np.count_nonzero(diff > 0) + 0.5 * np.count_nonzero(diff == 0)
    return float(credit / (positives.size * negatives.size))


class Backtester:
    """
    Scores labeled rows with the current model and computes quality metrics.

    Example:
        >>> backtester = Backtester(predictor)
        >>> metrics = backtester.evaluate(training_rows, top_k=20)
        >>> metrics.auc
    """

    def __init__(self, predictor: Predictor):
        self.predictor = predictor
        self.logger = structlog.get_logger()

    def evaluate(self, rows: Sequence[TrainingRow], top_k: int) -> BacktestMetrics:
        """
        Args:
            rows: Labeled rows to evaluate
            top_k: Number of highest-risk rows considered for precision/recall

        Returns:
            BacktestMetrics; all zeros with support 0 for an empty input
        """
        if not rows:
            self.logger.info("backtest_empty")
            return BacktestMetrics()

        scores = self.predictor.score_rows(rows)
        labels = np.array([row.label for row in rows], dtype=np.int64)

        auc = pairwise_auc(scores, labels)

        order = np.argsort(-scores, kind="stable")
        k = min(top_k, len(rows))
        true_positives = int(labels[order[:k]].sum())
        total_positives = int(labels.sum())

        metrics = BacktestMetrics(
            auc=auc,
            precision_at_k=ratio(true_positives, k),
            recall_incidents=ratio(true_positives, total_positives),
            support=len(rows),
        )

        self.logger.info(
            "backtest_completed",
            support=metrics.support,
            positives=total_positives,
            auc=round(metrics.auc, 4),
            precision_at_k=round(metrics.precision_at_k, 4),
            recall_incidents=round(metrics.recall_incidents, 4),
            top_k=top_k,
        )
        return metrics
