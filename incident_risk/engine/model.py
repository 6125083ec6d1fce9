"""
Logistic Model: single weight vector + bias trained by per-sample SGD.

Training is warm-started: weights and bias persist between ``fit`` calls
and every call continues gradient descent from the current values. Only
``reset`` returns the model to all zeros.

Update rule per sample (standardized features z, label y):
    pred  = sigmoid(bias + w . z)
    error = pred - y
    w    -= learning_rate * error * z
    bias -= learning_rate * error

Samples are visited in the order given, every epoch, without shuffling,
so training is deterministic for deterministic input.
"""

import math

import numpy as np
import structlog

from incident_risk.models.enums import FEATURE_KEYS, FeatureKey

logger = structlog.get_logger()


def sigmoid(value: float) -> float:
    """Logistic function evaluated without overflow for large |value|."""
    if value >= 0:
        return 1.0 / (1.0 + math.exp(-value))
    exp_value = math.exp(value)
    return exp_value / (1.0 + exp_value)


class LogisticModel:
    """
    Online logistic regression over the eight engine features.

    Attributes:
        weights: Weight per feature in FeatureKey order
        bias: Intercept term

    Example:
        >>> model = LogisticModel()
        >>> model.score(np.zeros(8))
        0.5
    """

    def __init__(self):
        self.weights = np.zeros(len(FEATURE_KEYS), dtype=np.float64)
        self.bias = 0.0
        self.logger = structlog.get_logger()

    def logit(self, standardized: np.ndarray) -> float:
        return self.bias + float(np.dot(self.weights, standardized))

    def score(self, standardized: np.ndarray) -> float:
        """Risk probability for one standardized vector."""
        return sigmoid(self.logit(standardized))

    def contributions(self, standardized: np.ndarray) -> np.ndarray:
        """Per-feature signed contribution weight[k] * standardized[k]."""
        return self.weights * standardized

    def fit(
        self,
        standardized_rows: np.ndarray,
        labels: np.ndarray,
        learning_rate: float,
        epochs: int,
    ) -> None:
        """
        Run stochastic gradient descent, continuing from the current weights.

        Args:
            standardized_rows: (n_rows, n_features) standardized matrix
            labels: 0/1 label per row
            learning_rate: Step size
            epochs: Passes over the rows
        """
        for _ in range(epochs):
            for z, label in zip(standardized_rows, labels):
                error = self.score(z) - float(label)
                self.weights -= learning_rate * error * z
                self.bias -= learning_rate * error

        self.logger.debug(
            "sgd_completed",
            rows=len(standardized_rows),
            epochs=epochs,
            learning_rate=learning_rate,
            bias=self.bias,
        )

    def reset(self) -> None:
        self.weights = np.zeros(len(FEATURE_KEYS), dtype=np.float64)
        self.bias = 0.0

    def weights_by_feature(self) -> dict[FeatureKey, float]:
        return {key: float(w) for key, w in zip(FEATURE_KEYS, self.weights)}
