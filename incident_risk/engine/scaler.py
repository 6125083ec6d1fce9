"""
Scaler: per-feature standardization statistics.

Mean and population standard deviation are fitted on the current training
set; a standard deviation below ``epsilon`` is replaced by 1.0 so constant
features standardize to 0 instead of dividing by zero.
"""

from typing import Sequence

import numpy as np
import structlog

from incident_risk.models.enums import FEATURE_KEYS, FeatureKey
from incident_risk.models.features import FeatureRow

logger = structlog.get_logger()

DEFAULT_STD_EPSILON = 1e-9


def feature_matrix(rows: Sequence[FeatureRow]) -> np.ndarray:
    """Stack feature vectors into an (n_rows, n_features) matrix."""
    if not rows:
        return np.empty((0, len(FEATURE_KEYS)), dtype=np.float64)
    return np.vstack([row.feature_vector() for row in rows])


class Scaler:
    """
    Standardizes feature vectors as (x - mean) / std.

    Defaults (mean 0, std 1) make standardization the identity.

    Attributes:
        mean: Per-feature means in FeatureKey order
        std: Per-feature standard deviations in FeatureKey order
        epsilon: Floor below which a std is treated as zero
    """

    def __init__(self, epsilon: float = DEFAULT_STD_EPSILON):
        self.epsilon = epsilon
        self.mean = np.zeros(len(FEATURE_KEYS), dtype=np.float64)
        self.std = np.ones(len(FEATURE_KEYS), dtype=np.float64)

    def fit(self, rows: Sequence[FeatureRow]) -> "Scaler":
        """Overwrite mean/std with statistics of ``rows``. Empty input is ignored."""
        matrix = feature_matrix(rows)
        if matrix.shape[0] == 0:
            return self
        self.mean = matrix.mean(axis=0)
        std = matrix.std(axis=0)
        self.std = np.where(std < self.epsilon, 1.0, std)
        logger.debug("scaler_fitted", rows=matrix.shape[0])
        return self

    def transform(self, values: np.ndarray) -> np.ndarray:
        """Standardize a single vector or a row-wise matrix."""
        return (values - self.mean) / self.std

    def reset(self) -> None:
        self.mean = np.zeros(len(FEATURE_KEYS), dtype=np.float64)
        self.std = np.ones(len(FEATURE_KEYS), dtype=np.float64)

    def means_by_feature(self) -> dict[FeatureKey, float]:
        return {key: float(v) for key, v in zip(FEATURE_KEYS, self.mean)}

    def stds_by_feature(self) -> dict[FeatureKey, float]:
        return {key: float(v) for key, v in zip(FEATURE_KEYS, self.std)}
