"""
Label Builder: forward-looking incident labels for feature rows.

A row at time t is labeled 1 when any *later* row of the same
(service, route) stream, with bucket_start - t <= horizon, is incident-like
(error_rate or timeout_rate at or above the incident threshold).

Per stream the scan is a bounded window over sorted bucket times: the
window end comes from a binary search and the incident count inside the
window from a prefix sum, so labeling is O(n log n). A row never reads its
own bucket or earlier ones. Rows near the end of a stream keep whatever
future data exists and are not dropped.
"""

from bisect import bisect_right
from itertools import accumulate
from typing import Iterable

import structlog

from incident_risk.models.features import FeatureRow, TrainingRow

from .feature_builder import to_epoch_ms

logger = structlog.get_logger()

MS_PER_HOUR = 3_600_000


def is_incident_like(row: FeatureRow, incident_threshold: float) -> bool:
    return row.error_rate >= incident_threshold or row.timeout_rate >= incident_threshold


def group_streams(rows: Iterable[FeatureRow]) -> dict[tuple[str, str], list[FeatureRow]]:
    """Group rows by (service, route) in first-appearance order, each stream sorted by time."""
    streams: dict[tuple[str, str], list[FeatureRow]] = {}
    for row in rows:
        streams.setdefault(row.stream_key, []).append(row)
    for stream in streams.values():
        stream.sort(key=lambda r: r.bucket_start)
    return streams


class LabelBuilder:
    """
    Derives binary incident labels by scanning forward within a horizon.

    Example:
        >>> labeler = LabelBuilder()
        >>> training = labeler.build(feature_rows, horizon_hours=6, incident_threshold=0.2)
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def build(
        self,
        rows: Iterable[FeatureRow],
        horizon_hours: float,
        incident_threshold: float,
    ) -> list[TrainingRow]:
        """
        Label every feature row.

        Args:
            rows: Feature rows (any order; grouped and sorted per stream here)
            horizon_hours: Forward window in hours
            incident_threshold: error_rate / timeout_rate level counted as an incident

        Returns:
            Training rows grouped by stream, ascending by bucket_start within each
        """
        horizon_ms = horizon_hours * MS_PER_HOUR
        labeled: list[TrainingRow] = []

        for stream in group_streams(rows).values():
            times = [to_epoch_ms(row.bucket_start) for row in stream]
            flags = [1 if is_incident_like(row, incident_threshold) else 0 for row in stream]
            # incidents_before[k] == number of incident-like rows in stream[:k]
            incidents_before = [0, *accumulate(flags)]

            for i, row in enumerate(stream):
                window_end = bisect_right(times, times[i] + horizon_ms)
                ahead = incidents_before[window_end] - incidents_before[i + 1]
                labeled.append(
                    TrainingRow(**row.model_dump(), label=1 if ahead > 0 else 0)
                )

        self.logger.debug(
            "labels_built",
            rows=len(labeled),
            positives=sum(r.label for r in labeled),
            horizon_hours=horizon_hours,
            incident_threshold=incident_threshold,
        )
        return labeled
