"""
Feature Builder: buckets raw telemetry into aggregated feature rows.

ETL Algorithm:
    1. Keep events whose timestamp is within ``lookback_hours`` of now
    2. Group by (service, route, floor(ts_ms / bucket_ms) * bucket_ms)
    3. Aggregate each group into one FeatureRow
    4. Sort rows by bucket_start ascending (stable)

Percentiles use the nearest-rank method: index ceil(p/100 * n) - 1,
clamped to [0, n - 1], over the sorted latencies of the bucket. Empty
buckets are never materialized, so every row has total_requests > 0.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import numpy as np
import structlog

from incident_risk.models.features import FeatureRow
from incident_risk.models.telemetry import TelemetryEvent

from .telemetry_buffer import ratio

logger = structlog.get_logger()

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MS_PER_MINUTE = 60_000


def to_epoch_ms(value: datetime) -> int:
    """Whole milliseconds since the Unix epoch for an aware datetime."""
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: int) -> datetime:
    return EPOCH + timedelta(milliseconds=value)


def nearest_rank_percentile(sorted_values: np.ndarray, p: float) -> float:
    """
    Nearest-rank percentile over ascending values.

    Args:
        sorted_values: Values sorted ascending
        p: Percentile in [0, 100]

    Returns:
        The selected value, or 0.0 for an empty input
    """
    n = len(sorted_values)
    if n == 0:
        return 0.0
    index = math.ceil((p / 100.0) * n) - 1
    index = max(0, min(index, n - 1))
    return float(sorted_values[index])


class FeatureBuilder:
    """
    Aggregates telemetry events into per-bucket FeatureRow objects.

    Example:
        >>> builder = FeatureBuilder()
        >>> rows = builder.build(events, bucket_minutes=5, lookback_hours=24)
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def build(
        self,
        events: Iterable[TelemetryEvent],
        bucket_minutes: int,
        lookback_hours: int,
        now: Optional[datetime] = None,
    ) -> list[FeatureRow]:
        """
        Build feature rows from the events inside the lookback window.

        Args:
            events: Raw telemetry events
            bucket_minutes: Bucket width in minutes
            lookback_hours: Only events at or after now - lookback_hours are used
            now: Reference time (defaults to the current UTC time)

        Returns:
            Feature rows sorted ascending by bucket_start
        """
        bucket_ms = bucket_minutes * MS_PER_MINUTE
        now = now or datetime.now(timezone.utc)
        min_timestamp = now - timedelta(hours=lookback_hours)

        groups: dict[tuple[str, str, int], list[TelemetryEvent]] = {}
        selected = 0
        for event in events:
            if event.timestamp < min_timestamp:
                continue
            selected += 1
            bucket_start_ms = (to_epoch_ms(event.timestamp) // bucket_ms) * bucket_ms
            groups.setdefault((event.service, event.route, bucket_start_ms), []).append(event)

        rows = [
            self._aggregate(service, route, from_epoch_ms(bucket_start_ms), group)
            for (service, route, bucket_start_ms), group in groups.items()
        ]
        rows.sort(key=lambda row: row.bucket_start)

        self.logger.info(
            "features_built",
            events_selected=selected,
            rows=len(rows),
            bucket_minutes=bucket_minutes,
            lookback_hours=lookback_hours,
        )
        return rows

    def _aggregate(
        self,
        service: str,
        route: str,
        bucket_start: datetime,
        group: list[TelemetryEvent],
    ) -> FeatureRow:
        count = len(group)
        latencies = np.sort(np.array([e.latency_ms for e in group], dtype=np.float64))
        errors = sum(1 for e in group if e.is_server_error)
        timeouts = sum(1 for e in group if e.timeout)

        return FeatureRow(
            service=service,
            route=route,
            bucket_start=bucket_start,
            error_rate=ratio(errors, count),
            p95_latency_ms=nearest_rank_percentile(latencies, 95),
            p99_latency_ms=nearest_rank_percentile(latencies, 99),
            avg_memory_mb=float(np.mean([e.memory_mb for e in group])),
            avg_cpu_pct=float(np.mean([e.cpu_pct for e in group])),
            retries_rate=float(np.mean([e.retries for e in group])),
            timeout_rate=ratio(timeouts, count),
            total_requests=count,
        )
