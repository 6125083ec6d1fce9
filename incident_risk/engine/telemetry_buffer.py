"""
Telemetry Buffer: bounded append-only store of raw events.

Holds at most ``capacity`` events. When an ingest pushes the total past
the capacity, the oldest events are evicted first.
"""

from collections import deque
from typing import Iterable

import structlog

from incident_risk.models.telemetry import IngestResult, TelemetryEvent, TelemetrySummary

logger = structlog.get_logger()

DEFAULT_CAPACITY = 20_000


def ratio(numerator: float, denominator: float) -> float:
    """Division that yields 0.0 for a zero denominator."""
    if not denominator:
        return 0.0
    return numerator / denominator


class TelemetryBuffer:
    """
    FIFO-bounded store of TelemetryEvent objects.

    Attributes:
        capacity: Maximum number of retained events

    Example:
        >>> buffer = TelemetryBuffer(capacity=3)
        >>> buffer.ingest(events[:5]).retained
        3
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._events: deque[TelemetryEvent] = deque(maxlen=capacity)
        self.logger = structlog.get_logger()

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> list[TelemetryEvent]:
        """Retained events, oldest first."""
        return list(self._events)

    def ingest(self, events: Iterable[TelemetryEvent]) -> IngestResult:
        """
        Append events, evicting the oldest once capacity is exceeded.

        Args:
            events: Events to append, in arrival order

        Returns:
            IngestResult with the number received and the number retained
        """
        before = len(self._events)
        received = 0
        for event in events:
            self._events.append(event)
            received += 1

        evicted = max(0, before + received - self.capacity)
        if evicted:
            self.logger.info(
                "telemetry_evicted",
                evicted=evicted,
                capacity=self.capacity,
            )
        return IngestResult(ingested=received, retained=len(self._events))

    def summarize(self) -> TelemetrySummary:
        """Total count plus server-error and timeout ratios over the buffer."""
        total = len(self._events)
        errors = sum(1 for event in self._events if event.is_server_error)
        timeouts = sum(1 for event in self._events if event.timeout)
        return TelemetrySummary(
            total=total,
            error_rate=ratio(errors, total),
            timeout_rate=ratio(timeouts, total),
        )

    def clear(self) -> None:
        self._events.clear()
