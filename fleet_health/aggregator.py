"""
Fleet Aggregator

Reduces a batch of per-object health results to fleet totals and keeps a
bounded history of the healthy percentage for trend reporting.
"""

import logging
import threading
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from config import HISTORY_CAPACITY
from fleet_health.models import (
    FleetHealthSummary,
    HealthStatus,
    HistorySample,
    SatelliteHealth,
    ensure_utc,
)

logger = logging.getLogger(__name__)


def summarize(results: Iterable[SatelliteHealth]) -> FleetHealthSummary:
    """Count results per status; the healthy share is 0 for an empty batch."""
    counts = Counter(r.status for r in results)
    healthy = counts[HealthStatus.HEALTHY]
    warning = counts[HealthStatus.WARNING]
    critical = counts[HealthStatus.CRITICAL]
    total = healthy + warning + critical

    return FleetHealthSummary(
        total=total,
        healthy=healthy,
        warning=warning,
        critical=critical,
        health_percent=(100.0 * healthy / total) if total > 0 else 0.0,
    )


def composition(results: Iterable[SatelliteHealth]) -> Dict[str, int]:
    """Number of results per orbit class."""
    return dict(Counter(r.orbit_class.value for r in results))


def reasons(results: Iterable[SatelliteHealth]) -> Dict[str, int]:
    """Number of results per reason code."""
    return dict(Counter(r.reason.value for r in results))


class FleetAggregator:
    """
    Fleet summaries plus a fixed-capacity history ring.

    Appends are O(1); once the ring is full the oldest sample is evicted.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._history = deque(maxlen=capacity)
        self._lock = threading.Lock()

    summarize = staticmethod(summarize)
    composition = staticmethod(composition)
    reasons = staticmethod(reasons)

    def record(self, summary: FleetHealthSummary,
               now: Optional[datetime] = None) -> HistorySample:
        sample = HistorySample(
            timestamp=ensure_utc(now) if now is not None else datetime.now(timezone.utc),
            value=summary.health_percent,
        )
        with self._lock:
            self._history.append(sample)
        return sample

    def aggregate(self, results: List[SatelliteHealth],
                  now: Optional[datetime] = None) -> Tuple[FleetHealthSummary, Optional[HistorySample]]:
        """
        Summarize one cycle and append it to the history.

        An empty batch is summarized but not recorded, so a catalog that has
        not loaded yet does not drag the trend to zero.
        """
        summary = summarize(results)
        if summary.total == 0:
            logger.debug("Empty health batch, history unchanged")
            return summary, None
        return summary, self.record(summary, now)

    def history(self) -> Tuple[HistorySample, ...]:
        with self._lock:
            return tuple(self._history)

    def clear(self) -> None:
        with self._lock:
            self._history.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)
