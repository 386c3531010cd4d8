"""
Telemetry sources.

The classifier only sees ``Telemetry`` values, so any feed that implements
``TelemetrySource.fetch_telemetry`` can replace the mock generator without
touching classification.

``MockTelemetrySource`` stands in for ground-station contact. It observes
each object at its own predicted position and perturbs the result:

- about 5% of objects report no telemetry at all
- positional noise of 0.1 deg (0.5 deg for debris), altitude noise x10 in km
- 2% of observations carry a 5x deviation
- 5% of observations are stale, 15 to 120 minutes old
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Mapping, Optional

import numpy as np

from fleet_health.models import (
    CatalogEntry,
    GeodeticPosition,
    PropagationFailure,
    Telemetry,
    ensure_utc,
)
from fleet_health.propagation import PropagationAdapter

logger = logging.getLogger(__name__)


class TelemetrySource:
    """Capability interface: the latest observation for one object."""

    def fetch_telemetry(self, entry: CatalogEntry, now: datetime) -> Optional[Telemetry]:
        """Return telemetry, or None when the object has not been observed."""
        raise NotImplementedError


class StaticTelemetrySource(TelemetrySource):
    """Serves fixed observations keyed by catalog number."""

    def __init__(self, observations: Mapping[int, Optional[Telemetry]]):
        self.observations = dict(observations)

    def fetch_telemetry(self, entry: CatalogEntry, now: datetime) -> Optional[Telemetry]:
        return self.observations.get(entry.norad_id)


def _wrap_longitude(lon: float) -> float:
    wrapped = (lon + 180.0) % 360.0 - 180.0
    # keep +180 rather than folding it to -180
    return 180.0 if wrapped == -180.0 and lon > 0 else wrapped


class MockTelemetrySource(TelemetrySource):
    """Fixture generator producing plausible, occasionally degraded telemetry."""

    def __init__(self, adapter: Optional[PropagationAdapter] = None, seed: Optional[int] = None,
                 availability: float = 0.95, issue_rate: float = 0.02,
                 issue_multiplier: float = 5.0, stale_rate: float = 0.05,
                 add_noise: bool = True):
        """
        Args:
            adapter: Propagation adapter used to place the observation
            seed: Seed for reproducible fixtures
            availability: Probability that an object reports anything
            issue_rate: Probability of an amplified deviation
            issue_multiplier: Noise amplification for those observations
            stale_rate: Probability that the observation is 15-120 min old
            add_noise: Disable to observe exactly the predicted position
        """
        self.adapter = adapter if adapter is not None else PropagationAdapter()
        self.rng = np.random.default_rng(seed)
        self.availability = availability
        self.issue_rate = issue_rate
        self.issue_multiplier = issue_multiplier
        self.stale_rate = stale_rate
        self.add_noise = add_noise
        self._lock = threading.Lock()

    def fetch_telemetry(self, entry: CatalogEntry, now: datetime) -> Optional[Telemetry]:
        now = ensure_utc(now)
        predicted = self.adapter.propagate(entry, now)
        if isinstance(predicted, PropagationFailure):
            return None

        # numpy generators are not thread-safe
        with self._lock:
            available, issue, stale, stale_frac = self.rng.random(4)
            noise = self.rng.random(3) - 0.5

        if available >= self.availability:
            return None

        scale = 0.5 if entry.is_debris else 0.1
        multiplier = self.issue_multiplier if issue < self.issue_rate else 1.0
        if not self.add_noise:
            noise = np.zeros(3)

        lat = predicted.lat + noise[0] * scale * multiplier
        lon = predicted.lon + noise[1] * scale * multiplier
        alt = predicted.alt_km + noise[2] * scale * 10.0 * multiplier

        timestamp = now
        if stale < self.stale_rate:
            timestamp = now - timedelta(minutes=15.0 + stale_frac * 105.0)

        return Telemetry(
            position=GeodeticPosition(
                lat=float(np.clip(lat, -90.0, 90.0)),
                lon=_wrap_longitude(float(lon)),
                alt_km=float(alt),
            ),
            timestamp=timestamp,
            last_contact=timestamp,
        )
