"""
Unit Tests for Telemetry Sources

Run with:
    python -m pytest tests/test_telemetry.py -v
"""

import unittest
from datetime import timedelta

from fleet_health.catalog_parser import CatalogParser
from fleet_health.models import GeodeticPosition, PropagationFailure, PropagationFailureKind, Telemetry
from fleet_health.propagation import PropagationAdapter
from fleet_health.telemetry import MockTelemetrySource, StaticTelemetrySource, _wrap_longitude


ISS_TEXT = (
    "ISS (ZARYA)\n"
    "1 25544U 98067A   23259.57580000  .00012022  00000-0  21844-3 0  9995\n"
    "2 25544  51.6416 220.9944 0004263 122.0101 312.2755 15.49541986415598\n"
)


class FailingAdapter(PropagationAdapter):
    def propagate(self, entry, timestamp):
        return PropagationFailure(norad_id=entry.norad_id, kind=PropagationFailureKind.NO_POSITION)


class TestMockTelemetry(unittest.TestCase):

    def setUp(self):
        self.iss = CatalogParser().parse(ISS_TEXT)[0]
        self.now = self.iss.epoch + timedelta(minutes=10)
        self.adapter = PropagationAdapter()

    def test_seed_reproducibility(self):
        """Same seed, same observations."""
        first = MockTelemetrySource(self.adapter, seed=42)
        second = MockTelemetrySource(self.adapter, seed=42)
        for _ in range(10):
            self.assertEqual(first.fetch_telemetry(self.iss, self.now),
                             second.fetch_telemetry(self.iss, self.now))

    def test_exact_observation_without_noise(self):
        """Without noise the observation is the prediction."""
        source = MockTelemetrySource(self.adapter, seed=1, availability=1.0, stale_rate=0.0,
                                     add_noise=False)
        telemetry = source.fetch_telemetry(self.iss, self.now)

        self.assertEqual(telemetry.timestamp, self.now)
        self.assertEqual(telemetry.last_contact, self.now)
        predicted = self.adapter.propagate(self.iss, self.now)
        self.assertAlmostEqual(telemetry.position.lat, predicted.lat, places=9)
        self.assertAlmostEqual(telemetry.position.alt_km, predicted.alt_km, places=9)

    def test_noise_is_bounded(self):
        """Noise stays within the non-debris scale."""
        source = MockTelemetrySource(self.adapter, seed=7, availability=1.0, issue_rate=0.0,
                                     stale_rate=0.0)
        predicted = self.adapter.propagate(self.iss, self.now)
        for _ in range(20):
            telemetry = source.fetch_telemetry(self.iss, self.now)
            self.assertLessEqual(abs(telemetry.position.lat - predicted.lat), 0.05 + 1e-9)
            self.assertLessEqual(abs(telemetry.position.alt_km - predicted.alt_km), 0.5 + 1e-9)

    def test_unavailable(self):
        """Zero availability never reports."""
        source = MockTelemetrySource(self.adapter, seed=3, availability=0.0)
        for _ in range(5):
            self.assertIsNone(source.fetch_telemetry(self.iss, self.now))

    def test_stale_observations(self):
        """Stale observations are 15 to 120 minutes old."""
        source = MockTelemetrySource(self.adapter, seed=5, availability=1.0, stale_rate=1.0)
        for _ in range(10):
            telemetry = source.fetch_telemetry(self.iss, self.now)
            age = (self.now - telemetry.timestamp).total_seconds()
            self.assertGreaterEqual(age, 15 * 60)
            self.assertLessEqual(age, 120 * 60)

    def test_propagation_failure_gives_no_telemetry(self):
        """No prediction, no observation."""
        source = MockTelemetrySource(FailingAdapter(), seed=1, availability=1.0)
        self.assertIsNone(source.fetch_telemetry(self.iss, self.now))


class TestStaticTelemetry(unittest.TestCase):

    def test_lookup_by_catalog_number(self):
        """Static observations are served by catalog number."""
        iss = CatalogParser().parse(ISS_TEXT)[0]
        observation = Telemetry(position=GeodeticPosition(lat=1.0, lon=2.0, alt_km=400.0),
                                timestamp=iss.epoch)
        source = StaticTelemetrySource({25544: observation})

        self.assertIs(source.fetch_telemetry(iss, iss.epoch), observation)
        self.assertIsNone(StaticTelemetrySource({}).fetch_telemetry(iss, iss.epoch))


class TestLongitudeWrap(unittest.TestCase):

    def test_wrap(self):
        """Longitudes wrap into [-180, 180]."""
        self.assertAlmostEqual(_wrap_longitude(181.0), -179.0)
        self.assertAlmostEqual(_wrap_longitude(-181.0), 179.0)
        self.assertEqual(_wrap_longitude(180.0), 180.0)
        self.assertEqual(_wrap_longitude(-180.0), -180.0)
        self.assertEqual(_wrap_longitude(45.0), 45.0)


if __name__ == "__main__":
    unittest.main()
