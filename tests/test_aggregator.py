"""
Unit Tests for the Fleet Aggregator

Run with:
    python -m pytest tests/test_aggregator.py -v
"""

import unittest
from datetime import datetime, timedelta, timezone

from fleet_health.aggregator import FleetAggregator, composition, reasons, summarize
from fleet_health.models import (
    FleetHealthSummary,
    GeodeticPosition,
    HealthReason,
    HealthStatus,
    OrbitClass,
    SatelliteHealth,
)


T0 = datetime(2024, 3, 1, tzinfo=timezone.utc)

_REASON = {
    HealthStatus.HEALTHY: HealthReason.OK,
    HealthStatus.WARNING: HealthReason.DEVIATION_WARNING,
    HealthStatus.CRITICAL: HealthReason.NO_TELEMETRY,
}


def result(status, orbit_class=OrbitClass.LEO, norad_id=1):
    return SatelliteHealth(
        norad_id=norad_id,
        name=f"SAT-{norad_id}",
        status=status,
        reason=_REASON[status],
        orbit_class=orbit_class,
        predicted=GeodeticPosition(lat=0.0, lon=0.0, alt_km=500.0),
    )


class TestSummarize(unittest.TestCase):

    def test_counts(self):
        """Per-status counts add up to the total."""
        batch = [result(HealthStatus.HEALTHY)] * 7 + [result(HealthStatus.WARNING)] * 2 \
            + [result(HealthStatus.CRITICAL)]
        summary = summarize(batch)

        self.assertEqual(summary.total, 10)
        self.assertEqual((summary.healthy, summary.warning, summary.critical), (7, 2, 1))
        self.assertEqual(summary.healthy + summary.warning + summary.critical, summary.total)
        self.assertAlmostEqual(summary.health_percent, 70.0)

    def test_empty_batch(self):
        """An empty batch is all zeros with a 0% healthy share."""
        self.assertEqual(summarize([]), FleetHealthSummary())
        self.assertEqual(summarize([]).health_percent, 0.0)

    def test_all_healthy(self):
        """An all-healthy batch is 100%."""
        self.assertEqual(summarize([result(HealthStatus.HEALTHY)] * 3).health_percent, 100.0)

    def test_composition_and_reasons(self):
        """Orbit-class and reason breakdowns."""
        batch = [
            result(HealthStatus.HEALTHY, OrbitClass.LEO),
            result(HealthStatus.HEALTHY, OrbitClass.LEO),
            result(HealthStatus.WARNING, OrbitClass.GEO),
            result(HealthStatus.CRITICAL, OrbitClass.DEBRIS),
        ]
        self.assertEqual(composition(batch), {"LEO": 2, "GEO": 1, "Debris": 1})
        self.assertEqual(reasons(batch), {"ok": 2, "deviation_warning": 1, "no_telemetry": 1})


class TestHistory(unittest.TestCase):

    def test_record_order_and_eviction(self):
        """Once full, the oldest sample is evicted first."""
        aggregator = FleetAggregator(capacity=3)
        for i in range(5):
            aggregator.record(FleetHealthSummary(total=10, healthy=i, health_percent=10.0 * i),
                              T0 + timedelta(seconds=i))

        history = aggregator.history()
        self.assertEqual(len(aggregator), 3)
        self.assertEqual([s.value for s in history], [20.0, 30.0, 40.0])
        self.assertEqual(history[-1].timestamp, T0 + timedelta(seconds=4))

    def test_default_capacity(self):
        """History holds at most 50 samples by default."""
        aggregator = FleetAggregator()
        for _ in range(60):
            aggregator.aggregate([result(HealthStatus.HEALTHY)], T0)
        self.assertEqual(len(aggregator), 50)

    def test_empty_batch_not_recorded(self):
        """An empty batch leaves the history untouched."""
        aggregator = FleetAggregator()
        summary, sample = aggregator.aggregate([], T0)

        self.assertEqual(summary.total, 0)
        self.assertIsNone(sample)
        self.assertEqual(len(aggregator), 0)

    def test_aggregate_records_sample(self):
        """Aggregate returns the summary and the recorded sample."""
        aggregator = FleetAggregator()
        summary, sample = aggregator.aggregate(
            [result(HealthStatus.HEALTHY), result(HealthStatus.CRITICAL)], T0)

        self.assertEqual(summary.health_percent, 50.0)
        self.assertEqual(sample.value, 50.0)
        self.assertEqual(sample.timestamp, T0)
        self.assertEqual(aggregator.history(), (sample,))

    def test_history_is_a_copy(self):
        """A returned history does not change with later samples."""
        aggregator = FleetAggregator()
        aggregator.aggregate([result(HealthStatus.HEALTHY)], T0)
        before = aggregator.history()
        aggregator.aggregate([result(HealthStatus.WARNING)], T0)
        self.assertEqual(len(before), 1)

    def test_clear(self):
        """Clear empties the history."""
        aggregator = FleetAggregator()
        aggregator.aggregate([result(HealthStatus.HEALTHY)], T0)
        aggregator.clear()
        self.assertEqual(aggregator.history(), ())

    def test_invalid_capacity(self):
        """A non-positive capacity is rejected."""
        with self.assertRaises(ValueError):
            FleetAggregator(capacity=0)


if __name__ == "__main__":
    unittest.main()
