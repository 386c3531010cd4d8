"""
Unit Tests for the Live Update Scheduler

Jobs are invoked directly; only the lifecycle test starts the APScheduler
background thread.

Run with:
    python -m pytest tests/test_scheduler.py -v
"""

import unittest
from datetime import timedelta

from fleet_health.catalog_parser import CatalogParser
from fleet_health.catalog_store import CatalogStore
from fleet_health.classifier import HealthClassifier
from fleet_health.pipeline import HealthPipeline
from fleet_health.scheduler import REFRESH_JOB_ID, TICK_JOB_ID, LiveUpdateScheduler
from fleet_health.sources import ElementSetSource, StaticTextSource
from fleet_health.telemetry import StaticTelemetrySource


ISS_TEXT = (
    "ISS (ZARYA)\n"
    "1 25544U 98067A   23259.57580000  .00012022  00000-0  21844-3 0  9995\n"
    "2 25544  51.6416 220.9944 0004263 122.0101 312.2755 15.49541986415598\n"
)
DEB_TEXT = (
    "COSMOS 2251 DEB\n"
    "1 06251U 62025E   23259.25000000  .00008885  00000-0  12808-3 0  3981\n"
    "2 06251  58.0579  54.0425 0030035 139.1568 221.1854 14.84476164767361\n"
)


class HookedSource(ElementSetSource):
    """Runs a callback in the middle of a fetch to simulate a concurrent event."""

    def __init__(self, text, during_fetch):
        self.text = text
        self.during_fetch = during_fetch

    def fetch_group(self, group):
        self.during_fetch()
        return self.text


class TestLiveUpdateScheduler(unittest.TestCase):

    def setUp(self):
        self.store = CatalogStore()
        self.pipeline = HealthPipeline(HealthClassifier(), StaticTelemetrySource({}), max_workers=1)
        self.now = CatalogParser().parse(ISS_TEXT)[0].epoch + timedelta(minutes=1)

    def make(self, source, groups=("stations", "debris"), **kwargs):
        return LiveUpdateScheduler(self.store, self.pipeline, source=source, groups=groups, **kwargs)

    def test_refresh_publishes_catalog(self):
        """A refresh publishes the catalog and rebuilds search."""
        live = self.make(StaticTextSource({"stations": ISS_TEXT, "debris": DEB_TEXT}))
        snapshot = live.refresh_catalog()

        self.assertEqual(snapshot.version, 1)
        self.assertIs(self.store.snapshot(), snapshot)
        self.assertEqual([e.norad_id for e in snapshot.entries], [25544, 6251])
        self.assertEqual([e.norad_id for e in live.search("deb")], [6251])
        self.assertEqual(live.stats["refreshes"], 1)

    def test_partial_failure_still_publishes(self):
        """A failed group is recorded and the rest is published."""
        live = self.make(StaticTextSource({"stations": ISS_TEXT}))
        snapshot = live.refresh_catalog()

        self.assertEqual(len(snapshot), 1)
        self.assertEqual(snapshot.failed_groups, ("debris",))

    def test_all_groups_failing_keeps_previous_catalog(self):
        """If every group fails the old catalog stays."""
        self.store.replace(CatalogParser().parse(ISS_TEXT))
        live = self.make(StaticTextSource({}))

        self.assertIsNone(live.refresh_catalog())
        self.assertEqual(self.store.snapshot().version, 1)
        self.assertEqual(live.stats["failed_refreshes"], 1)

    def test_superseded_refresh_is_discarded(self):
        """A refresh overtaken by a newer one is dropped."""
        live = self.make(HookedSource(ISS_TEXT, self.store.begin_refresh), groups=["stations"])

        self.assertIsNone(live.refresh_catalog())
        self.assertEqual(self.store.snapshot().version, 0)
        self.assertEqual(live.stats["discarded_refreshes"], 1)

    def test_stop_discards_in_flight_refresh(self):
        """Stopping during a fetch drops its result."""
        live = self.make(None, groups=["stations"])
        live.source = HookedSource(ISS_TEXT, live.stop)

        self.assertIsNone(live.refresh_catalog())
        self.assertEqual(len(self.store.snapshot()), 0)
        self.assertEqual(len(live.search_index), 0)

    def test_refresh_after_stop_is_discarded(self):
        """A refresh job that starts after stop never publishes."""
        live = self.make(StaticTextSource({"stations": ISS_TEXT, "debris": DEB_TEXT}))
        live.stop()

        self.assertIsNone(live.refresh_catalog())
        self.assertEqual(self.store.snapshot().version, 0)
        self.assertEqual(live.stats["discarded_refreshes"], 1)

    def test_skipped_records_reported(self):
        """Malformed records dropped during a refresh are counted."""
        broken = "BROKEN\n1 XXXXXU\n2 XXXXX\n"
        live = self.make(StaticTextSource({"stations": broken + ISS_TEXT}), groups=["stations"])
        snapshot = live.refresh_catalog()

        self.assertEqual(len(snapshot), 1)
        self.assertEqual(snapshot.skipped_records, 1)
        self.assertEqual(live.stats["skipped_records"], 1)
        self.assertEqual(live.status()["skipped_records"], 1)

    def test_refresh_without_source(self):
        """Refresh is a no-op without a source."""
        self.assertIsNone(self.make(None).refresh_catalog())

    def test_tick_notifies_listeners(self):
        """Listeners get the report and a failing one is isolated."""
        self.store.replace(CatalogParser().parse(ISS_TEXT))
        live = self.make(None)
        received = []

        def broken_listener(report):
            raise RuntimeError("display went away")

        live.add_listener(broken_listener)
        live.add_listener(received.append)
        report = live.tick(self.now)

        self.assertEqual(received, [report])
        self.assertIs(live.last_report, report)
        self.assertEqual(report.catalog_version, 1)
        self.assertEqual(report.summary.critical, 1)
        self.assertEqual(live.stats["ticks"], 1)
        self.assertEqual(live.stats["last_tick"], self.now)

    def test_tick_keeps_old_snapshot_until_refresh(self):
        """Ticks use the old catalog until a refresh publishes."""
        self.store.replace(CatalogParser().parse(ISS_TEXT))
        live = self.make(StaticTextSource({"stations": ISS_TEXT, "debris": DEB_TEXT}))

        self.assertEqual(live.tick(self.now).summary.total, 1)
        live.refresh_catalog()
        self.assertEqual(live.tick(self.now).summary.total, 2)

    def test_search_limit(self):
        """Search honours an explicit limit."""
        live = self.make(StaticTextSource({"stations": ISS_TEXT, "debris": DEB_TEXT}))
        live.refresh_catalog()
        self.assertEqual(len(live.search("2", limit=1)), 1)

    def test_lifecycle(self):
        """Start schedules both jobs; stop shuts them down."""
        live = self.make(None, refresh_seconds=3600, tick_seconds=3600)
        live.start()
        try:
            self.assertTrue(live.running)
            status = live.status()
            self.assertTrue(status["running"])
            self.assertEqual({job["id"] for job in status["jobs"]}, {REFRESH_JOB_ID, TICK_JOB_ID})
        finally:
            live.stop()
        self.assertFalse(live.running)
        self.assertEqual(live.status()["jobs"], [])


if __name__ == "__main__":
    unittest.main()
