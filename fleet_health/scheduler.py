"""
Live Update Scheduler

Drives two independent periodic jobs on an APScheduler background
scheduler:

- catalog refresh (infrequent): fetch every group, parse, publish a new
  snapshot atomically
- health tick (every few seconds): classify the current snapshot and
  aggregate the fleet summary

A slow catalog fetch never blocks ticks; they keep running against the
previous snapshot. A refresh that is superseded, or still in flight when the
scheduler stops, is discarded by the store's generation check rather than
merged.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from config import service_config
from fleet_health.catalog_parser import CatalogParser
from fleet_health.catalog_store import CatalogStore
from fleet_health.models import CatalogSnapshot, CycleReport
from fleet_health.pipeline import HealthPipeline
from fleet_health.search import SearchIndex
from fleet_health.sources import ElementSetSource, fetch_catalog

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "catalog_refresh"
TICK_JOB_ID = "health_tick"

Listener = Callable[[CycleReport], None]


class LiveUpdateScheduler:
    """Start/stop wrapper around the refresh and tick jobs."""

    def __init__(self, store: CatalogStore, pipeline: HealthPipeline,
                 source: Optional[ElementSetSource] = None,
                 groups: Optional[Sequence[str]] = None,
                 parser: Optional[CatalogParser] = None,
                 refresh_seconds: Optional[float] = None,
                 tick_seconds: Optional[float] = None,
                 scheduler: Optional[BackgroundScheduler] = None):
        """
        Args:
            store: Catalog snapshot store shared with readers
            pipeline: Health pipeline run on every tick
            source: Element-set source; without one, refresh is a no-op
            groups: Catalog groups to fetch (default from TLE_GROUPS)
            parser: Catalog parser used for fetched text
            refresh_seconds: Catalog refresh interval
            tick_seconds: Health tick interval
            scheduler: APScheduler instance (a daemon BackgroundScheduler by default)
        """
        self.store = store
        self.pipeline = pipeline
        self.source = source
        self.groups = list(groups) if groups is not None else list(service_config.TLE_GROUPS)
        self.parser = parser if parser is not None else CatalogParser()
        self.refresh_seconds = refresh_seconds or service_config.CATALOG_REFRESH_SECONDS
        self.tick_seconds = tick_seconds or service_config.HEALTH_TICK_SECONDS
        self.scheduler = scheduler if scheduler is not None else BackgroundScheduler(daemon=True, timezone=timezone.utc)
        self.search_index = SearchIndex(store.snapshot())

        self.last_report: Optional[CycleReport] = None
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()
        self.stats = {
            "last_refresh": None,
            "last_tick": None,
            "refreshes": 0,
            "discarded_refreshes": 0,
            "failed_refreshes": 0,
            "skipped_records": 0,
            "ticks": 0,
        }

    # -- lifecycle ---------------------------------------------------------

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Schedule both jobs; the first refresh runs immediately."""
        if self.scheduler.running:
            return
        now = datetime.now(timezone.utc)
        self.scheduler.add_job(
            self.refresh_catalog, "interval", seconds=self.refresh_seconds,
            id=REFRESH_JOB_ID, max_instances=1, coalesce=True,
            next_run_time=now if self.source is not None else None,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.tick, "interval", seconds=self.tick_seconds,
            id=TICK_JOB_ID, max_instances=1, coalesce=True,
            replace_existing=True,
        )
        self.store.open()
        self.scheduler.start()
        logger.info(
            f"Scheduler started: refresh every {self.refresh_seconds}s, "
            f"tick every {self.tick_seconds}s"
        )

    def stop(self, wait: bool = False) -> None:
        """Stop both jobs and discard any refresh still in flight or yet to start."""
        self.store.close()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler stopped")

    def add_listener(self, listener: Listener) -> None:
        """Register a callback receiving every CycleReport."""
        with self._lock:
            self._listeners.append(listener)

    # -- jobs --------------------------------------------------------------

    def refresh_catalog(self) -> Optional[CatalogSnapshot]:
        """
        Fetch all groups and publish the result as a new snapshot.

        Returns:
            The published snapshot, or None if the refresh was superseded,
            cancelled or every group failed
        """
        if self.source is None:
            logger.debug("No element-set source configured, skipping refresh")
            return None
        if self.store.closed:
            logger.debug("Scheduler stopped, skipping refresh")
            self.stats["discarded_refreshes"] += 1
            return None

        token = self.store.begin_refresh()
        result = fetch_catalog(self.source, self.groups, self.parser)

        if self.groups and len(result.failures) == len(self.groups):
            self.stats["failed_refreshes"] += 1
            logger.error("Every catalog group failed to load, keeping the previous catalog")
            return None

        self.stats["skipped_records"] = len(result.parse_errors)
        snapshot = self.store.commit(token, result.entries, result.failed_groups,
                                     skipped_records=len(result.parse_errors))
        if snapshot is None:
            self.stats["discarded_refreshes"] += 1
            return None

        self.search_index = SearchIndex(snapshot)
        self.stats["refreshes"] += 1
        self.stats["last_refresh"] = snapshot.created_at
        self._run_tick_soon()
        return snapshot

    def tick(self, now: Optional[datetime] = None) -> CycleReport:
        """Classify the current catalog snapshot and notify listeners."""
        snapshot = self.store.snapshot()
        report = self.pipeline.run(snapshot, now)

        self.last_report = report
        self.stats["ticks"] += 1
        self.stats["last_tick"] = report.timestamp

        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(report)
            except Exception as e:
                logger.error(f"Cycle listener {listener!r} failed: {e}")

        return report

    def search(self, query: str, limit: Optional[int] = None):
        index = self.search_index
        return index.search(query) if limit is None else index.search(query, limit)

    def status(self) -> Dict:
        """Scheduler state and job statistics."""
        jobs = []
        if self.scheduler.running:
            jobs = [
                {"id": job.id, "next_run": job.next_run_time.isoformat() if job.next_run_time else None}
                for job in self.scheduler.get_jobs()
            ]
        return {
            "running": self.scheduler.running,
            "catalog_version": self.store.snapshot().version,
            "catalog_size": len(self.store.snapshot()),
            "jobs": jobs,
            **self.stats,
        }

    def _run_tick_soon(self) -> None:
        if not self.scheduler.running:
            return
        try:
            self.scheduler.modify_job(TICK_JOB_ID, next_run_time=datetime.now(timezone.utc))
        except JobLookupError:
            logger.debug("Tick job not scheduled, skipping immediate tick")
