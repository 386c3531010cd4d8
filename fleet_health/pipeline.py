"""
Health pipeline: one classification cycle over a catalog snapshot.

Every object in a cycle is propagated and classified against the same
snapshot and the same ``now``. Objects are independent, so the work is fanned
out to a thread pool; results come back in catalog order. A failed
propagation or a telemetry source error removes only that object from the
cycle and is counted in the report.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from config import service_config
from fleet_health.aggregator import FleetAggregator, reasons
from fleet_health.classifier import HealthClassifier
from fleet_health.models import (
    CatalogEntry,
    CatalogSnapshot,
    CycleReport,
    PropagationFailure,
    SatelliteHealth,
    ensure_utc,
)
from fleet_health.telemetry import TelemetrySource

logger = logging.getLogger(__name__)

# Per-entry outcome; None marks a telemetry source error
_Outcome = Union[SatelliteHealth, PropagationFailure, None]


class HealthPipeline:
    """Telemetry fetch, classification and aggregation for one tick."""

    def __init__(self, classifier: HealthClassifier, telemetry_source: TelemetrySource,
                 aggregator: Optional[FleetAggregator] = None,
                 max_workers: Optional[int] = None):
        """
        Args:
            classifier: Health classifier (owns the propagation adapter)
            telemetry_source: Any telemetry capability, mock or real
            aggregator: Fleet aggregator holding the history ring
            max_workers: Thread pool size; 1 runs sequentially
        """
        self.classifier = classifier
        self.telemetry_source = telemetry_source
        self.aggregator = aggregator if aggregator is not None else FleetAggregator()
        self.max_workers = max_workers or service_config.PIPELINE_WORKERS

    def run(self, snapshot: CatalogSnapshot, now: Optional[datetime] = None) -> CycleReport:
        """
        Classify every entry of ``snapshot`` at one instant.

        Args:
            snapshot: Catalog snapshot held for the whole cycle
            now: Cycle time (default: current UTC time)

        Returns:
            CycleReport with results, summary and skip counts
        """
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        entries = snapshot.entries

        outcomes = self._map(entries, now)

        results: List[SatelliteHealth] = []
        failures: List[PropagationFailure] = []
        telemetry_errors = 0
        for outcome in outcomes:
            if isinstance(outcome, SatelliteHealth):
                results.append(outcome)
            elif isinstance(outcome, PropagationFailure):
                failures.append(outcome)
            else:
                telemetry_errors += 1

        summary, _ = self.aggregator.aggregate(results, now)

        if failures or telemetry_errors:
            logger.warning(
                f"Cycle at {now.isoformat()}: skipped {len(failures)} object(s) on propagation "
                f"failure, {telemetry_errors} on telemetry errors"
            )
        logger.info(
            f"Catalog v{snapshot.version}: {summary.total} assessed, "
            f"{summary.health_percent:.1f}% healthy "
            f"({summary.warning} warning, {summary.critical} critical)"
        )

        return CycleReport(
            timestamp=now,
            catalog_version=snapshot.version,
            results=results,
            summary=summary,
            propagation_failures=failures,
            telemetry_errors=telemetry_errors,
            reasons=reasons(results),
        )

    def _map(self, entries: Tuple[CatalogEntry, ...], now: datetime) -> List[_Outcome]:
        if self.max_workers <= 1 or len(entries) < 2:
            return [self._assess_one(entry, now) for entry in entries]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            return list(executor.map(lambda entry: self._assess_one(entry, now), entries))

    def _assess_one(self, entry: CatalogEntry, now: datetime) -> _Outcome:
        try:
            telemetry = self.telemetry_source.fetch_telemetry(entry, now)
        except Exception as e:
            logger.error(f"Telemetry source failed for {entry.name} ({entry.norad_id}): {e}")
            return None
        return self.classifier.assess(entry, telemetry, now)
