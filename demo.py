"""
Fleet Health Demonstration

This script runs the fleet health engine end to end:
- Catalog parsing from 3-line element-set text
- Propagation of every object with the sgp4 library
- Mock telemetry and health classification
- Fleet summaries with a rolling health history
- Catalog search

Usage:
    python demo.py [--live] [--cycles N] [--seed S] [--search QUERY] [--verbose]

Arguments:
    --live: Fetch the catalog from CelesTrak and classify at the current time
    --cycles: Number of health ticks to run (default 5)
    --seed: Seed for the mock telemetry generator
    --search: Search the catalog after the run
    --verbose: Enable debug logging

Offline runs use a small embedded catalog and a simulated clock that starts at
the ISS element-set epoch, so results are reproducible.
"""

import argparse
import logging
from datetime import timedelta

from config import FALLBACK_ISS_TLE, service_config
from fleet_health.aggregator import FleetAggregator, composition
from fleet_health.catalog_parser import CatalogParser
from fleet_health.catalog_store import CatalogStore
from fleet_health.classifier import HealthClassifier
from fleet_health.models import CycleReport, HealthStatus
from fleet_health.pipeline import HealthPipeline
from fleet_health.propagation import PropagationAdapter
from fleet_health.scheduler import LiveUpdateScheduler
from fleet_health.sources import CelesTrakSource, StaticTextSource
from fleet_health.telemetry import MockTelemetrySource
from logging_config import configure_logging, get_logger

logger = get_logger(__name__)

OFFLINE_CATALOG = "\n".join([
    FALLBACK_ISS_TLE["name"],
    FALLBACK_ISS_TLE["line1"],
    FALLBACK_ISS_TLE["line2"],
    "VANGUARD 2",
    "1 00005U 58002B   23259.50000000  .00000023  00000-0  28098-4 0  4751",
    "2 00005  34.2682 348.7242 1859667 331.7664  19.3264 10.82419157413667",
    "COSMOS 2251 DEB",
    "1 06251U 62025E   23259.25000000  .00008885  00000-0  12808-3 0  3981",
    "2 06251  58.0579  54.0425 0030035 139.1568 221.1854 14.84476164767361",
])


def log_report(report: CycleReport) -> None:
    """Log one health cycle."""
    s = report.summary
    logger.info(
        f"[{report.timestamp:%Y-%m-%d %H:%M:%S}] {s.total} assessed: "
        f"{s.healthy} healthy, {s.warning} warning, {s.critical} critical "
        f"({s.health_percent:.1f}% healthy, {report.skipped} skipped)"
    )
    for health in report.results:
        if health.status is not HealthStatus.HEALTHY:
            deviation = f"{health.deviation_km:.2f} km" if health.deviation_km is not None else "n/a"
            logger.info(
                f"    {health.name:<24} {health.orbit_class.value:<6} "
                f"{health.status.value:<8} {health.reason.value} (deviation {deviation})"
            )


def main() -> None:
    """Main demonstration entry point."""
    parser = argparse.ArgumentParser(description="Fleet Health Demonstration")
    parser.add_argument("--live", action="store_true", help="Fetch the catalog from CelesTrak")
    parser.add_argument("--cycles", type=int, default=5, help="Number of health ticks")
    parser.add_argument("--seed", type=int, default=None, help="Mock telemetry seed")
    parser.add_argument("--search", default=None, help="Search the catalog after the run")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    logger.info("Fleet Health Demonstration")
    logger.info("=" * 60)

    adapter = PropagationAdapter()
    store = CatalogStore()
    aggregator = FleetAggregator()
    pipeline = HealthPipeline(
        HealthClassifier(adapter),
        MockTelemetrySource(adapter, seed=args.seed),
        aggregator,
    )

    if args.live:
        source = CelesTrakSource()
        groups = service_config.TLE_GROUPS
    else:
        source = StaticTextSource({"demo": OFFLINE_CATALOG})
        groups = ["demo"]

    live = LiveUpdateScheduler(store, pipeline, source=source, groups=groups)
    live.add_listener(log_report)

    snapshot = live.refresh_catalog()
    if snapshot is None:
        logger.error("No catalog could be loaded")
        return
    logger.info(f"Catalog v{snapshot.version}: {len(snapshot)} objects")

    clock = None
    if not args.live:
        clock = CatalogParser().parse(OFFLINE_CATALOG)[0].epoch

    for cycle in range(args.cycles):
        now = clock + timedelta(seconds=cycle * live.tick_seconds) if clock else None
        live.tick(now)

    if live.last_report is not None:
        logger.info(f"Fleet composition: {composition(live.last_report.results)}")
        logger.info(f"Reasons: {live.last_report.reasons}")

    trend = ", ".join(f"{sample.value:.0f}%" for sample in aggregator.history())
    logger.info(f"Health history: {trend}")

    if args.search:
        logger.info("")
        logger.info(f"Search results for {args.search!r}:")
        for entry in live.search(args.search):
            logger.info(f"    {entry.norad_id:>6} {entry.name} ({entry.inclination_regime})")

    logger.info("=" * 60)
    logger.info("Demonstration complete")


if __name__ == "__main__":
    main()
