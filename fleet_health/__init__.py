"""
Satellite State & Fleet Health Engine

This package ingests TLE catalogs, propagates positions with the sgp4
library, compares predictions against telemetry and classifies the health of
every tracked object.

Modules:
    models: immutable value types shared by every component
    errors: error taxonomy for per-item isolation
    catalog_parser: 3-line TLE text to catalog entries
    propagation: sgp4 adapter returning geodetic positions or typed failures
    deviation: spherical-Earth Cartesian distance between two positions
    classifier: orbit-class thresholds and ordered health rules
    aggregator: fleet summaries and bounded health history
    catalog_store: versioned catalog snapshots with generation-guarded commits
    sources: element-set sources (CelesTrak, in-memory text)
    telemetry: telemetry source capability and mock generator
    pipeline: one health tick over a catalog snapshot
    scheduler: periodic catalog refresh and health ticks
    search: substring search over the catalog
"""

__version__ = "1.0.0"
