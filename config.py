"""
Fleet Health Configuration and Constants

This module contains the policy constants, service settings and fallback TLE
data used throughout the project.

Constants:
    Spherical-Earth radius used for deviation checks, the two-digit epoch
    pivot year, the debris name heuristic and the per-orbit-class health
    thresholds. These are conventions rather than derived values; every
    component that uses them accepts an override.

Service settings:
    Read from the environment so that deployments can tune refresh cadence
    and element-set sources without code changes.

    - CELESTRAK_API_BASE: element-set provider base URL
    - TLE_GROUPS: comma separated list of catalog groups to fetch
    - CATALOG_REFRESH_SECONDS: catalog refresh interval
    - HEALTH_TICK_SECONDS: position/health recomputation interval
    - FETCH_TIMEOUT_SECONDS: per-request HTTP timeout
    - PIPELINE_WORKERS: thread pool size for per-object propagation

Fallback TLE Data:
    Hardcoded ISS TLE data for demonstrations and testing when live data is
    unavailable.
"""

import os
from typing import Dict, Any, Tuple

# Spherical Earth approximation for deviation checks (km)
EARTH_RADIUS_KM: float = 6378.137

# Two-digit epoch years below the pivot map to 20xx, the rest to 19xx
EPOCH_PIVOT_YEAR: int = 57

# Case-insensitive name fragments that flag an object as debris
DEBRIS_KEYWORDS: Tuple[str, ...] = ("debris", "cosmos", "iridium")

# Orbit class altitude ceilings (km)
LEO_MAX_ALT_KM: float = 1000.0
MEO_MAX_ALT_KM: float = 2000.0

# Health thresholds per orbit class: deviation (km) and telemetry age (s)
DEFAULT_THRESHOLDS: Dict[str, Dict[str, float]] = {
    "LEO": {"warn_km": 3.0, "crit_km": 10.0, "warn_age_sec": 600.0, "crit_age_sec": 3600.0},
    "MEO": {"warn_km": 15.0, "crit_km": 40.0, "warn_age_sec": 1800.0, "crit_age_sec": 21600.0},
    "GEO": {"warn_km": 80.0, "crit_km": 300.0, "warn_age_sec": 3600.0, "crit_age_sec": 43200.0},
    "Debris": {"warn_km": 2.0, "crit_km": 10.0, "warn_age_sec": 300.0, "crit_age_sec": 3600.0},
}

HISTORY_CAPACITY: int = 50
SEARCH_LIMIT: int = 20


class ServiceConfig:
    """Environment driven settings for the live update loop."""

    CELESTRAK_BASE = os.getenv("CELESTRAK_API_BASE", "https://celestrak.org")
    TLE_GROUPS = [
        g.strip()
        for g in os.getenv("TLE_GROUPS", "active,1999-025,iridium-33-debris").split(",")
        if g.strip()
    ]
    CATALOG_REFRESH_SECONDS = int(os.getenv("CATALOG_REFRESH_SECONDS", "14400"))  # 4 hours
    HEALTH_TICK_SECONDS = int(os.getenv("HEALTH_TICK_SECONDS", "30"))
    FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))
    PIPELINE_WORKERS = int(os.getenv("PIPELINE_WORKERS", "8"))


service_config = ServiceConfig()

# Fallback ISS TLE for demonstrations and testing
FALLBACK_ISS_TLE: Dict[str, Any] = {
    'name': 'ISS (ZARYA)',
    'norad_id': 25544,
    'line1': '1 25544U 98067A   23259.57580000  .00012022  00000-0  21844-3 0  9995',
    'line2': '2 25544  51.6416 220.9944 0004263 122.0101 312.2755 15.49541986415598',
    'epoch': '2023-09-16T13:49:09Z',
    'inclination': 51.6416,
}
