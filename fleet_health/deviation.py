"""
Deviation Engine

Distance between a predicted and an observed position, computed in a shared
Earth-centred Cartesian frame over a spherical Earth. Oblateness is ignored:
the result is good to well under the kilometre-scale health thresholds, not
to geodetic accuracy.
"""

import math

import numpy as np

from config import EARTH_RADIUS_KM
from fleet_health.models import GeodeticPosition


def to_cartesian(position: GeodeticPosition, radius_km: float = EARTH_RADIUS_KM) -> np.ndarray:
    """
    Convert a geodetic position to [x, y, z] (km) on a spherical Earth.

    Args:
        position: Latitude/longitude in degrees, altitude in km
        radius_km: Reference sphere radius

    Returns:
        Cartesian position vector (km)
    """
    lat = math.radians(position.lat)
    lon = math.radians(position.lon)
    r = radius_km + position.alt_km
    return np.array([
        r * math.cos(lat) * math.cos(lon),
        r * math.cos(lat) * math.sin(lon),
        r * math.sin(lat),
    ])


def distance_km(a: GeodeticPosition, b: GeodeticPosition,
                radius_km: float = EARTH_RADIUS_KM) -> float:
    """3D straight-line distance between two geodetic positions (km)."""
    if a == b:
        return 0.0
    return float(np.linalg.norm(to_cartesian(a, radius_km) - to_cartesian(b, radius_km)))
