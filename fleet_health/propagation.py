"""
Propagation Adapter

Wraps the sgp4 library behind a narrow contract: given a catalog entry and a
timestamp, return a geodetic position or a typed ``PropagationFailure``.

The SGP4 output is a TEME (true equator, mean equinox) position. It is
rotated into an Earth-fixed frame with the Greenwich mean sidereal time of
the requested instant and then converted to WGS-84 latitude, longitude and
altitude.

Failures never raise. Decayed or invalid element sets, lines the library
rejects and non-finite output become ``NO_POSITION``; an all-zero result
becomes ``INVALID_RESULT``. The zero check is a heuristic: a genuine
(0, 0, 0) position cannot be told apart from a propagator that silently
returned a zero vector.
"""

import logging
import math
import threading
from datetime import datetime
from functools import lru_cache
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from sgp4.api import Satrec, jday

from fleet_health.models import (
    CatalogEntry,
    GeodeticPosition,
    PropagationFailure,
    PropagationFailureKind,
    ensure_utc,
)

logger = logging.getLogger(__name__)


# SGP4 error code meanings
SGP4_ERROR_CODES = {
    0: "No error",
    1: "Mean eccentricity < 0.0 or > 1.0",
    2: "Mean motion < 0.0",
    3: "Perturbed eccentricity < 0.0 or > 1.0",
    4: "Semi-latus rectum < 0.0",
    5: "Satellite has decayed",
    6: "Satellite has decayed (low altitude)",
}

# WGS-84 ellipsoid (km)
WGS84_A = 6378.137
WGS84_F = 1.0 / 298.257223563

State = Tuple[int, Sequence[float], Sequence[float]]


@lru_cache(maxsize=32768)
def _satrec(line1: str, line2: str) -> Satrec:
    return Satrec.twoline2rv(line1, line2)


class Sgp4Propagator:
    """
    The external propagation capability: TEME state at a given instant.

    Any object with a compatible ``state`` method can stand in for it.
    """

    def state(self, line1: str, line2: str, timestamp: datetime) -> State:
        """
        Propagate a TLE to ``timestamp``.

        Returns:
            Tuple of (sgp4_error_code, position_km, velocity_kms) in TEME
        """
        satellite = _satrec(line1, line2)
        jd, fr = datetime_to_jd_fr(timestamp)
        return satellite.sgp4(jd, fr)


def datetime_to_jd_fr(dt: datetime) -> Tuple[float, float]:
    """Convert a datetime to the (julian_day, fraction) pair sgp4 expects."""
    dt = ensure_utc(dt)
    seconds = dt.second + dt.microsecond / 1e6
    return jday(dt.year, dt.month, dt.day, dt.hour, dt.minute, seconds)


def gmst_radians(dt: datetime) -> float:
    """Greenwich mean sidereal time (IAU-82) at ``dt``, in radians."""
    jd, fr = datetime_to_jd_fr(dt)
    T = (jd - 2451545.0 + fr) / 36525.0

    gmst_sec = (
        67310.54841 +
        (876600.0 * 3600.0 + 8640184.812866) * T +
        0.093104 * T * T -
        6.2e-6 * T * T * T
    )

    return (gmst_sec % 86400.0) * (2.0 * math.pi / 86400.0)


def teme_to_ecef(r_teme: np.ndarray, gmst: float) -> np.ndarray:
    """Rotate a TEME position about the z axis by the sidereal angle."""
    cos_g = math.cos(gmst)
    sin_g = math.sin(gmst)
    rotation = np.array([
        [cos_g, sin_g, 0.0],
        [-sin_g, cos_g, 0.0],
        [0.0, 0.0, 1.0],
    ])
    return rotation @ np.asarray(r_teme, dtype=float)


def ecef_to_geodetic(r_ecef: np.ndarray) -> Tuple[float, float, float]:
    """
    ECEF to geodetic conversion on the WGS-84 ellipsoid using Bowring's method.

    Deviation distances use a spherical Earth instead (see ``deviation``), so
    positions from here are not round-tripped through ``to_cartesian``.

    Args:
        r_ecef: Position vector in ECEF coordinates [x, y, z] (km)

    Returns:
        Tuple of (latitude_deg, longitude_deg, altitude_km)
    """
    a = WGS84_A
    f = WGS84_F
    b = a * (1.0 - f)
    e2 = 2.0 * f - f * f
    ep2 = e2 / (1.0 - e2)

    x, y, z = (float(c) for c in r_ecef)

    lon = math.atan2(y, x)
    p = math.hypot(x, y)

    # Pole
    if p < 1e-10:
        lat = math.pi / 2.0 if z > 0 else -math.pi / 2.0
        return math.degrees(lat), math.degrees(lon), abs(z) - b

    theta = math.atan2(z * a, p * b)
    lat = theta

    for _ in range(5):
        sin_theta = math.sin(theta)
        cos_theta = math.cos(theta)

        lat = math.atan2(
            z + ep2 * b * sin_theta ** 3,
            p - e2 * a * cos_theta ** 3,
        )

        sin_lat = math.sin(lat)
        N = a / math.sqrt(1.0 - e2 * sin_lat * sin_lat)
        new_theta = math.atan2(z + e2 * N * sin_lat, p)
        if abs(new_theta - theta) < 1e-12:
            break
        theta = new_theta

    cos_lat = math.cos(lat)
    sin_lat = math.sin(lat)
    N = a / math.sqrt(1.0 - e2 * sin_lat * sin_lat)

    if cos_lat > 1e-10:
        alt = p / cos_lat - N
    else:
        alt = z / sin_lat - N * (1.0 - e2)

    return math.degrees(lat), math.degrees(lon), alt


class PropagationAdapter:
    """
    Core boundary with the propagation capability.

    Features:
    - Geodetic output for any catalog entry and instant
    - Typed failures instead of exceptions, so a batch never aborts
    - Per-object failure counts for operational visibility
    """

    def __init__(self, propagator=None):
        """
        Args:
            propagator: Object exposing ``state(line1, line2, timestamp)``;
                defaults to the sgp4 library
        """
        self.propagator = propagator if propagator is not None else Sgp4Propagator()
        self.failure_counts = {}
        self._lock = threading.Lock()

    def propagate(self, entry: CatalogEntry,
                  timestamp: datetime) -> Union[GeodeticPosition, PropagationFailure]:
        """
        Position of ``entry`` at ``timestamp``.

        Returns:
            GeodeticPosition on success, PropagationFailure otherwise
        """
        timestamp = ensure_utc(timestamp)
        outcome = self._teme_state(entry, timestamp)
        if isinstance(outcome, PropagationFailure):
            return outcome

        position, _ = outcome
        if not np.any(position):
            return self._fail(entry, PropagationFailureKind.INVALID_RESULT, None,
                              "propagator returned a zero position vector")

        lat, lon, alt = ecef_to_geodetic(teme_to_ecef(position, gmst_radians(timestamp)))

        if lat == 0.0 and lon == 0.0 and alt == 0.0:
            return self._fail(entry, PropagationFailureKind.INVALID_RESULT, None,
                              "geodetic result is exactly (0, 0, 0)")

        return GeodeticPosition(lat=lat, lon=lon, alt_km=alt)

    def speed_kms(self, entry: CatalogEntry, timestamp: datetime) -> Optional[float]:
        """Inertial speed (km/s) at ``timestamp``, or None if propagation fails."""
        outcome = self._teme_state(entry, ensure_utc(timestamp))
        if isinstance(outcome, PropagationFailure):
            return None
        _, velocity = outcome
        return float(np.linalg.norm(velocity))

    def _teme_state(self, entry: CatalogEntry, timestamp: datetime):
        try:
            error, position, velocity = self.propagator.state(entry.line1, entry.line2, timestamp)
        except Exception as e:
            return self._fail(entry, PropagationFailureKind.NO_POSITION, None,
                              f"element set rejected by propagator: {e}")

        if error != 0:
            return self._fail(entry, PropagationFailureKind.NO_POSITION, error,
                              SGP4_ERROR_CODES.get(error, f"Unknown error code {error}"))

        if position is None:
            return self._fail(entry, PropagationFailureKind.NO_POSITION, None,
                              "propagator returned no position")

        position = np.asarray(position, dtype=float)
        velocity = np.asarray(velocity if velocity is not None else (0.0, 0.0, 0.0), dtype=float)
        if not np.all(np.isfinite(position)):
            return self._fail(entry, PropagationFailureKind.NO_POSITION, None,
                              "propagator returned a non-finite position")

        return position, velocity

    def _fail(self, entry: CatalogEntry, kind: PropagationFailureKind,
              error_code: Optional[int], message: str) -> PropagationFailure:
        with self._lock:
            self.failure_counts[entry.norad_id] = self.failure_counts.get(entry.norad_id, 0) + 1
        logger.warning(f"Propagation failed for {entry.name} ({entry.norad_id}): {message}")
        return PropagationFailure(
            norad_id=entry.norad_id,
            kind=kind,
            error_code=error_code,
            message=message,
        )
