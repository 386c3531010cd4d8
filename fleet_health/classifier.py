"""
Health Classifier

Assigns each tracked object a status (Healthy, Warning, Critical) and a reason
code from its deviation against telemetry and the age of that telemetry.

Thresholds depend on the orbit class, which is derived from the predicted
altitude and the catalog debris flag. The rules are evaluated in a fixed
order and the first match wins:

    1. no telemetry              -> Critical / no_telemetry
    2. age > crit_age_sec        -> Critical / stale_telemetry
    3. deviation >= crit_km      -> Critical / large_deviation
    4. deviation >= warn_km      -> Warning  / deviation_warning
    5. age >= warn_age_sec       -> Warning  / stale_warning
    6. otherwise                 -> Healthy  / ok

Staleness beyond the critical age outranks deviation: an old fix cannot be
used to judge where the object is now.
"""

import logging
from datetime import datetime
from typing import Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from config import DEFAULT_THRESHOLDS, LEO_MAX_ALT_KM, MEO_MAX_ALT_KM
from fleet_health.deviation import distance_km
from fleet_health.models import (
    CatalogEntry,
    GeodeticPosition,
    HealthReason,
    HealthStatus,
    OrbitClass,
    PropagationFailure,
    SatelliteHealth,
    Telemetry,
    ensure_utc,
)
from fleet_health.propagation import PropagationAdapter

logger = logging.getLogger(__name__)


class Thresholds(BaseModel):
    """Deviation (km) and telemetry age (s) limits for one orbit class."""

    model_config = ConfigDict(frozen=True)

    warn_km: float = Field(ge=0.0)
    crit_km: float = Field(ge=0.0)
    warn_age_sec: float = Field(ge=0.0)
    crit_age_sec: float = Field(ge=0.0)


class ClassifierSettings(BaseModel):
    """Overridable classification policy."""

    model_config = ConfigDict(frozen=True)

    thresholds: Dict[OrbitClass, Thresholds] = Field(
        default_factory=lambda: {
            OrbitClass(name): Thresholds(**values) for name, values in DEFAULT_THRESHOLDS.items()
        }
    )
    leo_max_alt_km: float = LEO_MAX_ALT_KM
    meo_max_alt_km: float = MEO_MAX_ALT_KM

    def with_thresholds(self, overrides: Mapping[OrbitClass, Thresholds]) -> "ClassifierSettings":
        merged = dict(self.thresholds)
        merged.update(overrides)
        return self.model_copy(update={"thresholds": merged})


def orbit_class_for(alt_km: float, is_debris: bool = False,
                    leo_max_alt_km: float = LEO_MAX_ALT_KM,
                    meo_max_alt_km: float = MEO_MAX_ALT_KM) -> OrbitClass:
    """Coarse orbit bucket used to pick thresholds."""
    if is_debris:
        return OrbitClass.DEBRIS
    if alt_km <= leo_max_alt_km:
        return OrbitClass.LEO
    if alt_km <= meo_max_alt_km:
        return OrbitClass.MEO
    return OrbitClass.GEO


def decide(thresholds: Thresholds, deviation_km: Optional[float],
           age_sec: Optional[float]) -> Tuple[HealthStatus, HealthReason]:
    """
    Apply the ordered health rules.

    Args:
        thresholds: Limits for the object's orbit class
        deviation_km: Predicted/observed distance, None without telemetry
        age_sec: Telemetry age, None without telemetry

    Returns:
        Tuple of (status, reason)
    """
    if deviation_km is None or age_sec is None:
        return HealthStatus.CRITICAL, HealthReason.NO_TELEMETRY
    if age_sec > thresholds.crit_age_sec:
        return HealthStatus.CRITICAL, HealthReason.STALE_TELEMETRY
    if deviation_km >= thresholds.crit_km:
        return HealthStatus.CRITICAL, HealthReason.LARGE_DEVIATION
    if deviation_km >= thresholds.warn_km:
        return HealthStatus.WARNING, HealthReason.DEVIATION_WARNING
    if age_sec >= thresholds.warn_age_sec:
        return HealthStatus.WARNING, HealthReason.STALE_WARNING
    return HealthStatus.HEALTHY, HealthReason.OK


def _has_fix(telemetry: Optional[Telemetry]) -> bool:
    return (
        telemetry is not None
        and telemetry.timestamp is not None
        and telemetry.position is not None
    )


class HealthClassifier:
    """
    Classifies one catalog entry against one telemetry observation.

    The classifier holds no per-object state, so a single instance can be
    shared across worker threads.
    """

    def __init__(self, adapter: Optional[PropagationAdapter] = None,
                 settings: Optional[ClassifierSettings] = None):
        self.adapter = adapter if adapter is not None else PropagationAdapter()
        self.settings = settings if settings is not None else ClassifierSettings()

    def orbit_class(self, alt_km: float, is_debris: bool) -> OrbitClass:
        return orbit_class_for(alt_km, is_debris,
                               self.settings.leo_max_alt_km, self.settings.meo_max_alt_km)

    def thresholds_for(self, orbit_class: OrbitClass) -> Thresholds:
        return self.settings.thresholds[orbit_class]

    def assess(self, entry: CatalogEntry, telemetry: Optional[Telemetry],
               now: datetime) -> Union[SatelliteHealth, PropagationFailure]:
        """
        Propagate and classify one object.

        The prediction is made for the telemetry's own timestamp so that
        predicted and observed positions refer to the same instant; without
        telemetry it is made for ``now``.

        Returns:
            SatelliteHealth, or the PropagationFailure that prevented it
        """
        now = ensure_utc(now)
        at = telemetry.timestamp if _has_fix(telemetry) else now

        predicted = self.adapter.propagate(entry, at)
        if isinstance(predicted, PropagationFailure):
            return predicted

        return self.evaluate(entry, predicted, telemetry, now)

    def evaluate(self, entry: CatalogEntry, predicted: GeodeticPosition,
                 telemetry: Optional[Telemetry], now: datetime) -> SatelliteHealth:
        """Classify an object whose predicted position is already known."""
        orbit_class = self.orbit_class(predicted.alt_km, entry.is_debris)
        thresholds = self.thresholds_for(orbit_class)

        deviation = None
        age = None
        observed = None
        if _has_fix(telemetry):
            observed = telemetry.position
            deviation = distance_km(predicted, observed)
            age = (ensure_utc(now) - telemetry.timestamp).total_seconds()

        status, reason = decide(thresholds, deviation, age)

        if status is not HealthStatus.HEALTHY:
            logger.debug(
                f"{entry.name} ({entry.norad_id}) {orbit_class.value}: {status.value}/{reason.value} "
                f"deviation={deviation} age={age}"
            )

        return SatelliteHealth(
            norad_id=entry.norad_id,
            name=entry.name,
            status=status,
            deviation_km=deviation,
            age_sec=age,
            reason=reason,
            orbit_class=orbit_class,
            predicted=predicted,
            observed=observed,
        )
