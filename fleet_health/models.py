"""
Value types shared by the fleet health components.

Every model is frozen: catalog entries are replaced wholesale on refresh,
positions are produced fresh on each propagation and health results are
never edited after classification.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class HealthStatus(str, Enum):
    HEALTHY = "Healthy"
    WARNING = "Warning"
    CRITICAL = "Critical"


class HealthReason(str, Enum):
    NO_TELEMETRY = "no_telemetry"
    STALE_TELEMETRY = "stale_telemetry"
    LARGE_DEVIATION = "large_deviation"
    DEVIATION_WARNING = "deviation_warning"
    STALE_WARNING = "stale_warning"
    OK = "ok"


class OrbitClass(str, Enum):
    LEO = "LEO"
    MEO = "MEO"
    GEO = "GEO"
    DEBRIS = "Debris"


class CatalogEntry(FrozenModel):
    """One tracked object as decoded from a 3-line element set."""

    norad_id: int
    name: str
    line1: str
    line2: str
    inclination_deg: Optional[float] = None
    epoch: Optional[datetime] = None
    is_debris: bool = False
    group: Optional[str] = None

    @property
    def inclination_regime(self) -> Optional[str]:
        """Coarse plane classification used for catalog browsing."""
        inc = self.inclination_deg
        if inc is None:
            return None
        if inc < 10:
            return "Equatorial"
        if abs(inc - 90) < 5:
            return "Polar"
        if 96 <= inc <= 99:
            return "Sun-synchronous"
        return "Inclined"

    def epoch_age_days(self, now: datetime) -> Optional[float]:
        if self.epoch is None:
            return None
        return (ensure_utc(now) - self.epoch).total_seconds() / 86400.0


class GeodeticPosition(FrozenModel):
    lat: float = Field(ge=-90.0, le=90.0, description="Latitude (degrees)")
    lon: float = Field(ge=-180.0, le=180.0, description="Longitude (degrees)")
    alt_km: float = Field(description="Altitude above the reference surface (km)")


class Telemetry(FrozenModel):
    """
    Observed state for one object.

    A ``timestamp`` of None means the source has no usable observation; the
    classifier treats that exactly like missing telemetry.
    """

    position: Optional[GeodeticPosition] = None
    timestamp: Optional[datetime] = None
    last_contact: Optional[datetime] = None

    @field_validator("timestamp", "last_contact")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None


class SatelliteHealth(FrozenModel):
    norad_id: int
    name: str
    status: HealthStatus
    deviation_km: Optional[float] = Field(default=None, ge=0.0)
    age_sec: Optional[float] = None
    reason: HealthReason
    orbit_class: OrbitClass
    predicted: GeodeticPosition
    observed: Optional[GeodeticPosition] = None


class FleetHealthSummary(FrozenModel):
    total: int = 0
    healthy: int = 0
    warning: int = 0
    critical: int = 0
    health_percent: float = Field(default=0.0, ge=0.0, le=100.0)


class HistorySample(FrozenModel):
    timestamp: datetime
    value: float


class PropagationFailureKind(str, Enum):
    NO_POSITION = "no_position"
    INVALID_RESULT = "invalid_result"


class PropagationFailure(FrozenModel):
    """Typed outcome for a propagation that produced no usable position."""

    norad_id: int
    kind: PropagationFailureKind
    error_code: Optional[int] = None
    message: str = ""


class CatalogSnapshot(FrozenModel):
    """An immutable, versioned view of the whole catalog."""

    version: int = 0
    entries: Tuple[CatalogEntry, ...] = ()
    created_at: Optional[datetime] = None
    failed_groups: Tuple[str, ...] = ()
    skipped_records: int = 0

    def __len__(self) -> int:
        return len(self.entries)


class CycleReport(FrozenModel):
    """Everything one health tick produced, handed to consumers verbatim."""

    timestamp: datetime
    catalog_version: int
    results: List[SatelliteHealth] = Field(default_factory=list)
    summary: FleetHealthSummary = Field(default_factory=FleetHealthSummary)
    propagation_failures: List[PropagationFailure] = Field(default_factory=list)
    telemetry_errors: int = 0
    reasons: Dict[str, int] = Field(default_factory=dict)

    @property
    def skipped(self) -> int:
        return len(self.propagation_failures)
