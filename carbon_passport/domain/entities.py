"""
Domain entities and value objects.

Patterns used
-------------
- ``CO2Emissions`` never stores ``saved``: it is always derived from the
  car and train figures it was built from.
- ``Station`` and ``Coordinate`` are immutable; the station directory is
  loaded once and shared between concurrent requests.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from .enums import FALLBACK_LOCALE, PRIMARY_LOCALE, CreatedVia, ImpactTier
from .errors import InvalidCoordinate, InvariantViolation
from .numbers import round_half_away

# Stored savings may differ from car - train by float noise only
_SNAPSHOT_TOLERANCE = 0.005


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def validate(self) -> "Coordinate":
        """Return self if both components are finite and in range, else raise."""
        lat, lng = self.latitude, self.longitude
        if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
            raise InvalidCoordinate("Coordinates must be numbers")
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise InvalidCoordinate("Coordinates must be finite numbers")
        if not -90 <= lat <= 90:
            raise InvalidCoordinate(f"Latitude must be between -90 and 90, got {lat}")
        if not -180 <= lng <= 180:
            raise InvalidCoordinate(
                f"Longitude must be between -180 and 180, got {lng}"
            )
        return self


@dataclass(frozen=True)
class CO2Emissions:
    """Emission masses in kg for one distance; ``saved`` is car minus train."""

    train: float = 0.0
    car: float = 0.0
    bus: float = 0.0
    airplane: float = 0.0

    @property
    def saved(self) -> float:
        return round_half_away(self.car - self.train)

    @classmethod
    def from_snapshot(
        cls,
        *,
        train: float,
        car: float,
        bus: float,
        airplane: float,
        saved: float,
    ) -> "CO2Emissions":
        """Rebuild the value stored at route creation time."""
        emissions = cls(train=train, car=car, bus=bus, airplane=airplane)
        if abs(emissions.saved - saved) > _SNAPSHOT_TOLERANCE:
            raise InvariantViolation(
                f"Stored co2_saved={saved} does not equal car - train "
                f"({car} - {train})"
            )
        return emissions

    def as_dict(self) -> dict[str, float]:
        return {
            "train": self.train,
            "car": self.car,
            "bus": self.bus,
            "airplane": self.airplane,
            "saved": self.saved,
        }


@dataclass(frozen=True)
class Station:
    code: str
    names: Mapping[str, str]
    coordinate: Coordinate
    region: Optional[str] = None
    is_primary_hub: bool = False
    is_active: bool = True

    def __post_init__(self) -> None:
        for locale in (PRIMARY_LOCALE, FALLBACK_LOCALE):
            if not self.names.get(locale.value):
                raise ValueError(
                    f"Station {self.code} is missing its {locale.value} name"
                )

    def name(self, locale: str) -> str:
        """Display name in *locale*, falling back to English."""
        return self.names.get(locale) or self.names[FALLBACK_LOCALE.value]


# ── Entities ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Leg:
    """A user-supplied origin -> destination request, before validation."""

    origin: str
    destination: str
    distance_override: Optional[float] = None


@dataclass(frozen=True)
class Route:
    origin_code: str
    destination_code: str
    distance: float
    emissions: CO2Emissions
    sequence_order: int
    passport_id: Optional[str] = None
    id: Optional[str] = None


@dataclass
class PassportMetadata:
    frequency: Optional[str] = None
    purpose: Optional[str] = None
    esg_interest: bool = False
    created_via: str = CreatedVia.WEB_FORM.value
    version: str = "1.0"

    def as_dict(self) -> dict[str, Any]:
        return {
            "frequency": self.frequency,
            "purpose": self.purpose,
            "esgInterest": self.esg_interest,
            "createdVia": self.created_via,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "PassportMetadata":
        raw = raw or {}
        return cls(
            frequency=raw.get("frequency"),
            purpose=raw.get("purpose"),
            esg_interest=bool(raw.get("esgInterest", raw.get("esg_interest", False))),
            created_via=raw.get("createdVia", raw.get("created_via", CreatedVia.WEB_FORM.value)),
            version=str(raw.get("version", "1.0")),
        )


@dataclass
class Passport:
    id: Optional[str] = None
    traveler_name: str = ""
    country: str = "KR"
    photo_url: Optional[str] = None
    travel_date: Optional[date] = None
    share_hash: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    metadata: PassportMetadata = field(default_factory=PassportMetadata)
    routes: list[Route] = field(default_factory=list)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass
class SurveyResponse:
    passport_id: str
    responses: dict[str, str] = field(default_factory=dict)
    completed: bool = False
    completed_at: Optional[datetime] = None


# ── Display projection ────────────────────────────────────────────────


@dataclass(frozen=True)
class EnvironmentalImpact:
    level: ImpactTier
    description: str
    badge: str
    color: str


@dataclass(frozen=True)
class SavingsComparison:
    vs_car: float
    vs_bus: float
    vs_airplane: float


@dataclass(frozen=True)
class RouteDisplayRow:
    from_code: str
    to_code: str
    from_name: str
    to_name: str
    distance: float
    co2_saved: float
    co2_train: float
    savings_percentage: int
    sequence_order: int


@dataclass(frozen=True)
class PassportDisplayData:
    id: Optional[str]
    name: str
    country: str
    country_code: str
    issue_date: str
    photo_url: Optional[str]
    total_distance: float
    total_co2_saved: float
    total_co2_train: float
    trip_count: int
    tree_equivalent: int
    environmental_impact: EnvironmentalImpact
    savings_comparison: SavingsComparison
    routes: tuple[RouteDisplayRow, ...]
    share_hash: Optional[str]
    share_url: Optional[str]
    barcode_data: Optional[str]
