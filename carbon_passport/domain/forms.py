"""
Passport submission form, one struct per step.

The web flow collects the traveller first, then the trips, then optional
preferences.  Each step validates on its own so the client can show
field-specific messages before moving on; ``PassportSubmission.validate``
runs all of them for the final POST.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .entities import Leg, PassportMetadata
from .enums import CountryCode, CreatedVia, TravelFrequency, TravelPurpose
from .routes import validate_legs

MAX_NAME_LENGTH = 120


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    code: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass(frozen=True)
class TravellerStep:
    name: str
    travel_date: Optional[date]
    country: str = CountryCode.KR.value

    def validate(self) -> list[FieldError]:
        errors: list[FieldError] = []
        if not self.name or not self.name.strip():
            errors.append(FieldError("name", "Name is required", "required"))
        elif len(self.name.strip()) > MAX_NAME_LENGTH:
            errors.append(
                FieldError(
                    "name",
                    f"Name must be at most {MAX_NAME_LENGTH} characters",
                    "too_long",
                )
            )
        if self.travel_date is None:
            errors.append(FieldError("date", "Travel date is required", "required"))
        if self.country not in {c.value for c in CountryCode}:
            errors.append(
                FieldError("country", f"Unsupported country {self.country!r}", "invalid")
            )
        return errors


@dataclass(frozen=True)
class RoutesStep:
    legs: tuple[Leg, ...] = ()
    max_legs: Optional[int] = None

    def validate(self) -> list[FieldError]:
        return [
            FieldError("routes", message, "invalid")
            for message in validate_legs(self.legs, self.max_legs, per_leg=False)
        ]


@dataclass(frozen=True)
class PreferencesStep:
    frequency: Optional[str] = None
    purpose: Optional[str] = None
    esg_interest: bool = False

    def validate(self) -> list[FieldError]:
        errors: list[FieldError] = []
        if self.frequency and self.frequency not in {f.value for f in TravelFrequency}:
            errors.append(
                FieldError("frequency", f"Unknown frequency {self.frequency!r}", "invalid")
            )
        if self.purpose and self.purpose not in {p.value for p in TravelPurpose}:
            errors.append(
                FieldError("purpose", f"Unknown purpose {self.purpose!r}", "invalid")
            )
        return errors


@dataclass(frozen=True)
class PassportSubmission:
    traveller: TravellerStep
    routes: RoutesStep
    preferences: PreferencesStep = field(default_factory=PreferencesStep)
    created_via: str = CreatedVia.WEB_FORM.value

    def validate(self) -> list[FieldError]:
        return (
            self.traveller.validate()
            + self.routes.validate()
            + self.preferences.validate()
        )

    def metadata(self) -> PassportMetadata:
        return PassportMetadata(
            frequency=self.preferences.frequency,
            purpose=self.preferences.purpose,
            esg_interest=self.preferences.esg_interest,
            created_via=self.created_via,
        )
