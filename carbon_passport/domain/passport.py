"""
Passport Aggregator
===================

Folds a passport and its stored routes into the display projection that the
passport document is rendered from.

``to_display`` is pure: it reads the route snapshots, never the clock, the
database or any stored aggregate, so calling it twice on the same input gives
the same output.

Environmental impact tiers (kg CO2 saved)
-----------------------------------------
=============  ============
saved          tier
=============  ============
< 5            low
5 .. < 20      medium
20 .. < 50     high
>= 50          excellent
=============  ============
"""

from __future__ import annotations

import secrets
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from .emissions import savings_comparison, trees_equivalent
from .entities import (
    CO2Emissions,
    EnvironmentalImpact,
    Passport,
    PassportDisplayData,
    PassportMetadata,
    Route,
    RouteDisplayRow,
)
from .enums import FALLBACK_LOCALE, ImpactTier, Locale
from .numbers import round_half_away
from .stations import DEFAULT_DIRECTORY, StationDirectory

SHARE_HASH_BYTES = 16

# Lower bound (inclusive) of each tier, highest first
IMPACT_THRESHOLDS: tuple[tuple[float, ImpactTier], ...] = (
    (50.0, ImpactTier.EXCELLENT),
    (20.0, ImpactTier.HIGH),
    (5.0, ImpactTier.MEDIUM),
)

_IMPACT_DETAILS: dict[ImpactTier, tuple[str, str, str]] = {
    ImpactTier.LOW: (
        "A first step for the planet. Plan more train trips!",
        "🌿",
        "#10B981",
    ),
    ImpactTier.MEDIUM: (
        "Good contribution. Keep choosing low-carbon transport.",
        "♻️",
        "#059669",
    ),
    ImpactTier.HIGH: (
        "High contribution. You actively travel the green way.",
        "🌱",
        "#047857",
    ),
    ImpactTier.EXCELLENT: (
        "Outstanding contribution. An excellent choice for the planet.",
        "🌍",
        "#065F46",
    ),
}

COUNTRY_NAMES: dict[str, dict[str, str]] = {
    "KR": {"ko": "대한민국", "en": "Republic of Korea", "ja": "大韓民国", "zh": "韩国"},
    "US": {"ko": "미국", "en": "United States", "ja": "アメリカ合衆国", "zh": "美国"},
    "JP": {"ko": "일본", "en": "Japan", "ja": "日本", "zh": "日本"},
    "CN": {"ko": "중국", "en": "China", "ja": "中国", "zh": "中国"},
}

_DATE_FORMATS = {
    Locale.KO.value: "%Y.%m.%d",
    Locale.EN.value: "%Y-%m-%d",
    Locale.JA.value: "%Y/%m/%d",
    Locale.ZH.value: "%Y-%m-%d",
}


def impact_tier(total_co2_saved: float) -> ImpactTier:
    for lower_bound, tier in IMPACT_THRESHOLDS:
        if total_co2_saved >= lower_bound:
            return tier
    return ImpactTier.LOW


def environmental_impact(total_co2_saved: float) -> EnvironmentalImpact:
    tier = impact_tier(total_co2_saved)
    description, badge, color = _IMPACT_DETAILS[tier]
    return EnvironmentalImpact(
        level=tier, description=description, badge=badge, color=color
    )


def route_savings_percentage(emissions: CO2Emissions) -> int:
    """Saved CO2 as a whole-number percentage of the car baseline."""
    if emissions.car == 0:
        return 0
    return int(round_half_away(emissions.saved / emissions.car * 100, 0))


def generate_share_hash() -> str:
    """Unguessable URL-safe token (128 random bits)."""
    return secrets.token_urlsafe(SHARE_HASH_BYTES)


def share_url(base_url: str, locale: str, share_hash: str) -> str:
    return f"{base_url.rstrip('/')}/{locale}/passport/view/{share_hash}"


def barcode_data(share_hash: str) -> str:
    """Payload handed to the barcode renderer."""
    return f"CP-{share_hash}"


def qr_payload(base_url: str, locale: str, share_hash: str) -> str:
    """The QR code on the passport encodes the public share link."""
    return share_url(base_url, locale, share_hash)


def country_name(code: str, locale: str) -> str:
    names = COUNTRY_NAMES.get(code)
    if not names:
        return code
    return names.get(locale) or names[FALLBACK_LOCALE.value]


def format_issue_date(value: date | datetime | None, locale: str) -> str:
    if value is None:
        return ""
    return value.strftime(_DATE_FORMATS.get(locale, "%Y-%m-%d"))


def _station_name(code: str, locale: str, directory: StationDirectory) -> str:
    station = directory.find_by_code(code)
    return station.name(locale) if station else code


def to_display(
    passport: Passport,
    routes: Optional[Sequence[Route]] = None,
    *,
    locale: str = Locale.KO.value,
    base_url: str = "",
    directory: StationDirectory = DEFAULT_DIRECTORY,
) -> PassportDisplayData:
    """Derive the passport document view from *passport* and its routes."""
    if routes is None:
        routes = passport.routes
    ordered = sorted(routes, key=lambda r: r.sequence_order)

    total_distance = round_half_away(sum(r.distance for r in ordered))
    total_saved = round_half_away(sum(r.emissions.saved for r in ordered))
    total_train = round_half_away(sum(r.emissions.train for r in ordered))

    rows = tuple(
        RouteDisplayRow(
            from_code=r.origin_code,
            to_code=r.destination_code,
            from_name=_station_name(r.origin_code, locale, directory),
            to_name=_station_name(r.destination_code, locale, directory),
            distance=r.distance,
            co2_saved=r.emissions.saved,
            co2_train=r.emissions.train,
            savings_percentage=route_savings_percentage(r.emissions),
            sequence_order=r.sequence_order,
        )
        for r in ordered
    )

    link = (
        share_url(base_url, locale, passport.share_hash)
        if passport.share_hash
        else None
    )
    return PassportDisplayData(
        id=passport.id,
        name=passport.traveler_name,
        country=country_name(passport.country, locale),
        country_code=passport.country,
        issue_date=format_issue_date(passport.travel_date, locale),
        photo_url=passport.photo_url,
        total_distance=total_distance,
        total_co2_saved=total_saved,
        total_co2_train=total_train,
        trip_count=len(ordered),
        tree_equivalent=trees_equivalent(total_saved),
        environmental_impact=environmental_impact(total_saved),
        savings_comparison=savings_comparison(ordered),
        routes=rows,
        share_hash=passport.share_hash,
        share_url=link,
        barcode_data=barcode_data(passport.share_hash) if passport.share_hash else None,
    )


def new_passport(
    *,
    traveler_name: str,
    country: str,
    travel_date: date,
    metadata: PassportMetadata,
    now: datetime,
    expiry_days: int,
    photo_url: Optional[str] = None,
    share_hash: Optional[str] = None,
    passport_id: Optional[str] = None,
) -> Passport:
    """Build a not-yet-persisted passport aggregate for a new submission."""
    return Passport(
        id=passport_id,
        traveler_name=traveler_name.strip(),
        country=country,
        photo_url=photo_url,
        travel_date=travel_date,
        share_hash=share_hash or generate_share_hash(),
        expires_at=now + timedelta(days=expiry_days),
        created_at=now,
        metadata=metadata,
    )
