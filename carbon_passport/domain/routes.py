"""
Route Assembler
===============

Turns user-supplied legs into enriched ``Route`` records.

Algorithm, per leg, in input order
----------------------------------
1. Resolve both endpoints through the station directory (exact lookup).
2. Reject legs whose origin and destination are the same station.
3. Compute the unrounded great-circle distance (or take the validated
   override the caller supplied).
4. Compute emissions from the *unrounded* distance; every mode is rounded
   on its own inside the emissions model.
5. Assign ``sequence_order`` from the count of legs accepted so far.

Failed legs are collected as messages and skipped; one bad leg never
aborts the batch.  ``sequence_order`` is zero-based and contiguous over
the accepted legs.

Totals
------
``total_distance`` is the sum of the two-decimal route distances and
``total_emissions = emissions_for(total_distance)``, the same function a
single-leg display uses.

Complexity: O(L x S) with L legs and S stations (name lookups scan the
directory; code lookups are O(1)).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .distance import distance_km
from .emissions import emissions_for, trees_equivalent
from .entities import CO2Emissions, Leg, Route
from .errors import DomainValidationError
from .numbers import round_half_away
from .stations import DEFAULT_DIRECTORY, StationDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssemblyResult:
    routes: tuple[Route, ...]
    total_distance: float
    total_emissions: CO2Emissions
    errors: tuple[str, ...] = ()
    leg_count: int = 0

    @property
    def succeeded(self) -> bool:
        return bool(self.routes)

    @property
    def partial(self) -> bool:
        return bool(self.routes) and bool(self.errors)

    def summary(self) -> str:
        return f"{len(self.routes)} of {self.leg_count} routes added"


def assemble(
    legs: Sequence[Leg], directory: StationDirectory = DEFAULT_DIRECTORY
) -> AssemblyResult:
    routes: list[Route] = []
    errors: list[str] = []

    for index, leg in enumerate(legs):
        label = f"Route {index + 1}"
        try:
            origin = directory.resolve(leg.origin)
            destination = directory.resolve(leg.destination)
        except DomainValidationError as exc:
            errors.append(f"{label}: {exc}")
            logger.warning(
                "Rejected leg %d (%s -> %s): %s",
                index, leg.origin, leg.destination, exc,
            )
            continue

        if origin.code == destination.code:
            errors.append(
                f"{label}: origin and destination are the same station "
                f"({origin.code})"
            )
            logger.warning("Rejected leg %d: same station %s", index, origin.code)
            continue

        try:
            raw_distance = (
                leg.distance_override
                if leg.distance_override is not None
                else distance_km(origin.coordinate, destination.coordinate)
            )
            emissions = emissions_for(raw_distance)
        except DomainValidationError as exc:
            errors.append(f"{label}: {exc}")
            logger.warning("Rejected leg %d: %s", index, exc)
            continue

        routes.append(
            Route(
                origin_code=origin.code,
                destination_code=destination.code,
                distance=round_half_away(raw_distance),
                emissions=emissions,
                sequence_order=len(routes),
            )
        )

    total_distance = round_half_away(sum(r.distance for r in routes))
    return AssemblyResult(
        routes=tuple(routes),
        total_distance=total_distance,
        total_emissions=emissions_for(total_distance),
        errors=tuple(errors),
        leg_count=len(legs),
    )


def validate_legs(
    legs: Sequence[Leg],
    max_legs: Optional[int] = None,
    *,
    per_leg: bool = True,
) -> list[str]:
    """
    Structural checks run before calling ``assemble``.

    Returns a list of messages; empty means the legs are well formed (they
    may still name unknown stations).  With ``per_leg=False`` only the list
    itself is checked (empty, too long); problems with individual legs are
    left to ``assemble``, which reports them without rejecting the batch.
    """
    if not legs:
        return ["At least one route is required"]
    errors: list[str] = []
    if max_legs is not None and len(legs) > max_legs:
        errors.append(f"At most {max_legs} routes are allowed per passport")
    if not per_leg:
        return errors
    for index, leg in enumerate(legs):
        label = f"Route {index + 1}"
        if not (leg.origin or "").strip() or not (leg.destination or "").strip():
            errors.append(f"{label}: both origin and destination are required")
        elif leg.origin.strip().casefold() == leg.destination.strip().casefold():
            errors.append(f"{label}: origin and destination are the same station")
    return errors


@dataclass(frozen=True)
class RouteStatistics:
    total_routes: int = 0
    total_distance: float = 0.0
    average_distance: float = 0.0
    total_co2_saved: float = 0.0
    trees_equivalent: int = 0
    longest: Optional[Route] = None
    shortest: Optional[Route] = None
    station_codes: tuple[str, ...] = field(default_factory=tuple)


def route_statistics(routes: Iterable[Route]) -> RouteStatistics:
    routes = list(routes)
    if not routes:
        return RouteStatistics()

    total_distance = sum(r.distance for r in routes)
    total_saved = round_half_away(sum(r.emissions.saved for r in routes))
    by_distance = sorted(routes, key=lambda r: r.distance)

    codes: list[str] = []
    for route in sorted(routes, key=lambda r: r.sequence_order):
        for code in (route.origin_code, route.destination_code):
            if code not in codes:
                codes.append(code)

    return RouteStatistics(
        total_routes=len(routes),
        total_distance=round_half_away(total_distance),
        average_distance=round_half_away(total_distance / len(routes)),
        total_co2_saved=total_saved,
        trees_equivalent=trees_equivalent(total_saved),
        longest=by_distance[-1],
        shortest=by_distance[0],
        station_codes=tuple(codes),
    )
