"""
Distance calculation using the Haversine formula.

Assumption
----------
Distances are great-circle approximations between station coordinates,
not track distances along the rail network.  They are used as the input
of the emissions model, so the unrounded value is what flows through the
pipeline; rounding happens only at the display boundary.

Complexity: O(1) per call.
"""

from __future__ import annotations

import math
from typing import Sequence

from .entities import Coordinate

EARTH_RADIUS_KM = 6_371.0

COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Validated, unrounded distance between two coordinates.

    The haversine term is symmetric in its arguments, so
    ``distance_km(a, b) == distance_km(b, a)`` holds exactly.
    """
    a.validate()
    b.validate()
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def display_distance_km(a: Coordinate, b: Coordinate) -> int:
    """Distance rounded to the nearest whole kilometre, for display only."""
    return int(math.floor(distance_km(a, b) + 0.5))


def path_distance_km(points: Sequence[Coordinate]) -> float:
    """Sum of hop distances along *points* in order; 0 for fewer than two."""
    return sum(
        distance_km(points[i], points[i + 1]) for i in range(len(points) - 1)
    )


def bearing(a: Coordinate, b: Coordinate) -> float:
    """Initial great-circle bearing from *a* to *b* in degrees ``[0, 360)``."""
    a.validate()
    b.validate()
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlng = math.radians(b.longitude - a.longitude)

    y = math.sin(dlng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(
        lat2
    ) * math.cos(dlng)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def compass_direction(bearing_deg: float) -> str:
    """Map a bearing to one of the eight compass points."""
    return COMPASS_POINTS[int(math.floor(bearing_deg / 45.0 + 0.5)) % 8]


def midpoint(a: Coordinate, b: Coordinate) -> Coordinate:
    """Great-circle midpoint between *a* and *b*."""
    a.validate()
    b.validate()
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    lng1 = math.radians(a.longitude)
    dlng = math.radians(b.longitude - a.longitude)

    bx = math.cos(lat2) * math.cos(dlng)
    by = math.cos(lat2) * math.sin(dlng)
    lat3 = math.atan2(
        math.sin(lat1) + math.sin(lat2),
        math.sqrt((math.cos(lat1) + bx) ** 2 + by**2),
    )
    lng3 = lng1 + math.atan2(by, math.cos(lat1) + bx)

    # Normalise longitude back into [-180, 180]
    lng_deg = (math.degrees(lng3) + 540.0) % 360.0 - 180.0
    return Coordinate(latitude=math.degrees(lat3), longitude=lng_deg)
