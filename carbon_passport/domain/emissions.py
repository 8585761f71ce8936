"""
Emissions Model
===============

Formula
-------
emission(mode) = distance_km x FACTOR[mode]        (kg CO2)
saved          = emission(car) - emission(train)

One factor set applies to the whole deployment:

=========  ==========
mode       kg CO2/km
=========  ==========
train      0.041
car        0.171
bus        0.089
airplane   0.285
=========  ==========

Each mode is rounded to two decimals independently (half away from zero);
``saved`` is derived from the rounded car and train figures, so the stored
snapshot always satisfies ``saved == car - train``.

Complexity: O(1) per call.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from .entities import CO2Emissions, Route, SavingsComparison
from .enums import TransportMode
from .errors import InvalidDistance
from .numbers import round_half_away

logger = logging.getLogger(__name__)

TRAIN_KG_PER_KM = 0.041
CAR_KG_PER_KM = 0.171
BUS_KG_PER_KM = 0.089
AIRPLANE_KG_PER_KM = 0.285

EMISSION_FACTORS: dict[TransportMode, float] = {
    TransportMode.TRAIN: TRAIN_KG_PER_KM,
    TransportMode.CAR: CAR_KG_PER_KM,
    TransportMode.BUS: BUS_KG_PER_KM,
    TransportMode.AIRPLANE: AIRPLANE_KG_PER_KM,
}

# Average CO2 absorbed by one mature tree over a year
CO2_KG_PER_TREE_PER_YEAR = 22


def _check_distance(distance_km: float) -> float:
    if isinstance(distance_km, bool) or not isinstance(distance_km, (int, float)):
        raise InvalidDistance("Distance must be a number")
    if not math.isfinite(distance_km):
        raise InvalidDistance("Distance must be a finite number")
    if distance_km < 0:
        raise InvalidDistance(f"Distance cannot be negative, got {distance_km}")
    return float(distance_km)


def emission_for_mode(distance_km: float, mode: TransportMode | str) -> float:
    """CO2 in kg for a single transport mode, rounded to two decimals."""
    distance_km = _check_distance(distance_km)
    return round_half_away(distance_km * EMISSION_FACTORS[TransportMode(mode)])


def emissions_for(distance_km: float) -> CO2Emissions:
    """CO2 in kg for every mode over *distance_km*."""
    distance_km = _check_distance(distance_km)
    emissions = CO2Emissions(
        train=round_half_away(distance_km * TRAIN_KG_PER_KM),
        car=round_half_away(distance_km * CAR_KG_PER_KM),
        bus=round_half_away(distance_km * BUS_KG_PER_KM),
        airplane=round_half_away(distance_km * AIRPLANE_KG_PER_KM),
    )
    if emissions.saved < 0:
        logger.warning(
            "Negative CO2 saving %.2f kg for %.2f km: train factor exceeds car factor",
            emissions.saved,
            distance_km,
        )
    return emissions


def trees_equivalent(co2_kg: float) -> int:
    """Trees needed to absorb *co2_kg* within one year (rounded up)."""
    if co2_kg <= 0:
        return 0
    return math.ceil(co2_kg / CO2_KG_PER_TREE_PER_YEAR)


def savings_percentage(
    distance_km: float, compare_mode: TransportMode | str = TransportMode.CAR
) -> float:
    """
    Share of *compare_mode* emissions avoided by the train, in percent.

    Computed from the unrounded factor products; only the result is rounded.
    """
    distance_km = _check_distance(distance_km)
    train = distance_km * TRAIN_KG_PER_KM
    other = distance_km * EMISSION_FACTORS[TransportMode(compare_mode)]
    if other == 0:
        return 0.0
    return round_half_away((other - train) / other * 100)


def _percent_below(total_other: float, total_train: float) -> float:
    if total_other <= 0:
        return 0.0
    return round_half_away((total_other - total_train) / total_other * 100, 0)


def savings_comparison(routes: Iterable[Route]) -> SavingsComparison:
    """Percent reduction of the train against every other mode, over *routes*."""
    train = car = bus = airplane = 0.0
    for route in routes:
        train += route.emissions.train
        car += route.emissions.car
        bus += route.emissions.bus
        airplane += route.emissions.airplane
    return SavingsComparison(
        vs_car=_percent_below(car, train),
        vs_bus=_percent_below(bus, train),
        vs_airplane=_percent_below(airplane, train),
    )


def format_co2(co2_kg: float) -> str:
    if co2_kg < 0.01:
        return "< 0.01 kg"
    if co2_kg < 1:
        return f"{int(round_half_away(co2_kg * 1000, 0))} g"
    if co2_kg < 1000:
        return f"{co2_kg:.2f} kg"
    return f"{co2_kg / 1000:.2f} t"
