"""Rounding helpers shared by the emissions model and the aggregator."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_away(value: float, places: int = 2) -> float:
    """
    Round *value* to *places* decimals, halves away from zero.

    Goes through ``repr`` so that ``1.005`` rounds to ``1.01`` the way a
    human reads the number, not the way the binary float is stored.
    """
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded)
