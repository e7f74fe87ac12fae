# backend/billsplit/domain/rounding.py
from __future__ import annotations

import math
from enum import Enum
from typing import Callable

# Nudge applied to scaled magnitudes so that 0.285 * 100 == 28.499999... still
# rounds like the decimal literal the user typed.
EPSILON = 1e-10

# A scaled fraction this close to .5 is treated as an exact half.
_HALF_TOLERANCE = 1e-9

CURRENCY_DECIMALS = 2


class RoundingMode(str, Enum):
    HALF_UP = "half-up"
    BANKERS = "bankers"


Rounder = Callable[..., float]


def _clean_zero(value: float) -> float:
    # -0.0 == 0 is True, so this also strips negative zero.
    return 0.0 if value == 0 else value


def round_half_up(value: float, decimals: int = CURRENCY_DECIMALS) -> float:
    """
    Round half away from zero at `decimals` places.

    Examples:
      round_half_up(2.675) -> 2.68
      round_half_up(-1.005) -> -1.01
    """
    if not math.isfinite(value):
        return value

    factor = 10 ** decimals
    scaled = value * factor
    sign = -1 if scaled < 0 else 1
    nudged = abs(scaled) + EPSILON
    floor = math.floor(nudged)
    adjusted = floor + 1 if nudged - floor >= 0.5 else floor
    return _clean_zero(sign * adjusted / factor)


def round_bankers(value: float, decimals: int = CURRENCY_DECIMALS) -> float:
    """
    Round half to even at `decimals` places.

    Exact halves go to the nearest even digit so repeated rounding of
    half-cent remainders carries no upward bias.
    """
    if not math.isfinite(value):
        return value

    factor = 10 ** decimals
    scaled = value * factor
    sign = -1 if scaled < 0 else 1
    magnitude = abs(scaled)
    floor = math.floor(magnitude + EPSILON)
    fraction = magnitude - floor

    if abs(fraction - 0.5) < _HALF_TOLERANCE:
        adjusted = floor if floor % 2 == 0 else floor + 1
    else:
        adjusted = floor + 1 if fraction > 0.5 else floor
    return _clean_zero(sign * adjusted / factor)


def round_to_step(value: float, step: float = 0.1) -> float:
    """
    Round to the nearest multiple of `step` (e.g. 0.1 for cash settlement).
    Does not round to currency decimals; compose with a decimal rounder.
    """
    if not math.isfinite(value) or not math.isfinite(step) or step <= 0:
        return value
    return math.floor(value / step + 0.5) * step


def pick_rounder(mode: RoundingMode | str) -> Rounder:
    if RoundingMode(mode) is RoundingMode.BANKERS:
        return round_bankers
    return round_half_up


def to_minor_units(
    value: float,
    decimals: int = CURRENCY_DECIMALS,
    mode: RoundingMode | str = RoundingMode.HALF_UP,
) -> int:
    """
    Convert an amount to integer minor units (cents for decimals=2).
    Raises ValueError for NaN/infinity, which have no unit representation.
    """
    if not math.isfinite(value):
        raise ValueError(f"cannot convert non-finite value to minor units: {value}")
    return int(pick_rounder(mode)(value * 10 ** decimals, 0))


def from_minor_units(units: int, decimals: int = CURRENCY_DECIMALS) -> float:
    return _clean_zero(units / 10 ** decimals)


def finite_or_zero(value: object) -> float:
    """Coerce user-supplied numbers; anything non-numeric or non-finite becomes 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def non_negative(value: object) -> float:
    number = finite_or_zero(value)
    return number if number > 0 else 0.0
