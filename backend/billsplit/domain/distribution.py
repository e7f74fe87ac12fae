# backend/billsplit/domain/distribution.py
from __future__ import annotations

from typing import List, Sequence

from billsplit.domain.rounding import (
    CURRENCY_DECIMALS,
    RoundingMode,
    finite_or_zero,
    from_minor_units,
    to_minor_units,
)

# Leftovers are compared at this precision so float noise (0.4999999999997 vs
# 0.5) does not break index-order tie-breaking.
_LEFTOVER_PLACES = 6


def distribute_units(
    raw_units: Sequence[float],
    target_units: int,
    mode: RoundingMode | str = RoundingMode.HALF_UP,
) -> List[int]:
    """
    Largest-remainder apportionment in integer minor units.

    raw_units are unrounded amounts already scaled to minor units
    (e.g. 1234.5 for $12.345). Each is rounded independently, then single
    units are added to / taken from the values whose rounding moved them
    furthest from their raw share until the sum equals target_units exactly.

    Ties keep input order. Entries with a raw value of 0 are skipped when
    handing out leftovers, so they stay at 0.
    """
    raw = [finite_or_zero(v) for v in raw_units]
    if not raw:
        return []

    units = [to_minor_units(v, 0, mode) for v in raw]
    diff = int(target_units) - sum(units)
    if diff == 0:
        return units

    leftovers = [round(v - u, _LEFTOVER_PLACES) for v, u in zip(raw, units, strict=True)]
    # A zero raw share stays zero unless every share is zero.
    candidates = [i for i, v in enumerate(raw) if v != 0] or list(range(len(units)))
    if diff > 0:
        order = sorted(candidates, key=lambda i: -leftovers[i])
        step = 1
    else:
        order = sorted(candidates, key=lambda i: leftovers[i])
        step = -1

    for cursor in range(abs(diff)):
        units[order[cursor % len(order)]] += step

    return units


def distribute(
    raw_values: Sequence[float],
    target: float,
    decimals: int = CURRENCY_DECIMALS,
    mode: RoundingMode | str = RoundingMode.HALF_UP,
) -> List[float]:
    """
    Round raw_values to `decimals` places so that they sum exactly to
    round(target, decimals).

    Example:
      distribute([33.333, 33.333, 33.333], 100) -> [33.34, 33.33, 33.33]
    """
    factor = 10 ** decimals
    target_units = to_minor_units(finite_or_zero(target), decimals, mode)
    units = distribute_units([finite_or_zero(v) * factor for v in raw_values], target_units, mode)
    return [from_minor_units(u, decimals) for u in units]
