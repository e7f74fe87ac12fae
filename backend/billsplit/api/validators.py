from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional

from billsplit.domain.models import (
    Assignment,
    EvenShare,
    FeeRates,
    LineItem,
    ModelValidationError,
    Party,
    SplitOptions,
    WeightedShare,
)
from billsplit.domain.money import CURRENCY_SYMBOLS
from billsplit.domain.rounding import RoundingMode


class ApiValidationError(ValueError):
    """Raised when request payload validation fails."""


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_number(data: Mapping[str, Any], key: str, *, default: Optional[float] = None) -> float:
    value = data.get(key, default)
    if value is None:
        raise ApiValidationError(f"Missing field: {key}")
    if not _is_number(value) or not math.isfinite(value):
        raise ApiValidationError(f"'{key}' must be a finite number.")
    return float(value)


def parse_rate(data: Mapping[str, Any], key: str, *, default: float = 0.0) -> float:
    rate = parse_number(data, key, default=default)
    if rate < 0:
        raise ApiValidationError(f"'{key}' must be >= 0.")
    return rate


def parse_rates(data: Mapping[str, Any], *, defaults: FeeRates) -> FeeRates:
    """Explicit rates in the payload win over the (country) defaults."""
    return FeeRates(
        service_charge_rate=parse_rate(data, "service_charge_rate", default=defaults.service_charge_rate),
        tax_rate=parse_rate(data, "tax_rate", default=defaults.tax_rate),
    )


def parse_mode(data: Mapping[str, Any], *, default_mode: str) -> RoundingMode:
    try:
        return RoundingMode(data.get("rounding_mode", default_mode))
    except ValueError:
        raise ApiValidationError("'rounding_mode' must be 'half-up' or 'bankers'.") from None


def parse_options(data: Mapping[str, Any], *, default_mode: str, default_currency: str) -> SplitOptions:
    mode = parse_mode(data, default_mode=default_mode)

    step = data.get("round_to_step")
    if step is not None and (not _is_number(step) or not math.isfinite(step) or step < 0):
        raise ApiValidationError("'round_to_step' must be a number >= 0.")

    currency = data.get("currency", default_currency)
    if currency not in CURRENCY_SYMBOLS:
        raise ApiValidationError(f"Unsupported currency: {currency}")

    return SplitOptions(mode=mode, round_to_step=step or None, currency=currency)


def parse_parties(raw_parties: object, *, max_parties: int) -> List[Party]:
    if not isinstance(raw_parties, list) or not raw_parties:
        raise ApiValidationError("'parties' must be a non-empty list.")
    if len(raw_parties) > max_parties:
        raise ApiValidationError(f"At most {max_parties} parties are supported.")

    parties: List[Party] = []
    seen: set[str] = set()
    for idx, raw in enumerate(raw_parties):
        if not isinstance(raw, dict):
            raise ApiValidationError(f"Party at index {idx} must be an object.")
        weight = raw.get("weight", 1)
        if not _is_number(weight):
            raise ApiValidationError(f"Party at index {idx} must have a numeric 'weight'.")
        name = raw.get("name", "")
        if not isinstance(name, str):
            raise ApiValidationError(f"Party at index {idx} has a non-string 'name'.")
        try:
            party = Party(id=raw.get("id"), weight=float(weight), name=name.strip())
        except ModelValidationError as e:
            raise ApiValidationError(f"Party at index {idx}: {e}") from e
        if party.id in seen:
            raise ApiValidationError("Party ids must be unique.")
        seen.add(party.id)
        parties.append(party)

    return parties


def _parse_assignment(raw: object, item_idx: int) -> Assignment:
    if not isinstance(raw, dict):
        raise ApiValidationError(f"Assignments of item {item_idx} must be objects.")
    percent = raw.get("share_percent")
    try:
        if percent is None:
            return EvenShare(party_id=raw.get("party_id"))
        if not _is_number(percent):
            raise ApiValidationError(f"Item {item_idx}: 'share_percent' must be a number.")
        return WeightedShare(party_id=raw.get("party_id"), percent=float(percent))
    except ModelValidationError as e:
        raise ApiValidationError(f"Item {item_idx}: {e}") from e


def parse_items(raw_items: object, *, max_items: int) -> List[LineItem]:
    """
    Structural validation only. Odd numbers (negative quantity, NaN price)
    pass through; the split engine clamps them. Unknown party ids in
    assignments are left for the engine to ignore.
    """
    if not isinstance(raw_items, list):
        raise ApiValidationError("'items' must be a list.")
    if len(raw_items) > max_items:
        raise ApiValidationError(f"At most {max_items} items are supported.")

    items: List[LineItem] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ApiValidationError(f"Item at index {idx} must be an object.")

        unit_price = raw.get("unit_price")
        quantity = raw.get("quantity", 1)
        if not _is_number(unit_price):
            raise ApiValidationError(f"Item at index {idx} must include a numeric 'unit_price'.")
        if not _is_number(quantity):
            raise ApiValidationError(f"Item at index {idx} has a non-numeric 'quantity'.")

        raw_assignments = raw.get("assignments", [])
        if not isinstance(raw_assignments, list):
            raise ApiValidationError(f"Item at index {idx}: 'assignments' must be a list.")

        name = raw.get("name", "")
        try:
            items.append(
                LineItem(
                    id=raw.get("id"),
                    name=name if isinstance(name, str) else "",
                    quantity=quantity,
                    unit_price=unit_price,
                    assignments=tuple(_parse_assignment(a, idx) for a in raw_assignments),
                )
            )
        except ModelValidationError as e:
            raise ApiValidationError(f"Item at index {idx}: {e}") from e

    return items


def parse_weights(raw_weights: object) -> Dict[str, float]:
    if raw_weights is None:
        return {}
    if not isinstance(raw_weights, dict):
        raise ApiValidationError("'weights' must be an object mapping party_id -> weight.")
    weights: Dict[str, float] = {}
    for pid, weight in raw_weights.items():
        if not _is_number(weight):
            raise ApiValidationError(f"Weight for party {pid} must be a number.")
        weights[pid] = float(weight)
    return weights
