# backend/billsplit/domain/models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from billsplit.domain.rounding import RoundingMode, non_negative


class ModelValidationError(ValueError):
    """Raised when domain models fail basic structural validation."""


def _require_id(value: object, label: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ModelValidationError(f"{label} must be a non-empty string")


@dataclass(frozen=True)
class Party:
    """
    Someone sharing the bill.

    weight is a relative proportion (60/40 and 0.6/0.4 are the same split),
    not a percentage. Zero-weight parties receive nothing allocated by weight
    but can still be assigned items explicitly.
    """
    id: str
    weight: float = 1.0
    name: str = ""

    def __post_init__(self) -> None:
        _require_id(self.id, "Party.id")


@dataclass(frozen=True)
class EvenShare:
    """Item assignment splitting evenly with the other named parties."""
    party_id: str

    def __post_init__(self) -> None:
        _require_id(self.party_id, "EvenShare.party_id")


@dataclass(frozen=True)
class WeightedShare:
    """Item assignment carrying an explicit share percent."""
    party_id: str
    percent: float

    def __post_init__(self) -> None:
        _require_id(self.party_id, "WeightedShare.party_id")


Assignment = Union[EvenShare, WeightedShare]


@dataclass(frozen=True)
class LineItem:
    """
    A receipt line. Quantity and unit price come from user input or OCR and
    are clamped to finite values >= 0 when the line total is computed.
    """
    id: str
    unit_price: float
    quantity: float = 1
    name: str = ""
    assignments: Tuple[Assignment, ...] = ()

    def __post_init__(self) -> None:
        _require_id(self.id, "LineItem.id")
        if not isinstance(self.assignments, tuple):
            object.__setattr__(self, "assignments", tuple(self.assignments))
        for assignment in self.assignments:
            if not isinstance(assignment, (EvenShare, WeightedShare)):
                raise ModelValidationError("LineItem.assignments must hold EvenShare or WeightedShare")

    @property
    def line_total(self) -> float:
        return non_negative(self.quantity) * non_negative(self.unit_price)

    def to_dict(self) -> Dict[str, Any]:
        assignments = []
        for a in self.assignments:
            entry: Dict[str, Any] = {"party_id": a.party_id}
            if isinstance(a, WeightedShare):
                entry["share_percent"] = a.percent
            assignments.append(entry)
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "assignments": assignments,
        }


@dataclass(frozen=True)
class FeeRates:
    """service_charge = base * service_charge_rate; tax = (base + service_charge) * tax_rate."""
    service_charge_rate: float = 0.0
    tax_rate: float = 0.0


@dataclass(frozen=True)
class SplitOptions:
    mode: RoundingMode = RoundingMode.HALF_UP
    # e.g. 0.1 to settle each party's total to the nearest 10 cents
    round_to_step: Optional[float] = None
    currency: str = "SGD"

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", RoundingMode(self.mode))
        if not isinstance(self.currency, str) or not self.currency.strip():
            raise ModelValidationError("SplitOptions.currency must be a non-empty string")


@dataclass(frozen=True)
class PartyShare:
    party_id: str
    items: float
    service_charge: float
    tax: float
    total: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "party_id": self.party_id,
            "items": self.items,
            "service_charge": self.service_charge,
            "tax": self.tax,
            "total": self.total,
        }


@dataclass(frozen=True)
class SplitBreakdown:
    """
    Result of a split.

    Each aggregate equals the sum of the matching per-party field at 2-decimal
    precision: sum(items) == before_charge, sum(total) == grand_total, etc.
    """
    currency: str
    before_charge: float
    service_charge_total: float
    tax_total: float
    grand_total: float
    per_party: Tuple[PartyShare, ...] = ()

    def share_for(self, party_id: str) -> Optional[PartyShare]:
        for share in self.per_party:
            if share.party_id == party_id:
                return share
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "before_charge": self.before_charge,
            "service_charge_total": self.service_charge_total,
            "tax_total": self.tax_total,
            "grand_total": self.grand_total,
            "per_party": [share.to_dict() for share in self.per_party],
        }
