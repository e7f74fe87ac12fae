# backend/billsplit/domain/fees.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from billsplit.domain.distribution import distribute_units
from billsplit.domain.rounding import (
    CURRENCY_DECIMALS,
    RoundingMode,
    finite_or_zero,
    from_minor_units,
    non_negative,
    to_minor_units,
)


@dataclass(frozen=True)
class FeeBreakdown:
    """
    A reconciled fee computation.

    before + service_charge + tax == total exactly at currency precision.
    """
    before: float
    service_charge: float
    tax: float
    total: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "before": self.before,
            "service_charge": self.service_charge,
            "tax": self.tax,
            "total": self.total,
        }


def _reconcile(
    before_raw: float,
    service_raw: float,
    tax_raw: float,
    total_raw: float,
    service_charge_rate: float,
    tax_rate: float,
    mode: RoundingMode | str,
) -> FeeBreakdown:
    factor = 10 ** CURRENCY_DECIMALS
    before_units = to_minor_units(before_raw, CURRENCY_DECIMALS, mode)
    total_units = to_minor_units(total_raw, CURRENCY_DECIMALS, mode)

    # Zero-rate components stay at exactly 0 and absorb no pennies.
    raw_fees = (service_raw, tax_raw)
    active = [idx for idx, rate in enumerate((service_charge_rate, tax_rate)) if rate != 0]
    fee_units = [0, 0]
    if active:
        adjusted = distribute_units(
            [raw_fees[idx] * factor for idx in active],
            total_units - before_units,
            mode,
        )
        for idx, units in zip(active, adjusted, strict=True):
            fee_units[idx] = units
    else:
        total_units = before_units

    return FeeBreakdown(
        before=from_minor_units(before_units),
        service_charge=from_minor_units(fee_units[0]),
        tax=from_minor_units(fee_units[1]),
        total=from_minor_units(before_units + fee_units[0] + fee_units[1]),
    )


def forward(
    before_charge: float,
    service_charge_rate: float,
    tax_rate: float,
    mode: RoundingMode | str = RoundingMode.HALF_UP,
) -> FeeBreakdown:
    """
    Compute service charge and tax on a pre-fee subtotal.

    Tax is charged on (subtotal + service charge). The subtotal is
    authoritative; any rounding penny lands on the fees.

    Example:
      forward(100, 0.10, 0.08) -> before=100.0, service_charge=10.0, tax=8.8, total=118.8
    """
    before = non_negative(before_charge)
    sc_rate = finite_or_zero(service_charge_rate)
    tx_rate = finite_or_zero(tax_rate)

    service_raw = before * sc_rate
    tax_raw = (before + service_raw) * tx_rate
    return _reconcile(before, service_raw, tax_raw, before + service_raw + tax_raw, sc_rate, tx_rate, mode)


def reverse(
    total: float,
    service_charge_rate: float,
    tax_rate: float,
    mode: RoundingMode | str = RoundingMode.HALF_UP,
) -> FeeBreakdown:
    """
    Decompose a fee-inclusive grand total into subtotal, service charge and tax.

    Example:
      reverse(118.8, 0.10, 0.08) -> before=100.0, service_charge=10.0, tax=8.8, total=118.8
    """
    grand = non_negative(total)
    sc_rate = finite_or_zero(service_charge_rate)
    tx_rate = finite_or_zero(tax_rate)

    if sc_rate > 0:
        divisor = (1 + sc_rate) * (1 + tx_rate)
    else:
        divisor = 1 + tx_rate
    before = grand / divisor if divisor else 0.0

    service_raw = before * sc_rate
    tax_raw = (before + service_raw) * tx_rate
    return _reconcile(before, service_raw, tax_raw, grand, sc_rate, tx_rate, mode)
