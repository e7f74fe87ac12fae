# backend/tests/test_fees.py
import random

import pytest

from billsplit.domain.fees import FeeBreakdown, forward, reverse
from billsplit.domain.rounding import RoundingMode, to_minor_units


def _units(result: FeeBreakdown):
    return tuple(to_minor_units(v) for v in (result.before, result.service_charge, result.tax, result.total))


def test_forward_compounds_tax_on_service_charge():
    assert forward(100, 0.10, 0.08) == FeeBreakdown(before=100.0, service_charge=10.0, tax=8.8, total=118.8)


def test_forward_penny_lands_on_fees_not_subtotal():
    # sc 0.4c and tax 0.44c both round down, but the 4.84c total rounds up
    assert forward(0.04, 0.10, 0.10) == FeeBreakdown(before=0.04, service_charge=0.0, tax=0.01, total=0.05)


def test_forward_zero_rates_force_zero_components():
    assert forward(50, 0, 0.09) == FeeBreakdown(before=50.0, service_charge=0.0, tax=4.5, total=54.5)
    assert forward(50, 0.10, 0) == FeeBreakdown(before=50.0, service_charge=5.0, tax=0.0, total=55.0)
    assert forward(12.345, 0, 0) == FeeBreakdown(before=12.35, service_charge=0.0, tax=0.0, total=12.35)


def test_forward_respects_rounding_mode():
    assert forward(12.345, 0, 0, RoundingMode.BANKERS).before == 12.34
    assert forward(12.345, 0, 0, "half-up").before == 12.35


def test_forward_clamps_bad_input():
    assert forward(float("nan"), 0.10, 0.09) == FeeBreakdown(0.0, 0.0, 0.0, 0.0)
    assert forward(-5, 0.10, 0.09) == FeeBreakdown(0.0, 0.0, 0.0, 0.0)
    assert forward(10, float("nan"), float("inf")) == FeeBreakdown(10.0, 0.0, 0.0, 10.0)


def test_reverse_recovers_subtotal():
    assert reverse(118.8, 0.10, 0.08) == FeeBreakdown(before=100.0, service_charge=10.0, tax=8.8, total=118.8)


def test_reverse_without_service_charge():
    assert reverse(109, 0, 0.09) == FeeBreakdown(before=100.0, service_charge=0.0, tax=9.0, total=109.0)
    assert reverse(12.34, 0, 0) == FeeBreakdown(before=12.34, service_charge=0.0, tax=0.0, total=12.34)


def test_reverse_zero_total():
    assert reverse(0, 0.10, 0.09) == FeeBreakdown(0.0, 0.0, 0.0, 0.0)


@pytest.mark.parametrize("mode", list(RoundingMode))
@pytest.mark.parametrize("seed", range(60))
def test_components_always_reconcile(mode, seed):
    rng = random.Random(seed)
    amount = round(rng.uniform(0, 2000), rng.choice([2, 3, 4]))
    sc_rate = rng.choice([0, 0.05, 0.07, 0.10, 0.125])
    tax_rate = rng.choice([0, 0.06, 0.08, 0.09, 0.12])

    for result in (forward(amount, sc_rate, tax_rate, mode), reverse(amount, sc_rate, tax_rate, mode)):
        before, sc, tax, total = _units(result)
        assert before + sc + tax == total
        if sc_rate == 0:
            assert sc == 0
        if tax_rate == 0:
            assert tax == 0


@pytest.mark.parametrize("mode", list(RoundingMode))
@pytest.mark.parametrize("seed", range(60))
def test_forward_and_reverse_round_trip_within_one_unit(mode, seed):
    rng = random.Random(seed)
    before = round(rng.uniform(0, 1000), 2)
    sc_rate = rng.choice([0, 0.05, 0.10])
    tax_rate = rng.choice([0, 0.06, 0.09])

    total = forward(before, sc_rate, tax_rate, mode).total
    assert abs(to_minor_units(reverse(total, sc_rate, tax_rate, mode).before) - to_minor_units(before)) <= 1

    recovered = reverse(before, sc_rate, tax_rate, mode).before
    assert abs(to_minor_units(forward(recovered, sc_rate, tax_rate, mode).total) - to_minor_units(before)) <= 1
