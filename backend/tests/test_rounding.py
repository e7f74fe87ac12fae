# backend/tests/test_rounding.py
import math

import pytest

from billsplit.domain.rounding import (
    RoundingMode,
    finite_or_zero,
    from_minor_units,
    non_negative,
    pick_rounder,
    round_bankers,
    round_half_up,
    round_to_step,
    to_minor_units,
)


def test_half_up_counters_binary_representation_error():
    # 2.675 and 1.005 are stored slightly below the written value
    assert round_half_up(2.675) == 2.68
    assert round_half_up(1.005) == 1.01
    assert round_half_up(0.125) == 0.13


def test_half_up_rounds_away_from_zero_for_negatives():
    assert round_half_up(-1.005) == -1.01
    assert round_half_up(-2.5, 0) == -3.0


def test_bankers_rounds_exact_halves_to_even():
    assert round_bankers(0.5, 0) == 0
    assert round_bankers(1.5, 0) == 2
    assert round_bankers(2.5, 0) == 2
    assert round_bankers(-2.5, 0) == -2
    assert round_bankers(0.125) == 0.12
    assert round_bankers(0.135) == 0.14


def test_bankers_matches_half_up_away_from_ties():
    for value in (0.124, 0.126, 3.14159, 99.999, 10.0):
        assert round_bankers(value) == round_half_up(value)


@pytest.mark.parametrize("rounder", [round_half_up, round_bankers])
def test_no_negative_zero(rounder):
    for value in (-0.001, -0.0, -0.004):
        result = rounder(value)
        assert result == 0
        assert math.copysign(1, result) == 1
    assert math.copysign(1, round_bankers(-0.5, 0)) == 1


@pytest.mark.parametrize("rounder", [round_half_up, round_bankers])
def test_non_finite_values_pass_through(rounder):
    assert math.isnan(rounder(float("nan")))
    assert rounder(float("inf")) == float("inf")
    assert rounder(float("-inf")) == float("-inf")


def test_round_to_step_is_plain_nearest_multiple():
    assert round_half_up(round_to_step(71.28, 0.1)) == 71.3
    assert round_half_up(round_to_step(47.52, 0.1)) == 47.5
    assert round_to_step(7.5, 5) == 10
    assert round_to_step(12, 5) == 10


def test_round_to_step_ignores_invalid_steps():
    assert round_to_step(5.55, 0) == 5.55
    assert round_to_step(5.55, -1) == 5.55
    assert math.isnan(round_to_step(float("nan"), 0.1))


def test_pick_rounder_accepts_enum_or_string():
    assert pick_rounder(RoundingMode.BANKERS) is round_bankers
    assert pick_rounder("half-up") is round_half_up
    with pytest.raises(ValueError):
        pick_rounder("truncate")


def test_minor_unit_conversion():
    assert to_minor_units(63.71) == 6371
    assert to_minor_units(0.125) == 13
    assert to_minor_units(0.125, mode=RoundingMode.BANKERS) == 12
    assert to_minor_units(12.5, decimals=0) == 13
    assert from_minor_units(6371) == 63.71
    assert from_minor_units(0) == 0.0


def test_minor_unit_conversion_rejects_non_finite():
    with pytest.raises(ValueError):
        to_minor_units(float("nan"))


def test_input_coercion_helpers():
    assert finite_or_zero("1.5") == 1.5
    assert finite_or_zero("abc") == 0.0
    assert finite_or_zero(None) == 0.0
    assert finite_or_zero(True) == 0.0
    assert finite_or_zero(float("inf")) == 0.0
    assert non_negative(-3) == 0.0
    assert non_negative(2) == 2.0
