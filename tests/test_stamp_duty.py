import pytest
from pydantic import ValidationError

from borrowpower.exceptions import ConfigurationError, InvalidInputError
from borrowpower.models import Jurisdiction, StampDutyRates
from borrowpower.stamp_duty import (
    DEFAULT_STAMP_DUTY_RATES,
    bracket_inconsistencies,
    build_stamp_duty_rates,
    calculate_other_charges,
    calculate_progressive_duty,
    calculate_stamp_duty,
)

VALUES = sorted({v * 5000.0 for v in range(0, 701)} | {
    b.threshold for r in DEFAULT_STAMP_DUTY_RATES.values() for b in r.standard
} | {
    t
    for r in DEFAULT_STAMP_DUTY_RATES.values()
    for t in (r.first_home_buyer.exemption_threshold, r.first_home_buyer.concession_threshold)
})


def test_every_jurisdiction_is_configured():
    assert set(DEFAULT_STAMP_DUTY_RATES) == set(Jurisdiction)


@pytest.mark.parametrize("state", list(Jurisdiction))
def test_brackets_are_internally_consistent(state):
    assert bracket_inconsistencies(DEFAULT_STAMP_DUTY_RATES[state].standard) == []


@pytest.mark.parametrize("state", list(Jurisdiction))
def test_progressive_duty_at_threshold_equals_base(state):
    brackets = DEFAULT_STAMP_DUTY_RATES[state].standard
    for b in brackets:
        assert calculate_progressive_duty(b.threshold, brackets) == b.base_amount


@pytest.mark.parametrize("state", list(Jurisdiction))
@pytest.mark.parametrize("first_home_buyer", [False, True])
def test_duty_is_non_decreasing(state, first_home_buyer):
    duties = [calculate_stamp_duty(v, state, first_home_buyer) for v in VALUES]
    assert all(b >= a for a, b in zip(duties, duties[1:]))


def test_lowest_bracket_never_negative():
    for state, rates in DEFAULT_STAMP_DUTY_RATES.items():
        assert rates.standard[0].threshold == 0
        assert calculate_progressive_duty(0, rates.standard) == 0
        assert calculate_stamp_duty(1, state, False) > 0


def test_nsw_worked_values():
    assert calculate_stamp_duty(100000, "NSW", False) == pytest.approx(1250)
    assert calculate_stamp_duty(500000, "NSW", False) == pytest.approx(5250 + 200000 * 0.035)
    assert calculate_stamp_duty(800000, "NSW", False) > 0


def test_nsw_first_home_buyer_exemption_boundary():
    assert calculate_stamp_duty(650000, "NSW", True) == 0
    assert calculate_stamp_duty(650001, "NSW", True) > 0


@pytest.mark.parametrize("state", list(Jurisdiction))
def test_exemption_boundary_all_states(state):
    threshold = DEFAULT_STAMP_DUTY_RATES[state].first_home_buyer.exemption_threshold
    assert calculate_stamp_duty(threshold, state, True) == 0
    assert calculate_stamp_duty(threshold + 1, state, True) > 0


def test_concession_discount():
    standard = calculate_stamp_duty(700000, "NSW", False)
    assert calculate_stamp_duty(700000, "NSW", True) == pytest.approx(standard * 0.5)
    # above the concession threshold the full duty applies
    assert calculate_stamp_duty(900000, "NSW", True) == calculate_stamp_duty(900000, "NSW", False)


def test_investor_flag_has_no_effect_yet():
    # investor surcharges are a known simplification, not modelled
    for state in Jurisdiction:
        assert calculate_stamp_duty(750000, state, False, True) == calculate_stamp_duty(750000, state, False, False)


def test_unknown_state_falls_back_to_nsw():
    assert calculate_stamp_duty(720000, "XYZ", False) == calculate_stamp_duty(720000, "NSW", False)


def test_negative_value_rejected():
    with pytest.raises(InvalidInputError):
        calculate_stamp_duty(-1, "NSW", False)


def test_inconsistent_table_rejected():
    table = {
        "NSW": {
            "standard": [
                {"threshold": 0, "rate": 0.0125, "base_amount": 0},
                {"threshold": 100000, "rate": 0.02, "base_amount": 1250},
                {"threshold": 300000, "rate": 0.035, "base_amount": 5250},
                {"threshold": 1000000, "rate": 0.045, "base_amount": 30500},
            ]
        }
    }
    with pytest.raises(ConfigurationError):
        build_stamp_duty_rates(table)


def test_thresholds_must_ascend_from_zero():
    with pytest.raises(ValidationError):
        StampDutyRates(standard=[{"threshold": 0, "rate": 0.01}, {"threshold": 0, "rate": 0.02}])
    with pytest.raises(ValidationError):
        StampDutyRates(standard=[{"threshold": 1000, "rate": 0.01}])


def test_other_charges():
    assert calculate_other_charges(0) == 2000
    assert calculate_other_charges(800000) == pytest.approx(2800)
