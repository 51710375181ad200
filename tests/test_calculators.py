import math

import pytest

from borrowpower.calculators import (
    calculate_borrowing_power,
    calculate_borrowing_power_iterative,
    calculate_loan_serviceability,
    compute_lvr,
    household_position,
    monthly_payment,
    principal_from_payment,
    seed_lvr,
)
from borrowpower.exceptions import InvalidInputError
from borrowpower.models import (
    BorrowerInfo,
    CalculationInput,
    FinancialInput,
    RateConfiguration,
    ShadingRules,
)
from borrowpower.presets import LVR_RATE_CARD, MAX_ITERATIONS
from borrowpower.rates import RateResolver, RateTable, formula_rate
from borrowpower.trace import IterationRecorder


def _single_borrower(**overrides):
    data = dict(
        borrowers=(BorrowerInfo(primary=FinancialInput(amount=90000, frequency="annual")),),
        expenses=FinancialInput(amount=2000, frequency="monthly"),
        property_value=800000,
        deposit=200000,
        state="NSW",
        loan_term=30,
        base_rate=5.5,
    )
    data.update(overrides)
    return CalculationInput(**data)


def test_amortization_inverse_roundtrip():
    principal = 400000
    for rate in (0.5, 6.5, 9.75):
        pmt = monthly_payment(principal, rate, 360)
        back = principal_from_payment(pmt, rate, 360)
        assert back == pytest.approx(principal, rel=1e-6)


def test_zero_rate_uses_linear_annuity():
    assert monthly_payment(360000, 0.0, 360) == pytest.approx(1000.0)
    assert principal_from_payment(1000, 0.0, 360) == pytest.approx(360000.0)


def test_non_positive_term_rejected():
    with pytest.raises(InvalidInputError):
        monthly_payment(100000, 6.0, 0)
    with pytest.raises(InvalidInputError):
        principal_from_payment(1000, 6.0, -12)


def test_compute_lvr_requires_positive_value():
    assert compute_lvr(500000, 400000) == 80.0
    with pytest.raises(InvalidInputError):
        compute_lvr(0, 400000)


def test_household_position_single_borrower():
    pos = household_position(_single_borrower())
    assert pos.total_income == pytest.approx(90000)
    assert pos.total_tax == pytest.approx(19717)
    assert pos.monthly_expenses == pytest.approx(2000)
    assert pos.monthly_disposable == pytest.approx((90000 - 19717) / 12 - 2000)


def test_low_declared_expenses_are_not_raised():
    inp = _single_borrower(expenses=FinancialInput(amount=1000, frequency="monthly"))
    pos = household_position(inp)
    assert pos.monthly_expenses == pytest.approx(1000)
    assert pos.monthly_disposable == pytest.approx((90000 - 19717) / 12 - 1000)


def test_seed_lvr_defaults_to_80_without_deposit():
    assert seed_lvr(_single_borrower(deposit=0)) == 80.0
    assert seed_lvr(_single_borrower()) == pytest.approx(75.0)


def test_single_borrower_nsw_scenario():
    res = calculate_borrowing_power_iterative(_single_borrower())
    assert res.max_loan > 0
    assert res.stamp_duty > 0
    assert res.original_savings == 200000
    assert res.deposit == pytest.approx(200000 - res.stamp_duty - res.other_charges)
    if res.surplus < 0:
        assert res.is_serviceable is False
    assert res.total_income == pytest.approx(90000)
    assert res.annual_net_income == pytest.approx(90000 - 19717)


def test_iterative_final_rate_matches_final_lvr():
    inp = _single_borrower()
    resolver = RateResolver()
    res = calculate_borrowing_power_iterative(inp, resolver)
    assert 1 <= res.iterations <= MAX_ITERATIONS
    loan = inp.property_value * res.loan_to_value_ratio / 100
    assert res.final_rate == resolver.resolve_for(inp, res.loan_to_value_ratio, loan).rate
    assert res.converged


def test_iteration_trace_is_complete_and_observed():
    recorder = IterationRecorder()
    res = calculate_borrowing_power_iterative(_single_borrower(), observer=recorder)
    assert len(res.iteration_results) == res.iterations
    assert [s.iteration for s in res.iteration_results] == list(range(1, res.iterations + 1))
    assert [e.max_loan for e in recorder.entries] == [s.max_loan for s in res.iteration_results]
    assert isinstance(res.iteration_results, tuple)


class FlipFlopResolver(RateResolver):
    """Alternates between two rates so the solver can never settle."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def resolve_for(self, inp, lvr, loan_amount):
        self.calls += 1
        rate = 5.0 if self.calls % 2 else 7.0
        return self.default_quote.model_copy(update={"rate": rate})


def test_iteration_cap_reached_without_convergence():
    res = calculate_borrowing_power_iterative(_single_borrower(), FlipFlopResolver())
    assert res.iterations == MAX_ITERATIONS
    assert res.converged is False
    assert len(res.iteration_results) == MAX_ITERATIONS


def test_iterative_with_rate_table():
    rows = [
        ("0_60", 5.5),
        ("60_70", 5.6),
        ("70_80", 5.8),
        ("80_85", 6.2),
        ("85_90", 6.4),
        ("90_95", 6.6),
    ]
    table = RateTable(
        RateConfiguration(
            id=bucket,
            product_type="variable",
            repayment_type="principal_and_interest",
            borrower_type="owner_occupier",
            lvr_range=bucket,
            rate=rate,
            comparison_rate=rate + 0.2,
        )
        for bucket, rate in rows
    )
    inp = _single_borrower()
    resolver = RateResolver(table)
    res = calculate_borrowing_power_iterative(inp, resolver)
    loan = inp.property_value * res.loan_to_value_ratio / 100
    assert res.final_rate == resolver.resolve_for(inp, res.loan_to_value_ratio, loan).rate
    assert res.final_rate in {r for _, r in rows}


def test_single_pass_uses_supplied_rate():
    res = calculate_borrowing_power(_single_borrower(interest_rate=6.0))
    assert res.final_rate == 6.0
    assert res.iterations == 1
    assert res.debt_breakdown.assessment_rate == pytest.approx(8.0)
    assert res.debt_breakdown.buffer_rate == pytest.approx(2.0)


def test_single_pass_resolves_rate_when_not_supplied():
    res = calculate_borrowing_power(_single_borrower())
    # 75% LVR seeds the 70-80 bucket: base 5.5 less 0.20
    assert res.final_rate == pytest.approx(5.3)


def test_higher_rate_lowers_borrowing_power():
    low = calculate_borrowing_power(_single_borrower(interest_rate=5.0))
    high = calculate_borrowing_power(_single_borrower(interest_rate=7.0))
    assert high.max_loan < low.max_loan


def test_no_income_gives_zero_capacity_without_nan():
    inp = _single_borrower(borrowers=())
    res = calculate_borrowing_power_iterative(inp)
    assert res.max_loan == 0.0
    assert res.is_serviceable is False
    for name, value in res.model_dump().items():
        if isinstance(value, float):
            assert math.isfinite(value), name


def test_credit_card_and_debt_reduce_capacity():
    base = calculate_borrowing_power(_single_borrower(interest_rate=6.0))
    indebted = calculate_borrowing_power(
        _single_borrower(
            interest_rate=6.0,
            credit_card_limit=10000,
            existing_debt=FinancialInput(amount=100, frequency="weekly"),
        )
    )
    assert indebted.max_loan < base.max_loan
    assert indebted.debt_breakdown.credit_card == pytest.approx(10000 * 0.038 * 12)
    assert indebted.total_debt == pytest.approx(100 * 52 + 10000 * 0.038 * 12)


def test_invalid_property_value_rejected():
    inp = CalculationInput.model_construct(property_value=0.0)
    with pytest.raises(InvalidInputError):
        calculate_borrowing_power_iterative(inp)


def test_serviceability_at_exact_disposable_income():
    rules = ShadingRules()
    inp = CalculationInput(
        borrowers=(
            BorrowerInfo(primary=FinancialInput(amount=18000, frequency="annual")),
            BorrowerInfo(primary=FinancialInput(amount=18000, frequency="annual")),
        ),
        property_value=1000000,
        deposit=500000,
        loan_term=30,
    )
    assert household_position(inp, rules).monthly_disposable == 3000.0
    assessed = formula_rate(30.0).rate + rules.interest_buffer
    loan = principal_from_payment(3000.0, assessed, 360)
    res = calculate_loan_serviceability(inp, loan, rules=rules)
    assert res.assessment_rate == pytest.approx(assessed)
    assert res.monthly_repayment == pytest.approx(3000.0)
    assert res.surplus == pytest.approx(0.0, abs=1e-6)
    assert res.is_serviceable is True

    over = calculate_loan_serviceability(inp, loan + 1000, rules=rules)
    assert over.is_serviceable is False
    assert over.surplus < 0


def test_serviceability_lvr_boundary_uses_lower_bucket():
    inp = _single_borrower(property_value=500000, deposit=100000, base_rate=0.0)
    res = calculate_loan_serviceability(inp, 400000)
    assert res.loan_to_value_ratio == 80.0
    assert res.assessment_rate == pytest.approx(LVR_RATE_CARD["70_80"] + 2.0)


def test_serviceability_rejects_negative_loan():
    with pytest.raises(InvalidInputError):
        calculate_loan_serviceability(_single_borrower(), -1)
