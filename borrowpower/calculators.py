from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from borrowpower.exceptions import InvalidInputError
from borrowpower.logging import get_logger
from borrowpower.models import (
    CalculationInput,
    CalculationResult,
    DebtBreakdown,
    IterationResult,
    ServiceabilityResult,
    ShadingRules,
)
from borrowpower.normalizer import (
    DEFAULT_SHADING_RULES,
    income_table,
    monthly_credit_card,
    monthly_existing_debt,
    monthly_expenses,
)
from borrowpower.presets import (
    DEFAULT_SEED_LVR,
    LOAN_TOLERANCE,
    MAX_ITERATIONS,
    PROPERTY_REFINEMENT_ROUNDS,
    RATE_TOLERANCE,
)
from borrowpower.rates import RateResolver, assessment_rate
from borrowpower.stamp_duty import calculate_other_charges, calculate_stamp_duty

logger = get_logger(__name__)

# Rounding noise tolerated when a repayment exactly uses up disposable income.
SURPLUS_TOLERANCE = 1e-6

IterationObserver = Callable[[IterationResult], None]


def monthly_payment(principal, annual_rate_pct, n_months):
    """Calculate the fully amortizing monthly payment for a loan.

    ``principal`` is the loan amount, ``annual_rate_pct`` the nominal yearly
    rate (``6.5`` for 6.5%) and ``n_months`` the number of repayments.  A zero
    rate spreads the principal evenly.
    """

    if n_months <= 0:
        raise InvalidInputError(f"Loan term must be positive, got {n_months} months")
    r = annual_rate_pct / 100 / 12
    if abs(r) < 1e-9:
        return principal / n_months
    return principal * r / (1 - (1 + r) ** (-n_months))


def principal_from_payment(payment, annual_rate_pct, n_months):
    """Reverse amortization to find the loan a monthly payment supports.

    This is the annuity present value: given what the borrower can pay each
    month, rate and term, how much can they borrow.
    """

    if n_months <= 0:
        raise InvalidInputError(f"Loan term must be positive, got {n_months} months")
    r = annual_rate_pct / 100 / 12
    if abs(r) < 1e-9:
        return payment * n_months
    return payment * (1 - (1 + r) ** (-n_months)) / r


def compute_lvr(property_value, loan_amount):
    """Compute loan-to-value percentage."""

    if not property_value > 0:
        raise InvalidInputError(f"Property value must be positive to compute an LVR, got {property_value}")
    return 100.0 * loan_amount / property_value


def _check_input(inp: CalculationInput) -> None:
    # models built with model_construct skip field validation
    if not (math.isfinite(inp.property_value) and inp.property_value > 0):
        raise InvalidInputError(f"Property value must be positive, got {inp.property_value}")
    if inp.loan_term <= 0:
        raise InvalidInputError(f"Loan term must be a positive number of years, got {inp.loan_term}")
    if not (math.isfinite(inp.deposit) and inp.deposit >= 0):
        raise InvalidInputError(f"Deposit cannot be negative, got {inp.deposit}")


@dataclass(frozen=True)
class HouseholdPosition:
    """Monthly cash position of the household before any new loan."""

    total_income: float
    total_tax: float
    monthly_expenses: float
    monthly_debt: float
    monthly_credit_card: float

    @property
    def annual_net_income(self) -> float:
        return self.total_income - self.total_tax

    @property
    def monthly_net_income(self) -> float:
        return self.annual_net_income / 12

    @property
    def monthly_disposable(self) -> float:
        return self.monthly_net_income - self.monthly_expenses - self.monthly_debt - self.monthly_credit_card


def household_position(inp: CalculationInput, rules: Optional[ShadingRules] = None) -> HouseholdPosition:
    rules = rules or DEFAULT_SHADING_RULES
    incomes = income_table(inp.borrowers, rules)
    return HouseholdPosition(
        total_income=float(incomes["TotalAnnual"].sum()),
        total_tax=float(incomes["Tax"].sum()),
        monthly_expenses=monthly_expenses(inp, rules),
        monthly_debt=monthly_existing_debt(inp, rules),
        monthly_credit_card=monthly_credit_card(inp, rules),
    )


def seed_lvr(inp: CalculationInput) -> float:
    """Starting LVR guess: from the deposit, or 80% when there is none."""
    if inp.deposit > 0:
        return (1 - inp.deposit / inp.property_value) * 100
    return DEFAULT_SEED_LVR


def seed_loan_amount(inp: CalculationInput) -> float:
    return inp.property_value * seed_lvr(inp) / 100


def purchase_costs(property_value: float, inp: CalculationInput) -> Tuple[float, float]:
    """Stamp duty and other government charges on a purchase price."""
    value = max(property_value, 0.0)
    duty = calculate_stamp_duty(value, inp.state, inp.is_first_home_buyer, inp.is_investor)
    return duty, calculate_other_charges(value)


def _single_pass(
    inp: CalculationInput, rate: float, position: HouseholdPosition, rules: ShadingRules
) -> Tuple[CalculationResult, float]:
    """Borrowing power at a fixed offered ``rate``; also returns the implied loan."""

    effective_rate = assessment_rate(rate, rules.interest_buffer)
    n = inp.loan_term_months
    disposable = position.monthly_disposable
    max_loan = max(principal_from_payment(disposable, effective_rate, n), 0.0)

    # costs depend on the price, and the price on what is left of the deposit
    max_property = max_loan + inp.deposit
    for _ in range(PROPERTY_REFINEMENT_ROUNDS):
        duty, charges = purchase_costs(max_property, inp)
        max_property = max_loan + inp.deposit - duty - charges

    stamp_duty, other_charges = purchase_costs(max_property, inp)
    available_deposit = inp.deposit - stamp_duty - other_charges

    potential_loan = max(inp.property_value - available_deposit, 0.0)
    repayment = monthly_payment(potential_loan, effective_rate, n)
    surplus = disposable - repayment
    lvr = compute_lvr(inp.property_value, potential_loan)

    result = CalculationResult(
        max_loan=max_loan,
        max_property=max(max_property, 0.0),
        stamp_duty=stamp_duty,
        deposit=available_deposit,
        original_savings=inp.deposit,
        other_charges=other_charges,
        loan_to_value_ratio=lvr,
        monthly_repayment=repayment,
        is_serviceable=surplus >= -SURPLUS_TOLERANCE and potential_loan <= max_loan,
        surplus=surplus,
        total_income=position.total_income,
        annual_net_income=position.annual_net_income,
        total_expenses=position.monthly_expenses * 12,
        total_debt=(position.monthly_debt + position.monthly_credit_card) * 12,
        iterations=1,
        iteration_results=(IterationResult(iteration=1, lvr=lvr, rate=rate, max_loan=max_loan),),
        final_rate=rate,
        debt_breakdown=DebtBreakdown(
            existing_debt=position.monthly_debt * 12,
            credit_card=position.monthly_credit_card * 12,
            proposed_loan=repayment * 12,
            credit_card_factor=rules.credit_card_factor,
            assessment_rate=effective_rate,
            buffer_rate=rules.interest_buffer,
        ),
    )
    return result, potential_loan


def calculate_borrowing_power(
    inp: CalculationInput,
    resolver: Optional[RateResolver] = None,
    rules: Optional[ShadingRules] = None,
) -> CalculationResult:
    """Single pass estimate of borrowing power.

    Uses ``inp.interest_rate`` when the caller fixes one, otherwise the rate
    resolved at the LVR implied by the deposit.
    """

    _check_input(inp)
    resolver = resolver or RateResolver()
    rules = rules or DEFAULT_SHADING_RULES
    position = household_position(inp, rules)
    if inp.interest_rate is not None:
        rate = inp.interest_rate
    else:
        rate = resolver.resolve_for(inp, seed_lvr(inp), seed_loan_amount(inp)).rate
    result, _ = _single_pass(inp, rate, position, rules)
    return result


def calculate_borrowing_power_iterative(
    inp: CalculationInput,
    resolver: Optional[RateResolver] = None,
    rules: Optional[ShadingRules] = None,
    observer: Optional[IterationObserver] = None,
) -> CalculationResult:
    """Solve borrowing power and the LVR dependent rate together.

    Each round prices the loan at the current rate, works out the LVR that
    results and re-prices at that LVR.  It stops once the maximum loan moves
    by less than $1,000 and the rate by less than 0.01 points, or after
    ``MAX_ITERATIONS`` rounds.  The reported ``final_rate`` is always the rate
    for the reported LVR.  ``observer`` receives every iteration as it is
    recorded.
    """

    _check_input(inp)
    resolver = resolver or RateResolver()
    rules = rules or DEFAULT_SHADING_RULES
    position = household_position(inp, rules)

    current_rate = resolver.resolve_for(inp, seed_lvr(inp), seed_loan_amount(inp)).rate
    previous_max_loan = 0.0
    trace = []

    for iteration in range(1, MAX_ITERATIONS + 1):
        result, potential_loan = _single_pass(inp, current_rate, position, rules)
        step = IterationResult(
            iteration=iteration,
            lvr=result.loan_to_value_ratio,
            rate=current_rate,
            max_loan=result.max_loan,
        )
        trace.append(step)
        if observer is not None:
            observer(step)

        new_rate = resolver.resolve_for(inp, result.loan_to_value_ratio, potential_loan).rate
        converged = (
            abs(result.max_loan - previous_max_loan) < LOAN_TOLERANCE
            and abs(new_rate - current_rate) < RATE_TOLERANCE
        )
        logger.debug(
            "Iteration %d: rate %.2f lvr %.2f max loan %.0f next rate %.2f",
            iteration,
            current_rate,
            result.loan_to_value_ratio,
            result.max_loan,
            new_rate,
        )
        if converged or iteration == MAX_ITERATIONS:
            if not converged:
                logger.debug("Borrowing power did not converge in %d iterations", MAX_ITERATIONS)
            return result.model_copy(
                update={
                    "iterations": iteration,
                    "iteration_results": tuple(trace),
                    "final_rate": new_rate,
                    "converged": converged,
                }
            )
        previous_max_loan = result.max_loan
        current_rate = new_rate

    raise AssertionError("unreachable")  # pragma: no cover


def calculate_loan_serviceability(
    inp: CalculationInput,
    loan_amount: float,
    resolver: Optional[RateResolver] = None,
    rules: Optional[ShadingRules] = None,
) -> ServiceabilityResult:
    """Check whether the household can service ``loan_amount``.

    The loan is priced at its own LVR, assessed with the buffer added, and is
    serviceable when the repayment does not exceed disposable income.
    """

    _check_input(inp)
    if not (math.isfinite(loan_amount) and loan_amount >= 0):
        raise InvalidInputError(f"Loan amount must be a non-negative number, got {loan_amount}")
    resolver = resolver or RateResolver()
    rules = rules or DEFAULT_SHADING_RULES
    position = household_position(inp, rules)

    lvr = compute_lvr(inp.property_value, loan_amount)
    rate = resolver.resolve_for(inp, lvr, loan_amount).rate
    effective_rate = assessment_rate(rate, rules.interest_buffer)
    repayment = monthly_payment(loan_amount, effective_rate, inp.loan_term_months)
    surplus = position.monthly_disposable - repayment
    return ServiceabilityResult(
        is_serviceable=surplus >= -SURPLUS_TOLERANCE,
        surplus=surplus,
        monthly_repayment=repayment,
        loan_to_value_ratio=lvr,
        assessment_rate=effective_rate,
    )
