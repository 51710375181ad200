"""Income, expense and debt normalisation.

Pay figures arrive at whatever frequency the borrower quotes them.  These
helpers convert them to annual or monthly amounts and apply the lender style
shading that discounts non-salary income before it counts towards
serviceability.
"""

from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd

from borrowpower.exceptions import InvalidInputError
from borrowpower.models import (
    BorrowerInfo,
    CalculationInput,
    FinancialInput,
    Frequency,
    IncomeType,
    ShadingRules,
)
from borrowpower.presets import DEBT_SHADING, INCOME_SHADING
from borrowpower.tax import calculate_tax

DEFAULT_SHADING_RULES = ShadingRules.from_tables(INCOME_SHADING, DEBT_SHADING)

PERIODS_PER_YEAR = {
    Frequency.WEEKLY: 52,
    Frequency.FORTNIGHTLY: 26,
    Frequency.MONTHLY: 12,
    Frequency.ANNUAL: 1,
}

INCOME_COLUMNS = {
    IncomeType.PRIMARY: "Primary",
    IncomeType.SUPPLEMENTARY: "Supplementary",
    IncomeType.OTHER: "Other",
    IncomeType.RENTAL: "Rental",
}


def _periods(frequency) -> int:
    try:
        return PERIODS_PER_YEAR[Frequency(frequency)]
    except ValueError:
        raise InvalidInputError(f"Unrecognised pay frequency: {frequency!r}") from None


def normalize_to_annual(value: FinancialInput) -> float:
    """Annual equivalent of an amount quoted at ``value.frequency``."""
    return value.amount * _periods(value.frequency)


def normalize_to_monthly(value: FinancialInput) -> float:
    """Monthly equivalent of an amount quoted at ``value.frequency``."""
    return value.amount * _periods(value.frequency) / 12


def apply_income_shading(amount: float, income_type: IncomeType, rules: Optional[ShadingRules] = None) -> float:
    """Discount ``amount`` by the shading percentage configured for ``income_type``."""
    rules = rules or DEFAULT_SHADING_RULES
    return amount * rules.income_percentage(income_type) / 100


def income_table(borrowers: Iterable[BorrowerInfo], rules: Optional[ShadingRules] = None) -> pd.DataFrame:
    """Shaded annual income per borrower and stream, with each borrower's tax.

    Tax is assessed separately for every borrower on their own shaded income,
    so a two income household pays less tax than one earner on the same total.
    """

    rows = []
    for idx, borrower in enumerate(borrowers, start=1):
        row = {"BorrowerID": idx}
        for income_type, stream in borrower.streams().items():
            annual = normalize_to_annual(stream) if stream is not None else 0.0
            row[INCOME_COLUMNS[income_type]] = apply_income_shading(annual, income_type, rules)
        rows.append(row)
    columns = ["BorrowerID", *INCOME_COLUMNS.values()]
    out = pd.DataFrame(rows, columns=columns)
    out[list(INCOME_COLUMNS.values())] = out[list(INCOME_COLUMNS.values())].astype(float)
    out["TotalAnnual"] = out[list(INCOME_COLUMNS.values())].sum(axis=1)
    out["Tax"] = out["TotalAnnual"].apply(calculate_tax).astype(float)
    out["NetAnnual"] = out["TotalAnnual"] - out["Tax"]
    return out


def calculate_total_income(borrowers: Iterable[BorrowerInfo], rules: Optional[ShadingRules] = None) -> float:
    """Household gross income after shading, annualised."""
    return float(income_table(borrowers, rules)["TotalAnnual"].sum())


def monthly_expenses(inp: CalculationInput, rules: Optional[ShadingRules] = None) -> float:
    """Declared living expenses as given, plus the allowance for each dependent."""
    rules = rules or DEFAULT_SHADING_RULES
    return normalize_to_monthly(inp.expenses) + rules.dependent_cost * inp.dependents / 12


def monthly_existing_debt(inp: CalculationInput, rules: Optional[ShadingRules] = None) -> float:
    rules = rules or DEFAULT_SHADING_RULES
    if inp.existing_debt is None:
        return 0.0
    return normalize_to_monthly(inp.existing_debt) * rules.existing_loan_pct / 100


def monthly_credit_card(inp: CalculationInput, rules: Optional[ShadingRules] = None) -> float:
    # the card limit, not the balance, is treated as a commitment
    rules = rules or DEFAULT_SHADING_RULES
    return (inp.credit_card_limit or 0.0) * rules.credit_card_factor
