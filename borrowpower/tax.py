"""Simplified Australian resident personal income tax."""

from borrowpower.exceptions import InvalidInputError
from borrowpower.presets import TAX_BRACKETS


def calculate_tax(annual_income):
    """Income tax payable on ``annual_income``.

    Each bracket is ``tax at floor + marginal rate x (income - floor)``, so the
    schedule is continuous at every threshold.  Offsets and the Medicare levy
    are not modelled.
    """

    if annual_income < 0:
        raise InvalidInputError(f"Annual income cannot be negative: {annual_income}")
    floor, rate, base = TAX_BRACKETS[0]
    for bracket in TAX_BRACKETS[1:]:
        if annual_income <= bracket[0]:
            break
        floor, rate, base = bracket
    return base + (annual_income - floor) * rate
