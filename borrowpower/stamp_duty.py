"""Transfer (stamp) duty and other purchase charges."""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional, Sequence

from borrowpower.exceptions import ConfigurationError, InvalidInputError
from borrowpower.logging import get_logger
from borrowpower.models import Jurisdiction, StampDutyBracket, StampDutyRates
from borrowpower.presets import DEFAULT_JURISDICTION, OTHER_CHARGES, STAMP_DUTY_RATES

logger = get_logger(__name__)


def calculate_progressive_duty(value: float, thresholds: Sequence[StampDutyBracket]) -> float:
    """Duty on ``value`` from ascending brackets.

    Uses the highest bracket whose threshold is at or below ``value`` and
    returns ``base_amount + (value - threshold) * rate``.
    """

    applicable = thresholds[0]
    for bracket in thresholds[1:]:
        if value >= bracket.threshold:
            applicable = bracket
        else:
            break
    return applicable.base_amount + (value - applicable.threshold) * applicable.rate


def bracket_inconsistencies(thresholds: Sequence[StampDutyBracket], tolerance: float = 1e-6) -> List[StampDutyBracket]:
    """Brackets whose base amount differs from the duty accrued up to their threshold."""
    bad = []
    for prev, bracket in zip(thresholds, thresholds[1:]):
        accrued = prev.base_amount + (bracket.threshold - prev.threshold) * prev.rate
        if not math.isclose(accrued, bracket.base_amount, rel_tol=0.0, abs_tol=tolerance):
            bad.append(bracket)
    return bad


def build_stamp_duty_rates(table: Mapping[str, Mapping]) -> Dict[Jurisdiction, StampDutyRates]:
    """Validate a jurisdiction keyed duty table into models."""
    rates = {}
    for code, entry in table.items():
        parsed = StampDutyRates.model_validate(entry)
        bad = bracket_inconsistencies(parsed.standard)
        if bad:
            raise ConfigurationError(
                f"{code} duty brackets {[b.threshold for b in bad]} do not match the accrued duty"
            )
        rates[Jurisdiction(code)] = parsed
    return rates


DEFAULT_STAMP_DUTY_RATES = build_stamp_duty_rates(STAMP_DUTY_RATES)


def jurisdiction_rates(state, rates: Optional[Mapping[Jurisdiction, StampDutyRates]] = None) -> StampDutyRates:
    """Duty table for ``state``, falling back to the default jurisdiction."""
    rates = rates or DEFAULT_STAMP_DUTY_RATES
    try:
        return rates[Jurisdiction(state)]
    except (ValueError, KeyError):
        logger.debug("No duty table for %r, using %s", state, DEFAULT_JURISDICTION)
        return rates[Jurisdiction(DEFAULT_JURISDICTION)]


def calculate_stamp_duty(
    value: float,
    state,
    is_first_home_buyer: bool,
    is_investor: bool = False,
    rates: Optional[Mapping[Jurisdiction, StampDutyRates]] = None,
) -> float:
    """Transfer duty payable on a purchase at ``value``.

    First home buyers pay nothing up to the exemption threshold and a
    discounted amount up to the concession threshold.  ``is_investor`` is
    accepted for callers but investor surcharges are not modelled, so it does
    not change the result.
    """

    if value < 0 or math.isnan(value):
        raise InvalidInputError(f"Property value must be a non-negative number: {value}")
    table = jurisdiction_rates(state, rates)
    if is_first_home_buyer:
        relief = table.first_home_buyer
        if value <= relief.exemption_threshold:
            return 0.0
        if value <= relief.concession_threshold and relief.concession_rate:
            return calculate_progressive_duty(value, table.standard) * (1 - relief.concession_rate)
    return calculate_progressive_duty(value, table.standard)


def calculate_other_charges(property_value: float) -> float:
    """Transfer, registration and settlement fees for a purchase."""
    return OTHER_CHARGES["flat"] + property_value * OTHER_CHARGES["pct_of_value"] / 100
