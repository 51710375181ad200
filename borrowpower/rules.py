from __future__ import annotations
from typing import Literal, List, Dict, Any, Optional
from pydantic import BaseModel, Field

from borrowpower.models import CalculationInput, CalculationResult
from borrowpower.presets import MAX_ITERATIONS

HIGH_LVR = 80.0
MAX_BUCKET_LVR = 95.0


class RuleResult(BaseModel):
    code: str
    severity: Literal["info", "warn", "critical"]
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)


def evaluate_result(result: CalculationResult, inp: Optional[CalculationInput] = None) -> List[RuleResult]:
    res: List[RuleResult] = []

    if result.max_loan <= 0:
        res.append(
            RuleResult(
                code="NO_BORROWING_CAPACITY",
                severity="critical",
                message="Income after tax, expenses and debts leaves nothing to service a loan.",
            )
        )

    if not result.is_serviceable:
        res.append(
            RuleResult(
                code="NOT_SERVICEABLE",
                severity="critical",
                message="Repayments on the required loan exceed assessed disposable income.",
                context={"surplus": result.surplus, "monthly_repayment": result.monthly_repayment},
            )
        )

    if result.deposit < 0:
        res.append(
            RuleResult(
                code="DEPOSIT_SHORTFALL",
                severity="critical",
                message="Savings do not cover stamp duty and government charges.",
                context={
                    "original_savings": result.original_savings,
                    "stamp_duty": result.stamp_duty,
                    "other_charges": result.other_charges,
                },
            )
        )

    if not result.converged:
        res.append(
            RuleResult(
                code="NOT_CONVERGED",
                severity="warn",
                message="Rate and LVR did not settle; the estimate may be unstable.",
                context={"iterations": result.iterations, "max_iterations": MAX_ITERATIONS},
            )
        )

    if result.loan_to_value_ratio > MAX_BUCKET_LVR:
        res.append(
            RuleResult(
                code="LVR_ABOVE_MAX_BUCKET",
                severity="warn",
                message="LVR is above 95%; few lenders will offer this loan.",
                context={"lvr": result.loan_to_value_ratio},
            )
        )
    elif result.loan_to_value_ratio > HIGH_LVR:
        res.append(
            RuleResult(
                code="HIGH_LVR",
                severity="warn",
                message="LVR above 80% usually attracts lenders mortgage insurance.",
                context={"lvr": result.loan_to_value_ratio},
            )
        )

    if inp is not None and inp.is_investor:
        res.append(
            RuleResult(
                code="INVESTOR_SURCHARGE_NOT_MODELLED",
                severity="info",
                message="Investor stamp duty surcharges are not included.",
            )
        )

    return res


def has_blocking(res: List[RuleResult]) -> bool:
    return any(r.severity == "critical" for r in res)
