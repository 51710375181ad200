from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from borrowpower.exceptions import InvalidInputError


class Frequency(str, Enum):
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class IncomeType(str, Enum):
    PRIMARY = "PRIMARY"
    SUPPLEMENTARY = "SUPPLEMENTARY"
    OTHER = "OTHER"
    RENTAL = "RENTAL"


class Jurisdiction(str, Enum):
    NSW = "NSW"
    VIC = "VIC"
    QLD = "QLD"
    WA = "WA"
    SA = "SA"
    TAS = "TAS"
    ACT = "ACT"
    NT = "NT"


class LvrRange(str, Enum):
    UP_TO_60 = "0_60"
    FROM_60_TO_70 = "60_70"
    FROM_70_TO_80 = "70_80"
    FROM_80_TO_85 = "80_85"
    FROM_85_TO_90 = "85_90"
    FROM_90_TO_95 = "90_95"


def _label_key(label: str) -> str:
    return label.strip().lower().replace("-", "_").replace(" ", "_")


def _from_label(enum_cls, labels: Mapping[str, Any], label: str):
    if isinstance(label, enum_cls):
        return label
    try:
        return labels[_label_key(str(label))]
    except KeyError:
        raise InvalidInputError(f"Unrecognised {enum_cls.__name__} label: {label!r}") from None


class ProductType(str, Enum):
    VARIABLE = "variable"
    FIXED_1 = "fixed_1"
    FIXED_2 = "fixed_2"
    FIXED_3 = "fixed_3"
    FIXED_4 = "fixed_4"
    FIXED_5 = "fixed_5"

    @classmethod
    def from_label(cls, label: str) -> "ProductType":
        """Map rate sheet labels (``fixed_3_year``, ``FIXED_3YR``...) to a product type."""
        return _from_label(cls, _PRODUCT_LABELS, label)

    @classmethod
    def fixed(cls, years: int) -> "ProductType":
        return _from_label(cls, _PRODUCT_LABELS, f"fixed_{years}")

    @property
    def fixed_years(self) -> int:
        return 0 if self is ProductType.VARIABLE else int(self.value.split("_")[1])


class RepaymentType(str, Enum):
    PRINCIPAL_AND_INTEREST = "principal_and_interest"
    INTEREST_ONLY = "interest_only"

    @classmethod
    def from_label(cls, label: str) -> "RepaymentType":
        return _from_label(cls, _REPAYMENT_LABELS, label)


class BorrowerType(str, Enum):
    OWNER_OCCUPIER = "owner_occupier"
    INVESTOR = "investor"

    @classmethod
    def from_label(cls, label: str) -> "BorrowerType":
        return _from_label(cls, _BORROWER_LABELS, label)


_PRODUCT_LABELS: Dict[str, ProductType] = {
    "variable": ProductType.VARIABLE,
    "variable_rate": ProductType.VARIABLE,
}
for _years in range(1, 6):
    for _fmt in ("fixed_{}", "fixed_{}_year", "fixed_{}yr", "fixed_{}_years"):
        _PRODUCT_LABELS[_fmt.format(_years)] = ProductType(f"fixed_{_years}")

_REPAYMENT_LABELS: Dict[str, RepaymentType] = {
    "principal_and_interest": RepaymentType.PRINCIPAL_AND_INTEREST,
    "p&i": RepaymentType.PRINCIPAL_AND_INTEREST,
    "interest_only": RepaymentType.INTEREST_ONLY,
    "io": RepaymentType.INTEREST_ONLY,
}

_BORROWER_LABELS: Dict[str, BorrowerType] = {
    "owner_occupier": BorrowerType.OWNER_OCCUPIER,
    "owner_occupied": BorrowerType.OWNER_OCCUPIER,
    "owner": BorrowerType.OWNER_OCCUPIER,
    "investor": BorrowerType.INVESTOR,
    "investment": BorrowerType.INVESTOR,
}


class Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)


class FinancialInput(Frozen):
    amount: float = Field(default=0.0, ge=0)
    frequency: Frequency = Frequency.ANNUAL


class BorrowerInfo(Frozen):
    primary: FinancialInput = FinancialInput()
    supplementary: Optional[FinancialInput] = None
    other: Optional[FinancialInput] = None
    rental: Optional[FinancialInput] = None

    def streams(self) -> Dict[IncomeType, Optional[FinancialInput]]:
        return {
            IncomeType.PRIMARY: self.primary,
            IncomeType.SUPPLEMENTARY: self.supplementary,
            IncomeType.OTHER: self.other,
            IncomeType.RENTAL: self.rental,
        }


def _form_input(block: Mapping[str, Any], key: str) -> Optional[FinancialInput]:
    amount = block.get(key)
    if amount is None:
        return None
    return FinancialInput(amount=amount, frequency=block.get(f"{key}Frequency", Frequency.ANNUAL))


class CalculationInput(Frozen):
    borrowers: Tuple[BorrowerInfo, ...] = ()
    dependents: int = Field(default=0, ge=0)
    expenses: FinancialInput = FinancialInput()
    existing_debt: Optional[FinancialInput] = None
    credit_card_limit: Optional[float] = Field(default=None, ge=0)
    interest_rate: Optional[float] = Field(default=None, ge=0)
    loan_term: int = Field(default=30, gt=0)
    property_value: float = Field(gt=0)
    deposit: float = Field(default=0.0, ge=0)
    state: Jurisdiction = Jurisdiction.NSW
    is_first_home_buyer: bool = False
    is_investor: bool = False
    base_rate: float = Field(default=0.0, ge=0)
    product_type: ProductType = ProductType.VARIABLE
    repayment_type: RepaymentType = RepaymentType.PRINCIPAL_AND_INTEREST
    has_offset: bool = False
    has_redraw: bool = False

    @field_validator("product_type", mode="before")
    @classmethod
    def _product_label(cls, v):
        return ProductType.from_label(v) if isinstance(v, str) else v

    @field_validator("repayment_type", mode="before")
    @classmethod
    def _repayment_label(cls, v):
        return RepaymentType.from_label(v) if isinstance(v, str) else v

    @property
    def borrower_type(self) -> BorrowerType:
        return BorrowerType.INVESTOR if self.is_investor else BorrowerType.OWNER_OCCUPIER

    @property
    def loan_term_months(self) -> int:
        return self.loan_term * 12

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "CalculationInput":
        """Assemble an input from the nested field mapping the property site's form posts.

        ``form["income"]`` holds ``borrower1``/``borrower2`` blocks with
        ``primary``, ``supplementary``, ``other`` and ``rental`` amounts each
        paired with a ``<name>Frequency`` key.  The second borrower only
        counts when ``form["borrowers"] == 2``.
        """
        income = form.get("income", {})
        blocks = [income.get("borrower1", {})]
        if form.get("borrowers") == 2 and income.get("borrower2"):
            blocks.append(income["borrower2"])
        borrowers = tuple(
            BorrowerInfo(
                primary=_form_input(b, "primary") or FinancialInput(),
                supplementary=_form_input(b, "supplementary"),
                other=_form_input(b, "other"),
                rental=_form_input(b, "rental"),
            )
            for b in blocks
        )
        expenses = form.get("expenses", {})
        debt = form.get("debt", {})
        prefs = form.get("preferences", {})
        data: Dict[str, Any] = dict(
            borrowers=borrowers,
            dependents=form.get("dependents", 0),
            expenses=_form_input(expenses, "living") or FinancialInput(),
            existing_debt=_form_input(debt, "existing"),
            credit_card_limit=debt.get("creditCardLimit"),
            interest_rate=form.get("interestRate") or None,
            loan_term=form.get("loanTerm", 30),
            property_value=form.get("propertyValue"),
            deposit=form.get("deposit", 0.0),
            state=form.get("state", Jurisdiction.NSW),
            is_first_home_buyer=bool(form.get("isFirstHomeBuyer", False)),
            is_investor=bool(form.get("isInvestor", False)),
            base_rate=form.get("baseRate", 0.0),
        )
        for field, key in (
            ("product_type", "productType"),
            ("repayment_type", "repaymentType"),
            ("has_offset", "hasOffset"),
            ("has_redraw", "hasRedraw"),
        ):
            if key in prefs:
                data[field] = prefs[key]
        return cls(**data)


class RateConfiguration(BaseModel):
    model_config = ConfigDict(
        frozen=True, allow_inf_nan=False, alias_generator=to_camel, populate_by_name=True
    )

    id: str
    product_name: str = ""
    lender: str = ""
    product_type: ProductType
    repayment_type: RepaymentType
    borrower_type: BorrowerType
    lvr_range: LvrRange
    has_offset: bool = False
    has_redraw: bool = False
    rate: float = Field(ge=0)
    comparison_rate: float = Field(ge=0)
    max_lvr: float = 95.0
    min_loan_amount: float = Field(default=0.0, ge=0)
    max_loan_amount: Optional[float] = None
    is_first_home_buyer_eligible: bool = True
    effective_date: Optional[date] = None

    @field_validator("product_type", mode="before")
    @classmethod
    def _product_label(cls, v):
        return ProductType.from_label(v) if isinstance(v, str) else v

    @field_validator("repayment_type", mode="before")
    @classmethod
    def _repayment_label(cls, v):
        return RepaymentType.from_label(v) if isinstance(v, str) else v

    @field_validator("borrower_type", mode="before")
    @classmethod
    def _borrower_label(cls, v):
        return BorrowerType.from_label(v) if isinstance(v, str) else v


class RateQuote(Frozen):
    rate: float
    comparison_rate: float
    configuration: Optional[RateConfiguration] = None


class StampDutyBracket(Frozen):
    threshold: float = Field(ge=0)
    rate: float = Field(ge=0)
    base_amount: float = Field(default=0.0, ge=0)


class FirstHomeBuyerRelief(Frozen):
    exemption_threshold: float = Field(default=0.0, ge=0)
    concession_threshold: float = Field(default=0.0, ge=0)
    concession_rate: float = Field(default=0.0, ge=0, le=1)


class StampDutyRates(Frozen):
    standard: Tuple[StampDutyBracket, ...]
    first_home_buyer: FirstHomeBuyerRelief = FirstHomeBuyerRelief()

    @model_validator(mode="after")
    def _ascending_from_zero(self):
        if not self.standard:
            raise ValueError("at least one duty bracket is required")
        if self.standard[0].threshold != 0:
            raise ValueError("the lowest duty bracket must start at 0")
        thresholds = [b.threshold for b in self.standard]
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError("duty thresholds must be strictly increasing")
        return self


class ShadingRules(Frozen):
    """Income shading percentages, debt weightings and expense allowances."""

    income_percentages: Dict[IncomeType, float] = Field(
        default_factory=lambda: {t: 100.0 if t is IncomeType.PRIMARY else 90.0 for t in IncomeType}
    )
    credit_card_pct: float = Field(default=3.8, ge=0)
    existing_loan_pct: float = Field(default=100.0, ge=0)
    living_expense_base: float = Field(default=20000.0, ge=0)
    dependent_cost: float = Field(default=6000.0, ge=0)
    interest_buffer: float = Field(default=2.0, ge=0)

    @classmethod
    def from_tables(cls, income: Mapping[str, Mapping[str, Any]], debt: Mapping[str, Mapping[str, Any]]) -> "ShadingRules":
        return cls(
            income_percentages={IncomeType(k): v["percentage"] for k, v in income.items()},
            credit_card_pct=debt["CREDIT_CARD"]["percentage"],
            existing_loan_pct=debt["EXISTING_LOAN"]["percentage"],
            living_expense_base=debt["LIVING_EXPENSE_BASE"]["amount"],
            dependent_cost=debt["DEPENDENT_COST"]["amount"],
            interest_buffer=debt["INTEREST_BUFFER"]["percentage"],
        )

    @property
    def credit_card_factor(self) -> float:
        return self.credit_card_pct / 100

    def income_percentage(self, income_type: IncomeType) -> float:
        return self.income_percentages.get(IncomeType(income_type), 100.0)


class IterationResult(Frozen):
    iteration: int
    lvr: float
    rate: float
    max_loan: float


class DebtBreakdown(Frozen):
    existing_debt: float
    credit_card: float
    proposed_loan: float
    credit_card_factor: float
    assessment_rate: float
    buffer_rate: float


class CalculationResult(Frozen):
    max_loan: float
    max_property: float
    stamp_duty: float
    deposit: float
    original_savings: float
    other_charges: float
    loan_to_value_ratio: float
    monthly_repayment: float
    is_serviceable: bool
    surplus: float
    total_income: float
    annual_net_income: float
    total_expenses: float
    total_debt: float
    iterations: int
    iteration_results: Tuple[IterationResult, ...]
    final_rate: float
    debt_breakdown: DebtBreakdown
    converged: bool = True


class ServiceabilityResult(Frozen):
    is_serviceable: bool
    surplus: float
    monthly_repayment: float
    loan_to_value_ratio: float
    assessment_rate: float
