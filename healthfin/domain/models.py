"""
Domain models for the health-finance calculation engine.

These models are immutable value snapshots passed into the engine per call.
They use Pydantic for validation; storage and identity concerns live elsewhere.

Enum-typed fields also accept plain strings: an unrecognized value is carried
through untouched so that downstream lookups can fall back to a soft zero.
"""

from enum import Enum
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class Frequency(str, Enum):
    """How often an income or expense recurs."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"
    ONE_TIME = "one-time"


class MedicalExpenseFrequency(str, Enum):
    """Billing cadence of a recurring medical expense."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"
    ONE_TIME = "one_time"


class MedicalExpenseCategory(str, Enum):
    DOCTOR_VISIT = "doctor_visit"
    MEDICATION = "medication"
    HOSPITAL = "hospital"
    LAB_TEST = "lab_test"
    THERAPY = "therapy"
    EQUIPMENT = "equipment"


class ConditionCategory(str, Enum):
    """Clinical category of a medical condition."""

    CHRONIC = "chronic"
    ACUTE = "acute"
    MENTAL_HEALTH = "mental_health"
    PREVENTIVE = "preventive"


class Severity(str, Enum):
    """Condition severity, ordered from least to most serious."""

    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class HealthTier(str, Enum):
    """Financial health classification."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class Vulnerability(str, Enum):
    """Share of income consumed by health costs, bucketed."""

    SECURE = "secure"
    MODERATE = "moderate"
    VULNERABLE = "vulnerable"
    CRITICAL = "critical"


class PolicyType(str, Enum):
    HEALTH = "health"
    DENTAL = "dental"
    VISION = "vision"
    COMPREHENSIVE = "comprehensive"


class LoanType(str, Enum):
    MORTGAGE = "mortgage"
    AUTO = "auto"
    PERSONAL = "personal"
    STUDENT = "student"


EnumT = TypeVar("EnumT", bound=Enum)


def coerce_enum(enum_cls: type[EnumT], value: object) -> EnumT | None:
    """Return the enum member for ``value`` or None when it is not recognized."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


class MonetaryAmount(BaseModel):
    """An amount paired with the frequency it recurs at."""

    model_config = ConfigDict(frozen=True)

    amount: float
    frequency: Frequency | str


class IncomeFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str = ""
    amount: float
    frequency: Frequency | str
    is_active: bool = True


class ExpenseFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    category: str = "other"
    amount: float
    frequency: Frequency | str


class FinanceSnapshot(BaseModel):
    """
    Monthly income/expense/debt aggregates for one user.

    Negative inputs are a caller error and rejected at construction.
    With zero income the ratios are reported as 0; the classifier treats that
    combination as its explicit zero-income case.
    """

    model_config = ConfigDict(frozen=True)

    monthly_income: float = Field(ge=0.0)
    monthly_expenses: float = Field(ge=0.0)
    monthly_loan_payments: float = Field(ge=0.0)

    @computed_field(return_type=float)
    def disposable_income(self) -> float:
        return self.monthly_income - self.monthly_expenses - self.monthly_loan_payments

    @computed_field(return_type=float)
    def debt_to_income_ratio(self) -> float:
        if self.monthly_income <= 0:
            return 0.0
        return self.monthly_loan_payments / self.monthly_income

    @computed_field(return_type=float)
    def savings_rate(self) -> float:
        """Disposable share of income, floored at 0 when overspending."""
        if self.monthly_income <= 0:
            return 0.0
        return max(self.disposable_income / self.monthly_income, 0.0)


class PolicyCoverageState(BaseModel):
    """
    Cumulative deductible and out-of-pocket progress of one insurance policy.

    Threaded through sequential allocations: each call takes the previous
    state and returns the next one. Counters only move forward; resetting
    them for a new policy period is the caller's job.
    """

    model_config = ConfigDict(frozen=True)

    deductible: float = Field(ge=0.0)
    deductible_met: float = Field(default=0.0, ge=0.0)
    out_of_pocket_max: float = Field(gt=0.0)
    out_of_pocket_current: float = Field(default=0.0, ge=0.0)
    coverage_percentage: float = Field(ge=0.0, le=100.0)
    is_active: bool = True

    @model_validator(mode="after")
    def counters_within_limits(self) -> "PolicyCoverageState":
        if self.deductible_met > self.deductible:
            raise ValueError("deductible met cannot exceed total deductible")
        if self.out_of_pocket_current > self.out_of_pocket_max:
            raise ValueError("current out of pocket cannot exceed maximum")
        return self

    @computed_field(return_type=float)
    def remaining_deductible(self) -> float:
        return max(self.deductible - self.deductible_met, 0.0)

    @computed_field(return_type=float)
    def remaining_out_of_pocket(self) -> float:
        return max(self.out_of_pocket_max - self.out_of_pocket_current, 0.0)

    @computed_field(return_type=bool)
    def is_deductible_met(self) -> bool:
        return self.deductible_met >= self.deductible

    @computed_field(return_type=bool)
    def is_out_of_pocket_max_reached(self) -> bool:
        return self.out_of_pocket_current >= self.out_of_pocket_max


class InsurancePolicyFacts(BaseModel):
    """An insurance policy as seen by the policy review checks."""

    model_config = ConfigDict(frozen=True)

    policy_id: str = ""
    policy_type: PolicyType | str
    monthly_premium: float = Field(default=0.0, ge=0.0)
    coverage: PolicyCoverageState

    @computed_field(return_type=bool)
    def is_active(self) -> bool:
        return self.coverage.is_active

    @computed_field(return_type=float)
    def annual_premium(self) -> float:
        return self.monthly_premium * 12


class MedicalConditionFact(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    category: ConditionCategory | str
    severity: Severity | str
    is_active: bool = True
    requires_medication: bool = False
    monthly_med_cost: float = Field(default=0.0, ge=0.0)


class MedicalExpenseFact(BaseModel):
    """A medical bill together with what insurance already paid on it."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(ge=0.0)
    category: MedicalExpenseCategory | str
    description: str = ""
    is_recurring: bool = False
    frequency: MedicalExpenseFrequency | str = MedicalExpenseFrequency.ONE_TIME
    insurance_payment: float = Field(default=0.0, ge=0.0)
    out_of_pocket: float = Field(default=0.0, ge=0.0)


class HealthProfileFacts(BaseModel):
    """
    Physical profile used for the health risk score.

    Height and weight are not range-checked here so that the BMI calculation
    can report them as invalid input.
    """

    model_config = ConfigDict(frozen=True)

    age: int = Field(ge=0)
    height_cm: float
    weight_kg: float
    bmi: float | None = None
    family_size: int = Field(default=1, ge=1)
    has_chronic_conditions: bool = False


class LoanFacts(BaseModel):
    model_config = ConfigDict(frozen=True)

    loan_id: str = ""
    lender: str = ""
    loan_type: LoanType | str = LoanType.PERSONAL
    principal: float = Field(gt=0.0)
    remaining_balance: float = Field(ge=0.0)
    monthly_payment: float = Field(gt=0.0)
    annual_interest_rate_percent: float = Field(ge=0.0, le=100.0)

    @model_validator(mode="after")
    def balance_within_principal(self) -> "LoanFacts":
        if self.remaining_balance > self.principal:
            raise ValueError("remaining balance cannot exceed principal amount")
        return self
