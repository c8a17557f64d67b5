"""
Financial health classification.

The tier is decided by a fixed, priority-ordered rule list: the first rule
that matches wins, so a snapshot that trips a Poor rule is Poor even if it
would also satisfy the Excellent rule further down. The order itself is the
contract and is exposed as TIER_RULES for auditing.
"""

from collections.abc import Callable, Iterable
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, computed_field

from healthfin.config import AffordabilityMultipliers, ClassifierThresholds
from healthfin.domain.models import ExpenseFact, FinanceSnapshot, HealthTier, IncomeFact
from healthfin.services.normalizer import normalize_to_monthly

logger = structlog.get_logger(__name__)

BudgetStatus = Literal["Surplus", "Break Even", "Deficit"]
RatioLevel = Literal["Excellent", "Good", "Fair", "Poor", "Critical"]

TierRule = tuple[str, Callable[[FinanceSnapshot, ClassifierThresholds], bool], HealthTier]


def _is_zero_income(s: FinanceSnapshot, _: ClassifierThresholds) -> bool:
    return (
        s.monthly_income == 0
        and s.debt_to_income_ratio == 0
        and s.savings_rate == 0
        and s.disposable_income == 0
    )


TIER_RULES: tuple[TierRule, ...] = (
    (
        "debt_to_income_above_poor",
        lambda s, t: s.debt_to_income_ratio > t.poor_debt_to_income,
        HealthTier.POOR,
    ),
    ("overspending", lambda s, t: s.disposable_income < 0, HealthTier.POOR),
    ("zero_income", _is_zero_income, HealthTier.POOR),
    (
        "debt_to_income_above_healthy",
        lambda s, t: s.debt_to_income_ratio > t.healthy_debt_to_income,
        HealthTier.FAIR,
    ),
    ("savings_below_fair", lambda s, t: s.savings_rate < t.fair_savings_rate, HealthTier.FAIR),
    (
        "excellent_ratios",
        lambda s, t: s.debt_to_income_ratio <= t.excellent_debt_to_income
        and s.savings_rate >= t.target_savings_rate,
        HealthTier.EXCELLENT,
    ),
)

_HEALTH_SCORES: dict[HealthTier, int] = {
    HealthTier.EXCELLENT: 4,
    HealthTier.GOOD: 3,
    HealthTier.FAIR: 2,
    HealthTier.POOR: 1,
}


class FinancialHealthReport(BaseModel):
    """Derived metrics and tier for one finance snapshot."""

    model_config = ConfigDict(frozen=True)

    snapshot: FinanceSnapshot
    tier: HealthTier
    matched_rule: str = Field(description="Name of the tier rule that decided the outcome")
    debt_to_income_ratio: float
    savings_rate: float
    disposable_income: float
    affordability_ceiling: float = Field(ge=0.0)
    emergency_fund_target: float = Field(ge=0.0)
    debt_to_income_level: RatioLevel
    savings_rate_level: RatioLevel
    recommendations: list[str]

    @computed_field(return_type=int)
    def health_score(self) -> int:
        return _HEALTH_SCORES[self.tier]

    @computed_field(return_type=str)
    def budget_status(self) -> BudgetStatus:
        if self.disposable_income > 0:
            return "Surplus"
        if self.disposable_income == 0:
            return "Break Even"
        return "Deficit"

    @computed_field(return_type=bool)
    def is_overspending(self) -> bool:
        s = self.snapshot
        return s.monthly_expenses + s.monthly_loan_payments > s.monthly_income


class HealthClassifier:
    """Turns a finance snapshot into a health tier and affordability ceiling."""

    def __init__(
        self,
        thresholds: ClassifierThresholds | None = None,
        multipliers: AffordabilityMultipliers | None = None,
    ) -> None:
        self.thresholds = thresholds or ClassifierThresholds()
        self.multipliers = multipliers or AffordabilityMultipliers()
        self.logger = logger.bind(component="health_classifier")

    def tier(self, snapshot: FinanceSnapshot) -> tuple[HealthTier, str]:
        """Return the tier and the name of the first rule that matched."""
        for name, predicate, tier in TIER_RULES:
            if predicate(snapshot, self.thresholds):
                return tier, name
        return HealthTier.GOOD, "default"

    def affordability_ceiling(self, snapshot: FinanceSnapshot) -> float:
        """Recommended maximum discretionary purchase for this snapshot."""
        disposable = snapshot.disposable_income
        if disposable <= 0:
            return 0.0

        dti = snapshot.debt_to_income_ratio
        t, m = self.thresholds, self.multipliers
        if dti <= t.excellent_debt_to_income:
            return disposable * m.excellent
        if dti <= t.healthy_debt_to_income:
            return disposable * m.healthy
        if dti <= t.poor_debt_to_income:
            return disposable * m.fair
        return disposable * m.high

    def debt_to_income_level(self, ratio: float) -> RatioLevel:
        t = self.thresholds
        if ratio <= t.excellent_debt_to_income:
            return "Excellent"
        if ratio <= t.healthy_debt_to_income:
            return "Good"
        if ratio <= t.poor_debt_to_income:
            return "Fair"
        return "Poor"

    def savings_rate_level(self, rate: float) -> RatioLevel:
        """
        Label for a raw savings rate.

        "Critical" is only reachable for a negative rate passed in directly;
        classify() uses the snapshot's rate, which is floored at 0, so an
        overspending snapshot is labelled "Poor".
        """
        t = self.thresholds
        if rate >= t.target_savings_rate:
            return "Excellent"
        if rate >= t.good_savings_rate:
            return "Good"
        if rate >= t.fair_savings_rate:
            return "Fair"
        if rate >= 0:
            return "Poor"
        return "Critical"

    def recommendations(self, snapshot: FinanceSnapshot, tier: HealthTier) -> list[str]:
        t = self.thresholds
        dti = snapshot.debt_to_income_ratio
        advice: list[str] = []

        if tier is HealthTier.EXCELLENT:
            advice.append("Your finances are excellent! Continue your current approach.")
            advice.append("Consider investing surplus funds for long-term growth.")
        elif tier is HealthTier.GOOD:
            advice.append("Your finances are in good shape.")
            advice.append(
                f"Focus on building your emergency fund to {t.emergency_fund_months:.0f} months of expenses."
            )
            advice.append("Optimize your spending for better results.")
        elif tier is HealthTier.FAIR:
            if dti > t.healthy_debt_to_income:
                advice.append(
                    f"Focus on reducing debt to bring your debt-to-income ratio below {t.healthy_debt_to_income:.0%}."
                )
            if snapshot.savings_rate < t.good_savings_rate:
                advice.append(f"Work on increasing your savings rate to at least {t.good_savings_rate:.0%}.")
            advice.append("Review your expenses to find areas for improvement.")
        else:
            if snapshot.disposable_income < 0:
                advice.append("You're overspending. Prioritize reducing expenses immediately.")
                advice.append("Increase income through side work or better employment.")
            if dti > t.poor_debt_to_income:
                advice.append("Reduce expenses to free up money for debt payments.")
                advice.append("Consider debt consolidation or payment plans.")
            advice.append("Focus on essential expenses only until your situation improves.")

        return advice

    def classify(self, snapshot: FinanceSnapshot) -> FinancialHealthReport:
        tier, rule = self.tier(snapshot)

        report = FinancialHealthReport(
            snapshot=snapshot,
            tier=tier,
            matched_rule=rule,
            debt_to_income_ratio=snapshot.debt_to_income_ratio,
            savings_rate=snapshot.savings_rate,
            disposable_income=snapshot.disposable_income,
            affordability_ceiling=self.affordability_ceiling(snapshot),
            emergency_fund_target=snapshot.monthly_expenses * self.thresholds.emergency_fund_months,
            debt_to_income_level=self.debt_to_income_level(snapshot.debt_to_income_ratio),
            savings_rate_level=self.savings_rate_level(snapshot.savings_rate),
            recommendations=self.recommendations(snapshot, tier),
        )

        self.logger.info(
            "finances_classified",
            tier=tier.value,
            matched_rule=rule,
            debt_to_income_ratio=round(snapshot.debt_to_income_ratio, 4),
            savings_rate=round(snapshot.savings_rate, 4),
        )
        return report


def build_snapshot(
    incomes: Iterable[IncomeFact],
    expenses: Iterable[ExpenseFact],
    monthly_loan_payments: Iterable[float],
) -> FinanceSnapshot:
    """Aggregate ledger facts into monthly totals; inactive incomes are ignored."""
    monthly_income = sum(
        normalize_to_monthly(income.amount, income.frequency) for income in incomes if income.is_active
    )
    monthly_expenses = sum(normalize_to_monthly(expense.amount, expense.frequency) for expense in expenses)
    return FinanceSnapshot(
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        monthly_loan_payments=sum(monthly_loan_payments),
    )
