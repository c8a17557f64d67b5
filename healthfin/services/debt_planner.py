"""
Multi-loan debt planning: avalanche and snowball payoff strategies plus a
portfolio-level debt health rating.

Strategies direct the whole extra payment at the first loan in priority
order; every other loan keeps its current payment. Savings are measured
against the same loans paid with no extra payment.
"""

from collections.abc import Sequence
from datetime import date
from enum import Enum
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field

from healthfin.domain.errors import EngineError, InvalidInputError
from healthfin.domain.models import FinanceSnapshot, LoanFacts
from healthfin.services.amortizer import add_months, months_to_payoff, total_interest
from healthfin.services.result import Result

logger = structlog.get_logger(__name__)

DebtHealthStatus = Literal["Excellent", "Good", "Fair", "Poor"]

# Interest or time advantage at which avalanche is preferred over snowball
AVALANCHE_INTEREST_ADVANTAGE = 500.0
AVALANCHE_MONTHS_ADVANTAGE = 6


class Strategy(str, Enum):
    AVALANCHE = "avalanche"  # highest rate first
    SNOWBALL = "snowball"  # smallest balance first


class LoanPaymentPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    loan_id: str
    lender: str
    current_balance: float
    interest_rate_percent: float
    minimum_payment: float
    recommended_payment: float
    payoff_order: int = Field(ge=1)
    months_to_payoff: int = Field(ge=0)
    total_interest: float = Field(ge=0.0)
    payoff_date: date


class PaymentStrategy(BaseModel):
    """Outcome of one payoff strategy over a set of loans."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    strategy: Strategy
    extra_payment: float = Field(ge=0.0)
    plans: list[Result]  # Result[LoanPaymentPlan, LoanPlanError], in payoff order
    total_interest: float
    months_to_debt_free: int
    interest_saved: float
    months_saved: int
    monthly_payment_total: float
    projected_debt_free_date: date

    @property
    def failed_loan_ids(self) -> list[str]:
        return [plan.error.loan_id for plan in self.plans if plan.error is not None]


class StrategyRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    recommended: PaymentStrategy
    alternative: PaymentStrategy
    reason: str


class DebtAnalysis(BaseModel):
    """Portfolio view of a user's loans against their monthly finances."""

    model_config = ConfigDict(frozen=True)

    total_debt: float
    total_monthly_payments: float
    weighted_average_rate: float
    debt_to_income_ratio: float
    status: DebtHealthStatus
    recommendations: list[str]


def debt_health_status(
    debt_to_income_ratio: float,
    average_rate_percent: float,
    total_debt: float,
    monthly_income: float,
) -> DebtHealthStatus:
    if debt_to_income_ratio > 0.50 or average_rate_percent > 20.0:
        return "Poor"
    if monthly_income > 0 and total_debt > monthly_income * 10:
        return "Poor"
    if debt_to_income_ratio > 0.36 or average_rate_percent > 10.0:
        return "Fair"
    if debt_to_income_ratio > 0.20 or average_rate_percent > 6.0:
        return "Good"
    return "Excellent"


def weighted_average_rate(loans: Sequence[LoanFacts]) -> float:
    """Balance-weighted annual rate in percent; 0 with no outstanding debt."""
    total = sum(loan.remaining_balance for loan in loans)
    if total <= 0:
        return 0.0
    return sum(loan.annual_interest_rate_percent * loan.remaining_balance for loan in loans) / total


class LoanPlanError(EngineError):
    """A loan inside a strategy could not be projected."""

    def __init__(self, loan_id: str, cause: EngineError) -> None:
        self.loan_id = loan_id
        self.cause = cause
        super().__init__(f"loan {loan_id or '<unnamed>'}: {cause}")


class DebtPlanner:
    """Compares payoff strategies and rates overall debt health."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="debt_planner")

    @staticmethod
    def prioritize(loans: Sequence[LoanFacts], strategy: Strategy) -> list[LoanFacts]:
        # sorted() is stable, so ties keep their input order
        if strategy is Strategy.AVALANCHE:
            return sorted(loans, key=lambda loan: loan.annual_interest_rate_percent, reverse=True)
        return sorted(loans, key=lambda loan: loan.remaining_balance)

    def plan(
        self,
        loans: Sequence[LoanFacts],
        extra_payment: float,
        strategy: Strategy,
        today: date | None = None,
    ) -> PaymentStrategy:
        if extra_payment < 0:
            raise InvalidInputError("extra payment", extra_payment, "must be non-negative")
        today = today or date.today()

        plans: list[Result[LoanPaymentPlan, EngineError]] = []
        strategy_interest = 0.0
        strategy_months = 0
        baseline_interest = 0.0
        baseline_months = 0

        for order, loan in enumerate(self.prioritize(loans, strategy), start=1):
            payment = loan.monthly_payment + (extra_payment if order == 1 else 0.0)
            rate = loan.annual_interest_rate_percent
            try:
                months = months_to_payoff(loan.remaining_balance, payment, rate)
                interest = total_interest(loan.remaining_balance, payment, rate)
                payoff_date = add_months(today, months)
            except EngineError as e:
                self.logger.warning("loan_plan_failed", loan_id=loan.loan_id, error=str(e))
                plans.append(Result.err(LoanPlanError(loan.loan_id, e)))
                continue

            plans.append(
                Result.ok(
                    LoanPaymentPlan(
                        loan_id=loan.loan_id,
                        lender=loan.lender,
                        current_balance=loan.remaining_balance,
                        interest_rate_percent=rate,
                        minimum_payment=loan.monthly_payment,
                        recommended_payment=payment,
                        payoff_order=order,
                        months_to_payoff=months,
                        total_interest=interest,
                        payoff_date=payoff_date,
                    )
                )
            )
            strategy_interest += interest
            strategy_months = max(strategy_months, months)

            # A loan with no finite baseline contributes no measurable savings
            try:
                base_months = months_to_payoff(loan.remaining_balance, loan.monthly_payment, rate)
                base_interest = total_interest(loan.remaining_balance, loan.monthly_payment, rate)
            except EngineError:
                base_months, base_interest = months, interest
            baseline_interest += base_interest
            baseline_months = max(baseline_months, base_months)

        result = PaymentStrategy(
            strategy=strategy,
            extra_payment=extra_payment,
            plans=plans,
            total_interest=strategy_interest,
            months_to_debt_free=strategy_months,
            interest_saved=baseline_interest - strategy_interest,
            months_saved=baseline_months - strategy_months,
            monthly_payment_total=sum(loan.monthly_payment for loan in loans) + extra_payment,
            projected_debt_free_date=add_months(today, strategy_months),
        )
        self.logger.info(
            "debt_strategy_planned",
            strategy=strategy.value,
            loan_count=len(loans),
            failed_count=sum(1 for p in plans if p.is_err()),
            interest_saved=result.interest_saved,
            months_saved=result.months_saved,
        )
        return result

    def suggest_strategy(
        self, loans: Sequence[LoanFacts], extra_payment: float, today: date | None = None
    ) -> StrategyRecommendation:
        avalanche = self.plan(loans, extra_payment, Strategy.AVALANCHE, today)
        snowball = self.plan(loans, extra_payment, Strategy.SNOWBALL, today)

        interest_difference = avalanche.interest_saved - snowball.interest_saved
        months_difference = avalanche.months_saved - snowball.months_saved

        if (
            interest_difference > AVALANCHE_INTEREST_ADVANTAGE
            or months_difference > AVALANCHE_MONTHS_ADVANTAGE
        ):
            return StrategyRecommendation(
                recommended=avalanche,
                alternative=snowball,
                reason=(
                    f"Avalanche method saves ${interest_difference:.2f} in interest and "
                    f"{months_difference} months compared to snowball"
                ),
            )
        return StrategyRecommendation(
            recommended=snowball,
            alternative=avalanche,
            reason="Snowball method provides psychological benefits with similar financial outcomes",
        )

    def analyze(self, loans: Sequence[LoanFacts], snapshot: FinanceSnapshot) -> DebtAnalysis:
        if not loans:
            return DebtAnalysis(
                total_debt=0.0,
                total_monthly_payments=0.0,
                weighted_average_rate=0.0,
                debt_to_income_ratio=snapshot.debt_to_income_ratio,
                status="Excellent",
                recommendations=["Great job! You have no debt."],
            )

        total_debt = sum(loan.remaining_balance for loan in loans)
        average_rate = weighted_average_rate(loans)
        dti = snapshot.debt_to_income_ratio
        status = debt_health_status(dti, average_rate, total_debt, snapshot.monthly_income)

        analysis = DebtAnalysis(
            total_debt=total_debt,
            total_monthly_payments=sum(loan.monthly_payment for loan in loans),
            weighted_average_rate=average_rate,
            debt_to_income_ratio=dti,
            status=status,
            recommendations=self.recommendations(status, dti, average_rate, loans, snapshot),
        )
        self.logger.info(
            "debt_analyzed",
            loan_count=len(loans),
            total_debt=total_debt,
            weighted_average_rate=round(average_rate, 4),
            status=status,
        )
        return analysis

    def recommendations(
        self,
        status: DebtHealthStatus,
        debt_to_income_ratio: float,
        average_rate_percent: float,
        loans: Sequence[LoanFacts],
        snapshot: FinanceSnapshot,
    ) -> list[str]:
        advice: list[str] = []

        match status:
            case "Poor":
                advice.append("Your debt levels are concerning. Immediate action required.")
                if debt_to_income_ratio > 0.50:
                    advice.append(
                        "Your debt-to-income ratio exceeds 50%. Focus on debt reduction before new purchases."
                    )
                if average_rate_percent > 15.0:
                    advice.append("Consider debt consolidation to reduce high interest rates.")
                advice.append("Avoid taking on any new debt.")
                advice.append("Consider credit counseling services.")
            case "Fair":
                advice.append("Your debt is manageable but needs attention.")
                if debt_to_income_ratio > 0.36:
                    advice.append("Work to reduce debt-to-income ratio below 36%.")
                advice.append("Make extra payments when possible to reduce interest.")
                advice.append("Avoid new debt until current debt is reduced.")
            case "Good":
                advice.append("Your debt levels are reasonable.")
                advice.append("Consider making extra payments to save on interest.")
                advice.append("Maintain current payment discipline.")
            case "Excellent":
                advice.append("Excellent debt management!")
                advice.append("Consider using surplus for investments after maintaining emergency fund.")

        if len(loans) > 1:
            highest_rate = max(loan.annual_interest_rate_percent for loan in loans)
            if highest_rate > average_rate_percent * 1.5:
                advice.append(
                    "Focus extra payments on highest interest rate debt first (avalanche method)."
                )
            else:
                advice.append(
                    "Consider snowball method to build momentum by paying smallest balances first."
                )

        if snapshot.disposable_income > 100:
            extra = snapshot.disposable_income * 0.5
            advice.append(f"Consider making an extra ${extra:.2f} monthly payment to accelerate debt payoff.")

        return advice
