"""
Facade that wires the calculation components together.

The engine holds configuration and component instances only. Policy
coverage state is never stored here: allocate() takes the caller's current
state and hands back the next one.
"""

from collections.abc import Iterable, Sequence
from datetime import date

import structlog
from pydantic import BaseModel, ConfigDict, Field, computed_field

from healthfin.config import EngineConfig, get_config
from healthfin.domain.models import (
    ExpenseFact,
    HealthProfileFacts,
    IncomeFact,
    InsurancePolicyFacts,
    LoanFacts,
    MedicalConditionFact,
    MedicalExpenseFact,
    PolicyCoverageState,
    RiskLevel,
    Vulnerability,
)
from healthfin.log import configure_logging
from healthfin.services.amortizer import LoanAmortizer, LoanProjection
from healthfin.services.classifier import FinancialHealthReport, HealthClassifier, build_snapshot
from healthfin.services.coverage import CoverageAllocation, CoverageAllocator
from healthfin.services.debt_planner import DebtAnalysis, DebtPlanner, PaymentStrategy, Strategy
from healthfin.services.health_profile import HealthProfileAssessor
from healthfin.services.policy_review import CoverageGap, PolicyRecommendation, PolicyReviewer
from healthfin.services.risk import RiskAggregator, RiskAssessment

logger = structlog.get_logger(__name__)


class HealthSummary(BaseModel):
    """Health risk and health cost picture for one user."""

    model_config = ConfigDict(frozen=True)

    health_risk_score: int = Field(ge=0, le=100)
    health_risk_level: RiskLevel
    condition_risk: RiskAssessment
    monthly_medical_expenses: float = Field(ge=0.0)
    monthly_insurance_premiums: float = Field(ge=0.0)
    annual_deductible_remaining: float = Field(ge=0.0)
    out_of_pocket_paid: float = Field(ge=0.0)
    projected_annual_medical_costs: float = Field(ge=0.0)
    coverage_gap_risk: float = Field(ge=0.0, description="Projected annual costs not yet paid out of pocket")
    recommended_emergency_fund: float = Field(ge=0.0)
    financial_vulnerability: Vulnerability
    priority_adjustment: float = Field(gt=0.0, description="Multiplier for purchase decisions")

    @computed_field(return_type=float)
    def total_health_costs(self) -> float:
        return self.monthly_medical_expenses + self.monthly_insurance_premiums


class InsuranceReview(BaseModel):
    model_config = ConfigDict(frozen=True)

    gaps: list[CoverageGap]
    recommendations: list[PolicyRecommendation]


class HealthFinanceEngine:
    """
    Entry point for the service layer.

    Each method is a pure function of its arguments plus configuration, so a
    single engine can be shared across requests.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or get_config()
        configure_logging(self.config.logging)
        self.logger = logger.bind(component="health_finance_engine")

        self.classifier = HealthClassifier(self.config.classifier, self.config.affordability)
        self.allocator = CoverageAllocator(tolerance=self.config.allocation_tolerance)
        self.risk_aggregator = RiskAggregator(self.config.risk)
        self.profile_assessor = HealthProfileAssessor(self.risk_aggregator)
        self.amortizer = LoanAmortizer(self.config.loans)
        self.debt_planner = DebtPlanner()
        self.policy_reviewer = PolicyReviewer()

        self.logger.info("engine_initialized", environment=self.config.environment)

    # Finances

    def classify_finances(
        self,
        incomes: Iterable[IncomeFact],
        expenses: Iterable[ExpenseFact],
        loans: Sequence[LoanFacts] = (),
    ) -> FinancialHealthReport:
        snapshot = build_snapshot(incomes, expenses, (loan.monthly_payment for loan in loans))
        return self.classifier.classify(snapshot)

    def analyze_debt(
        self,
        incomes: Iterable[IncomeFact],
        expenses: Iterable[ExpenseFact],
        loans: Sequence[LoanFacts],
    ) -> DebtAnalysis:
        snapshot = build_snapshot(incomes, expenses, (loan.monthly_payment for loan in loans))
        return self.debt_planner.analyze(loans, snapshot)

    def project_loan(self, loan: LoanFacts, today: date | None = None) -> LoanProjection:
        return self.amortizer.project(loan, today)

    def plan_debt(
        self,
        loans: Sequence[LoanFacts],
        extra_payment: float,
        strategy: Strategy = Strategy.AVALANCHE,
        today: date | None = None,
    ) -> PaymentStrategy:
        return self.debt_planner.plan(loans, extra_payment, strategy, today)

    # Insurance

    def allocate(self, state: PolicyCoverageState, expense_amount: float) -> CoverageAllocation:
        return self.allocator.allocate(state, expense_amount)

    def allocate_many(
        self, state: PolicyCoverageState, expense_amounts: Iterable[float]
    ) -> tuple[list[CoverageAllocation], PolicyCoverageState]:
        return self.allocator.allocate_many(state, expense_amounts)

    def review_insurance(
        self,
        policies: Sequence[InsurancePolicyFacts],
        conditions: Sequence[MedicalConditionFact],
        expenses: Sequence[MedicalExpenseFact],
    ) -> InsuranceReview:
        return InsuranceReview(
            gaps=self.policy_reviewer.evaluate_coverage_gaps(policies, conditions, expenses),
            recommendations=self.policy_reviewer.recommend_policy_adjustments(policies, expenses),
        )

    # Health

    def assess_health(
        self,
        profile: HealthProfileFacts,
        conditions: Sequence[MedicalConditionFact],
        expenses: Sequence[MedicalExpenseFact],
        policies: Sequence[InsurancePolicyFacts],
        monthly_income: float,
    ) -> HealthSummary:
        assessor = self.profile_assessor

        score = assessor.risk_score(profile, conditions)
        level = assessor.risk_level(score)
        condition_risk = self.risk_aggregator.aggregate(conditions)

        monthly_medical = assessor.monthly_medical_average(expenses)
        projected_annual = assessor.projected_annual_medical_costs(expenses, conditions)
        out_of_pocket_paid = sum(expense.out_of_pocket for expense in expenses)

        active_policies = [policy for policy in policies if policy.is_active]
        monthly_premiums = sum(policy.monthly_premium for policy in active_policies)
        deductible_remaining = sum(policy.coverage.remaining_deductible for policy in active_policies)

        summary = HealthSummary(
            health_risk_score=score,
            health_risk_level=level,
            condition_risk=condition_risk,
            monthly_medical_expenses=monthly_medical,
            monthly_insurance_premiums=monthly_premiums,
            annual_deductible_remaining=deductible_remaining,
            out_of_pocket_paid=out_of_pocket_paid,
            projected_annual_medical_costs=projected_annual,
            coverage_gap_risk=max(projected_annual - out_of_pocket_paid, 0.0),
            recommended_emergency_fund=assessor.recommended_emergency_fund(score, monthly_medical),
            financial_vulnerability=assessor.financial_vulnerability(
                monthly_medical + monthly_premiums, monthly_income
            ),
            priority_adjustment=self.risk_aggregator.purchase_multiplier(level),
        )

        self.logger.info(
            "health_assessed",
            health_risk_score=score,
            health_risk_level=level.value,
            condition_risk=condition_risk.total_risk,
            financial_vulnerability=summary.financial_vulnerability.value,
        )
        return summary
