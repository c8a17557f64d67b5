"""
Tests for the engine facade in `healthfin/services/engine.py`.

The components are covered on their own; these tests check the wiring:
configuration reaches each component, facts flow through the right
aggregations and policy state is handed back rather than stored.
"""

from datetime import date

import pytest

from healthfin.config import EngineConfig, LoanThresholds
from healthfin.domain.errors import InsufficientPaymentError
from healthfin.domain.models import (
    ConditionCategory,
    ExpenseFact,
    Frequency,
    HealthProfileFacts,
    HealthTier,
    IncomeFact,
    InsurancePolicyFacts,
    LoanFacts,
    LoanType,
    MedicalConditionFact,
    MedicalExpenseCategory,
    MedicalExpenseFact,
    MedicalExpenseFrequency,
    PolicyCoverageState,
    PolicyType,
    RiskLevel,
    Severity,
    Vulnerability,
)
from healthfin.services.debt_planner import Strategy
from healthfin.services.engine import HealthFinanceEngine

TODAY = date(2026, 1, 15)


@pytest.fixture
def engine() -> HealthFinanceEngine:
    return HealthFinanceEngine(EngineConfig())


@pytest.fixture
def incomes() -> list[IncomeFact]:
    return [
        IncomeFact(source="salary", amount=5000.0, frequency=Frequency.MONTHLY),
        IncomeFact(source="old job", amount=2000.0, frequency=Frequency.MONTHLY, is_active=False),
    ]


@pytest.fixture
def expenses() -> list[ExpenseFact]:
    return [
        ExpenseFact(name="rent", category="housing", amount=2400.0, frequency=Frequency.MONTHLY),
        ExpenseFact(name="insurance", category="insurance", amount=7200.0, frequency=Frequency.ANNUAL),
        ExpenseFact(name="laptop", amount=1500.0, frequency=Frequency.ONE_TIME),
    ]


@pytest.fixture
def car_loan() -> LoanFacts:
    return LoanFacts(
        loan_id="car",
        lender="Credit Union",
        loan_type=LoanType.AUTO,
        principal=12_000.0,
        remaining_balance=10_000.0,
        monthly_payment=500.0,
        annual_interest_rate_percent=5.0,
    )


class TestFinances:
    def test_classify_finances_aggregates_facts(
        self,
        engine: HealthFinanceEngine,
        incomes: list[IncomeFact],
        expenses: list[ExpenseFact],
        car_loan: LoanFacts,
    ) -> None:
        report = engine.classify_finances(incomes, expenses, [car_loan])

        assert report.snapshot.monthly_income == pytest.approx(5000.0)
        assert report.snapshot.monthly_expenses == pytest.approx(3000.0)
        assert report.snapshot.monthly_loan_payments == pytest.approx(500.0)
        assert report.tier is HealthTier.EXCELLENT
        assert report.affordability_ceiling == pytest.approx(4500.0)

    def test_no_income_is_poor(self, engine: HealthFinanceEngine) -> None:
        report = engine.classify_finances([], [])

        assert report.tier is HealthTier.POOR
        assert report.matched_rule == "zero_income"

    def test_analyze_debt(
        self,
        engine: HealthFinanceEngine,
        incomes: list[IncomeFact],
        expenses: list[ExpenseFact],
        car_loan: LoanFacts,
    ) -> None:
        analysis = engine.analyze_debt(incomes, expenses, [car_loan])

        assert analysis.total_debt == pytest.approx(10_000.0)
        assert analysis.debt_to_income_ratio == pytest.approx(0.1)
        assert analysis.status == "Excellent"

    def test_project_loan(self, engine: HealthFinanceEngine, car_loan: LoanFacts) -> None:
        projection = engine.project_loan(car_loan, today=TODAY)

        assert projection.months_remaining == 21
        assert projection.payoff_date == date(2027, 10, 15)

    def test_loan_thresholds_come_from_config(self, car_loan: LoanFacts) -> None:
        config = EngineConfig(loans=LoanThresholds(near_payoff_months=24))
        engine = HealthFinanceEngine(config)

        assert engine.project_loan(car_loan, today=TODAY).is_near_payoff is True

    def test_project_loan_propagates_insufficient_payment(self, engine: HealthFinanceEngine) -> None:
        loan = LoanFacts(
            principal=10_000.0, remaining_balance=10_000.0, monthly_payment=40.0, annual_interest_rate_percent=5.0
        )
        with pytest.raises(InsufficientPaymentError):
            engine.project_loan(loan, today=TODAY)

    def test_plan_debt(self, engine: HealthFinanceEngine, car_loan: LoanFacts) -> None:
        strategy = engine.plan_debt([car_loan], 250.0, Strategy.SNOWBALL, today=TODAY)

        assert strategy.strategy is Strategy.SNOWBALL
        assert strategy.plans[0].unwrap().recommended_payment == pytest.approx(750.0)
        assert strategy.months_saved > 0


class TestInsurance:
    def test_allocate_returns_next_state(self, engine: HealthFinanceEngine) -> None:
        state = PolicyCoverageState(
            deductible=2000.0,
            deductible_met=1800.0,
            out_of_pocket_max=6000.0,
            out_of_pocket_current=1800.0,
            coverage_percentage=80.0,
        )

        allocation = engine.allocate(state, 500.0)

        assert allocation.insurer_pays == pytest.approx(240.0)
        assert allocation.patient_pays == pytest.approx(260.0)
        assert allocation.new_state.deductible_met == pytest.approx(2000.0)
        # the caller's state is untouched
        assert state.deductible_met == pytest.approx(1800.0)

    def test_allocate_many_threads_state(self, engine: HealthFinanceEngine) -> None:
        state = PolicyCoverageState(deductible=500.0, out_of_pocket_max=1000.0, coverage_percentage=50.0)

        allocations, final = engine.allocate_many(state, [400.0, 400.0, 5000.0])

        assert [a.patient_pays for a in allocations] == pytest.approx([400.0, 250.0, 350.0])
        assert final.is_deductible_met
        assert final.is_out_of_pocket_max_reached
        assert allocations[-1].out_of_pocket_capped

    def test_review_insurance(self, engine: HealthFinanceEngine) -> None:
        conditions = [MedicalConditionFact(category=ConditionCategory.CHRONIC, severity=Severity.SEVERE)]

        review = engine.review_insurance([], conditions, [])

        assert {gap.gap_type for gap in review.gaps} == {
            "missing_health_insurance",
            "missing_dental_coverage",
            "missing_vision_coverage",
            "uncovered_condition",
        }
        assert review.recommendations == []


class TestHealth:
    @pytest.fixture
    def profile(self) -> HealthProfileFacts:
        return HealthProfileFacts(age=45, height_cm=175.0, weight_kg=70.0, family_size=3)

    @pytest.fixture
    def conditions(self) -> list[MedicalConditionFact]:
        return [
            MedicalConditionFact(
                name="diabetes",
                category=ConditionCategory.CHRONIC,
                severity=Severity.SEVERE,
                requires_medication=True,
            ),
            MedicalConditionFact(
                name="sprain", category=ConditionCategory.ACUTE, severity=Severity.MILD, is_active=False
            ),
        ]

    @pytest.fixture
    def medical_expenses(self) -> list[MedicalExpenseFact]:
        return [
            MedicalExpenseFact(
                amount=100.0,
                category=MedicalExpenseCategory.THERAPY,
                is_recurring=True,
                frequency=MedicalExpenseFrequency.MONTHLY,
            ),
            MedicalExpenseFact(
                amount=600.0,
                category=MedicalExpenseCategory.LAB_TEST,
                insurance_payment=400.0,
                out_of_pocket=200.0,
            ),
        ]

    @pytest.fixture
    def policies(self) -> list[InsurancePolicyFacts]:
        return [
            InsurancePolicyFacts(
                policy_id="health",
                policy_type=PolicyType.HEALTH,
                monthly_premium=300.0,
                coverage=PolicyCoverageState(
                    deductible=1000.0, deductible_met=400.0, out_of_pocket_max=5000.0, coverage_percentage=80.0
                ),
            ),
            InsurancePolicyFacts(
                policy_id="dental",
                policy_type=PolicyType.DENTAL,
                monthly_premium=50.0,
                coverage=PolicyCoverageState(
                    deductible=100.0, out_of_pocket_max=1000.0, coverage_percentage=50.0, is_active=False
                ),
            ),
        ]

    def test_assess_health(
        self,
        engine: HealthFinanceEngine,
        profile: HealthProfileFacts,
        conditions: list[MedicalConditionFact],
        medical_expenses: list[MedicalExpenseFact],
        policies: list[InsurancePolicyFacts],
    ) -> None:
        summary = engine.assess_health(profile, conditions, medical_expenses, policies, monthly_income=5000.0)

        # age 10 + BMI 0 + severe condition 10 + family 5
        assert summary.health_risk_score == 25
        assert summary.health_risk_level is RiskLevel.LOW
        assert summary.condition_risk.total_risk == pytest.approx(10.0)
        assert summary.condition_risk.high_risk_condition_count == 1

        assert summary.monthly_medical_expenses == pytest.approx(150.0)
        assert summary.monthly_insurance_premiums == pytest.approx(300.0)
        assert summary.total_health_costs == pytest.approx(450.0)
        assert summary.annual_deductible_remaining == pytest.approx(600.0)
        assert summary.out_of_pocket_paid == pytest.approx(200.0)

        # 1200 therapy + 600 lab + 4800 estimated medication
        assert summary.projected_annual_medical_costs == pytest.approx(6600.0)
        assert summary.coverage_gap_risk == pytest.approx(6400.0)
        assert summary.recommended_emergency_fund == pytest.approx(6 * 150.0 * 1.25)
        assert summary.financial_vulnerability is Vulnerability.MODERATE
        assert summary.priority_adjustment == pytest.approx(1.0)

    def test_assess_health_without_income(
        self, engine: HealthFinanceEngine, profile: HealthProfileFacts
    ) -> None:
        summary = engine.assess_health(profile, [], [], [], monthly_income=0.0)

        assert summary.financial_vulnerability is Vulnerability.CRITICAL
        assert summary.coverage_gap_risk == 0.0
        assert summary.recommended_emergency_fund == 0.0
