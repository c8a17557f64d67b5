"""
Tests for financial health classification in `healthfin/services/classifier.py`.

Covers:
- Each tier rule and the order in which they are evaluated
- The affordability ceiling bands
- Ratio labels, report computed fields and recommendations
- Building a snapshot from ledger facts
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from healthfin.config import ClassifierThresholds
from healthfin.domain.models import ExpenseFact, FinanceSnapshot, Frequency, HealthTier, IncomeFact
from healthfin.services.classifier import TIER_RULES, HealthClassifier, build_snapshot


def snapshot(income: float, expenses: float, loans: float) -> FinanceSnapshot:
    return FinanceSnapshot(monthly_income=income, monthly_expenses=expenses, monthly_loan_payments=loans)


@pytest.fixture
def classifier() -> HealthClassifier:
    return HealthClassifier()


class TestTierRules:
    @pytest.mark.parametrize(
        "income,expenses,loans,tier,rule",
        [
            (5000.0, 2000.0, 1000.0, HealthTier.EXCELLENT, "excellent_ratios"),
            (5000.0, 3250.0, 1000.0, HealthTier.GOOD, "default"),
            (5000.0, 1000.0, 2000.0, HealthTier.FAIR, "debt_to_income_above_healthy"),
            (5000.0, 3600.0, 1000.0, HealthTier.FAIR, "savings_below_fair"),
            (5000.0, 500.0, 3000.0, HealthTier.POOR, "debt_to_income_above_poor"),
            (3000.0, 3000.0, 500.0, HealthTier.POOR, "overspending"),
            (0.0, 0.0, 0.0, HealthTier.POOR, "zero_income"),
        ],
    )
    def test_tiers(
        self,
        classifier: HealthClassifier,
        income: float,
        expenses: float,
        loans: float,
        tier: HealthTier,
        rule: str,
    ) -> None:
        assert classifier.tier(snapshot(income, expenses, loans)) == (tier, rule)

    def test_zero_income_is_poor_not_excellent(self, classifier: HealthClassifier) -> None:
        report = classifier.classify(snapshot(0.0, 0.0, 0.0))

        assert report.debt_to_income_ratio == 0.0
        assert report.tier is HealthTier.POOR
        assert report.matched_rule == "zero_income"

    def test_rule_order_beats_rule_strength(self) -> None:
        """A snapshot matching both a Poor rule and the Excellent rule is Poor."""
        lenient = ClassifierThresholds(target_savings_rate=0.0, good_savings_rate=0.0, fair_savings_rate=0.0)
        empty = snapshot(0.0, 0.0, 0.0)
        excellent_predicate = {name: pred for name, pred, _ in TIER_RULES}["excellent_ratios"]

        assert excellent_predicate(empty, lenient)
        assert HealthClassifier(thresholds=lenient).tier(empty)[0] is HealthTier.POOR

    def test_rule_table_order(self) -> None:
        assert [name for name, _, _ in TIER_RULES] == [
            "debt_to_income_above_poor",
            "overspending",
            "zero_income",
            "debt_to_income_above_healthy",
            "savings_below_fair",
            "excellent_ratios",
        ]

    @given(
        income=st.floats(min_value=0.0, max_value=1e6),
        expenses=st.floats(min_value=0.0, max_value=1e6),
        loans=st.floats(min_value=0.0, max_value=1e6),
    )
    def test_any_poor_trigger_classifies_poor(self, income: float, expenses: float, loans: float) -> None:
        s = snapshot(income, expenses, loans)
        thresholds = ClassifierThresholds()
        poor_triggered = any(
            predicate(s, thresholds) for _, predicate, tier in TIER_RULES if tier is HealthTier.POOR
        )

        tier, _ = HealthClassifier(thresholds=thresholds).tier(s)

        assert (tier is HealthTier.POOR) == poor_triggered


class TestAffordabilityCeiling:
    @pytest.mark.parametrize(
        "income,expenses,loans,expected",
        [
            (5000.0, 2000.0, 1000.0, 6000.0),  # dti 0.20
            (5000.0, 2000.0, 1800.0, 3600.0),  # dti 0.36
            (5000.0, 1000.0, 2000.0, 4000.0),  # dti 0.40
            (5000.0, 500.0, 3000.0, 750.0),  # dti 0.60
            (3000.0, 3000.0, 0.0, 0.0),  # nothing disposable
            (3000.0, 3000.0, 500.0, 0.0),  # overspending
        ],
    )
    def test_bands(
        self, classifier: HealthClassifier, income: float, expenses: float, loans: float, expected: float
    ) -> None:
        assert classifier.affordability_ceiling(snapshot(income, expenses, loans)) == pytest.approx(expected)


class TestReport:
    def test_report_fields(self, classifier: HealthClassifier) -> None:
        report = classifier.classify(snapshot(5000.0, 2000.0, 1000.0))

        assert report.disposable_income == pytest.approx(2000.0)
        assert report.savings_rate == pytest.approx(0.4)
        assert report.health_score == 4
        assert report.budget_status == "Surplus"
        assert report.is_overspending is False
        assert report.emergency_fund_target == pytest.approx(12000.0)
        assert report.debt_to_income_level == "Excellent"
        assert report.savings_rate_level == "Excellent"
        assert report.recommendations[0].startswith("Your finances are excellent")

    def test_overspending_report(self, classifier: HealthClassifier) -> None:
        report = classifier.classify(snapshot(3000.0, 3000.0, 500.0))

        assert report.budget_status == "Deficit"
        assert report.is_overspending is True
        assert report.savings_rate == 0.0
        assert report.savings_rate_level == "Poor"
        assert report.health_score == 1
        assert any("overspending" in line for line in report.recommendations)

    def test_break_even(self, classifier: HealthClassifier) -> None:
        report = classifier.classify(snapshot(3000.0, 2500.0, 500.0))
        assert report.budget_status == "Break Even"

    @pytest.mark.parametrize(
        "ratio,level", [(0.1, "Excellent"), (0.3, "Good"), (0.45, "Fair"), (0.7, "Poor")]
    )
    def test_debt_to_income_levels(self, classifier: HealthClassifier, ratio: float, level: str) -> None:
        assert classifier.debt_to_income_level(ratio) == level

    @pytest.mark.parametrize(
        "rate,level",
        [(0.25, "Excellent"), (0.17, "Good"), (0.12, "Fair"), (0.05, "Poor"), (-0.1, "Critical")],
    )
    def test_savings_levels(self, classifier: HealthClassifier, rate: float, level: str) -> None:
        assert classifier.savings_rate_level(rate) == level

    def test_fair_recommendations_name_the_problem(self, classifier: HealthClassifier) -> None:
        report = classifier.classify(snapshot(5000.0, 1000.0, 2000.0))

        assert report.tier is HealthTier.FAIR
        assert any("debt-to-income ratio below 36%" in line for line in report.recommendations)


class TestBuildSnapshot:
    def test_aggregates_ledger_facts(self) -> None:
        incomes = [
            IncomeFact(source="salary", amount=4000.0, frequency=Frequency.MONTHLY),
            IncomeFact(source="tutoring", amount=100.0, frequency=Frequency.WEEKLY),
            IncomeFact(source="old job", amount=9999.0, frequency=Frequency.MONTHLY, is_active=False),
            IncomeFact(source="bonus", amount=2000.0, frequency=Frequency.ONE_TIME),
        ]
        expenses = [
            ExpenseFact(name="rent", category="housing", amount=1500.0, frequency=Frequency.MONTHLY),
            ExpenseFact(name="insurance", amount=1200.0, frequency=Frequency.ANNUAL),
            ExpenseFact(name="mystery", amount=50.0, frequency="hourly"),
        ]

        s = build_snapshot(incomes, expenses, [300.0, 200.0])

        assert s.monthly_income == pytest.approx(4000.0 + 100.0 * 52 / 12)
        assert s.monthly_expenses == pytest.approx(1600.0)
        assert s.monthly_loan_payments == pytest.approx(500.0)
