"""
Profile-level health risk: BMI, risk score, financial vulnerability and
medical cost projections.
"""

from collections.abc import Iterable
from typing import Literal

import structlog

from healthfin.domain.errors import InvalidInputError
from healthfin.domain.models import (
    HealthProfileFacts,
    MedicalConditionFact,
    MedicalExpenseFact,
    RiskLevel,
    Severity,
    Vulnerability,
    coerce_enum,
)
from healthfin.services.normalizer import medical_annualized_cost
from healthfin.services.risk import RiskAggregator

logger = structlog.get_logger(__name__)

BMICategory = Literal["underweight", "normal", "overweight", "obese"]
AgeGroup = Literal["child", "young_adult", "middle_aged", "senior"]

MAX_RISK_SCORE = 100
EMERGENCY_FUND_MONTHS = 6.0

_PROFILE_SEVERITY_POINTS: dict[Severity, int] = {
    Severity.MILD: 2,
    Severity.MODERATE: 5,
    Severity.SEVERE: 10,
    Severity.CRITICAL: 15,
}

# Yearly medication estimate when a condition carries no explicit cost
_MEDICATION_ESTIMATES: dict[Severity, float] = {
    Severity.MILD: 1200.0,
    Severity.MODERATE: 2400.0,
    Severity.SEVERE: 4800.0,
    Severity.CRITICAL: 7200.0,
}


def calculate_bmi(height_cm: float, weight_kg: float) -> float:
    """Body mass index, kg / m^2, rounded to 2 places."""
    if height_cm <= 0:
        raise InvalidInputError("height", height_cm, "must be positive")
    if weight_kg <= 0:
        raise InvalidInputError("weight", weight_kg, "must be positive")

    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 2)


def bmi_category(bmi: float) -> BMICategory:
    if bmi < 18.5:
        return "underweight"
    if bmi < 25:
        return "normal"
    if bmi < 30:
        return "overweight"
    return "obese"


def age_group(age: int) -> AgeGroup:
    if age < 18:
        return "child"
    if age < 30:
        return "young_adult"
    if age < 65:
        return "middle_aged"
    return "senior"


def profile_bmi(profile: HealthProfileFacts) -> float:
    """Stored BMI when present, otherwise computed from height and weight."""
    if profile.bmi is not None:
        return profile.bmi
    return calculate_bmi(profile.height_cm, profile.weight_kg)


def has_high_risk(profile: HealthProfileFacts) -> bool:
    if profile.age >= 65 or profile.has_chronic_conditions:
        return True
    bmi = profile_bmi(profile)
    return bmi < 18.5 or bmi >= 30


def _age_points(age: int) -> int:
    if age < 30:
        return 0
    if age < 40:
        return 5
    if age < 50:
        return 10
    if age < 60:
        return 15
    return 20


def _bmi_points(bmi: float) -> int:
    if 18.5 <= bmi < 25:
        return 0
    if 25 <= bmi < 30:
        return 8
    return 15


def _family_points(family_size: int) -> int:
    if family_size <= 2:
        return 0
    if family_size <= 4:
        return 5
    return 10


class HealthProfileAssessor:
    """Scores a health profile and projects what it costs."""

    def __init__(self, aggregator: RiskAggregator | None = None) -> None:
        self.aggregator = aggregator or RiskAggregator()
        self.logger = logger.bind(component="health_profile_assessor")

    def risk_score(
        self, profile: HealthProfileFacts, conditions: Iterable[MedicalConditionFact]
    ) -> int:
        """
        Profile risk score in [0, 100].

        Sums age, BMI, active condition severity and family size points.
        Unlike the condition aggregate, every active condition counts here
        regardless of category; an unrecognized severity counts as mild.
        """
        score = _age_points(profile.age) + _bmi_points(profile_bmi(profile))

        for condition in conditions:
            if not condition.is_active:
                continue
            severity = coerce_enum(Severity, condition.severity) or Severity.MILD
            score += _PROFILE_SEVERITY_POINTS[severity]

        score += _family_points(profile.family_size)
        return min(score, MAX_RISK_SCORE)

    def risk_level(self, score: float) -> RiskLevel:
        return self.aggregator.risk_level(score)

    def financial_vulnerability(self, monthly_health_costs: float, monthly_income: float) -> Vulnerability:
        if monthly_income <= 0:
            return Vulnerability.CRITICAL

        percentage = monthly_health_costs / monthly_income * 100
        if percentage < 5:
            return Vulnerability.SECURE
        if percentage < 10:
            return Vulnerability.MODERATE
        if percentage < 20:
            return Vulnerability.VULNERABLE
        return Vulnerability.CRITICAL

    def recommended_emergency_fund(self, risk_score: float, monthly_expenses: float) -> float:
        """Six months of expenses scaled up by the health risk score."""
        return EMERGENCY_FUND_MONTHS * monthly_expenses * (1 + risk_score / 100)

    def monthly_medical_average(self, expenses: Iterable[MedicalExpenseFact]) -> float:
        """Annualized medical spending spread over twelve months."""
        return sum(medical_annualized_cost(expense) for expense in expenses) / 12

    def projected_annual_medical_costs(
        self,
        expenses: Iterable[MedicalExpenseFact],
        conditions: Iterable[MedicalConditionFact],
    ) -> float:
        """Annualized medical spending plus expected medication for active conditions."""
        total = sum(medical_annualized_cost(expense) for expense in expenses)

        for condition in conditions:
            if not (condition.is_active and condition.requires_medication):
                continue
            if condition.monthly_med_cost > 0:
                total += condition.monthly_med_cost * 12
                continue
            severity = coerce_enum(Severity, condition.severity)
            total += _MEDICATION_ESTIMATES.get(severity, 0.0) if severity else 0.0

        return total
