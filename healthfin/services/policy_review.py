"""
Insurance portfolio review: coverage gaps and policy adjustment suggestions.

Both checks are rule tables over already-validated facts. They never
allocate expenses; they only read the cumulative counters on each policy.
"""

from collections.abc import Sequence
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field

from healthfin.domain.models import (
    InsurancePolicyFacts,
    MedicalConditionFact,
    MedicalExpenseCategory,
    MedicalExpenseFact,
    PolicyType,
    Severity,
    coerce_enum,
)

logger = structlog.get_logger(__name__)

GapRisk = Literal["low", "moderate", "high", "critical"]
GapType = Literal[
    "missing_health_insurance",
    "missing_dental_coverage",
    "missing_vision_coverage",
    "uncovered_condition",
    "high_out_of_pocket",
]
AdjustmentType = Literal[
    "deductible_adjustment",
    "deductible_reduction",
    "supplemental_coverage",
    "coverage_upgrade",
    "prescription_coverage",
]


class CoverageGap(BaseModel):
    model_config = ConfigDict(frozen=True)

    gap_type: GapType
    description: str
    risk_level: GapRisk
    recommendation: str
    estimated_exposure: float = Field(ge=0.0)


class PolicyRecommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    policy_id: str | None = None
    recommendation_type: AdjustmentType
    description: str
    impact: str
    estimated_savings: float = Field(ge=0.0)


class ReviewRules(BaseModel):
    """Cut-offs used by the review checks."""

    missing_policy_exposure: dict[PolicyType, float] = Field(
        default_factory=lambda: {
            PolicyType.HEALTH: 50000.0,
            PolicyType.DENTAL: 3000.0,
            PolicyType.VISION: 1000.0,
        }
    )
    uncovered_condition_exposure: dict[Severity, tuple[GapRisk, float]] = Field(
        default_factory=lambda: {
            Severity.CRITICAL: ("critical", 20000.0),
            Severity.SEVERE: ("high", 10000.0),
            Severity.MODERATE: ("moderate", 5000.0),
        }
    )
    default_condition_exposure: float = 2000.0
    high_out_of_pocket_ratio: float = Field(default=0.6, ge=0.0, le=1.0)
    out_of_pocket_exposure_factor: float = 1.5

    low_deductible_utilization: float = 0.3
    high_deductible_threshold: float = 2000.0
    high_deductible_utilization: float = 0.8
    reducible_deductible_threshold: float = 1000.0
    premium_savings_rate: float = 0.15
    target_deductible: float = 500.0
    deductible_savings_rate: float = 0.7
    high_out_of_pocket_utilization: float = 0.8
    supplemental_savings_rate: float = 0.3
    minimum_coverage_percentage: float = 70.0
    high_medication_spend: float = 3000.0
    prescription_savings_rate: float = 0.3


class PolicyReviewer:
    """Flags gaps in an insurance portfolio and suggests adjustments."""

    def __init__(self, rules: ReviewRules | None = None) -> None:
        self.rules = rules or ReviewRules()
        self.logger = logger.bind(component="policy_reviewer")

    def evaluate_coverage_gaps(
        self,
        policies: Sequence[InsurancePolicyFacts],
        conditions: Sequence[MedicalConditionFact],
        expenses: Sequence[MedicalExpenseFact],
    ) -> list[CoverageGap]:
        gaps: list[CoverageGap] = []
        active_types = {
            coerce_enum(PolicyType, policy.policy_type) for policy in policies if policy.is_active
        }
        exposure = self.rules.missing_policy_exposure

        if PolicyType.HEALTH not in active_types:
            gaps.append(
                CoverageGap(
                    gap_type="missing_health_insurance",
                    description="No active health insurance policy found",
                    risk_level="critical",
                    recommendation="Obtain comprehensive health insurance coverage immediately",
                    estimated_exposure=exposure[PolicyType.HEALTH],
                )
            )
        if PolicyType.DENTAL not in active_types:
            gaps.append(
                CoverageGap(
                    gap_type="missing_dental_coverage",
                    description="No dental insurance coverage",
                    risk_level="moderate",
                    recommendation="Consider dental insurance for routine and emergency dental care",
                    estimated_exposure=exposure[PolicyType.DENTAL],
                )
            )
        if PolicyType.VISION not in active_types:
            gaps.append(
                CoverageGap(
                    gap_type="missing_vision_coverage",
                    description="No vision insurance coverage",
                    risk_level="low",
                    recommendation="Consider vision insurance if you wear glasses or contacts",
                    estimated_exposure=exposure[PolicyType.VISION],
                )
            )

        # Only a health policy counts as covering a medical condition
        if PolicyType.HEALTH not in active_types:
            for condition in conditions:
                if not condition.is_active:
                    continue
                severity = coerce_enum(Severity, condition.severity)
                risk_level, estimated_cost = self.rules.uncovered_condition_exposure.get(
                    severity,  # type: ignore[arg-type]
                    ("moderate", self.rules.default_condition_exposure),
                )
                gaps.append(
                    CoverageGap(
                        gap_type="uncovered_condition",
                        description=f"Condition '{condition.name}' may not be adequately covered",
                        risk_level=risk_level,
                        recommendation="Review insurance benefits for condition-specific coverage",
                        estimated_exposure=estimated_cost,
                    )
                )

        total_expenses = sum(expense.amount for expense in expenses)
        total_out_of_pocket = sum(expense.out_of_pocket for expense in expenses)
        if total_expenses > 0:
            out_of_pocket_ratio = total_out_of_pocket / total_expenses
            if out_of_pocket_ratio > self.rules.high_out_of_pocket_ratio:
                gaps.append(
                    CoverageGap(
                        gap_type="high_out_of_pocket",
                        description=(
                            f"High out-of-pocket expenses ({out_of_pocket_ratio * 100:.1f}% of total)"
                        ),
                        risk_level="high",
                        recommendation="Review deductible levels and consider supplemental insurance",
                        estimated_exposure=total_out_of_pocket * self.rules.out_of_pocket_exposure_factor,
                    )
                )

        self.logger.info(
            "coverage_gaps_evaluated",
            policy_count=len(policies),
            condition_count=len(conditions),
            gap_count=len(gaps),
        )
        return gaps

    def recommend_policy_adjustments(
        self,
        policies: Sequence[InsurancePolicyFacts],
        expenses: Sequence[MedicalExpenseFact],
    ) -> list[PolicyRecommendation]:
        rules = self.rules
        recommendations: list[PolicyRecommendation] = []

        for policy in policies:
            if not policy.is_active:
                continue
            coverage = policy.coverage

            # A zero deductible has no utilization to judge
            if coverage.deductible > 0:
                utilization = coverage.deductible_met / coverage.deductible
                if (
                    utilization < rules.low_deductible_utilization
                    and coverage.deductible > rules.high_deductible_threshold
                ):
                    recommendations.append(
                        PolicyRecommendation(
                            policy_id=policy.policy_id,
                            recommendation_type="deductible_adjustment",
                            description=(
                                "Low deductible utilization suggests you could increase "
                                "deductible to lower premiums"
                            ),
                            impact="Lower monthly premiums, higher potential out-of-pocket costs",
                            estimated_savings=policy.annual_premium * rules.premium_savings_rate,
                        )
                    )
                elif (
                    utilization > rules.high_deductible_utilization
                    and coverage.deductible > rules.reducible_deductible_threshold
                ):
                    recommendations.append(
                        PolicyRecommendation(
                            policy_id=policy.policy_id,
                            recommendation_type="deductible_reduction",
                            description=(
                                "High deductible utilization suggests you might benefit from "
                                "lower deductible"
                            ),
                            impact="Higher monthly premiums, lower out-of-pocket costs",
                            estimated_savings=(coverage.deductible - rules.target_deductible)
                            * rules.deductible_savings_rate,
                        )
                    )

            oop_utilization = coverage.out_of_pocket_current / coverage.out_of_pocket_max
            if oop_utilization > rules.high_out_of_pocket_utilization:
                recommendations.append(
                    PolicyRecommendation(
                        policy_id=policy.policy_id,
                        recommendation_type="supplemental_coverage",
                        description=(
                            "High out-of-pocket utilization suggests need for supplemental coverage"
                        ),
                        impact="Reduced financial exposure for future medical expenses",
                        estimated_savings=coverage.out_of_pocket_max * rules.supplemental_savings_rate,
                    )
                )

            if coverage.coverage_percentage < rules.minimum_coverage_percentage:
                recommendations.append(
                    PolicyRecommendation(
                        policy_id=policy.policy_id,
                        recommendation_type="coverage_upgrade",
                        description=(
                            f"Low coverage percentage ({coverage.coverage_percentage:.0f}%) "
                            "may result in high costs"
                        ),
                        impact="Better coverage for major medical expenses",
                        estimated_savings=0.0,
                    )
                )

        medication_spend = sum(
            expense.amount
            for expense in expenses
            if coerce_enum(MedicalExpenseCategory, expense.category) is MedicalExpenseCategory.MEDICATION
        )
        if medication_spend > rules.high_medication_spend:
            recommendations.append(
                PolicyRecommendation(
                    recommendation_type="prescription_coverage",
                    description=(
                        "High medication expenses suggest need for better prescription coverage"
                    ),
                    impact="Reduced medication costs through better formulary coverage",
                    estimated_savings=medication_spend * rules.prescription_savings_rate,
                )
            )

        self.logger.info(
            "policy_adjustments_recommended",
            policy_count=len(policies),
            recommendation_count=len(recommendations),
        )
        return recommendations
