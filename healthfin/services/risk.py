"""
Medical condition risk aggregation.

Each active, non-preventive condition contributes
severity points x category multiplier; the total maps to a coarse risk level
and a purchase-decision multiplier. Unrecognized categories or severities
contribute 0 rather than raising.
"""

from collections.abc import Iterable

import structlog
from pydantic import BaseModel, ConfigDict, Field, computed_field

from healthfin.config import RiskWeights
from healthfin.domain.models import (
    ConditionCategory,
    MedicalConditionFact,
    RiskLevel,
    Severity,
    coerce_enum,
)

logger = structlog.get_logger(__name__)

_SEVERITY_SCORES: dict[Severity, int] = {
    Severity.MILD: 1,
    Severity.MODERATE: 2,
    Severity.SEVERE: 3,
    Severity.CRITICAL: 4,
}


class ConditionContribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    contribution: float = Field(ge=0.0)
    requires_high_risk_management: bool


class RiskAssessment(BaseModel):
    """Aggregated condition risk with its level and purchase multiplier."""

    model_config = ConfigDict(frozen=True)

    total_risk: float = Field(ge=0.0)
    level: RiskLevel
    purchase_multiplier: float = Field(gt=0.0)
    contributions: list[ConditionContribution]

    @computed_field(return_type=int)
    def high_risk_condition_count(self) -> int:
        return sum(1 for c in self.contributions if c.requires_high_risk_management)


def severity_score(severity: Severity | str) -> int:
    """1 (mild) through 4 (critical); 0 for an unrecognized severity."""
    resolved = coerce_enum(Severity, severity)
    return _SEVERITY_SCORES[resolved] if resolved else 0


def is_long_term(condition: MedicalConditionFact) -> bool:
    category = coerce_enum(ConditionCategory, condition.category)
    return category in (ConditionCategory.CHRONIC, ConditionCategory.MENTAL_HEALTH)


def requires_high_risk_management(condition: MedicalConditionFact) -> bool:
    if not condition.is_active:
        return False
    if coerce_enum(ConditionCategory, condition.category) is ConditionCategory.PREVENTIVE:
        return False
    return coerce_enum(Severity, condition.severity) in (Severity.SEVERE, Severity.CRITICAL)


def annual_medication_cost(condition: MedicalConditionFact) -> float:
    return condition.monthly_med_cost * 12


class RiskAggregator:
    """Scores medical conditions with the configured weighting tables."""

    def __init__(self, weights: RiskWeights | None = None) -> None:
        self.weights = weights or RiskWeights()
        self.logger = logger.bind(component="risk_aggregator")

    def contribution(self, condition: MedicalConditionFact) -> float:
        if not condition.is_active:
            return 0.0

        category = coerce_enum(ConditionCategory, condition.category)
        if category is ConditionCategory.PREVENTIVE:
            return 0.0

        severity = coerce_enum(Severity, condition.severity)
        if severity is None:
            self.logger.debug("unrecognized_severity", severity=condition.severity, name=condition.name)
            return 0.0
        points = self.weights.severity_points.get(severity, 0.0)

        if category is None:
            self.logger.debug("unrecognized_category", category=condition.category, name=condition.name)
            return 0.0
        multiplier = self.weights.category_multipliers.get(category, {}).get(severity, 0.0)

        return points * multiplier

    def risk_level(self, score: float) -> RiskLevel:
        w = self.weights
        if score <= w.low_max:
            return RiskLevel.LOW
        if score <= w.moderate_max:
            return RiskLevel.MODERATE
        if score <= w.high_max:
            return RiskLevel.HIGH
        return RiskLevel.CRITICAL

    def purchase_multiplier(self, level: RiskLevel | str) -> float:
        """Multiplier for purchase decisions; 1.0 for an unrecognized level."""
        resolved = coerce_enum(RiskLevel, level)
        if resolved is None:
            return 1.0
        return self.weights.purchase_multipliers.get(resolved, 1.0)

    def aggregate(self, conditions: Iterable[MedicalConditionFact]) -> RiskAssessment:
        contributions = [
            ConditionContribution(
                name=condition.name,
                contribution=self.contribution(condition),
                requires_high_risk_management=requires_high_risk_management(condition),
            )
            for condition in conditions
        ]
        total = sum(c.contribution for c in contributions)
        level = self.risk_level(total)

        assessment = RiskAssessment(
            total_risk=total,
            level=level,
            purchase_multiplier=self.purchase_multiplier(level),
            contributions=contributions,
        )
        self.logger.info(
            "condition_risk_aggregated",
            condition_count=len(contributions),
            total_risk=total,
            level=level.value,
        )
        return assessment
