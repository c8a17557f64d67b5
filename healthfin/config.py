"""
Configuration management with environment variable support and validation.

Design principles:
- Every threshold and weighting table the engine consults is a named,
  validated section here rather than a literal inside a calculation
- Validation at startup (fail fast)
- Type safety with Pydantic
- Environment overrides limited to operational knobs
"""

import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from healthfin.domain.models import ConditionCategory, LoanType, RiskLevel, Severity

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
Environment = Literal["development", "staging", "production"]


class ClassifierThresholds(BaseModel):
    """Debt-to-income and savings-rate cut-offs for the financial health tiers."""

    excellent_debt_to_income: float = Field(default=0.28, ge=0.0, le=1.0)
    healthy_debt_to_income: float = Field(default=0.36, ge=0.0, le=1.0)
    poor_debt_to_income: float = Field(default=0.50, ge=0.0, le=1.0)

    target_savings_rate: float = Field(default=0.20, ge=0.0, le=1.0)
    good_savings_rate: float = Field(default=0.15, ge=0.0, le=1.0)
    fair_savings_rate: float = Field(default=0.10, ge=0.0, le=1.0)

    emergency_fund_months: float = Field(default=6.0, gt=0.0)

    @model_validator(mode="after")
    def thresholds_are_ordered(self) -> "ClassifierThresholds":
        if not (
            self.excellent_debt_to_income
            <= self.healthy_debt_to_income
            <= self.poor_debt_to_income
        ):
            raise ValueError("debt-to-income thresholds must be ordered excellent <= healthy <= poor")
        if not (self.fair_savings_rate <= self.good_savings_rate <= self.target_savings_rate):
            raise ValueError("savings thresholds must be ordered fair <= good <= target")
        return self


class AffordabilityMultipliers(BaseModel):
    """Multipliers on disposable income keyed by debt-to-income band."""

    excellent: float = Field(default=3.0, ge=0.0)
    healthy: float = Field(default=3.0, ge=0.0)
    fair: float = Field(default=2.0, ge=0.0)
    high: float = Field(default=0.5, ge=0.0)


def _default_severity_points() -> dict[Severity, float]:
    return {
        Severity.MILD: 2.0,
        Severity.MODERATE: 5.0,
        Severity.SEVERE: 10.0,
        Severity.CRITICAL: 15.0,
    }


def _default_category_multipliers() -> dict[ConditionCategory, dict[Severity, float]]:
    # Literal ratios (0.533 ~ 8/15, 0.667 ~ 10/15) are kept exactly as given.
    return {
        ConditionCategory.CHRONIC: dict.fromkeys(Severity, 1.0),
        ConditionCategory.ACUTE: {
            Severity.MILD: 0.5,
            Severity.MODERATE: 0.5,
            Severity.SEVERE: 0.5,
            Severity.CRITICAL: 0.533,
        },
        ConditionCategory.MENTAL_HEALTH: {
            Severity.MILD: 0.6,
            Severity.MODERATE: 0.6,
            Severity.SEVERE: 0.6,
            Severity.CRITICAL: 0.667,
        },
        ConditionCategory.PREVENTIVE: dict.fromkeys(Severity, 0.0),
    }


def _default_purchase_multipliers() -> dict[RiskLevel, float]:
    return {
        RiskLevel.LOW: 1.0,
        RiskLevel.MODERATE: 1.2,
        RiskLevel.HIGH: 1.5,
        RiskLevel.CRITICAL: 2.0,
    }


class RiskWeights(BaseModel):
    """Weighting tables for condition risk and the derived risk level."""

    severity_points: dict[Severity, float] = Field(default_factory=_default_severity_points)
    category_multipliers: dict[ConditionCategory, dict[Severity, float]] = Field(
        default_factory=_default_category_multipliers
    )

    # Inclusive upper bounds; anything above high_max is critical
    low_max: float = Field(default=25.0, ge=0.0)
    moderate_max: float = Field(default=50.0, ge=0.0)
    high_max: float = Field(default=75.0, ge=0.0)

    purchase_multipliers: dict[RiskLevel, float] = Field(
        default_factory=_default_purchase_multipliers
    )

    @model_validator(mode="after")
    def level_bounds_are_ordered(self) -> "RiskWeights":
        if not (self.low_max <= self.moderate_max <= self.high_max):
            raise ValueError("risk level bounds must be ordered low <= moderate <= high")
        return self


def _default_high_interest_thresholds() -> dict[LoanType, float]:
    return {
        LoanType.MORTGAGE: 6.0,
        LoanType.AUTO: 8.0,
        LoanType.PERSONAL: 15.0,
        LoanType.STUDENT: 7.0,
    }


class LoanThresholds(BaseModel):
    """Per-type interest rates (percent) above which a loan counts as high interest."""

    high_interest_percent: dict[LoanType, float] = Field(
        default_factory=_default_high_interest_thresholds
    )
    near_payoff_months: int = Field(default=12, gt=0)

    @model_validator(mode="after")
    def every_loan_type_has_threshold(self) -> "LoanThresholds":
        missing = [t.value for t in LoanType if t not in self.high_interest_percent]
        if missing:
            raise ValueError(f"high interest thresholds missing for loan types: {', '.join(missing)}")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class EngineConfig(BaseModel):
    """Main configuration combining every calculation table and the logging setup."""

    environment: Environment = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    allocation_tolerance: float = Field(
        default=0.01,
        gt=0.0,
        description="Allowed drift between insurer + patient shares and the expense",
    )

    classifier: ClassifierThresholds = Field(default_factory=ClassifierThresholds)
    affordability: AffordabilityMultipliers = Field(default_factory=AffordabilityMultipliers)
    risk: RiskWeights = Field(default_factory=RiskWeights)
    loans: LoanThresholds = Field(default_factory=LoanThresholds)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "EngineConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> EngineConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Environment:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel,
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _format_to_literal(val: str | None, debug: bool) -> Literal["json", "console"]:
        if val is None:
            return "console" if debug else "json"
        return "console" if val.strip().lower() == "console" else "json"

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    loan_thresholds = LoanThresholds(
        near_payoff_months=int(os.getenv("NEAR_PAYOFF_MONTHS", "12")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format=_format_to_literal(os.getenv("LOG_FORMAT"), debug),
    )

    return EngineConfig(
        environment=environment,
        debug=debug,
        allocation_tolerance=float(os.getenv("ALLOCATION_TOLERANCE", "0.01")),
        loans=loan_thresholds,
        logging=logging_config,
    )


@lru_cache
def get_config() -> EngineConfig:
    """Get cached engine configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
    except Exception as e:
        logger.error("config_validation_failed", error=str(e))
        raise

    logger.info(
        "config_loaded",
        environment=config.environment,
        debug=config.debug,
        log_level=config.logging.level,
        allocation_tolerance=config.allocation_tolerance,
        poor_debt_to_income=config.classifier.poor_debt_to_income,
        near_payoff_months=config.loans.near_payoff_months,
    )
