"""
Calculation services for the engine.

Each component is usable on its own; HealthFinanceEngine wires them together
from a single EngineConfig.
"""

from .amortizer import LoanAmortizer, LoanProjection, minimum_payment, months_to_payoff
from .classifier import TIER_RULES, FinancialHealthReport, HealthClassifier, build_snapshot
from .coverage import CoverageAllocation, CoverageAllocator
from .debt_planner import DebtPlanner, PaymentStrategy, Strategy, debt_health_status
from .engine import HealthFinanceEngine, HealthSummary
from .health_profile import HealthProfileAssessor, calculate_bmi
from .normalizer import normalize_amount, normalize_to_monthly
from .policy_review import PolicyReviewer
from .result import Result
from .risk import RiskAggregator, RiskAssessment

__all__ = [
    "TIER_RULES",
    "CoverageAllocation",
    "CoverageAllocator",
    "DebtPlanner",
    "FinancialHealthReport",
    "HealthClassifier",
    "HealthFinanceEngine",
    "HealthProfileAssessor",
    "HealthSummary",
    "LoanAmortizer",
    "LoanProjection",
    "PaymentStrategy",
    "PolicyReviewer",
    "Result",
    "RiskAggregator",
    "RiskAssessment",
    "Strategy",
    "build_snapshot",
    "calculate_bmi",
    "debt_health_status",
    "minimum_payment",
    "months_to_payoff",
    "normalize_amount",
    "normalize_to_monthly",
]
