"""
Loan amortization: months to payoff, total interest and payoff date.

Months use the closed form n = -ln(1 - B*r/P) / ln(1 + r) with the monthly
rate r = annual percent / 1200, rounded up to whole months. A payment that
does not exceed the first month's interest never amortizes and is reported
as InsufficientPaymentError rather than a sentinel month count.
"""

import calendar
import math
from datetime import MAXYEAR, date

import structlog
from pydantic import BaseModel, ConfigDict, Field

from healthfin.config import LoanThresholds
from healthfin.domain.errors import InsufficientPaymentError, InvalidInputError
from healthfin.domain.models import LoanFacts, LoanType, coerce_enum

logger = structlog.get_logger(__name__)

_TYPE_NAMES: dict[LoanType, str] = {
    LoanType.MORTGAGE: "Mortgage",
    LoanType.AUTO: "Auto Loan",
    LoanType.PERSONAL: "Personal Loan",
    LoanType.STUDENT: "Student Loan",
}


class LoanProjection(BaseModel):
    """Payoff projection for a loan at its current payment."""

    model_config = ConfigDict(frozen=True)

    loan_id: str
    months_remaining: int = Field(ge=0)
    total_interest: float = Field(ge=0.0)
    payoff_date: date
    progress_percent: float
    is_high_interest: bool
    is_near_payoff: bool


def add_months(start: date, months: int) -> date:
    """
    Shift by calendar months, clamping the day to the target month's end.

    Raises InvalidInputError when the result would fall after year 9999,
    which a tiny payment against a large balance can produce.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    if year > MAXYEAR:
        raise InvalidInputError("months", months, f"moves the date past year {MAXYEAR}")
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_to_payoff(balance: float, payment: float, annual_rate_percent: float) -> int:
    if payment <= 0:
        raise InvalidInputError("monthly payment", payment, "must be greater than 0")
    if annual_rate_percent < 0:
        raise InvalidInputError("interest rate", annual_rate_percent, "must be non-negative")
    if balance <= 0:
        return 0

    monthly_rate = annual_rate_percent / 1200
    if monthly_rate == 0:
        return math.ceil(balance / payment)

    monthly_interest = balance * monthly_rate
    if payment <= monthly_interest:
        raise InsufficientPaymentError(balance, payment, monthly_interest)

    months = -math.log1p(-monthly_interest / payment) / math.log1p(monthly_rate)
    return math.ceil(months)


def total_interest(balance: float, payment: float, annual_rate_percent: float) -> float:
    """Interest still to be paid, floored at 0 for the rounded-up final month."""
    months = months_to_payoff(balance, payment, annual_rate_percent)
    if months == 0:
        return 0.0
    return max(months * payment - balance, 0.0)


def minimum_payment(principal: float, annual_rate_percent: float, term_months: int) -> float:
    """Level payment that retires ``principal`` in ``term_months``; 0 for non-positive inputs."""
    if principal <= 0 or term_months <= 0:
        return 0.0
    if annual_rate_percent <= 0:
        return principal / term_months

    monthly_rate = annual_rate_percent / 1200
    factor = (1 + monthly_rate) ** term_months
    return principal * monthly_rate * factor / (factor - 1)


class LoanAmortizer:
    """Projects loan payoff from the balance, rate and current payment."""

    def __init__(self, thresholds: LoanThresholds | None = None) -> None:
        self.thresholds = thresholds or LoanThresholds()
        self.logger = logger.bind(component="loan_amortizer")

    def months_remaining(self, loan: LoanFacts) -> int:
        return months_to_payoff(
            loan.remaining_balance, loan.monthly_payment, loan.annual_interest_rate_percent
        )

    def total_interest(self, loan: LoanFacts) -> float:
        return total_interest(
            loan.remaining_balance, loan.monthly_payment, loan.annual_interest_rate_percent
        )

    def payoff_date(self, loan: LoanFacts, today: date | None = None) -> date:
        """Estimated payoff date; ``today`` when the loan is already paid."""
        today = today or date.today()
        return add_months(today, self.months_remaining(loan))

    def progress_percent(self, loan: LoanFacts) -> float:
        return (loan.principal - loan.remaining_balance) / loan.principal * 100

    def is_high_interest(self, loan: LoanFacts) -> bool:
        thresholds = self.thresholds.high_interest_percent
        loan_type = coerce_enum(LoanType, loan.loan_type) or LoanType.PERSONAL
        return loan.annual_interest_rate_percent > thresholds[loan_type]

    def is_near_payoff(self, loan: LoanFacts) -> bool:
        try:
            months = self.months_remaining(loan)
        except InsufficientPaymentError:
            return False
        return 0 < months <= self.thresholds.near_payoff_months

    def type_display_name(self, loan: LoanFacts) -> str:
        loan_type = coerce_enum(LoanType, loan.loan_type)
        return _TYPE_NAMES[loan_type] if loan_type else "Other"

    def project(self, loan: LoanFacts, today: date | None = None) -> LoanProjection:
        """
        Full projection.

        Raises InsufficientPaymentError like months_remaining, and
        InvalidInputError when the payoff date is beyond the calendar.
        """
        today = today or date.today()
        try:
            months = self.months_remaining(loan)
        except InsufficientPaymentError:
            self.logger.warning(
                "loan_payment_insufficient",
                loan_id=loan.loan_id,
                balance=loan.remaining_balance,
                monthly_payment=loan.monthly_payment,
            )
            raise

        try:
            payoff_date = add_months(today, months)
        except InvalidInputError:
            self.logger.warning("loan_payoff_date_out_of_range", loan_id=loan.loan_id, months_remaining=months)
            raise

        projection = LoanProjection(
            loan_id=loan.loan_id,
            months_remaining=months,
            total_interest=self.total_interest(loan),
            payoff_date=payoff_date,
            progress_percent=self.progress_percent(loan),
            is_high_interest=self.is_high_interest(loan),
            is_near_payoff=0 < months <= self.thresholds.near_payoff_months,
        )
        self.logger.debug(
            "loan_projected",
            loan_id=loan.loan_id,
            months_remaining=months,
            total_interest=projection.total_interest,
        )
        return projection
