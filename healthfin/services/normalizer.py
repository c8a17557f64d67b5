"""
Frequency normalization for incomes, expenses and medical bills.

Every function here is total: unrecognized frequencies and non-positive
amounts normalize to 0 instead of raising. Frequency validation belongs to
the layer that accepts user input, before values reach the engine.
"""

import structlog

from healthfin.domain.models import (
    Frequency,
    MedicalExpenseFact,
    MedicalExpenseFrequency,
    MonetaryAmount,
    coerce_enum,
)

logger = structlog.get_logger(__name__)

WEEKS_PER_YEAR = 52.0
DAYS_PER_YEAR = 365.25  # leap years included
MONTHS_PER_YEAR = 12.0

HIGH_COST_MEDICAL_EXPENSE = 500.0

_MONTHLY_FACTORS: dict[Frequency, float] = {
    Frequency.MONTHLY: 1.0,
    Frequency.WEEKLY: WEEKS_PER_YEAR / MONTHS_PER_YEAR,
    Frequency.DAILY: DAYS_PER_YEAR / MONTHS_PER_YEAR,
    Frequency.ANNUAL: 1.0 / MONTHS_PER_YEAR,
    Frequency.ONE_TIME: 0.0,  # does not recur
}

_FREQUENCY_NAMES: dict[Frequency, str] = {
    Frequency.MONTHLY: "Monthly",
    Frequency.WEEKLY: "Weekly",
    Frequency.DAILY: "Daily",
    Frequency.ANNUAL: "Annual",
    Frequency.ONE_TIME: "One-time",
}

_MEDICAL_MONTHLY_DIVISORS: dict[MedicalExpenseFrequency, float] = {
    MedicalExpenseFrequency.MONTHLY: 1.0,
    MedicalExpenseFrequency.QUARTERLY: 3.0,
    MedicalExpenseFrequency.ANNUALLY: 12.0,
}

_MEDICAL_ANNUAL_MULTIPLIERS: dict[MedicalExpenseFrequency, float] = {
    MedicalExpenseFrequency.MONTHLY: 12.0,
    MedicalExpenseFrequency.QUARTERLY: 4.0,
    MedicalExpenseFrequency.ANNUALLY: 1.0,
}


def _frequency(value: Frequency | str | None) -> Frequency | None:
    frequency = coerce_enum(Frequency, value)
    if frequency is None:
        logger.debug("unrecognized_frequency", frequency=value)
    return frequency


def normalize_to_monthly(amount: float, frequency: Frequency | str | None) -> float:
    """
    Convert a periodic amount to its monthly equivalent.

    weekly = amount * 52 / 12, daily = amount * 365.25 / 12, annual = amount / 12.
    One-time amounts, unknown frequencies and amounts <= 0 all return 0.
    """
    if amount <= 0:
        return 0.0

    resolved = _frequency(frequency)
    if resolved is None:
        return 0.0

    if resolved is Frequency.MONTHLY:
        return amount
    if resolved is Frequency.ONE_TIME:
        return 0.0
    return amount * _MONTHLY_FACTORS[resolved]


def normalize_amount(value: MonetaryAmount) -> float:
    return normalize_to_monthly(value.amount, value.frequency)


def annualize(amount: float, frequency: Frequency | str | None) -> float:
    """Annual equivalent; a one-time amount counts once in full."""
    resolved = _frequency(frequency)
    if resolved is Frequency.ONE_TIME:
        return max(amount, 0.0)
    return normalize_to_monthly(amount, resolved) * MONTHS_PER_YEAR


def is_recurring(frequency: Frequency | str | None) -> bool:
    resolved = coerce_enum(Frequency, frequency)
    return resolved is not None and resolved is not Frequency.ONE_TIME


def frequency_display_name(frequency: Frequency | str | None) -> str:
    resolved = coerce_enum(Frequency, frequency)
    if resolved is None:
        return "Unknown"
    return _FREQUENCY_NAMES[resolved]


# Medical expenses


def medical_monthly_equivalent(expense: MedicalExpenseFact) -> float:
    """Recurring monthly cost of a medical expense; one-off bills contribute 0."""
    if not expense.is_recurring or expense.amount <= 0:
        return 0.0

    frequency = coerce_enum(MedicalExpenseFrequency, expense.frequency)
    divisor = _MEDICAL_MONTHLY_DIVISORS.get(frequency) if frequency else None
    if divisor is None:
        logger.debug("unrecognized_medical_frequency", frequency=expense.frequency)
        return 0.0
    return expense.amount / divisor


def medical_annualized_cost(expense: MedicalExpenseFact) -> float:
    """Annual cost of a medical expense; non-recurring bills count once."""
    if not expense.is_recurring:
        return expense.amount

    frequency = coerce_enum(MedicalExpenseFrequency, expense.frequency)
    multiplier = _MEDICAL_ANNUAL_MULTIPLIERS.get(frequency, 1.0) if frequency else 1.0
    return expense.amount * multiplier


def medical_coverage_percentage(expense: MedicalExpenseFact) -> float:
    """Share of the bill (0-100) insurance actually paid."""
    if expense.amount == 0:
        return 0.0
    return expense.insurance_payment / expense.amount * 100


def is_high_cost_expense(expense: MedicalExpenseFact) -> bool:
    return expense.amount >= HIGH_COST_MEDICAL_EXPENSE
