"""
Error taxonomy for the calculation engine.

Unrecognized enum strings are deliberately absent here: normalizer and risk
lookups treat them as a soft zero rather than raising.
"""


class EngineError(Exception):
    """Base class for every failure the engine surfaces to callers."""


class InvalidInputError(EngineError, ValueError):
    """A numeric input is outside the range a calculation can accept."""

    def __init__(self, field: str, value: float, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{field} {reason} (got {value})")


class InsufficientPaymentError(EngineError):
    """The monthly payment does not cover the interest accruing on the balance."""

    def __init__(self, balance: float, payment: float, monthly_interest: float) -> None:
        self.balance = balance
        self.payment = payment
        self.monthly_interest = monthly_interest
        super().__init__(
            "monthly payment is insufficient to cover interest charges "
            f"(payment {payment:.2f} <= interest {monthly_interest:.2f} on balance {balance:.2f})"
        )
