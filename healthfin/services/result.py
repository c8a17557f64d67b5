"""
Result type for per-item failures inside batch calculations.

A debt plan over several loans should not abort because one loan's payment
cannot cover its interest or its payoff date falls off the calendar; that
loan's slot carries the error instead and the rest of the plan still adds up.

    strategy = DebtPlanner().plan(loans, 200.0, Strategy.AVALANCHE)
    finished = [r.value for r in strategy.plans if r.is_ok()]
    failed = [r.error.loan_id for r in strategy.plans if r.is_err()]
"""

from typing import Generic

from typing_extensions import TypeVar

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException, default=Exception)


class Result(Generic[ValueT, ErrorT]):
    """
    Either a computed value or the engine error that prevented it.

    Falsy values (0 months, 0.0 interest) are still Ok: presence is decided
    by which side is set, never by truthiness.
    """

    __slots__ = ("_value", "_error")

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if (value is None) == (error is None):
            raise ValueError("Result needs exactly one of value or error")
        self._value = value
        self._error = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    @property
    def value(self) -> ValueT | None:
        """The value, or None for an error result."""
        return self._value

    @property
    def error(self) -> ErrorT | None:
        """The error, or None for an ok result."""
        return self._error

    def unwrap(self) -> ValueT:
        """Return the value or raise the stored error."""
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def unwrap_or(self, default: ValueT) -> ValueT:
        return default if self._error is not None else self._value  # type: ignore[return-value]

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("unwrap_err() called on an ok result")
        return self._error

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._value == other._value and self._error is other._error

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.err({self._error!r})"
        return f"Result.ok({self._value!r})"
