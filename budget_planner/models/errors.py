"""
Exceptions raised by the budget planning calculation engine.

The engine works on already-validated inputs, so the only failures it reports
are inputs that should never have reached it.
"""


class PlanningError(Exception):
    """Base exception for calculation engine errors."""


class InvalidInputError(PlanningError, ValueError):
    """Raised when an input is malformed (unknown enum, negative amount, bad date)."""


def require_non_negative(value: float, name: str) -> float:
    """Reject negative currency amounts at a function boundary."""
    if value < 0:
        raise InvalidInputError(f"{name} must be non-negative, got {value}")
    return value
