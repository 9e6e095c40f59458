"""
Pay-cycle clock for budget planning calculations.

This module converts between calendar time and pay-cycle counts (weekly,
fortnightly, twice-monthly, monthly) and resolves the next occurrence of
annually recurring calendar dates such as birthdays.

Every function takes "today" as an explicit argument. Nothing here reads the
system clock.
"""

import calendar
import logging
import math
from datetime import date, datetime, timedelta
from typing import Dict, Literal, Union, get_args

from .errors import InvalidInputError, require_non_negative

logger = logging.getLogger(__name__)

PayCycle = Literal["weekly", "fortnightly", "twice_monthly", "monthly"]
BillFrequency = Literal[
    "weekly",
    "fortnightly",
    "twice_monthly",
    "monthly",
    "quarterly",
    "six_monthly",
    "annual",
    "once",
]
DateLike = Union[date, datetime, str]

PAY_CYCLES = get_args(PayCycle)
BILL_FREQUENCIES = get_args(BillFrequency)

CYCLES_PER_YEAR: Dict[str, int] = {
    "weekly": 52,
    "fortnightly": 26,
    "twice_monthly": 24,
    "monthly": 12,
}

# Estimation only, never used for exact calendar math
AVERAGE_DAYS_PER_CYCLE: Dict[str, float] = {
    "weekly": 7.0,
    "fortnightly": 14.0,
    "twice_monthly": 15.2,
    "monthly": 30.42,
}

OCCURRENCES_PER_YEAR: Dict[str, int] = {
    **CYCLES_PER_YEAR,
    "quarterly": 4,
    "six_monthly": 2,
    "annual": 1,
    "once": 1,
}

# Calendar days between consecutive pays; monthly is approximate
PAY_INTERVAL_DAYS: Dict[str, int] = {
    "weekly": 7,
    "fortnightly": 14,
    "twice_monthly": 15,
    "monthly": 30,
}


def validate_pay_cycle(cycle: str) -> str:
    """Return ``cycle`` unchanged or raise if it is not a known pay cycle."""
    if cycle not in CYCLES_PER_YEAR:
        raise InvalidInputError(
            f"Unknown pay cycle {cycle!r}, expected one of {list(PAY_CYCLES)}"
        )
    return cycle


def cycles_per_year(cycle: PayCycle) -> int:
    """Number of pay cycles in a year (52, 26, 24 or 12)."""
    return CYCLES_PER_YEAR[validate_pay_cycle(cycle)]


def average_days_per_cycle(cycle: PayCycle) -> float:
    """Average calendar days between pays, for estimates only."""
    return AVERAGE_DAYS_PER_CYCLE[validate_pay_cycle(cycle)]


def occurrences_per_year(frequency: str) -> int:
    """
    Number of times a bill of the given frequency falls due in a year.

    Args:
        frequency: A bill frequency or a pay cycle

    Returns:
        Occurrences per year

    Raises:
        InvalidInputError: If the frequency is not recognised
    """
    if frequency not in OCCURRENCES_PER_YEAR:
        raise InvalidInputError(
            f"Unknown frequency {frequency!r}, expected one of {list(BILL_FREQUENCIES)}"
        )
    return OCCURRENCES_PER_YEAR[frequency]


def to_date(value: DateLike) -> date:
    """
    Normalise a date, datetime or ISO string to a calendar date (local midnight).

    Raises:
        InvalidInputError: If a string cannot be parsed as an ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date()
        except ValueError as e:
            raise InvalidInputError(f"Unparsable date {value!r}") from e
    raise InvalidInputError(f"Expected a date, got {type(value).__name__}")


def _project_onto_year(month: int, day: int, year: int) -> date:
    """Place a month/day in ``year``. Feb 29 becomes Feb 28 in non-leap years."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def resolve_next_occurrence(annual_date: DateLike, today: DateLike) -> date:
    """
    Resolve the next occurrence of an annually recurring month/day.

    The month/day is projected onto the current year. If that date is strictly
    before today it is moved to the following year, so the result is always
    on or after today. Resolving an already-resolved date returns it unchanged.

    Args:
        annual_date: Date whose month and day recur every year (year ignored)
        today: The reference date

    Returns:
        The next occurrence on or after today
    """
    anchor = to_date(annual_date)
    today = to_date(today)

    resolved = _project_onto_year(anchor.month, anchor.day, today.year)
    if resolved < today:
        resolved = _project_onto_year(anchor.month, anchor.day, today.year + 1)
    return resolved


def days_until(target: DateLike, today: DateLike) -> int:
    """
    Whole calendar days from today until ``target``.

    Negative only when ``target`` is already in the past, which callers avoid
    by resolving recurring dates first.
    """
    delta = to_date(target) - to_date(today)
    return math.ceil(delta.total_seconds() / 86400)


def cycles_until(days: int, cycle: PayCycle) -> int:
    """
    Approximate number of whole pay cycles that fit in ``days``.

    This is an estimate based on the average cycle length, not a simulation
    of actual pay dates. Never negative.
    """
    return max(0, math.floor(days / average_days_per_cycle(cycle)))


def cycles_elapsed(start: DateLike, today: DateLike, cycle: PayCycle) -> int:
    """Whole pay cycles elapsed since ``start`` (0 if start is in the future)."""
    days = (to_date(today) - to_date(start)).days
    return max(0, math.floor(days / average_days_per_cycle(cycle)))


def cycles_until_due(today: DateLike, due: DateLike, cycle: PayCycle) -> int:
    """
    Pay cycles remaining before a due date, counting a partial cycle as one.

    Returns 0 once the due date has been reached.
    """
    days = days_until(due, today)
    if days <= 0:
        return 0
    return math.ceil(days / average_days_per_cycle(cycle))


def normalize_to_pay_cycle(
    amount: float, source_frequency: str, pay_cycle: PayCycle
) -> float:
    """
    Convert an amount expressed per ``source_frequency`` into per ``pay_cycle``.

    A weekly $1,000 income becomes $2,000 per fortnight; a monthly $3,000
    becomes $1,384.62 per fortnight.
    """
    require_non_negative(amount, "amount")
    annual = amount * occurrences_per_year(source_frequency)
    return round(annual / cycles_per_year(pay_cycle), 2)


def ideal_per_cycle(
    target_amount: float, frequency: BillFrequency, pay_cycle: PayCycle
) -> float:
    """
    Steady-state contribution per pay cycle for a recurring bill.

    The bill is annualised (amount x occurrences per year) and spread evenly
    over the pay cycles in a year. The result only changes when the bill
    amount, its frequency or the pay cycle changes.

    Args:
        target_amount: Amount due each time the bill falls due
        frequency: How often the bill falls due
        pay_cycle: The user's pay cycle

    Returns:
        Ideal per-cycle amount rounded to cents
    """
    require_non_negative(target_amount, "target_amount")
    return normalize_to_pay_cycle(target_amount, frequency, pay_cycle)


def _add_months(anchor: date, months: int) -> date:
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    return _project_onto_year(month, anchor.day, year)


def next_pay_date(stored: DateLike, cycle: PayCycle, today: DateLike) -> date:
    """
    Roll a stored pay date forward by whole cycles until it is on or after today.

    Monthly cycles advance by calendar month from the stored day (clamped to
    the month length); twice-monthly cycles advance by 15 days.
    """
    validate_pay_cycle(cycle)
    anchor = to_date(stored)
    today = to_date(today)

    if anchor >= today:
        return anchor

    if cycle == "monthly":
        months = (today.year - anchor.year) * 12 + (today.month - anchor.month)
        candidate = _add_months(anchor, months)
        if candidate < today:
            candidate = _add_months(anchor, months + 1)
        return candidate

    step = PAY_INTERVAL_DAYS[cycle]
    steps = math.ceil((today - anchor).days / step)
    result = anchor + timedelta(days=steps * step)
    logger.debug(f"Advanced pay date {anchor} by {steps} {cycle} cycles to {result}")
    return result
