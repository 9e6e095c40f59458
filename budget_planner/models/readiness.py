"""
Readiness forecasting for annually recurring celebration events.

Given the balance of a celebrations envelope and the birthdays or other
yearly events it has to cover, this module works out whether the balance is
on pace for the nearest event and how much extra per pay cycle would close
the gap.
"""

import logging
import math
from datetime import date
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import require_non_negative
from .pay_cycle import (
    DateLike,
    PayCycle,
    cycles_per_year,
    cycles_until,
    days_until,
    resolve_next_occurrence,
    to_date,
    validate_pay_cycle,
)

logger = logging.getLogger(__name__)

ReadinessStatus = Literal["on_track", "slightly_behind", "needs_attention", "no_events"]

# Label of the party/food budget entry, which has no date of its own
PARTY_SENTINEL = "__PARTY__"

READY_RATIO = 0.8
CATCH_UP_THRESHOLD = 10.0


class CelebrationEvent(BaseModel):
    """A yearly event with a gift budget and an optional party budget."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Recipient or event name")
    event_date: Optional[date] = Field(
        default=None, description="Month and day the event recurs on (year ignored)"
    )
    gift_amount: float = Field(default=0.0, ge=0, description="Gift budget")
    party_amount: float = Field(default=0.0, ge=0, description="Party/food budget")

    @field_validator("event_date", mode="before")
    @classmethod
    def parse_event_date(cls, v):
        if v is None or v == "":
            return None
        return to_date(v)

    @property
    def total_cost(self) -> float:
        return self.gift_amount + self.party_amount

    @property
    def is_party_only(self) -> bool:
        return self.label == PARTY_SENTINEL


class NextEvent(BaseModel):
    """The nearest upcoming event and how far away it is."""

    label: str
    resolved_date: date
    amount_needed: float = Field(..., ge=0)
    days_until: int
    cycles_until: int = Field(..., ge=0)


class ReadinessResult(BaseModel):
    """Readiness of a balance against upcoming celebration events."""

    next_event: Optional[NextEvent] = None
    status: ReadinessStatus
    current_balance: float
    amount_needed: float = Field(..., ge=0)
    shortfall: float = Field(..., ge=0)
    per_cycle_catch_up: float = Field(..., ge=0)
    annual_total: float = Field(..., ge=0)
    steady_state_per_cycle: float = Field(..., ge=0)


def _eligible_events(events: Sequence[CelebrationEvent]) -> List[CelebrationEvent]:
    """
    Events with a cost that can be placed on the calendar.

    The party-only entry has no date; it is kept only when no dated event
    is left, in which case it is due immediately.
    """
    costed = [e for e in events if e.total_cost > 0]
    dated = [e for e in costed if not e.is_party_only and e.event_date is not None]
    if dated:
        return dated
    party = [e for e in costed if e.is_party_only]
    if len(party) == 1:
        return party
    return []


def calculate_readiness(
    current_balance: float,
    events: Sequence[CelebrationEvent],
    pay_cycle: PayCycle,
    today: DateLike,
    ready_ratio: float = READY_RATIO,
    catch_up_threshold: float = CATCH_UP_THRESHOLD,
) -> ReadinessResult:
    """
    Calculate whether ``current_balance`` is on pace for the next event.

    Args:
        current_balance: Amount currently saved
        events: Celebration events to cover
        pay_cycle: The user's pay cycle
        today: Reference date
        ready_ratio: Fraction of the next event already saved that counts as
            only slightly behind
        catch_up_threshold: Per-cycle catch-up amount at or below which the
            gap counts as only slightly behind

    Returns:
        ReadinessResult for the nearest event

    Raises:
        InvalidInputError: For a negative balance, unknown pay cycle or bad date
    """
    require_non_negative(current_balance, "current_balance")
    validate_pay_cycle(pay_cycle)
    today = to_date(today)

    eligible = _eligible_events(events)
    if not eligible:
        return ReadinessResult(
            next_event=None,
            status="no_events",
            current_balance=current_balance,
            amount_needed=0.0,
            shortfall=0.0,
            per_cycle_catch_up=0.0,
            annual_total=0.0,
            steady_state_per_cycle=0.0,
        )

    scheduled = []
    for event in eligible:
        if event.is_party_only:
            resolved = today
        else:
            resolved = resolve_next_occurrence(event.event_date, today)
        scheduled.append((resolved, event))
    # Stable sort: same-date events keep their input order
    scheduled.sort(key=lambda item: item[0])

    resolved_date, event = scheduled[0]
    days = days_until(resolved_date, today)
    cycles = cycles_until(days, pay_cycle)

    amount_needed = event.total_cost
    gap = max(0.0, amount_needed - current_balance)
    if cycles > 0:
        catch_up = math.ceil(gap / cycles * 100) / 100
    else:
        catch_up = gap

    if gap <= 0:
        status = "on_track"
    elif cycles == 0:
        status = "needs_attention"
    else:
        percentage_ready = current_balance / amount_needed
        if percentage_ready >= ready_ratio or catch_up <= catch_up_threshold:
            status = "slightly_behind"
        else:
            status = "needs_attention"

    annual_total = sum(e.total_cost for e in eligible)
    steady_state = round(annual_total / cycles_per_year(pay_cycle), 2)

    logger.debug(
        f"Readiness for {event.label} on {resolved_date}: {status}, "
        f"shortfall {gap:.2f} over {cycles} cycles"
    )
    return ReadinessResult(
        next_event=NextEvent(
            label=event.label,
            resolved_date=resolved_date,
            amount_needed=amount_needed,
            days_until=days,
            cycles_until=cycles,
        ),
        status=status,
        current_balance=current_balance,
        amount_needed=amount_needed,
        shortfall=gap,
        per_cycle_catch_up=catch_up,
        annual_total=annual_total,
        steady_state_per_cycle=steady_state,
    )


def readiness_message(result: ReadinessResult) -> str:
    """Short human-readable summary of a readiness result."""
    if result.status == "no_events" or result.next_event is None:
        return "No upcoming events"

    label = result.next_event.label
    cycles = result.next_event.cycles_until

    if result.status == "on_track":
        if result.current_balance >= result.next_event.amount_needed * 1.1:
            return f"Ready for {label} with buffer"
        return f"On track for {label}"

    if result.status == "slightly_behind":
        if cycles == 1:
            return f"Need ${result.shortfall:.0f} more for {label} (1 pay)"
        return f"Need ${result.shortfall:.0f} more over {cycles} pays"

    if cycles == 0:
        return f"{label} is due! Short by ${result.shortfall:.0f}"
    return f"Behind for {label} - need ${result.per_cycle_catch_up:.0f}/pay extra"
