"""
Allocation planning for envelope budgets.

This module works out how well each funding target (envelope) is covered by
the per-income-source contributions assigned to it, groups targets by
priority tier, and provides helpers that split or auto-balance contributions
across income sources in priority order. It also compares envelope balances
with a steady per-pay schedule and rates how urgent an upcoming bill is in
terms of paydays left.

Locked targets are treated as fixed: no helper here changes their
allocations. Deciding when to lock or unlock a target is the caller's job.
"""

import logging
import math
from typing import Dict, List, Literal, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidInputError, require_non_negative
from .pay_cycle import (
    PAY_INTERVAL_DAYS,
    DateLike,
    PayCycle,
    cycles_elapsed,
    cycles_until_due,
    days_until,
    next_pay_date,
    to_date,
)

logger = logging.getLogger(__name__)

PriorityTier = Literal["essential", "important", "discretionary", "unfunded"]
FundedBy = Literal["primary", "secondary", "split"]
GapStatus = Literal["on_track", "slight_deviation", "needs_attention"]
Urgency = Literal["overdue", "high", "medium", "low", "none"]

PRIORITY_ORDER: List[str] = ["essential", "important", "discretionary", "unfunded"]

# Absorbs rounding from upstream currency arithmetic
FUNDED_EPSILON = 0.01

# Fraction of the expected balance an envelope may be off by
ON_TRACK_TOLERANCE = 0.05
SLIGHT_DEVIATION_TOLERANCE = 0.15


class IncomeSource(BaseModel):
    """An income stream that contributions can be drawn from."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Income source identifier")
    label: str = Field(default="", description="Display label")
    ordinal: int = Field(default=0, ge=0, description="0 = primary, 1 = secondary, ...")


class FundingTarget(BaseModel):
    """An envelope with a required per-cycle contribution."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Envelope identifier")
    name: str = Field(default="", description="Envelope name")
    required_per_cycle: float = Field(
        ..., ge=0, description="Contribution required each pay cycle"
    )
    priority: PriorityTier = Field(default="discretionary", description="Priority tier")
    per_source_allocations: Dict[str, float] = Field(
        default_factory=dict, description="Contribution per income source id"
    )
    locked: bool = Field(
        default=False, description="Allocations are fixed and excluded from balancing"
    )

    @field_validator("per_source_allocations")
    @classmethod
    def validate_allocations(cls, v: Dict[str, float]) -> Dict[str, float]:
        for source_id, amount in v.items():
            if amount < 0:
                raise ValueError(
                    f"Allocation from {source_id} must be non-negative, got {amount}"
                )
        return v


class TierGroup(BaseModel):
    """Targets in one priority tier with their subtotals."""

    tier: PriorityTier
    targets: List[FundingTarget] = Field(default_factory=list)
    subtotal_allocated: float = Field(default=0.0, ge=0)
    subtotal_required: float = Field(default=0.0, ge=0)
    subtotal_shortfall: float = Field(default=0.0, ge=0)


class IncomeSourceUsage(BaseModel):
    """How much of an income source's per-cycle budget is committed."""

    source_id: str
    label: str
    budget: float
    allocated: float
    remaining: float
    percent_used: float


class AllocationSummary(BaseModel):
    """Totals and fundedness counts across a set of targets."""

    total_required: float = Field(..., ge=0)
    total_allocated: float = Field(..., ge=0)
    total_shortfall: float = Field(..., ge=0)
    fully_funded_count: int = Field(..., ge=0)
    partially_funded_count: int = Field(..., ge=0)
    unfunded_count: int = Field(..., ge=0)


class BalanceResult(BaseModel):
    """Outcome of auto-balancing contributions across income sources."""

    allocations: Dict[str, Dict[str, float]] = Field(
        ..., description="New allocations per target id"
    )
    remaining_budgets: Dict[str, float] = Field(
        ..., description="Unallocated budget left per income source id"
    )
    locked_target_ids: List[str] = Field(
        default_factory=list, description="Targets left untouched because locked"
    )


class EnvelopeGap(BaseModel):
    """Actual envelope balance against where steady saving would have it."""

    expected_balance: float = Field(..., ge=0)
    actual_balance: float
    gap: float = Field(..., description="Positive when ahead of schedule")
    cycles_elapsed: int = Field(..., ge=0)
    status: GapStatus


class PaysUntilDue(BaseModel):
    """How many paydays remain before a bill falls due."""

    pays: int = Field(..., ge=-1, description="-1 when overdue")
    days_until_due: int
    urgency: Urgency
    display_text: str


def total_allocated(target: FundingTarget) -> float:
    """Sum of all contributions assigned to ``target``."""
    return sum(target.per_source_allocations.values())


def is_fully_funded(target: FundingTarget, epsilon: float = FUNDED_EPSILON) -> bool:
    """
    Whether contributions cover the required amount, within ``epsilon``.

    A target that requires nothing is always fully funded.
    """
    if target.required_per_cycle == 0:
        return True
    return total_allocated(target) >= target.required_per_cycle - epsilon


def shortfall(target: FundingTarget) -> float:
    """Amount still needed to cover the target, never negative."""
    return max(0.0, target.required_per_cycle - total_allocated(target))


def group_by_priority(targets: Sequence[FundingTarget]) -> Dict[str, TierGroup]:
    """
    Partition targets into the four priority tiers.

    Every tier is present in the result (in priority order), with zero
    subtotals when it has no targets. Targets keep their input order.
    """
    groups: Dict[str, TierGroup] = {}
    for tier in PRIORITY_ORDER:
        members = [t for t in targets if t.priority == tier]
        groups[tier] = TierGroup(
            tier=tier,
            targets=members,
            subtotal_allocated=sum(total_allocated(t) for t in members),
            subtotal_required=sum(t.required_per_cycle for t in members),
            subtotal_shortfall=sum(shortfall(t) for t in members),
        )
    return groups


def _ordered_sources(sources: Sequence[IncomeSource]) -> List[IncomeSource]:
    return sorted(sources, key=lambda s: s.ordinal)


def _checked_budgets(
    sources: Sequence[IncomeSource], source_budgets: Mapping[str, float]
) -> Dict[str, float]:
    budgets = {}
    for source in sources:
        budget = source_budgets.get(source.id, 0.0)
        require_non_negative(budget, f"budget for income source {source.id}")
        budgets[source.id] = budget
    return budgets


def summarize_income_sources(
    targets: Sequence[FundingTarget],
    sources: Sequence[IncomeSource],
    source_budgets: Mapping[str, float],
) -> List[IncomeSourceUsage]:
    """
    Report allocated and remaining budget for each income source.

    Args:
        targets: Funding targets carrying their current allocations
        sources: Income sources
        source_budgets: Per-cycle amount available from each source id

    Returns:
        One usage entry per source, ordered primary first
    """
    budgets = _checked_budgets(sources, source_budgets)
    usage = []
    for source in _ordered_sources(sources):
        allocated = sum(t.per_source_allocations.get(source.id, 0.0) for t in targets)
        budget = budgets[source.id]
        usage.append(
            IncomeSourceUsage(
                source_id=source.id,
                label=source.label,
                budget=budget,
                allocated=allocated,
                remaining=budget - allocated,
                percent_used=(allocated / budget * 100) if budget > 0 else 0.0,
            )
        )
    return usage


def funded_by(
    target: FundingTarget, sources: Sequence[IncomeSource]
) -> Optional[FundedBy]:
    """Describe which income sources fund ``target``, or None if none do."""
    funding_ids = [sid for sid, amount in target.per_source_allocations.items() if amount > 0]
    if not funding_ids:
        return None
    if len(funding_ids) > 1:
        return "split"

    ordered = _ordered_sources(sources)
    if ordered and ordered[0].id == funding_ids[0]:
        return "primary"
    return "secondary"


def split_allocation(
    required: float, mode: FundedBy, sources: Sequence[IncomeSource]
) -> Dict[str, float]:
    """
    Build the allocation mapping for a "funded by" choice.

    ``split`` divides the amount evenly between the primary and secondary
    sources; an odd cent goes to the primary.

    Raises:
        InvalidInputError: If the mode is unknown or the sources it needs are missing
    """
    require_non_negative(required, "required")
    ordered = _ordered_sources(sources)

    if mode == "primary":
        if not ordered:
            raise InvalidInputError("No primary income source to fund from")
        return {ordered[0].id: required}
    if mode == "secondary":
        if len(ordered) < 2:
            raise InvalidInputError("No secondary income source to fund from")
        return {ordered[1].id: required}
    if mode == "split":
        if len(ordered) < 2:
            raise InvalidInputError("Splitting requires at least two income sources")
        secondary_half = math.floor(required * 100 / 2) / 100
        return {
            ordered[0].id: round(required - secondary_half, 2),
            ordered[1].id: secondary_half,
        }
    raise InvalidInputError(f"Unknown funding mode {mode!r}")


def auto_balance(
    targets: Sequence[FundingTarget],
    sources: Sequence[IncomeSource],
    source_budgets: Mapping[str, float],
) -> BalanceResult:
    """
    Waterfall each unlocked target's requirement across income sources.

    Targets are processed tier by tier (essential first, unfunded last),
    keeping input order within a tier. Each target draws from the primary
    source first, then the next, limited by what each source has left.
    Locked targets keep their allocations, and those allocations are charged
    against the source budgets before anything else is placed.

    Args:
        targets: Funding targets to balance
        sources: Income sources to draw from
        source_budgets: Per-cycle amount available from each source id

    Returns:
        BalanceResult with new allocations and leftover budgets
    """
    ordered_sources = _ordered_sources(sources)
    remaining = _checked_budgets(sources, source_budgets)
    allocations: Dict[str, Dict[str, float]] = {}
    locked_ids = []

    for target in targets:
        if not target.locked:
            continue
        locked_ids.append(target.id)
        allocations[target.id] = dict(target.per_source_allocations)
        for source_id, amount in target.per_source_allocations.items():
            if source_id in remaining:
                remaining[source_id] = max(0.0, remaining[source_id] - amount)

    unlocked = [t for t in targets if not t.locked]
    unlocked.sort(key=lambda t: PRIORITY_ORDER.index(t.priority))

    for target in unlocked:
        needed = target.required_per_cycle
        target_allocations: Dict[str, float] = {}
        for source in ordered_sources:
            if needed <= FUNDED_EPSILON:
                break
            amount = round(min(needed, remaining[source.id]), 2)
            if amount > FUNDED_EPSILON:
                target_allocations[source.id] = amount
                remaining[source.id] = round(remaining[source.id] - amount, 2)
                needed = round(needed - amount, 2)
        allocations[target.id] = target_allocations

    logger.debug(
        f"Balanced {len(unlocked)} targets, {len(locked_ids)} locked, "
        f"remaining budgets {remaining}"
    )
    return BalanceResult(
        allocations=allocations,
        remaining_budgets=remaining,
        locked_target_ids=locked_ids,
    )


def validate_allocations(
    targets: Sequence[FundingTarget],
    sources: Sequence[IncomeSource],
    source_budgets: Mapping[str, float],
    epsilon: float = FUNDED_EPSILON,
) -> List[str]:
    """Warnings worth showing before allocations are saved."""
    warnings = []

    unfunded_essentials = [
        t
        for t in targets
        if t.priority == "essential"
        and t.required_per_cycle > 0
        and not is_fully_funded(t, epsilon)
    ]
    if unfunded_essentials:
        warnings.append(
            f"{len(unfunded_essentials)} essential envelope(s) are not fully funded"
        )

    for usage in summarize_income_sources(targets, sources, source_budgets):
        if usage.allocated > usage.budget + FUNDED_EPSILON:
            label = usage.label or usage.source_id
            warnings.append(
                f"{label} income is over-allocated by "
                f"${usage.allocated - usage.budget:.2f}"
            )

    return warnings


def summarize_allocation(
    targets: Sequence[FundingTarget], epsilon: float = FUNDED_EPSILON
) -> AllocationSummary:
    """Totals and fully/partially/un-funded counts for ``targets``."""
    fully = partially = unfunded = 0
    for target in targets:
        if is_fully_funded(target, epsilon):
            fully += 1
        elif total_allocated(target) > 0:
            partially += 1
        else:
            unfunded += 1

    return AllocationSummary(
        total_required=sum(t.required_per_cycle for t in targets),
        total_allocated=sum(total_allocated(t) for t in targets),
        total_shortfall=sum(shortfall(t) for t in targets),
        fully_funded_count=fully,
        partially_funded_count=partially,
        unfunded_count=unfunded,
    )


def envelope_gap(
    current_amount: float,
    opening_balance: float,
    ideal_per_pay: float,
    cycle_start: DateLike,
    today: DateLike,
    pay_cycle: PayCycle,
) -> EnvelopeGap:
    """
    Compare an envelope's balance with ``ideal_per_pay`` saved every cycle.

    The expected balance is the ideal per-pay amount times the pay cycles
    elapsed since ``cycle_start``. Being within 5% of it is on track, within
    15% a slight deviation, anything further off needs attention.

    Args:
        current_amount: Amount contributed to the envelope so far
        opening_balance: Amount the envelope started with
        ideal_per_pay: Steady-state contribution per pay cycle
        cycle_start: Start of the current bill cycle
        today: Reference date
        pay_cycle: The user's pay cycle

    Returns:
        EnvelopeGap with amounts rounded to cents
    """
    require_non_negative(ideal_per_pay, "ideal_per_pay")
    elapsed = cycles_elapsed(cycle_start, today, pay_cycle)

    expected = ideal_per_pay * elapsed
    actual = current_amount + opening_balance
    gap = actual - expected
    percentage_off = abs(gap) / expected if expected > 0 else 0.0

    if percentage_off <= ON_TRACK_TOLERANCE:
        status = "on_track"
    elif percentage_off <= SLIGHT_DEVIATION_TOLERANCE:
        status = "slight_deviation"
    else:
        status = "needs_attention"

    return EnvelopeGap(
        expected_balance=round(expected, 2),
        actual_balance=round(actual, 2),
        gap=round(gap, 2),
        cycles_elapsed=elapsed,
        status=status,
    )


def suggested_opening_balance(
    target_amount: float,
    due_date: Optional[DateLike],
    ideal_per_pay: float,
    today: DateLike,
    pay_cycle: PayCycle,
) -> float:
    """
    Amount to put in an envelope up front so it reaches ``target_amount``
    by the due date with ``ideal_per_pay`` added each cycle.

    Never negative; 0 when the envelope has no due date.
    """
    require_non_negative(target_amount, "target_amount")
    require_non_negative(ideal_per_pay, "ideal_per_pay")
    if due_date is None:
        return 0.0

    cycles = cycles_until_due(today, due_date, pay_cycle)
    return max(0.0, round(target_amount - ideal_per_pay * cycles, 2))


def pays_until_due(
    due_date: DateLike,
    next_pay: DateLike,
    pay_cycle: PayCycle,
    is_funded: bool,
    today: DateLike,
) -> PaysUntilDue:
    """
    Count the paydays left before a bill is due and rate its urgency.

    A bill due on or before the next payday is 0 pays away; an overdue bill
    is -1. Funded bills never carry urgency.

    Args:
        due_date: When the bill is due
        next_pay: Stored next pay date (rolled forward if stale)
        pay_cycle: The user's pay cycle
        is_funded: Whether the bill's envelope is fully funded
        today: Reference date

    Returns:
        PaysUntilDue with the pay count, urgency and display text
    """
    today = to_date(today)
    upcoming_pay = next_pay_date(next_pay, pay_cycle, today)
    days_due = days_until(due_date, today)
    days_to_pay = days_until(upcoming_pay, today)

    if days_due < 0:
        pays = -1
    elif days_due <= days_to_pay:
        pays = 0
    else:
        pays = 1 + (days_due - days_to_pay) // PAY_INTERVAL_DAYS[pay_cycle]

    if is_funded:
        urgency = "none"
        if pays < 0:
            text = "Overdue"
        elif pays == 0:
            text = "Due soon"
        else:
            text = f"{pays} pay{'s' if pays != 1 else ''}"
    elif pays < 0:
        urgency, text = "overdue", "Overdue!"
    elif pays == 0:
        urgency, text = "high", "Due now!"
    elif pays == 1:
        urgency, text = "high", "1 pay!"
    elif pays == 2:
        urgency, text = "medium", "2 pays"
    elif pays <= 4:
        urgency, text = "low", f"{pays} pays"
    else:
        urgency, text = "none", f"{pays} pays"

    return PaysUntilDue(
        pays=pays, days_until_due=days_due, urgency=urgency, display_text=text
    )
