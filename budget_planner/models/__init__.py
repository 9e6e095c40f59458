"""Calculation engine for envelope budget planning."""

from .allocation import (
    AllocationSummary,
    BalanceResult,
    EnvelopeGap,
    FundingTarget,
    IncomeSource,
    IncomeSourceUsage,
    PaysUntilDue,
    TierGroup,
    auto_balance,
    envelope_gap,
    funded_by,
    group_by_priority,
    is_fully_funded,
    pays_until_due,
    shortfall,
    split_allocation,
    suggested_opening_balance,
    summarize_allocation,
    summarize_income_sources,
    total_allocated,
    validate_allocations,
)
from .debt_projection import (
    DebtPayoffProjector,
    DebtProjectionConfig,
    DebtProjectionResult,
)
from .debt_strategy import (
    DebtAccount,
    PaymentAllocation,
    PaymentPlan,
    calculate_payment_strategy,
    minimum_payment,
    simple_interest_accrued,
    total_minimum_payment,
)
from .errors import InvalidInputError, PlanningError
from .pay_cycle import (
    cycles_per_year,
    cycles_until,
    days_until,
    resolve_next_occurrence,
)
from .readiness import (
    CelebrationEvent,
    NextEvent,
    ReadinessResult,
    calculate_readiness,
)

__all__ = [
    "AllocationSummary",
    "BalanceResult",
    "EnvelopeGap",
    "FundingTarget",
    "IncomeSource",
    "IncomeSourceUsage",
    "PaysUntilDue",
    "TierGroup",
    "auto_balance",
    "envelope_gap",
    "funded_by",
    "group_by_priority",
    "is_fully_funded",
    "pays_until_due",
    "shortfall",
    "split_allocation",
    "suggested_opening_balance",
    "summarize_allocation",
    "summarize_income_sources",
    "total_allocated",
    "validate_allocations",
    "DebtPayoffProjector",
    "DebtProjectionConfig",
    "DebtProjectionResult",
    "DebtAccount",
    "PaymentAllocation",
    "PaymentPlan",
    "calculate_payment_strategy",
    "minimum_payment",
    "simple_interest_accrued",
    "total_minimum_payment",
    "InvalidInputError",
    "PlanningError",
    "cycles_per_year",
    "cycles_until",
    "days_until",
    "resolve_next_occurrence",
    "CelebrationEvent",
    "NextEvent",
    "ReadinessResult",
    "calculate_readiness",
]
