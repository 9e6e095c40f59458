"""
Debt payoff strategy calculations.

This module provides minimum payment rules, simple interest accrual and the
allocation of surplus cash across revolving debts under a payoff strategy:

- pay_off: smallest balance first (snowball)
- highest_interest: largest APR first (avalanche)
- minimum_only: minimum payments, no extra
- custom: user-defined priority order
"""

import logging
from typing import Dict, List, Literal, Optional, Sequence, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidInputError, require_non_negative

logger = logging.getLogger(__name__)

PaymentStrategy = Literal["pay_off", "highest_interest", "minimum_only", "custom"]

PAYMENT_STRATEGIES = get_args(PaymentStrategy)

DEFAULT_MINIMUM_PERCENT = 2.0

STRATEGY_NAMES: Dict[str, str] = {
    "pay_off": "Snowball (Lowest Balance First)",
    "highest_interest": "Avalanche (Highest APR First)",
    "minimum_only": "Minimum Payments Only",
    "custom": "Custom Priority",
}


class DebtAccount(BaseModel):
    """A revolving debt such as a credit card."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Account identifier")
    name: str = Field(default="", description="Account name")
    balance: float = Field(
        ..., ge=0, description="Amount owed (signed ledger values are accepted)"
    )
    apr_percent: float = Field(default=0.0, ge=0, description="APR, e.g. 18.99")
    fixed_minimum: Optional[float] = Field(
        default=None, ge=0, description="Fixed minimum payment"
    )
    minimum_percent: Optional[float] = Field(
        default=None, ge=0, le=100, description="Minimum payment as % of balance"
    )
    minimum_floor: float = Field(
        default=0.0, ge=0, description="Lowest minimum under the percentage rule"
    )
    payoff_priority: Optional[int] = Field(
        default=None, ge=0, description="Order for the custom strategy"
    )

    @field_validator("balance", mode="before")
    @classmethod
    def normalize_balance(cls, v):
        # Ledgers store card debt as a negative balance
        if isinstance(v, (int, float)):
            return abs(v)
        return v


class PaymentAllocation(BaseModel):
    """Payment assigned to a single account."""

    account_id: str
    account_name: str
    minimum_payment: float = Field(..., ge=0)
    extra_payment: float = Field(..., ge=0)
    total_payment: float = Field(..., ge=0)
    is_target: bool = Field(default=False, description="Receives extra payment")


class PaymentPlan(BaseModel):
    """Result of applying a payment strategy to a set of accounts."""

    strategy: PaymentStrategy
    total_minimum_payment: float = Field(..., ge=0)
    surplus_available: float = Field(..., ge=0)
    surplus_allocated: float = Field(..., ge=0)
    unused_surplus: float = Field(
        ..., ge=0, description="Surplus left after every balance is covered"
    )
    allocations: List[PaymentAllocation] = Field(default_factory=list)
    target_account_id: Optional[str] = None
    projected_payoff_months: Optional[int] = None
    projected_total_interest: Optional[float] = None


class MonthlyProjection(BaseModel):
    """One month of a single-account balance projection."""

    month: int = Field(..., ge=1)
    balance: float = Field(..., ge=0)
    interest_charged: float = Field(..., ge=0)
    principal_paid: float
    payment_amount: float = Field(..., ge=0)


class StrategyRecommendation(BaseModel):
    strategy: PaymentStrategy
    reason: str


def validate_strategy(strategy: str) -> str:
    if strategy not in PAYMENT_STRATEGIES:
        raise InvalidInputError(
            f"Unknown payment strategy {strategy!r}, expected one of {list(PAYMENT_STRATEGIES)}"
        )
    return strategy


def minimum_payment(
    account: DebtAccount, default_percent: float = DEFAULT_MINIMUM_PERCENT
) -> float:
    """
    Minimum payment due on an account.

    Uses the fixed minimum if one is configured, otherwise the percentage
    rule (with its floor), otherwise ``default_percent`` of the balance.
    A fixed minimum of zero counts as not configured. The result is rounded
    to cents and never exceeds the balance.
    """
    if account.fixed_minimum:
        payment = account.fixed_minimum
    elif account.minimum_percent is not None:
        payment = max(account.balance * account.minimum_percent / 100, account.minimum_floor)
    else:
        payment = account.balance * default_percent / 100

    return round(max(0.0, min(payment, account.balance)), 2)


def total_minimum_payment(
    accounts: Sequence[DebtAccount], default_percent: float = DEFAULT_MINIMUM_PERCENT
) -> float:
    """Sum of minimum payments across ``accounts``."""
    return round(sum(minimum_payment(a, default_percent) for a in accounts), 2)


def daily_rate(apr_percent: float) -> float:
    """Daily interest rate as a decimal (18.25% APR -> 0.0005)."""
    return apr_percent / 100 / 365


def simple_interest_accrued(balance: float, apr_percent: float, days: int) -> float:
    """
    Interest accrued on ``balance`` over ``days`` without compounding.

    This linear approximation is meant for a single statement cycle (about
    30 days). Over several months it understates real accrual; use
    ``project_balance`` for that.
    """
    require_non_negative(balance, "balance")
    require_non_negative(apr_percent, "apr_percent")
    require_non_negative(days, "days")
    return balance * daily_rate(apr_percent) * days


def sort_accounts(
    accounts: Sequence[DebtAccount], strategy: PaymentStrategy
) -> List[DebtAccount]:
    """
    Order accounts for receiving extra payments.

    Sorting is stable, so accounts that tie keep their input order.
    """
    validate_strategy(strategy)
    if strategy == "pay_off":
        return sorted(accounts, key=lambda a: a.balance)
    if strategy == "highest_interest":
        return sorted(accounts, key=lambda a: -a.apr_percent)
    if strategy == "custom":
        return sorted(
            accounts,
            key=lambda a: a.payoff_priority if a.payoff_priority is not None else 999,
        )
    return list(accounts)


def calculate_payment_strategy(
    accounts: Sequence[DebtAccount],
    strategy: PaymentStrategy,
    surplus_available: float,
    default_percent: float = DEFAULT_MINIMUM_PERCENT,
) -> PaymentPlan:
    """
    Allocate minimum payments plus surplus across debts.

    Every account first receives its minimum payment. The surplus then goes
    to the first account in strategy order, up to its remaining balance, and
    any remainder rolls on to the next account. Surplus that exceeds all
    remaining balances is reported as ``unused_surplus``.

    Args:
        accounts: Debt accounts
        strategy: Payment strategy
        surplus_available: Cash available beyond minimum payments
        default_percent: Minimum payment percentage when an account has no rule

    Returns:
        PaymentPlan with per-account allocations in input order

    Raises:
        InvalidInputError: For an unknown strategy or negative surplus
    """
    validate_strategy(strategy)
    require_non_negative(surplus_available, "surplus_available")

    if not accounts:
        return PaymentPlan(
            strategy=strategy,
            total_minimum_payment=0.0,
            surplus_available=surplus_available,
            surplus_allocated=0.0,
            unused_surplus=surplus_available,
            allocations=[],
            projected_payoff_months=0,
            projected_total_interest=0.0,
        )

    minimums = {a.id: minimum_payment(a, default_percent) for a in accounts}
    extras = {a.id: 0.0 for a in accounts}
    remaining = surplus_available
    target_id = None

    if strategy != "minimum_only":
        for account in sort_accounts(accounts, strategy):
            if remaining <= 0:
                break
            room = max(0.0, account.balance - minimums[account.id])
            extra = round(min(room, remaining), 2)
            if extra > 0:
                extras[account.id] = extra
                remaining = round(remaining - extra, 2)
                if target_id is None:
                    target_id = account.id

    allocations = [
        PaymentAllocation(
            account_id=a.id,
            account_name=a.name,
            minimum_payment=minimums[a.id],
            extra_payment=extras[a.id],
            total_payment=round(minimums[a.id] + extras[a.id], 2),
            is_target=extras[a.id] > 0,
        )
        for a in accounts
    ]

    payoff_months = None
    total_interest = None
    if target_id is not None:
        target = next(a for a in accounts if a.id == target_id)
        target_payment = minimums[target_id] + extras[target_id]
        payoff_months = months_to_payoff(target.balance, target.apr_percent, target_payment)
        total_interest = total_interest_paid(
            target.balance, target.apr_percent, target_payment
        )

    surplus_allocated = round(sum(extras.values()), 2)
    logger.debug(
        f"Strategy {strategy}: allocated {surplus_allocated:.2f} of "
        f"{surplus_available:.2f} surplus, target {target_id}"
    )
    return PaymentPlan(
        strategy=strategy,
        total_minimum_payment=round(sum(minimums.values()), 2),
        surplus_available=surplus_available,
        surplus_allocated=surplus_allocated,
        unused_surplus=max(0.0, remaining),
        allocations=allocations,
        target_account_id=target_id,
        projected_payoff_months=payoff_months,
        projected_total_interest=total_interest,
    )


def compare_strategies(
    accounts: Sequence[DebtAccount], surplus_available: float
) -> Dict[str, PaymentPlan]:
    """Run every strategy over the same accounts and surplus."""
    return {
        strategy: calculate_payment_strategy(accounts, strategy, surplus_available)
        for strategy in PAYMENT_STRATEGIES
    }


def surplus_for_debt_paydown(
    total_income: float, total_budgeted: float, total_minimum_payments: float
) -> float:
    """Cash left for extra debt payments after budgets and minimums."""
    return max(0.0, total_income - total_budgeted - total_minimum_payments)


def recommend_strategy(
    accounts: Sequence[DebtAccount], surplus_available: float
) -> StrategyRecommendation:
    """Suggest a strategy for the user's balances, rates and surplus."""
    if not accounts:
        return StrategyRecommendation(
            strategy="minimum_only", reason="No debts to manage"
        )

    total_balance = sum(a.balance for a in accounts)
    total_minimum = total_minimum_payment(accounts)

    if surplus_available >= total_balance:
        return StrategyRecommendation(
            strategy="pay_off",
            reason="You have enough to clear every balance this cycle",
        )

    if surplus_available < total_minimum * 0.1:
        return StrategyRecommendation(
            strategy="minimum_only",
            reason="Build emergency savings before attacking debt aggressively",
        )

    aprs = [a.apr_percent for a in accounts]
    if max(aprs) - min(aprs) > 5:
        return StrategyRecommendation(
            strategy="highest_interest",
            reason="Targeting the highest APR first saves the most interest",
        )

    if total_balance / len(accounts) < 2000:
        return StrategyRecommendation(
            strategy="pay_off",
            reason="Clearing small balances first shows progress quickly",
        )

    return StrategyRecommendation(
        strategy="highest_interest",
        reason="Targeting the highest APR first minimises total interest",
    )


def months_to_payoff(
    balance: float, apr_percent: float, monthly_payment: float, max_months: int = 360
) -> Optional[int]:
    """
    Months needed to clear ``balance`` with monthly compounding.

    Returns None when the payment never covers the monthly interest or the
    debt outlives ``max_months``.
    """
    if balance <= 0:
        return 0

    monthly_rate = apr_percent / 100 / 12
    if monthly_payment <= balance * monthly_rate:
        return None

    months = 0
    while balance > 0 and months < max_months:
        balance = balance + balance * monthly_rate - monthly_payment
        months += 1

    return months if balance <= 0 else None


def project_balance(
    balance: float, apr_percent: float, monthly_payment: float, months: int
) -> List[MonthlyProjection]:
    """Month-by-month balance of one account under a fixed payment."""
    monthly_rate = apr_percent / 100 / 12
    projections = []

    for month in range(1, months + 1):
        if balance <= 0:
            projections.append(
                MonthlyProjection(
                    month=month,
                    balance=0.0,
                    interest_charged=0.0,
                    principal_paid=0.0,
                    payment_amount=0.0,
                )
            )
            continue

        interest = balance * monthly_rate
        owed = balance + interest
        payment = min(monthly_payment, owed)
        balance = max(0.0, owed - payment)

        projections.append(
            MonthlyProjection(
                month=month,
                balance=round(balance, 2),
                interest_charged=round(interest, 2),
                principal_paid=round(payment - interest, 2),
                payment_amount=round(payment, 2),
            )
        )

    return projections


def total_interest_paid(
    balance: float, apr_percent: float, monthly_payment: float
) -> Optional[float]:
    """Interest paid until payoff, or None if the debt is never cleared."""
    months = months_to_payoff(balance, apr_percent, monthly_payment)
    if months is None:
        return None
    projections = project_balance(balance, apr_percent, monthly_payment, months)
    return round(sum(p.interest_charged for p in projections), 2)


def format_strategy_name(strategy: PaymentStrategy) -> str:
    """Display name for a strategy."""
    return STRATEGY_NAMES[validate_strategy(strategy)]
