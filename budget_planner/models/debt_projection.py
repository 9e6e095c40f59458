"""
Multi-account debt payoff projection.

This module simulates paying down several debts month by month under a
payment strategy. Each month interest compounds on every open balance, every
open account receives its minimum payment, and the rest of the monthly
budget goes to accounts in strategy order. When an account is cleared its
minimum payment is freed up and rolls on to the next target, which is what
gives the snowball its momentum.
"""

import logging
from typing import List

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field

from .debt_strategy import (
    DEFAULT_MINIMUM_PERCENT,
    DebtAccount,
    PaymentStrategy,
    minimum_payment,
    sort_accounts,
    total_minimum_payment,
)
from .errors import InvalidInputError

logger = logging.getLogger(__name__)

# Balances below half a cent count as paid off
PAID_OFF_TOLERANCE = 0.005


class DebtProjectionConfig(BaseModel):
    """Configuration for a payoff projection."""

    accounts: List[DebtAccount] = Field(..., min_length=1, description="Debts to project")
    strategy: PaymentStrategy = Field(default="pay_off", description="Payment strategy")
    monthly_budget: float = Field(
        ..., ge=0, description="Total paid towards debt each month"
    )
    max_months: int = Field(default=360, ge=1, le=1200, description="Projection horizon")
    default_minimum_percent: float = Field(
        default=DEFAULT_MINIMUM_PERCENT, ge=0, le=100
    )


class DebtProjectionResult(BaseModel):
    """Result of a payoff projection."""

    model_config = {"arbitrary_types_allowed": True}

    account_ids: List[str] = Field(..., description="Account ids, column order")
    # Balances after each month's payment (months, accounts)
    balances: NDArray[np.float64] = Field(..., description="End-of-month balances")
    # Interest charged each month (months, accounts)
    interest: NDArray[np.float64] = Field(..., description="Monthly interest")
    # Payments made each month (months, accounts)
    payments: NDArray[np.float64] = Field(..., description="Monthly payments")
    # 1-based month each account reaches zero (-1 if not within the horizon)
    payoff_months: NDArray[np.int32] = Field(..., description="Payoff month per account")
    months: int = Field(..., ge=0, description="Months simulated")
    total_interest: float = Field(..., ge=0)
    total_paid: float = Field(..., ge=0)
    debt_free: bool = Field(..., description="All balances cleared within the horizon")


class DebtPayoffProjector:
    """Simulates month-by-month payoff of several debts."""

    def __init__(self, config: DebtProjectionConfig):
        """Initialize the projector.

        Args:
            config: Projection configuration

        Raises:
            InvalidInputError: If the budget does not cover the minimum payments
        """
        self.config = config
        unplaced = list(range(len(config.accounts)))
        self.order: List[int] = []
        for account in sort_accounts(config.accounts, config.strategy):
            idx = next(i for i in unplaced if config.accounts[i] is account)
            unplaced.remove(idx)
            self.order.append(idx)
        self._validate_config()

    def _validate_config(self) -> None:
        required = total_minimum_payment(
            self.config.accounts, self.config.default_minimum_percent
        )
        if self.config.monthly_budget < required:
            raise InvalidInputError(
                f"Monthly budget {self.config.monthly_budget:.2f} does not cover "
                f"minimum payments of {required:.2f}"
            )

    def project(self) -> DebtProjectionResult:
        """
        Run the projection until every debt is cleared or the horizon ends.

        Returns:
            DebtProjectionResult with per-month arrays trimmed to the months used
        """
        accounts = self.config.accounts
        num_accounts = len(accounts)
        horizon = self.config.max_months

        rates = np.array([a.apr_percent / 100 / 12 for a in accounts])
        minimums = np.array(
            [minimum_payment(a, self.config.default_minimum_percent) for a in accounts]
        )
        balance = np.array([a.balance for a in accounts], dtype=np.float64)

        balances = np.zeros((horizon, num_accounts))
        interest = np.zeros((horizon, num_accounts))
        payments = np.zeros((horizon, num_accounts))
        payoff_months = np.full(num_accounts, -1, dtype=np.int32)
        payoff_months[balance <= PAID_OFF_TOLERANCE] = 0

        months = 0
        while months < horizon and np.any(balance > PAID_OFF_TOLERANCE):
            open_accounts = balance > PAID_OFF_TOLERANCE

            month_interest = np.where(open_accounts, balance * rates, 0.0)
            balance = balance + month_interest

            # Minimums first, never more than what is owed
            paid = np.where(open_accounts, np.minimum(minimums, balance), 0.0)
            balance = balance - paid
            available = self.config.monthly_budget - paid.sum()

            # Freed and surplus cash rolls through the strategy order
            for idx in self.order:
                if available <= PAID_OFF_TOLERANCE:
                    break
                if balance[idx] <= PAID_OFF_TOLERANCE:
                    continue
                extra = min(available, balance[idx])
                paid[idx] += extra
                balance[idx] -= extra
                available -= extra

            balance[balance <= PAID_OFF_TOLERANCE] = 0.0
            newly_cleared = (balance == 0.0) & (payoff_months == -1)
            payoff_months[newly_cleared] = months + 1

            balances[months] = balance
            interest[months] = month_interest
            payments[months] = paid
            months += 1

        total_interest = float(interest[:months].sum())
        debt_free = bool(np.all(balance <= PAID_OFF_TOLERANCE))
        logger.debug(
            f"Projected {num_accounts} debts over {months} months "
            f"({self.config.strategy}), debt free: {debt_free}"
        )

        return DebtProjectionResult(
            account_ids=[a.id for a in accounts],
            balances=balances[:months],
            interest=interest[:months],
            payments=payments[:months],
            payoff_months=payoff_months,
            months=months,
            total_interest=round(total_interest, 2),
            total_paid=round(float(payments[:months].sum()), 2),
            debt_free=debt_free,
        )


def compare_projections(
    accounts: List[DebtAccount], monthly_budget: float, max_months: int = 360
) -> dict:
    """
    Project snowball and avalanche side by side.

    Returns:
        Mapping of strategy to months, total interest and debt-free flag
    """
    comparison = {}
    for strategy in ("pay_off", "highest_interest"):
        result = DebtPayoffProjector(
            DebtProjectionConfig(
                accounts=accounts,
                strategy=strategy,
                monthly_budget=monthly_budget,
                max_months=max_months,
            )
        ).project()
        comparison[strategy] = {
            "months": result.months,
            "total_interest": result.total_interest,
            "debt_free": result.debt_free,
        }
    return comparison
