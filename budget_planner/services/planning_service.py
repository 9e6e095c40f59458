"""
Planning service for callers of the budget calculation engine.

This service applies the configured policy constants to the pure calculation
functions, logs each calculation and returns plain results. It keeps no state
between calls; "today" is always passed in by the caller.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from budget_planner.config import Settings, get_global_settings
from budget_planner.models.allocation import (
    EnvelopeGap,
    FundingTarget,
    IncomeSource,
    auto_balance,
    envelope_gap,
    funded_by,
    group_by_priority,
    is_fully_funded,
    pays_until_due,
    shortfall,
    suggested_opening_balance,
    summarize_allocation,
    summarize_income_sources,
    total_allocated,
    validate_allocations,
)
from budget_planner.models.debt_projection import (
    DebtPayoffProjector,
    DebtProjectionConfig,
    DebtProjectionResult,
)
from budget_planner.models.debt_strategy import (
    DebtAccount,
    PaymentPlan,
    calculate_payment_strategy,
    recommend_strategy,
    simple_interest_accrued,
)
from budget_planner.models.pay_cycle import DateLike
from budget_planner.models.readiness import (
    CelebrationEvent,
    ReadinessResult,
    calculate_readiness,
    readiness_message,
)

logger = logging.getLogger(__name__)


class PlanningService:
    """Service for running budget planning calculations with configured policy."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """Initialize the planning service.

        Args:
            settings: Settings to take policy constants from (global if omitted)
        """
        self.settings = settings or get_global_settings()
        self.logger = logging.getLogger(__name__)

    def allocation_overview(
        self,
        targets: Sequence[FundingTarget],
        sources: Sequence[IncomeSource],
        source_budgets: Mapping[str, float],
    ) -> Dict[str, Any]:
        """Fundedness of every target, tier subtotals, source usage and warnings.

        Args:
            targets: Funding targets with their current allocations
            sources: Income sources
            source_budgets: Per-cycle amount available from each source id

        Returns:
            Dictionary with per-target rows, tiers, summary, sources and warnings
        """
        epsilon = self.settings.funded_epsilon
        try:
            self.logger.info(
                f"Building allocation overview for {len(targets)} targets "
                f"and {len(sources)} income sources"
            )
            rows = [
                {
                    "target_id": t.id,
                    "name": t.name,
                    "priority": t.priority,
                    "required": t.required_per_cycle,
                    "allocated": total_allocated(t),
                    "shortfall": shortfall(t),
                    "fully_funded": is_fully_funded(t, epsilon),
                    "funded_by": funded_by(t, sources),
                    "locked": t.locked,
                }
                for t in targets
            ]
            tiers = {
                tier: group.model_dump(exclude={"targets"})
                for tier, group in group_by_priority(targets).items()
                if group.targets
            }
            return {
                "targets": rows,
                "tiers": tiers,
                "summary": summarize_allocation(targets, epsilon).model_dump(),
                "income_sources": [
                    u.model_dump()
                    for u in summarize_income_sources(targets, sources, source_budgets)
                ],
                "warnings": validate_allocations(
                    targets, sources, source_budgets, epsilon
                ),
            }
        except Exception as e:
            self.logger.error(f"Allocation overview failed: {str(e)}")
            raise

    def rebalance(
        self,
        targets: Sequence[FundingTarget],
        sources: Sequence[IncomeSource],
        source_budgets: Mapping[str, float],
    ) -> List[FundingTarget]:
        """Auto-balance unlocked targets and return updated copies of every target."""
        try:
            result = auto_balance(targets, sources, source_budgets)
        except Exception as e:
            self.logger.error(f"Rebalance failed: {str(e)}")
            raise

        self.logger.info(
            f"Rebalanced {len(targets) - len(result.locked_target_ids)} targets, "
            f"{len(result.locked_target_ids)} locked"
        )
        return [
            t.model_copy(update={"per_source_allocations": result.allocations[t.id]})
            for t in targets
        ]

    def readiness(
        self,
        current_balance: float,
        events: Sequence[CelebrationEvent],
        today: DateLike,
        pay_cycle: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Readiness of a celebrations envelope, with a display message.

        Args:
            current_balance: Envelope balance
            events: Celebration events the envelope covers
            today: Reference date supplied by the caller
            pay_cycle: User's pay cycle (configured default if omitted)

        Returns:
            Dictionary with the readiness result and message
        """
        pay_cycle = pay_cycle or self.settings.default_pay_cycle
        try:
            result: ReadinessResult = calculate_readiness(
                current_balance,
                events,
                pay_cycle,
                today,
                ready_ratio=self.settings.ready_ratio,
                catch_up_threshold=self.settings.catch_up_threshold,
            )
        except Exception as e:
            self.logger.error(f"Readiness calculation failed: {str(e)}")
            raise

        self.logger.info(f"Readiness status {result.status} for {len(events)} events")
        return {"result": result, "message": readiness_message(result)}

    def payment_plan(
        self,
        accounts: Sequence[DebtAccount],
        strategy: str,
        surplus_available: float,
    ) -> PaymentPlan:
        """Apply a payoff strategy using the configured default minimum rule."""
        try:
            plan = calculate_payment_strategy(
                accounts,
                strategy,
                surplus_available,
                default_percent=self.settings.default_minimum_percent,
            )
        except Exception as e:
            self.logger.error(f"Payment strategy {strategy} failed: {str(e)}")
            raise

        if plan.unused_surplus > 0:
            self.logger.info(
                f"Surplus exceeds remaining debt by {plan.unused_surplus:.2f}"
            )
        return plan

    def recommended_plan(
        self, accounts: Sequence[DebtAccount], surplus_available: float
    ) -> Dict[str, Any]:
        """Pick a strategy for the accounts and return its plan with the reason."""
        recommendation = recommend_strategy(accounts, surplus_available)
        plan = self.payment_plan(accounts, recommendation.strategy, surplus_available)
        return {"recommendation": recommendation, "plan": plan}

    def interest_estimates(self, accounts: Sequence[DebtAccount]) -> Dict[str, float]:
        """Simple interest per account over the configured statement window."""
        days = self.settings.interest_window_days
        try:
            return {
                a.id: round(simple_interest_accrued(a.balance, a.apr_percent, days), 2)
                for a in accounts
            }
        except Exception as e:
            self.logger.error(f"Interest estimate failed: {str(e)}")
            raise

    def bill_schedule(
        self,
        target_amount: float,
        ideal_per_pay: float,
        due_date: Optional[DateLike],
        next_pay: DateLike,
        is_funded: bool,
        today: DateLike,
        pay_cycle: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Suggested opening balance and paydays left for a bill envelope.

        Args:
            target_amount: Amount due when the bill falls due
            ideal_per_pay: Steady-state contribution per pay cycle
            due_date: Next due date (None if the bill has no date)
            next_pay: Stored next pay date
            is_funded: Whether the envelope is fully funded
            today: Reference date supplied by the caller
            pay_cycle: User's pay cycle (configured default if omitted)

        Returns:
            Dictionary with the suggested opening balance and pays-until-due
        """
        pay_cycle = pay_cycle or self.settings.default_pay_cycle
        try:
            opening = suggested_opening_balance(
                target_amount, due_date, ideal_per_pay, today, pay_cycle
            )
            urgency = None
            if due_date is not None:
                urgency = pays_until_due(due_date, next_pay, pay_cycle, is_funded, today)
        except Exception as e:
            self.logger.error(f"Bill schedule failed: {str(e)}")
            raise

        self.logger.info(f"Suggested opening balance {opening:.2f} for bill due {due_date}")
        return {"suggested_opening_balance": opening, "pays_until_due": urgency}

    def envelope_progress(
        self,
        current_amount: float,
        opening_balance: float,
        ideal_per_pay: float,
        cycle_start: DateLike,
        today: DateLike,
        pay_cycle: Optional[str] = None,
    ) -> EnvelopeGap:
        """Gap between an envelope's balance and its steady per-pay schedule."""
        pay_cycle = pay_cycle or self.settings.default_pay_cycle
        try:
            gap = envelope_gap(
                current_amount, opening_balance, ideal_per_pay, cycle_start, today, pay_cycle
            )
        except Exception as e:
            self.logger.error(f"Envelope gap failed: {str(e)}")
            raise

        self.logger.info(f"Envelope gap {gap.gap:.2f} after {gap.cycles_elapsed} cycles")
        return gap

    def payoff_projection(
        self,
        accounts: List[DebtAccount],
        strategy: str,
        monthly_budget: float,
        max_months: int = 360,
    ) -> DebtProjectionResult:
        """Month-by-month payoff schedule under ``strategy``."""
        try:
            self.logger.info(
                f"Projecting payoff of {len(accounts)} debts with {strategy}"
            )
            config = DebtProjectionConfig(
                accounts=accounts,
                strategy=strategy,
                monthly_budget=monthly_budget,
                max_months=max_months,
                default_minimum_percent=self.settings.default_minimum_percent,
            )
            return DebtPayoffProjector(config).project()
        except Exception as e:
            self.logger.error(f"Payoff projection failed: {str(e)}")
            raise
