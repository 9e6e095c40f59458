"""
Tests for the planning service.

This module tests that the service applies configured policy to the
calculation functions and logs failures before re-raising them.
"""

import logging
import os
from datetime import date, timedelta
from unittest.mock import patch

import pytest

from budget_planner.config import Settings
from budget_planner.models.debt_strategy import DebtAccount
from budget_planner.models.errors import InvalidInputError
from budget_planner.models.readiness import CelebrationEvent
from budget_planner.services.planning_service import PlanningService


@pytest.fixture
def service(settings):
    return PlanningService(settings)


class TestPlanningService:
    """Test the PlanningService class."""

    def test_initialization(self, settings):
        """Test service initialization."""
        service = PlanningService(settings)
        assert service.settings is settings
        assert service.logger is not None

    def test_allocation_overview(self, service, funding_targets, income_sources):
        """Test the overview combines rows, tiers, summary and warnings."""
        overview = service.allocation_overview(
            funding_targets, income_sources, {"salary": 500.0, "side": 300.0}
        )

        rows = {row["target_id"]: row for row in overview["targets"]}
        assert rows["rent"]["funded_by"] == "split"
        assert rows["rent"]["fully_funded"]
        assert rows["groceries"]["shortfall"] == 50.0
        assert rows["streaming"]["funded_by"] is None

        assert list(overview["tiers"]) == ["essential", "important", "discretionary"]
        assert "targets" not in overview["tiers"]["essential"]
        assert overview["summary"]["fully_funded_count"] == 2
        assert [u["source_id"] for u in overview["income_sources"]] == ["salary", "side"]
        assert "1 essential envelope(s) are not fully funded" in overview["warnings"]
        assert any(
            w.startswith("Primary income is over-allocated") for w in overview["warnings"]
        )

    def test_rebalance_returns_updated_copies(self, service, funding_targets, income_sources):
        """Test rebalancing leaves the inputs untouched."""
        updated = service.rebalance(
            funding_targets, income_sources, {"salary": 1000.0, "side": 0.0}
        )

        assert [t.id for t in updated] == [t.id for t in funding_targets]
        assert updated[0].per_source_allocations == {"salary": 500.0}
        assert funding_targets[0].per_source_allocations == {"salary": 300.0, "side": 200.0}

    def test_rebalance_failure_logged(self, service, funding_targets, income_sources, caplog):
        """Test a negative source budget is logged and re-raised."""
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InvalidInputError):
                service.rebalance(funding_targets, income_sources, {"salary": -1.0})

        assert "Rebalance failed" in caplog.text

    def test_readiness_uses_default_pay_cycle(self):
        """Test the configured pay cycle is used when none is given."""
        with patch.dict(os.environ, {"DEFAULT_PAY_CYCLE": "weekly"}, clear=True):
            service = PlanningService(Settings(_env_file=None))

        today = date(2026, 10, 19)
        event = CelebrationEvent(
            label="Gran", event_date=today + timedelta(days=40), gift_amount=200.0
        )
        response = service.readiness(50.0, [event], today)

        assert response["result"].next_event.cycles_until == 5
        assert response["result"].status == "needs_attention"
        assert response["message"] == "Behind for Gran - need $30/pay extra"

    def test_readiness_uses_configured_threshold(self, today):
        """Test a higher catch-up threshold relaxes the status."""
        with patch.dict(os.environ, {"READINESS_CATCH_UP_THRESHOLD": "30"}, clear=True):
            service = PlanningService(Settings(_env_file=None))

        event = CelebrationEvent(
            label="Gran", event_date=today + timedelta(days=40), gift_amount=200.0
        )
        response = service.readiness(50.0, [event], today, pay_cycle="weekly")
        assert response["result"].status == "slightly_behind"

    def test_readiness_failure_logged(self, service, today, caplog):
        """Test failures are logged and re-raised."""
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InvalidInputError):
                service.readiness(-5.0, [], today)

        assert "Readiness calculation failed" in caplog.text

    def test_payment_plan(self, service, two_debts):
        """Test a payment plan with the configured minimum rule."""
        plan = service.payment_plan(two_debts, "pay_off", 50.0)

        assert plan.target_account_id == "a"
        assert plan.total_minimum_payment == 35.0

    def test_payment_plan_default_minimum(self):
        """Test the configured default minimum percentage is applied."""
        with patch.dict(os.environ, {"DEBT_DEFAULT_MINIMUM_PERCENT": "5"}, clear=True):
            service = PlanningService(Settings(_env_file=None))

        plan = service.payment_plan([DebtAccount(id="a", balance=1000.0)], "minimum_only", 0.0)
        assert plan.total_minimum_payment == 50.0

    def test_payment_plan_failure_logged(self, service, two_debts, caplog):
        """Test an unknown strategy is logged and re-raised."""
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InvalidInputError):
                service.payment_plan(two_debts, "random", 50.0)

        assert "Payment strategy random failed" in caplog.text

    def test_recommended_plan(self, service, two_debts):
        """Test the recommended strategy is applied."""
        response = service.recommended_plan(two_debts, 50.0)

        assert response["recommendation"].strategy == "highest_interest"
        assert response["plan"].strategy == "highest_interest"
        assert response["plan"].target_account_id == "b"

    def test_interest_estimates(self, service):
        """Test interest over the configured statement window."""
        accounts = [
            DebtAccount(id="visa", balance=1000.0, apr_percent=18.0),
            DebtAccount(id="store", balance=0.0, apr_percent=25.0),
        ]
        assert service.interest_estimates(accounts) == {"visa": 14.79, "store": 0.0}

    def test_interest_estimates_failure_logged(self, service, caplog):
        """Test a negative APR is logged and re-raised."""
        account = DebtAccount.model_construct(
            id="x", name="", balance=100.0, apr_percent=-5.0
        )
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InvalidInputError, match="apr_percent"):
                service.interest_estimates([account])

        assert "Interest estimate failed" in caplog.text

    def test_bill_schedule(self, service, today):
        """Test the opening balance and paydays left for a dated bill."""
        schedule = service.bill_schedule(
            1000.0, 150.0, date(2026, 12, 28), date(2026, 10, 23), False, today, "fortnightly"
        )

        assert schedule["suggested_opening_balance"] == 250.0
        assert schedule["pays_until_due"].pays == 5
        assert schedule["pays_until_due"].urgency == "none"

    def test_bill_schedule_without_due_date(self, service, today):
        """Test an undated bill has no opening balance or urgency."""
        schedule = service.bill_schedule(
            1000.0, 150.0, None, date(2026, 10, 23), False, today, "fortnightly"
        )
        assert schedule == {"suggested_opening_balance": 0.0, "pays_until_due": None}

    def test_bill_schedule_failure_logged(self, service, today, caplog):
        """Test an unknown pay cycle is logged and re-raised."""
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InvalidInputError):
                service.bill_schedule(
                    1000.0, 150.0, date(2026, 12, 28), date(2026, 10, 23), False, today, "daily"
                )

        assert "Bill schedule failed" in caplog.text

    def test_envelope_progress(self, service, today):
        """Test an envelope close to its schedule is on track."""
        gap = service.envelope_progress(250.0, 40.0, 100.0, date(2026, 9, 7), today, "fortnightly")

        assert gap.cycles_elapsed == 3
        assert gap.gap == -10.0
        assert gap.status == "on_track"

    def test_envelope_progress_failure_logged(self, service, today, caplog):
        """Test a negative per-pay amount is logged and re-raised."""
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InvalidInputError):
                service.envelope_progress(
                    250.0, 0.0, -1.0, date(2026, 9, 7), today, "fortnightly"
                )

        assert "Envelope gap failed" in caplog.text

    def test_payoff_projection(self, service, two_debts):
        """Test a projection runs with the service settings."""
        result = service.payoff_projection(two_debts, "highest_interest", 200.0)

        assert result.debt_free
        assert result.account_ids == ["a", "b"]

    def test_payoff_projection_failure_logged(self, service, two_debts, caplog):
        """Test an uncovered budget is logged and re-raised."""
        with caplog.at_level(logging.ERROR):
            with pytest.raises(InvalidInputError):
                service.payoff_projection(two_debts, "pay_off", 10.0)

        assert "Payoff projection failed" in caplog.text
