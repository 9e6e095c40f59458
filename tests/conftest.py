"""
Pytest configuration and shared fixtures for the budget planner tests.
"""

import os
from datetime import date
from unittest.mock import patch

import pytest

from budget_planner.config import Settings, reset_global_settings
from budget_planner.models.allocation import FundingTarget, IncomeSource
from budget_planner.models.debt_strategy import DebtAccount


@pytest.fixture
def today():
    """Fixed reference date so results never depend on the system clock."""
    return date(2026, 10, 19)


@pytest.fixture
def settings():
    """Settings built from defaults only, ignoring the process environment."""
    with patch.dict(os.environ, {}, clear=True):
        yield Settings(_env_file=None)
    reset_global_settings()


@pytest.fixture
def income_sources():
    """Primary and secondary income sources."""
    return [
        IncomeSource(id="salary", label="Primary", ordinal=0),
        IncomeSource(id="side", label="Secondary", ordinal=1),
    ]


@pytest.fixture
def funding_targets():
    """A mix of funded, partially funded and unfunded envelopes."""
    return [
        FundingTarget(
            id="rent",
            name="Rent",
            required_per_cycle=500.0,
            priority="essential",
            per_source_allocations={"salary": 300.0, "side": 200.0},
        ),
        FundingTarget(
            id="groceries",
            name="Groceries",
            required_per_cycle=200.0,
            priority="essential",
            per_source_allocations={"salary": 150.0},
        ),
        FundingTarget(
            id="savings",
            name="Savings",
            required_per_cycle=100.0,
            priority="important",
            per_source_allocations={"salary": 99.995},
        ),
        FundingTarget(
            id="streaming",
            name="Streaming",
            required_per_cycle=20.0,
            priority="discretionary",
        ),
    ]


@pytest.fixture
def two_debts():
    """Small and large card balances with fixed minimums."""
    return [
        DebtAccount(id="a", name="Card A", balance=100.0, apr_percent=10.0, fixed_minimum=10.0),
        DebtAccount(id="b", name="Card B", balance=500.0, apr_percent=25.0, fixed_minimum=25.0),
    ]
