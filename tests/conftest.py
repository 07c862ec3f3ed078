"""
Shared pytest fixtures for the Budget Planner test suite.

Provides:
  - ``default_config``: ``AppConfig()`` with built-in defaults.
  - ``bounds_5000``: default-band bounds for a 5,000 salary.  Every bound is
    a whole number (1250 / 500 / 400 / 150 / 250 / 250 minimums).
  - Sample domain object factories for use in multiple test modules.
"""

from __future__ import annotations

import pytest

from budget_planner.allocation.bounds import compute_bounds
from budget_planner.config import AppConfig
from budget_planner.models.budget import Allocation, CategoryBounds, SpendingProfile
from budget_planner.models.goal import GoalSpec
from budget_planner.taxonomy.category_taxonomy import SpendingCategory

H  = SpendingCategory.HOUSING
F  = SpendingCategory.FOOD
T  = SpendingCategory.TRANSPORTATION
E  = SpendingCategory.ENTERTAINMENT
HC = SpendingCategory.HEALTHCARE
O  = SpendingCategory.OTHER


def make_allocation(amounts: dict[SpendingCategory, float], **kwargs) -> Allocation:
    """Build an ``Allocation`` with placeholder explanations."""
    return Allocation(
        amounts=amounts,
        explanations={c: f"{c.value} budget" for c in SpendingCategory},
        **kwargs,
    )


# ── Config / bounds ───────────────────────────────────────────────────────────

@pytest.fixture
def default_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def bounds_5000() -> CategoryBounds:
    return compute_bounds(5000.0)


# ── Sample domain object factories ────────────────────────────────────────────

@pytest.fixture
def sample_profile() -> SpendingProfile:
    """A fixed current-spend profile for a 5,000 salary (total 4,750 = 95%).

    Descending spend: housing, food, transportation, entertainment, other,
    healthcare.  The first four make up 82% of spending.
    """
    return SpendingProfile(
        salary=5000.0,
        amounts={H: 1800.0, F: 900.0, T: 700.0, E: 500.0, HC: 400.0, O: 450.0},
    )


@pytest.fixture
def sample_goal() -> GoalSpec:
    """Salary 5,000; 6,000 in 12 months → 500/month required."""
    return GoalSpec(salary=5000.0, target_amount=6000.0, timeline_months=12)


@pytest.fixture
def sample_allocation() -> Allocation:
    """A within-bounds allocation for a 5,000 salary totalling 4,350."""
    return make_allocation({H: 1500.0, F: 800.0, T: 600.0, E: 400.0, HC: 500.0, O: 550.0})
