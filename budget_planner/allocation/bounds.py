"""
Category bounds and feasibility checks.

``compute_bounds()`` turns the salary-fraction bands of the category taxonomy
into currency envelopes for one salary.  ``check_feasibility()`` is the single
place that decides whether a requested total spend can honor every minimum.

Extended-timeline suggestion
----------------------------
When a goal cannot be met, the best the bounds allow is spending exactly
``Σ min_allowed``, which saves ``salary - Σ min_allowed`` per month.  The
suggested timeline is ``ceil(target_amount / that)``.  ``Σ max_allowed`` is
the opposite end: ``salary - Σ max_allowed`` is the least a bounded plan can
save, reported by ``savings_range()``.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from budget_planner.allocation.errors import InfeasibleError, InvalidInputError
from budget_planner.models.budget import CategoryBounds
from budget_planner.models.goal import GoalSpec
from budget_planner.taxonomy.category_taxonomy import (
    DEFAULT_BANDS,
    CategoryBand,
    SpendingCategory,
    validate_bands,
)

logger = logging.getLogger(__name__)

# Tolerance for comparing currency totals built from float fractions.
_TOTAL_EPS = 1e-9


def compute_bounds(
    salary: float,
    bands: Mapping[SpendingCategory, CategoryBand] = DEFAULT_BANDS,
) -> CategoryBounds:
    """Build per-category min/max budgets for ``salary``.

    Raises:
        InvalidInputError: If ``salary`` is not a positive finite number, or
            the band table violates the taxonomy invariants.
    """
    require_positive_salary(salary)
    try:
        validate_bands(bands)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc

    return CategoryBounds(
        salary=salary,
        min_allowed={c: salary * bands[c].min_fraction for c in SpendingCategory},
        max_allowed={c: salary * bands[c].max_fraction for c in SpendingCategory},
    )


def check_feasibility(
    bounds: CategoryBounds,
    target_total: Optional[float] = None,
    goal: Optional[GoalSpec] = None,
) -> None:
    """Raise ``InfeasibleError`` if the minimums cannot be honored.

    Two conditions are checked, in order:
      1. ``Σ min_allowed > salary``  — no allocation can exist at all.
      2. ``target_total < Σ min_allowed`` — the requested spend is too low.

    Args:
        bounds:       Bounds to check.
        target_total: Requested total monthly spend, if any.
        goal:         Optional goal, used only to attach a timeline suggestion.
    """
    min_total = bounds.min_total
    suggestion = suggest_timeline(goal, bounds) if goal is not None else None

    if min_total > bounds.salary + _TOTAL_EPS:
        logger.warning(
            "Category minimums %.2f exceed salary %.2f", min_total, bounds.salary
        )
        raise InfeasibleError(bounds.salary, min_total, None, suggestion)

    if target_total is not None and target_total < min_total - _TOTAL_EPS:
        logger.info(
            "Requested spend %.2f is below category minimums %.2f",
            target_total, min_total,
        )
        raise InfeasibleError(bounds.salary, min_total, target_total, suggestion)


def suggest_timeline(goal: GoalSpec, bounds: CategoryBounds) -> Optional[int]:
    """Months needed to reach the goal when spending only the minimums.

    Returns ``None`` if the minimums leave nothing to save.
    """
    max_savings = bounds.salary - bounds.min_total
    if max_savings <= 0:
        return None
    return ceil_months(goal.target_amount, max_savings)


def savings_range(bounds: CategoryBounds) -> tuple[float, float]:
    """Return ``(least, most)`` monthly savings a bounded plan can produce."""
    return bounds.salary - bounds.max_total, bounds.salary - bounds.min_total


def ceil_months(target_amount: float, monthly_savings: float) -> int:
    """``ceil(target / savings)`` without float noise (6000/500 is 12, not 13)."""
    return math.ceil(round(target_amount / monthly_savings, 9))


def require_positive_salary(salary: float) -> None:
    if not isinstance(salary, (int, float)) or not math.isfinite(salary) or salary <= 0:
        raise InvalidInputError(f"salary must be a positive number, got {salary!r}.")


def round_to_unit(value: float, unit: float) -> float:
    """Round ``value`` to the nearest multiple of ``unit`` (the currency's minor unit)."""
    return round(value / unit) * unit
