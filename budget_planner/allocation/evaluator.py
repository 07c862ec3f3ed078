"""
Goal evaluator: how far an allocation gets toward a savings goal.

    monthly_savings = salary - Σ allocation
    savings_rate    = monthly_savings / salary
    achievable      = monthly_savings * timeline_months >= target_amount
    months_needed   = ceil(target_amount / monthly_savings)

``months_needed`` and ``savings_rate`` short-circuit to ``None`` instead of
producing ``inf`` / ``nan`` when the divisor is not positive.  Callers must
branch on ``projection.status`` rather than on the numbers.

Also here: ``parse_goal()`` (boundary validation of raw goal inputs) and
``category_status()`` (good / warning / danger per category, comparing
current spend with the recommended budget).
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from pydantic import ValidationError

from budget_planner.allocation.bounds import ceil_months
from budget_planner.allocation.errors import InvalidInputError
from budget_planner.config import AppConfig
from budget_planner.models.budget import Allocation, PlanWarning, SpendingProfile
from budget_planner.models.goal import GoalProjection, GoalSpec
from budget_planner.taxonomy.category_taxonomy import SpendingCategory

logger = logging.getLogger(__name__)

CategoryStatus = Literal["good", "warning", "danger"]

_WARNING_RATIO = 1.1
_DANGER_RATIO  = 1.2


def parse_goal(
    salary: Any,
    target_amount: Any,
    timeline_months: Any,
    name: Optional[str] = None,
) -> GoalSpec:
    """Validate raw goal inputs and build a ``GoalSpec``.

    Raises:
        InvalidInputError: If any value is missing, non-numeric, not finite
            or not positive, or the timeline is not a whole number of months.
    """
    try:
        return GoalSpec(
            salary=salary,
            target_amount=target_amount,
            timeline_months=timeline_months,
            name=name,
        )
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors())
        raise InvalidInputError(f"Invalid goal input ({fields}): {exc}") from exc


def evaluate(
    goal: GoalSpec,
    allocation: Allocation,
    config: Optional[AppConfig] = None,
) -> GoalProjection:
    """Project goal achievability for ``allocation``.

    Args:
        goal:       The savings goal.
        allocation: Recommended budget to evaluate.
        config:     Application config; defaults to ``AppConfig()``.

    Returns:
        ``GoalProjection`` with a tri-state ``status`` and any warnings.
    """
    config = config or AppConfig()
    required = goal.required_monthly_savings
    monthly_savings = goal.salary - allocation.total
    savings_rate = monthly_savings / goal.salary if goal.salary > 0 else None
    total_by_timeline = monthly_savings * goal.timeline_months

    warnings: list[PlanWarning] = []

    if monthly_savings <= 0:
        achievable = False
        months_needed: Optional[int] = None
        status = "unreachable"
        warnings.append(
            PlanWarning(
                kind="goal_infeasible",
                message=(
                    f"This plan saves nothing (${monthly_savings:,.0f}/month); "
                    "the goal cannot be reached at any timeline."
                ),
            )
        )
    else:
        achievable = total_by_timeline >= goal.target_amount
        months_needed = ceil_months(goal.target_amount, monthly_savings)
        status = "on_track" if achievable else "extended"
        if not achievable:
            warnings.append(
                PlanWarning(
                    kind="goal_shortfall",
                    message=(
                        f"Plan saves ${monthly_savings:,.0f}/month but the goal requires "
                        f"${required:,.0f}/month.  Shortfall: "
                        f"${required - monthly_savings:,.0f}/month.  Consider extending "
                        f"the timeline to {months_needed} months."
                    ),
                )
            )

    if savings_rate is not None and savings_rate < config.goal.low_savings_rate:
        warnings.append(
            PlanWarning(
                kind="low_savings_rate",
                message=(
                    f"Savings rate is {savings_rate:.1%}.  Consider cutting "
                    "discretionary spending further."
                ),
            )
        )

    logger.debug(
        "Goal projection: savings=%.2f required=%.2f status=%s",
        monthly_savings, required, status,
    )
    return GoalProjection(
        required_monthly_savings=required,
        monthly_savings=monthly_savings,
        savings_rate=savings_rate,
        total_by_timeline=total_by_timeline,
        achievable=achievable,
        months_needed=months_needed,
        shortfall=max(0.0, required - monthly_savings),
        status=status,
        warnings=tuple(warnings),
    )


def category_status(
    profile: SpendingProfile,
    allocation: Allocation,
) -> dict[SpendingCategory, CategoryStatus]:
    """Classify current spend against the recommended budget.

    ratio = current / recommended
        > 1.2 → "danger"  (significantly over budget)
        > 1.1 → "warning" (slightly over budget)
        else  → "good"
    A zero recommended budget is "danger" if anything is spent, else "good".
    """
    statuses: dict[SpendingCategory, CategoryStatus] = {}
    for category in SpendingCategory:
        current = profile.amounts[category]
        recommended = allocation.amounts[category]
        if recommended <= 0:
            statuses[category] = "danger" if current > 0 else "good"
            continue
        ratio = current / recommended
        if ratio > _DANGER_RATIO:
            statuses[category] = "danger"
        elif ratio > _WARNING_RATIO:
            statuses[category] = "warning"
        else:
            statuses[category] = "good"
    return statuses
