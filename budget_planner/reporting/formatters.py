"""
ASCII terminal formatters for CLI output.

All formatters accept in-memory models and return plain multi-line strings
suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Status tags
-----------
``format_plan_step()`` ends every category row with the current-vs-budget
status from ``category_status()``::

  [OK]    current spend is within 10% of the budget
  [WARN]  10-20% over budget
  [OVER]  more than 20% over budget

and prints the goal projection with its tri-state status::

  [ON TRACK]     goal reached within the timeline
  [EXTENDED]     reached in ``months_needed`` months (longer than planned)
  [UNREACHABLE]  plan saves nothing
"""

from __future__ import annotations

from typing import Mapping

from budget_planner.allocation.evaluator import category_status
from budget_planner.models.budget import PlanWarning, SpendingProfile
from budget_planner.models.goal import GoalProjection, GoalSpec, PlanStep
from budget_planner.taxonomy.category_taxonomy import CategoryBand, SpendingCategory

_STATUS_TAGS = {"good": "[OK]", "warning": "[WARN]", "danger": "[OVER]"}
_PROJECTION_TAGS = {
    "on_track":    "[ON TRACK]",
    "extended":    "[EXTENDED]",
    "unreachable": "[UNREACHABLE]",
}


def format_plan_step(
    step: PlanStep,
    goal: GoalSpec,
    profile: SpendingProfile,
    show_explanations: bool = True,
) -> str:
    """Format one plan step as a budget table, projection and warnings.

    Example::

        === Budget Plan (pareto) ===
          Category           Current   Budget   Change
          ---------------------------------------------
          housing             1,842    1,566    -15.0%  [WARN]
          ...
          TOTAL               4,735    4,025    -15.0%

    Args:
        step:              The plan step to render.
        goal:              Goal the plan was built for.
        profile:           Current spend, for the change column.
        show_explanations: Append the per-category reasoning.

    Returns:
        Multi-line string.
    """
    allocation = step.allocation
    statuses = category_status(profile, allocation)

    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Budget Plan ({step.label}) ===")
    if goal.name:
        lines.append(f"  Goal:     {goal.name}")
    lines.append(
        f"  Target:   ${goal.target_amount:,.0f} in {goal.timeline_months} months "
        f"(salary ${goal.salary:,.0f}/month)"
    )
    lines.append("")

    header = f"  {'Category':<16} {'Current':>9} {'Budget':>9} {'Change':>8}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for category in SpendingCategory:
        current = profile.amounts[category]
        budget = allocation.amounts[category]
        lines.append(
            f"  {category.value:<16} {current:>9,.0f} {budget:>9,.0f} "
            f"{_pct_change(current, budget):>8}  {_STATUS_TAGS[statuses[category]]}"
        )
    lines.append("  " + "-" * (len(header) - 2))
    lines.append(
        f"  {'TOTAL':<16} {profile.total:>9,.0f} {allocation.total:>9,.0f} "
        f"{_pct_change(profile.total, allocation.total):>8}"
    )

    lines.append("")
    lines.append(format_projection(step.projection))

    if show_explanations:
        lines.append("")
        lines.append("  Reasoning:")
        for category in SpendingCategory:
            lines.append(f"    {category.value}: {allocation.explanations[category]}")

    if step.warnings:
        lines.append("")
        lines.append(format_warnings(step.warnings))

    return "\n".join(lines)


def format_projection(projection: GoalProjection) -> str:
    """Format a goal projection as a short block."""
    tag = _PROJECTION_TAGS[projection.status]
    rate = "n/a" if projection.savings_rate is None else f"{projection.savings_rate:.1%}"
    months = "never" if projection.months_needed is None else f"{projection.months_needed} months"
    return "\n".join([
        f"  {tag} Saving ${projection.monthly_savings:,.0f}/month ({rate} of income)",
        f"    Required:        ${projection.required_monthly_savings:,.0f}/month",
        f"    By the deadline: ${projection.total_by_timeline:,.0f}",
        f"    Time needed:     {months}",
    ])


def format_warnings(warnings: tuple[PlanWarning, ...] | list[PlanWarning]) -> str:
    """One ``[WARN]`` line per warning, in the order they were raised."""
    lines = ["  Warnings:"]
    for warning in warnings:
        lines.append(f"    [WARN] {warning.message}")
    return "\n".join(lines)


def format_bands(bands: Mapping[SpendingCategory, CategoryBand]) -> str:
    """Format the category band table."""
    lines = [
        "",
        "=== Spending Categories ===",
        f"  {'Category':<16} {'Min':>6} {'Max':>6}",
    ]
    for category in SpendingCategory:
        band = bands[category]
        lines.append(
            f"  {category.value:<16} {band.min_fraction:>6.0%} {band.max_fraction:>6.0%}"
        )
    min_sum = sum(band.min_fraction for band in bands.values())
    lines.append(f"  {'(sum of minimums)':<16} {min_sum:>6.0%}")
    return "\n".join(lines)


def _pct_change(before: float, after: float) -> str:
    if before <= 0:
        return "n/a"
    return f"{(after - before) / before:+.1%}"
