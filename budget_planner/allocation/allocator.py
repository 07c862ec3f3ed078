"""
Constrained allocator: splits a target monthly spend across categories.

Algorithm (two-pass constrained proportional allocation)
--------------------------------------------------------
    1. ideal[c] = target * weight[c]
    2. clamp each value into [min_allowed[c], max_allowed[c]]; a clamped
       category becomes *pinned* at the bound it hit
    3. delta = Σ (value_before_clamp - bound) over pinned categories
       (positive when a max pin freed budget, negative when a min pin used
       extra budget)
    4. redistribution pass 1: every category takes part again, including
       pinned ones with room on the side ``delta`` pushes them.  The pass
       finds the single scale s with

           Σ clamp(s * weight[c], min_allowed[c], max_allowed[c]) = target

       and sets each category to its clamped term.  The sum is piecewise
       linear and non-decreasing in s, so s is read off between two of the
       at most 2n breakpoints (bound / weight); no fixed-point loop.
    5. redistribution pass 2: budget pass 1 could not place because every
       weighted category is at its maximum is split evenly (by the same
       clamped scale rule) over the zero-weight categories
    6. round to ``rounding_unit`` once, at the very end

At most ``max_redistribution_passes`` (2) passes run.  Whatever residual is
left after the last pass stays unallocated and the result carries a
``total_drift`` warning; every value is still within its bounds.

Postconditions
--------------
- min_allowed[c] - unit/2 <= amount[c] <= max_allowed[c] + unit/2
- |Σ amount - target| <= unit/2 * n_categories whenever the target lies in
  [Σ min_allowed, Σ max_allowed] and both passes are enabled
- raising one category's weight never lowers its amount: a larger scale on
  the other categories can only take budget away from them
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from budget_planner.allocation.bounds import check_feasibility, round_to_unit
from budget_planner.allocation.errors import InvalidInputError
from budget_planner.allocation.weights import normalize_weights
from budget_planner.config import AppConfig
from budget_planner.models.budget import (
    Allocation,
    CategoryBounds,
    PinnedBound,
    PlanWarning,
    SpendingProfile,
)
from budget_planner.taxonomy.category_taxonomy import SpendingCategory

logger = logging.getLogger(__name__)

# Deviations smaller than this are float noise, not budget to redistribute.
_EPS = 1e-9


def allocate(
    profile: SpendingProfile,
    weights: Mapping[SpendingCategory, float],
    target_total_spend: float,
    bounds: CategoryBounds,
    config: Optional[AppConfig] = None,
) -> Allocation:
    """Allocate ``target_total_spend`` across categories within ``bounds``.

    Args:
        profile:            Current spend; used only to explain each change.
        weights:            Per-category weights; normalized before use.
        target_total_spend: Total monthly spend to distribute.
        bounds:             Per-category min/max budgets.
        config:             Application config; defaults to ``AppConfig()``.

    Returns:
        A new ``Allocation`` with explanations, pins and warnings.

    Raises:
        InvalidInputError: If the target is negative or not finite, or the
            weights are malformed.
        InfeasibleError:   If the minimums exceed the salary, or the target
            is below ``Σ min_allowed``.
    """
    config = config or AppConfig()
    unit = config.allocator.rounding_unit
    max_passes = config.allocator.max_redistribution_passes

    if not math.isfinite(target_total_spend) or target_total_spend < 0:
        raise InvalidInputError(
            f"target_total_spend must be a non-negative number, got {target_total_spend!r}."
        )
    check_feasibility(bounds, target_total_spend)
    norm = normalize_weights(weights)

    values = {c: target_total_spend * norm[c] for c in SpendingCategory}
    pinned: dict[SpendingCategory, PinnedBound] = {}
    delta = _pin_out_of_bounds(values, bounds, pinned)
    passes = 0

    if abs(delta) > _EPS and passes < max_passes:
        values, pinned = _settle(list(SpendingCategory), norm, bounds, target_total_spend)
        passes += 1

    shortfall = target_total_spend - sum(values.values())
    idle = [c for c in SpendingCategory if norm[c] <= 0]
    if shortfall > _EPS and idle and passes < max_passes:
        placed = sum(values[c] for c in SpendingCategory if norm[c] > 0)
        idle_values, idle_pins = _settle(
            idle, {c: 1.0 for c in idle}, bounds, target_total_spend - placed
        )
        values.update(idle_values)
        for category in idle:
            pinned.pop(category, None)
        pinned.update(idle_pins)
        passes += 1

    pinned = {c: pinned[c] for c in SpendingCategory if c in pinned}
    residual = target_total_spend - sum(values.values())
    amounts = {c: round_to_unit(values[c], unit) for c in SpendingCategory}

    warnings: list[PlanWarning] = []
    for category, side in pinned.items():
        warnings.append(_pin_warning(category, side, amounts[category], bounds))
    if abs(residual) > unit / 2:
        logger.warning(
            "Allocation total misses target by %.2f after %d passes", residual, passes
        )
        warnings.append(
            PlanWarning(
                kind="total_drift",
                message=(
                    f"Bounds left {residual:+,.0f} of the {target_total_spend:,.0f} "
                    "target unallocated."
                ),
            )
        )

    explanations = {
        c: _explain(
            amount=amounts[c],
            weight=norm[c],
            pin=pinned.get(c),
            current=profile.amounts[c],
            salary=bounds.salary,
        )
        for c in SpendingCategory
    }

    logger.info(
        "Allocated %.2f of %.2f target (%d pinned, %d redistribution passes)",
        sum(amounts.values()), target_total_spend, len(pinned), passes,
    )
    return Allocation(
        amounts=amounts,
        explanations=explanations,
        warnings=tuple(warnings),
        pinned=pinned,
        target_total=target_total_spend,
    )


# ── Internals ─────────────────────────────────────────────────────────────────

def _pin_out_of_bounds(
    values: dict[SpendingCategory, float],
    bounds: CategoryBounds,
    pinned: dict[SpendingCategory, PinnedBound],
) -> float:
    """Clamp every category in place; return the budget freed (+) or used (-)."""
    delta = 0.0
    for category in SpendingCategory:
        lo = bounds.min_allowed[category]
        hi = bounds.max_allowed[category]
        value = values[category]
        if value < lo - _EPS:
            delta += value - lo
            values[category] = lo
            pinned[category] = "min"
        elif value > hi + _EPS:
            delta += value - hi
            values[category] = hi
            pinned[category] = "max"
    return delta


def _settle(
    categories: list[SpendingCategory],
    weights: Mapping[SpendingCategory, float],
    bounds: CategoryBounds,
    budget: float,
) -> tuple[dict[SpendingCategory, float], dict[SpendingCategory, PinnedBound]]:
    """Place ``budget`` as ``clamp(scale * weight)`` over ``categories``.

    Returns the settled values and the categories held at a bound.  When the
    budget lies outside what the bounds allow, every category ends at the
    nearest bound and the caller sees the residual.
    """
    lo = bounds.min_allowed
    hi = bounds.max_allowed

    def spend_at(scale: float) -> float:
        return sum(bounds.clamp(c, scale * weights[c]) for c in categories)

    breakpoints = sorted(
        {0.0}
        | {lo[c] / weights[c] for c in categories if weights[c] > 0}
        | {hi[c] / weights[c] for c in categories if weights[c] > 0}
    )

    scale = breakpoints[-1]
    if budget <= spend_at(0.0):
        scale = 0.0
    else:
        for left, right in zip(breakpoints, breakpoints[1:]):
            left_total = spend_at(left)
            right_total = spend_at(right)
            if budget <= right_total:
                if right_total > left_total:
                    # spend_at is linear between neighbouring breakpoints.
                    scale = left + (budget - left_total) * (right - left) / (right_total - left_total)
                else:
                    scale = left
                break

    values: dict[SpendingCategory, float] = {}
    pinned: dict[SpendingCategory, PinnedBound] = {}
    for category in categories:
        raw = scale * weights[category]
        values[category] = bounds.clamp(category, raw)
        if raw <= lo[category] + _EPS:
            pinned[category] = "min"
        elif raw >= hi[category] - _EPS:
            pinned[category] = "max"
    return values, pinned


def _pin_warning(
    category: SpendingCategory,
    side: PinnedBound,
    amount: float,
    bounds: CategoryBounds,
) -> PlanWarning:
    pct = amount / bounds.salary
    if side == "min":
        message = (
            f"{category.value.title()} is at its minimum safe spending level "
            f"(${amount:,.0f}/month, {pct:.0%} of income)."
        )
    else:
        message = (
            f"{category.value.title()} is capped at its recommended maximum "
            f"(${amount:,.0f}/month, {pct:.0%} of income)."
        )
    return PlanWarning(kind="bound_clamped", message=message, category=category)


def _explain(
    amount: float,
    weight: float,
    pin: Optional[PinnedBound],
    current: float,
    salary: float,
) -> str:
    """One-line justification for a category's allocated budget."""
    pct = amount / salary
    if pin == "min":
        head = f"Held at the minimum safe level of ${amount:,.0f}/month ({pct:.1%} of income)"
    elif pin == "max":
        head = f"Capped at the recommended maximum of ${amount:,.0f}/month ({pct:.1%} of income)"
    else:
        head = f"Budget ${amount:,.0f}/month ({pct:.1%} of income)"

    if current > 0:
        change = (amount - current) / current
        if abs(change) < 0.005:
            trend = "unchanged from current spend"
        else:
            verb = "reduced" if change < 0 else "increased"
            trend = f"{verb} {abs(change):.0%} from current ${current:,.0f}"
    else:
        trend = "no current spend recorded"

    return f"{head}; weight {weight:.1%}, {trend}."
