"""
Feedback refiner: applies directional intents to a prior allocation.

Algorithm
---------
    1. For each category with an intent:
         requested = ±step * prior[c]
         new[c]    = clamp(prior[c] + requested)
         actual    = new[c] - prior[c]
       If |actual| < |requested| a ``bound_clamped`` warning is raised.
    2. net = Σ actual
    3. Each no-intent category receives -net / n_no_intent, re-clamped to its
       own bounds.
    4. Round to the currency unit at the end.

Dropped remainder
-----------------
If a no-intent category cannot absorb its even share because it sits at a
bound, the part it cannot take is dropped rather than offered to the other
categories.  Total spend may therefore drift from the prior total; the drift
is reported as a ``total_drift`` warning.  This keeps refinement a single
bounded pass instead of a search for absorption capacity.

The function is pure.  Attempt limiting lives in the planning session.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from budget_planner.allocation.bounds import round_to_unit
from budget_planner.allocation.errors import InvalidInputError
from budget_planner.config import AppConfig
from budget_planner.models.budget import Allocation, CategoryBounds, PlanWarning
from budget_planner.taxonomy.category_taxonomy import AdjustmentDirection, SpendingCategory

logger = logging.getLogger(__name__)

DEFAULT_STEP = 0.15


def refine(
    prior: Allocation,
    intents: Mapping[SpendingCategory, AdjustmentDirection],
    bounds: CategoryBounds,
    step: float = DEFAULT_STEP,
    config: Optional[AppConfig] = None,
) -> Allocation:
    """Build a new allocation from ``prior`` adjusted by ``intents``.

    Args:
        prior:   Allocation to start from; never modified.
        intents: Category → ``"increase"`` / ``"decrease"``.
        bounds:  Per-category min/max budgets.
        step:    Fractional adjustment per intent, in ``(0, 1)``.
        config:  Application config; defaults to ``AppConfig()``.

    Returns:
        A new ``Allocation``.  With no intents, amounts are unchanged and a
        ``no_intent`` warning is attached.

    Raises:
        InvalidInputError: If ``step`` is outside ``(0, 1)`` or an intent
            names an unknown category or direction.
    """
    config = config or AppConfig()
    unit = config.allocator.rounding_unit

    if not math.isfinite(step) or not 0.0 < step < 1.0:
        raise InvalidInputError(f"step must be in (0, 1), got {step!r}.")
    resolved = resolve_intents(intents)

    if not resolved:
        return prior.model_copy(
            deep=True,
            update={
                "warnings": (
                    PlanWarning(
                        kind="no_intent",
                        message="No category adjustments were recognized in the feedback.",
                    ),
                ),
            }
        )

    values = dict(prior.amounts)
    explanations = dict(prior.explanations)
    pinned = dict(prior.pinned)
    warnings: list[PlanWarning] = []

    net_delta = 0.0
    for category, direction in resolved.items():
        current = prior.amounts[category]
        sign = 1.0 if direction is AdjustmentDirection.INCREASE else -1.0
        requested = sign * step * current
        adjusted = bounds.clamp(category, current + requested)
        actual = adjusted - current
        values[category] = adjusted
        net_delta += actual

        if abs(actual) + 1e-9 < abs(requested):
            side = "max" if sign > 0 else "min"
            pinned[category] = side
            warnings.append(_limit_warning(category, side, bounds))
            explanations[category] = (
                "Increased to the maximum safe level; further increases may "
                "compromise the savings goal."
                if sign > 0 else
                "Already at the minimum sustainable level for basic needs; "
                "further cuts are not recommended."
            )
        else:
            pinned.pop(category, None)
            verb = "Increased" if sign > 0 else "Reduced"
            explanations[category] = (
                f"{verb} by {step:.0%} based on your feedback.  "
                f"New allocation: ${round_to_unit(adjusted, unit):,.0f}."
            )

    others = [c for c in SpendingCategory if c not in resolved]
    dropped = net_delta
    if others:
        share = -net_delta / len(others)
        dropped = 0.0
        for category in others:
            wanted = prior.amounts[category] + share
            absorbed = bounds.clamp(category, wanted)
            values[category] = absorbed
            dropped += absorbed - wanted
            if abs(share) > unit / 2:
                direction_word = "Trimmed" if share < 0 else "Raised"
                explanations[category] = (
                    f"{direction_word} by ${abs(absorbed - prior.amounts[category]):,.0f} "
                    "to offset the requested adjustments."
                )

    amounts = {c: round_to_unit(values[c], unit) for c in SpendingCategory}

    if abs(dropped) > unit / 2:
        logger.info("Refinement dropped %.2f that no category could absorb", dropped)
        warnings.append(
            PlanWarning(
                kind="total_drift",
                message=(
                    f"Total spend drifted by ${abs(dropped):,.0f} because the other "
                    "categories are already at their bounds."
                ),
            )
        )

    logger.info(
        "Refined allocation: %d intents, net change %.2f, total %.2f -> %.2f",
        len(resolved), net_delta, prior.total, sum(amounts.values()),
    )
    return Allocation(
        amounts=amounts,
        explanations=explanations,
        warnings=tuple(warnings),
        pinned=pinned,
        target_total=prior.target_total,
    )


def resolve_intents(
    intents: Mapping[SpendingCategory, AdjustmentDirection],
) -> dict[SpendingCategory, AdjustmentDirection]:
    """Coerce raw intents to enum keys/values, in taxonomy order.

    Raises:
        InvalidInputError: If a category or direction is unknown.
    """
    resolved: dict[SpendingCategory, AdjustmentDirection] = {}
    for category, direction in intents.items():
        try:
            resolved[SpendingCategory(category)] = AdjustmentDirection(direction)
        except ValueError as exc:
            raise InvalidInputError(
                f"Invalid intent {category!r} -> {direction!r}."
            ) from exc
    # Keep taxonomy order so results do not depend on dict insertion order.
    return {c: resolved[c] for c in SpendingCategory if c in resolved}


def _limit_warning(
    category: SpendingCategory,
    side: str,
    bounds: CategoryBounds,
) -> PlanWarning:
    if side == "max":
        limit = bounds.max_allowed[category]
        message = (
            f"{category.value.title()}: already at the recommended maximum "
            f"(${limit:,.0f}/month or {limit / bounds.salary:.0%} of income)."
        )
    else:
        limit = bounds.min_allowed[category]
        message = (
            f"{category.value.title()}: at the minimum safe level "
            f"(${limit:,.0f}/month).  Further cuts are not recommended."
        )
    return PlanWarning(kind="bound_clamped", message=message, category=category)
