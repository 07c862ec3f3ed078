"""
Weight derivation for the constrained allocator.

The allocator only ever reads *normalized* weights (non-negative, summing to
1).  How those weights are derived is the only difference between the two
planning modes:

pareto
    Weights follow current spend.  The highest-spend categories that together
    make up ``share`` (80%) of spending are discounted harder than the rest,
    so the allocator cuts where the money is:
        weight ∝ current * 0.85   (Pareto category, required savings rate < 30%)
        weight ∝ current * 0.75   (Pareto category, required savings rate >= 30%)
        weight ∝ current * 0.95   (all other categories)

weighted
    Weights follow current spend scaled by a user priority in ``[0, 100]``:
        weight ∝ current * priority
    A higher priority protects a category from cuts.  Equal priorities
    reproduce the current spending mix.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional

from budget_planner.allocation.errors import InvalidInputError
from budget_planner.models.budget import SpendingProfile
from budget_planner.taxonomy.category_taxonomy import SpendingCategory

logger = logging.getLogger(__name__)

PRIORITY_MIN = 0.0
PRIORITY_MAX = 100.0
DEFAULT_PRIORITY = 50.0

_PARETO_FACTOR_MODERATE   = 0.85
_PARETO_FACTOR_AGGRESSIVE = 0.75
_MINOR_FACTOR             = 0.95
_AGGRESSIVE_SAVINGS_RATE  = 0.30


def normalize_weights(raw: Mapping[SpendingCategory, float]) -> dict[SpendingCategory, float]:
    """Scale raw weights so they sum to 1.

    All-zero weights express no preference and normalize to a uniform split.

    Raises:
        InvalidInputError: If a category is missing or a weight is negative
            or not finite.
    """
    missing = set(SpendingCategory) - set(raw)
    if missing:
        raise InvalidInputError(
            f"Weights missing categories: {sorted(c.value for c in missing)}."
        )
    for category, value in raw.items():
        if not math.isfinite(value) or value < 0:
            raise InvalidInputError(
                f"Weight for '{category}' must be a non-negative number, got {value!r}."
            )

    total = sum(raw[c] for c in SpendingCategory)
    if total <= 0:
        logger.debug("All weights are zero; using a uniform split")
        return uniform_weights()
    return {c: raw[c] / total for c in SpendingCategory}


def uniform_weights() -> dict[SpendingCategory, float]:
    n = len(SpendingCategory)
    return {c: 1.0 / n for c in SpendingCategory}


def priority_weights(
    profile: SpendingProfile,
    priorities: Optional[Mapping[SpendingCategory, float]] = None,
) -> dict[SpendingCategory, float]:
    """Derive normalized weights from user priorities (``weighted`` mode).

    Categories without a priority get ``DEFAULT_PRIORITY`` (50).

    Raises:
        InvalidInputError: If a priority lies outside ``[0, 100]``.
    """
    resolved = resolve_priorities(priorities)
    return normalize_weights({c: profile.amounts[c] * resolved[c] for c in SpendingCategory})


def resolve_priorities(
    priorities: Optional[Mapping[SpendingCategory, float]] = None,
) -> dict[SpendingCategory, float]:
    """Fill in default priorities and validate the range."""
    resolved = {c: DEFAULT_PRIORITY for c in SpendingCategory}
    for category, value in (priorities or {}).items():
        try:
            key = SpendingCategory(category)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown spending category '{category}'.") from exc
        if not math.isfinite(value) or not PRIORITY_MIN <= value <= PRIORITY_MAX:
            raise InvalidInputError(
                f"Priority for '{category}' must be in [0, 100], got {value!r}."
            )
        resolved[key] = float(value)
    return resolved


def pareto_categories(
    profile: SpendingProfile,
    share: float = 0.80,
) -> list[SpendingCategory]:
    """Highest-spend categories that together reach ``share`` of total spend.

    Returned in descending order of spend; ties are broken by category order
    so the result is deterministic.
    """
    total = profile.total
    if total <= 0:
        return []

    order = list(SpendingCategory)
    ranked = sorted(order, key=lambda c: (-profile.amounts[c], order.index(c)))

    selected: list[SpendingCategory] = []
    cumulative = 0.0
    for category in ranked:
        cumulative += profile.amounts[category]
        selected.append(category)
        if cumulative / total >= share:
            break
    return selected


def pareto_weights(
    profile: SpendingProfile,
    required_savings_rate: float,
    share: float = 0.80,
) -> dict[SpendingCategory, float]:
    """Derive normalized weights that cut hardest in the Pareto categories."""
    top = set(pareto_categories(profile, share))
    factor = (
        _PARETO_FACTOR_AGGRESSIVE
        if required_savings_rate >= _AGGRESSIVE_SAVINGS_RATE
        else _PARETO_FACTOR_MODERATE
    )
    raw = {
        c: profile.amounts[c] * (factor if c in top else _MINOR_FACTOR)
        for c in SpendingCategory
    }
    logger.debug(
        "Pareto categories %s (factor %.2f)", sorted(c.value for c in top), factor
    )
    return normalize_weights(raw)
