"""
Spending profile builder.

Produces a realistic *current* monthly spend per category for a salary.  This
is a synthetic starting point, not observed transactions; a real transaction
aggregator would build a ``SpendingProfile`` directly instead.

Algorithm
---------
1. baseline[c] = salary * (min_fraction + max_fraction) / 2
2. baseline[c] *= uniform(1 - p, 1 + p)           p = profile.perturbation (0.20)
3. rescale so Σ = salary * r,  r = uniform(spend_ratio_min, spend_ratio_max)
   (0.92–0.97, leaving 3–8% as current savings)
4. round to the currency unit

Randomness comes only from the injected ``random.Random``; the default is
seeded from ``profile.seed`` so equal inputs give equal profiles.
"""

from __future__ import annotations

import logging
import random
from typing import Mapping, Optional

from budget_planner.allocation.bounds import require_positive_salary, round_to_unit
from budget_planner.allocation.errors import InvalidInputError
from budget_planner.config import AppConfig
from budget_planner.models.budget import SpendingProfile
from budget_planner.taxonomy.category_taxonomy import (
    DEFAULT_BANDS,
    CategoryBand,
    SpendingCategory,
    validate_bands,
)

logger = logging.getLogger(__name__)


def build_spending_profile(
    salary: float,
    bands: Mapping[SpendingCategory, CategoryBand] = DEFAULT_BANDS,
    rng: Optional[random.Random] = None,
    config: Optional[AppConfig] = None,
) -> SpendingProfile:
    """Build a synthetic current-spend profile for ``salary``.

    Args:
        salary: Monthly salary; must be positive.
        bands:  Category bands (defaults to the taxonomy's ``DEFAULT_BANDS``).
        rng:    Random source; defaults to ``random.Random(config.profile.seed)``.
        config: Application config; defaults to ``AppConfig()``.

    Returns:
        ``SpendingProfile`` whose total is 92–97% of salary (before rounding).

    Raises:
        InvalidInputError: If ``salary`` is not positive or the bands are invalid.
    """
    require_positive_salary(salary)
    try:
        validate_bands(bands)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc

    config = config or AppConfig()
    cfg = config.profile
    unit = config.allocator.rounding_unit
    if rng is None:
        rng = random.Random(cfg.seed)

    p = cfg.perturbation
    raw: dict[SpendingCategory, float] = {}
    for category in SpendingCategory:
        factor = rng.uniform(1.0 - p, 1.0 + p)
        raw[category] = salary * bands[category].midpoint * factor

    spend_ratio = rng.uniform(cfg.spend_ratio_min, cfg.spend_ratio_max)
    scale = salary * spend_ratio / sum(raw.values())

    amounts = {c: round_to_unit(v * scale, unit) for c, v in raw.items()}
    profile = SpendingProfile(salary=salary, amounts=amounts)

    logger.debug(
        "Built spending profile: salary=%.2f total=%.2f ratio=%.4f",
        salary, profile.total, spend_ratio,
    )
    return profile
