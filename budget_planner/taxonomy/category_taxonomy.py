"""
Spending category taxonomy and realistic spending bands.

Every budget in the planner is expressed over the same closed set of
``SpendingCategory`` values.  Each category carries a ``CategoryBand``: the
realistic monthly spending envelope expressed as fractions of salary.

``DEFAULT_BANDS`` is the canonical integrity contract:
  - Every ``SpendingCategory`` must have an entry.
  - ``0 < min_fraction < max_fraction <= 1`` for every band.
  - ``sum(min_fraction) <= 1`` — otherwise no feasible budget exists.

Run ``tests/test_taxonomy/test_category_taxonomy.py`` to verify this contract.

``AdjustmentDirection`` describes a qualitative feedback intent
("more food", "less entertainment") after classification.

This module has NO imports from any other ``budget_planner`` package.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Mapping


class SpendingCategory(StrEnum):
    """Fixed spending bucket used by every profile and allocation."""

    HOUSING = "housing"
    """Rent or mortgage, utilities, home insurance."""

    FOOD = "food"
    """Groceries and eating out."""

    TRANSPORTATION = "transportation"
    """Fuel, transit passes, car payments and maintenance."""

    ENTERTAINMENT = "entertainment"
    """Subscriptions, hobbies, outings; the most discretionary bucket."""

    HEALTHCARE = "healthcare"
    """Insurance premiums, prescriptions, out-of-pocket care."""

    OTHER = "other"
    """Everything not covered above."""


class AdjustmentDirection(StrEnum):
    """Direction of a feedback intent for one category."""

    INCREASE = "increase"
    """Give this category more budget."""

    DECREASE = "decrease"
    """Cut this category's budget."""


@dataclass(frozen=True)
class CategoryBand:
    """Realistic spending envelope for one category, as fractions of salary.

    Attributes:
        min_fraction: Lowest sustainable share of salary (basic needs).
        max_fraction: Highest share before the category crowds out savings.
    """

    min_fraction: float
    max_fraction: float

    @property
    def midpoint(self) -> float:
        return (self.min_fraction + self.max_fraction) / 2


DEFAULT_BANDS: dict[SpendingCategory, CategoryBand] = {
    SpendingCategory.HOUSING:        CategoryBand(0.25, 0.45),
    SpendingCategory.FOOD:           CategoryBand(0.10, 0.25),
    SpendingCategory.TRANSPORTATION: CategoryBand(0.08, 0.20),
    SpendingCategory.ENTERTAINMENT:  CategoryBand(0.03, 0.20),
    SpendingCategory.HEALTHCARE:     CategoryBand(0.05, 0.15),
    SpendingCategory.OTHER:          CategoryBand(0.05, 0.20),
}


def validate_bands(bands: Mapping[SpendingCategory, CategoryBand]) -> None:
    """Check a band table against the taxonomy invariants.

    Raises:
        ValueError: If a category is missing, a band is out of range, or the
            minimum fractions sum above 1.
    """
    missing = set(SpendingCategory) - set(bands)
    if missing:
        raise ValueError(
            f"Bands missing for categories: {sorted(c.value for c in missing)}."
        )

    for category, band in bands.items():
        if not 0.0 < band.min_fraction < band.max_fraction <= 1.0:
            raise ValueError(
                f"Band for '{category}' must satisfy 0 < min < max <= 1, "
                f"got min={band.min_fraction}, max={band.max_fraction}."
            )

    min_sum = sum(band.min_fraction for band in bands.values())
    if min_sum > 1.0:
        raise ValueError(
            f"Minimum fractions sum to {min_sum:.2f} (> 1.0); no feasible budget exists."
        )
