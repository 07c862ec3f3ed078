"""
Budget data models: spending profiles, bounds, allocations and warnings.

``SpendingProfile`` is the read-only baseline of current monthly spend.
``CategoryBounds`` holds the per-category currency envelope for one salary.
``Allocation`` is a recommended monthly budget with one explanation per
category and the non-fatal warnings raised while producing it.

All models are frozen.  Refinement builds a new ``Allocation`` instead of
editing one in place, so earlier plans stay intact for history and undo.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from budget_planner.taxonomy.category_taxonomy import SpendingCategory

WarningKind = Literal[
    "bound_clamped",
    "total_drift",
    "low_savings_rate",
    "goal_shortfall",
    "goal_infeasible",
    "refinement_limit",
    "no_intent",
]
PinnedBound = Literal["min", "max"]


def _require_all_categories(amounts: dict[SpendingCategory, float], field: str) -> None:
    missing = set(SpendingCategory) - set(amounts)
    if missing:
        raise ValueError(
            f"{field} missing categories: {sorted(c.value for c in missing)}."
        )
    negative = {c.value: v for c, v in amounts.items() if v < 0}
    if negative:
        raise ValueError(f"{field} must be non-negative, got {negative}.")


class PlanWarning(BaseModel):
    """A non-fatal issue surfaced alongside a result.

    Attributes:
        kind:     Machine-readable warning type.
        message:  Human-readable text for display.
        category: Category the warning concerns, or ``None`` for plan-wide ones.
    """

    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    message: str
    category: Optional[SpendingCategory] = None


class SpendingProfile(BaseModel):
    """Current monthly spend per category.

    Attributes:
        salary:  Monthly salary the profile was built for.
        amounts: Current spend for every ``SpendingCategory``.
    """

    model_config = ConfigDict(frozen=True)

    salary: float = Field(gt=0)
    amounts: dict[SpendingCategory, float]

    @model_validator(mode="after")
    def validate_amounts(self) -> "SpendingProfile":
        _require_all_categories(self.amounts, "SpendingProfile.amounts")
        return self

    @property
    def total(self) -> float:
        return sum(self.amounts.values())


class CategoryBounds(BaseModel):
    """Per-category min/max monthly budget for a given salary.

    Attributes:
        salary:      Monthly salary the bounds were derived from.
        min_allowed: Minimum sustainable budget per category.
        max_allowed: Maximum budget per category.
    """

    model_config = ConfigDict(frozen=True)

    salary: float = Field(gt=0)
    min_allowed: dict[SpendingCategory, float]
    max_allowed: dict[SpendingCategory, float]

    @model_validator(mode="after")
    def validate_envelopes(self) -> "CategoryBounds":
        _require_all_categories(self.min_allowed, "CategoryBounds.min_allowed")
        _require_all_categories(self.max_allowed, "CategoryBounds.max_allowed")
        for category in SpendingCategory:
            if self.min_allowed[category] > self.max_allowed[category]:
                raise ValueError(
                    f"min_allowed ({self.min_allowed[category]}) must be <= "
                    f"max_allowed ({self.max_allowed[category]}) for '{category}'."
                )
        return self

    @property
    def min_total(self) -> float:
        return sum(self.min_allowed.values())

    @property
    def max_total(self) -> float:
        return sum(self.max_allowed.values())

    def clamp(self, category: SpendingCategory, value: float) -> float:
        """Clamp ``value`` into ``[min_allowed, max_allowed]`` for ``category``."""
        return max(self.min_allowed[category], min(self.max_allowed[category], value))


class Allocation(BaseModel):
    """A recommended monthly budget per category.

    Attributes:
        amounts:      Recommended budget for every category (currency units).
        explanations: One human-readable justification per category.
        warnings:     Non-fatal issues raised while producing this allocation.
        pinned:       Categories held at a bound, mapped to ``"min"``/``"max"``.
        target_total: Total spend the allocation aimed for, if any.
    """

    model_config = ConfigDict(frozen=True)

    amounts: dict[SpendingCategory, float]
    explanations: dict[SpendingCategory, str]
    warnings: tuple[PlanWarning, ...] = ()
    pinned: dict[SpendingCategory, PinnedBound] = {}
    target_total: Optional[float] = None

    @model_validator(mode="after")
    def validate_allocation(self) -> "Allocation":
        _require_all_categories(self.amounts, "Allocation.amounts")
        missing = set(SpendingCategory) - set(self.explanations)
        if missing:
            raise ValueError(
                f"Allocation.explanations missing categories: "
                f"{sorted(c.value for c in missing)}."
            )
        return self

    @field_validator("explanations")
    @classmethod
    def validate_explanations_not_empty(
        cls, v: dict[SpendingCategory, str]
    ) -> dict[SpendingCategory, str]:
        empty = [c.value for c, text in v.items() if not text.strip()]
        if empty:
            raise ValueError(f"Explanations must not be empty: {sorted(empty)}.")
        return v

    @property
    def total(self) -> float:
        return sum(self.amounts.values())
