"""
Savings goal models.

``GoalSpec`` is the immutable user input: salary, target amount and timeline.
``GoalProjection`` is derived from a goal and an allocation and is never
stored on its own.  ``PlanStep`` bundles one allocation with its projection
so a planning session can keep a bounded history of them.

Tri-state projection
--------------------
``status`` is one of:
  - ``"on_track"``    — the goal is reached within the timeline.
  - ``"extended"``    — savings are positive but the goal needs
                        ``months_needed`` > ``timeline_months``.
  - ``"unreachable"`` — the plan saves nothing; ``months_needed`` is ``None``.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from budget_planner.models.budget import Allocation, PlanWarning

ProjectionStatus = Literal["on_track", "extended", "unreachable"]


class GoalSpec(BaseModel):
    """A savings goal over a fixed timeline.

    Attributes:
        salary:          Monthly take-home salary.
        target_amount:   Amount to have saved by the end of the timeline.
        timeline_months: Number of months available.
        name:            Optional label, e.g. ``"Emergency fund"``.
    """

    model_config = ConfigDict(frozen=True)

    salary: float = Field(gt=0, allow_inf_nan=False)
    target_amount: float = Field(gt=0, allow_inf_nan=False)
    timeline_months: int = Field(gt=0)
    name: Optional[str] = None

    @property
    def required_monthly_savings(self) -> float:
        return self.target_amount / self.timeline_months


class GoalProjection(BaseModel):
    """Goal achievability for one allocation.

    Attributes:
        required_monthly_savings: ``target_amount / timeline_months``.
        monthly_savings:          ``salary - allocation.total``; may be negative.
        savings_rate:             ``monthly_savings / salary``; ``None`` if undefined.
        total_by_timeline:        ``monthly_savings * timeline_months``.
        achievable:               Whether the goal is met within the timeline.
        months_needed:            Months to reach the target; ``None`` when the
                                  plan saves nothing.
        shortfall:                Monthly savings still missing (0 if on track).
        status:                   Tri-state summary, see module docstring.
        warnings:                 Non-fatal issues about this projection.
    """

    model_config = ConfigDict(frozen=True)

    required_monthly_savings: float
    monthly_savings: float
    savings_rate: Optional[float]
    total_by_timeline: float
    achievable: bool
    months_needed: Optional[int]
    shortfall: float = 0.0
    status: ProjectionStatus
    warnings: tuple[PlanWarning, ...] = ()

    @model_validator(mode="after")
    def validate_status_consistency(self) -> "GoalProjection":
        if self.months_needed is None and self.status != "unreachable":
            raise ValueError("months_needed may only be None when status is 'unreachable'.")
        if self.achievable and self.status != "on_track":
            raise ValueError("An achievable projection must have status 'on_track'.")
        return self


class PlanStep(BaseModel):
    """One entry of a planning session's history.

    Attributes:
        label:      What produced this step, e.g. ``"pareto"`` or ``"refine #2"``.
        allocation: The recommended budget.
        projection: Goal projection for ``allocation``.
        warnings:   Every warning raised while producing this step.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    allocation: Allocation
    projection: GoalProjection
    warnings: tuple[PlanWarning, ...] = ()
