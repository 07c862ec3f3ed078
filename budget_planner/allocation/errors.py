"""
Exceptions raised by the budget allocation engine.

Raising vs returning
--------------------
Only conditions that make a result impossible are raised:

``InvalidInputError``        — non-positive salary / target / timeline, or
                               malformed weights and intents.  Rejected at the
                               boundary; never coerced to zero.
``InfeasibleError``          — the category bounds cannot be met for the
                               requested spend.  Carries the data the caller
                               needs to suggest a longer timeline.
``RefinementLimitExceeded``  — the session's refinement attempts are used up.

Everything else (a category pinned at a bound, a drifted total, a low savings
rate) is a ``PlanWarning`` returned alongside the result.
"""

from __future__ import annotations

from typing import Optional


class InvalidInputError(ValueError):
    """Raised when a caller supplies a value outside its valid domain."""


class InfeasibleError(RuntimeError):
    """Raised when no allocation can satisfy the category minimums.

    Attributes:
        salary:                    Monthly salary the bounds were built from.
        min_total:                 Sum of per-category minimum budgets.
        target_total:              Requested total spend, or ``None`` when the
                                   minimums exceed the salary outright.
        max_monthly_savings:       ``salary - min_total`` (may be negative).
        suggested_timeline_months: Months needed to reach ``target_amount`` at
                                   ``max_monthly_savings``; ``None`` if no
                                   target was given or savings are impossible.
    """

    def __init__(
        self,
        salary: float,
        min_total: float,
        target_total: Optional[float] = None,
        suggested_timeline_months: Optional[int] = None,
    ) -> None:
        self.salary                    = salary
        self.min_total                 = min_total
        self.target_total              = target_total
        self.max_monthly_savings       = salary - min_total
        self.suggested_timeline_months = suggested_timeline_months

        if target_total is None:
            detail = f"category minimums total {min_total:,.0f} but salary is {salary:,.0f}"
        else:
            detail = (
                f"requested spend {target_total:,.0f} is below the category "
                f"minimums total {min_total:,.0f}"
            )
        message = f"No feasible budget: {detail}."
        if suggested_timeline_months is not None:
            message += f"  Consider extending the timeline to {suggested_timeline_months} months."
        super().__init__(message)


class RefinementLimitExceeded(RuntimeError):
    """Raised when a planning session has used all its refinement attempts.

    Attributes:
        attempts: Refinements already applied in the session.
        limit:    Maximum refinements allowed per session.
    """

    def __init__(self, attempts: int, limit: int) -> None:
        self.attempts = attempts
        self.limit    = limit
        super().__init__(
            f"Refinement limit reached ({attempts}/{limit}).  "
            "The current plan is the best balance available under these constraints."
        )
