"""
Planning session: the only stateful layer around the allocation engine.

A session owns one goal, one baseline spending profile and its bounds, and
keeps:
  - a bounded history of ``PlanStep``s (``refinement.history_limit``, 6),
  - a ``RefinementBudget`` (``refinement.max_attempts``, 5 per session),
  - a request counter for last-write-wins commits.

Target spend
------------
Both planning modes aim the allocator at

    target = min(profile.total, salary - required_monthly_savings)

clamped into ``[Σ min_allowed, Σ max_allowed]``.  The plan never recommends
spending more than today.  If the goal needs spend below ``Σ min_allowed``
the plan uses ``Σ min_allowed`` (the most a bounded plan can save) and
carries a ``goal_infeasible`` warning with an extended-timeline suggestion.

Last-write-wins
---------------
Hosts that compute plans asynchronously (e.g. debounced slider changes) use::

    rid  = session.begin_request()
    step = session.compute_weighted(priorities)   # no side effects
    session.commit(rid, step)                     # False if superseded

Only the most recently issued request id commits; stale ones are ignored.
``plan_pareto()`` / ``plan_weighted()`` / ``refine()`` / ``undo()`` are the
synchronous shortcuts and count as writes.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from typing import Mapping, Optional

from budget_planner.allocation.allocator import allocate
from budget_planner.allocation.bounds import (
    check_feasibility,
    compute_bounds,
    savings_range,
    suggest_timeline,
)
from budget_planner.allocation.errors import InvalidInputError, RefinementLimitExceeded
from budget_planner.allocation.evaluator import evaluate
from budget_planner.allocation.profile import build_spending_profile
from budget_planner.allocation.refiner import refine as refine_allocation, resolve_intents
from budget_planner.allocation.weights import (
    pareto_categories,
    pareto_weights,
    priority_weights,
    resolve_priorities,
)
from budget_planner.config import AppConfig
from budget_planner.feedback.classifier import IntentClassifier, KeywordIntentClassifier
from budget_planner.models.budget import Allocation, PlanWarning, SpendingProfile
from budget_planner.models.goal import GoalSpec, PlanStep
from budget_planner.taxonomy.category_taxonomy import (
    DEFAULT_BANDS,
    AdjustmentDirection,
    CategoryBand,
    SpendingCategory,
)

logger = logging.getLogger(__name__)


class RefinementBudget:
    """Counts refinement attempts against a fixed per-session limit.

    Attributes:
        limit: Maximum number of refinements.
        used:  Refinements consumed so far.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    def consume(self) -> int:
        """Use one attempt and return the attempt number (1-based).

        Raises:
            RefinementLimitExceeded: If every attempt has been used.
        """
        if self.used >= self.limit:
            raise RefinementLimitExceeded(self.used, self.limit)
        self.used += 1
        return self.used


class PlanningSession:
    """Stateful planning workflow for one savings goal.

    Args:
        goal:       The savings goal.
        profile:    Current spend; built with ``build_spending_profile`` if omitted.
        bands:      Category bands; defaults to the taxonomy's ``DEFAULT_BANDS``.
        config:     Application config; defaults to ``AppConfig()``.
        classifier: Feedback classifier for ``refine_text``; defaults to
                    ``KeywordIntentClassifier``.
        rng:        Random source for the synthetic profile.

    Raises:
        InvalidInputError: If the bands are invalid or the profile was built
            for a different salary.
        InfeasibleError:   If the category minimums exceed the salary.
    """

    def __init__(
        self,
        goal: GoalSpec,
        profile: Optional[SpendingProfile] = None,
        bands: Mapping[SpendingCategory, CategoryBand] = DEFAULT_BANDS,
        config: Optional[AppConfig] = None,
        classifier: Optional[IntentClassifier] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.goal = goal
        self.bounds = compute_bounds(goal.salary, bands)
        check_feasibility(self.bounds, goal=goal)

        if profile is None:
            profile = build_spending_profile(goal.salary, bands, rng, self.config)
        elif profile.salary != goal.salary:
            raise InvalidInputError(
                f"Profile salary {profile.salary} does not match goal salary {goal.salary}."
            )
        self.profile = profile
        self.classifier: IntentClassifier = classifier or KeywordIntentClassifier()

        self._history: deque[PlanStep] = deque(maxlen=self.config.refinement.history_limit)
        self._refinements = RefinementBudget(self.config.refinement.max_attempts)
        self._latest_request = 0

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def history(self) -> tuple[PlanStep, ...]:
        return tuple(self._history)

    @property
    def current(self) -> Optional[PlanStep]:
        return self._history[-1] if self._history else None

    @property
    def refinements_remaining(self) -> int:
        return self._refinements.remaining

    # ── Request sequencing ────────────────────────────────────────────────────

    def begin_request(self) -> int:
        """Issue a new request id; every earlier id becomes stale."""
        self._latest_request += 1
        return self._latest_request

    def commit(self, request_id: int, step: PlanStep) -> bool:
        """Record ``step`` if ``request_id`` is still the latest request.

        Returns:
            ``True`` if the step entered the history, ``False`` if superseded.
        """
        if request_id != self._latest_request:
            logger.debug(
                "Ignoring stale plan %r (request %d, latest %d)",
                step.label, request_id, self._latest_request,
            )
            return False
        self._history.append(step)
        return True

    # ── Planning ──────────────────────────────────────────────────────────────

    def target_total_spend(self) -> tuple[float, list[PlanWarning]]:
        """Total spend both planning modes aim for, plus any feasibility warning."""
        warnings: list[PlanWarning] = []
        goal_spend = self.goal.salary - self.goal.required_monthly_savings
        target = min(self.profile.total, goal_spend)

        if target < self.bounds.min_total:
            suggestion = suggest_timeline(self.goal, self.bounds)
            least, most = savings_range(self.bounds)
            message = (
                f"Goal requires ${self.goal.required_monthly_savings:,.0f}/month but a "
                f"realistic budget saves between ${max(least, 0.0):,.0f} and "
                f"${most:,.0f}/month."
            )
            if suggestion is not None:
                message += f"  Consider extending the timeline to {suggestion} months."
            warnings.append(PlanWarning(kind="goal_infeasible", message=message))
            target = self.bounds.min_total

        return min(target, self.bounds.max_total), warnings

    def compute_pareto(self) -> PlanStep:
        """Pareto plan: cut hardest where 80% of the spending is.  No side effects."""
        required_rate = self.goal.required_monthly_savings / self.goal.salary
        share = self.config.goal.pareto_share
        weights = pareto_weights(self.profile, required_rate, share)
        target, warnings = self.target_total_spend()
        allocation = allocate(self.profile, weights, target, self.bounds, self.config)

        top = pareto_categories(self.profile, share)
        explanations = dict(allocation.explanations)
        for category in top:
            pct = self.profile.amounts[category] / self.goal.salary
            explanations[category] = (
                f"High-impact category ({pct:.0%} of income). " + explanations[category]
            )
        allocation = allocation.model_copy(update={"explanations": explanations})
        return self._make_step("pareto", allocation, warnings)

    def compute_weighted(
        self,
        priorities: Optional[Mapping[SpendingCategory, float]] = None,
    ) -> PlanStep:
        """Priority-weighted plan (priorities 0–100, default 50).  No side effects."""
        resolved = resolve_priorities(priorities)
        weights = priority_weights(self.profile, resolved)
        target, warnings = self.target_total_spend()
        allocation = allocate(self.profile, weights, target, self.bounds, self.config)

        explanations = {
            c: f"Priority {resolved[c]:.0f}/100. {allocation.explanations[c]}"
            for c in SpendingCategory
        }
        allocation = allocation.model_copy(update={"explanations": explanations})
        return self._make_step("weighted", allocation, warnings)

    def plan_pareto(self) -> PlanStep:
        step = self.compute_pareto()
        self.commit(self.begin_request(), step)
        return step

    def plan_weighted(
        self,
        priorities: Optional[Mapping[SpendingCategory, float]] = None,
    ) -> PlanStep:
        step = self.compute_weighted(priorities)
        self.commit(self.begin_request(), step)
        return step

    # ── Refinement ────────────────────────────────────────────────────────────

    def refine(self, intents: Mapping[SpendingCategory, AdjustmentDirection]) -> PlanStep:
        """Apply feedback intents to the current plan.

        The sixth and later calls return the current step unchanged with a
        ``refinement_limit`` warning; nothing is added to the history.

        Raises:
            InvalidInputError: If there is no plan to refine yet, or the
                intents are malformed.
        """
        prior = self.current
        if prior is None:
            raise InvalidInputError("No plan to refine; call plan_pareto() or plan_weighted() first.")
        # Malformed intents must not use up an attempt.
        resolved = resolve_intents(intents)

        try:
            attempt = self._refinements.consume()
        except RefinementLimitExceeded as exc:
            logger.warning("Refinement rejected: %s", exc)
            limit_warning = PlanWarning(kind="refinement_limit", message=str(exc))
            return prior.model_copy(deep=True, update={"warnings": (limit_warning,)})

        allocation = refine_allocation(
            prior.allocation,
            resolved,
            self.bounds,
            step=self.config.refinement.step,
            config=self.config,
        )
        step = self._make_step(f"refine #{attempt}", allocation, [])
        self.commit(self.begin_request(), step)
        return step

    def refine_text(self, feedback: str) -> PlanStep:
        """Classify free-text feedback and refine with the resulting intents."""
        return self.refine(self.classifier.classify(feedback))

    def undo(self) -> Optional[PlanStep]:
        """Drop the latest step and return the one before it.

        Returns ``None`` (and changes nothing) when there is no earlier step.
        Refinement attempts are not given back.
        """
        if len(self._history) < 2:
            return None
        dropped = self._history.pop()
        self.begin_request()
        logger.info("Undid plan step %r", dropped.label)
        return self._history[-1]

    # ── Internals ─────────────────────────────────────────────────────────────

    def _make_step(
        self,
        label: str,
        allocation: Allocation,
        extra_warnings: list[PlanWarning],
    ) -> PlanStep:
        projection = evaluate(self.goal, allocation, self.config)
        return PlanStep(
            label=label,
            allocation=allocation,
            projection=projection,
            warnings=tuple(extra_warnings) + allocation.warnings + projection.warnings,
        )
