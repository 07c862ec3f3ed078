"""
Tests for budget_planner/planner/session.py.

What we test
------------
RefinementBudget:
  - consume() returns 1-based attempt numbers, then raises RefinementLimitExceeded.

PlanningSession:
  - Builds a deterministic profile when none is given.
  - Profile / goal salary mismatch → InvalidInputError.
  - Target spend = min(current spend, salary - required savings); a goal that
    needs spend below Σ min_allowed uses Σ min_allowed with a goal_infeasible
    warning naming the achievable savings range and a timeline suggestion.
  - plan_pareto(): labelled "pareto", explains high-impact categories.
  - plan_weighted(): higher priority → larger budget for that category.
  - compute_*() have no side effects.
  - refine() before any plan → InvalidInputError.
  - A malformed intent raises before an attempt is used up.
  - 5 refinements succeed; the 6th returns the 5th step unchanged with a
    refinement_limit warning and leaves history untouched; the returned
    step is a deep copy of the current one.
  - History never exceeds 6 steps.
  - undo() reverts to the previous step; None when nothing to undo;
    attempts are not refunded.
  - Last-write-wins: only the latest request id commits.
  - refine_text() uses the injected classifier.
"""

from __future__ import annotations

import pytest

from budget_planner.allocation.errors import InvalidInputError, RefinementLimitExceeded
from budget_planner.config import AppConfig, RefinementConfig
from budget_planner.models.budget import SpendingProfile
from budget_planner.models.goal import GoalSpec
from budget_planner.planner.session import PlanningSession, RefinementBudget
from budget_planner.taxonomy.category_taxonomy import AdjustmentDirection, SpendingCategory

H  = SpendingCategory.HOUSING
F  = SpendingCategory.FOOD
HC = SpendingCategory.HEALTHCARE

UP = AdjustmentDirection.INCREASE


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def easy_goal() -> GoalSpec:
    """2,400 in 12 months: 200/month, well within reach of a 5,000 salary."""
    return GoalSpec(salary=5000.0, target_amount=2400.0, timeline_months=12)


@pytest.fixture
def session(easy_goal, sample_profile) -> PlanningSession:
    return PlanningSession(easy_goal, profile=sample_profile)


def _kinds(step) -> list[str]:
    return [w.kind for w in step.warnings]


# ── RefinementBudget ──────────────────────────────────────────────────────────

class TestRefinementBudget:
    def test_counts_attempts(self):
        budget = RefinementBudget(limit=2)
        assert budget.consume() == 1
        assert budget.consume() == 2
        assert budget.remaining == 0

    def test_raises_when_exhausted(self):
        budget = RefinementBudget(limit=1)
        budget.consume()
        with pytest.raises(RefinementLimitExceeded) as exc_info:
            budget.consume()
        assert exc_info.value.attempts == 1
        assert exc_info.value.limit == 1


# ── Construction ──────────────────────────────────────────────────────────────

class TestConstruction:
    def test_builds_profile_when_missing(self, easy_goal):
        a = PlanningSession(easy_goal)
        b = PlanningSession(easy_goal)
        assert a.profile == b.profile
        assert a.profile.salary == 5000.0

    def test_salary_mismatch_raises(self, easy_goal):
        profile = SpendingProfile(salary=4000.0, amounts={c: 500.0 for c in SpendingCategory})
        with pytest.raises(InvalidInputError, match="does not match"):
            PlanningSession(easy_goal, profile=profile)

    def test_starts_empty(self, session):
        assert session.history == ()
        assert session.current is None
        assert session.refinements_remaining == 5


# ── Target spend ──────────────────────────────────────────────────────────────

class TestTargetSpend:
    def test_capped_at_current_spend(self, session):
        # Goal allows 4,800 but the profile only spends 4,750.
        target, warnings = session.target_total_spend()
        assert target == pytest.approx(4750.0)
        assert warnings == []

    def test_goal_drives_target(self, sample_goal, sample_profile):
        session = PlanningSession(sample_goal, profile=sample_profile)
        target, _ = session.target_total_spend()
        assert target == pytest.approx(4500.0)

    def test_infeasible_goal_uses_minimums(self, sample_profile):
        goal = GoalSpec(salary=5000.0, target_amount=60000.0, timeline_months=12)
        session = PlanningSession(goal, profile=sample_profile)
        target, warnings = session.target_total_spend()
        assert target == pytest.approx(2800.0)
        assert [w.kind for w in warnings] == ["goal_infeasible"]
        # 60000 / (5000 - 2800) = 27.3 → 28
        assert "28 months" in warnings[0].message
        # Σ max_allowed (7,250) exceeds the salary, so the least is $0.
        assert "between $0 and $2,200/month" in warnings[0].message

    def test_infeasible_goal_still_plans(self, sample_profile):
        goal = GoalSpec(salary=5000.0, target_amount=60000.0, timeline_months=12)
        session = PlanningSession(goal, profile=sample_profile)
        step = session.plan_pareto()
        assert "goal_infeasible" in _kinds(step)
        assert step.projection.status == "extended"
        assert step.projection.months_needed >= 28


# ── Planning ──────────────────────────────────────────────────────────────────

class TestPlanning:
    def test_plan_pareto(self, session):
        step = session.plan_pareto()
        assert step.label == "pareto"
        assert session.current == step
        assert len(session.history) == 1
        assert abs(step.allocation.total - 4750.0) <= 3
        assert step.projection.status == "on_track"

    def test_pareto_explains_high_impact_categories(self, session):
        step = session.plan_pareto()
        assert step.allocation.explanations[H].startswith("High-impact category (36% of income)")
        assert not step.allocation.explanations[HC].startswith("High-impact")

    def test_plan_weighted_priority_prefix(self, session):
        step = session.plan_weighted({F: 80.0})
        assert step.label == "weighted"
        assert step.allocation.explanations[F].startswith("Priority 80/100.")
        assert step.allocation.explanations[H].startswith("Priority 50/100.")

    def test_higher_priority_gets_more(self, sample_goal, sample_profile):
        session = PlanningSession(sample_goal, profile=sample_profile)
        base = session.compute_weighted()
        boosted = session.compute_weighted({F: 90.0})
        assert boosted.allocation.amounts[F] >= base.allocation.amounts[F]

    def test_invalid_priority_raises(self, session):
        with pytest.raises(InvalidInputError):
            session.plan_weighted({F: 150.0})

    def test_compute_has_no_side_effects(self, session):
        session.compute_pareto()
        session.compute_weighted()
        assert session.history == ()


# ── Refinement ────────────────────────────────────────────────────────────────

class TestRefinement:
    def test_refine_before_plan_raises(self, session):
        with pytest.raises(InvalidInputError, match="No plan to refine"):
            session.refine({F: UP})

    def test_refine_increases_category(self, session):
        plan = session.plan_pareto()
        step = session.refine({F: UP})
        assert step.label == "refine #1"
        assert step.allocation.amounts[F] > plan.allocation.amounts[F]
        assert session.refinements_remaining == 4

    def test_sixth_refinement_rejected(self, session):
        session.plan_pareto()
        steps = [session.refine({F: UP}) for _ in range(5)]
        assert [s.label for s in steps] == [f"refine #{i}" for i in range(1, 6)]

        sixth = session.refine({F: UP})
        assert sixth.allocation == steps[-1].allocation
        assert sixth.label == "refine #5"
        assert _kinds(sixth) == ["refinement_limit"]
        assert session.current == steps[-1]
        assert len(session.history) == 6
        assert session.refinements_remaining == 0

    def test_invalid_intent_keeps_attempt(self, session):
        session.plan_pareto()
        with pytest.raises(InvalidInputError, match="Invalid intent"):
            session.refine({"nonsense": UP})
        with pytest.raises(InvalidInputError, match="Invalid intent"):
            session.refine({F: "sideways"})
        assert session.refinements_remaining == 5
        assert len(session.history) == 1

        step = session.refine({F: UP})
        assert step.label == "refine #1"

    def test_limit_step_is_independent_copy(self, easy_goal, sample_profile):
        config = AppConfig(refinement=RefinementConfig(max_attempts=1))
        session = PlanningSession(easy_goal, profile=sample_profile, config=config)
        session.plan_pareto()
        last = session.refine({F: UP})
        rejected = session.refine({F: UP})
        assert rejected.allocation == last.allocation
        assert rejected.allocation.amounts is not last.allocation.amounts

    def test_limit_is_configurable(self, easy_goal, sample_profile):
        config = AppConfig(refinement=RefinementConfig(max_attempts=1))
        session = PlanningSession(easy_goal, profile=sample_profile, config=config)
        session.plan_pareto()
        session.refine({F: UP})
        assert _kinds(session.refine({F: UP})) == ["refinement_limit"]

    def test_refine_text_default_classifier(self, session):
        plan = session.plan_pareto()
        step = session.refine_text("more groceries please")
        assert step.allocation.amounts[F] > plan.allocation.amounts[F]

    def test_refine_text_without_intent(self, session):
        plan = session.plan_pareto()
        step = session.refine_text("looks fine")
        assert step.allocation.amounts == plan.allocation.amounts
        assert "no_intent" in _kinds(step)

    def test_custom_classifier(self, easy_goal, sample_profile):
        class AlwaysFood:
            def classify(self, text: str):
                return {F: UP}

        session = PlanningSession(easy_goal, profile=sample_profile, classifier=AlwaysFood())
        plan = session.plan_pareto()
        step = session.refine_text("anything at all")
        assert step.allocation.amounts[F] > plan.allocation.amounts[F]


# ── History ───────────────────────────────────────────────────────────────────

class TestHistory:
    def test_bounded_to_six(self, session):
        for _ in range(8):
            session.plan_weighted()
        assert len(session.history) == 6

    def test_undo(self, session):
        plan = session.plan_pareto()
        session.refine({F: UP})
        assert session.undo() == plan
        assert session.current == plan
        assert session.refinements_remaining == 4

    def test_undo_with_single_step(self, session):
        session.plan_pareto()
        assert session.undo() is None
        assert len(session.history) == 1

    def test_undo_with_empty_history(self, session):
        assert session.undo() is None


# ── Last-write-wins ───────────────────────────────────────────────────────────

class TestLastWriteWins:
    def test_stale_request_ignored(self, session):
        first = session.begin_request()
        second = session.begin_request()
        step = session.compute_pareto()
        assert session.commit(first, step) is False
        assert session.history == ()
        assert session.commit(second, step) is True
        assert session.current == step

    def test_synchronous_plan_supersedes_pending_request(self, session):
        pending = session.begin_request()
        stale = session.compute_weighted()
        session.plan_pareto()
        assert session.commit(pending, stale) is False
        assert session.current.label == "pareto"

    def test_undo_invalidates_pending_request(self, session):
        session.plan_pareto()
        session.refine({F: UP})
        pending = session.begin_request()
        step = session.compute_weighted()
        session.undo()
        assert session.commit(pending, step) is False
