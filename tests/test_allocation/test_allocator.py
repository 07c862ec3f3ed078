"""
Tests for budget_planner/allocation/allocator.py.

What we test
------------
allocate():
  - Every amount stays within [min_allowed - unit/2, max_allowed + unit/2].
  - Σ amounts equals the target (± rounding) for any target in
    [Σ min_allowed, Σ max_allowed], with or without zero weights.
  - A min pin pulls budget from the free categories (first-pass case).
  - Categories pinned by the first clamp re-enter redistribution: a max pin
    can push others back up to their minimums (housing-heavy weights).
  - Zero-weight categories take budget the weighted ones cannot hold
    (second pass); with one pass allowed the rest is a total_drift warning.
  - A target above Σ max_allowed leaves everything at its maximum plus drift.
  - Pinned categories carry bound_clamped warnings and "min"/"max" pins.
  - Raising one category's weight never lowers its allocation, including
    over randomized salaries, weights and targets.
  - Same inputs → equal results (idempotent, no hidden state).
  - target < Σ min_allowed → InfeasibleError (salary 3000, target 1500).
  - Negative / non-finite target → InvalidInputError.
  - Every explanation is non-empty.
"""

from __future__ import annotations

import random

import pytest

from budget_planner.allocation.allocator import allocate
from budget_planner.allocation.bounds import compute_bounds
from budget_planner.allocation.errors import InfeasibleError, InvalidInputError
from budget_planner.allocation.weights import uniform_weights
from budget_planner.config import AllocatorConfig, AppConfig
from budget_planner.models.budget import SpendingProfile
from budget_planner.taxonomy.category_taxonomy import SpendingCategory

H  = SpendingCategory.HOUSING
F  = SpendingCategory.FOOD
T  = SpendingCategory.TRANSPORTATION
E  = SpendingCategory.ENTERTAINMENT
HC = SpendingCategory.HEALTHCARE
O  = SpendingCategory.OTHER


def _kinds(allocation) -> list[str]:
    return [w.kind for w in allocation.warnings]


# ── Single pass ───────────────────────────────────────────────────────────────

class TestSinglePass:
    def test_housing_pinned_at_minimum(self, sample_profile, bounds_5000):
        # Uniform 4000 → 666.67 each; housing pinned at 1250, the other five
        # absorb -583.33 evenly.
        result = allocate(sample_profile, uniform_weights(), 4000.0, bounds_5000)
        assert result.amounts[H] == 1250.0
        for category in (F, T, E, HC, O):
            assert result.amounts[category] == 550.0
        assert result.pinned == {H: "min"}

    def test_total_matches_target(self, sample_profile, bounds_5000):
        result = allocate(sample_profile, uniform_weights(), 4000.0, bounds_5000)
        assert result.total == pytest.approx(4000.0)
        assert result.target_total == 4000.0

    def test_pin_produces_bound_clamped_warning(self, sample_profile, bounds_5000):
        result = allocate(sample_profile, uniform_weights(), 4000.0, bounds_5000)
        assert _kinds(result) == ["bound_clamped"]
        assert result.warnings[0].category is H
        assert "minimum safe spending level" in result.warnings[0].message

    def test_explanations_present(self, sample_profile, bounds_5000):
        result = allocate(sample_profile, uniform_weights(), 4000.0, bounds_5000)
        assert set(result.explanations) == set(SpendingCategory)
        assert "Held at the minimum safe level" in result.explanations[H]
        assert "reduced" in result.explanations[F]


# ── Multi-pass ────────────────────────────────────────────────────────────────

class TestRedistributionPasses:
    def test_second_pass_settles(self, sample_profile, bounds_5000):
        # Uniform 3000 → 500 each.  Housing pins at min (-750); spreading that
        # pushes food and transportation below their minimums as well; the
        # last three share the rest.
        result = allocate(sample_profile, uniform_weights(), 3000.0, bounds_5000)
        assert result.pinned == {H: "min", F: "min", T: "min"}
        assert result.amounts[H] == 1250.0
        assert result.amounts[F] == 500.0
        assert result.amounts[T] == 400.0
        for category in (E, HC, O):
            assert result.amounts[category] == 283.0
        assert abs(result.total - 3000.0) <= 3
        assert "total_drift" not in _kinds(result)

    def test_min_pins_reenter_until_total_settles(self, sample_profile, bounds_5000):
        # Uniform 2810 sits 10 above Σ min_allowed.  Everything but
        # entertainment ends at its minimum and entertainment takes the rest.
        result = allocate(sample_profile, uniform_weights(), 2810.0, bounds_5000)
        assert "total_drift" not in _kinds(result)
        assert result.amounts[E] == 160.0
        assert E not in result.pinned
        assert result.pinned == {H: "min", F: "min", T: "min", HC: "min", O: "min"}
        assert result.total == pytest.approx(2810.0)

    def test_max_pinned_category_gives_back_to_minimums(self, sample_profile, bounds_5000):
        # Housing-heavy weights: housing caps at 2250, which drags food and
        # transportation up to their minimums; the three light categories
        # share what is left evenly.
        weights = {c: 2.0 for c in SpendingCategory}
        weights[H] = 90.0
        result = allocate(sample_profile, weights, 4000.0, bounds_5000)
        assert "total_drift" not in _kinds(result)
        assert result.pinned == {H: "max", F: "min", T: "min"}
        assert result.amounts[H] == 2250.0
        assert result.amounts[F] == 500.0
        assert result.amounts[T] == 400.0
        for category in (E, HC, O):
            assert result.amounts[category] == 283.0
        assert abs(result.total - 4000.0) <= 3

    def test_zero_weight_categories_take_overflow(self, sample_profile, bounds_5000):
        weights = {c: 0.0 for c in SpendingCategory}
        weights[H] = 1.0
        result = allocate(sample_profile, weights, 4000.0, bounds_5000)
        # Housing caps at 2250 with the rest at their minimums (3800 total);
        # the second pass spreads the last 200 over the zero-weight five.
        assert result.amounts[H] == 2250.0
        assert result.amounts[F] == 500.0
        assert result.amounts[T] == 400.0
        for category in (E, HC, O):
            assert result.amounts[category] == 283.0
        assert result.pinned == {H: "max", F: "min", T: "min"}
        assert "total_drift" not in _kinds(result)

    def test_single_pass_leaves_overflow_as_drift(self, sample_profile, bounds_5000):
        config = AppConfig(allocator=AllocatorConfig(max_redistribution_passes=1))
        weights = {c: 0.0 for c in SpendingCategory}
        weights[H] = 1.0
        result = allocate(sample_profile, weights, 4000.0, bounds_5000, config)
        assert result.total == pytest.approx(3800.0)
        assert "total_drift" in _kinds(result)

    def test_target_above_maximums_reported(self, sample_profile, bounds_5000):
        result = allocate(sample_profile, uniform_weights(), 7300.0, bounds_5000)
        assert result.amounts == pytest.approx(bounds_5000.max_allowed)
        assert set(result.pinned.values()) == {"max"}
        assert "total_drift" in _kinds(result)

    def test_zero_passes_configured(self, sample_profile, bounds_5000):
        config = AppConfig(allocator=AllocatorConfig(max_redistribution_passes=0))
        result = allocate(sample_profile, uniform_weights(), 4000.0, bounds_5000, config)
        # Housing pins, nothing is redistributed.
        assert result.amounts[F] == pytest.approx(667.0)
        assert "total_drift" in _kinds(result)

    def test_max_pin_frees_budget(self, sample_profile, bounds_5000):
        weights = {c: 0.0 for c in SpendingCategory}
        weights[H] = 1.0
        weights[F] = 1.0
        result = allocate(sample_profile, weights, 4000.0, bounds_5000)
        # Ideal 2000 each: food caps at 1250 (+750), the zero-weight
        # categories pin at their minimums (-1050), and housing, the only
        # free category, absorbs the -300 difference.
        assert result.pinned[F] == "max"
        assert H not in result.pinned
        assert result.amounts[F] == 1250.0
        assert result.amounts[H] == 1700.0
        assert result.amounts[T] == 400.0
        assert result.total == pytest.approx(4000.0)


# ── Properties ────────────────────────────────────────────────────────────────

class TestProperties:
    @pytest.mark.parametrize("seed", range(20))
    def test_amounts_within_bounds(self, seed, sample_profile):
        rng = random.Random(seed)
        salary = rng.uniform(1500.0, 20000.0)
        bounds = compute_bounds(salary)
        profile = SpendingProfile(
            salary=salary,
            amounts={c: sample_profile.amounts[c] for c in SpendingCategory},
        )
        weights = {c: rng.uniform(0.0, 1.0) for c in SpendingCategory}
        target = rng.uniform(bounds.min_total, salary)

        result = allocate(profile, weights, target, bounds)

        for category in SpendingCategory:
            assert bounds.min_allowed[category] - 0.5 <= result.amounts[category]
            assert result.amounts[category] <= bounds.max_allowed[category] + 0.5

    @pytest.mark.parametrize("seed", range(30))
    def test_total_conserved_within_bounds(self, seed, sample_profile, bounds_5000):
        rng = random.Random(seed)
        weights = {c: rng.choice([0.0, rng.uniform(0.1, 1.0)]) for c in SpendingCategory}
        weights[H] = rng.uniform(0.1, 100.0)
        target = rng.uniform(bounds_5000.min_total, bounds_5000.max_total)

        result = allocate(sample_profile, weights, target, bounds_5000)

        assert "total_drift" not in _kinds(result)
        assert abs(result.total - target) <= 0.5 * len(SpendingCategory)

    @pytest.mark.parametrize("seed", range(30))
    def test_raising_weight_never_lowers_amount(self, seed, sample_profile):
        rng = random.Random(seed)
        config = AppConfig(allocator=AllocatorConfig(rounding_unit=0.01))
        salary = rng.uniform(1500.0, 20000.0)
        bounds = compute_bounds(salary)
        profile = SpendingProfile(salary=salary, amounts=dict(sample_profile.amounts))
        raised = rng.choice(list(SpendingCategory))
        weights = {c: rng.choice([0.0, rng.uniform(0.05, 1.0)]) for c in SpendingCategory}
        weights[raised] = rng.uniform(0.05, 1.0)
        target = rng.uniform(bounds.min_total, bounds.max_total + 500.0)

        before = allocate(profile, weights, target, bounds, config)
        heavier = dict(weights)
        heavier[raised] *= rng.uniform(1.1, 5.0)
        after = allocate(profile, heavier, target, bounds, config)

        assert after.amounts[raised] >= before.amounts[raised] - 0.01

    def test_monotone_in_weight(self, sample_profile, bounds_5000):
        previous = -1.0
        for food_weight in (0.5, 1.0, 2.0, 4.0, 8.0):
            weights = {c: 1.0 for c in SpendingCategory}
            weights[F] = food_weight
            result = allocate(sample_profile, weights, 4000.0, bounds_5000)
            assert result.amounts[F] >= previous
            previous = result.amounts[F]

    def test_idempotent(self, sample_profile, bounds_5000):
        weights = {c: float(i + 1) for i, c in enumerate(SpendingCategory)}
        a = allocate(sample_profile, weights, 4200.0, bounds_5000)
        b = allocate(sample_profile, weights, 4200.0, bounds_5000)
        assert a == b

    def test_inputs_not_mutated(self, sample_profile, bounds_5000):
        weights = {c: 1.0 for c in SpendingCategory}
        allocate(sample_profile, weights, 4000.0, bounds_5000)
        assert weights == {c: 1.0 for c in SpendingCategory}
        assert sample_profile.total == pytest.approx(4750.0)


# ── Errors ────────────────────────────────────────────────────────────────────

class TestErrors:
    def test_infeasible_target(self):
        bounds = compute_bounds(3000.0)
        profile = SpendingProfile(salary=3000.0, amounts={c: 400.0 for c in SpendingCategory})
        with pytest.raises(InfeasibleError) as exc_info:
            allocate(profile, uniform_weights(), 1500.0, bounds)
        assert exc_info.value.min_total == pytest.approx(1680.0)
        assert exc_info.value.max_monthly_savings == pytest.approx(1320.0)

    @pytest.mark.parametrize("target", [-1.0, float("inf"), float("nan")])
    def test_invalid_target(self, sample_profile, bounds_5000, target):
        with pytest.raises(InvalidInputError, match="target_total_spend"):
            allocate(sample_profile, uniform_weights(), target, bounds_5000)

    def test_invalid_weights(self, sample_profile, bounds_5000):
        weights = {c: 1.0 for c in SpendingCategory}
        weights[E] = -1.0
        with pytest.raises(InvalidInputError):
            allocate(sample_profile, weights, 4000.0, bounds_5000)
