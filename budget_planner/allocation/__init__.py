"""
Budget allocation engine: builds, allocates, evaluates and refines monthly
budgets under per-category spending bounds.

Modules
-------
errors    : InvalidInputError, InfeasibleError, RefinementLimitExceeded.
bounds    : compute_bounds() + check_feasibility() + suggest_timeline().
profile   : build_spending_profile() — synthetic current spend, seeded.
weights   : normalize_weights() + priority_weights() + pareto_weights().
allocator : allocate() — bounded two-pass constrained proportional split.
evaluator : parse_goal() + evaluate() + category_status().
refiner   : refine() — applies increase/decrease intents to an allocation.

All functions are pure: no I/O, no shared state.  Session state (history,
attempt counting) lives in ``budget_planner.planner.session``.
"""
