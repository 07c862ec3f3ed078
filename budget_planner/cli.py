"""
Budget Planner — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Run the planning session.
  5. Report result to stdout.

Install and run::

    pip install -e .
    budget-planner --help
    budget-planner categories
    budget-planner validate-config
    budget-planner plan --salary 5000 --target 6000 --timeline 12
    budget-planner plan --salary 5000 --target 6000 --timeline 12 \\
        --mode weighted --priority food=80 --priority entertainment=20 \\
        --feedback "more food" --feedback "less entertainment"
"""

from __future__ import annotations

import json
import random
from typing import Optional

import typer

app = typer.Typer(
    name="budget-planner",
    help="Budget Planner — constraint-respecting monthly budgets for a savings goal.",
    add_completion=False,
)

_MODES = ("pareto", "weighted")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from pathlib import Path

    from budget_planner.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from budget_planner.utils.logging import configure_logging
    configure_logging(config.logging)


def _parse_priorities(values: list[str]) -> dict[str, float]:
    """Parse ``CATEGORY=N`` pairs; exits with code 1 on malformed input."""
    priorities: dict[str, float] = {}
    for raw in values:
        name, sep, number = raw.partition("=")
        if not sep:
            typer.echo(f"[ERROR] Priority must look like CATEGORY=N, got '{raw}'.", err=True)
            raise typer.Exit(code=1)
        try:
            priorities[name.strip().lower()] = float(number)
        except ValueError:
            typer.echo(f"[ERROR] Priority value for '{name}' is not a number: '{number}'.", err=True)
            raise typer.Exit(code=1)
    return priorities


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("plan")
def plan(
    salary: float = typer.Option(..., "--salary", help="Monthly take-home salary."),
    target: float = typer.Option(..., "--target", help="Savings goal amount."),
    timeline: int = typer.Option(..., "--timeline", help="Months to reach the goal."),
    goal_name: Optional[str] = typer.Option(None, "--goal", help="Optional goal label."),
    mode: str = typer.Option(
        "pareto",
        "--mode",
        help="Planning mode: 'pareto' (cut the biggest categories) or 'weighted' (use --priority).",
    ),
    priority: list[str] = typer.Option(
        [],
        "--priority",
        "-p",
        help="Category priority 0-100 for weighted mode, e.g. food=80. Repeatable.",
    ),
    feedback: list[str] = typer.Option(
        [],
        "--feedback",
        "-f",
        help="Refinement feedback, e.g. 'more food'. Repeatable; applied in order.",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Seed for the synthetic spending profile (default: config profile.seed).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the session history as JSON."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Build a budget plan for a savings goal, optionally refined by feedback.

    Exits with code 1 on invalid input or an infeasible goal.
    """
    from budget_planner.allocation.errors import InfeasibleError, InvalidInputError
    from budget_planner.allocation.evaluator import parse_goal
    from budget_planner.planner.session import PlanningSession
    from budget_planner.reporting.formatters import format_plan_step

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if mode not in _MODES:
        typer.echo(f"[ERROR] --mode must be one of {list(_MODES)}, got '{mode}'.", err=True)
        raise typer.Exit(code=1)

    priorities = _parse_priorities(priority)
    if priorities and mode != "weighted":
        typer.echo("[WARN] --priority is ignored in pareto mode.", err=True)

    rng = random.Random(seed if seed is not None else config.profile.seed)

    try:
        goal = parse_goal(salary, target, timeline, name=goal_name)
        session = PlanningSession(goal, config=config, rng=rng)
        if mode == "pareto":
            steps = [session.plan_pareto()]
        else:
            steps = [session.plan_weighted(priorities)]
        for text in feedback:
            steps.append(session.refine_text(text))
    except (InvalidInputError, InfeasibleError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if as_json:
        payload = {
            "goal": goal.model_dump(mode="json"),
            "profile": session.profile.model_dump(mode="json"),
            "steps": [step.model_dump(mode="json") for step in steps],
            "refinements_remaining": session.refinements_remaining,
        }
        typer.echo(json.dumps(payload, indent=2))
        return

    for step in steps:
        typer.echo(format_plan_step(step, goal, session.profile))
    typer.echo("")
    typer.echo(f"  Refinements remaining: {session.refinements_remaining}")


@app.command("categories")
def categories() -> None:
    """List spending categories and their realistic salary-fraction bands."""
    from budget_planner.reporting.formatters import format_bands
    from budget_planner.taxonomy.category_taxonomy import DEFAULT_BANDS

    typer.echo(format_bands(DEFAULT_BANDS))


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Profile seed:        {config.profile.seed}")
    typer.echo(f"  Rounding unit:       {config.allocator.rounding_unit}")
    typer.echo(f"  Refinement step:     {config.refinement.step:.0%}")
    typer.echo(f"  Max refinements:     {config.refinement.max_attempts}")
    typer.echo(f"  History limit:       {config.refinement.history_limit}")
    typer.echo(f"  Low savings rate:    {config.goal.low_savings_rate:.0%}")
    typer.echo(f"  Log level:           {config.logging.level}")
    typer.echo(f"  Debug mode:          {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
