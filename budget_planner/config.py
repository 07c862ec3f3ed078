"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local overrides (gitignored)
  4. Environment variables        — ``BUDGET_PLANNER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Library functions accept an optional ``AppConfig`` and fall back to
``AppConfig()`` defaults, so the engine is usable without any config file.
The CLI always loads one.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class ProfileConfig(BaseModel):
    """Synthetic spending profile generation."""

    model_config = ConfigDict(frozen=True)

    seed: int = 42
    perturbation: float = 0.20
    spend_ratio_min: float = 0.92
    spend_ratio_max: float = 0.97

    @field_validator("perturbation")
    @classmethod
    def validate_perturbation(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"perturbation must be in [0.0, 1.0), got {v}.")
        return v

    @model_validator(mode="after")
    def validate_spend_ratio(self) -> "ProfileConfig":
        if not 0.0 < self.spend_ratio_min <= self.spend_ratio_max <= 1.0:
            raise ValueError(
                "spend_ratio range must satisfy 0 < min <= max <= 1, got "
                f"[{self.spend_ratio_min}, {self.spend_ratio_max}]."
            )
        return self


class AllocatorConfig(BaseModel):
    """Constrained allocator parameters."""

    model_config = ConfigDict(frozen=True)

    rounding_unit: float = 1.0
    max_redistribution_passes: int = 2

    @field_validator("rounding_unit")
    @classmethod
    def validate_rounding_unit(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"rounding_unit must be positive, got {v}.")
        return v

    @field_validator("max_redistribution_passes")
    @classmethod
    def validate_passes(cls, v: int) -> int:
        if not 0 <= v <= 2:
            raise ValueError(f"max_redistribution_passes must be in [0, 2], got {v}.")
        return v


class RefinementConfig(BaseModel):
    """Feedback refinement settings."""

    model_config = ConfigDict(frozen=True)

    step: float = 0.15
    max_attempts: int = 5
    history_limit: int = 6

    @field_validator("step")
    @classmethod
    def validate_step(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"step must be in (0.0, 1.0), got {v}.")
        return v

    @field_validator("max_attempts", "history_limit")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"Value must be >= 1, got {v}.")
        return v


class GoalConfig(BaseModel):
    """Goal evaluation thresholds."""

    model_config = ConfigDict(frozen=True)

    low_savings_rate: float = 0.10
    pareto_share: float = 0.80

    @field_validator("low_savings_rate", "pareto_share")
    @classmethod
    def validate_fraction(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"Value must be in (0.0, 1.0), got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    profile: ProfileConfig = ProfileConfig()
    allocator: AllocatorConfig = AllocatorConfig()
    refinement: RefinementConfig = RefinementConfig()
    goal: GoalConfig = GoalConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Pass --config or create config/default.toml first."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply BUDGET_PLANNER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply BUDGET_PLANNER_* env vars to the raw config dict.

    Supported overrides:
      BUDGET_PLANNER_LOG_LEVEL        → raw["logging"]["level"]
      BUDGET_PLANNER_SEED             → raw["profile"]["seed"]
      BUDGET_PLANNER_REFINEMENT_STEP  → raw["refinement"]["step"]
      BUDGET_PLANNER_DEBUG            → raw["debug"]
    """
    if log_level := os.environ.get("BUDGET_PLANNER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if seed := os.environ.get("BUDGET_PLANNER_SEED"):
        raw.setdefault("profile", {})["seed"] = int(seed)

    if step := os.environ.get("BUDGET_PLANNER_REFINEMENT_STEP"):
        raw.setdefault("refinement", {})["step"] = float(step)

    if debug := os.environ.get("BUDGET_PLANNER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        profile=ProfileConfig(**raw.get("profile", {})),
        allocator=AllocatorConfig(**raw.get("allocator", {})),
        refinement=RefinementConfig(**raw.get("refinement", {})),
        goal=GoalConfig(**raw.get("goal", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
