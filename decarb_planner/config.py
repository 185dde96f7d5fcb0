"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``: committed static defaults
  2. ``config/local.toml``: optional local overrides (gitignored)
  3. ``.env``: local env overrides (gitignored)
  4. Environment variables with the ``DECARB_PLANNER_`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The planning engine and every CLI command receive an ``AppConfig`` instance,
never raw dicts or scattered env var lookups.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from decarb_planner.taxonomy.measure_taxonomy import FundingKind, TargetHandling

# ── Sub-config models ─────────────────────────────────────────────────────────


class CatalogConfig(BaseModel):
    """Reference data files and the vocabulary measures may reference.

    ``known_infrastructure_keys`` / ``known_funding_categories`` drive the
    catalog-consistency check: a measure referencing anything outside these
    lists is excluded with a warning.
    """

    model_config = ConfigDict(frozen=True)

    measures_file: str = "config/catalog/measures.json"
    funding_file: str = "config/catalog/funding.json"
    profiles_file: str = "config/profiles/companies.json"
    known_infrastructure_keys: list[str] = [
        "roof_area_m2", "parking_spaces", "fleet_vehicles", "grid_connection_kva",
    ]
    known_funding_categories: list[str] = [k.value for k in FundingKind]


class PlanningConfig(BaseModel):
    """Measure selection and batch commit policy."""

    model_config = ConfigDict(frozen=True)

    max_measures_per_company: int = 5
    target_handling: TargetHandling = TargetHandling.ALL

    @field_validator("max_measures_per_company")
    @classmethod
    def validate_max_measures(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_measures_per_company must be >= 0, got {v}.")
        return v


class ReductionConfig(BaseModel):
    """Reference-company heuristic for projecting emission reductions."""

    model_config = ConfigDict(frozen=True)

    reference_emissions: float = 100.0
    max_reduction_per_measure: float = 0.35
    max_total_reduction: float = 0.85

    @field_validator("reference_emissions")
    @classmethod
    def validate_reference(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"reference_emissions must be > 0, got {v}.")
        return v

    @field_validator("max_reduction_per_measure", "max_total_reduction")
    @classmethod
    def validate_share(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Reduction share must be in [0.0, 1.0], got {v}.")
        return v


class OutputConfig(BaseModel):
    """Where plan reports are written."""

    model_config = ConfigDict(frozen=True)

    plans_dir: str = "data/outputs/plans"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/planner.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration."""

    model_config = ConfigDict(frozen=True)

    catalog: CatalogConfig = CatalogConfig()
    planning: PlanningConfig = PlanningConfig()
    reduction: ReductionConfig = ReductionConfig()
    output: OutputConfig = OutputConfig()
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

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

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
    """Apply DECARB_PLANNER_* env vars to the raw config dict.

    Supported overrides:
      DECARB_PLANNER_LOG_LEVEL   → raw["logging"]["level"]
      DECARB_PLANNER_OUTPUT_DIR  → raw["output"]["plans_dir"]
      DECARB_PLANNER_DEBUG       → raw["debug"]
    """
    if log_level := os.environ.get("DECARB_PLANNER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if output_dir := os.environ.get("DECARB_PLANNER_OUTPUT_DIR"):
        raw.setdefault("output", {})["plans_dir"] = output_dir

    if debug := os.environ.get("DECARB_PLANNER_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        catalog=CatalogConfig(**raw.get("catalog", {})),
        planning=PlanningConfig(**raw.get("planning", {})),
        reduction=ReductionConfig(**raw.get("reduction", {})),
        output=OutputConfig(**raw.get("output", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
