"""
Decarbonization planner CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load and validate catalogs / profiles.
  4. Run the planning engine.
  5. Report result to stdout.

Install and run::

    pip install -e .
    decarb-planner --help
    decarb-planner validate-config
    decarb-planner check-catalog
    decarb-planner plan --company acme-metal --reference-date 2026-01-15
    decarb-planner bulk-plan --only-target
    decarb-planner bulk-plan --commit acme-metal --commit quinta-agro
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="decarb-planner",
    help="Decarbonization action-plan recommendation and funding allocation CLI.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from decarb_planner.config import load_config

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
    from decarb_planner.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_catalogs_or_exit(config):
    """Load the measure and funding catalogs named in config."""
    from decarb_planner.catalog.loader import load_funding_catalog, load_measure_catalog
    from decarb_planner.errors import CatalogError

    try:
        measures = load_measure_catalog(Path(config.catalog.measures_file))
        funding = load_funding_catalog(Path(config.catalog.funding_file))
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] Catalog file not found: {exc}", err=True)
        raise typer.Exit(code=1)
    except CatalogError as exc:
        typer.echo(f"[ERROR] Invalid catalog {exc.path or ''}:\n{exc}", err=True)
        raise typer.Exit(code=1)
    return measures, funding


def _load_profiles_or_exit(profiles_file: Path):
    from decarb_planner.catalog.loader import load_profiles
    from decarb_planner.errors import CatalogError, InvalidProfileError

    try:
        return load_profiles(profiles_file)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] Profiles file not found: {exc}", err=True)
        raise typer.Exit(code=1)
    except InvalidProfileError as exc:
        typer.echo(f"[ERROR] Invalid company profile: {exc}", err=True)
        raise typer.Exit(code=1)
    except CatalogError as exc:
        typer.echo(f"[ERROR] Invalid profiles file: {exc}", err=True)
        raise typer.Exit(code=1)


def _reference_date_or_exit(value: Optional[str]):
    from decarb_planner.utils.time_utils import parse_reference_date

    try:
        return parse_reference_date(value)
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)


# ── Commands ──────────────────────────────────────────────────────────────────

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
    typer.echo(f"  Measures file:     {config.catalog.measures_file}")
    typer.echo(f"  Funding file:      {config.catalog.funding_file}")
    typer.echo(f"  Profiles file:     {config.catalog.profiles_file}")
    typer.echo(f"  Max measures:      {config.planning.max_measures_per_company}")
    typer.echo(f"  Target handling:   {config.planning.target_handling.value}")
    typer.echo(f"  Plans dir:         {config.output.plans_dir}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("check-catalog")
def check_catalog(
    reference_date: Optional[str] = typer.Option(
        None,
        "--reference-date",
        help="Date funding deadlines are checked against (YYYY-MM-DD). Defaults to today (UTC).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Load both catalogs, print their contents and any consistency warnings."""
    from decarb_planner.planning.measure_filter import catalog_warnings
    from decarb_planner.reporting.formatters import format_catalog_summary

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    ref = _reference_date_or_exit(reference_date)

    measures, funding = _load_catalogs_or_exit(config)
    typer.echo(format_catalog_summary(measures, funding, ref))

    warnings = catalog_warnings(
        measures,
        config.catalog.known_infrastructure_keys,
        config.catalog.known_funding_categories,
    )
    typer.echo("")
    if warnings:
        for w in warnings:
            typer.echo(f"  [WARN] {w.measure_id}: {w.message}")
        typer.echo(f"[WARN] {len(warnings)} measure(s) will be excluded from planning.")
    else:
        typer.echo("[OK] Catalog consistent.")


@app.command("plan")
def plan(
    company: str = typer.Option(
        ...,
        "--company",
        help="Company id to plan for.",
    ),
    reference_date: Optional[str] = typer.Option(
        None,
        "--reference-date",
        help="Date funding deadlines are checked against (YYYY-MM-DD). Defaults to today (UTC).",
    ),
    profiles_file: Optional[str] = typer.Option(
        None,
        "--profiles",
        help="Company profiles JSON file. Defaults to config.catalog.profiles_file.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the eligibility report, funding allocation and action plan for one company."""
    from decarb_planner.planning.engine import PlanningEngine
    from decarb_planner.reporting.formatters import format_company_result
    from decarb_planner.utils.time_utils import utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    ref = _reference_date_or_exit(reference_date)

    measures, funding = _load_catalogs_or_exit(config)
    profiles = _load_profiles_or_exit(Path(profiles_file or config.catalog.profiles_file))

    profile = next((p for p in profiles if p.company_id == company), None)
    if profile is None:
        typer.echo(f"[ERROR] Company '{company}' not found in profiles.", err=True)
        raise typer.Exit(code=1)

    engine = PlanningEngine(measures, funding, config=config)
    result = engine.plan_company(profile, reference_date=ref, created_at=utcnow())

    typer.echo(f"Reference date: {ref.isoformat()}")
    typer.echo(format_company_result(result))
    typer.echo("")
    typer.echo("[OK] Plan generated.")


@app.command("bulk-plan")
def bulk_plan(
    reference_date: Optional[str] = typer.Option(
        None,
        "--reference-date",
        help="Date funding deadlines are checked against (YYYY-MM-DD). Defaults to today (UTC).",
    ),
    profiles_file: Optional[str] = typer.Option(
        None,
        "--profiles",
        help="Company profiles JSON file. Defaults to config.catalog.profiles_file.",
    ),
    only_target: bool = typer.Option(
        False,
        "--only-target",
        help="Commit funding only for plans that reach the sector target.",
    ),
    commit: Optional[list[str]] = typer.Option(
        None,
        "--commit",
        help="Review mode: commit funding only for this company id (repeatable).",
    ),
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        help="Directory for plan reports. Defaults to config.output.plans_dir.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Plan every company in profile-file order against shared funding budgets.

    Companies that are not committed (``--only-target`` misses, or ids not
    passed with ``--commit``) get an unfunded plan and release their budget
    to the companies after them.

    Writes plans_{date}.csv, plans_{date}.json and allocations_{date}.csv.
    """
    from decarb_planner.planning.engine import PlanningEngine
    from decarb_planner.reporting.export import (
        write_allocations_csv,
        write_plans_csv,
        write_plans_json,
    )
    from decarb_planner.reporting.formatters import format_batch_summary
    from decarb_planner.taxonomy.measure_taxonomy import TargetHandling
    from decarb_planner.utils.time_utils import utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    ref = _reference_date_or_exit(reference_date)

    measures, funding = _load_catalogs_or_exit(config)
    profiles = _load_profiles_or_exit(Path(profiles_file or config.catalog.profiles_file))

    if only_target and commit:
        typer.echo("[ERROR] --only-target and --commit cannot be combined.", err=True)
        raise typer.Exit(code=1)
    if commit:
        unknown = sorted(set(commit) - {p.company_id for p in profiles})
        if unknown:
            typer.echo(
                f"[ERROR] Unknown company id(s) in --commit: {', '.join(unknown)}", err=True
            )
            raise typer.Exit(code=1)

    handling: TargetHandling | None = None
    if only_target:
        handling = TargetHandling.ONLY_TARGET
    elif commit:
        handling = TargetHandling.REVIEW

    now = utcnow()

    engine = PlanningEngine(measures, funding, config=config)
    batch = engine.plan_batch(
        profiles,
        reference_date=ref,
        created_at=now,
        target_handling=handling,
        commit_ids=commit or None,
    )

    out_dir = Path(output_dir or config.output.plans_dir)
    run_date = now.date()
    plans_csv = write_plans_csv(batch.results, out_dir, run_date)
    plans_json = write_plans_json(
        batch.results, out_dir, run_date, reference_date=ref, cancelled=batch.cancelled
    )
    alloc_csv = write_allocations_csv(batch.results, out_dir, run_date)

    typer.echo(f"Reference date: {ref.isoformat()}")
    typer.echo(format_batch_summary(batch))
    typer.echo("")
    typer.echo(f"  Plans CSV:       {plans_csv}")
    typer.echo(f"  Plans JSON:      {plans_json}")
    typer.echo(f"  Allocations CSV: {alloc_csv}")
    typer.echo("[OK] Bulk plan complete.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
