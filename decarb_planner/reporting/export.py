"""
Plan export: CSV and JSON output for single and batch planning runs.

All functions are pure I/O.  They consume engine results already in memory
and write one file each, returning the written ``Path``.

Output files (written by ``plan`` / ``bulk-plan``)
--------------------------------------------------
  data/outputs/plans/
    plans_{run_date}.csv          -- one row per company plan
    plans_{run_date}.json         -- plans with per-measure allocation detail
    allocations_{run_date}.csv    -- one row per (company, measure, source) draw

CSV exports are flat so they load directly in a spreadsheet.
"""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Sequence
from datetime import date
from pathlib import Path

from decarb_planner.planning.engine import CompanyPlanResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1"

PLAN_FIELDNAMES = [
    "company_id", "company_name", "generated_by", "committed", "released_funding",
    "selected_measures", "selected_funding",
    "total_reduction", "total_investment", "total_funding", "funding_gap",
    "coverage_ratio", "reduction_percentage", "projected_intensity",
    "reached_target", "created_at",
]

ALLOCATION_FIELDNAMES = [
    "company_id", "measure_id", "investment", "funding_id", "amount",
    "measure_covered", "measure_shortfall", "required_funding_met",
]


def plan_record(result: CompanyPlanResult) -> dict:
    """Flatten one company result into a CSV-ready row."""
    plan = result.plan
    return {
        "company_id":           plan.company_id,
        "company_name":         plan.company_name,
        "generated_by":         plan.generated_by,
        "committed":            result.committed,
        "released_funding":     round(result.released_funding, 2),
        "selected_measures":    ";".join(plan.selected_measures),
        "selected_funding":     ";".join(plan.selected_funding),
        "total_reduction":      plan.total_reduction,
        "total_investment":     plan.total_investment,
        "total_funding":        plan.total_funding,
        "funding_gap":          round(plan.funding_gap, 2),
        "coverage_ratio":       plan.coverage_ratio,
        "reduction_percentage": plan.reduction_percentage,
        "projected_intensity":  "" if plan.projected_intensity is None else plan.projected_intensity,
        "reached_target":       "" if plan.reached_target is None else plan.reached_target,
        "created_at":           plan.created_at.isoformat(),
    }


def allocation_records(result: CompanyPlanResult) -> list[dict]:
    """One row per allocation line; measures with no funding get one empty row."""
    rows: list[dict] = []
    for ma in result.allocation.measures:
        base = {
            "company_id":           result.profile.company_id,
            "measure_id":           ma.measure_id,
            "investment":           ma.investment,
            "measure_covered":      round(ma.covered, 2),
            "measure_shortfall":    round(ma.shortfall, 2),
            "required_funding_met": "" if ma.required_funding_met is None else ma.required_funding_met,
        }
        if not ma.allocations:
            rows.append({**base, "funding_id": "", "amount": 0.0})
            continue
        for a in ma.allocations:
            rows.append({**base, "funding_id": a.funding_id, "amount": round(a.amount, 2)})
    return rows


def _write_csv(rows: list[dict], path: Path, fieldnames: list[str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    return path


def write_plans_csv(
    results: Sequence[CompanyPlanResult],
    output_dir: Path,
    run_date: date,
) -> Path:
    """Write one row per company plan, in processing order.

    Args:
        results:    Engine results to export.
        output_dir: Target directory (created if missing).
        run_date:   Date label for the filename.

    Returns:
        Path to the written CSV file.
    """
    csv_path = output_dir / f"plans_{run_date.isoformat()}.csv"
    _write_csv([plan_record(r) for r in results], csv_path, PLAN_FIELDNAMES)
    logger.info("Plans CSV written: %s (%d rows)", csv_path, len(results))
    return csv_path


def write_allocations_csv(
    results: Sequence[CompanyPlanResult],
    output_dir: Path,
    run_date: date,
) -> Path:
    """Write every allocation line of every company to one CSV file."""
    rows = [row for r in results for row in allocation_records(r)]
    csv_path = output_dir / f"allocations_{run_date.isoformat()}.csv"
    _write_csv(rows, csv_path, ALLOCATION_FIELDNAMES)
    logger.info("Allocations CSV written: %s (%d rows)", csv_path, len(rows))
    return csv_path


def write_plans_json(
    results: Sequence[CompanyPlanResult],
    output_dir: Path,
    run_date: date,
    reference_date: date,
    cancelled: bool = False,
) -> Path:
    """Write plans plus per-measure allocation detail to a structured JSON file.

    Args:
        results:        Engine results to export.
        output_dir:     Target directory (created if missing).
        run_date:       Date label for the filename.
        reference_date: Date funding deadlines were compared against.
        cancelled:      Whether the batch was cancelled early.

    Returns:
        Path to the written JSON file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"plans_{run_date.isoformat()}.json"

    payload: dict = {
        "schema_version": SCHEMA_VERSION,
        "reference_date": reference_date.isoformat(),
        "cancelled":      cancelled,
        "plans":          [],
    }
    for r in results:
        payload["plans"].append(
            {
                **r.plan.model_dump(mode="json"),
                "committed": r.committed,
                "released_funding": round(r.released_funding, 2),
                "blocked": {b.measure.id: b.reason for b in r.eligibility.blocked},
                "warnings": [
                    {"measure_id": w.measure_id, "message": w.message}
                    for w in r.eligibility.warnings
                ],
                "funding_advisories": [
                    {
                        "measure_id":     adv.measure_id,
                        "category":       adv.category,
                        "minimum_amount": adv.minimum_amount,
                        "available":      round(adv.available, 2),
                        "likely_met":     adv.likely_met,
                    }
                    for adv in r.candidates.advisories
                ],
                "measures": [
                    {
                        "measure_id":           ma.measure_id,
                        "investment":           ma.investment,
                        "covered":              round(ma.covered, 2),
                        "shortfall":            round(ma.shortfall, 2),
                        "required_funding_met": ma.required_funding_met,
                        "allocations": [
                            {"funding_id": a.funding_id, "amount": round(a.amount, 2)}
                            for a in ma.allocations
                        ],
                    }
                    for ma in r.allocation.measures
                ],
            }
        )

    with json_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info("Plans JSON written: %s (%d plans)", json_path, len(results))
    return json_path
