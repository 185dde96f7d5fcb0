"""
ASCII terminal formatters for CLI commands.

All formatters accept engine results or catalogs and return plain
multi-line strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Money is shown in whole euros; ratios as percentages.
"""

from __future__ import annotations

from datetime import date

from decarb_planner.catalog.loader import FundingCatalog, MeasureCatalog
from decarb_planner.models.plan import ActionPlan
from decarb_planner.planning.engine import BatchResult, CompanyPlanResult
from decarb_planner.planning.funding_filter import FundingAdvisory
from decarb_planner.planning.measure_filter import EligibilityReport


def _eur(amount: float) -> str:
    return f"{amount:,.0f} EUR"


def _target(reached: bool | None) -> str:
    if reached is None:
        return "unknown"
    return "yes" if reached else "no"


# ── Eligibility ───────────────────────────────────────────────────────────────


def format_eligibility_report(report: EligibilityReport) -> str:
    """Applicable measures, then blocked measures with reasons, then warnings."""
    lines: list[str] = []
    lines.append(f"  Applicable measures ({len(report.applicable)}):")
    if not report.applicable:
        lines.append("    (none)")
    for m in report.applicable:
        lines.append(
            f"    {m.id:<14}  {m.priority.value:<6}  {m.emission_reduction:>7.1f} t  "
            f"{_eur(m.investment):>14}  {m.name}"
        )

    if report.blocked:
        lines.append(f"  Blocked measures ({len(report.blocked)}):")
        for b in report.blocked:
            lines.append(f"    {b.measure.id:<14}  {b.reason}")

    if report.warnings:
        lines.append(f"  Catalog warnings ({len(report.warnings)}):")
        for w in report.warnings:
            lines.append(f"    [WARN] {w.measure_id}: {w.message}")
    return "\n".join(lines)


# ── Allocation ────────────────────────────────────────────────────────────────


def format_allocation_table(result: CompanyPlanResult) -> str:
    """Per-measure allocation lines with coverage and shortfall.

    Example::

        Measure         Investment       Covered     Shortfall  Sources
        ---------------------------------------------------------------
        energy-4         15,000 EUR    15,000 EUR         0 EUR  subsidy-3, financing-2
    """
    lines: list[str] = []
    header = (
        f"    {'Measure':<14}  {'Investment':>14}  {'Covered':>14}  "
        f"{'Shortfall':>14}  Sources"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))

    if not result.allocation.measures:
        lines.append("    (no measures selected)")
        return "\n".join(lines)

    for ma in result.allocation.measures:
        sources = ", ".join(
            f"{a.funding_id} ({a.amount:,.0f})" for a in ma.allocations
        ) or "-"
        lines.append(
            f"    {ma.measure_id:<14}  {_eur(ma.investment):>14}  "
            f"{_eur(ma.covered):>14}  {_eur(ma.shortfall):>14}  {sources}"
        )
        if ma.required_funding_met is False:
            lines.append("      [WARN] required funding minimum not met")
    return "\n".join(lines)


def format_funding_advisories(advisories: list[FundingAdvisory]) -> str:
    """Funding hints checked before allocation, one line per hinted measure."""
    lines = [f"  Funding hints ({len(advisories)}):"]
    for adv in advisories:
        status = "likely met" if adv.likely_met else "[WARN] unlikely to be met"
        lines.append(
            f"    {adv.measure_id:<14}  {adv.category:<9}  min {_eur(adv.minimum_amount):>12}  "
            f"available {_eur(adv.available):>12}  {status}"
        )
    return "\n".join(lines)


def format_plan_summary(
    plan: ActionPlan,
    committed: bool = True,
    released_funding: float = 0.0,
) -> str:
    """Totals block for one action plan."""
    lines = [
        f"  Company:          {plan.company_id} {plan.company_name}".rstrip(),
        f"  Measures:         {', '.join(plan.selected_measures) or '(none)'}",
        f"  Funding sources:  {', '.join(plan.selected_funding) or '(none)'}",
        f"  Total reduction:  {plan.total_reduction:,.1f} t CO2e/yr",
        f"  Total investment: {_eur(plan.total_investment)}",
        f"  Total funding:    {_eur(plan.total_funding)} ({plan.coverage_ratio:.1%} coverage)",
        f"  Funding gap:      {_eur(plan.funding_gap)}",
        f"  Reduction share:  {plan.reduction_percentage:.1%}",
        f"  Reached target:   {_target(plan.reached_target)}",
    ]
    if not committed:
        lines.append("  [NOT COMMITTED] drawdowns were discarded")
        if released_funding > 0:
            lines.append(f"  Released funding: {_eur(released_funding)}")
    return "\n".join(lines)


def format_company_result(result: CompanyPlanResult) -> str:
    """Full single-company report: eligibility, allocation, totals."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Action Plan: {result.profile.company_id} ===")
    lines.append(format_eligibility_report(result.eligibility))
    lines.append("")
    lines.append("  Allocation:")
    lines.append(format_allocation_table(result))
    if result.candidates.advisories:
        lines.append("")
        lines.append(format_funding_advisories(result.candidates.advisories))
    lines.append("")
    lines.append(
        format_plan_summary(
            result.plan,
            committed=result.committed,
            released_funding=result.released_funding,
        )
    )
    return "\n".join(lines)


# ── Batch ─────────────────────────────────────────────────────────────────────


def format_batch_summary(batch: BatchResult) -> str:
    """One row per company plus batch totals."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Bulk Plan Summary ===")
    header = (
        f"    {'Company':<16}  {'Measures':>8}  {'Investment':>14}  "
        f"{'Funding':>14}  {'Coverage':>8}  {'Target':>7}  {'Committed':>9}"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))
    for r in batch.results:
        plan = r.plan
        lines.append(
            f"    {plan.company_id[:16]:<16}  {len(plan.selected_measures):>8}  "
            f"{_eur(plan.total_investment):>14}  {_eur(plan.total_funding):>14}  "
            f"{plan.coverage_ratio:>8.1%}  {_target(plan.reached_target):>7}  "
            f"{'yes' if r.committed else 'no':>9}"
        )
    if not batch.results:
        lines.append("    (no companies planned)")

    lines.append("")
    lines.append(f"  Companies planned:   {len(batch.results)}")
    lines.append(f"  Plans committed:     {len(batch.committed_plans)}")
    lines.append(f"  Reached target:      {len(batch.reached_target)}")
    lines.append(f"  Total investment:    {_eur(batch.total_investment)}")
    lines.append(f"  Committed funding:   {_eur(batch.total_funding)}")
    if batch.released_funding > 0:
        lines.append(f"  Released funding:    {_eur(batch.released_funding)}")
    lines.append(f"  Total reduction:     {batch.total_reduction:,.1f} t CO2e/yr")
    if batch.cancelled:
        lines.append("  [CANCELLED] batch stopped before all companies were planned")
    return "\n".join(lines)


# ── Catalog ───────────────────────────────────────────────────────────────────


def format_catalog_summary(
    measures: MeasureCatalog,
    funding: FundingCatalog,
    reference_date: date,
) -> str:
    """Catalog sizes and each funding source's status on ``reference_date``."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Catalog ===")
    lines.append(f"  Measures:        {len(measures)}")
    lines.append(f"  Funding sources: {len(funding)}")
    lines.append(f"  Reference date:  {reference_date.isoformat()}")
    lines.append("")
    for s in funding:
        if not s.currently_open:
            status = "closed"
        elif s.deadline is not None and s.deadline < reference_date:
            status = f"expired {s.deadline.isoformat()}"
        elif s.deadline is None:
            status = "open (rolling)"
        else:
            status = f"open until {s.deadline.isoformat()}"
        cap = f"{s.percentage:g}%" if s.percentage is not None else "flat"
        lines.append(
            f"    {s.id:<14}  {s.kind.value:<9}  {cap:>5}  "
            f"{_eur(s.remaining_budget):>14}  {status}"
        )
    return "\n".join(lines)
