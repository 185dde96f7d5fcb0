"""
Action plan aggregation: fold an ``AllocationResult`` into an ``ActionPlan``.

Totals
------
    total_reduction  = Σ emission_reduction of selected measures
    total_investment = Σ investment
    total_funding    = Σ allocated amounts
    coverage_ratio   = total_funding / total_investment   (0 if no investment)

``total_funding <= total_investment`` is asserted; a violation raises
``AllocationInvariantError`` because it can only come from a defect.

Target projection
-----------------
Reduction shares use the dashboard's reference-company heuristic::

    share(m)   = clamp(emission_reduction / reference_emissions,
                       0, max_reduction_per_measure)
    plan_share = min(Σ share(m), max_total_reduction)

    projected_intensity = emissions_per_revenue × (1 − plan_share)
    reached_target      = projected_intensity <= sector_average_intensity

``reached_target`` is ``None`` when either intensity is unknown.

The aggregator is pure: the caller supplies ``created_at``, so aggregating
the same allocation twice yields identical plans.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from decarb_planner.errors import AllocationInvariantError
from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.measure import Measure
from decarb_planner.models.plan import ActionPlan, PlanOrigin
from decarb_planner.planning.optimizer import AllocationResult

_EPS = 1e-6

DEFAULT_REFERENCE_EMISSIONS       = 100.0
DEFAULT_MAX_REDUCTION_PER_MEASURE = 0.35
DEFAULT_MAX_TOTAL_REDUCTION       = 0.85


def measure_reduction_share(
    measure: Measure,
    reference_emissions: float = DEFAULT_REFERENCE_EMISSIONS,
    max_reduction_per_measure: float = DEFAULT_MAX_REDUCTION_PER_MEASURE,
) -> float:
    """Share of a reference company's emissions one measure removes."""
    if reference_emissions <= 0:
        raise ValueError(f"reference_emissions must be > 0, got {reference_emissions}.")
    raw = measure.emission_reduction / reference_emissions
    return min(max(raw, 0.0), max_reduction_per_measure)


def plan_reduction_share(
    measures: Sequence[Measure],
    reference_emissions: float = DEFAULT_REFERENCE_EMISSIONS,
    max_reduction_per_measure: float = DEFAULT_MAX_REDUCTION_PER_MEASURE,
    max_total_reduction: float = DEFAULT_MAX_TOTAL_REDUCTION,
) -> float:
    total = sum(
        measure_reduction_share(m, reference_emissions, max_reduction_per_measure)
        for m in measures
    )
    return min(total, max_total_reduction)


def build_action_plan(
    profile: CompanyProfile,
    measures: Sequence[Measure],
    allocation: AllocationResult,
    created_at: datetime,
    generated_by: PlanOrigin = "engine",
    reference_emissions: float = DEFAULT_REFERENCE_EMISSIONS,
    max_reduction_per_measure: float = DEFAULT_MAX_REDUCTION_PER_MEASURE,
    max_total_reduction: float = DEFAULT_MAX_TOTAL_REDUCTION,
) -> ActionPlan:
    """Aggregate one company's allocation into an ``ActionPlan``.

    Args:
        profile:      Company the plan is for.
        measures:     The selected measures the allocation was computed for.
        allocation:   Optimizer output for those measures.
        created_at:   Timestamp stamped on the plan (caller-supplied).
        generated_by: ``"engine"`` or ``"bulk_wizard"``.
        reference_emissions, max_reduction_per_measure, max_total_reduction:
            Target projection parameters (see module docstring).

    Returns:
        Frozen ``ActionPlan``.

    Raises:
        AllocationInvariantError: If the allocation does not correspond to
            ``measures`` or funds more than the total investment.
    """
    by_id = {m.id: m for m in measures}
    allocated_ids = [ma.measure_id for ma in allocation.measures]
    if sorted(allocated_ids) != sorted(by_id):
        raise AllocationInvariantError(
            profile.company_id,
            f"allocation covers {sorted(allocated_ids)} but plan selects {sorted(by_id)}",
        )

    ordered = [by_id[mid] for mid in allocated_ids]
    total_reduction  = sum(m.emission_reduction for m in ordered)
    total_investment = sum(m.investment for m in ordered)
    total_funding    = allocation.total_covered

    if total_funding > total_investment + _EPS:
        raise AllocationInvariantError(
            profile.company_id,
            f"total_funding {total_funding:.2f} exceeds total_investment {total_investment:.2f}",
        )

    coverage = total_funding / total_investment if total_investment > 0 else 0.0
    share = plan_reduction_share(
        ordered, reference_emissions, max_reduction_per_measure, max_total_reduction
    )

    projected_intensity: float | None = None
    reached_target: bool | None = None
    if profile.emissions_per_revenue is not None:
        projected_intensity = round(profile.emissions_per_revenue * (1.0 - share), 6)
        if profile.sector_average_intensity is not None:
            reached_target = projected_intensity <= profile.sector_average_intensity

    # min() only absorbs float noise; real excess was raised above.
    return ActionPlan(
        company_id=profile.company_id,
        company_name=profile.name,
        selected_measures=tuple(allocated_ids),
        selected_funding=tuple(allocation.funding_ids()),
        total_reduction=round(total_reduction, 6),
        total_investment=round(total_investment, 2),
        total_funding=round(min(total_funding, total_investment), 2),
        coverage_ratio=round(min(coverage, 1.0), 6),
        reduction_percentage=round(share, 6),
        projected_intensity=projected_intensity,
        reached_target=reached_target,
        generated_by=generated_by,
        created_at=created_at,
    )
