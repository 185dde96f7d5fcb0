"""
Measure eligibility: which catalog measures apply to a company profile.

Flow
----
1. Catalog consistency: a measure referencing an infrastructure key or a
   funding category that the configuration does not know is excluded with a
   ``CatalogWarning``.  The pass continues.
2. Constraint evaluation (``constraints.failures``): a measure is applicable
   iff every constraint it declares is satisfied; otherwise it is blocked
   with the failing reasons joined by ``"; "``.
3. Ordering: applicable measures are sorted by
   priority (high → low), emission_reduction descending, id ascending.

The filter is pure and deterministic: input list order never changes the
output.  The same ordering is the optimizer's processing order.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field

from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.measure import Measure
from decarb_planner.planning.constraints import failures
from decarb_planner.taxonomy.measure_taxonomy import PRIORITY_RANK

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockedMeasure:
    """A measure that does not apply to the profile, with the reason why."""

    measure: Measure
    reason:  str


@dataclass(frozen=True)
class CatalogWarning:
    """A measure excluded because it references unknown configuration."""

    measure_id: str
    message:    str


@dataclass
class EligibilityReport:
    """Output of ``filter_measures``.

    Attributes:
        company_id: Profile the report was computed for.
        applicable: Applicable measures in processing order.
        blocked:    Blocked measures in ascending id order.
        warnings:   Catalog-inconsistency exclusions.
    """

    company_id: str
    applicable: list[Measure] = field(default_factory=list)
    blocked:    list[BlockedMeasure] = field(default_factory=list)
    warnings:   list[CatalogWarning] = field(default_factory=list)

    @property
    def applicable_ids(self) -> list[str]:
        return [m.id for m in self.applicable]


def measure_sort_key(measure: Measure) -> tuple[int, float, str]:
    """Processing order: priority high first, larger reduction first, then id."""
    return (PRIORITY_RANK[measure.priority], -measure.emission_reduction, measure.id)


def _consistency_problem(
    measure: Measure,
    known_infrastructure_keys: Collection[str] | None,
    known_funding_categories: Collection[str] | None,
) -> str | None:
    req_infra = measure.required_infrastructure
    if (
        req_infra is not None
        and known_infrastructure_keys is not None
        and req_infra.key not in known_infrastructure_keys
    ):
        return f"unknown infrastructure key '{req_infra.key}'"

    req_funding = measure.required_funding
    if (
        req_funding is not None
        and known_funding_categories is not None
        and req_funding.category not in known_funding_categories
    ):
        return f"unknown funding category '{req_funding.category}'"
    return None


def catalog_warnings(
    measures: Iterable[Measure],
    known_infrastructure_keys: Collection[str] | None,
    known_funding_categories: Collection[str] | None,
) -> list[CatalogWarning]:
    """Consistency problems of a whole catalog, independent of any company."""
    found: list[CatalogWarning] = []
    for measure in sorted(measures, key=lambda m: m.id):
        problem = _consistency_problem(
            measure, known_infrastructure_keys, known_funding_categories
        )
        if problem is not None:
            found.append(CatalogWarning(measure.id, problem))
    return found


def filter_measures(
    profile: CompanyProfile,
    measures: Iterable[Measure],
    known_infrastructure_keys: Collection[str] | None = None,
    known_funding_categories: Collection[str] | None = None,
) -> EligibilityReport:
    """Split catalog measures into applicable and blocked for one profile.

    Args:
        profile:                   Validated company profile.
        measures:                  Measure catalog (any iterable of measures).
        known_infrastructure_keys: Infrastructure keys the configuration
            defines.  ``None`` disables the consistency check.
        known_funding_categories:  Funding categories the configuration
            defines.  ``None`` disables the consistency check.

    Returns:
        ``EligibilityReport`` with applicable measures in processing order.
    """
    report = EligibilityReport(company_id=profile.company_id)

    for measure in sorted(measures, key=lambda m: m.id):
        problem = _consistency_problem(
            measure, known_infrastructure_keys, known_funding_categories
        )
        if problem is not None:
            logger.warning(
                "Measure %s excluded for company %s: %s",
                measure.id, profile.company_id, problem,
                extra={"company_id": profile.company_id},
            )
            report.warnings.append(CatalogWarning(measure.id, problem))
            continue

        reasons = failures(measure, profile)
        if reasons:
            report.blocked.append(BlockedMeasure(measure, "; ".join(reasons)))
        else:
            report.applicable.append(measure)

    report.applicable.sort(key=measure_sort_key)

    logger.debug(
        "Eligibility for %s: %d applicable, %d blocked, %d warnings",
        profile.company_id, len(report.applicable), len(report.blocked), len(report.warnings),
        extra={"company_id": profile.company_id},
    )
    return report


def select_measures(applicable: list[Measure], limit: int = 0) -> list[Measure]:
    """Keep the first ``limit`` applicable measures (``0`` = keep all).

    ``applicable`` must already be in processing order.
    """
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}.")
    if limit == 0:
        return list(applicable)
    return list(applicable[:limit])
