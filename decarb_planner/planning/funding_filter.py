"""
Funding eligibility: which funding sources can finance a company's selected
measures, per measure category.

A source is a candidate for category ``c`` iff all of:

    currently_open
    deadline is None or deadline >= reference_date
    remaining budget > 0            (live value from the ledger snapshot)
    measure_categories empty or contains c
    max_company_size is None or company size <= max_company_size
    sectors empty or contains the company's sector

``reference_date`` always comes from the caller; this module never reads the
clock.

``required_funding.minimum_amount`` is not enforced here.  It is surfaced as
a ``FundingAdvisory`` so callers can see, before allocation, whether the
candidates could plausibly meet it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date

from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.funding import FundingSource
from decarb_planner.models.measure import Measure
from decarb_planner.taxonomy.measure_taxonomy import MeasureCategory, size_within

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FundingAdvisory:
    """Advisory check of a measure's ``required_funding`` hint.

    Attributes:
        measure_id:     Measure declaring the hint.
        category:       Funding category (kind) the hint refers to.
        minimum_amount: Minimum funding the measure expects from that kind.
        available:      Upper bound the candidates of that kind could
            contribute to this measure alone (before sharing with others).
    """

    measure_id:     str
    category:       str
    minimum_amount: float
    available:      float

    @property
    def likely_met(self) -> bool:
        return self.available >= self.minimum_amount


@dataclass
class FundingCandidates:
    """Output of ``filter_funding``.

    Attributes:
        by_category: Candidate sources per measure category (ascending id).
        advisories:  One advisory per selected measure with a funding hint.
    """

    by_category: dict[MeasureCategory, list[FundingSource]] = field(default_factory=dict)
    advisories:  list[FundingAdvisory] = field(default_factory=list)

    def for_category(self, category: MeasureCategory) -> list[FundingSource]:
        return list(self.by_category.get(category, []))

    @property
    def funding_ids(self) -> list[str]:
        """Distinct candidate ids across all categories, ascending."""
        return sorted({s.id for sources in self.by_category.values() for s in sources})


def exclusion_reason(
    source: FundingSource,
    category: MeasureCategory,
    profile: CompanyProfile,
    reference_date: date,
    remaining_budget: float,
) -> str | None:
    """Return why ``source`` is not a candidate for ``category``, or ``None``."""
    if not source.currently_open:
        return "call closed"
    if source.deadline is not None and source.deadline < reference_date:
        return f"deadline {source.deadline.isoformat()} passed"
    if remaining_budget <= 0:
        return "budget exhausted"
    rules = source.applicable_to
    if rules.measure_categories and category not in rules.measure_categories:
        return f"category '{category.value}' not financed"
    if rules.max_company_size is not None and not size_within(
        profile.company_size, rules.max_company_size
    ):
        return f"company size above {rules.max_company_size.value}"
    if rules.sectors and profile.sector not in rules.sectors:
        return f"sector '{profile.sector}' not eligible"
    return None


def filter_funding(
    profile: CompanyProfile,
    measures: Iterable[Measure],
    sources: Iterable[FundingSource],
    reference_date: date,
    remaining: Mapping[str, float] | None = None,
) -> FundingCandidates:
    """Compute candidate funding sources per category of the selected measures.

    Args:
        profile:        Company profile.
        measures:       Selected measures (only their categories and funding
            hints are used).
        sources:        Funding catalog.
        reference_date: Date deadlines are compared against.
        remaining:      Live remaining budget per source id.  Sources missing
            from the mapping, or ``remaining=None``, fall back to the
            catalog's published ``remaining_budget``.

    Returns:
        ``FundingCandidates`` keyed by every category present in ``measures``
        (possibly with an empty list).
    """
    measure_list = list(measures)
    source_list  = sorted(sources, key=lambda s: s.id)
    budgets      = remaining or {}

    def _budget(source: FundingSource) -> float:
        return budgets.get(source.id, source.remaining_budget)

    result = FundingCandidates()
    categories = sorted({m.category for m in measure_list}, key=lambda c: c.value)
    for category in categories:
        candidates: list[FundingSource] = []
        for source in source_list:
            reason = exclusion_reason(source, category, profile, reference_date, _budget(source))
            if reason is None:
                candidates.append(source)
            else:
                logger.debug(
                    "Funding %s excluded for %s/%s: %s",
                    source.id, profile.company_id, category.value, reason,
                    extra={"company_id": profile.company_id},
                )
        result.by_category[category] = candidates

    for measure in sorted(measure_list, key=lambda m: m.id):
        hint = measure.required_funding
        if hint is None:
            continue
        available = sum(
            min(_budget(s), s.cap_for(measure.investment))
            for s in result.by_category.get(measure.category, [])
            if s.kind.value == hint.category
        )
        available = min(available, measure.investment)
        result.advisories.append(
            FundingAdvisory(measure.id, hint.category, hint.minimum_amount, available)
        )

    return result
