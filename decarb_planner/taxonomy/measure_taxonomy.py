"""
Closed vocabularies for measures, funding sources and company profiles.

Every scale the planner compares or sorts on is a ``StrEnum`` paired with an
explicit ordering table.  Nothing downstream compares raw strings:

  - ``PRIORITY_RANK``      → measure processing order (high first).
  - ``COMPANY_SIZE_ORDER`` → ordinal scale for ``max_company_size`` checks
                             (micro < pequena < media < grande).

The size slugs keep the Portuguese SME classes used by the funding programmes
(micro, pequena, media, grande) because the catalog data is published that way.

This module has NO imports from any other ``decarb_planner`` package.
"""

from enum import IntEnum, StrEnum


class MeasureCategory(StrEnum):
    """Intervention area of a decarbonization measure."""

    ENERGY = "energy"
    """Audits, solar PV, heat pumps, lighting."""

    MOBILITY = "mobility"
    """Fleet electrification, charging points, commuting plans."""

    WASTE = "waste"
    """Sorting, composting and waste-reduction programmes."""

    WATER = "water"
    """Water recycling and saving devices."""


class MeasurePriority(StrEnum):
    """Recommendation priority of a measure."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EmissionScope(IntEnum):
    """Greenhouse-gas accounting scope a measure acts on."""

    SCOPE_1 = 1
    """Direct emissions from owned or controlled sources."""

    SCOPE_2 = 2
    """Indirect emissions from purchased energy."""

    SCOPE_3 = 3
    """All other indirect value-chain emissions."""


class CompanySize(StrEnum):
    """SME size class of a company."""

    MICRO = "micro"
    PEQUENA = "pequena"
    MEDIA = "media"
    GRANDE = "grande"


class FundingKind(StrEnum):
    """Type of funding instrument."""

    SUBSIDY = "subsidy"
    """Non-repayable grant, usually a percentage of eligible investment."""

    FINANCING = "financing"
    """Credit line with subsidised terms."""

    INCENTIVE = "incentive"
    """Fixed-amount incentive tied to a specific measure type."""


class TargetHandling(StrEnum):
    """Which plans a batch run commits."""

    ALL = "all"
    """Every plan."""

    ONLY_TARGET = "only_target"
    """Only plans whose projected intensity reaches the sector average."""

    REVIEW = "review"
    """Only the companies a reviewer picked; defaults to those reaching the target."""


# ── Ordering tables ───────────────────────────────────────────────────────────

PRIORITY_RANK: dict[MeasurePriority, int] = {
    MeasurePriority.HIGH:   0,
    MeasurePriority.MEDIUM: 1,
    MeasurePriority.LOW:    2,
}

COMPANY_SIZE_ORDER: dict[CompanySize, int] = {
    CompanySize.MICRO:   0,
    CompanySize.PEQUENA: 1,
    CompanySize.MEDIA:   2,
    CompanySize.GRANDE:  3,
}


def size_within(company_size: CompanySize, max_size: CompanySize) -> bool:
    """Return True if ``company_size`` is at most ``max_size`` on the ordinal scale."""
    return COMPANY_SIZE_ORDER[company_size] <= COMPANY_SIZE_ORDER[max_size]
