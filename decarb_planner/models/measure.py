"""
Decarbonization measure model.

A ``Measure`` is immutable reference data from the measure catalog: what an
intervention costs, how many t CO₂e/year it removes, and which companies it
applies to.

Applicability is declared through three optional fields in ``applicable_to``
plus an optional ``required_infrastructure`` threshold.  An absent or empty
field means "no constraint", never an error.  The eligibility filter turns
these fields into explicit constraint objects (see
``planning/constraints.py``).

``required_funding`` is advisory only: the allocator reports whether it was
met, but a measure is never excluded because of it.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from decarb_planner.taxonomy.measure_taxonomy import (
    CompanySize,
    EmissionScope,
    MeasureCategory,
    MeasurePriority,
)


class MeasureApplicability(BaseModel):
    """Company attributes a measure is restricted to.

    Attributes:
        sectors:       Sector slugs the measure applies to; empty = all sectors.
        sizes:         Company size classes; empty = all sizes.
        min_emissions: Minimum total emissions (t CO₂e) for the measure to make
            sense, or ``None`` for no minimum.
    """

    model_config = ConfigDict(frozen=True)

    sectors: tuple[str, ...] = ()
    sizes: tuple[CompanySize, ...] = ()
    min_emissions: Optional[float] = None

    @field_validator("min_emissions")
    @classmethod
    def validate_min_emissions(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"min_emissions must be >= 0, got {v}.")
        return v


class InfrastructureRequirement(BaseModel):
    """Minimum value an infrastructure fact must reach, e.g. roof area in m²."""

    model_config = ConfigDict(frozen=True)

    key: str
    minimum_value: float


class FundingRequirement(BaseModel):
    """Advisory minimum funding from one funding kind."""

    model_config = ConfigDict(frozen=True)

    category: str
    minimum_amount: float

    @field_validator("minimum_amount")
    @classmethod
    def validate_minimum_amount(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"minimum_amount must be >= 0, got {v}.")
        return v


class Measure(BaseModel):
    """A candidate decarbonization intervention.

    Attributes:
        id: Unique catalog identifier, e.g. ``"energy-2"``.
        category: Intervention area.
        scope: GHG accounting scope the measure reduces.
        name: Short human-readable name.
        description: One-line description.
        investment: Up-front investment in EUR (>= 0).
        emission_reduction: Expected reduction in t CO₂e per year (>= 0).
        priority: Recommendation priority.
        timeline_months: Implementation time in months.
        roi_years: Simple payback in years, if known.
        annual_savings: Yearly operating savings in EUR, if known.
        applicable_to: Company restrictions.
        required_infrastructure: Optional infrastructure threshold.
        required_funding: Optional advisory funding minimum.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    category: MeasureCategory
    scope: EmissionScope
    name: str = ""
    description: str = ""
    investment: float
    emission_reduction: float
    priority: MeasurePriority
    timeline_months: int = 0
    roi_years: Optional[float] = None
    annual_savings: Optional[float] = None
    applicable_to: MeasureApplicability = MeasureApplicability()
    required_infrastructure: Optional[InfrastructureRequirement] = None
    required_funding: Optional[FundingRequirement] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Measure id must not be empty.")
        return v.strip()

    @field_validator("investment", "emission_reduction")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Value must be >= 0, got {v}.")
        return v
