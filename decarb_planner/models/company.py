"""
Company profile model, the only per-company input to the planner.

Mandatory fields are ``company_id``, ``sector``, ``company_size`` and
``total_emissions``.  ``profile_from_record()`` converts a raw dict (from a
profiles file or an upstream data layer) into a validated profile and raises
``InvalidProfileError`` naming every missing or invalid mandatory field.

The two intensity fields are optional; without them the aggregator cannot
decide whether a plan reaches the sector target and reports ``None``.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from decarb_planner.errors import InvalidProfileError
from decarb_planner.taxonomy.measure_taxonomy import CompanySize


class CompanyProfile(BaseModel):
    """Planning-relevant attributes of one company.

    Attributes:
        company_id: Unique identifier (supplier / client id).
        name: Display name.
        sector: Sector slug, e.g. ``"manufacturing"``.
        company_size: SME size class.
        total_emissions: Total footprint in t CO₂e (>= 0).
        infrastructure_facts: Measured facts keyed by infrastructure key,
            e.g. ``{"roof_area_m2": 850.0}``.
        emissions_per_revenue: Current emission intensity, if known.
        sector_average_intensity: Sector benchmark intensity, if known.
    """

    model_config = ConfigDict(frozen=True)

    company_id: str
    name: str = ""
    sector: str
    company_size: CompanySize
    total_emissions: float
    infrastructure_facts: dict[str, float] = {}
    emissions_per_revenue: Optional[float] = None
    sector_average_intensity: Optional[float] = None

    @field_validator("company_id", "sector")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("total_emissions")
    @classmethod
    def validate_total_emissions(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"total_emissions must be >= 0, got {v}.")
        return v


def profile_from_record(raw: dict[str, Any]) -> CompanyProfile:
    """Build a ``CompanyProfile`` from a raw record.

    Args:
        raw: Dict with at least company_id, sector, company_size and
            total_emissions.

    Returns:
        Validated, frozen ``CompanyProfile``.

    Raises:
        InvalidProfileError: If any mandatory field is missing, blank or
            of the wrong type.
    """
    try:
        return CompanyProfile(**raw)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        company_id = raw.get("company_id")
        raise InvalidProfileError(
            str(company_id) if company_id else None,
            fields or ["<record>"],
        ) from exc
