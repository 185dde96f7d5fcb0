"""
Shared pytest fixtures for the decarbonization planner test suite.

Provides:
  - ``reference_date`` / ``created_at``: fixed clock values; the planner
    never reads the clock itself.
  - Sample profile, measure and funding factories used across test modules.
  - ``catalog_files``: the sample catalogs written as JSON under ``tmp_path``.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from decarb_planner.catalog.loader import FundingCatalog, MeasureCatalog
from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.funding import FundingSource
from decarb_planner.models.measure import Measure
from decarb_planner.taxonomy.measure_taxonomy import (
    CompanySize,
    EmissionScope,
    FundingKind,
    MeasureCategory,
    MeasurePriority,
)


# ── Clock ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def reference_date() -> date:
    return date(2026, 1, 15)


@pytest.fixture
def created_at() -> datetime:
    return datetime(2026, 1, 15, 9, 30, 0, tzinfo=timezone.utc)


# ── Sample domain object factories ────────────────────────────────────────────

@pytest.fixture
def manufacturing_profile() -> CompanyProfile:
    """A medium manufacturing company emitting 500 t CO₂e."""
    return CompanyProfile(
        company_id="acme-metal",
        name="Acme Metalurgica",
        sector="manufacturing",
        company_size=CompanySize.MEDIA,
        total_emissions=500.0,
        infrastructure_facts={"roof_area_m2": 800.0},
        emissions_per_revenue=0.40,
        sector_average_intensity=0.30,
    )


@pytest.fixture
def sample_measures() -> list[Measure]:
    """Four measures across three categories with mixed priorities."""
    return [
        Measure(
            id="energy-1", category=MeasureCategory.ENERGY, name="Energy audit",
            investment=5000.0, emission_reduction=150.0, priority=MeasurePriority.HIGH,
            scope=EmissionScope.SCOPE_2,
            applicable_to={"min_emissions": 200},
        ),
        Measure(
            id="energy-2", category=MeasureCategory.ENERGY, name="Solar PV",
            investment=80000.0, emission_reduction=200.0, priority=MeasurePriority.MEDIUM,
            scope=EmissionScope.SCOPE_2,
            applicable_to={"sizes": ["media", "grande"], "min_emissions": 500},
            required_infrastructure={"key": "roof_area_m2", "minimum_value": 500},
        ),
        Measure(
            id="mobility-1", category=MeasureCategory.MOBILITY, name="Electric fleet",
            investment=150000.0, emission_reduction=80.0, priority=MeasurePriority.MEDIUM,
            scope=EmissionScope.SCOPE_1,
            applicable_to={"sizes": ["grande"]},
        ),
        Measure(
            id="waste-1", category=MeasureCategory.WASTE, name="Zero waste",
            investment=8000.0, emission_reduction=30.0, priority=MeasurePriority.LOW,
            scope=EmissionScope.SCOPE_3,
        ),
    ]


@pytest.fixture
def sample_funding() -> list[FundingSource]:
    """A percentage subsidy, a flat financing line and an expired incentive."""
    return [
        FundingSource(
            id="subsidy-1", kind=FundingKind.SUBSIDY, name="Energy efficiency",
            max_amount=50000.0, percentage=50.0, deadline=date(2026, 3, 31),
            applicable_to={"measure_categories": ["energy"], "max_company_size": "media"},
        ),
        FundingSource(
            id="financing-1", kind=FundingKind.FINANCING, name="Green credit line",
            max_amount=20000.0,
        ),
        FundingSource(
            id="incentive-1", kind=FundingKind.INCENTIVE, name="Mobility incentive",
            max_amount=20000.0, deadline=date(2025, 12, 31),
            applicable_to={"measure_categories": ["mobility"]},
        ),
    ]


@pytest.fixture
def measure_catalog(sample_measures: list[Measure]) -> MeasureCatalog:
    return MeasureCatalog(sample_measures)


@pytest.fixture
def funding_catalog(sample_funding: list[FundingSource]) -> FundingCatalog:
    return FundingCatalog(sample_funding)


# ── File fixtures ─────────────────────────────────────────────────────────────

@pytest.fixture
def catalog_files(
    tmp_path: Path,
    sample_measures: list[Measure],
    sample_funding: list[FundingSource],
    manufacturing_profile: CompanyProfile,
) -> dict[str, Path]:
    """Write the sample catalogs and one profile file to ``tmp_path``.

    Returns:
        Mapping with keys ``measures``, ``funding`` and ``profiles``.
    """
    measures_path = tmp_path / "measures.json"
    funding_path  = tmp_path / "funding.json"
    profiles_path = tmp_path / "companies.json"

    measures_path.write_text(
        json.dumps(
            [{"_comment": "test catalog"}]
            + [m.model_dump(mode="json") for m in sample_measures]
        ),
        encoding="utf-8",
    )
    funding_path.write_text(
        json.dumps([s.model_dump(mode="json") for s in sample_funding]),
        encoding="utf-8",
    )
    second = manufacturing_profile.model_copy(
        update={"company_id": "beta-metal", "name": "Beta Metal"}
    )
    profiles_path.write_text(
        json.dumps(
            [
                manufacturing_profile.model_dump(mode="json"),
                second.model_dump(mode="json"),
            ]
        ),
        encoding="utf-8",
    )
    return {"measures": measures_path, "funding": funding_path, "profiles": profiles_path}


# ── Logging ───────────────────────────────────────────────────────────────────

@pytest.fixture
def restore_root_logger():
    """Undo ``configure_logging`` side effects on the root logger after a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)
