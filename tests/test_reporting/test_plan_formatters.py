"""Tests for decarb_planner/reporting/formatters.py."""

from __future__ import annotations

from datetime import date

import pytest

from decarb_planner.catalog.loader import FundingCatalog, MeasureCatalog
from decarb_planner.models.funding import FundingSource
from decarb_planner.models.measure import Measure
from decarb_planner.planning.engine import BatchResult, PlanningEngine
from decarb_planner.reporting.formatters import (
    format_batch_summary,
    format_catalog_summary,
    format_company_result,
    format_eligibility_report,
    format_funding_advisories,
)
from decarb_planner.taxonomy.measure_taxonomy import TargetHandling


@pytest.fixture
def result(measure_catalog, funding_catalog, manufacturing_profile, reference_date, created_at):
    engine = PlanningEngine(measure_catalog, funding_catalog)
    return engine.plan_company(manufacturing_profile, reference_date, created_at)


class TestFormatEligibility:
    def test_lists_applicable_and_blocked(self, result):
        text = format_eligibility_report(result.eligibility)
        assert "Applicable measures (3)" in text
        assert "Blocked measures (1)" in text
        assert "mobility-1" in text


class TestFormatCompanyResult:
    def test_contains_allocation_and_totals(self, result):
        text = format_company_result(result)
        assert "=== Action Plan: acme-metal ===" in text
        assert "subsidy-1 (2,500)" in text
        assert "Total investment: 93,000 EUR" in text
        assert "Reached target:   yes" in text
        assert "[NOT COMMITTED]" not in text

    def test_uncommitted_banner(self, measure_catalog, funding_catalog, manufacturing_profile,
                                reference_date, created_at):
        engine = PlanningEngine(measure_catalog, funding_catalog)
        res = engine.plan_company(manufacturing_profile, reference_date, created_at, commit=False)
        assert "[NOT COMMITTED]" in format_company_result(res)

    def test_funding_hints_shown(self, manufacturing_profile, reference_date, created_at):
        measures = MeasureCatalog([
            Measure(
                id="energy-1", category="energy", scope=2, investment=5000.0,
                emission_reduction=50.0, priority="high",
                required_funding={"category": "subsidy", "minimum_amount": 3000},
            )
        ])
        funding = FundingCatalog([
            FundingSource(id="subsidy-1", kind="subsidy", max_amount=1000.0, percentage=50.0)
        ])
        res = PlanningEngine(measures, funding).plan_company(
            manufacturing_profile, reference_date, created_at
        )
        text = format_company_result(res)
        assert "Funding hints (1):" in text
        assert "unlikely to be met" in text

    def test_no_hint_section_without_hints(self, result):
        assert "Funding hints" not in format_company_result(result)

    def test_discarded_plan_shows_released_funding(
        self, measure_catalog, funding_catalog, manufacturing_profile, reference_date, created_at
    ):
        missing = manufacturing_profile.model_copy(update={"sector_average_intensity": 0.01})
        batch = PlanningEngine(measure_catalog, funding_catalog).plan_batch(
            [missing], reference_date, created_at, target_handling=TargetHandling.ONLY_TARGET
        )
        text = format_company_result(batch.results[0])
        assert "Total funding:    0 EUR" in text
        assert "Released funding: 62,500 EUR" in text
        assert "Released funding:    62,500 EUR" in format_batch_summary(batch)


class TestFormatFundingAdvisories:
    def test_empty(self):
        assert format_funding_advisories([]) == "  Funding hints (0):"


class TestFormatBatchSummary:
    def test_empty_batch(self):
        text = format_batch_summary(BatchResult())
        assert "(no companies planned)" in text
        assert "Plans committed:     0" in text

    def test_cancelled_banner(self, result):
        text = format_batch_summary(BatchResult(results=[result], cancelled=True))
        assert "acme-metal" in text
        assert "[CANCELLED]" in text


class TestFormatCatalogSummary:
    def test_status_per_source(self, measure_catalog, funding_catalog):
        text = format_catalog_summary(measure_catalog, funding_catalog, date(2026, 1, 15))
        assert "Measures:        4" in text
        assert "expired 2025-12-31" in text
        assert "open (rolling)" in text
        assert "open until 2026-03-31" in text
