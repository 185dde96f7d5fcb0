"""
Tests for decarb_planner/reporting/export.py.

What we test
------------
  - plan_record() flattens ids with ';' and blanks unknown targets.
  - allocation_records() emits one row per draw and one empty row for an
    unfunded measure.
  - write_plans_csv() / write_allocations_csv() / write_plans_json() create
    the output directory and name files by run date.
  - write_plans_json() carries funding hints and, for discarded plans, the
    released funding with no allocation lines.
"""

from __future__ import annotations

import csv
import json
from datetime import date

import pytest

from decarb_planner.catalog.loader import FundingCatalog, MeasureCatalog
from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.funding import FundingSource
from decarb_planner.models.measure import Measure
from decarb_planner.planning.engine import PlanningEngine
from decarb_planner.reporting.export import (
    PLAN_FIELDNAMES,
    allocation_records,
    plan_record,
    write_allocations_csv,
    write_plans_csv,
    write_plans_json,
)
from decarb_planner.taxonomy.measure_taxonomy import TargetHandling

_RUN_DATE = date(2026, 1, 15)


@pytest.fixture
def results(measure_catalog, funding_catalog, manufacturing_profile, reference_date, created_at):
    engine = PlanningEngine(measure_catalog, funding_catalog)
    second = manufacturing_profile.model_copy(
        update={"company_id": "beta-metal", "sector_average_intensity": None}
    )
    batch = engine.plan_batch([manufacturing_profile, second], reference_date, created_at)
    return batch.results


class TestPlanRecord:
    def test_flattened_fields(self, results):
        row = plan_record(results[0])
        assert set(row) == set(PLAN_FIELDNAMES)
        assert row["selected_measures"] == "energy-1;energy-2;waste-1"
        assert row["committed"] is True
        assert row["generated_by"] == "bulk_wizard"

    def test_unknown_target_blank(self, results):
        assert plan_record(results[1])["reached_target"] == ""


class TestAllocationRecords:
    def test_one_row_per_draw(self, results):
        rows = allocation_records(results[0])
        energy_1 = [r for r in rows if r["measure_id"] == "energy-1"]
        assert [r["funding_id"] for r in energy_1] == ["subsidy-1", "financing-1"]

    def test_unfunded_measure_has_empty_row(self, results):
        rows = allocation_records(results[0])
        waste = [r for r in rows if r["measure_id"] == "waste-1"]
        assert len(waste) == 1
        assert waste[0]["funding_id"] == ""
        assert waste[0]["amount"] == 0.0


class TestWriters:
    def test_plans_csv(self, results, tmp_path):
        out_dir = tmp_path / "out" / "plans"
        path = write_plans_csv(results, out_dir, _RUN_DATE)
        assert path == out_dir / "plans_2026-01-15.csv"
        with path.open(encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert [r["company_id"] for r in rows] == ["acme-metal", "beta-metal"]

    def test_allocations_csv(self, results, tmp_path):
        path = write_allocations_csv(results, tmp_path, _RUN_DATE)
        with path.open(encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert {r["company_id"] for r in rows} == {"acme-metal", "beta-metal"}

    def test_plans_json(self, results, tmp_path):
        path = write_plans_json(results, tmp_path, _RUN_DATE, reference_date=_RUN_DATE)
        payload = json.loads(path.read_text(encoding="utf-8"))
        assert payload["reference_date"] == "2026-01-15"
        assert payload["cancelled"] is False
        first = payload["plans"][0]
        assert first["company_id"] == "acme-metal"
        assert first["blocked"] == {"mobility-1": "company size 'media' not in ['grande']"}
        assert first["measures"][0]["measure_id"] == "energy-1"
        assert first["measures"][0]["allocations"][0] == {"funding_id": "subsidy-1", "amount": 2500.0}

    def test_empty_results(self, tmp_path):
        path = write_plans_csv([], tmp_path, _RUN_DATE)
        assert path.read_text(encoding="utf-8").startswith("company_id,")


@pytest.fixture
def hinted_batch(reference_date, created_at):
    """Two companies; the first misses its target, the second reaches it."""
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
    profiles = [
        CompanyProfile(
            company_id=cid, sector="manufacturing", company_size="media",
            total_emissions=500.0, emissions_per_revenue=epr, sector_average_intensity=avg,
        )
        for cid, epr, avg in (("miss", 1.0, 0.1), ("hit", 0.1, 0.5))
    ]
    engine = PlanningEngine(measures, funding)
    return engine.plan_batch(
        profiles, reference_date, created_at, target_handling=TargetHandling.ONLY_TARGET
    )


class TestPlansJsonDetail:
    def test_funding_advisories(self, hinted_batch, tmp_path):
        path = write_plans_json(hinted_batch.results, tmp_path, _RUN_DATE, reference_date=_RUN_DATE)
        hit = json.loads(path.read_text(encoding="utf-8"))["plans"][1]
        assert hit["funding_advisories"] == [
            {
                "measure_id": "energy-1",
                "category": "subsidy",
                "minimum_amount": 3000.0,
                "available": 1000.0,
                "likely_met": False,
            }
        ]

    def test_discarded_plan_reports_no_funding(self, hinted_batch, tmp_path):
        path = write_plans_json(hinted_batch.results, tmp_path, _RUN_DATE, reference_date=_RUN_DATE)
        miss, hit = json.loads(path.read_text(encoding="utf-8"))["plans"]
        assert miss["committed"] is False
        assert miss["total_funding"] == 0.0
        assert miss["released_funding"] == 1000.0
        assert miss["measures"][0]["allocations"] == []
        assert hit["committed"] is True
        assert hit["total_funding"] == 1000.0
        assert hit["released_funding"] == 0.0

    def test_discarded_plan_csv_row(self, hinted_batch):
        row = plan_record(hinted_batch.results[0])
        assert row["committed"] is False
        assert row["total_funding"] == 0.0
        assert row["released_funding"] == 1000.0
