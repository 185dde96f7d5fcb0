"""
Tests for decarb_planner/cli.py using Typer's CliRunner.

Every test points --config at a TOML file under tmp_path whose catalog and
profile paths are the JSON fixtures from ``catalog_files``.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from decarb_planner.cli import app

pytestmark = pytest.mark.usefixtures("restore_root_logger")

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path, catalog_files) -> Path:
    plans_dir = tmp_path / "plans"
    body = "\n".join(
        [
            "[catalog]",
            f"measures_file = {json.dumps(str(catalog_files['measures']))}",
            f"funding_file = {json.dumps(str(catalog_files['funding']))}",
            f"profiles_file = {json.dumps(str(catalog_files['profiles']))}",
            "",
            "[output]",
            f"plans_dir = {json.dumps(str(plans_dir))}",
            "",
            "[logging]",
            'level = "WARNING"',
            'log_file = ""',
            "",
        ]
    )
    path = tmp_path / "test.toml"
    path.write_text(body, encoding="utf-8")
    return path


class TestValidateConfig:
    def test_ok(self, config_file):
        result = runner.invoke(app, ["validate-config", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "[OK] Config valid." in result.output

    def test_full_dump(self, config_file):
        result = runner.invoke(app, ["validate-config", "--config", str(config_file), "--full"])
        assert result.exit_code == 0, result.output
        assert '"max_measures_per_company": 5' in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["validate-config", "--config", str(tmp_path / "nope.toml")])
        assert result.exit_code == 1
        assert "[ERROR]" in result.output


class TestCheckCatalog:
    def test_consistent(self, config_file):
        result = runner.invoke(
            app, ["check-catalog", "--config", str(config_file), "--reference-date", "2026-01-15"]
        )
        assert result.exit_code == 0, result.output
        assert "Funding sources: 3" in result.output
        assert "[OK] Catalog consistent." in result.output

    def test_reports_unknown_infrastructure(self, config_file, catalog_files):
        path = catalog_files["measures"]
        records = json.loads(path.read_text(encoding="utf-8"))
        records.append(
            {
                "id": "energy-9", "category": "energy", "investment": 1,
                "emission_reduction": 1, "priority": "low", "scope": 3,
                "required_infrastructure": {"key": "boiler_kw", "minimum_value": 1},
            }
        )
        path.write_text(json.dumps(records), encoding="utf-8")

        result = runner.invoke(app, ["check-catalog", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "[WARN] energy-9" in result.output

    def test_invalid_catalog(self, config_file, catalog_files):
        catalog_files["funding"].write_text('{"not": "an array"}', encoding="utf-8")
        result = runner.invoke(app, ["check-catalog", "--config", str(config_file)])
        assert result.exit_code == 1
        assert "[ERROR]" in result.output


class TestPlan:
    def test_single_company(self, config_file):
        result = runner.invoke(
            app,
            ["plan", "--company", "acme-metal", "--reference-date", "2026-01-15",
             "--config", str(config_file)],
        )
        assert result.exit_code == 0, result.output
        assert "=== Action Plan: acme-metal ===" in result.output
        assert "[OK] Plan generated." in result.output

    def test_unknown_company(self, config_file):
        result = runner.invoke(
            app, ["plan", "--company", "ghost", "--config", str(config_file)]
        )
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_bad_reference_date(self, config_file):
        result = runner.invoke(
            app,
            ["plan", "--company", "acme-metal", "--reference-date", "15/01/2026",
             "--config", str(config_file)],
        )
        assert result.exit_code == 1
        assert "YYYY-MM-DD" in result.output

    def test_invalid_profile(self, config_file, tmp_path):
        bad = tmp_path / "bad_profiles.json"
        bad.write_text(json.dumps([{"company_id": "c1", "sector": "retail"}]), encoding="utf-8")
        result = runner.invoke(
            app,
            ["plan", "--company", "c1", "--profiles", str(bad), "--config", str(config_file)],
        )
        assert result.exit_code == 1
        assert "Invalid company profile" in result.output


class TestBulkPlan:
    def test_writes_reports(self, config_file, tmp_path):
        out_dir = tmp_path / "bulk"
        result = runner.invoke(
            app,
            ["bulk-plan", "--reference-date", "2026-01-15", "--output-dir", str(out_dir),
             "--config", str(config_file)],
        )
        assert result.exit_code == 0, result.output
        assert "Companies planned:   2" in result.output
        assert "[OK] Bulk plan complete." in result.output
        assert len(list(out_dir.glob("plans_*.csv"))) == 1
        assert len(list(out_dir.glob("plans_*.json"))) == 1
        assert len(list(out_dir.glob("allocations_*.csv"))) == 1

    def test_default_output_dir_from_config(self, config_file, tmp_path):
        result = runner.invoke(
            app, ["bulk-plan", "--reference-date", "2026-01-15", "--config", str(config_file)]
        )
        assert result.exit_code == 0, result.output
        assert list((tmp_path / "plans").glob("plans_*.json"))

    def test_only_target(self, config_file, tmp_path):
        out_dir = tmp_path / "bulk"
        result = runner.invoke(
            app,
            ["bulk-plan", "--reference-date", "2026-01-15", "--only-target",
             "--output-dir", str(out_dir), "--config", str(config_file)],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(next(out_dir.glob("plans_*.json")).read_text(encoding="utf-8"))
        for plan in payload["plans"]:
            assert plan["committed"] is (plan["reached_target"] is True)

    def test_commit_chosen_companies(self, config_file, tmp_path):
        out_dir = tmp_path / "bulk"
        result = runner.invoke(
            app,
            ["bulk-plan", "--reference-date", "2026-01-15", "--commit", "beta-metal",
             "--output-dir", str(out_dir), "--config", str(config_file)],
        )
        assert result.exit_code == 0, result.output
        assert "Plans committed:     1" in result.output
        payload = json.loads(next(out_dir.glob("plans_*.json")).read_text(encoding="utf-8"))
        acme, beta = payload["plans"]
        assert acme["committed"] is False
        assert acme["total_funding"] == 0.0
        assert beta["committed"] is True
        assert beta["total_funding"] == pytest.approx(62500.0)

    def test_commit_unknown_company(self, config_file, tmp_path):
        result = runner.invoke(
            app,
            ["bulk-plan", "--reference-date", "2026-01-15", "--commit", "nobody",
             "--output-dir", str(tmp_path / "bulk"), "--config", str(config_file)],
        )
        assert result.exit_code == 1
        assert "Unknown company id(s) in --commit: nobody" in result.output

    def test_commit_and_only_target_conflict(self, config_file, tmp_path):
        result = runner.invoke(
            app,
            ["bulk-plan", "--reference-date", "2026-01-15", "--only-target",
             "--commit", "acme-metal", "--config", str(config_file)],
        )
        assert result.exit_code == 1
        assert "cannot be combined" in result.output
