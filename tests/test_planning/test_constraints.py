"""Tests for the closed constraint set and its single evaluator."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.measure import Measure
from decarb_planner.planning.constraints import (
    InfrastructureConstraint,
    MinEmissionsConstraint,
    SectorConstraint,
    SizeConstraint,
    constraints_for,
    evaluate,
    failures,
)
from decarb_planner.taxonomy.measure_taxonomy import CompanySize


def _profile(**overrides) -> CompanyProfile:
    fields = dict(
        company_id="c1", sector="manufacturing", company_size="media",
        total_emissions=500.0, infrastructure_facts={"roof_area_m2": 800.0},
    )
    fields.update(overrides)
    return CompanyProfile(**fields)


def _measure(**overrides) -> Measure:
    fields = dict(
        id="energy-1", category="energy", investment=1000.0,
        emission_reduction=10.0, priority="high", scope=1,
    )
    fields.update(overrides)
    return Measure(**fields)


class TestConstraintsFor:
    def test_no_constraints_when_fields_absent(self):
        assert constraints_for(_measure()) == []

    def test_empty_lists_produce_no_constraints(self):
        assert constraints_for(_measure(applicable_to={"sectors": [], "sizes": []})) == []

    def test_fixed_order(self):
        m = _measure(
            applicable_to={"sectors": ["retail"], "sizes": ["micro"], "min_emissions": 10},
            required_infrastructure={"key": "roof_area_m2", "minimum_value": 100},
        )
        kinds = [type(c) for c in constraints_for(m)]
        assert kinds == [
            SectorConstraint, SizeConstraint, MinEmissionsConstraint, InfrastructureConstraint,
        ]


class TestEvaluate:
    def test_sector_pass_and_fail(self):
        c = SectorConstraint(frozenset({"manufacturing"}))
        assert evaluate(c, _profile()) is None
        assert "sector 'retail'" in evaluate(c, _profile(sector="retail"))

    def test_size_pass_and_fail(self):
        c = SizeConstraint(frozenset({CompanySize.GRANDE}))
        assert evaluate(c, _profile(company_size="grande")) is None
        assert "company size 'media'" in evaluate(c, _profile())

    def test_min_emissions_is_inclusive(self):
        c = MinEmissionsConstraint(500.0)
        assert evaluate(c, _profile(total_emissions=500.0)) is None
        assert evaluate(c, _profile(total_emissions=499.9)) == "minEmissions not met"

    def test_infrastructure_below_minimum(self):
        c = InfrastructureConstraint("roof_area_m2", 1000.0)
        reason = evaluate(c, _profile())
        assert "below minimum" in reason
        assert "800 < 1000" in reason

    def test_infrastructure_unknown_fact(self):
        c = InfrastructureConstraint("parking_spaces", 2.0)
        assert "unknown" in evaluate(c, _profile())

    def test_unknown_kind_raises(self):
        @dataclass(frozen=True)
        class Bogus:
            pass

        with pytest.raises(TypeError):
            evaluate(Bogus(), _profile())


class TestFailures:
    def test_all_failing_reasons_reported(self):
        m = _measure(applicable_to={"sectors": ["retail"], "min_emissions": 1000})
        reasons = failures(m, _profile())
        assert len(reasons) == 2
        assert reasons[1] == "minEmissions not met"

    def test_unconstrained_measure_applies(self):
        assert failures(_measure(), _profile(total_emissions=0.0)) == []
