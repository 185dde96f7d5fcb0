"""
Explicit applicability constraints for measures.

A measure's optional ``applicable_to`` fields and ``required_infrastructure``
threshold are turned into a list of constraint objects drawn from a closed
set of four kinds:

    SectorConstraint          company sector ∈ allowed sectors
    SizeConstraint            company size ∈ allowed size classes
    MinEmissionsConstraint    total emissions >= minimum
    InfrastructureConstraint  infrastructure_facts[key] >= minimum value

Empty or absent fields produce no constraint at all, so "no constraint" is
never evaluated as a failure.  ``evaluate()`` is the single evaluator for
every kind and raises ``TypeError`` for anything outside the closed set.

Reason strings
--------------
Each failing constraint yields a short human-readable reason, e.g.
``"minEmissions not met"``; the dashboard shows these next to blocked
measures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.measure import Measure
from decarb_planner.taxonomy.measure_taxonomy import CompanySize


@dataclass(frozen=True)
class SectorConstraint:
    sectors: frozenset[str]


@dataclass(frozen=True)
class SizeConstraint:
    sizes: frozenset[CompanySize]


@dataclass(frozen=True)
class MinEmissionsConstraint:
    min_emissions: float


@dataclass(frozen=True)
class InfrastructureConstraint:
    key: str
    minimum_value: float


Constraint = Union[
    SectorConstraint,
    SizeConstraint,
    MinEmissionsConstraint,
    InfrastructureConstraint,
]


def constraints_for(measure: Measure) -> list[Constraint]:
    """Build the constraint list for one measure.

    Order is fixed (sector, size, min-emissions, infrastructure) so the
    first failing reason is stable across runs.
    """
    rules = measure.applicable_to
    constraints: list[Constraint] = []
    if rules.sectors:
        constraints.append(SectorConstraint(frozenset(rules.sectors)))
    if rules.sizes:
        constraints.append(SizeConstraint(frozenset(rules.sizes)))
    if rules.min_emissions is not None:
        constraints.append(MinEmissionsConstraint(rules.min_emissions))
    if measure.required_infrastructure is not None:
        req = measure.required_infrastructure
        constraints.append(InfrastructureConstraint(req.key, req.minimum_value))
    return constraints


def evaluate(constraint: Constraint, profile: CompanyProfile) -> str | None:
    """Evaluate one constraint against a profile.

    Returns:
        ``None`` if the profile satisfies the constraint, otherwise a
        human-readable reason string.

    Raises:
        TypeError: If ``constraint`` is not one of the four known kinds.
    """
    if isinstance(constraint, SectorConstraint):
        if profile.sector in constraint.sectors:
            return None
        return f"sector '{profile.sector}' not in {sorted(constraint.sectors)}"

    if isinstance(constraint, SizeConstraint):
        if profile.company_size in constraint.sizes:
            return None
        return (
            f"company size '{profile.company_size.value}' not in "
            f"{sorted(s.value for s in constraint.sizes)}"
        )

    if isinstance(constraint, MinEmissionsConstraint):
        if profile.total_emissions >= constraint.min_emissions:
            return None
        return "minEmissions not met"

    if isinstance(constraint, InfrastructureConstraint):
        value = profile.infrastructure_facts.get(constraint.key)
        if value is None:
            return f"infrastructure '{constraint.key}' unknown for company"
        if value >= constraint.minimum_value:
            return None
        return (
            f"infrastructure '{constraint.key}' below minimum "
            f"({value:g} < {constraint.minimum_value:g})"
        )

    raise TypeError(f"Unknown constraint kind: {type(constraint).__name__}")


def failures(measure: Measure, profile: CompanyProfile) -> list[str]:
    """Return every failing reason for ``measure``; empty if it applies."""
    reasons: list[str] = []
    for constraint in constraints_for(measure):
        reason = evaluate(constraint, profile)
        if reason is not None:
            reasons.append(reason)
    return reasons
