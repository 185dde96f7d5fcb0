"""
Action plan output model.

``ActionPlan`` is the persisted shape handed to the external plan store and to
the dashboard.  It is produced only by ``planning/aggregator.build_action_plan``
and is frozen: once produced it is never mutated by the planner.

Money invariant: ``total_funding <= total_investment``.  The model validator
rejects violating input; the aggregator checks the same invariant first and
raises ``AllocationInvariantError`` so a defect is never reported as bad data.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

PlanOrigin = Literal["engine", "bulk_wizard"]


class ActionPlan(BaseModel):
    """A company's selected measures and funding with aggregated totals.

    Attributes:
        company_id: Company the plan belongs to.
        company_name: Display name copied from the profile.
        selected_measures: Measure ids in processing order (unique).
        selected_funding: Funding ids that contributed funding (unique, in
            order of first use).
        total_reduction: Σ emission_reduction of selected measures (t CO₂e/yr).
        total_investment: Σ investment of selected measures (EUR).
        total_funding: Σ allocated amounts (EUR).
        coverage_ratio: ``total_funding / total_investment``; 0 when there is
            no investment.
        reduction_percentage: Projected share of emissions removed (0–1).
        projected_intensity: Emission intensity after the plan, if known.
        reached_target: Whether projected intensity is at or below the sector
            average; ``None`` when either intensity is unknown.
        generated_by: ``"engine"`` for single runs, ``"bulk_wizard"`` for batches.
        created_at: Caller-supplied creation timestamp.
    """

    model_config = ConfigDict(frozen=True)

    company_id: str
    company_name: str = ""
    selected_measures: tuple[str, ...]
    selected_funding: tuple[str, ...]
    total_reduction: float
    total_investment: float
    total_funding: float
    coverage_ratio: float
    reduction_percentage: float = 0.0
    projected_intensity: Optional[float] = None
    reached_target: Optional[bool] = None
    generated_by: PlanOrigin = "engine"
    created_at: datetime

    @field_validator("selected_measures", "selected_funding")
    @classmethod
    def validate_unique(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError(f"ids must be unique, got {list(v)}.")
        return v

    @model_validator(mode="after")
    def validate_totals(self) -> "ActionPlan":
        if self.total_funding < 0 or self.total_investment < 0:
            raise ValueError("totals must be non-negative.")
        if self.total_funding > self.total_investment + 1e-6:
            raise ValueError(
                f"total_funding ({self.total_funding}) must be <= "
                f"total_investment ({self.total_investment})."
            )
        if not 0.0 <= self.coverage_ratio <= 1.0 + 1e-9:
            raise ValueError(f"coverage_ratio must be in [0, 1], got {self.coverage_ratio}.")
        return self

    @property
    def funding_gap(self) -> float:
        """Investment left for the company to finance itself."""
        return max(0.0, self.total_investment - self.total_funding)
