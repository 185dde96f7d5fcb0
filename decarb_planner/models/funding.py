"""
Funding source model.

A ``FundingSource`` is a subsidy, credit line or incentive with eligibility
rules and a budget cap.  The model is frozen: ``remaining_budget`` here is
the value the catalog was published with.  During planning the live remaining
budget is owned by ``planning/ledger.BudgetLedger`` and only the ledger
changes it.

Deadlines
---------
``deadline = None`` means an open-ended ("rolling") call.  A source whose
deadline is before the caller's reference date is not a candidate.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from decarb_planner.taxonomy.measure_taxonomy import CompanySize, FundingKind, MeasureCategory


class FundingApplicability(BaseModel):
    """Restrictions a funding source places on measures and companies.

    Attributes:
        measure_categories: Categories the fund finances; empty = all.
        max_company_size:   Largest eligible size class, or ``None``.
        sectors:            Eligible company sectors; empty = all.
    """

    model_config = ConfigDict(frozen=True)

    measure_categories: tuple[MeasureCategory, ...] = ()
    max_company_size: Optional[CompanySize] = None
    sectors: tuple[str, ...] = ()


class FundingSource(BaseModel):
    """An external financing instrument.

    Attributes:
        id: Unique catalog identifier, e.g. ``"subsidy-1"``.
        kind: Instrument type.
        name: Programme name.
        provider: Issuing body, e.g. ``"Fundo Ambiental"``.
        max_amount: Budget cap in EUR (>= 0).
        percentage: Share of a measure's investment the fund covers, in
            [0, 100], or ``None`` for flat-amount funds.
        deadline: Last application date, or ``None`` for rolling calls.
        requirements: Declarative conditions shown to users; never verified.
        applicable_to: Eligibility restrictions.
        currently_open: Whether the call accepts applications.
        remaining_budget: Budget left at catalog publication; defaults to
            ``max_amount``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: FundingKind
    name: str = ""
    provider: str = ""
    max_amount: float
    percentage: Optional[float] = None
    deadline: Optional[date] = None
    requirements: tuple[str, ...] = ()
    applicable_to: FundingApplicability = FundingApplicability()
    currently_open: bool = True
    remaining_budget: float

    @model_validator(mode="before")
    @classmethod
    def default_remaining_budget(cls, data: Any) -> Any:
        """Fill ``remaining_budget`` from ``max_amount`` when it is absent."""
        if isinstance(data, dict) and data.get("remaining_budget") is None:
            data = {**data, "remaining_budget": data.get("max_amount")}
        return data

    @field_validator("deadline", mode="before")
    @classmethod
    def parse_rolling_deadline(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() in ("", "rolling"):
            return None
        return v

    @field_validator("max_amount")
    @classmethod
    def validate_max_amount(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"max_amount must be >= 0, got {v}.")
        return v

    @field_validator("percentage")
    @classmethod
    def validate_percentage(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0.0 <= v <= 100.0:
            raise ValueError(f"percentage must be in [0, 100], got {v}.")
        return v

    @model_validator(mode="after")
    def validate_remaining_budget(self) -> "FundingSource":
        if self.remaining_budget < 0:
            raise ValueError(
                f"remaining_budget must be >= 0, got {self.remaining_budget}."
            )
        elif self.remaining_budget > self.max_amount:
            raise ValueError(
                f"remaining_budget ({self.remaining_budget}) must be <= "
                f"max_amount ({self.max_amount})."
            )
        return self

    @property
    def is_percentage_based(self) -> bool:
        return self.percentage is not None

    def cap_for(self, investment: float) -> float:
        """Per-measure cap: ``investment × percentage / 100`` or ``max_amount``."""
        if self.percentage is not None:
            return investment * self.percentage / 100.0
        return self.max_amount
