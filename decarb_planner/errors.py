"""
Exceptions raised by the planner.

Recoverable planning outcomes (blocked measures, shortfalls, catalog
warnings) are returned as data.  Only structural misuse and internal defects
are raised:

  InvalidProfileError: a company profile is missing a mandatory field.
  CatalogError: a catalog or profile file cannot be loaded.
  BudgetConflictError: a drawdown no longer fits the ledger's budget.
  AllocationInvariantError: the optimizer or aggregator broke a money
      invariant.  Always a defect, never clamped.
"""

from __future__ import annotations


class InvalidProfileError(ValueError):
    """Raised when a company profile lacks a mandatory field.

    Attributes:
        company_id: Identifier of the offending profile (may be ``None``).
        fields:     Names of the missing or invalid fields.
    """

    def __init__(self, company_id: str | None, fields: list[str], detail: str = "") -> None:
        self.company_id = company_id
        self.fields     = list(fields)
        label = company_id or "<unknown>"
        message = f"Invalid profile '{label}': missing or invalid {', '.join(self.fields)}."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)


class CatalogError(ValueError):
    """Raised when a measure, funding or profile file fails validation.

    Attributes:
        path: File that failed to load, or ``None`` for in-memory records.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


class BudgetConflictError(RuntimeError):
    """Raised when a company's drawdowns exceed the ledger's current budget.

    The whole commit is rejected; no source is decremented.

    Attributes:
        funding_id: Source whose remaining budget is insufficient.
        requested:  Amount the commit tried to draw.
        available:  Remaining budget at commit time.
    """

    def __init__(self, funding_id: str, requested: float, available: float) -> None:
        self.funding_id = funding_id
        self.requested  = requested
        self.available  = available
        super().__init__(
            f"Funding source '{funding_id}': drawdown {requested:.2f} exceeds "
            f"remaining budget {available:.2f}."
        )


class AllocationInvariantError(AssertionError):
    """Raised when an allocation or plan violates a money invariant.

    Attributes:
        subject: Measure, source or company the violation concerns.
    """

    def __init__(self, subject: str, message: str) -> None:
        self.subject = subject
        super().__init__(f"Allocation invariant violated for '{subject}': {message}")
