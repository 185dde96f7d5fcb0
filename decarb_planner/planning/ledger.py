"""
Budget ledger: the single owner of every funding source's remaining budget.

Nothing else in the planner mutates remaining budgets.  The protocol for one
company is:

    snapshot = ledger.snapshot()          # read (copy)
    ... filter + allocate against the copy ...
    ledger.commit(company_id, drawdowns)  # all-or-nothing write

``commit`` validates every drawdown against the current balances before
applying any of them, under a lock.  If one drawdown no longer fits (another
commit landed in between) the whole commit is rejected with
``BudgetConflictError`` and no balance changes.  This is the only
serialization point a batch run needs.

The ledger also tracks the cumulative amount drawn from each source so
batch callers can check budget conservation (Σ drawn <= max_amount).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping

from decarb_planner.catalog.loader import FundingCatalog
from decarb_planner.errors import AllocationInvariantError, BudgetConflictError

logger = logging.getLogger(__name__)

# Float slack for money comparisons (EUR).
_EPS = 1e-6


class BudgetLedger:
    """Remaining budget per funding source with atomic per-company commits.

    Attributes:
        commits: Company ids whose drawdowns were committed, in commit order.
    """

    def __init__(
        self,
        budgets: Mapping[str, float],
        max_amounts: Mapping[str, float] | None = None,
    ) -> None:
        for fid, amount in budgets.items():
            if amount < 0:
                raise ValueError(f"Initial budget for '{fid}' must be >= 0, got {amount}.")
        self._remaining: dict[str, float] = dict(budgets)
        self._max: dict[str, float] = dict(max_amounts) if max_amounts else dict(budgets)
        self._drawn: dict[str, float] = {fid: 0.0 for fid in budgets}
        self._lock = threading.Lock()
        self.commits: list[str] = []

    @classmethod
    def from_catalog(cls, catalog: FundingCatalog) -> "BudgetLedger":
        """Seed a ledger with the catalog's published remaining budgets."""
        return cls(
            budgets=catalog.initial_budgets(),
            max_amounts={s.id: s.max_amount for s in catalog},
        )

    def remaining(self, funding_id: str) -> float:
        with self._lock:
            return self._remaining[funding_id]

    def drawn(self, funding_id: str) -> float:
        """Cumulative amount committed from ``funding_id`` in this session."""
        with self._lock:
            return self._drawn[funding_id]

    def snapshot(self) -> dict[str, float]:
        """Return a copy of the current remaining budgets."""
        with self._lock:
            return dict(self._remaining)

    def commit(self, company_id: str, drawdowns: Mapping[str, float]) -> None:
        """Apply all of a company's drawdowns, or none of them.

        Args:
            company_id: Company the drawdowns belong to (for logging/audit).
            drawdowns:  Amount to draw per funding id.  Zero entries are ignored.

        Raises:
            KeyError:            A funding id unknown to the ledger.
            ValueError:          A negative drawdown.
            BudgetConflictError: A drawdown exceeds the current remaining budget.
            AllocationInvariantError: Cumulative draws would exceed max_amount.
        """
        with self._lock:
            for fid, amount in drawdowns.items():
                if fid not in self._remaining:
                    raise KeyError(f"Unknown funding source '{fid}'.")
                if amount < 0:
                    raise ValueError(f"Drawdown for '{fid}' must be >= 0, got {amount}.")
                if amount > self._remaining[fid] + _EPS:
                    raise BudgetConflictError(fid, amount, self._remaining[fid])
                if self._drawn[fid] + amount > self._max.get(fid, float("inf")) + _EPS:
                    raise AllocationInvariantError(
                        fid,
                        f"cumulative drawdown {self._drawn[fid] + amount:.2f} exceeds "
                        f"max_amount {self._max[fid]:.2f}",
                    )

            for fid, amount in drawdowns.items():
                if amount == 0:
                    continue
                self._remaining[fid] = max(0.0, self._remaining[fid] - amount)
                self._drawn[fid] += amount

            self.commits.append(company_id)

        logger.info(
            "Committed %d drawdown(s) for %s | total=%.2f",
            sum(1 for a in drawdowns.values() if a > 0), company_id, sum(drawdowns.values()),
            extra={"company_id": company_id},
        )
