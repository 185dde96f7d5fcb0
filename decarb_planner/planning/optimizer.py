"""
Funding allocation: assign candidate funding to a company's selected measures.

Greedy policy (``GreedyAllocationStrategy``)
--------------------------------------------
Measures are processed in eligibility order (priority high → low, emission
reduction descending, id ascending).  Sources are shared across measures and
their remaining budget is decremented immediately, so order matters.

For each measure its category's candidates are ranked by:

    1. percentage-based sources first, by percentage descending;
       then flat-amount sources, by max_amount descending
    2. deadline ascending (soonest-expiring first; rolling calls last)
    3. id ascending

and consumed greedily::

    amount = min(remaining_budget,
                 investment × percentage / 100  if percentage-based
                 else max_amount,
                 investment − covered)

until the measure is fully covered or the candidates are exhausted.  Zero
amounts are not recorded.

Known limitation
----------------
The policy is greedy, not globally optimal for aggregate coverage across
measures.  ``AllocationStrategy`` is the seam for an exact solver; any
strategy's output is re-verified by ``FundingAllocationOptimizer``.

Shortfall is a normal outcome.  A measure's ``required_funding`` hint may
end unmet; this is reported as ``required_funding_met = False``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date

from decarb_planner.errors import AllocationInvariantError
from decarb_planner.models.funding import FundingSource
from decarb_planner.models.measure import Measure
from decarb_planner.planning.funding_filter import FundingCandidates
from decarb_planner.planning.measure_filter import measure_sort_key

logger = logging.getLogger(__name__)

# Float slack for money comparisons (EUR).
_EPS = 1e-6


@dataclass(frozen=True)
class Allocation:
    """Amount drawn from one funding source for one measure."""

    funding_id: str
    amount:     float


@dataclass
class MeasureAllocation:
    """Allocation outcome for one measure.

    Attributes:
        measure_id:           Measure this outcome belongs to.
        investment:           Measure investment (EUR).
        allocations:          Non-zero draws in consumption order.
        covered:              Σ allocation amounts.
        shortfall:            ``investment − covered`` (>= 0).
        required_funding_met: Whether the measure's funding hint was met;
            ``None`` when the measure has no hint.
    """

    measure_id:           str
    investment:           float
    allocations:          list[Allocation] = field(default_factory=list)
    covered:              float = 0.0
    shortfall:            float = 0.0
    required_funding_met: bool | None = None

    @property
    def coverage_ratio(self) -> float:
        return self.covered / self.investment if self.investment > 0 else 0.0


@dataclass
class AllocationResult:
    """Output of one allocation pass for one company.

    Attributes:
        measures:         Per-measure outcomes in processing order.
        remaining_before: Remaining budget per source at the start of the pass.
        remaining_after:  Remaining budget per source after the pass.
    """

    measures:         list[MeasureAllocation] = field(default_factory=list)
    remaining_before: dict[str, float] = field(default_factory=dict)
    remaining_after:  dict[str, float] = field(default_factory=dict)

    @property
    def total_covered(self) -> float:
        return sum(m.covered for m in self.measures)

    @property
    def total_shortfall(self) -> float:
        return sum(m.shortfall for m in self.measures)

    def drawdowns(self) -> dict[str, float]:
        """Total amount drawn per funding id (only ids with draws)."""
        totals: dict[str, float] = {}
        for m in self.measures:
            for a in m.allocations:
                totals[a.funding_id] = totals.get(a.funding_id, 0.0) + a.amount
        return totals

    def funding_ids(self) -> list[str]:
        """Funding ids with a non-zero draw, in order of first use."""
        seen: dict[str, None] = {}
        for m in self.measures:
            for a in m.allocations:
                seen.setdefault(a.funding_id, None)
        return list(seen)


def funding_rank_key(source: FundingSource) -> tuple[int, float, date, str]:
    """Sort key implementing the greedy ranking (smaller ranks first)."""
    deadline = source.deadline or date.max
    if source.percentage is not None:
        return (0, -source.percentage, deadline, source.id)
    return (1, -source.max_amount, deadline, source.id)


def _hint_met(measure: Measure, allocations: list[Allocation], kinds: Mapping[str, str]) -> bool | None:
    hint = measure.required_funding
    if hint is None:
        return None
    from_kind = sum(a.amount for a in allocations if kinds.get(a.funding_id) == hint.category)
    return from_kind + _EPS >= hint.minimum_amount


def unfunded_allocation(
    measures: Sequence[Measure],
    remaining: Mapping[str, float],
) -> AllocationResult:
    """An allocation with no draws: every measure is fully in shortfall.

    Used for plans whose drawdowns a batch run discards, so the plan reports
    only funding that was actually committed.
    """
    result = AllocationResult(remaining_before=dict(remaining), remaining_after=dict(remaining))
    for measure in sorted(measures, key=measure_sort_key):
        result.measures.append(
            MeasureAllocation(
                measure_id=measure.id,
                investment=measure.investment,
                shortfall=measure.investment,
                required_funding_met=_hint_met(measure, [], {}),
            )
        )
    return result


# ── Strategies ────────────────────────────────────────────────────────────────


class AllocationStrategy(ABC):
    """Pluggable allocation policy.

    Implementations receive measures in processing order and must not mutate
    ``remaining``; they return the full ``AllocationResult``.
    """

    name: str

    @abstractmethod
    def allocate(
        self,
        measures: Sequence[Measure],
        candidates: FundingCandidates,
        remaining: Mapping[str, float],
    ) -> AllocationResult:
        ...


class GreedyAllocationStrategy(AllocationStrategy):
    """Rank-and-consume greedy allocation (see module docstring)."""

    name = "greedy"

    def rank(self, sources: Sequence[FundingSource]) -> list[FundingSource]:
        return sorted(sources, key=funding_rank_key)

    def allocate(
        self,
        measures: Sequence[Measure],
        candidates: FundingCandidates,
        remaining: Mapping[str, float],
    ) -> AllocationResult:
        budgets = dict(remaining)
        result = AllocationResult(remaining_before=dict(remaining))
        kinds: dict[str, str] = {}

        for measure in measures:
            ranked = self.rank(candidates.for_category(measure.category))
            outcome = MeasureAllocation(measure_id=measure.id, investment=measure.investment)
            kinds.update({s.id: s.kind.value for s in ranked})

            for source in ranked:
                uncovered = measure.investment - outcome.covered
                if uncovered <= _EPS:
                    break
                available = budgets.get(source.id, source.remaining_budget)
                amount = min(available, source.cap_for(measure.investment), uncovered)
                if amount <= 0:
                    continue
                budgets[source.id] = available - amount
                outcome.allocations.append(Allocation(source.id, amount))
                outcome.covered += amount

            outcome.shortfall = max(0.0, measure.investment - outcome.covered)
            outcome.required_funding_met = _hint_met(measure, outcome.allocations, kinds)
            result.measures.append(outcome)

            logger.debug(
                "Measure %s: covered=%.2f shortfall=%.2f sources=%s",
                measure.id, outcome.covered, outcome.shortfall,
                [a.funding_id for a in outcome.allocations],
            )

        result.remaining_after = budgets
        return result


# ── Optimizer facade ──────────────────────────────────────────────────────────


class FundingAllocationOptimizer:
    """Runs an ``AllocationStrategy`` and verifies its output.

    Usage::

        optimizer = FundingAllocationOptimizer()
        result = optimizer.allocate(selected, candidates, ledger.snapshot())
    """

    def __init__(self, strategy: AllocationStrategy | None = None) -> None:
        self.strategy = strategy or GreedyAllocationStrategy()

    def allocate(
        self,
        measures: Sequence[Measure],
        candidates: FundingCandidates,
        remaining: Mapping[str, float],
    ) -> AllocationResult:
        """Allocate funding to ``measures`` against a budget snapshot.

        Measures are re-sorted into processing order, so callers may pass
        them in any order.

        Raises:
            ValueError:               Duplicate measure ids.
            AllocationInvariantError: The strategy over-committed a source,
                a cap or a measure.
        """
        ordered = sorted(measures, key=measure_sort_key)
        ids = [m.id for m in ordered]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate measure ids in allocation input: {ids}.")

        result = self.strategy.allocate(ordered, candidates, remaining)
        verify_allocation(ordered, candidates, remaining, result)
        return result


def verify_allocation(
    measures: Sequence[Measure],
    candidates: FundingCandidates,
    remaining: Mapping[str, float],
    result: AllocationResult,
) -> None:
    """Replay ``result`` against the inputs and check every money invariant.

    Raises:
        AllocationInvariantError: On the first violation found.
    """
    by_id = {m.id: m for m in measures}
    budgets = dict(remaining)

    for outcome in result.measures:
        measure = by_id.get(outcome.measure_id)
        if measure is None:
            raise AllocationInvariantError(outcome.measure_id, "measure was not in the input")
        sources = {s.id: s for s in candidates.for_category(measure.category)}
        covered = 0.0
        for a in outcome.allocations:
            source = sources.get(a.funding_id)
            if source is None:
                raise AllocationInvariantError(
                    measure.id, f"source '{a.funding_id}' is not a candidate"
                )
            before = budgets.get(a.funding_id, source.remaining_budget)
            if a.amount <= 0:
                raise AllocationInvariantError(measure.id, f"non-positive amount {a.amount}")
            if a.amount > before + _EPS:
                raise AllocationInvariantError(
                    measure.id,
                    f"{a.funding_id} allocated {a.amount:.2f} > remaining {before:.2f}",
                )
            if a.amount > source.cap_for(measure.investment) + _EPS:
                raise AllocationInvariantError(
                    measure.id, f"{a.funding_id} allocated {a.amount:.2f} above its cap"
                )
            if a.amount > measure.investment - covered + _EPS:
                raise AllocationInvariantError(
                    measure.id, f"{a.funding_id} allocated beyond uncovered investment"
                )
            budgets[a.funding_id] = before - a.amount
            covered += a.amount

        if abs(covered - outcome.covered) > _EPS:
            raise AllocationInvariantError(measure.id, "covered does not match allocations")
        if outcome.covered > measure.investment + _EPS:
            raise AllocationInvariantError(measure.id, "covered exceeds investment")
