"""
Planning engine: runs the full pass for one company or a batch of companies.

One company
-----------
    snapshot   = ledger.snapshot()
    report     = filter_measures(profile, measure catalog)
    selected   = select_measures(report.applicable, max_measures_per_company)
    candidates = filter_funding(profile, selected, funding catalog, reference_date, snapshot)
    allocation = optimizer.allocate(selected, candidates, snapshot)
    plan       = build_action_plan(profile, selected, allocation, created_at)
    ledger.commit(company_id, allocation.drawdowns())     # all-or-nothing

Batch
-----
Companies are processed strictly in the caller's order.  Each company's
drawdowns are committed before the next company's snapshot is taken, so a
source drained by company N shows as exhausted to company N+1.

Which plans are committed depends on ``TargetHandling``:

    ALL          every plan
    ONLY_TARGET  plans whose ``reached_target`` is True
    REVIEW       the caller's ``commit_ids``; without them, as ONLY_TARGET

A plan that is not committed is still returned, rebuilt on an unfunded
allocation, so across a batch every reported euro was actually reserved.
Its proposed drawdowns stay available to the companies after it.

Cancellation is checked between companies through ``should_stop``.  A
company is either fully committed or not at all.

The engine performs no I/O and never reads the clock: ``reference_date`` and
``created_at`` are always supplied by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from decarb_planner.catalog.loader import FundingCatalog, MeasureCatalog
from decarb_planner.config import AppConfig
from decarb_planner.models.company import CompanyProfile
from decarb_planner.models.measure import Measure
from decarb_planner.models.plan import ActionPlan, PlanOrigin
from decarb_planner.planning.aggregator import build_action_plan
from decarb_planner.planning.funding_filter import FundingCandidates, filter_funding
from decarb_planner.planning.ledger import BudgetLedger
from decarb_planner.planning.measure_filter import (
    EligibilityReport,
    filter_measures,
    select_measures,
)
from decarb_planner.planning.optimizer import (
    AllocationResult,
    FundingAllocationOptimizer,
    unfunded_allocation,
)
from decarb_planner.taxonomy.measure_taxonomy import TargetHandling

logger = logging.getLogger(__name__)


@dataclass
class CompanyPlanResult:
    """Everything computed for one company in one pass.

    Attributes:
        profile:     Input profile.
        eligibility: Measure eligibility report.
        selected:    Measures kept by the selection step, in processing order.
        candidates:  Candidate funding per category.
        allocation:  Optimizer output; empty when a batch discarded the plan.
        plan:        Aggregated action plan.
        committed:   Whether the drawdowns were committed to the ledger.
        released_funding: Funding the optimizer proposed but the batch
            discarded (0 for committed plans).
    """

    profile:     CompanyProfile
    eligibility: EligibilityReport
    selected:    list[Measure]
    candidates:  FundingCandidates
    allocation:  AllocationResult
    plan:        ActionPlan
    committed:   bool = False
    released_funding: float = 0.0


@dataclass
class BatchResult:
    """Outcome of a batch run.

    Attributes:
        results:   Per-company results in processing order.
        cancelled: True if ``should_stop`` ended the batch early.
    """

    results:   list[CompanyPlanResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def committed_plans(self) -> list[ActionPlan]:
        return [r.plan for r in self.results if r.committed]

    @property
    def reached_target(self) -> list[CompanyPlanResult]:
        return [r for r in self.results if r.plan.reached_target]

    @property
    def released_funding(self) -> float:
        return sum(r.released_funding for r in self.results)

    @property
    def total_investment(self) -> float:
        return sum(r.plan.total_investment for r in self.results)

    @property
    def total_funding(self) -> float:
        return sum(r.plan.total_funding for r in self.results)

    @property
    def total_reduction(self) -> float:
        return sum(r.plan.total_reduction for r in self.results)


class PlanningEngine:
    """Eligibility → selection → funding → allocation → plan, for one or many companies.

    Args:
        measures:  Measure catalog.
        funding:   Funding catalog.
        config:    Application config (selection limit, consistency
            vocabularies, reduction heuristic, target handling).
        ledger:    Budget owner; defaults to a fresh ledger seeded from
            ``funding``.
        optimizer: Allocation optimizer; defaults to the greedy strategy.
    """

    def __init__(
        self,
        measures: MeasureCatalog,
        funding: FundingCatalog,
        config: AppConfig | None = None,
        ledger: BudgetLedger | None = None,
        optimizer: FundingAllocationOptimizer | None = None,
    ) -> None:
        self.measures  = measures
        self.funding   = funding
        self.config    = config or AppConfig()
        self.ledger    = ledger or BudgetLedger.from_catalog(funding)
        self.optimizer = optimizer or FundingAllocationOptimizer()

    def evaluate(self, profile: CompanyProfile) -> EligibilityReport:
        """Measure eligibility for ``profile`` with the configured consistency checks."""
        return filter_measures(
            profile,
            self.measures,
            known_infrastructure_keys=self.config.catalog.known_infrastructure_keys,
            known_funding_categories=self.config.catalog.known_funding_categories,
        )

    def plan_company(
        self,
        profile: CompanyProfile,
        reference_date: date,
        created_at: datetime,
        commit: bool = True,
        generated_by: PlanOrigin = "engine",
    ) -> CompanyPlanResult:
        """Run one planning pass for one company.

        Args:
            profile:        Company profile.
            reference_date: Date funding deadlines are compared against.
            created_at:     Timestamp stamped on the plan.
            commit:         Commit the drawdowns to the ledger.  With
                ``commit=False`` the result is a preview: its allocation is
                what the company would receive, but nothing is reserved.
            generated_by:   Plan origin label.

        Returns:
            ``CompanyPlanResult``; ``committed`` reflects whether the ledger
            was updated.
        """
        snapshot = self.ledger.snapshot()

        report   = self.evaluate(profile)
        selected = select_measures(
            report.applicable, self.config.planning.max_measures_per_company
        )
        candidates = filter_funding(
            profile, selected, self.funding, reference_date, remaining=snapshot
        )
        allocation = self.optimizer.allocate(selected, candidates, snapshot)
        plan = self._build_plan(profile, selected, allocation, created_at, generated_by)

        result = CompanyPlanResult(
            profile=profile,
            eligibility=report,
            selected=selected,
            candidates=candidates,
            allocation=allocation,
            plan=plan,
        )
        if commit:
            self._commit(result)

        logger.info(
            "Planned %s | measures=%d funding=%.2f/%.2f committed=%s",
            profile.company_id, len(selected), plan.total_funding,
            plan.total_investment, result.committed,
            extra={"company_id": profile.company_id},
        )
        return result

    def plan_batch(
        self,
        profiles: Iterable[CompanyProfile],
        reference_date: date,
        created_at: datetime,
        target_handling: TargetHandling | None = None,
        should_stop: Callable[[], bool] | None = None,
        commit_ids: Collection[str] | None = None,
    ) -> BatchResult:
        """Plan many companies sharing this engine's funding ledger.

        Args:
            profiles:        Companies in processing order.
            reference_date:  Date funding deadlines are compared against.
            created_at:      Timestamp stamped on every plan.
            target_handling: Overrides ``config.planning.target_handling``.
            should_stop:     Polled before each company; returning True ends
                the batch with ``cancelled=True``.
            commit_ids:      With ``TargetHandling.REVIEW``, the company ids
                to commit.  ``None`` selects the companies that reach their
                target.

        Returns:
            ``BatchResult`` with every planned company.  A company that is not
            committed carries an unfunded plan: its proposed drawdowns are
            released to the companies after it.

        Raises:
            ValueError: ``commit_ids`` given without ``TargetHandling.REVIEW``.
        """
        handling = target_handling or self.config.planning.target_handling
        if commit_ids is not None and handling is not TargetHandling.REVIEW:
            raise ValueError(
                f"commit_ids requires target handling 'review', got '{handling.value}'."
            )
        chosen = None if commit_ids is None else frozenset(commit_ids)
        batch = BatchResult()

        for profile in profiles:
            if should_stop is not None and should_stop():
                batch.cancelled = True
                logger.warning(
                    "Batch cancelled before %s after %d compan(ies).",
                    profile.company_id, len(batch.results),
                )
                break

            result = self.plan_company(
                profile,
                reference_date,
                created_at,
                commit=False,
                generated_by="bulk_wizard",
            )
            if self._selected(result, handling, chosen):
                self._commit(result)
            else:
                result = self._discard(result, created_at)
            batch.results.append(result)

        logger.info(
            "Batch finished | companies=%d committed=%d cancelled=%s",
            len(batch.results), len(batch.committed_plans), batch.cancelled,
        )
        return batch

    def _build_plan(
        self,
        profile: CompanyProfile,
        selected: list[Measure],
        allocation: AllocationResult,
        created_at: datetime,
        generated_by: PlanOrigin,
    ) -> ActionPlan:
        reduction = self.config.reduction
        return build_action_plan(
            profile,
            selected,
            allocation,
            created_at=created_at,
            generated_by=generated_by,
            reference_emissions=reduction.reference_emissions,
            max_reduction_per_measure=reduction.max_reduction_per_measure,
            max_total_reduction=reduction.max_total_reduction,
        )

    @staticmethod
    def _selected(
        result: CompanyPlanResult,
        handling: TargetHandling,
        chosen: frozenset[str] | None,
    ) -> bool:
        if handling is TargetHandling.ALL:
            return True
        if handling is TargetHandling.REVIEW and chosen is not None:
            return result.profile.company_id in chosen
        # None (unknown intensity) is not a reached target.
        return result.plan.reached_target is True

    def _discard(self, result: CompanyPlanResult, created_at: datetime) -> CompanyPlanResult:
        """Replace a proposed allocation with an unfunded one."""
        proposed = result.allocation
        allocation = unfunded_allocation(result.selected, proposed.remaining_before)
        plan = self._build_plan(
            result.profile, result.selected, allocation, created_at, result.plan.generated_by
        )
        logger.info(
            "Plan for %s not committed; %.2f EUR of proposed funding released.",
            result.profile.company_id, proposed.total_covered,
            extra={"company_id": result.profile.company_id},
        )
        return replace(
            result,
            allocation=allocation,
            plan=plan,
            committed=False,
            released_funding=proposed.total_covered,
        )

    def _commit(self, result: CompanyPlanResult) -> None:
        self.ledger.commit(result.profile.company_id, result.allocation.drawdowns())
        result.committed = True
