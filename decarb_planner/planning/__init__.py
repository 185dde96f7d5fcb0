"""
Planning core: turns a company profile and the catalogs into an action plan
with funding allocated against shared budgets.

Modules
-------
constraints    : closed set of applicability constraints + one evaluator.
measure_filter : filter_measures() + select_measures(); eligibility report.
funding_filter : filter_funding(); candidate sources per measure category.
optimizer      : AllocationStrategy, greedy strategy, FundingAllocationOptimizer.
ledger         : BudgetLedger; sole owner of remaining budgets.
aggregator     : build_action_plan(); totals and target projection.
engine         : PlanningEngine; single-company and batch orchestration.
"""
