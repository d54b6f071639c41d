"""Scenario comparison.

Runs the simulation engine for two parameter sets and reports how much the
second one saves against the first. The two runs share no state, so they can
optionally be executed on a small thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from .data_models import (
    ComparisonResult,
    Savings,
    SimulationParameters,
    SimulationResult,
    Strategy,
    StrategyComparison,
)
from .engine import simulate, validate_parameters
from .errors import InvalidParameters

logger = logging.getLogger(__name__)


def savings_between(base: SimulationResult, scenario: SimulationResult) -> Savings:
    """Return base minus scenario for interest, duration and total paid."""
    return Savings(
        interest=base.total_interest - scenario.total_interest,
        years=base.total_years - scenario.total_years,
        months=base.total_months - scenario.total_months,
        total_paid=base.total_paid - scenario.total_paid,
    )


def compare(
    base_params: SimulationParameters,
    scenario_params: SimulationParameters,
    parallel: bool = False,
) -> ComparisonResult:
    """Simulate both parameter sets and compute the savings of the scenario.

    A positive saving means the scenario is better than the base.
    """
    if parallel:
        with ThreadPoolExecutor(max_workers=2) as pool:
            base_future = pool.submit(simulate, base_params)
            scenario_future = pool.submit(simulate, scenario_params)
            base = base_future.result()
            scenario = scenario_future.result()
    else:
        base = simulate(base_params)
        scenario = simulate(scenario_params)
    return ComparisonResult(base=base, scenario=scenario, savings=savings_between(base, scenario))


def baseline_for(params: SimulationParameters) -> SimulationParameters:
    """Return the same loan without extra payments."""
    return params.with_changes(amortization_amount=Decimal("0"), strategy=Strategy.REDUCE_TERM)


def compare_strategies(params: SimulationParameters) -> StrategyComparison:
    """Run both strategies with the same extra payment and pick the cheaper one.

    ``REDUCE_TERM`` wins only when it saves strictly more interest than
    ``REDUCE_QUOTA``; on a tie ``REDUCE_QUOTA`` is reported.
    """
    validate_parameters(params)
    if params.amortization_amount <= 0:
        raise InvalidParameters(["amortization_amount must be positive to compare strategies"])

    base = simulate(baseline_for(params))
    reduce_term = simulate(params.with_changes(strategy=Strategy.REDUCE_TERM))
    reduce_quota = simulate(params.with_changes(strategy=Strategy.REDUCE_QUOTA))
    term_savings = savings_between(base, reduce_term)
    quota_savings = savings_between(base, reduce_quota)

    if term_savings.interest > quota_savings.interest:
        best = Strategy.REDUCE_TERM
    else:
        best = Strategy.REDUCE_QUOTA
    logger.debug(
        "Strategy comparison: term saves %s, quota saves %s, best=%s",
        term_savings.interest,
        quota_savings.interest,
        best.value,
    )
    return StrategyComparison(
        base=base,
        reduce_term=reduce_term,
        reduce_quota=reduce_quota,
        term_savings=term_savings,
        quota_savings=quota_savings,
        best=best,
    )
