"""Output helpers for the mortgage simulator.

This module provides simple functions to render schedules, summaries and
comparisons in a tabular text format, plus the wording of the best-strategy
recommendation. We rely only on built-in printing and string formatting.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Union

from .data_models import (
    ComparisonResult,
    ScheduleEntry,
    SimulationResult,
    Strategy,
    StrategyComparison,
)

STRATEGY_LABELS = {
    Strategy.REDUCE_TERM: "Reduce term",
    Strategy.REDUCE_QUOTA: "Reduce payment",
}


def format_years(value: Union[Decimal, float]) -> str:
    """Render a duration in years with one decimal, e.g. ``26.9 years``."""
    return f"{float(value):.1f} years"


def non_convergence_message(result: SimulationResult) -> str:
    return (
        f"The loan does not pay off within {format_years(Decimal(result.max_months) / 12)} "
        f"({result.final_balance:.2f} still outstanding); consider increasing the payment."
    )


def print_summary(result: SimulationResult) -> None:
    """Print the totals of a simulation in a human‑readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Total interest     : {result.total_interest:.2f}")
    print(f"Total paid         : {result.total_paid:.2f}")
    print(f"Months             : {result.total_months}")
    print(f"Duration           : {format_years(result.total_years)}")
    extra = sum((e.extra_payment for e in result.schedule), Decimal("0"))
    if extra:
        print(f"Extra payments     : {extra:.2f}")
    if not result.converged:
        print(f"Outstanding        : {result.final_balance:.2f}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Month", "Payment", "Extra", "Interest", "AccInterest", "Balance"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.month),
            f"{entry.payment:.2f}",
            f"{entry.extra_payment:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.accumulated_interest:.2f}",
            f"{entry.balance:.2f}",
        ]
        print("\t".join(row))


def print_comparison(comparison: ComparisonResult) -> None:
    """Print the base and the scenario side by side.

    The last column is base minus scenario, so a positive value means the
    scenario is cheaper or shorter.
    """
    base, scenario = comparison.base, comparison.scenario
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Base':>15s} {'Scenario':>15s} {'Savings':>15s}")
    rows = [
        ("total_interest", base.total_interest, scenario.total_interest),
        ("total_paid", base.total_paid, scenario.total_paid),
        ("total_years", base.total_years, scenario.total_years),
    ]
    for key, v1, v2 in rows:
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {v1 - v2:15.2f}")
    print(f"{'total_months':20s} {base.total_months:15d} {scenario.total_months:15d} {comparison.savings.months:15d}")
    print("=" * 72)


def describe_best_strategy(comparison: StrategyComparison) -> str:
    """Return a one-paragraph recommendation for the cheaper strategy."""
    label = STRATEGY_LABELS[comparison.best]
    if comparison.best is Strategy.REDUCE_TERM:
        return (
            f"{label} is better: it saves {comparison.advantage:.2f} more interest "
            f"than reducing the payment."
        )
    return f"{label} is better (unusual, but possible): it saves {comparison.advantage:.2f} more interest."
