"""Utility functions for the mortgage simulator.

This module provides helpers for turning user input into ``Decimal`` values,
for sampling a monthly schedule at a coarser stride (the charts plot one
point per year) and for converting results into JSON-serialisable
dictionaries for the exports, the web payload and the comparison store.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Sequence, Union

from .data_models import (
    ComparisonResult,
    ScheduleEntry,
    SimulationParameters,
    SimulationResult,
)

Number = Union[Decimal, int, float, str]


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        return Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Number) -> Decimal:
    """Return ``value`` as a ``Decimal``.

    Floats go through ``str`` so that ``2.55`` becomes ``Decimal("2.55")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return decimal_from_str(value)


def sample_balances(schedule: Sequence[ScheduleEntry], stride: int = 12) -> List[Decimal]:
    """Return the balance of every ``stride``-th entry, starting with the first."""
    if stride <= 0:
        raise ValueError("Stride must be positive")
    return [entry.balance for entry in schedule[::stride]]


def aligned_yearly_balances(
    base: SimulationResult, scenario: SimulationResult, stride: int = 12
) -> Dict[str, List[Any]]:
    """Sample two schedules on the base schedule's grid.

    The scenario usually pays off earlier; months past its end are plotted as
    a zero balance so both series have the same length.
    """
    base_points = [float(balance) for balance in sample_balances(base.schedule, stride)]
    scenario_points = [float(balance) for balance in sample_balances(scenario.schedule, stride)]
    scenario_points = scenario_points[: len(base_points)]
    scenario_points += [0.0] * (len(base_points) - len(scenario_points))
    labels = [entry.month // 12 for entry in base.schedule[::stride]]
    return {"labels": labels, "base": base_points, "scenario": scenario_points}


def params_to_dict(params: SimulationParameters) -> Dict[str, Any]:
    return {
        "principal": float(params.principal),
        "annual_rate_percent": float(params.annual_rate_percent),
        "monthly_payment": float(params.monthly_payment),
        "amortization_amount": float(params.amortization_amount),
        "strategy": params.strategy.value,
        "quota_target": params.quota_target.value,
        "max_months": params.max_months,
    }


def schedule_to_dicts(schedule: Iterable[ScheduleEntry]) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries."""
    serialized = []
    for entry in schedule:
        serialized.append(
            {
                "month": entry.month,
                "balance": float(entry.balance),
                "interest": float(entry.interest),
                "payment": float(entry.payment),
                "extra_payment": float(entry.extra_payment),
                "accumulated_interest": float(entry.accumulated_interest),
            }
        )
    return serialized


def summary_to_dict(result: SimulationResult) -> Dict[str, Any]:
    return {
        "total_interest": float(result.total_interest),
        "total_paid": float(result.total_paid),
        "total_months": result.total_months,
        "total_years": float(result.total_years),
        "final_balance": float(result.final_balance),
        "converged": result.converged,
    }


def result_to_dict(result: SimulationResult) -> Dict[str, Any]:
    return {"summary": summary_to_dict(result), "schedule": schedule_to_dicts(result.schedule)}


def comparison_to_dict(comparison: ComparisonResult) -> Dict[str, Any]:
    return {
        "base": summary_to_dict(comparison.base),
        "scenario": summary_to_dict(comparison.scenario),
        "savings": {
            "interest": float(comparison.savings.interest),
            "years": float(comparison.savings.years),
            "months": comparison.savings.months,
            "total_paid": float(comparison.savings.total_paid),
        },
    }
