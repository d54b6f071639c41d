"""Data models for the mortgage simulator.

This module defines dataclasses representing the entities used by the
simulator: the strategy enums, the input parameters, individual schedule
entries and the results of a simulation or a comparison. All of them are
frozen; a result is fully built before it is handed to a caller and is never
changed afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Tuple

DEFAULT_MAX_MONTHS = 1200  # 100 years
PAYOFF_THRESHOLD = Decimal("0.01")


class Strategy(str, Enum):
    """What an annual extra payment does to the loan.

    ``"term"`` keeps the monthly payment and shortens the payoff date.
    ``"quota"`` keeps the payoff date and lowers the monthly payment.
    """

    REDUCE_TERM = "term"
    REDUCE_QUOTA = "quota"


class QuotaTarget(str, Enum):
    """Which remaining term a ``quota`` recompute amortizes over.

    ``"implied"`` derives the term from the balance just before the extra
    payment and the payment in effect. ``"original"`` keeps the payoff date of
    the loan without extra payments, computed once when the simulation starts.
    """

    IMPLIED = "implied"
    ORIGINAL = "original"


@dataclass(frozen=True)
class SimulationParameters:
    """Inputs of one simulation run.

    Attributes
    ----------
    principal: Decimal
        Outstanding balance at month 0.
    annual_rate_percent: Decimal
        Nominal annual rate in percent (``Decimal("2.55")`` means 2.55 %).
    monthly_payment: Decimal
        Scheduled payment at the start of the simulation.
    amortization_amount: Decimal
        Extra payment applied every 12 months. Zero disables the policy.
    strategy: Strategy
        What happens to the monthly payment after an extra payment.
    quota_target: QuotaTarget
        Term used when ``strategy`` is ``REDUCE_QUOTA``.
    max_months: int
        Safety ceiling. Reaching it means the loan did not pay off.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    monthly_payment: Decimal
    amortization_amount: Decimal = Decimal("0")
    strategy: Strategy = Strategy.REDUCE_TERM
    quota_target: QuotaTarget = QuotaTarget.IMPLIED
    max_months: int = DEFAULT_MAX_MONTHS

    def with_changes(self, **changes) -> "SimulationParameters":
        return replace(self, **changes)


@dataclass(frozen=True)
class ScheduleEntry:
    """One simulated month.

    ``payment`` is the total cash paid that month: the regular payment that was
    actually applied plus ``extra_payment`` (zero outside amortization months).
    ``balance`` is floored at zero.
    """

    month: int
    balance: Decimal
    interest: Decimal
    payment: Decimal
    extra_payment: Decimal
    accumulated_interest: Decimal


@dataclass(frozen=True)
class SimulationResult:
    schedule: Tuple[ScheduleEntry, ...]
    total_interest: Decimal
    total_paid: Decimal
    total_months: int
    final_balance: Decimal
    max_months: int = DEFAULT_MAX_MONTHS

    @property
    def total_years(self) -> Decimal:
        return Decimal(self.total_months) / Decimal(12)

    @property
    def converged(self) -> bool:
        """True when the loan was paid off before the ceiling stopped the run."""
        return self.final_balance <= PAYOFF_THRESHOLD

    @property
    def hit_ceiling(self) -> bool:
        return not self.converged and self.total_months >= self.max_months


@dataclass(frozen=True)
class Savings:
    """Base value minus scenario value; positive means the scenario is better."""

    interest: Decimal
    years: Decimal
    months: int
    total_paid: Decimal

    def __neg__(self) -> "Savings":
        return Savings(
            interest=-self.interest,
            years=-self.years,
            months=-self.months,
            total_paid=-self.total_paid,
        )


@dataclass(frozen=True)
class ComparisonResult:
    base: SimulationResult
    scenario: SimulationResult
    savings: Savings


@dataclass(frozen=True)
class StrategyComparison:
    """Both strategies run against the same loan without extra payments."""

    base: SimulationResult
    reduce_term: SimulationResult
    reduce_quota: SimulationResult
    term_savings: Savings
    quota_savings: Savings
    best: Strategy

    @property
    def advantage(self) -> Decimal:
        """Extra interest saved by ``best`` over the other strategy."""
        return abs(self.term_savings.interest - self.quota_savings.interest)
