"""Core calculation engine for the mortgage simulator.

This module runs the month-by-month amortization of a fixed-payment loan.
Every 12 months an optional extra payment ("amortization") is applied; under
the ``quota`` strategy the monthly payment is then re-derived so the payoff
date is kept, under the ``term`` strategy the payment is left alone and the
loan simply finishes earlier. Results are returned as a
:class:`SimulationResult` holding the full monthly schedule and the totals.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from .data_models import (
    PAYOFF_THRESHOLD,
    QuotaTarget,
    ScheduleEntry,
    SimulationParameters,
    SimulationResult,
    Strategy,
)
from .errors import DegenerateTermError, InvalidParameters
from .rates import annuity_payment, monthly_rate, remaining_months

logger = logging.getLogger(__name__)

AMORTIZATION_INTERVAL = 12  # months between extra payments


def validate_parameters(params: SimulationParameters) -> None:
    """Raise :class:`InvalidParameters` listing every unusable field."""
    errors: List[str] = []

    def _check(name: str, value: object, allow_zero: bool) -> None:
        if not isinstance(value, Decimal) or not value.is_finite():
            errors.append(f"{name} must be a finite number; got {value!r}")
        elif allow_zero and value < 0:
            errors.append(f"{name} must not be negative; got {value}")
        elif not allow_zero and value <= 0:
            errors.append(f"{name} must be positive; got {value}")

    _check("principal", params.principal, allow_zero=False)
    _check("monthly_payment", params.monthly_payment, allow_zero=False)
    _check("annual_rate_percent", params.annual_rate_percent, allow_zero=True)
    _check("amortization_amount", params.amortization_amount, allow_zero=True)
    if not isinstance(params.strategy, Strategy):
        errors.append(f"strategy must be one of {[s.value for s in Strategy]}; got {params.strategy!r}")
    if not isinstance(params.quota_target, QuotaTarget):
        errors.append(
            f"quota_target must be one of {[t.value for t in QuotaTarget]}; got {params.quota_target!r}"
        )
    if isinstance(params.max_months, bool) or not isinstance(params.max_months, int) or params.max_months < 1:
        errors.append(f"max_months must be a positive integer; got {params.max_months!r}")
    if errors:
        raise InvalidParameters(errors)


def _original_term(params: SimulationParameters, rate: Decimal) -> Optional[Decimal]:
    """Return the payoff term of the loan without extra payments, if it has one."""
    try:
        return remaining_months(params.principal, rate, params.monthly_payment)
    except DegenerateTermError:
        return None


def _reduced_payment(
    balance: Decimal,
    extra: Decimal,
    rate: Decimal,
    current_payment: Decimal,
    month: int,
    quota_target: QuotaTarget,
    original_term: Optional[Decimal],
) -> Decimal:
    """Return the payment that keeps the payoff date after an extra payment.

    ``balance`` is the balance after ``extra`` was applied. When no positive
    remaining term can be derived the current payment is kept.
    """
    if quota_target is QuotaTarget.ORIGINAL:
        term = original_term - month if original_term is not None else None
    else:
        try:
            term = remaining_months(balance + extra, rate, current_payment)
        except DegenerateTermError as exc:
            logger.debug("Month %d: keeping payment %s (%s)", month, current_payment, exc)
            return current_payment
    if term is None or term <= 0:
        logger.debug("Month %d: no remaining term, keeping payment %s", month, current_payment)
        return current_payment
    return annuity_payment(balance, rate, term)


def simulate(params: SimulationParameters) -> SimulationResult:
    """Simulate the loan month by month.

    Parameters
    ----------
    params: SimulationParameters
        The loan and the extra-payment policy.

    Returns
    -------
    SimulationResult
        The monthly schedule and totals. If the loan is still open after
        ``params.max_months`` months, the partial schedule is returned with
        ``total_months == max_months``; no exception is raised.

    Raises
    ------
    InvalidParameters
        If the parameters cannot describe a loan (non-positive principal or
        payment, negative rate or extra payment, unknown strategy).
    """
    validate_parameters(params)

    rate = monthly_rate(params.annual_rate_percent)
    balance = params.principal
    current_payment = params.monthly_payment
    total_interest = Decimal("0")
    total_paid = Decimal("0")
    month = 0
    schedule: List[ScheduleEntry] = []

    reduce_quota = params.strategy is Strategy.REDUCE_QUOTA and params.amortization_amount > 0
    original_term = None
    if reduce_quota and params.quota_target is QuotaTarget.ORIGINAL:
        original_term = _original_term(params, rate)

    while balance > PAYOFF_THRESHOLD and month < params.max_months:
        month += 1

        interest = balance * rate
        # The last payment only clears what is left
        payment = min(current_payment, balance + interest)
        balance -= payment - interest
        total_interest += interest
        total_paid += payment

        extra = Decimal("0")
        if month % AMORTIZATION_INTERVAL == 0 and balance > 0 and params.amortization_amount > 0:
            extra = min(params.amortization_amount, balance)
            balance -= extra
            total_paid += extra
            if reduce_quota:
                current_payment = _reduced_payment(
                    balance,
                    extra,
                    rate,
                    current_payment,
                    month,
                    params.quota_target,
                    original_term,
                )

        schedule.append(
            ScheduleEntry(
                month=month,
                balance=max(Decimal("0"), balance),
                interest=interest,
                payment=payment + extra,
                extra_payment=extra,
                accumulated_interest=total_interest,
            )
        )

    result = SimulationResult(
        schedule=tuple(schedule),
        total_interest=total_interest,
        total_paid=total_paid,
        total_months=month,
        final_balance=max(Decimal("0"), balance),
        max_months=params.max_months,
    )
    if not result.converged:
        logger.warning(
            "Loan not paid off within %d months; %s still outstanding",
            params.max_months,
            result.final_balance,
        )
    return result
