"""Rate and payment formulas.

Stateless helpers used by the simulation engine. Every function works on
``Decimal`` values in the precision context set up here.
"""

from __future__ import annotations

from decimal import Decimal, getcontext

from .errors import DegenerateTermError

getcontext().prec = 28  # increase precision for financial calculations


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert a nominal annual percentage into a monthly decimal rate."""
    return annual_rate_percent / Decimal(12) / Decimal(100)


def interest_only_payment(principal: Decimal, rate: Decimal) -> Decimal:
    """Return the payment that covers one month of interest and nothing else."""
    return principal * rate


def annuity_payment(principal: Decimal, rate: Decimal, total_months: Decimal) -> Decimal:
    """Return the fixed payment that amortizes ``principal`` in ``total_months``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. ``n`` may be fractional. When the
    interest rate is zero, the payment simplifies to ``P / n``.
    """
    total_months = Decimal(total_months)
    if total_months <= 0:
        raise ValueError("Term must be positive")
    if rate == 0:
        return principal / total_months
    factor = (1 + rate) ** total_months
    return principal * (rate * factor) / (factor - 1)


def remaining_months(principal: Decimal, rate: Decimal, payment: Decimal) -> Decimal:
    """Return the number of periods ``payment`` needs to amortize ``principal``.

    Solves the annuity formula for ``n``:

        n = -ln(1 - i * P / M) / ln(1 + i)

    The payment has to exceed the interest-only amount, otherwise the loan
    never shrinks and :class:`DegenerateTermError` is raised.
    """
    if payment <= 0:
        raise DegenerateTermError(f"Payment must be positive; got {payment}")
    if rate == 0:
        return principal / payment
    if payment <= interest_only_payment(principal, rate):
        raise DegenerateTermError(
            f"Payment {payment} does not exceed the monthly interest "
            f"{interest_only_payment(principal, rate)}"
        )
    numerator = (1 - rate * principal / payment).ln()
    denominator = (1 + rate).ln()
    return -numerator / denominator
