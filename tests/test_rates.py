from decimal import Decimal
from math import isclose

import pytest

from mortgage_sim.errors import DegenerateTermError
from mortgage_sim.rates import (
    annuity_payment,
    interest_only_payment,
    monthly_rate,
    remaining_months,
)


def test_monthly_rate_from_percent():
    """2.55 % a year is 0.2125 % a month"""
    assert monthly_rate(Decimal("2.55")) == Decimal("0.002125")
    assert monthly_rate(Decimal("3")) == Decimal("0.0025")
    assert monthly_rate(Decimal("0")) == 0


def test_annuity_payment_zero_interest():
    """Test monthly payment calculation with zero interest rate"""
    payment = annuity_payment(Decimal("120000"), Decimal("0"), Decimal("120"))
    assert payment == Decimal("1000")


def test_annuity_payment_typical_case():
    """Test monthly payment calculation with typical values"""
    payment = annuity_payment(Decimal("200000"), monthly_rate(Decimal("3")), Decimal("300"))
    assert isclose(payment, 948.42, rel_tol=1e-4)


def test_annuity_payment_one_month():
    """A one month term repays the principal plus one month of interest"""
    payment = annuity_payment(Decimal("100000"), monthly_rate(Decimal("3")), Decimal("1"))
    assert isclose(payment, 100250, rel_tol=1e-9)


def test_annuity_payment_fractional_term():
    """Fractional terms fall between the neighbouring whole terms"""
    principal = Decimal("50000")
    rate = monthly_rate(Decimal("4"))
    shorter = annuity_payment(principal, rate, Decimal("120"))
    longer = annuity_payment(principal, rate, Decimal("121"))
    between = annuity_payment(principal, rate, Decimal("120.5"))
    assert longer < between < shorter


@pytest.mark.parametrize("term", [Decimal("0"), Decimal("-1")])
def test_annuity_payment_rejects_non_positive_term(term):
    with pytest.raises(ValueError):
        annuity_payment(Decimal("1000"), Decimal("0.01"), term)


def test_remaining_months_zero_interest():
    assert remaining_months(Decimal("1000"), Decimal("0"), Decimal("250")) == Decimal("4")


def test_remaining_months_inverts_annuity_payment():
    """Solving for the term gives back the term the payment was built for"""
    principal = Decimal("95018")
    rate = monthly_rate(Decimal("2.55"))
    payment = annuity_payment(principal, rate, Decimal("360"))
    assert isclose(remaining_months(principal, rate, payment), 360, rel_tol=1e-9)


def test_remaining_months_reference_loan():
    """95018 at 2.55 % paid with 407.43 a month needs a bit over 322 months"""
    n = remaining_months(Decimal("95018"), monthly_rate(Decimal("2.55")), Decimal("407.43"))
    assert 322 < n < 323


@pytest.mark.parametrize("payment", [Decimal("500"), Decimal("400"), Decimal("0"), Decimal("-10")])
def test_remaining_months_payment_not_above_interest(payment):
    """Payments at or below the monthly interest never amortize the loan"""
    rate = monthly_rate(Decimal("6"))
    assert interest_only_payment(Decimal("100000"), rate) == Decimal("500")
    with pytest.raises(DegenerateTermError):
        remaining_months(Decimal("100000"), rate, payment)


def test_degenerate_term_error_is_value_error():
    with pytest.raises(ValueError):
        remaining_months(Decimal("100000"), Decimal("0.01"), Decimal("1"))
