import logging
from dataclasses import FrozenInstanceError
from decimal import Decimal
from math import ceil, isclose

import pytest

from mortgage_sim.data_models import PAYOFF_THRESHOLD, QuotaTarget, SimulationParameters, Strategy
from mortgage_sim.engine import simulate
from mortgage_sim.errors import InvalidParameters

BASE = SimulationParameters(
    principal=Decimal("95018"),
    annual_rate_percent=Decimal("2.55"),
    monthly_payment=Decimal("407.43"),
)


def _assert_schedule_invariants(result):
    for previous, current in zip(result.schedule, result.schedule[1:]):
        assert current.month == previous.month + 1
        assert current.balance <= previous.balance
        assert current.accumulated_interest >= previous.accumulated_interest
    assert result.schedule[0].month == 1
    assert len(result.schedule) == result.total_months


def test_base_case_reference_values():
    """The reference loan pays off in 323 months with about 36331.49 of interest"""
    result = simulate(BASE)
    assert result.converged
    assert result.total_months == 323
    assert result.total_years == Decimal(323) / Decimal(12)
    assert isclose(result.total_interest, Decimal("36331.4863035731"), abs_tol=1e-6)
    assert result.schedule[-1].balance <= PAYOFF_THRESHOLD
    # the last payment only clears what is left
    assert result.schedule[-1].payment < BASE.monthly_payment
    _assert_schedule_invariants(result)


@pytest.mark.parametrize(
    "strategy, months, interest",
    [(Strategy.REDUCE_TERM, 252, "27847.83"), (Strategy.REDUCE_QUOTA, 323, "31544.04")],
)
def test_reference_values_with_yearly_extra_payment(strategy, months, interest):
    result = simulate(BASE.with_changes(amortization_amount=Decimal("1000"), strategy=strategy))
    assert result.converged
    assert result.total_months == months
    assert isclose(result.total_interest, Decimal(interest), abs_tol=0.01)


def test_total_paid_is_interest_plus_repaid_principal():
    for params in (
        BASE,
        BASE.with_changes(amortization_amount=Decimal("1000")),
        BASE.with_changes(amortization_amount=Decimal("1000"), strategy=Strategy.REDUCE_QUOTA),
    ):
        result = simulate(params)
        expected = result.total_interest + (params.principal - result.final_balance)
        assert isclose(result.total_paid, expected, abs_tol=1e-6)
        assert isclose(sum(e.payment for e in result.schedule), result.total_paid, abs_tol=1e-6)
        assert result.schedule[-1].accumulated_interest == result.total_interest


def test_first_month_breakdown():
    result = simulate(BASE)
    first = result.schedule[0]
    assert first.interest == Decimal("95018") * Decimal("0.002125")
    assert first.payment == Decimal("407.43")
    assert first.extra_payment == 0
    assert first.balance == Decimal("95018") - (Decimal("407.43") - first.interest)


def test_zero_rate_without_amortization():
    """Interest-free loans take ceil(principal / payment) months"""
    for principal, payment in ((Decimal("120000"), Decimal("1000")), (Decimal("1000"), Decimal("300"))):
        result = simulate(
            SimulationParameters(principal=principal, annual_rate_percent=Decimal("0"), monthly_payment=payment)
        )
        assert result.total_months == ceil(principal / payment)
        assert result.total_interest == 0
        assert result.total_paid == principal


def test_zero_rate_reduce_term():
    """12000 at 500 a month with 1200 extra after a year finishes in month 22"""
    result = simulate(
        SimulationParameters(
            principal=Decimal("12000"),
            annual_rate_percent=Decimal("0"),
            monthly_payment=Decimal("500"),
            amortization_amount=Decimal("1200"),
            strategy=Strategy.REDUCE_TERM,
        )
    )
    assert result.total_months == 22
    assert result.schedule[11].extra_payment == Decimal("1200")
    assert result.schedule[11].payment == Decimal("1700")
    assert result.schedule[11].balance == Decimal("4800")
    assert result.schedule[12].payment == Decimal("500")
    assert result.schedule[-1].payment == Decimal("300")
    assert result.total_paid == Decimal("12000")


@pytest.mark.parametrize("quota_target", list(QuotaTarget))
def test_zero_rate_reduce_quota_keeps_term(quota_target):
    """The same loan under 'quota' keeps its 24 months and pays 400 from month 13"""
    result = simulate(
        SimulationParameters(
            principal=Decimal("12000"),
            annual_rate_percent=Decimal("0"),
            monthly_payment=Decimal("500"),
            amortization_amount=Decimal("1200"),
            strategy=Strategy.REDUCE_QUOTA,
            quota_target=quota_target,
        )
    )
    assert result.total_months == 24
    assert result.schedule[12].payment == Decimal("400")
    assert result.schedule[-1].balance == 0
    assert result.total_interest == 0


def test_amortization_disabled_strategies_match():
    term = simulate(BASE.with_changes(strategy=Strategy.REDUCE_TERM))
    quota = simulate(BASE.with_changes(strategy=Strategy.REDUCE_QUOTA))
    assert term == quota


def test_reduce_term_shortens_loan():
    base = simulate(BASE)
    result = simulate(BASE.with_changes(amortization_amount=Decimal("1000"), strategy=Strategy.REDUCE_TERM))
    assert result.total_interest < base.total_interest
    assert result.total_years < base.total_years
    _assert_schedule_invariants(result)
    # extra payments land on every 12th month only
    for entry in result.schedule:
        if entry.extra_payment:
            assert entry.month % 12 == 0


def test_reduce_quota_keeps_term_and_lowers_payment():
    base = simulate(BASE)
    term = simulate(BASE.with_changes(amortization_amount=Decimal("1000"), strategy=Strategy.REDUCE_TERM))
    quota = simulate(BASE.with_changes(amortization_amount=Decimal("1000"), strategy=Strategy.REDUCE_QUOTA))
    assert abs(quota.total_months - base.total_months) <= 1
    assert quota.total_interest < base.total_interest
    assert base.total_interest - quota.total_interest <= base.total_interest - term.total_interest
    # the regular payment drops after the first extra payment
    assert quota.schedule[12].payment < BASE.monthly_payment
    assert quota.schedule[24].payment < quota.schedule[12].payment
    _assert_schedule_invariants(quota)


def test_reduce_quota_original_target_matches_implied():
    """Both ways of picking the term agree on the reference loan"""
    params = BASE.with_changes(amortization_amount=Decimal("1000"), strategy=Strategy.REDUCE_QUOTA)
    implied = simulate(params.with_changes(quota_target=QuotaTarget.IMPLIED))
    original = simulate(params.with_changes(quota_target=QuotaTarget.ORIGINAL))
    assert implied.total_months == original.total_months
    assert isclose(implied.total_interest, original.total_interest, rel_tol=1e-6)


@pytest.mark.parametrize("strategy", list(Strategy))
def test_more_amortization_never_costs_more_interest_or_months(strategy):
    results = [
        simulate(BASE.with_changes(amortization_amount=Decimal(amount), strategy=strategy))
        for amount in ("0", "500", "1000", "1500", "2000", "3000", "5000", "8000")
    ]
    for smaller, larger in zip(results, results[1:]):
        assert larger.total_interest <= smaller.total_interest
        assert larger.total_months <= smaller.total_months
    # large enough extra payments shorten the loan under either strategy
    assert results[-1].total_months < results[0].total_months


def test_reduce_quota_term_shortens_once_extra_payments_are_large():
    months = [
        simulate(BASE.with_changes(amortization_amount=Decimal(amount), strategy=Strategy.REDUCE_QUOTA)).total_months
        for amount in ("1000", "1500", "2000", "3000")
    ]
    assert months == [323, 300, 288, 240]


def test_extra_payment_capped_at_balance():
    result = simulate(
        SimulationParameters(
            principal=Decimal("5000"),
            annual_rate_percent=Decimal("0"),
            monthly_payment=Decimal("100"),
            amortization_amount=Decimal("10000"),
        )
    )
    assert result.total_months == 12
    assert result.schedule[-1].extra_payment == Decimal("3800")
    assert result.schedule[-1].payment == Decimal("3900")
    assert result.total_paid == Decimal("5000")


def test_non_convergence_returns_partial_schedule(caplog):
    """A payment below the monthly interest runs into the ceiling without raising"""
    params = SimulationParameters(
        principal=Decimal("100000"),
        annual_rate_percent=Decimal("6"),
        monthly_payment=Decimal("400"),
        max_months=60,
    )
    with caplog.at_level(logging.WARNING, logger="mortgage_sim.engine"):
        result = simulate(params)
    assert result.total_months == 60
    assert len(result.schedule) == 60
    assert not result.converged
    assert result.hit_ceiling
    assert result.final_balance > params.principal
    assert "not paid off" in caplog.text


def test_default_ceiling_is_100_years():
    result = simulate(
        SimulationParameters(
            principal=Decimal("100000"),
            annual_rate_percent=Decimal("6"),
            monthly_payment=Decimal("500"),
        )
    )
    assert result.total_months == 1200
    assert result.hit_ceiling
    # interest-only payments leave the balance where it was
    assert result.final_balance == Decimal("100000")


def test_payoff_on_last_allowed_month_is_not_a_ceiling_hit():
    result = simulate(
        SimulationParameters(
            principal=Decimal("1200"),
            annual_rate_percent=Decimal("0"),
            monthly_payment=Decimal("100"),
            max_months=12,
        )
    )
    assert result.total_months == 12
    assert result.converged
    assert not result.hit_ceiling


def test_reduce_quota_degenerate_recompute_keeps_payment():
    """An interest-only payment cannot imply a term, so the payment is held"""
    for quota_target in QuotaTarget:
        result = simulate(
            SimulationParameters(
                principal=Decimal("100000"),
                annual_rate_percent=Decimal("6"),
                monthly_payment=Decimal("500"),
                amortization_amount=Decimal("1000"),
                strategy=Strategy.REDUCE_QUOTA,
                quota_target=quota_target,
                max_months=120,
            )
        )
        assert result.schedule[12].payment == Decimal("500")
        for entry in result.schedule:
            assert entry.balance.is_finite()
            assert entry.payment.is_finite()
        _assert_schedule_invariants(result)


def test_schedule_is_immutable():
    result = simulate(BASE)
    assert isinstance(result.schedule, tuple)
    with pytest.raises(FrozenInstanceError):
        result.schedule[0].balance = Decimal("0")
    with pytest.raises(FrozenInstanceError):
        result.total_months = 1


@pytest.mark.parametrize(
    "changes, field",
    [
        ({"principal": Decimal("0")}, "principal"),
        ({"principal": Decimal("-1")}, "principal"),
        ({"monthly_payment": Decimal("0")}, "monthly_payment"),
        ({"annual_rate_percent": Decimal("-0.5")}, "annual_rate_percent"),
        ({"amortization_amount": Decimal("-100")}, "amortization_amount"),
        ({"principal": Decimal("NaN")}, "principal"),
        ({"monthly_payment": Decimal("Infinity")}, "monthly_payment"),
        ({"principal": 95018.0}, "principal"),
        ({"strategy": "term"}, "strategy"),
        ({"quota_target": "exact"}, "quota_target"),
        ({"max_months": 0}, "max_months"),
    ],
)
def test_invalid_parameters(changes, field):
    with pytest.raises(InvalidParameters) as excinfo:
        simulate(BASE.with_changes(**changes))
    assert any(message.startswith(field) for message in excinfo.value.errors)


def test_invalid_parameters_lists_every_problem():
    params = SimulationParameters(
        principal=Decimal("-1"),
        annual_rate_percent=Decimal("-1"),
        monthly_payment=Decimal("0"),
        amortization_amount=Decimal("-1"),
    )
    with pytest.raises(InvalidParameters) as excinfo:
        simulate(params)
    assert len(excinfo.value.errors) == 4
    assert isinstance(excinfo.value, ValueError)
