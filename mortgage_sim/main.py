"""Command‑line interface for the mortgage simulator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can simulate a loan with a yearly extra payment, compare it
with the same loan without extra payments, or ask which of the two strategies
saves more interest. Results can be printed to the terminal or exported to
JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click

from .compare import baseline_for, compare as compare_scenarios, compare_strategies
from .data_models import DEFAULT_MAX_MONTHS, QuotaTarget, SimulationParameters, SimulationResult, Strategy
from .engine import simulate as run_simulation
from .errors import InvalidParameters
from .formatter import (
    describe_best_strategy,
    non_convergence_message,
    print_comparison,
    print_schedule,
    print_summary,
)
from .utils import comparison_to_dict, decimal_from_str, result_to_dict

DEFAULT_BEST_STRATEGY_AMOUNT = "1000"


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("95018", "95,018") and shorthand with ``k``/``m``
    suffixes (e.g., "95k" meaning 95_000). Returns a ``Decimal``.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse an annual rate in percent ("2.55" or "2.55%")."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return decimal_from_str(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def build_params_from_options(
    principal: str,
    rate: str,
    payment: str,
    amortization: str = "0",
    strategy: str = Strategy.REDUCE_TERM.value,
    quota_target: str = QuotaTarget.IMPLIED.value,
    max_months: int = DEFAULT_MAX_MONTHS,
) -> SimulationParameters:
    return SimulationParameters(
        principal=parse_amount(principal),
        annual_rate_percent=parse_percent(rate),
        monthly_payment=parse_amount(payment),
        amortization_amount=parse_amount(amortization),
        strategy=Strategy(strategy.lower()),
        quota_target=QuotaTarget(quota_target.lower()),
        max_months=max_months,
    )


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: SimulationResult) -> None:
    """Export the schedule to a CSV file."""
    header = ["Month", "Payment", "Extra_Payment", "Interest", "Accumulated_Interest", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in result.schedule:
            writer.writerow(
                [
                    e.month,
                    float(e.payment),
                    float(e.extra_payment),
                    float(e.interest),
                    float(e.accumulated_interest),
                    float(e.balance),
                ]
            )


def _run(func: Callable[..., Any], *args: Any) -> Any:
    try:
        return func(*args)
    except InvalidParameters as exc:
        raise click.BadParameter("; ".join(exc.errors))


def _warn_if_open(result: SimulationResult) -> None:
    if not result.converged:
        click.secho(non_convergence_message(result), fg="yellow", err=True)


def loan_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options every command shares."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Outstanding loan balance"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--payment", "-m", "payment", required=True, help="Monthly payment"),
        click.option("--amortization", "-a", "amortization", default="0", show_default=True, help="Extra payment applied every 12 months"),
        click.option("--strategy", "strategy", type=click.Choice([s.value for s in Strategy]), default=Strategy.REDUCE_TERM.value, show_default=True, help="Shorten the term or lower the payment after each extra payment"),
        click.option("--quota-target", "quota_target", type=click.Choice([t.value for t in QuotaTarget]), default=QuotaTarget.IMPLIED.value, show_default=True, help="Term kept by the 'quota' strategy"),
        click.option("--max-months", "max_months", type=click.IntRange(min=1), default=DEFAULT_MAX_MONTHS, show_default=True, envvar="MORTGAGE_SIM_MAX_MONTHS", help="Stop simulating after this many months"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    envvar="MORTGAGE_SIM_LOG_LEVEL",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """A command‑line mortgage simulator with yearly extra payments."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@loan_options
@click.option("--rows", "rows", type=int, default=120, show_default=True, help="Schedule rows to print")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def simulate(
    principal: str,
    rate: str,
    payment: str,
    amortization: str,
    strategy: str,
    quota_target: str,
    max_months: int,
    rows: int,
    output: Optional[str],
) -> None:
    """Compute and print the monthly schedule of a loan."""
    params = build_params_from_options(principal, rate, payment, amortization, strategy, quota_target, max_months)
    result = _run(run_simulation, params)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result_to_dict(result))
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(result)
        # Limit schedule length printed to avoid flooding the terminal
        if len(result.schedule) > rows:
            click.echo(f"Schedule has {len(result.schedule)} rows; showing first {rows} rows.")
        print_schedule(result.schedule[:rows])
    _warn_if_open(result)


@cli.command()
@loan_options
@click.option("--parallel/--sequential", default=False, help="Run both simulations on worker threads")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def compare(
    principal: str,
    rate: str,
    payment: str,
    amortization: str,
    strategy: str,
    quota_target: str,
    max_months: int,
    parallel: bool,
    output: Optional[str],
) -> None:
    """Compare the loan with extra payments against the same loan without them."""
    params = build_params_from_options(principal, rate, payment, amortization, strategy, quota_target, max_months)
    comparison = _run(compare_scenarios, baseline_for(params), params, parallel)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Comparison export must use .json extension")
        export_to_json(path, comparison_to_dict(comparison))
        click.echo(f"Comparison exported to {path}")
    else:
        print_comparison(comparison)
    _warn_if_open(comparison.base)


@cli.command("best-strategy")
@loan_options
def best_strategy(
    principal: str,
    rate: str,
    payment: str,
    amortization: str,
    strategy: str,
    quota_target: str,
    max_months: int,
) -> None:
    """Tell which strategy saves more interest for the given extra payment.

    When no extra payment is given, 1000 per year is assumed.
    """
    if parse_amount(amortization) == 0:
        amortization = DEFAULT_BEST_STRATEGY_AMOUNT
    params = build_params_from_options(principal, rate, payment, amortization, strategy, quota_target, max_months)
    result = _run(compare_strategies, params)
    click.echo(f"Reduce term saves   : {result.term_savings.interest:.2f}")
    click.echo(f"Reduce payment saves: {result.quota_savings.interest:.2f}")
    click.echo(describe_best_strategy(result))
    _warn_if_open(result.base)


if __name__ == "__main__":
    cli()
