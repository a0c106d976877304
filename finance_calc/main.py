"""Command-line interface for the finance calculator.

This module uses the ``click`` library to implement a multi-command interface
over the calculation engines. Users can compute amortization schedules,
compare prepayment scenarios, project investment growth and break down a
salary's payroll deductions. Results can be printed to the terminal or
exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import dataclasses
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

import click

from .amortization import generate_schedule
from .config import settings_from_env
from .data_models import (
    CompoundingFrequency,
    InvestmentTerms,
    LoanTerms,
    Periodicity,
    Prepayment,
    PrepaymentStrategy,
    Schedule,
    TaxInput,
)
from .errors import TaxTableError, ValidationError
from .formatter import (
    print_investment,
    print_prepayment_comparison,
    print_schedule,
    print_summary,
    print_tax,
)
from .investment import BREAKDOWN_FREQUENCIES, project
from .prepayment import apply_prepayments
from .tax_tables import load_tax_tables, load_tax_tables_file
from .taxes import TaxWithholdingCalculator
from .utils import decimal_from_str

T = TypeVar("T")

MAX_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000).
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


def parse_prepayment_strings(values: Iterable[str]) -> List[Prepayment]:
    prepayments: List[Prepayment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 3:
            raise click.BadParameter(
                f"Prepayment must be in MONTH:AMOUNT:STRATEGY format; got {item}"
            )
        month_str, amount_str, strategy = parts
        try:
            month = int(month_str)
        except ValueError:
            raise click.BadParameter(f"Prepayment month must be a whole number; got {month_str}")
        try:
            strategy_value = PrepaymentStrategy(strategy.lower())
        except ValueError:
            raise click.BadParameter(
                f"Prepayment strategy must be 'reduce-term' or 'reduce-payment'; got {strategy}"
            )
        prepayments.append(Prepayment(month=month, amount=parse_amount(amount_str), strategy=strategy_value))
    return prepayments


def _run(func: Callable[..., T], *args: Any) -> T:
    """Call an engine function, turning its input errors into usage errors."""
    try:
        return func(*args)
    except ValidationError as exc:
        lines = "\n".join(f"  {field}: {message}" for field, message in exc.errors.items())
        raise click.UsageError(f"Invalid input:\n{lines}") from exc
    except TaxTableError as exc:
        raise click.ClickException(str(exc)) from exc


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return float(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def export_to_json(path: Path, result: Any) -> None:
    """Export any result record to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(dataclasses.asdict(result), f, indent=2, default=_json_default)


def export_to_csv(path: Path, schedule: Schedule) -> None:
    """Export schedule entries to a CSV file."""
    header = ["Period", "Payment", "Principal", "Interest", "Extra_Payment", "Remaining_Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule.entries:
            writer.writerow(
                [
                    e.period,
                    f"{e.payment:.2f}",
                    f"{e.principal:.2f}",
                    f"{e.interest:.2f}",
                    f"{e.extra_payment:.2f}",
                    f"{e.remaining_balance:.2f}",
                ]
            )


def _print_entries(schedule: Schedule, show_extra: bool = False) -> None:
    # Limit schedule length printed to avoid flooding the terminal
    if schedule.term_months > MAX_ROWS:
        click.echo(f"Schedule has {schedule.term_months} rows; showing first {MAX_ROWS} rows.")
        print_schedule(schedule.entries[:MAX_ROWS], show_extra=show_extra)
    else:
        print_schedule(schedule.entries, show_extra=show_extra)


def loan_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by every loan command."""
    func = click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")(func)
    func = click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")(func)
    func = click.option("--principal", "-p", "principal", required=True, help="Total loan amount")(func)
    return func


def build_loan_terms(principal: str, rate: str, term: int) -> LoanTerms:
    return LoanTerms(principal=parse_amount(principal), annual_rate=parse_amount(rate), term_months=term)


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (defaults to FINANCE_CALC_LOG_LEVEL or WARNING)",
)
def cli(log_level: Optional[str]) -> None:
    """A command-line calculator for loans, investments and payroll taxes."""
    level = (log_level or settings_from_env().log_level).upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING), format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(principal: str, rate: str, term: int, output: Optional[str]) -> None:
    """Compute and print the full amortization schedule."""
    result = _run(generate_schedule, build_loan_terms(principal, rate, term))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(result)
    _print_entries(result)


@cli.command()
@loan_options
@click.option(
    "--prepayment",
    "prepayment",
    multiple=True,
    required=True,
    help="Prepayment in MONTH:AMOUNT:STRATEGY format, e.g. 12:10k:reduce-term",
)
@click.option("--show-schedule", is_flag=True, help="Also print the adjusted schedule")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def prepay(
    principal: str,
    rate: str,
    term: int,
    prepayment: Tuple[str, ...],
    show_schedule: bool,
    output: Optional[str],
) -> None:
    """Compare a loan with and without extra principal payments."""
    terms = build_loan_terms(principal, rate, term)
    prepayments = parse_prepayment_strings(prepayment)
    result = _run(apply_prepayments, terms, prepayments)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result.adjusted)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Prepayment scenario exported to {path}")
        return
    print_prepayment_comparison(result)
    if show_schedule:
        _print_entries(result.adjusted, show_extra=True)


@cli.command()
@click.option("--initial", "initial", required=True, help="Initial amount invested")
@click.option("--contribution", "contribution", default="0", show_default=True, help="Monthly contribution")
@click.option("--months", "months", required=True, type=int, help="Duration in months")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option(
    "--compounding",
    type=click.Choice([c.value for c in CompoundingFrequency]),
    default=CompoundingFrequency.MONTHLY.value,
    show_default=True,
)
@click.option("--breakdown", type=click.Choice(list(BREAKDOWN_FREQUENCIES)), default="yearly", show_default=True)
@click.option("--output", "output", type=str, help="Output file path (.json)")
def invest(
    initial: str,
    contribution: str,
    months: int,
    rate: str,
    compounding: str,
    breakdown: str,
    output: Optional[str],
) -> None:
    """Project the growth of an investment with monthly contributions."""
    terms = InvestmentTerms(
        initial_amount=parse_amount(initial),
        monthly_contribution=parse_amount(contribution),
        duration_months=months,
        annual_rate=parse_amount(rate),
        compounding=CompoundingFrequency(compounding),
    )
    result = _run(project, terms, breakdown)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Investment export must use .json extension")
        export_to_json(path, result)
        click.echo(f"Projection exported to {path}")
        return
    print_investment(result, max_rows=MAX_ROWS)


@cli.command()
@click.option("--salary", "salary", required=True, help="Gross base salary")
@click.option(
    "--periodicity",
    type=click.Choice([p.value for p in Periodicity]),
    default=Periodicity.MONTHLY.value,
    show_default=True,
)
@click.option("--dependents", type=int, default=0, show_default=True)
@click.option("--voluntary-pension", "voluntary_pension", default="0", help="Monthly voluntary pension contributions")
@click.option("--prepaid-health", "prepaid_health", default="0", help="Monthly prepaid health plan payments")
@click.option("--year", "year", type=int, help="Fiscal year of the bundled tax table")
@click.option("--tables", "tables", type=click.Path(exists=True, dir_okay=False), help="Custom tax table (JSON)")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def tax(
    salary: str,
    periodicity: str,
    dependents: int,
    voluntary_pension: str,
    prepaid_health: str,
    year: Optional[int],
    tables: Optional[str],
    output: Optional[str],
) -> None:
    """Break down payroll deductions and income-tax withholding for a salary."""
    tax_tables = _run(load_tax_tables_file, Path(tables)) if tables else _run(load_tax_tables, year)
    calculator = TaxWithholdingCalculator(tax_tables)
    tax_input = TaxInput(
        gross_salary=parse_amount(salary),
        periodicity=Periodicity(periodicity),
        dependents=dependents,
        voluntary_pension=parse_amount(voluntary_pension),
        prepaid_health=parse_amount(prepaid_health),
    )
    result = _run(calculator.calculate, tax_input)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Tax export must use .json extension")
        export_to_json(path, result)
        click.echo(f"Payroll breakdown exported to {path}")
        return
    print_tax(result)


if __name__ == "__main__":
    cli()
