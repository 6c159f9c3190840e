"""Command‑line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can validate a loan scenario, compute its full amortization
schedule or view only the summary figures. Results can be printed to the
terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Callable, Optional, Tuple

import click

from .config import Settings, configure_logging
from .data_models import (
    ByAmount,
    ByRatio,
    CalculationResult,
    FixedRate,
    GracePeriod,
    LoanInput,
    RepaymentMethod,
    StagedRatePlan,
)
from .engine import calculate
from .formatter import print_period_summaries, print_schedule, print_summary, print_validation
from .serialization import (
    SCHEDULE_CSV_HEADER,
    loan_input_to_dict,
    report_to_dict,
    result_to_dict,
    schedule_to_rows,
)
from .utils import parse_amount, parse_rate_percent, parse_ratio, parse_stage
from .validation import get_correction_suggestions, validate

logger = logging.getLogger(__name__)

METHODS = {
    "installment": RepaymentMethod.EQUAL_INSTALLMENT,
    "principal": RepaymentMethod.EQUAL_PRINCIPAL,
}


def _bad(param: str, exc: Exception) -> click.BadParameter:
    return click.BadParameter(str(exc), param_hint=param)


def build_loan_input_from_options(
    house_price: str,
    down_payment: str,
    loan_ratio: Optional[str],
    loan_amount: Optional[str],
    term: int,
    rate: Optional[str],
    stage: Tuple[str, ...],
    grace_years: Optional[int],
    grace_excluded: bool,
    method: str,
    misc_fees: str,
    renovation_fees: str,
) -> LoanInput:
    if loan_ratio and loan_amount:
        raise click.UsageError("Use either --loan-ratio or --loan-amount, not both")
    if rate and stage:
        raise click.UsageError("Use either --rate or --stage, not both")

    try:
        price_value = parse_amount(house_price)
    except ValueError as exc:
        raise _bad("--house-price", exc)
    try:
        down_value = parse_amount(down_payment)
    except ValueError as exc:
        raise _bad("--down-payment", exc)
    try:
        misc_value = parse_amount(misc_fees)
        renovation_value = parse_amount(renovation_fees)
    except ValueError as exc:
        raise _bad("--misc-fees/--renovation-fees", exc)

    if loan_amount:
        try:
            sizing = ByAmount(parse_amount(loan_amount))
        except ValueError as exc:
            raise _bad("--loan-amount", exc)
    else:
        try:
            sizing = ByRatio(parse_ratio(loan_ratio or "80%"))
        except ValueError as exc:
            raise _bad("--loan-ratio", exc)

    if stage:
        try:
            rate_mode = StagedRatePlan(tuple(parse_stage(s) for s in stage))
        except ValueError as exc:
            raise _bad("--stage", exc)
    else:
        try:
            rate_mode = FixedRate(parse_rate_percent(rate or "2.5"))
        except ValueError as exc:
            raise _bad("--rate", exc)

    grace = None
    if grace_years:
        grace = GracePeriod(years=grace_years, included_in_term=not grace_excluded)

    return LoanInput(
        house_price=price_value,
        down_payment=down_value,
        loan_sizing=sizing,
        loan_term_years=term,
        rate_mode=rate_mode,
        grace_period=grace,
        repayment_method=METHODS[method],
        misc_fees=misc_value,
        renovation_fees=renovation_value,
    )


def loan_options(func: Callable) -> Callable:
    """Attach the loan input options shared by every command."""
    options = [
        click.option("--house-price", "house_price", required=True, help="House price, e.g. 10m or 10,000,000"),
        click.option("--down-payment", "-d", "down_payment", required=True, help="Down payment amount"),
        click.option("--loan-ratio", "loan_ratio", help="Loan ratio of price minus down payment (default 80%)"),
        click.option("--loan-amount", "loan_amount", help="Loan amount; derives the ratio instead"),
        click.option("--term", "-t", "term", type=int, default=30, show_default=True, help="Loan term in years"),
        click.option("--rate", "-r", "rate", help="Fixed annual interest rate in percent (default 2.5)"),
        click.option("--stage", "stage", multiple=True, help="Rate stage in RATE:YEARS format, rate in percent"),
        click.option("--grace-years", "grace_years", type=int, help="Interest-only grace period in years"),
        click.option(
            "--grace-excluded",
            "grace_excluded",
            is_flag=True,
            help="Add the grace period on top of the term instead of counting it within the term",
        ),
        click.option(
            "--method",
            "method",
            type=click.Choice(sorted(METHODS)),
            default="installment",
            show_default=True,
            help="Repayment method",
        ),
        click.option("--misc-fees", "misc_fees", default="0", help="Miscellaneous fees"),
        click.option("--renovation-fees", "renovation_fees", default="0", help="Renovation fees"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _validated_result(loan: LoanInput) -> CalculationResult:
    """Validate ``loan`` and calculate it, or exit with the validation errors."""
    report = validate(loan)
    if not report.is_valid:
        logger.debug("Refusing to calculate: %d validation errors", len(report.errors))
        print_validation(report, get_correction_suggestions(loan))
        raise click.ClickException("Input is invalid; fix the errors above")
    for warning in report.warnings:
        click.echo(f"Warning: {warning.message}", err=True)
    return calculate(loan)


def export_to_json(path: Path, loan: LoanInput, result: CalculationResult) -> None:
    """Export input, validation report and full result to a JSON file."""
    data = {
        "input": loan_input_to_dict(loan),
        "validation": report_to_dict(validate(loan)),
        "result": result_to_dict(result),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: CalculationResult) -> None:
    """Export the schedule to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(SCHEDULE_CSV_HEADER)
        writer.writerows(schedule_to_rows(result.schedule))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A command‑line mortgage calculator with staged rates and grace periods."""
    settings = Settings.from_env()
    configure_logging("DEBUG" if verbose else settings.log_level)


@cli.command(name="validate")
@loan_options
def validate_command(**options) -> None:
    """Check a loan scenario and print errors, warnings and advice."""
    loan = build_loan_input_from_options(**options)
    report = validate(loan)
    print_validation(report, get_correction_suggestions(loan))
    if not report.is_valid:
        raise SystemExit(1)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(output: Optional[str], **options) -> None:
    """Compute and print the full amortization schedule."""
    loan = build_loan_input_from_options(**options)
    result = _validated_result(loan)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, loan, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
        return

    print_summary(result)
    print_period_summaries(result.period_summaries)
    # Limit schedule length printed to avoid flooding the terminal
    max_rows = 120
    rows = result.schedule
    if len(rows) > max_rows:
        click.echo(f"Schedule has {len(rows)} rows; showing first {max_rows} rows.")
        rows = rows[:max_rows]
    print_schedule(rows, show_stage=loan.is_staged)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options) -> None:
    """Compute and print only the summary metrics for a loan."""
    loan = build_loan_input_from_options(**options)
    result = _validated_result(loan)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        data = result_to_dict(result)
        data.pop("schedule")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": data}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)
        print_period_summaries(result.period_summaries)


if __name__ == "__main__":
    cli()
