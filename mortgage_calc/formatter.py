"""Output helpers for the mortgage calculator.

This module provides simple functions to render results and validation
reports in a tabular text format. Values are rounded to two decimals for
display only; the underlying results keep full precision.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .data_models import CalculationResult, PaymentPeriod, PeriodSummary, ValidationReport


def print_summary(result: CalculationResult) -> None:
    """Print the headline figures of a calculation."""
    print("Summary")
    print("-" * 72)
    print(f"Loan amount        : {result.effective_loan_amount:,.2f}")
    print(f"Initial cash       : {result.initial_cash:,.2f}")
    print(f"Total investment   : {result.total_investment_cost:,.2f}")
    print(f"Monthly payment    : {result.monthly_payment:,.2f}")
    print(f"Total interest     : {result.total_interest:,.2f}")
    print(f"Total payment      : {result.total_payment:,.2f}")
    print(f"Payments           : {len(result.schedule)}")
    analysis = result.analysis
    print(f"Principal share    : {analysis.principal_percentage:.2f}%")
    print(f"Interest share     : {analysis.interest_percentage:.2f}%")
    grace = result.grace_info
    if grace:
        print(f"Grace months       : {grace.grace_months}")
        print(f"Grace payment      : {grace.grace_monthly_payment:,.2f}")
        print(f"Payment after grace: {grace.monthly_payment_after_grace:,.2f}")
        print(f"Without grace      : {grace.baseline_monthly_payment:,.2f}")
        print(
            f"Payment increase   : {grace.payment_increase_amount:,.2f} "
            f"({grace.payment_increase_percentage:.2f}%)"
        )
        print(f"Extra interest     : {grace.total_interest_increase:,.2f}")
    print("-" * 72)


def print_period_summaries(summaries: Iterable[PeriodSummary]) -> None:
    headers = ["Period", "AvgPayment", "AvgPrincipal", "AvgInterest", "Principal%", "Interest%", "EndBal"]
    print("\t".join(headers))
    for s in summaries:
        row = [
            s.label,
            f"{s.average_monthly_payment:.2f}",
            f"{s.average_monthly_principal:.2f}",
            f"{s.average_monthly_interest:.2f}",
            f"{s.principal_percentage:.1f}",
            f"{s.interest_percentage:.1f}",
            f"{s.ending_balance:.2f}",
        ]
        print("\t".join(row))


def print_schedule(schedule: Iterable[PaymentPeriod], show_stage: bool = False) -> None:
    """Print the amortization schedule as a simple table.

    Parameters
    ----------
    schedule: Iterable[PaymentPeriod]
        The schedule rows to print.
    show_stage: bool
        Whether to include the ``Stage`` column, useful for staged rate plans.
    """
    headers = ["Period", "Year", "Month", "Payment", "Principal", "Interest", "Balance", "Rate%"]
    if show_stage:
        headers.append("Stage")
    headers.append("Grace")
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period_index),
            str(entry.year_index),
            str(entry.month_in_year),
            f"{entry.payment:.2f}",
            f"{entry.principal_portion:.2f}",
            f"{entry.interest_portion:.2f}",
            f"{entry.remaining_balance:.2f}",
            f"{entry.applied_monthly_rate * 100:.4f}",
        ]
        if show_stage:
            row.append(str(entry.stage_number or ""))
        row.append("Yes" if entry.is_grace_period else "No")
        print("\t".join(row))


def print_validation(report: ValidationReport, suggestions: Sequence[str] = ()) -> None:
    """Print errors, warnings, infos and quick-fix suggestions."""
    for m in report.errors:
        print(f"ERROR   [{m.field}] {m.message}")
    for m in report.warnings:
        print(f"WARNING [{m.field}] {m.message}")
        if m.suggestion:
            print(f"        -> {m.suggestion}")
    for m in report.infos:
        print(f"INFO    [{m.field}] {m.message}")
        if m.recommendation:
            print(f"        -> {m.recommendation}")
    for s in suggestions:
        print(f"SUGGEST {s}")
    if report.is_valid and not (report.warnings or report.infos or suggestions):
        print("Input is valid.")
