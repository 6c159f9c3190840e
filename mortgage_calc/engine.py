"""Core calculation engine for the mortgage calculator.

This module implements the financial logic required to build amortization
schedules for equal installment and equal principal loans, under a single
fixed rate or a staged rate plan, with an optional interest-only grace period
at the start. On top of the schedule it derives totals, three-year period
summaries, a per-year principal/interest breakdown and, when a grace period
is present, a comparison against the same loan without one.

Every function here is pure: the input record is never mutated and each call
builds its own running balances, so the engine can be called from several
threads at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, getcontext
from typing import Dict, List, Optional

from .data_models import (
    CalculationResult,
    GracePeriodResult,
    InterestPrincipalAnalysis,
    LoanInput,
    PaymentPeriod,
    PeriodSummary,
    RepaymentMethod,
    StagedRatePlan,
    YearlyAnalysis,
)

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
# Balances below half a cent are rounding residue, not debt.
BALANCE_EPSILON = Decimal("0.005")
SUMMARY_WINDOW_YEARS = 3


@dataclass
class _Row:
    """A schedule row before numbering and cumulative sums are applied."""

    payment: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal
    rate: Decimal
    is_grace: bool = False
    stage_number: Optional[int] = None


def _settle(balance: Decimal) -> Decimal:
    if balance.copy_abs() < BALANCE_EPSILON:
        return ZERO
    return max(balance, ZERO)


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


def _average(values: List[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def calculate_equal_installment(principal: Decimal, monthly_rate: Decimal, periods: int) -> Decimal:
    """Return the level (annuity) monthly payment for a loan.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. A non-positive number of periods yields
    a zero payment.
    """
    if periods <= 0:
        return ZERO
    if monthly_rate == 0:
        return principal / Decimal(periods)
    factor = (1 + monthly_rate) ** periods
    if factor == 1:
        # Rate too small to register at the working precision
        return principal / Decimal(periods)
    return principal * (monthly_rate * factor) / (factor - 1)


def _equal_installment_rows(
    principal: Decimal,
    monthly_rate: Decimal,
    periods: int,
    stage_number: Optional[int] = None,
) -> List[_Row]:
    payment = calculate_equal_installment(principal, monthly_rate, periods)
    balance = principal
    rows: List[_Row] = []
    for i in range(periods):
        interest = balance * monthly_rate
        principal_part = payment - interest
        if i == periods - 1:
            # Absorb rounding drift so the segment ends at exactly zero.
            principal_part = balance
            payment = principal_part + interest
        balance = _settle(balance - principal_part)
        rows.append(_Row(payment, principal_part, interest, balance, monthly_rate, stage_number=stage_number))
    return rows


def _equal_principal_rows(
    principal: Decimal,
    monthly_rate: Decimal,
    periods: int,
    stage_number: Optional[int] = None,
) -> List[_Row]:
    if periods <= 0:
        return []
    principal_part = principal / Decimal(periods)
    balance = principal
    rows: List[_Row] = []
    for _ in range(periods):
        interest = balance * monthly_rate
        balance = _settle(balance - principal_part)
        rows.append(
            _Row(principal_part + interest, principal_part, interest, balance, monthly_rate, stage_number=stage_number)
        )
    return rows


def _grace_rows(loan_amount: Decimal, monthly_rate: Decimal, months: int) -> List[_Row]:
    interest = loan_amount * monthly_rate
    return [_Row(interest, ZERO, interest, loan_amount, monthly_rate, is_grace=True) for _ in range(months)]


def _stage_rows(principal: Decimal, plan: StagedRatePlan, method: RepaymentMethod) -> List[_Row]:
    """Chain one sub-amortization per stage, carrying the balance forward.

    Each stage is amortized as its own problem: the entering balance, the
    stage's monthly rate and the stage's month count. The payment is
    therefore recomputed at every rate boundary.
    """
    rows: List[_Row] = []
    balance = principal
    for stage_number, stage in plan.numbered():
        if method == RepaymentMethod.EQUAL_INSTALLMENT:
            stage_rows = _equal_installment_rows(balance, stage.monthly_rate, stage.months, stage_number)
        else:
            stage_rows = _equal_principal_rows(balance, stage.monthly_rate, stage.months, stage_number)
        if stage_rows:
            balance = stage_rows[-1].balance
        rows.extend(stage_rows)
    return rows


def _number_rows(rows: List[_Row]) -> List[PaymentPeriod]:
    schedule: List[PaymentPeriod] = []
    cumulative_payment = ZERO
    cumulative_principal = ZERO
    cumulative_interest = ZERO
    for index, row in enumerate(rows, start=1):
        cumulative_payment += row.payment
        cumulative_principal += row.principal
        cumulative_interest += row.interest
        schedule.append(
            PaymentPeriod(
                period_index=index,
                year_index=(index - 1) // 12 + 1,
                month_in_year=(index - 1) % 12 + 1,
                payment=row.payment,
                principal_portion=row.principal,
                interest_portion=row.interest,
                remaining_balance=row.balance,
                cumulative_payment=cumulative_payment,
                cumulative_principal=cumulative_principal,
                cumulative_interest=cumulative_interest,
                applied_monthly_rate=row.rate,
                is_grace_period=row.is_grace,
                stage_number=row.stage_number,
            )
        )
    return schedule


def calculate_equal_principal(principal: Decimal, monthly_rate: Decimal, periods: int) -> List[PaymentPeriod]:
    """Return an equal principal schedule for a plain fixed-rate loan."""
    return _number_rows(_equal_principal_rows(principal, monthly_rate, periods))


def calculate_stage_rates(
    principal: Decimal,
    plan: StagedRatePlan,
    method: RepaymentMethod = RepaymentMethod.EQUAL_INSTALLMENT,
) -> List[PaymentPeriod]:
    """Return the chained per-stage schedule for a staged rate plan."""
    return _number_rows(_stage_rows(principal, plan, method))


def _check_computable(loan: LoanInput) -> None:
    if loan.effective_loan_amount <= 0:
        raise ValueError("Effective loan amount must be positive")
    if isinstance(loan.rate_mode, StagedRatePlan):
        if not loan.rate_mode.stages:
            raise ValueError("Staged rate plan must contain at least one stage")
    elif loan.repayment_months <= 0:
        raise ValueError("Repayment period must be at least one month")


def build_schedule(loan: LoanInput) -> List[PaymentPeriod]:
    """Compute the full month-by-month schedule for ``loan``.

    Grace rows (if any) come first, followed by the repayment rows. Rows are
    numbered from 1 across the whole schedule and carry running totals.

    Raises
    ------
    ValueError
        If the input cannot be scheduled at all (no positive loan amount, no
        repayment months, an empty staged plan). Validation rejects such
        inputs before they reach the engine.
    """
    _check_computable(loan)
    loan_amount = loan.effective_loan_amount
    rows: List[_Row] = []

    if loan.grace_period is not None:
        rows.extend(_grace_rows(loan_amount, loan.initial_monthly_rate, loan.grace_months))

    if isinstance(loan.rate_mode, StagedRatePlan):
        rows.extend(_stage_rows(loan_amount, loan.rate_mode, loan.repayment_method))
    elif loan.repayment_method == RepaymentMethod.EQUAL_INSTALLMENT:
        rows.extend(_equal_installment_rows(loan_amount, loan.effective_monthly_rate, loan.repayment_months))
    else:
        rows.extend(_equal_principal_rows(loan_amount, loan.effective_monthly_rate, loan.repayment_months))

    schedule = _number_rows(rows)
    logger.debug(
        "Built schedule: %d rows (%d grace), loan amount %s", len(schedule), loan.grace_months, loan_amount
    )
    return schedule


def _representative_payment(schedule: List[PaymentPeriod]) -> Decimal:
    return _average([p.payment for p in schedule if not p.is_grace_period])


def generate_period_summaries(
    schedule: List[PaymentPeriod], window_years: int = SUMMARY_WINDOW_YEARS
) -> List[PeriodSummary]:
    """Group the schedule into consecutive windows of ``window_years`` years.

    Windows start at year 1; the last one may be shorter. Percentages are on
    a 0-100 scale and are zero for windows without payments.
    """
    if not schedule:
        return []
    max_year = max(p.year_index for p in schedule)
    summaries: List[PeriodSummary] = []
    for start_year in range(1, max_year + 1, window_years):
        end_year = min(start_year + window_years - 1, max_year)
        rows = [p for p in schedule if start_year <= p.year_index <= end_year]
        if not rows:
            continue
        total_payment = sum((p.payment for p in rows), ZERO)
        total_principal = sum((p.principal_portion for p in rows), ZERO)
        total_interest = sum((p.interest_portion for p in rows), ZERO)
        label = f"Year {start_year}" if start_year == end_year else f"Years {start_year}-{end_year}"
        summaries.append(
            PeriodSummary(
                label=label,
                start_year=start_year,
                end_year=end_year,
                average_monthly_payment=_average([p.payment for p in rows]),
                average_monthly_principal=_average([p.principal_portion for p in rows]),
                average_monthly_interest=_average([p.interest_portion for p in rows]),
                total_payment=total_payment,
                total_principal=total_principal,
                total_interest=total_interest,
                principal_percentage=_percentage(total_principal, total_payment),
                interest_percentage=_percentage(total_interest, total_payment),
                ending_balance=rows[-1].remaining_balance,
            )
        )
    return summaries


def analyze_interest_principal(schedule: List[PaymentPeriod]) -> InterestPrincipalAnalysis:
    """Return whole-schedule and per-year principal/interest proportions."""
    total_principal = sum((p.principal_portion for p in schedule), ZERO)
    total_interest = sum((p.interest_portion for p in schedule), ZERO)
    total = total_principal + total_interest

    by_year: Dict[int, List[PaymentPeriod]] = {}
    for p in schedule:
        by_year.setdefault(p.year_index, []).append(p)

    yearly: List[YearlyAnalysis] = []
    for year in sorted(by_year):
        rows = by_year[year]
        payment = sum((p.payment for p in rows), ZERO)
        principal = sum((p.principal_portion for p in rows), ZERO)
        interest = sum((p.interest_portion for p in rows), ZERO)
        yearly.append(
            YearlyAnalysis(
                year=year,
                payment=payment,
                principal=principal,
                interest=interest,
                principal_percentage=_percentage(principal, payment),
                interest_percentage=_percentage(interest, payment),
                year_end_balance=rows[-1].remaining_balance,
            )
        )

    return InterestPrincipalAnalysis(
        total_principal=total_principal,
        total_interest=total_interest,
        principal_percentage=_percentage(total_principal, total),
        interest_percentage=_percentage(total_interest, total),
        yearly_breakdown=yearly,
    )


def calculate_grace_period_result(
    loan: LoanInput, schedule: Optional[List[PaymentPeriod]] = None
) -> Optional[GracePeriodResult]:
    """Compare the grace-adjusted plan with the same loan without grace.

    Both sides use the full chained schedule, so staged plans are compared
    stage by stage rather than through a weighted-average shortcut. Returns
    None when ``loan`` has no grace period.
    """
    if loan.grace_period is None:
        return None
    if schedule is None:
        schedule = build_schedule(loan)
    baseline = build_schedule(loan.without_grace())

    grace_rows = [p for p in schedule if p.is_grace_period]
    repayment_rows = [p for p in schedule if not p.is_grace_period]

    grace_monthly_payment = grace_rows[0].payment if grace_rows else ZERO
    grace_total_interest = sum((p.interest_portion for p in grace_rows), ZERO)
    payment_after_grace = _average([p.payment for p in repayment_rows])
    interest_after_grace = sum((p.interest_portion for p in repayment_rows), ZERO)

    baseline_payment = _representative_payment(baseline)
    baseline_interest = sum((p.interest_portion for p in baseline), ZERO)
    increase = payment_after_grace - baseline_payment

    return GracePeriodResult(
        grace_months=len(grace_rows),
        grace_monthly_payment=grace_monthly_payment,
        grace_total_interest=grace_total_interest,
        remaining_principal_after_grace=grace_rows[-1].remaining_balance if grace_rows else loan.effective_loan_amount,
        repayment_months_after_grace=len(repayment_rows),
        monthly_payment_after_grace=payment_after_grace,
        total_interest_after_grace=interest_after_grace,
        baseline_monthly_payment=baseline_payment,
        baseline_total_interest=baseline_interest,
        payment_increase_amount=increase,
        payment_increase_percentage=_percentage(increase, baseline_payment),
        total_interest_increase=(grace_total_interest + interest_after_grace) - baseline_interest,
        total_repayment_months=len(schedule),
    )


def estimate_monthly_payment(loan: LoanInput) -> Decimal:
    """Return a quick estimate of the representative monthly payment.

    This is a shortcut, not the schedule of record: a staged plan is
    collapsed into its weighted-average rate and a single level payment is
    computed over the repayment months. For equal principal loans the
    estimate is the mean payment, P/n + P*r*(n + 1)/(2n), which matches the
    average over the schedule rows. Degenerate inputs yield zero instead of
    raising.
    """
    amount = loan.effective_loan_amount
    months = loan.repayment_months
    if amount <= 0 or months <= 0:
        return ZERO
    rate = loan.effective_monthly_rate
    if loan.repayment_method == RepaymentMethod.EQUAL_INSTALLMENT:
        return calculate_equal_installment(amount, rate, months)
    n = Decimal(months)
    return amount / n + amount * rate * (n + 1) / (2 * n)


def calculate(loan: LoanInput) -> CalculationResult:
    """Compute the schedule, totals, summaries and analysis for ``loan``.

    Parameters
    ----------
    loan: LoanInput
        A validated loan input. Callers are expected to run
        :func:`mortgage_calc.validation.validate` first and skip the
        calculation when it reports errors.

    Returns
    -------
    CalculationResult
        A fresh result; nothing is shared between calls.
    """
    schedule = build_schedule(loan)
    grace_info = calculate_grace_period_result(loan, schedule) if loan.grace_period is not None else None

    result = CalculationResult(
        effective_loan_amount=loan.effective_loan_amount,
        initial_cash=loan.initial_cash,
        total_investment_cost=loan.total_investment_cost,
        monthly_payment=_representative_payment(schedule),
        total_interest=sum((p.interest_portion for p in schedule), ZERO),
        total_payment=sum((p.payment for p in schedule), ZERO),
        schedule=schedule,
        period_summaries=generate_period_summaries(schedule),
        analysis=analyze_interest_principal(schedule),
        grace_info=grace_info,
    )
    logger.debug(
        "Calculated loan: monthly payment %s, total interest %s", result.monthly_payment, result.total_interest
    )
    return result
