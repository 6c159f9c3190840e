"""Validation and advisory rules for loan inputs.

Each rule is a plain function that receives a :class:`LoanInput` and returns
the messages it produces (possibly none). Rules only read the input record,
never each other's output, so they can be tested one at a time. ``validate``
runs every rule in ``RULES`` order and sorts the messages into errors,
warnings and infos.

Errors mean the engine must not be called. Warnings flag elevated risk and
infos carry best-practice notes; neither blocks a calculation.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, List, Optional, Sequence

from .data_models import (
    ByAmount,
    ByRatio,
    FixedRate,
    LoanInput,
    Severity,
    StagedRatePlan,
    ValidationMessage,
    ValidationReport,
)
from .engine import estimate_monthly_payment

logger = logging.getLogger(__name__)

HOUSE_PRICE_MIN = Decimal("1000000")
HOUSE_PRICE_MAX = Decimal("100000000")
LOAN_TERM_MIN_YEARS = 1
LOAN_TERM_MAX_YEARS = 40
ANNUAL_RATE_MIN = Decimal("0.001")
ANNUAL_RATE_MAX = Decimal("0.20")
LOAN_RATIO_MIN = Decimal("0.10")
LOAN_RATIO_MAX = Decimal("0.90")
LOAN_AMOUNT_MIN = Decimal("100000")
LOAN_AMOUNT_MAX = Decimal("80000000")
GRACE_MIN_YEARS = 1
GRACE_MAX_YEARS = 5
MISC_FEES_MAX = Decimal("10000000")
RENOVATION_FEES_MAX = Decimal("50000000")
MAX_STAGES = 10

HIGH_LOAN_RATIO = Decimal("0.80")
# Representative monthly payment above this share of the house price is flagged.
HIGH_PAYMENT_TO_PRICE = Decimal("0.01")
LONG_GRACE_YEARS = 3
SHORT_REPAYMENT_YEARS = 5
HIGH_RENOVATION_RATIO = Decimal("0.30")
HIGH_TOTAL_INVESTMENT = Decimal("100000000")
RECOMMENDED_DOWN_PAYMENT_RATIO = Decimal("0.20")
LOW_FIXED_RATE = Decimal("0.01")

SUGGESTION_LOAN_RATIO = Decimal("0.85")
SUGGESTED_DOWN_PAYMENT_RATIO = Decimal("0.25")
HIGH_FIXED_RATE = Decimal("0.05")
LONG_TERM_YEARS = 30

Rule = Callable[[LoanInput], List[ValidationMessage]]


def _error(field: str, message: str) -> ValidationMessage:
    return ValidationMessage(Severity.ERROR, field, message)


def _warning(field: str, message: str, suggestion: Optional[str] = None) -> ValidationMessage:
    return ValidationMessage(Severity.WARNING, field, message, suggestion)


def _info(field: str, message: str, recommendation: Optional[str] = None) -> ValidationMessage:
    return ValidationMessage(Severity.INFO, field, message, recommendation)


def _pct(value: Decimal) -> str:
    return f"{value * 100:.1f}%"


def _money(value: Decimal) -> str:
    return f"{value:,.0f}"


def _years(n: int) -> str:
    return f"{n} year" if n == 1 else f"{n} years"


# --- range / required rules ------------------------------------------------


def check_house_price(loan: LoanInput) -> List[ValidationMessage]:
    if HOUSE_PRICE_MIN <= loan.house_price <= HOUSE_PRICE_MAX:
        return []
    return [
        _error(
            "house_price",
            f"House price must be between {_money(HOUSE_PRICE_MIN)} and {_money(HOUSE_PRICE_MAX)}",
        )
    ]


def check_down_payment(loan: LoanInput) -> List[ValidationMessage]:
    if loan.down_payment < 0:
        return [_error("down_payment", "Down payment cannot be negative")]
    return []


def check_loan_term(loan: LoanInput) -> List[ValidationMessage]:
    if LOAN_TERM_MIN_YEARS <= loan.loan_term_years <= LOAN_TERM_MAX_YEARS:
        return []
    return [
        _error(
            "loan_term_years",
            f"Loan term must be between {LOAN_TERM_MIN_YEARS} and {LOAN_TERM_MAX_YEARS} years",
        )
    ]


def check_fixed_rate(loan: LoanInput) -> List[ValidationMessage]:
    if not isinstance(loan.rate_mode, FixedRate):
        return []
    if ANNUAL_RATE_MIN <= loan.rate_mode.annual_rate <= ANNUAL_RATE_MAX:
        return []
    return [
        _error(
            "rate_mode.annual_rate",
            f"Annual rate must be between {_pct(ANNUAL_RATE_MIN)} and {_pct(ANNUAL_RATE_MAX)}",
        )
    ]


def check_loan_sizing_range(loan: LoanInput) -> List[ValidationMessage]:
    sizing = loan.loan_sizing
    if isinstance(sizing, ByRatio) and not LOAN_RATIO_MIN <= sizing.ratio <= LOAN_RATIO_MAX:
        return [
            _error(
                "loan_sizing.ratio",
                f"Loan ratio must be between {_pct(LOAN_RATIO_MIN)} and {_pct(LOAN_RATIO_MAX)}",
            )
        ]
    if isinstance(sizing, ByAmount) and not LOAN_AMOUNT_MIN <= sizing.amount <= LOAN_AMOUNT_MAX:
        return [
            _error(
                "loan_sizing.amount",
                f"Loan amount must be between {_money(LOAN_AMOUNT_MIN)} and {_money(LOAN_AMOUNT_MAX)}",
            )
        ]
    return []


def check_grace_range(loan: LoanInput) -> List[ValidationMessage]:
    grace = loan.grace_period
    if grace is None or GRACE_MIN_YEARS <= grace.years <= GRACE_MAX_YEARS:
        return []
    return [
        _error(
            "grace_period.years",
            f"Grace period must be between {GRACE_MIN_YEARS} and {GRACE_MAX_YEARS} years",
        )
    ]


def check_fees(loan: LoanInput) -> List[ValidationMessage]:
    messages = []
    if not 0 <= loan.misc_fees <= MISC_FEES_MAX:
        messages.append(_error("misc_fees", f"Miscellaneous fees must be between 0 and {_money(MISC_FEES_MAX)}"))
    if not 0 <= loan.renovation_fees <= RENOVATION_FEES_MAX:
        messages.append(
            _error("renovation_fees", f"Renovation fees must be between 0 and {_money(RENOVATION_FEES_MAX)}")
        )
    return messages


# --- cross-field consistency rules -----------------------------------------


def check_down_payment_within_price(loan: LoanInput) -> List[ValidationMessage]:
    if loan.down_payment > loan.house_price:
        return [_error("down_payment", "Down payment cannot exceed the house price")]
    return []


def check_financeable_base(loan: LoanInput) -> List[ValidationMessage]:
    if loan.financeable_base <= 0:
        return [
            _error(
                "loan_sizing",
                "Financeable amount must be greater than zero; adjust the house price or down payment",
            )
        ]
    return []


def check_loan_within_base(loan: LoanInput) -> List[ValidationMessage]:
    base = loan.financeable_base
    if base <= 0:
        return []
    if isinstance(loan.loan_sizing, ByRatio):
        if loan.loan_sizing.ratio > 1:
            return [_error("loan_sizing.ratio", "Loan amount derived from this ratio exceeds the financeable amount")]
    elif loan.loan_sizing.amount > base:
        return [
            _error("loan_sizing.amount", f"Loan amount cannot exceed the financeable amount of {_money(base)}")
        ]
    return []


def check_grace_within_term(loan: LoanInput) -> List[ValidationMessage]:
    grace = loan.grace_period
    if grace is None:
        return []
    messages = []
    if grace.years >= loan.loan_term_years:
        messages.append(_error("grace_period.years", "Grace period must be shorter than the loan term"))
    if grace.included_in_term and loan.loan_term_years - grace.years < 1:
        messages.append(
            _error(
                "grace_period.years",
                "When the grace period is included in the term, at least one year of repayment must remain",
            )
        )
    return messages


# --- staged plan rules -----------------------------------------------------


def check_stage_count(loan: LoanInput) -> List[ValidationMessage]:
    if not isinstance(loan.rate_mode, StagedRatePlan):
        return []
    count = len(loan.rate_mode.stages)
    if count == 0:
        return [_error("rate_mode.stages", "A staged rate plan needs at least one stage")]
    if count > MAX_STAGES:
        return [_error("rate_mode.stages", f"A staged rate plan can have at most {MAX_STAGES} stages")]
    return []


def check_stage_values(loan: LoanInput) -> List[ValidationMessage]:
    if not isinstance(loan.rate_mode, StagedRatePlan):
        return []
    messages = []
    term = loan.loan_term_years
    for number, stage in loan.rate_mode.numbered():
        if not ANNUAL_RATE_MIN <= stage.annual_rate <= ANNUAL_RATE_MAX:
            messages.append(
                _error(
                    f"rate_mode.stages[{number - 1}].annual_rate",
                    f"Stage {number} annual rate must be between {_pct(ANNUAL_RATE_MIN)} and {_pct(ANNUAL_RATE_MAX)}",
                )
            )
        if not 1 <= stage.years <= term:
            messages.append(
                _error(
                    f"rate_mode.stages[{number - 1}].years",
                    f"Stage {number} must last between 1 and {term} years",
                )
            )
    return messages


def check_stage_total(loan: LoanInput) -> List[ValidationMessage]:
    plan = loan.rate_mode
    if not isinstance(plan, StagedRatePlan) or not plan.stages:
        return []
    total = plan.total_years
    term = loan.loan_term_years
    if total == term:
        return []
    if total < term:
        gap = term - total
        return [
            _error(
                "rate_mode.stages",
                f"Stage years add up to {total} but the loan term is {term} years ({_years(gap)} short)",
            ),
            _info(
                "rate_mode.stages",
                f"Add {_years(gap)} to the existing stages or add a new stage",
                "Extend the last stage or append a new stage at the end of the plan",
            ),
        ]
    excess = total - term
    return [
        _error(
            "rate_mode.stages",
            f"Stage years add up to {total} but the loan term is {term} years ({_years(excess)} over)",
        ),
        _info(
            "rate_mode.stages",
            f"Remove {_years(excess)} from the existing stages",
            "Shorten the last stage or delete stages from the end of the plan",
        ),
    ]


# --- risk heuristics -------------------------------------------------------


def check_high_loan_ratio(loan: LoanInput) -> List[ValidationMessage]:
    ratio = loan.effective_loan_ratio
    if ratio > HIGH_LOAN_RATIO:
        return [
            _warning(
                "loan_sizing",
                f"Loan ratio is high ({_pct(ratio)}), which may hurt the approval odds",
                "Consider increasing the down payment or choosing a lower-priced property",
            )
        ]
    return []


def _rates_in_range(loan: LoanInput) -> bool:
    if isinstance(loan.rate_mode, StagedRatePlan):
        rates = [s.annual_rate for s in loan.rate_mode.stages]
    else:
        rates = [loan.rate_mode.annual_rate]
    return all(ANNUAL_RATE_MIN <= r <= ANNUAL_RATE_MAX for r in rates)


def check_monthly_payment_burden(loan: LoanInput) -> List[ValidationMessage]:
    # The estimate is only meaningful, and only safe to compute, on in-range inputs.
    if not HOUSE_PRICE_MIN <= loan.house_price <= HOUSE_PRICE_MAX:
        return []
    if not LOAN_TERM_MIN_YEARS <= loan.loan_term_years <= LOAN_TERM_MAX_YEARS:
        return []
    if not 0 <= loan.down_payment <= loan.house_price:
        return []
    if check_loan_sizing_range(loan):
        return []
    if not _rates_in_range(loan):
        return []
    payment = estimate_monthly_payment(loan)
    limit = loan.house_price * HIGH_PAYMENT_TO_PRICE
    if payment > limit:
        return [
            _warning(
                "loan_term_years",
                f"Estimated monthly payment of {_money(payment)} exceeds {_pct(HIGH_PAYMENT_TO_PRICE)} of the house price",
                "Consider extending the loan term or increasing the down payment",
            )
        ]
    return []


def check_long_grace(loan: LoanInput) -> List[ValidationMessage]:
    grace = loan.grace_period
    if grace is not None and grace.years >= LONG_GRACE_YEARS:
        return [
            _warning(
                "grace_period.years",
                "A long grace period increases the total interest paid",
                "Review whether the payment after the grace period is affordable",
            )
        ]
    return []


def check_short_repayment(loan: LoanInput) -> List[ValidationMessage]:
    grace = loan.grace_period
    if grace is None or not grace.included_in_term:
        return []
    remaining = loan.loan_term_years - grace.years
    if 1 <= remaining < SHORT_REPAYMENT_YEARS:
        return [
            _warning(
                "grace_period.years",
                f"Only {_years(remaining)} of repayment remain after the grace period, so payments will be high",
                "Consider a longer loan term or a shorter grace period",
            )
        ]
    return []


def check_renovation_ratio(loan: LoanInput) -> List[ValidationMessage]:
    if loan.house_price <= 0:
        return []
    ratio = loan.renovation_fees / loan.house_price
    if ratio > HIGH_RENOVATION_RATIO:
        return [
            _warning(
                "renovation_fees",
                f"Renovation fees are high relative to the house price ({_pct(ratio)})",
                "Renovation budgets usually stay within 20-30% of the house price",
            )
        ]
    return []


def check_total_investment(loan: LoanInput) -> List[ValidationMessage]:
    if loan.total_investment_cost > HIGH_TOTAL_INVESTMENT:
        return [
            _warning(
                "total_investment_cost",
                "Total investment cost is unusually high",
                "Review the house price and fee settings",
            )
        ]
    return []


# --- informational rules ---------------------------------------------------


def check_down_payment_ratio(loan: LoanInput) -> List[ValidationMessage]:
    if loan.house_price <= 0:
        return []
    ratio = loan.down_payment_ratio
    if ratio < RECOMMENDED_DOWN_PAYMENT_RATIO:
        return [
            _info(
                "down_payment",
                f"Down payment ratio ({_pct(ratio)}) is below the recommended level",
                f"A down payment of at least {_pct(RECOMMENDED_DOWN_PAYMENT_RATIO)} usually gets better loan terms",
            )
        ]
    return []


def check_low_fixed_rate(loan: LoanInput) -> List[ValidationMessage]:
    if isinstance(loan.rate_mode, FixedRate) and loan.rate_mode.annual_rate < LOW_FIXED_RATE:
        return [
            _info(
                "rate_mode.annual_rate",
                "Annual rate is unusually low; check whether it is a promotional rate",
                "Introductory rates are usually time-limited and reset later",
            )
        ]
    return []


RULES: Sequence[Rule] = (
    check_house_price,
    check_down_payment,
    check_loan_term,
    check_fixed_rate,
    check_loan_sizing_range,
    check_grace_range,
    check_fees,
    check_down_payment_within_price,
    check_financeable_base,
    check_loan_within_base,
    check_grace_within_term,
    check_stage_count,
    check_stage_values,
    check_stage_total,
    check_high_loan_ratio,
    check_monthly_payment_burden,
    check_long_grace,
    check_short_repayment,
    check_renovation_ratio,
    check_total_investment,
    check_down_payment_ratio,
    check_low_fixed_rate,
)


def validate(loan: LoanInput, rules: Sequence[Rule] = RULES) -> ValidationReport:
    """Run ``rules`` against ``loan`` and collect the messages by severity."""
    report = ValidationReport()
    buckets = {
        Severity.ERROR: report.errors,
        Severity.WARNING: report.warnings,
        Severity.INFO: report.infos,
    }
    for rule in rules:
        for message in rule(loan):
            buckets[message.severity].append(message)
    logger.debug(
        "Validated loan input: %d errors, %d warnings, %d infos",
        len(report.errors),
        len(report.warnings),
        len(report.infos),
    )
    return report


def get_correction_suggestions(loan: LoanInput) -> List[str]:
    """Return short quick-fix hints for the input.

    These restate some of the facts behind the structured messages in prose
    form and are meant for one-click fixes in a front end; they are not part
    of the validation report.
    """
    suggestions: List[str] = []

    base = loan.financeable_base
    if loan.effective_loan_amount > base:
        suggestions.append(f"Cap the loan amount at the financeable maximum of {_money(max(base, Decimal('0')))}")

    if loan.effective_loan_ratio > SUGGESTION_LOAN_RATIO:
        suggested = loan.house_price * SUGGESTED_DOWN_PAYMENT_RATIO
        suggestions.append(
            f"Increase the down payment to {_money(suggested)} ({_pct(SUGGESTED_DOWN_PAYMENT_RATIO)} of the house price)"
        )

    if isinstance(loan.rate_mode, FixedRate) and loan.rate_mode.annual_rate > HIGH_FIXED_RATE:
        suggestions.append("The interest rate is high; compare offers from other lenders")

    if loan.loan_term_years > LONG_TERM_YEARS:
        suggestions.append("A longer term increases total interest; consider a shorter loan term")

    return suggestions
