"""Data models for the mortgage calculator.

This module defines dataclasses representing the entities the calculator works
with: the rate structure (a fixed rate or a plan of sequential rate stages),
the loan input record with its derived values, individual schedule rows and
the aggregate records returned by the engine and the validator.

Inputs are frozen so that one engine invocation can never observe a changing
record. Values which can be derived from other fields (the loan amount in
ratio mode, the weighted rate of a staged plan, stage numbers) are exposed as
properties instead of being stored twice.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union


class RepaymentMethod(str, Enum):
    """How each monthly payment is split between principal and interest."""

    EQUAL_INSTALLMENT = "equal_installment"
    EQUAL_PRINCIPAL = "equal_principal"


class LoanSizingMode(str, Enum):
    BY_RATIO = "by_ratio"
    BY_AMOUNT = "by_amount"


class Severity(str, Enum):
    """Validation message severity levels."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class RateStage:
    """One segment of a staged interest-rate plan.

    Attributes
    ----------
    annual_rate: Decimal
        Nominal annual rate as a fraction (``Decimal("0.025")`` is 2.5 %).
    years: int
        How long the stage lasts.
    """

    annual_rate: Decimal
    years: int

    @property
    def monthly_rate(self) -> Decimal:
        return self.annual_rate / Decimal(12)

    @property
    def months(self) -> int:
        return self.years * 12


@dataclass(frozen=True)
class StagedRatePlan:
    """Sequential rate stages applied in chronological order."""

    stages: Tuple[RateStage, ...] = ()

    @property
    def total_years(self) -> int:
        return sum(s.years for s in self.stages)

    @property
    def total_months(self) -> int:
        return sum(s.months for s in self.stages)

    @property
    def weighted_average_annual_rate(self) -> Decimal:
        """Return ``sum(rate * years) / sum(years)``, or zero for an empty plan."""
        total_years = self.total_years
        if total_years <= 0:
            return Decimal("0")
        weighted = sum((s.annual_rate * s.years for s in self.stages), Decimal("0"))
        return weighted / Decimal(total_years)

    @property
    def first_monthly_rate(self) -> Decimal:
        return self.stages[0].monthly_rate if self.stages else Decimal("0")

    def numbered(self) -> Iterator[Tuple[int, RateStage]]:
        """Yield ``(stage_number, stage)`` pairs, numbering from 1."""
        for index, stage in enumerate(self.stages):
            yield index + 1, stage


@dataclass(frozen=True)
class FixedRate:
    annual_rate: Decimal


RateMode = Union[FixedRate, StagedRatePlan]


@dataclass(frozen=True)
class ByRatio:
    """The loan amount follows from a ratio of the financeable base."""

    ratio: Decimal


@dataclass(frozen=True)
class ByAmount:
    """The loan amount is stated directly; the ratio is derived from it."""

    amount: Decimal


LoanSizing = Union[ByRatio, ByAmount]


@dataclass(frozen=True)
class GracePeriod:
    """An interest-only phase at the start of the loan.

    When ``included_in_term`` is True the grace years are part of the stated
    loan term, which shortens the repayment phase. Otherwise the repayment
    phase keeps the full term and the loan runs longer.
    """

    years: int
    included_in_term: bool = True


@dataclass(frozen=True)
class LoanInput:
    """All user inputs for one calculation.

    Only the authoritative half of each dual value is stored: the sizing
    variant decides whether the ratio or the amount drives the loan, and the
    rate variant decides whether a single rate or a staged plan applies.
    Everything else is derived on access.
    """

    house_price: Decimal = Decimal("10000000")
    down_payment: Decimal = Decimal("2000000")
    loan_sizing: LoanSizing = ByRatio(Decimal("0.80"))
    loan_term_years: int = 30
    rate_mode: RateMode = FixedRate(Decimal("0.025"))
    grace_period: Optional[GracePeriod] = None
    repayment_method: RepaymentMethod = RepaymentMethod.EQUAL_INSTALLMENT
    misc_fees: Decimal = Decimal("0")
    renovation_fees: Decimal = Decimal("0")

    @property
    def loan_sizing_mode(self) -> LoanSizingMode:
        if isinstance(self.loan_sizing, ByRatio):
            return LoanSizingMode.BY_RATIO
        return LoanSizingMode.BY_AMOUNT

    @property
    def is_staged(self) -> bool:
        return isinstance(self.rate_mode, StagedRatePlan)

    @property
    def financeable_base(self) -> Decimal:
        return self.house_price - self.down_payment

    @property
    def effective_loan_amount(self) -> Decimal:
        if isinstance(self.loan_sizing, ByRatio):
            return self.financeable_base * self.loan_sizing.ratio
        return self.loan_sizing.amount

    @property
    def effective_loan_ratio(self) -> Decimal:
        if isinstance(self.loan_sizing, ByRatio):
            return self.loan_sizing.ratio
        base = self.financeable_base
        if base <= 0:
            return Decimal("0")
        return self.loan_sizing.amount / base

    @property
    def effective_annual_rate(self) -> Decimal:
        if isinstance(self.rate_mode, StagedRatePlan):
            return self.rate_mode.weighted_average_annual_rate
        return self.rate_mode.annual_rate

    @property
    def effective_monthly_rate(self) -> Decimal:
        return self.effective_annual_rate / Decimal(12)

    @property
    def initial_monthly_rate(self) -> Decimal:
        """Rate of the first scheduled month (fixed rate or first stage)."""
        if isinstance(self.rate_mode, StagedRatePlan):
            return self.rate_mode.first_monthly_rate
        return self.rate_mode.annual_rate / Decimal(12)

    @property
    def grace_months(self) -> int:
        if self.grace_period is None:
            return 0
        return self.grace_period.years * 12

    @property
    def repayment_months(self) -> int:
        if self.grace_period is None or not self.grace_period.included_in_term:
            return self.loan_term_years * 12
        return (self.loan_term_years - self.grace_period.years) * 12

    @property
    def total_months(self) -> int:
        return self.grace_months + self.repayment_months

    @property
    def total_investment_cost(self) -> Decimal:
        return self.house_price + self.misc_fees + self.renovation_fees

    @property
    def initial_cash(self) -> Decimal:
        return self.down_payment + self.misc_fees + self.renovation_fees

    @property
    def down_payment_ratio(self) -> Decimal:
        if self.house_price <= 0:
            return Decimal("0")
        return self.down_payment / self.house_price

    def without_grace(self) -> "LoanInput":
        """Return a copy of this input with the grace period removed."""
        return replace(self, grace_period=None)


@dataclass
class PaymentPeriod:
    """One month of the amortization schedule.

    Grace rows have ``principal_portion == 0`` and leave the balance
    untouched. ``applied_monthly_rate`` is the rate used for the row's
    interest; ``stage_number`` is set only for rows produced by a staged plan.
    """

    period_index: int
    year_index: int
    month_in_year: int
    payment: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_balance: Decimal
    cumulative_payment: Decimal
    cumulative_principal: Decimal
    cumulative_interest: Decimal
    applied_monthly_rate: Decimal
    is_grace_period: bool = False
    stage_number: Optional[int] = None


@dataclass
class PeriodSummary:
    """Aggregates of a three-year window of the schedule."""

    label: str
    start_year: int
    end_year: int
    average_monthly_payment: Decimal
    average_monthly_principal: Decimal
    average_monthly_interest: Decimal
    total_payment: Decimal
    total_principal: Decimal
    total_interest: Decimal
    principal_percentage: Decimal
    interest_percentage: Decimal
    ending_balance: Decimal


@dataclass
class YearlyAnalysis:
    year: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    principal_percentage: Decimal
    interest_percentage: Decimal
    year_end_balance: Decimal


@dataclass
class InterestPrincipalAnalysis:
    total_principal: Decimal = Decimal("0")
    total_interest: Decimal = Decimal("0")
    principal_percentage: Decimal = Decimal("0")
    interest_percentage: Decimal = Decimal("0")
    yearly_breakdown: List[YearlyAnalysis] = field(default_factory=list)


@dataclass
class GracePeriodResult:
    """Effect of the grace period compared with the same loan without one.

    ``payment_increase_*`` and ``total_interest_increase`` compare the
    post-grace plan against a baseline schedule computed for the same input
    with the grace period removed.
    """

    grace_months: int
    grace_monthly_payment: Decimal
    grace_total_interest: Decimal
    remaining_principal_after_grace: Decimal
    repayment_months_after_grace: int
    monthly_payment_after_grace: Decimal
    total_interest_after_grace: Decimal
    baseline_monthly_payment: Decimal
    baseline_total_interest: Decimal
    payment_increase_amount: Decimal
    payment_increase_percentage: Decimal
    total_interest_increase: Decimal
    total_repayment_months: int


@dataclass
class CalculationResult:
    """Everything the engine produces for one loan input.

    ``monthly_payment`` is the average payment over the non-grace rows.
    """

    effective_loan_amount: Decimal
    initial_cash: Decimal
    total_investment_cost: Decimal
    monthly_payment: Decimal
    total_interest: Decimal
    total_payment: Decimal
    schedule: List[PaymentPeriod]
    period_summaries: List[PeriodSummary]
    analysis: InterestPrincipalAnalysis
    grace_info: Optional[GracePeriodResult] = None


@dataclass(frozen=True)
class ValidationMessage:
    severity: Severity
    field: str
    message: str
    suggestion: Optional[str] = None

    @property
    def recommendation(self) -> Optional[str]:
        return self.suggestion


@dataclass
class ValidationReport:
    """Outcome of validating a :class:`LoanInput`.

    Only errors block a calculation; warnings and infos are advisory.
    """

    errors: List[ValidationMessage] = field(default_factory=list)
    warnings: List[ValidationMessage] = field(default_factory=list)
    infos: List[ValidationMessage] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors
