"""Pytest configuration and shared fixtures."""

from dataclasses import replace
from decimal import Decimal

import pytest

from mortgage_calc.data_models import (
    ByAmount,
    FixedRate,
    LoanInput,
    RateStage,
    StagedRatePlan,
)


@pytest.fixture
def default_loan():
    """House 10M, 2M down, 80% ratio, 30 years at 2.5%, equal installment."""
    return LoanInput()


@pytest.fixture
def make_loan():
    """Return a factory building a LoanInput from the defaults plus overrides."""

    def _make(**overrides):
        return replace(LoanInput(), **overrides)

    return _make


@pytest.fixture
def million_loan(make_loan):
    """Factory for a loan of exactly 1,000,000 at a fixed rate."""

    def _make(rate="0.02", years=30, **overrides):
        overrides.setdefault("rate_mode", FixedRate(Decimal(rate)))
        return make_loan(loan_sizing=ByAmount(Decimal("1000000")), loan_term_years=years, **overrides)

    return _make


@pytest.fixture
def two_stage_plan():
    """2% for 2 years followed by 3% for 3 years."""
    return StagedRatePlan(
        (
            RateStage(Decimal("0.02"), 2),
            RateStage(Decimal("0.03"), 3),
        )
    )
