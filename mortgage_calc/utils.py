"""Utility functions for the mortgage calculator.

This module provides helpers for turning user input (command line options,
form fields, JSON values) into the ``Decimal`` values the engine expects:
grouped numerals, ``k``/``m`` amount suffixes, percentages and
``RATE:YEARS`` stage specifications.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, getcontext
from typing import Union

from .data_models import RateStage

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[str, int, float, Decimal]


def decimal_from_str(value: Number) -> Decimal:
    """Convert a numeric value into a ``Decimal``.

    Strings may contain grouping commas and surrounding whitespace. Floats are
    converted through their shortest ``repr`` so ``0.1`` becomes
    ``Decimal("0.1")`` rather than its binary expansion. Raises ``ValueError``
    if conversion fails.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    if isinstance(value, (int, float)):
        value = repr(value)
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a monetary amount with optional suffixes.

    Accepts plain numbers ("5000000", "5,000,000") and shorthand with
    ``k``/``m`` suffixes (e.g. "500k" meaning 500_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    return decimal_from_str(value) * factor


def parse_ratio(value: str) -> Decimal:
    """Parse a ratio given as a fraction or a percentage (e.g. "0.8", "80", "80%")."""
    value = value.strip()
    is_percent = value.endswith("%")
    if is_percent:
        value = value[:-1]
    ratio = decimal_from_str(value)
    # A number like 80 means 80%
    if is_percent or ratio > 1:
        ratio = ratio / 100
    return ratio


def parse_rate_percent(value: str) -> Decimal:
    """Parse an annual interest rate written in percent ("2.5" or "2.5%").

    Rates are always read as percentages because a fraction and a small
    percentage ("0.5") cannot be told apart. Returns the rate as a fraction.
    """
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    return decimal_from_str(value) / 100


def parse_stage(value: str) -> RateStage:
    """Parse a ``RATE:YEARS`` stage specification, rate in percent."""
    parts = value.split(":")
    if len(parts) != 2:
        raise ValueError(f"Stage must be in RATE:YEARS format; got {value}")
    rate_str, years_str = parts
    try:
        years = int(years_str.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid stage years: {years_str}") from exc
    return RateStage(annual_rate=parse_rate_percent(rate_str), years=years)
