"""Conversion of loan inputs and results to and from plain dictionaries.

Dictionaries produced here are JSON-serialisable. Decimal values are written
as strings so that no precision is lost on the way through a JSON document;
``loan_input_from_dict`` accepts strings or numbers.
"""

from __future__ import annotations

import json
from dataclasses import asdict, fields
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping

from .data_models import (
    ByAmount,
    ByRatio,
    CalculationResult,
    FixedRate,
    GracePeriod,
    LoanInput,
    LoanSizingMode,
    PaymentPeriod,
    RateStage,
    RepaymentMethod,
    Severity,
    StagedRatePlan,
    ValidationMessage,
    ValidationReport,
)
from .utils import decimal_from_str

SCHEDULE_CSV_HEADER = [
    "Period",
    "Year",
    "Month",
    "Payment",
    "Principal",
    "Interest",
    "Remaining_Balance",
    "Cumulative_Payment",
    "Cumulative_Principal",
    "Cumulative_Interest",
    "Monthly_Rate",
    "Grace",
    "Stage",
]


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def loan_input_to_dict(loan: LoanInput) -> Dict[str, Any]:
    mode = loan.loan_sizing_mode
    if mode == LoanSizingMode.BY_RATIO:
        sizing = {"mode": mode.value, "ratio": str(loan.loan_sizing.ratio)}
    else:
        sizing = {"mode": mode.value, "amount": str(loan.loan_sizing.amount)}
    if isinstance(loan.rate_mode, StagedRatePlan):
        rate = {
            "mode": "staged",
            "stages": [{"annual_rate": str(s.annual_rate), "years": s.years} for s in loan.rate_mode.stages],
        }
    else:
        rate = {"mode": "fixed", "annual_rate": str(loan.rate_mode.annual_rate)}
    grace = None
    if loan.grace_period is not None:
        grace = {"years": loan.grace_period.years, "included_in_term": loan.grace_period.included_in_term}
    return {
        "house_price": str(loan.house_price),
        "down_payment": str(loan.down_payment),
        "loan_sizing": sizing,
        "loan_term_years": loan.loan_term_years,
        "rate_mode": rate,
        "grace_period": grace,
        "repayment_method": loan.repayment_method.value,
        "misc_fees": str(loan.misc_fees),
        "renovation_fees": str(loan.renovation_fees),
    }


def loan_input_from_dict(data: Mapping[str, Any]) -> LoanInput:
    """Build a :class:`LoanInput` from a dictionary.

    Missing keys take the :class:`LoanInput` defaults. Raises ``ValueError``
    for unknown modes, missing nested keys or unparsable values.
    """
    try:
        return _build_loan_input(data)
    except KeyError as exc:
        raise ValueError(f"Missing field: {exc.args[0]}") from exc
    except (TypeError, AttributeError) as exc:
        raise ValueError(f"Malformed loan input: {exc}") from exc


def _build_loan_input(data: Mapping[str, Any]) -> LoanInput:
    defaults = LoanInput()
    kwargs: Dict[str, Any] = {}

    for key in ("house_price", "down_payment", "misc_fees", "renovation_fees"):
        if data.get(key) is not None:
            kwargs[key] = decimal_from_str(data[key])

    if data.get("loan_term_years") is not None:
        kwargs["loan_term_years"] = _to_int(data["loan_term_years"], "loan_term_years")

    sizing = data.get("loan_sizing")
    if sizing is not None:
        mode = sizing.get("mode", LoanSizingMode.BY_RATIO.value)
        if mode == LoanSizingMode.BY_RATIO:
            kwargs["loan_sizing"] = ByRatio(decimal_from_str(sizing["ratio"]))
        elif mode == LoanSizingMode.BY_AMOUNT:
            kwargs["loan_sizing"] = ByAmount(decimal_from_str(sizing["amount"]))
        else:
            raise ValueError(f"Unknown loan sizing mode: {mode}")

    rate = data.get("rate_mode")
    if rate is not None:
        mode = rate.get("mode", "fixed")
        if mode == "fixed":
            kwargs["rate_mode"] = FixedRate(decimal_from_str(rate["annual_rate"]))
        elif mode == "staged":
            kwargs["rate_mode"] = StagedRatePlan(
                tuple(
                    RateStage(decimal_from_str(s["annual_rate"]), _to_int(s["years"], "years"))
                    for s in rate.get("stages", [])
                )
            )
        else:
            raise ValueError(f"Unknown rate mode: {mode}")

    grace = data.get("grace_period")
    if grace is not None:
        kwargs["grace_period"] = GracePeriod(
            years=_to_int(grace["years"], "grace_period.years"),
            included_in_term=bool(grace.get("included_in_term", True)),
        )

    if data.get("repayment_method") is not None:
        try:
            kwargs["repayment_method"] = RepaymentMethod(data["repayment_method"])
        except ValueError as exc:
            raise ValueError(f"Unknown repayment method: {data['repayment_method']}") from exc

    return LoanInput(**{f.name: kwargs.get(f.name, getattr(defaults, f.name)) for f in fields(LoanInput)})


def _to_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer for {name}: {value}")
    try:
        number = decimal_from_str(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {name}: {value}") from exc
    if number != number.to_integral_value():
        raise ValueError(f"Invalid integer for {name}: {value}")
    return int(number)


def canonical_json(loan: LoanInput) -> str:
    """Return a stable JSON encoding of ``loan`` (sorted keys, no spaces)."""
    return json.dumps(loan_input_to_dict(loan), sort_keys=True, separators=(",", ":"))


def result_to_dict(result: CalculationResult) -> Dict[str, Any]:
    return _plain(asdict(result))


def message_to_dict(message: ValidationMessage) -> Dict[str, Any]:
    data = {"field": message.field, "message": message.message}
    if message.severity == Severity.WARNING:
        data["suggestion"] = message.suggestion
    elif message.severity == Severity.INFO:
        data["recommendation"] = message.suggestion
    return data


def report_to_dict(report: ValidationReport) -> Dict[str, Any]:
    return {
        "is_valid": report.is_valid,
        "errors": [message_to_dict(m) for m in report.errors],
        "warnings": [message_to_dict(m) for m in report.warnings],
        "infos": [message_to_dict(m) for m in report.infos],
    }


def schedule_to_rows(schedule: List[PaymentPeriod]) -> List[List[Any]]:
    """Return the schedule as CSV rows matching ``SCHEDULE_CSV_HEADER``."""
    rows = []
    for p in schedule:
        rows.append(
            [
                p.period_index,
                p.year_index,
                p.month_in_year,
                str(p.payment),
                str(p.principal_portion),
                str(p.interest_portion),
                str(p.remaining_balance),
                str(p.cumulative_payment),
                str(p.cumulative_principal),
                str(p.cumulative_interest),
                str(p.applied_monthly_rate),
                p.is_grace_period,
                p.stage_number if p.stage_number is not None else "",
            ]
        )
    return rows
