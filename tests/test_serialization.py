"""Tests for dictionary conversion of inputs, results and reports."""

import json
from decimal import Decimal

import pytest

from mortgage_calc.data_models import (
    ByAmount,
    ByRatio,
    FixedRate,
    GracePeriod,
    LoanInput,
    LoanSizingMode,
    RepaymentMethod,
    StagedRatePlan,
)
from mortgage_calc.engine import calculate
from mortgage_calc.serialization import (
    SCHEDULE_CSV_HEADER,
    canonical_json,
    loan_input_from_dict,
    loan_input_to_dict,
    report_to_dict,
    result_to_dict,
    schedule_to_rows,
)
from mortgage_calc.validation import validate


def test_empty_dict_gives_defaults():
    assert loan_input_from_dict({}) == LoanInput()


def test_full_input_from_dict():
    loan = loan_input_from_dict(
        {
            "house_price": "12,000,000",
            "down_payment": 3000000,
            "loan_sizing": {"mode": "by_amount", "amount": "6000000"},
            "loan_term_years": 20,
            "rate_mode": {
                "mode": "staged",
                "stages": [{"annual_rate": 0.02, "years": 5}, {"annual_rate": "0.03", "years": 15}],
            },
            "grace_period": {"years": 2, "included_in_term": False},
            "repayment_method": "equal_principal",
            "misc_fees": "150000",
        }
    )

    assert loan.house_price == Decimal("12000000")
    assert loan.down_payment == Decimal("3000000")
    assert loan.loan_sizing == ByAmount(Decimal("6000000"))
    assert isinstance(loan.rate_mode, StagedRatePlan)
    assert [s.annual_rate for s in loan.rate_mode.stages] == [Decimal("0.02"), Decimal("0.03")]
    assert loan.grace_period == GracePeriod(2, included_in_term=False)
    assert loan.repayment_method == RepaymentMethod.EQUAL_PRINCIPAL
    assert loan.misc_fees == Decimal("150000")
    assert loan.renovation_fees == Decimal("0")


def test_dict_conversion_preserves_input(make_loan, two_stage_plan):
    loan = make_loan(
        loan_sizing=ByRatio(Decimal("0.7")),
        rate_mode=two_stage_plan,
        loan_term_years=5,
        grace_period=GracePeriod(1),
    )

    assert loan_input_from_dict(loan_input_to_dict(loan)) == loan


def test_to_dict_is_json_serialisable(default_loan):
    data = loan_input_to_dict(default_loan)

    assert json.loads(json.dumps(data)) == data
    assert data["loan_sizing"] == {"mode": "by_ratio", "ratio": "0.80"}
    assert data["rate_mode"] == {"mode": "fixed", "annual_rate": "0.025"}
    assert data["grace_period"] is None


def test_sizing_mode_names_the_variant(make_loan):
    loan = make_loan(loan_sizing=ByAmount(Decimal("5000000")))

    assert loan.loan_sizing_mode == LoanSizingMode.BY_AMOUNT
    assert loan_input_to_dict(loan)["loan_sizing"] == {"mode": "by_amount", "amount": "5000000"}
    assert loan_input_from_dict({"loan_sizing": {"amount": "1", "mode": "by_amount"}}).loan_sizing_mode == "by_amount"


@pytest.mark.parametrize(
    "data",
    [
        {"loan_sizing": {"mode": "by_share", "ratio": "0.5"}},
        {"rate_mode": {"mode": "variable"}},
        {"rate_mode": {"mode": "fixed"}},
        {"repayment_method": "balloon"},
        {"house_price": "ten million"},
        {"loan_term_years": "20.5"},
        {"loan_term_years": True},
        {"grace_period": {"included_in_term": True}},
        {"loan_sizing": "by_ratio"},
    ],
)
def test_malformed_input_raises_value_error(data):
    with pytest.raises(ValueError):
        loan_input_from_dict(data)


def test_canonical_json_ignores_construction_order(make_loan):
    a = make_loan(rate_mode=FixedRate(Decimal("0.03")), loan_term_years=20)
    b = make_loan(loan_term_years=20, rate_mode=FixedRate(Decimal("0.03")))

    assert canonical_json(a) == canonical_json(b)
    assert " " not in canonical_json(a)


def test_result_to_dict(default_loan):
    data = result_to_dict(calculate(default_loan))

    assert json.loads(json.dumps(data)) == data
    assert len(data["schedule"]) == 360
    assert data["effective_loan_amount"] == "6400000.00"
    assert data["grace_info"] is None
    assert data["schedule"][0]["stage_number"] is None
    assert data["period_summaries"][0]["label"] == "Years 1-3"


def test_report_to_dict_uses_suggestion_and_recommendation(make_loan):
    loan = make_loan(down_payment=Decimal("1000000"), loan_sizing=ByRatio(Decimal("0.85")), loan_term_years=0)
    data = report_to_dict(validate(loan))

    assert data["is_valid"] is False
    assert data["errors"][0] == {"field": "loan_term_years", "message": data["errors"][0]["message"]}
    assert "suggestion" in data["warnings"][0]
    assert "recommendation" in data["infos"][0]


def test_schedule_rows_match_header(make_loan, two_stage_plan):
    result = calculate(make_loan(loan_term_years=5, rate_mode=two_stage_plan))
    rows = schedule_to_rows(result.schedule)

    assert len(rows) == 60
    assert all(len(row) == len(SCHEDULE_CSV_HEADER) for row in rows)
    assert rows[0][0] == 1
    assert rows[0][-1] == 1
    assert rows[-1][-1] == 2
