"""Tests for the validation and advisory rules."""

from decimal import Decimal

import pytest

from mortgage_calc.data_models import (
    ByAmount,
    ByRatio,
    FixedRate,
    GracePeriod,
    RateStage,
    RepaymentMethod,
    Severity,
    StagedRatePlan,
)
from mortgage_calc.validation import (
    RULES,
    check_house_price,
    get_correction_suggestions,
    validate,
)


def fields_of(messages):
    return [m.field for m in messages]


class TestDefaults:
    def test_default_input_is_clean(self, default_loan):
        report = validate(default_loan)

        assert report.is_valid
        assert report.errors == []
        assert report.warnings == []
        assert report.infos == []

    def test_no_suggestions_for_default_input(self, default_loan):
        assert get_correction_suggestions(default_loan) == []

    def test_messages_are_bucketed_by_severity(self, make_loan):
        report = validate(make_loan(house_price=Decimal("500000"), down_payment=Decimal("50000")))

        assert all(m.severity == Severity.ERROR for m in report.errors)
        assert all(m.severity == Severity.WARNING for m in report.warnings)
        assert all(m.severity == Severity.INFO for m in report.infos)

    def test_custom_rule_set(self, make_loan):
        loan = make_loan(house_price=Decimal("500000"), down_payment=Decimal("0"))
        report = validate(loan, rules=[check_house_price])

        assert fields_of(report.errors) == ["house_price"]
        assert report.warnings == []
        assert report.infos == []

    def test_rules_are_plain_functions(self):
        assert all(callable(rule) for rule in RULES)


class TestRangeErrors:
    """Each out-of-range field produces an error naming that field."""

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"house_price": Decimal("500000"), "down_payment": Decimal("100000")}, "house_price"),
            ({"house_price": Decimal("150000000")}, "house_price"),
            ({"down_payment": Decimal("-1")}, "down_payment"),
            ({"loan_term_years": 0}, "loan_term_years"),
            ({"loan_term_years": 41}, "loan_term_years"),
            ({"rate_mode": FixedRate(Decimal("0.25"))}, "rate_mode.annual_rate"),
            ({"rate_mode": FixedRate(Decimal("0.0005"))}, "rate_mode.annual_rate"),
            ({"loan_sizing": ByRatio(Decimal("0.95"))}, "loan_sizing.ratio"),
            ({"loan_sizing": ByRatio(Decimal("0.05"))}, "loan_sizing.ratio"),
            ({"loan_sizing": ByAmount(Decimal("50000"))}, "loan_sizing.amount"),
            ({"grace_period": GracePeriod(6)}, "grace_period.years"),
            ({"misc_fees": Decimal("-1")}, "misc_fees"),
            ({"misc_fees": Decimal("10000001")}, "misc_fees"),
            ({"renovation_fees": Decimal("-5")}, "renovation_fees"),
        ],
    )
    def test_out_of_range(self, make_loan, overrides, field):
        report = validate(make_loan(**overrides))

        assert not report.is_valid
        assert field in fields_of(report.errors)

    def test_boundaries_are_inclusive(self, make_loan):
        loan = make_loan(
            loan_term_years=40,
            rate_mode=FixedRate(Decimal("0.20")),
            loan_sizing=ByRatio(Decimal("0.10")),
        )

        assert validate(loan).is_valid


class TestConsistencyErrors:
    def test_down_payment_exceeds_price(self, make_loan):
        report = validate(make_loan(down_payment=Decimal("11000000")))

        assert "down_payment" in fields_of(report.errors)

    def test_nothing_to_finance(self, make_loan):
        report = validate(make_loan(down_payment=Decimal("10000000")))

        assert "loan_sizing" in fields_of(report.errors)

    def test_amount_above_financeable_base(self, make_loan):
        report = validate(make_loan(loan_sizing=ByAmount(Decimal("9000000"))))

        assert fields_of(report.errors) == ["loan_sizing.amount"]
        assert "8,000,000" in report.errors[0].message

    def test_amount_at_financeable_base_is_allowed(self, make_loan):
        report = validate(make_loan(loan_sizing=ByAmount(Decimal("8000000"))))

        assert "loan_sizing.amount" not in fields_of(report.errors)

    def test_grace_not_shorter_than_term(self, make_loan):
        report = validate(make_loan(loan_term_years=3, grace_period=GracePeriod(3)))

        assert fields_of(report.errors).count("grace_period.years") == 2

    def test_grace_excluded_only_needs_to_be_shorter(self, make_loan):
        report = validate(make_loan(loan_term_years=3, grace_period=GracePeriod(3, included_in_term=False)))

        assert fields_of(report.errors) == ["grace_period.years"]


class TestStagedPlans:
    def test_matching_plan_is_valid(self, make_loan, two_stage_plan):
        report = validate(make_loan(loan_term_years=5, rate_mode=two_stage_plan))

        assert report.errors == []

    def test_empty_plan(self, make_loan):
        report = validate(make_loan(rate_mode=StagedRatePlan(())))

        assert fields_of(report.errors) == ["rate_mode.stages"]

    def test_too_many_stages(self, make_loan):
        plan = StagedRatePlan(tuple(RateStage(Decimal("0.02"), 1) for _ in range(11)))
        report = validate(make_loan(loan_term_years=11, rate_mode=plan))

        assert fields_of(report.errors) == ["rate_mode.stages"]

    def test_stage_values_reported_by_index(self, make_loan):
        plan = StagedRatePlan((RateStage(Decimal("0.02"), 10), RateStage(Decimal("0.30"), 0)))
        report = validate(make_loan(loan_term_years=10, rate_mode=plan))

        fields = fields_of(report.errors)
        assert "rate_mode.stages[1].annual_rate" in fields
        assert "rate_mode.stages[1].years" in fields
        assert not any(f.startswith("rate_mode.stages[0]") for f in fields)

    def test_one_year_short(self, make_loan):
        plan = StagedRatePlan((RateStage(Decimal("0.02"), 2), RateStage(Decimal("0.03"), 2)))
        report = validate(make_loan(loan_term_years=5, rate_mode=plan))

        assert len(report.errors) == 1
        error = report.errors[0]
        assert error.field == "rate_mode.stages"
        assert "1 year short" in error.message
        assert any(m.field == "rate_mode.stages" and "Add 1 year" in m.message for m in report.infos)

    def test_years_over(self, make_loan):
        plan = StagedRatePlan((RateStage(Decimal("0.02"), 4), RateStage(Decimal("0.03"), 3)))
        report = validate(make_loan(loan_term_years=5, rate_mode=plan))

        assert len(report.errors) == 1
        assert "2 years over" in report.errors[0].message
        assert any("Remove 2 years" in m.message for m in report.infos)

    def test_fixed_rate_checks_skip_staged_plans(self, make_loan, two_stage_plan):
        report = validate(make_loan(loan_term_years=5, rate_mode=two_stage_plan))

        assert "rate_mode.annual_rate" not in fields_of(report.errors + report.infos)


class TestWarnings:
    def test_ratio_at_threshold_is_not_flagged(self, make_loan):
        loan = make_loan(down_payment=Decimal("1500000"), loan_sizing=ByRatio(Decimal("0.80")))
        report = validate(loan)

        assert report.is_valid
        assert "loan_sizing" not in fields_of(report.warnings)
        assert fields_of(report.infos) == ["down_payment"]

    def test_high_ratio(self, make_loan):
        loan = make_loan(down_payment=Decimal("1500000"), loan_sizing=ByRatio(Decimal("0.85")))
        report = validate(loan)

        assert report.is_valid
        assert "loan_sizing" in fields_of(report.warnings)
        warning = report.warnings[fields_of(report.warnings).index("loan_sizing")]
        assert "85.0%" in warning.message
        assert warning.suggestion

    def test_high_ratio_by_amount(self, make_loan):
        report = validate(make_loan(loan_sizing=ByAmount(Decimal("7200000"))))

        assert "loan_sizing" in fields_of(report.warnings)

    def test_heavy_monthly_payment(self, make_loan):
        loan = make_loan(house_price=Decimal("2000000"), down_payment=Decimal("400000"), loan_term_years=5)
        report = validate(loan)

        assert report.is_valid
        assert "loan_term_years" in fields_of(report.warnings)

    def test_payment_burden_uses_average_for_equal_principal(self, make_loan):
        # First payment is about 24,889 but the average is about 14,252; the limit is 20,000
        loan = make_loan(
            house_price=Decimal("2000000"),
            down_payment=Decimal("400000"),
            rate_mode=FixedRate(Decimal("0.20")),
            repayment_method=RepaymentMethod.EQUAL_PRINCIPAL,
        )
        report = validate(loan)

        assert report.is_valid
        assert "loan_term_years" not in fields_of(report.warnings)

    def test_long_grace(self, make_loan):
        report = validate(make_loan(grace_period=GracePeriod(3)))

        assert report.is_valid
        assert "grace_period.years" in fields_of(report.warnings)

    def test_short_grace_is_not_flagged(self, make_loan):
        report = validate(make_loan(grace_period=GracePeriod(2)))

        assert report.warnings == []

    def test_short_repayment_after_grace(self, make_loan):
        report = validate(make_loan(loan_term_years=6, grace_period=GracePeriod(2)))

        messages = [m for m in report.warnings if m.field == "grace_period.years"]
        assert len(messages) == 1
        assert "4 years" in messages[0].message

    def test_renovation_heavy(self, make_loan):
        report = validate(make_loan(renovation_fees=Decimal("4000000")))

        assert fields_of(report.warnings) == ["renovation_fees"]

    def test_total_investment(self, make_loan):
        loan = make_loan(
            house_price=Decimal("95000000"),
            down_payment=Decimal("19000000"),
            misc_fees=Decimal("6000000"),
        )
        report = validate(loan)

        assert "total_investment_cost" in fields_of(report.warnings)

    def test_warnings_do_not_block(self, make_loan):
        report = validate(make_loan(renovation_fees=Decimal("4000000"), grace_period=GracePeriod(4)))

        assert report.is_valid
        assert len(report.warnings) == 2


class TestInfos:
    def test_low_down_payment(self, make_loan):
        report = validate(make_loan(down_payment=Decimal("1000000")))

        infos = [m for m in report.infos if m.field == "down_payment"]
        assert len(infos) == 1
        assert "10.0%" in infos[0].message
        assert infos[0].recommendation

    def test_low_fixed_rate(self, make_loan):
        report = validate(make_loan(rate_mode=FixedRate(Decimal("0.005"))))

        assert report.is_valid
        assert fields_of(report.infos) == ["rate_mode.annual_rate"]


class TestCorrectionSuggestions:
    def test_cap_loan_amount(self, make_loan):
        suggestions = get_correction_suggestions(make_loan(loan_sizing=ByAmount(Decimal("9000000"))))

        assert "Cap the loan amount at the financeable maximum of 8,000,000" in suggestions

    def test_raise_down_payment(self, make_loan):
        suggestions = get_correction_suggestions(make_loan(loan_sizing=ByRatio(Decimal("0.90"))))

        assert "Increase the down payment to 2,500,000 (25.0% of the house price)" in suggestions

    def test_ratio_at_suggestion_threshold(self, make_loan):
        assert get_correction_suggestions(make_loan(loan_sizing=ByRatio(Decimal("0.85")))) == []

    def test_high_rate(self, make_loan):
        suggestions = get_correction_suggestions(make_loan(rate_mode=FixedRate(Decimal("0.06"))))

        assert suggestions == ["The interest rate is high; compare offers from other lenders"]

    def test_long_term(self, make_loan):
        suggestions = get_correction_suggestions(make_loan(loan_term_years=35))

        assert suggestions == ["A longer term increases total interest; consider a shorter loan term"]

    def test_suggestions_do_not_change_report(self, make_loan):
        loan = make_loan(loan_term_years=35)
        before = validate(loan)
        get_correction_suggestions(loan)

        assert validate(loan) == before


class TestExtremeValues:
    """Out-of-range numbers are reported, never raised."""

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"rate_mode": FixedRate(Decimal("1e5000"))}, "rate_mode.annual_rate"),
            ({"loan_term_years": 20_000_000}, "loan_term_years"),
            ({"loan_sizing": ByRatio(Decimal("1e50"))}, "loan_sizing.ratio"),
            ({"down_payment": Decimal("-1e50")}, "down_payment"),
        ],
    )
    def test_reported_as_errors(self, make_loan, overrides, field):
        report = validate(make_loan(**overrides))

        assert not report.is_valid
        assert field in fields_of(report.errors)

    def test_huge_stage_rate(self, make_loan):
        plan = StagedRatePlan((RateStage(Decimal("1e5000"), 10), RateStage(Decimal("0.02"), 20)))
        report = validate(make_loan(rate_mode=plan))

        assert fields_of(report.errors) == ["rate_mode.stages[0].annual_rate"]
