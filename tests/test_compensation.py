import pytest
from decimal import Decimal

from payroll_engine.core.exceptions import ComputationError
from payroll_engine.schemas.payroll import AttendanceSummary, Loan
from payroll_engine.services.compensation import compute_compensation
from payroll_engine.services.tax import bracket_calculator, calculate_tax


def _summary(**kwargs):
    return AttendanceSummary(**kwargs)


def test_worked_example(profile_factory):
    """3000 basic, 500 housing, 10h overtime at 20, 2 absent days."""
    profile = profile_factory()
    attendance = _summary(working_days=20, absent_days=2, overtime_hours=Decimal("10"), total_days=22)

    result = compute_compensation(profile, attendance, lambda gross, bracket: Decimal("350"))

    assert result.per_day_salary == Decimal("100.00")
    assert result.absent_deduction == Decimal("200.00")
    assert result.overtime_pay == Decimal("200.00")
    assert result.gross_salary == Decimal("3500.00")
    assert result.deductions.tax == Decimal("350.00")
    assert result.deductions.provident_fund == Decimal("420.00")
    assert result.deductions.insurance == Decimal("50.00")
    assert result.deductions.loan == Decimal("0.00")
    assert result.total_deductions == Decimal("820.00")
    assert result.net_salary == Decimal("2680.00")


def test_default_standard_bracket_matches_worked_example(profile_factory):
    profile = profile_factory()
    attendance = _summary(absent_days=2, overtime_hours=Decimal("10"))

    result = compute_compensation(profile, attendance)

    assert result.deductions.tax == Decimal("350.00")
    assert result.net_salary == Decimal("2680.00")


def test_gross_is_basic_plus_allowances_without_absence_or_overtime(profile_factory):
    profile = profile_factory(
        allowances={"housing": Decimal("500"), "transport": Decimal("120.50"), "meals": Decimal("75")}
    )
    result = compute_compensation(profile, _summary(working_days=22), lambda g, b: Decimal("0"))

    assert result.gross_salary == Decimal("3000") + Decimal("500") + Decimal("120.50") + Decimal("75")
    assert result.overtime_pay == Decimal("0.00")
    assert result.absent_deduction == Decimal("0.00")


def test_zero_attendance_gives_basic_plus_allowances(profile_factory):
    result = compute_compensation(profile_factory(), _summary(), lambda g, b: Decimal("0"))
    assert result.gross_salary == Decimal("3500.00")


def test_missing_hourly_rate_means_no_overtime_pay(profile_factory):
    profile = profile_factory(hourly_rate=Decimal("0"))
    result = compute_compensation(profile, _summary(overtime_hours=Decimal("12")), lambda g, b: Decimal("0"))
    assert result.overtime_pay == Decimal("0.00")
    assert result.gross_salary == Decimal("3500.00")


def test_only_active_loans_are_deducted(profile_factory):
    profile = profile_factory(loans=[
        Loan(status="active", monthly_installment=Decimal("150")),
        Loan(status="closed", monthly_installment=Decimal("999")),
        Loan(status="active", monthly_installment=Decimal("25.25")),
    ])
    result = compute_compensation(profile, _summary(), lambda g, b: Decimal("0"))
    assert result.deductions.loan == Decimal("175.25")


def test_deduction_and_net_identities_hold_with_odd_amounts(profile_factory):
    profile = profile_factory(
        basic_salary=Decimal("2777.77"),
        allowances={"phone": Decimal("33.33")},
        hourly_rate=Decimal("13.13"),
        insurance=Decimal("41.07"),
        loans=[Loan(status="active", monthly_installment=Decimal("99.99"))],
    )
    result = compute_compensation(
        profile,
        _summary(absent_days=1, overtime_hours=Decimal("3.5")),
        bracket_calculator({"standard": Decimal("0.173")})
    )
    d = result.deductions
    assert result.total_deductions == d.tax + d.provident_fund + d.insurance + d.loan + d.other
    assert result.net_salary == result.gross_salary - result.total_deductions


def test_negative_gross_is_not_clamped(profile_factory):
    profile = profile_factory(allowances={}, hourly_rate=Decimal("0"), insurance=Decimal("10"))
    result = compute_compensation(profile, _summary(absent_days=45), calculate_tax)

    assert result.gross_salary == Decimal("-1500.00")
    assert result.deductions.tax == Decimal("0.00")
    assert result.deductions.provident_fund == Decimal("0.00")
    assert result.net_salary == Decimal("-1510.00")


def test_allowances_are_copied_not_referenced(profile_factory):
    profile = profile_factory()
    result = compute_compensation(profile, _summary(), lambda g, b: Decimal("0"))
    profile.allowances["housing"] = Decimal("9999")
    assert result.allowances == {"housing": Decimal("500.00")}


def test_failing_tax_function_raises_computation_error(profile_factory):
    def broken(gross, bracket):
        raise RuntimeError("rate table unavailable")

    with pytest.raises(ComputationError) as exc_info:
        compute_compensation(profile_factory(), _summary(), broken)
    assert exc_info.value.error_code == "COMPUTATION_ERROR"


@pytest.mark.parametrize("bad_value", [Decimal("-1"), "not-a-number", None])
def test_invalid_tax_amount_raises_computation_error(profile_factory, bad_value):
    with pytest.raises(ComputationError):
        compute_compensation(profile_factory(), _summary(), lambda g, b: bad_value)


def test_unknown_bracket_raises_computation_error(profile_factory):
    with pytest.raises(ComputationError):
        compute_compensation(profile_factory(tax_bracket="mystery"), _summary())
