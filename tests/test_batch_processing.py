import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from payroll_engine.core.exceptions import (
    AlreadyProcessedError,
    ComputationError,
    NotFoundError,
    PayrollValidationError,
)
from payroll_engine.schemas.payroll import AttendanceEntry, PayrollFilters
from payroll_engine.services.payroll_service import PayrollService, validate_period


@pytest.fixture
def staff(fake_employees, profile_factory):
    fake_employees.add(profile_factory(employee_id=1))
    fake_employees.add(profile_factory(employee_id=2, department="Finance"))
    fake_employees.add(profile_factory(employee_id=3, status="inactive"))
    return fake_employees


def test_default_run_covers_only_active_employees(service, staff, fake_payrolls):
    created = service.process_batch(month=3, year=2024, actor_id=9)

    assert sorted(r.employee_id for r in created) == [1, 2]
    assert all(r.status == "pending" for r in created)
    assert all(r.processed_by == 9 for r in created)
    assert len(fake_payrolls.records) == 2


def test_explicit_ids_include_inactive_employees(service, staff):
    created = service.process_batch(month=3, year=2024, employee_ids=[3])
    assert [r.employee_id for r in created] == [3]


def test_record_snapshots_attendance_and_computation(service, staff, fake_attendance):
    fake_attendance.add(1, AttendanceEntry(date=date(2024, 3, 4), status="present", overtime_hours=Decimal("10")))
    fake_attendance.add(1, AttendanceEntry(date=date(2024, 3, 5), status="absent"))
    fake_attendance.add(1, AttendanceEntry(date=date(2024, 3, 6), status="absent"))

    [record] = service.process_batch(month=3, year=2024, employee_ids=[1])

    assert (record.working_days, record.absent_days, record.leave_days) == (1, 2, 0)
    assert record.gross_salary == Decimal("3500.00")
    assert record.tax_deduction == Decimal("350.00")
    assert record.provident_fund == Decimal("420.00")
    assert record.insurance_deduction == Decimal("50.00")
    assert record.total_deductions == Decimal("820.00")
    assert record.net_salary == Decimal("2680.00")
    assert record.allowances == {"housing": "500.00"}


def test_records_are_independent_of_later_profile_changes(service, staff):
    [record] = service.process_batch(month=3, year=2024, employee_ids=[1])

    staff.profiles[1].basic_salary = Decimal("9000")
    staff.profiles[1].allowances["housing"] = Decimal("1")

    assert record.basic_salary == Decimal("3000.00")
    assert record.allowance_amounts == {"housing": Decimal("500.00")}


def test_duplicate_period_blocks_whole_batch(service, staff, fake_payrolls):
    service.process_batch(month=3, year=2024, employee_ids=[1])

    with pytest.raises(AlreadyProcessedError) as exc_info:
        service.process_batch(month=3, year=2024)

    assert exc_info.value.status_code == 409
    assert exc_info.value.details["employee_ids"] == [1]
    assert len(fake_payrolls.records) == 1


def test_same_employees_can_be_processed_for_another_month(service, staff):
    service.process_batch(month=3, year=2024)
    created = service.process_batch(month=4, year=2024)
    assert len(created) == 2


@pytest.mark.parametrize("month,year", [(None, 2024), (3, None), (None, None)])
def test_missing_period_is_rejected(service, staff, month, year):
    with pytest.raises(PayrollValidationError) as exc_info:
        service.process_batch(month=month, year=year)
    assert exc_info.value.message == "Month and year are required"


def test_month_out_of_range_is_rejected():
    with pytest.raises(PayrollValidationError):
        validate_period(0, 2024)
    with pytest.raises(PayrollValidationError):
        validate_period(13, 2024)
    assert validate_period(12, 2024) == (12, 2024)


def test_unknown_employee_id_raises_not_found(service, staff, fake_payrolls):
    with pytest.raises(NotFoundError):
        service.process_batch(month=3, year=2024, employee_ids=[1, 99])
    assert fake_payrolls.records == {}


def test_computation_failure_aborts_batch(fake_employees, fake_attendance, fake_payrolls, profile_factory):
    fake_employees.add(profile_factory(employee_id=1))
    fake_employees.add(profile_factory(employee_id=2, tax_bracket="unknown"))

    def tax(gross, bracket):
        if bracket == "unknown":
            raise KeyError(bracket)
        return Decimal("0")

    service = PayrollService(fake_employees, fake_attendance, fake_payrolls, tax_calculator=tax)
    with pytest.raises(ComputationError):
        service.process_batch(month=3, year=2024)
    assert fake_payrolls.records == {}


def test_empty_workforce_creates_nothing(service):
    assert service.process_batch(month=3, year=2024) == []


def test_clock_stamps_processed_at(fake_employees, fake_attendance, fake_payrolls, flat_tax, profile_factory):
    now = datetime(2024, 4, 1, 8, 0, tzinfo=timezone.utc)
    fake_employees.add(profile_factory(employee_id=1))
    service = PayrollService(fake_employees, fake_attendance, fake_payrolls, flat_tax, clock=lambda: now)

    [record] = service.process_batch(month=3, year=2024)
    assert record.processed_at == now


def test_list_summary_covers_filtered_set_not_page(service, staff):
    service.process_batch(month=3, year=2024, employee_ids=[1, 2, 3])

    page = service.list_payroll(PayrollFilters(month=3, year=2024), page=1, limit=2, sort_by="employee_id", order="asc")

    assert [item.employee_id for item in page.items] == [1, 2]
    assert page.total == 3
    assert page.total_pages == 2
    assert page.summary.total_gross_salary == Decimal("10500.00")


def test_list_department_filter(service, staff):
    service.process_batch(month=3, year=2024)
    page = service.list_payroll(PayrollFilters(department="Finance"))
    assert [item.employee_id for item in page.items] == [2]
    assert page.total == 1


def test_list_month_without_year_does_not_filter(service, staff):
    service.process_batch(month=3, year=2024)
    service.process_batch(month=4, year=2024)
    page = service.list_payroll(PayrollFilters(month=3))
    assert page.total == 4


@pytest.mark.parametrize("kwargs", [
    {"page": 0},
    {"limit": 0},
    {"limit": 10_000},
    {"sort_by": "password"},
    {"order": "sideways"},
])
def test_list_rejects_invalid_paging(service, kwargs):
    with pytest.raises(PayrollValidationError):
        service.list_payroll(PayrollFilters(), **kwargs)


def test_list_rejects_unknown_status(service):
    with pytest.raises(PayrollValidationError):
        service.list_payroll(PayrollFilters(status="paid"))


def test_yearly_summary_only_includes_months_with_records(service, staff):
    service.process_batch(month=3, year=2024)
    service.process_batch(month=7, year=2024, employee_ids=[1])
    service.process_batch(month=7, year=2023, employee_ids=[1])

    summary = service.yearly_summary(2024)

    assert [m.month for m in summary] == [3, 7]
    assert summary[0].total_employees == 2
    assert summary[1].total_employees == 1
    assert summary[0].total_gross_salary == Decimal("7000.00")
