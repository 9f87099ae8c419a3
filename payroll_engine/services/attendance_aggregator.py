"""
Attendance aggregation for one employee over one monthly pay period.
"""
import calendar
from datetime import date
from decimal import Decimal
from typing import Iterable, Tuple

from payroll_engine.core.exceptions import PayrollValidationError
from payroll_engine.models.attendance import AttendanceStatus
from payroll_engine.repositories.base import AttendanceStore
from payroll_engine.schemas.payroll import AttendanceEntry, AttendanceSummary


def period_bounds(month: int, year: int) -> Tuple[date, date]:
    """First and last calendar day of the given month."""
    if not 1 <= month <= 12:
        raise PayrollValidationError(f"Invalid month: {month}", field="month")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def summarize_attendance(records: Iterable[AttendanceEntry]) -> AttendanceSummary:
    summary = AttendanceSummary()
    for record in records:
        summary.total_days += 1
        if record.status == AttendanceStatus.PRESENT:
            summary.working_days += 1
        elif record.status == AttendanceStatus.ABSENT:
            summary.absent_days += 1
        elif record.status == AttendanceStatus.LEAVE:
            summary.leave_days += 1
        summary.overtime_hours += record.overtime_hours or Decimal("0")
    return summary


def aggregate_attendance(
    store: AttendanceStore,
    employee_id: int,
    month: int,
    year: int
) -> AttendanceSummary:
    """
    Fetch the employee's attendance for the closed interval covering the
    month and reduce it to summary counts. No records yields an all-zero
    summary, which is valid for newly hired employees.
    """
    start, end = period_bounds(month, year)
    return summarize_attendance(store.for_employee(employee_id, start, end))
