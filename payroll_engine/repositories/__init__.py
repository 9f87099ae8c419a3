from .base import AttendanceStore, EmployeeDirectory, PayrollRepository
from .employees import SqlAttendanceStore, SqlEmployeeDirectory, employee_to_profile
from .payrolls import SqlPayrollRepository

__all__ = [
    "AttendanceStore",
    "EmployeeDirectory",
    "PayrollRepository",
    "SqlAttendanceStore",
    "SqlEmployeeDirectory",
    "SqlPayrollRepository",
    "employee_to_profile",
]
