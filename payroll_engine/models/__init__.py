# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, employee, attendance, payroll, notification

# Explicit class exports for cleaner imports
from .user import User
from .employee import Employee, EmployeeAllowance, EmployeeLoan, EmployeeStatus, LoanStatus
from .attendance import Attendance, AttendanceStatus
from .payroll import Payroll, PayrollStatus
from .notification import Notification

__all__ = [
    "User",
    "Employee",
    "EmployeeAllowance",
    "EmployeeLoan",
    "EmployeeStatus",
    "LoanStatus",
    "Attendance",
    "AttendanceStatus",
    "Payroll",
    "PayrollStatus",
    "Notification",
]
