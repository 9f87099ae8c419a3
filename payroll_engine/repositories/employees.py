import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy.orm import Session, selectinload

from payroll_engine.core.exceptions import ComputationError
from payroll_engine.models.attendance import Attendance
from payroll_engine.models.employee import Employee
from payroll_engine.schemas.payroll import AttendanceEntry, CompensationProfile, Loan

logger = logging.getLogger(__name__)


def employee_to_profile(employee: Employee) -> CompensationProfile:
    """Snapshot an Employee row into a typed compensation profile."""
    try:
        return CompensationProfile(
            employee_id=employee.id,
            employee_code=employee.employee_code,
            full_name=employee.full_name,
            department=employee.department,
            position=employee.position,
            status=employee.status,
            basic_salary=employee.basic_salary,
            allowances={a.name: a.amount for a in employee.allowances},
            hourly_rate=employee.hourly_rate if employee.hourly_rate is not None else Decimal("0"),
            insurance=employee.insurance if employee.insurance is not None else Decimal("0"),
            tax_bracket=employee.tax_bracket,
            loans=[
                Loan(status=loan.status, monthly_installment=loan.monthly_installment)
                for loan in employee.loans
            ],
        )
    except ValidationError as e:
        logger.error(f"Malformed compensation profile for employee {employee.id}: {e}")
        raise ComputationError(
            f"Malformed compensation profile for employee {employee.id}",
            employee_id=employee.id
        ) from e


class SqlEmployeeDirectory:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Employee).options(
            selectinload(Employee.allowances),
            selectinload(Employee.loans),
        )

    def get_profile(self, employee_id: int) -> Optional[CompensationProfile]:
        employee = self._query().filter(Employee.id == employee_id).first()
        return employee_to_profile(employee) if employee else None

    def find_profiles(
        self,
        employee_ids: Optional[Sequence[int]] = None,
        status: Optional[str] = None
    ) -> List[CompensationProfile]:
        query = self._query()
        if employee_ids is not None:
            query = query.filter(Employee.id.in_(list(employee_ids)))
        if status:
            query = query.filter(Employee.status == status)
        return [employee_to_profile(e) for e in query.order_by(Employee.id).all()]

    def ids_in_department(self, department: str) -> List[int]:
        rows = self.db.query(Employee.id).filter(Employee.department == department).all()
        return [row[0] for row in rows]


class SqlAttendanceStore:
    def __init__(self, db: Session):
        self.db = db

    def for_employee(self, employee_id: int, start: date, end: date) -> List[AttendanceEntry]:
        rows = self.db.query(Attendance).filter(
            Attendance.employee_id == employee_id,
            Attendance.date >= start,
            Attendance.date <= end
        ).order_by(Attendance.date).all()
        return [
            AttendanceEntry(date=row.date, status=row.status, overtime_hours=row.overtime_hours)
            for row in rows
        ]
