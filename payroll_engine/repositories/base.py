"""
Collaborator interfaces consumed by the payroll services.

The SQLAlchemy implementations live next to this module; tests substitute
in-memory fakes that satisfy the same protocols.
"""
from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from payroll_engine.models.payroll import Payroll
from payroll_engine.schemas.payroll import (
    AttendanceEntry,
    CompensationProfile,
    MonthlySummary,
    PayrollFilters,
    PayrollTotals,
)


class EmployeeDirectory(Protocol):
    def get_profile(self, employee_id: int) -> Optional[CompensationProfile]:
        ...

    def find_profiles(
        self,
        employee_ids: Optional[Sequence[int]] = None,
        status: Optional[str] = None
    ) -> List[CompensationProfile]:
        ...

    def ids_in_department(self, department: str) -> List[int]:
        ...


class AttendanceStore(Protocol):
    def for_employee(self, employee_id: int, start: date, end: date) -> List[AttendanceEntry]:
        ...


class PayrollRepository(Protocol):
    def get(self, payroll_id: int) -> Optional[Payroll]:
        ...

    def existing_employee_ids(self, month: int, year: int, employee_ids: Sequence[int]) -> List[int]:
        ...

    def add_all(self, records: List[Payroll]) -> List[Payroll]:
        """Persist every record or none of them."""
        ...

    def transition(self, payroll_id: int, expected_status: str, values: Dict[str, Any]) -> bool:
        """Apply `values` only if the record is still in `expected_status`."""
        ...

    def query(
        self,
        filters: PayrollFilters,
        offset: int,
        limit: int,
        sort_by: str,
        descending: bool
    ) -> Tuple[List[Payroll], int]:
        ...

    def totals(self, filters: PayrollFilters) -> PayrollTotals:
        ...

    def monthly_totals(self, year: int) -> List[MonthlySummary]:
        ...
