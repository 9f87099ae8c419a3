"""
Payroll Service Layer

This module provides the business logic layer for payroll operations.
It orchestrates the attendance aggregator, the compensation calculator and
the record lifecycle over injected collaborators, keeping the router focused
on HTTP request/response handling.

Architecture:
- Router -> PayrollService (this module) -> Repositories/Models
- Batch processing is all-or-nothing: a failure for any employee aborts the
  whole batch and nothing is persisted
- Approval/rejection return a domain event; notification delivery is handled
  by the NotificationDispatcher
"""

import logging
import math
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from payroll_engine.core.config import settings
from payroll_engine.core.exceptions import (
    AlreadyProcessedError,
    NotFoundError,
    PayrollValidationError,
)
from payroll_engine.models.employee import EmployeeStatus
from payroll_engine.models.payroll import Payroll, PayrollStatus
from payroll_engine.repositories import (
    AttendanceStore,
    EmployeeDirectory,
    PayrollRepository,
    SqlAttendanceStore,
    SqlEmployeeDirectory,
    SqlPayrollRepository,
)
from payroll_engine.repositories.payrolls import SORTABLE_COLUMNS
from payroll_engine.schemas.payroll import (
    AttendanceSummary,
    CompensationProfile,
    MonthlySummary,
    PayrollComputation,
    PayrollFilters,
    PayrollPage,
    PayrollRead,
)
from payroll_engine.services import payroll_lifecycle
from payroll_engine.services.attendance_aggregator import aggregate_attendance
from payroll_engine.services.compensation import compute_compensation
from payroll_engine.services.payslip import payslip_filename, render_payslip
from payroll_engine.services.tax import TaxCalculator, calculate_tax

logger = logging.getLogger(__name__)

MIN_YEAR = 1900
MAX_YEAR = 9999

# Serializes batch runs for the same period within this process; the
# (employee_id, month, year) unique constraint covers other processes.
_period_locks: Dict[Tuple[int, int], threading.Lock] = {}
_period_locks_guard = threading.Lock()


@contextmanager
def period_lock(month: int, year: int) -> Iterator[None]:
    with _period_locks_guard:
        lock = _period_locks.setdefault((month, year), threading.Lock())
    with lock:
        yield


def validate_period(month: Optional[int], year: Optional[int]) -> Tuple[int, int]:
    if month is None or year is None:
        raise PayrollValidationError("Month and year are required")
    if not 1 <= month <= 12:
        raise PayrollValidationError(f"Month must be between 1 and 12, got {month}", field="month")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise PayrollValidationError(f"Year out of range: {year}", field="year")
    return month, year


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_payroll_record(
    profile: CompensationProfile,
    attendance: AttendanceSummary,
    computation: PayrollComputation,
    month: int,
    year: int,
    actor_id: Optional[int],
    processed_at: datetime
) -> Payroll:
    """Snapshot one employee's computation into a new pending record."""
    return Payroll(
        employee_id=profile.employee_id,
        month=month,
        year=year,
        working_days=attendance.working_days,
        absent_days=attendance.absent_days,
        leave_days=attendance.leave_days,
        overtime_hours=attendance.overtime_hours,
        basic_salary=computation.basic_salary,
        # JSON column: store amounts as strings to keep cents exact
        allowances={name: str(amount) for name, amount in computation.allowances.items()},
        overtime_pay=computation.overtime_pay,
        gross_salary=computation.gross_salary,
        tax_deduction=computation.deductions.tax,
        provident_fund=computation.deductions.provident_fund,
        insurance_deduction=computation.deductions.insurance,
        loan_deduction=computation.deductions.loan,
        other_deduction=computation.deductions.other,
        status=PayrollStatus.PENDING.value,
        version_id=1,
        processed_by=actor_id,
        processed_at=processed_at,
    )


class PayrollService:
    def __init__(
        self,
        employees: EmployeeDirectory,
        attendance: AttendanceStore,
        payrolls: PayrollRepository,
        tax_calculator: TaxCalculator = calculate_tax,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.employees = employees
        self.attendance = attendance
        self.payrolls = payrolls
        self.tax_calculator = tax_calculator
        self.clock = clock

    # ------------------------------------------------------------------
    # Batch processing
    # ------------------------------------------------------------------

    def _resolve_employees(self, employee_ids: Optional[Sequence[int]]) -> List[CompensationProfile]:
        if employee_ids is None:
            return self.employees.find_profiles(status=EmployeeStatus.ACTIVE.value)

        requested = list(dict.fromkeys(employee_ids))
        profiles = self.employees.find_profiles(employee_ids=requested)
        found = {p.employee_id for p in profiles}
        missing = [eid for eid in requested if eid not in found]
        if missing:
            raise NotFoundError("Employee", missing[0] if len(missing) == 1 else missing)
        return profiles

    def process_batch(
        self,
        month: Optional[int],
        year: Optional[int],
        employee_ids: Optional[Sequence[int]] = None,
        actor_id: Optional[int] = None
    ) -> List[Payroll]:
        """
        Process payroll for the given period.

        Args:
            month: Payroll month (1-12)
            year: Payroll year
            employee_ids: Explicit employees, or None for all active employees
            actor_id: User performing the run

        Returns:
            The created pending payroll records

        Raises:
            PayrollValidationError: month/year missing or out of range
            NotFoundError: an explicit employee id does not exist
            AlreadyProcessedError: any target employee already has a record for the period
            ComputationError: a profile or tax computation is invalid
        """
        month, year = validate_period(month, year)

        with period_lock(month, year):
            profiles = self._resolve_employees(employee_ids)
            target_ids = [p.employee_id for p in profiles]
            logger.info(f"Processing payroll {month}/{year} for {len(target_ids)} employee(s)")

            already = self.payrolls.existing_employee_ids(month, year, target_ids)
            if already:
                logger.warning(f"Payroll {month}/{year} already processed for employees {already}")
                raise AlreadyProcessedError(month, year, already)

            processed_at = self.clock()
            records = []
            for profile in profiles:
                summary = aggregate_attendance(self.attendance, profile.employee_id, month, year)
                computation = compute_compensation(profile, summary, self.tax_calculator)
                records.append(build_payroll_record(
                    profile, summary, computation, month, year, actor_id, processed_at
                ))

            created = self.payrolls.add_all(records)

        logger.info(f"Payroll processed for {len(created)} employees ({month}/{year})")
        return created

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def approve(self, payroll_id: int, actor_id: Optional[int]) -> payroll_lifecycle.TransitionResult:
        return payroll_lifecycle.approve(self.payrolls, payroll_id, actor_id, clock=self.clock)

    def reject(
        self,
        payroll_id: int,
        actor_id: Optional[int],
        reason: Optional[str]
    ) -> payroll_lifecycle.TransitionResult:
        return payroll_lifecycle.reject(self.payrolls, payroll_id, actor_id, reason, clock=self.clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_payroll(self, payroll_id: int) -> Payroll:
        payroll = self.payrolls.get(payroll_id)
        if payroll is None:
            raise NotFoundError("Payroll record", payroll_id)
        return payroll

    def list_payroll(
        self,
        filters: PayrollFilters,
        page: int = 1,
        limit: Optional[int] = None,
        sort_by: str = "created_at",
        order: str = "desc"
    ) -> PayrollPage:
        limit = settings.payroll.default_page_size if limit is None else limit
        if page < 1:
            raise PayrollValidationError("page must be >= 1", field="page")
        if not 1 <= limit <= settings.payroll.max_page_size:
            raise PayrollValidationError(
                f"limit must be between 1 and {settings.payroll.max_page_size}", field="limit"
            )
        if sort_by not in SORTABLE_COLUMNS:
            raise PayrollValidationError(f"Cannot sort by '{sort_by}'", field="sort_by")
        if order not in ("asc", "desc"):
            raise PayrollValidationError("order must be 'asc' or 'desc'", field="order")
        if filters.status and filters.status not in {s.value for s in PayrollStatus}:
            raise PayrollValidationError(f"Unknown status '{filters.status}'", field="status")

        if filters.department:
            filters = filters.model_copy(
                update={"employee_ids": self.employees.ids_in_department(filters.department)}
            )

        items, total = self.payrolls.query(
            filters, offset=(page - 1) * limit, limit=limit,
            sort_by=sort_by, descending=order == "desc"
        )
        return PayrollPage(
            items=[PayrollRead.model_validate(item) for item in items],
            total=total,
            total_pages=math.ceil(total / limit),
            current_page=page,
            summary=self.payrolls.totals(filters),
        )

    def yearly_summary(self, year: int) -> List[MonthlySummary]:
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise PayrollValidationError(f"Year out of range: {year}", field="year")
        return self.payrolls.monthly_totals(year)

    # ------------------------------------------------------------------
    # Payslip
    # ------------------------------------------------------------------

    def payslip_owner(self, payroll_id: int) -> Tuple[Payroll, CompensationProfile]:
        payroll = self.get_payroll(payroll_id)
        profile = self.employees.get_profile(payroll.employee_id)
        if profile is None:
            raise NotFoundError("Employee", payroll.employee_id)
        return payroll, profile

    def render_payslip(self, payroll_id: int) -> Tuple[str, str]:
        """Returns (filename, html) for the record's payslip."""
        payroll, profile = self.payslip_owner(payroll_id)
        return (
            payslip_filename(profile.employee_code, payroll.month, payroll.year),
            render_payslip(payroll, profile),
        )


def build_payroll_service(db: Session, tax_calculator: TaxCalculator = calculate_tax) -> PayrollService:
    """Wire the SQLAlchemy-backed collaborators for one database session."""
    return PayrollService(
        employees=SqlEmployeeDirectory(db),
        attendance=SqlAttendanceStore(db),
        payrolls=SqlPayrollRepository(db),
        tax_calculator=tax_calculator,
    )
