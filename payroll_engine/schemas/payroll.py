"""
Payroll schemas.

Domain types passed between the aggregator, the calculator and the batch
processor, plus the request/response shapes used by the payroll router.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from payroll_engine.models.attendance import AttendanceStatus
from payroll_engine.models.employee import LoanStatus


# --- Compensation profile -------------------------------------------------

class Loan(BaseModel):
    status: LoanStatus
    monthly_installment: Decimal = Field(default=Decimal("0"), ge=0)


class CompensationProfile(BaseModel):
    """Read-only view of an employee's pay configuration."""
    employee_id: int
    employee_code: str
    full_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    status: str = "active"

    basic_salary: Decimal = Field(ge=0)
    allowances: Dict[str, Decimal] = Field(default_factory=dict)
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    insurance: Decimal = Field(default=Decimal("0"), ge=0)
    tax_bracket: str
    loans: List[Loan] = Field(default_factory=list)


# --- Attendance -----------------------------------------------------------

class AttendanceEntry(BaseModel):
    date: date
    status: AttendanceStatus
    overtime_hours: Optional[Decimal] = None


class AttendanceSummary(BaseModel):
    working_days: int = 0
    absent_days: int = 0
    leave_days: int = 0
    overtime_hours: Decimal = Decimal("0")
    # Days with any record; unreported days are not counted anywhere else
    total_days: int = 0


# --- Computation result ---------------------------------------------------

class DeductionBreakdown(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax: Decimal = Decimal("0.00")
    provident_fund: Decimal = Decimal("0.00")
    insurance: Decimal = Decimal("0.00")
    loan: Decimal = Decimal("0.00")
    other: Decimal = Decimal("0.00")

    @computed_field
    @property
    def total(self) -> Decimal:
        return self.tax + self.provident_fund + self.insurance + self.loan + self.other


class PayrollComputation(BaseModel):
    basic_salary: Decimal
    allowances: Dict[str, Decimal]
    overtime_pay: Decimal
    per_day_salary: Decimal
    absent_deduction: Decimal
    gross_salary: Decimal
    deductions: DeductionBreakdown

    @computed_field
    @property
    def total_deductions(self) -> Decimal:
        return self.deductions.total

    @computed_field
    @property
    def net_salary(self) -> Decimal:
        return self.gross_salary - self.total_deductions


# --- Lifecycle events -----------------------------------------------------

class PayrollEvent(BaseModel):
    type: str  # "approved" | "rejected"
    payroll_id: int
    employee_id: int
    month: int
    year: int
    actor_id: Optional[int] = None
    reason: Optional[str] = None
    occurred_at: datetime


# --- API shapes -----------------------------------------------------------

class ProcessPayrollRequest(BaseModel):
    month: Optional[int] = None
    year: Optional[int] = None
    employee_ids: Optional[List[int]] = None


class RejectPayrollRequest(BaseModel):
    reason: Optional[str] = None


class EmployeeBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_code: str
    first_name: str
    last_name: str
    department: Optional[str] = None
    position: Optional[str] = None


class PayrollRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    employee: Optional[EmployeeBrief] = None
    month: int
    year: int
    working_days: int
    absent_days: int
    leave_days: int
    overtime_hours: Decimal
    basic_salary: Decimal
    allowances: Dict[str, Decimal] = Field(default_factory=dict)
    overtime_pay: Decimal
    gross_salary: Decimal
    deductions: DeductionBreakdown
    total_deductions: Decimal
    net_salary: Decimal
    status: str
    processed_by: Optional[int] = None
    processed_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class PayrollFilters(BaseModel):
    month: Optional[int] = None
    year: Optional[int] = None
    department: Optional[str] = None
    status: Optional[str] = None
    # Resolved from `department` by the employee directory
    employee_ids: Optional[List[int]] = None


class PayrollTotals(BaseModel):
    total_gross_salary: Decimal = Decimal("0.00")
    total_deductions: Decimal = Decimal("0.00")
    total_net_salary: Decimal = Decimal("0.00")


class PayrollPage(BaseModel):
    items: List[PayrollRead]
    total: int
    total_pages: int
    current_page: int
    summary: PayrollTotals


class MonthlySummary(BaseModel):
    month: int
    total_employees: int
    total_gross_salary: Decimal
    total_deductions: Decimal
    total_net_salary: Decimal
    total_overtime_pay: Decimal
