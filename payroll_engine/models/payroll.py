from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, UniqueConstraint, Text
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from payroll_engine.database import Base
import enum

class PayrollStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class Payroll(Base):
    __tablename__ = "payrolls"
    __table_args__ = (
        UniqueConstraint("employee_id", "month", "year", name="uq_payroll_employee_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    month = Column(Integer, nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)

    # Attendance snapshot
    working_days = Column(Integer, default=0)
    absent_days = Column(Integer, default=0)
    leave_days = Column(Integer, default=0)
    overtime_hours = Column(Numeric(8, 2), default=0)

    # Earnings snapshot; allowances are copied as {name: "amount"} strings
    basic_salary = Column(Numeric(12, 2), nullable=False)
    allowances = Column(JSON, default=dict)
    overtime_pay = Column(Numeric(12, 2), default=0)
    gross_salary = Column(Numeric(12, 2), nullable=False)

    # Deductions breakdown
    tax_deduction = Column(Numeric(12, 2), nullable=False, default=0)
    provident_fund = Column(Numeric(12, 2), nullable=False, default=0)
    insurance_deduction = Column(Numeric(12, 2), nullable=False, default=0)
    loan_deduction = Column(Numeric(12, 2), nullable=False, default=0)
    other_deduction = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(String, default=PayrollStatus.PENDING.value, nullable=False, index=True)
    version_id = Column(Integer, nullable=False, default=1)

    processed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee")

    @hybrid_property
    def total_deductions(self):
        return (
            self.tax_deduction
            + self.provident_fund
            + self.insurance_deduction
            + self.loan_deduction
            + self.other_deduction
        )

    @hybrid_property
    def net_salary(self):
        return self.gross_salary - self.total_deductions

    @property
    def deductions(self) -> dict:
        return {
            "tax": self.tax_deduction,
            "provident_fund": self.provident_fund,
            "insurance": self.insurance_deduction,
            "loan": self.loan_deduction,
            "other": self.other_deduction,
        }

    @property
    def allowance_amounts(self) -> dict:
        return {name: Decimal(str(amount)) for name, amount in (self.allowances or {}).items()}

    def __repr__(self):
        return f"<Payroll {self.id} employee={self.employee_id} {self.month}/{self.year} {self.status}>"
