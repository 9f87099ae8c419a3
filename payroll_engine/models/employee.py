"""
Employee Model with its compensation profile.

Allowances and loans are stored as child rows rather than JSON documents so
that amounts and loan status stay typed.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from payroll_engine.database import Base
import enum


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class LoanStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    employee_code = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    department = Column(String, index=True, nullable=True)
    position = Column(String, nullable=True)
    status = Column(String, default=EmployeeStatus.ACTIVE.value, index=True)

    basic_salary = Column(Numeric(12, 2), nullable=False)
    hourly_rate = Column(Numeric(12, 2), nullable=True)
    insurance = Column(Numeric(12, 2), nullable=True)
    tax_bracket = Column(String, nullable=False, default="standard")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    allowances = relationship(
        "EmployeeAllowance", back_populates="employee", cascade="all, delete-orphan"
    )
    loans = relationship(
        "EmployeeLoan", back_populates="employee", cascade="all, delete-orphan",
        order_by="EmployeeLoan.id"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Employee {self.employee_code}: {self.full_name}>"


class EmployeeAllowance(Base):
    __tablename__ = "employee_allowances"
    __table_args__ = (UniqueConstraint("employee_id", "name", name="uq_employee_allowance_name"),)

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    employee = relationship("Employee", back_populates="allowances")


class EmployeeLoan(Base):
    __tablename__ = "employee_loans"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, default=LoanStatus.ACTIVE.value)
    monthly_installment = Column(Numeric(12, 2), nullable=False, default=0)

    employee = relationship("Employee", back_populates="loans")
