"""
User Model.
An actor that processes, approves or views payroll records.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from payroll_engine.core.permissions import Role
from payroll_engine.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)

    role = Column(Enum(Role), default=Role.EMPLOYEE, nullable=False)

    # Linked employee profile, used for ownership checks on payroll records
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"
