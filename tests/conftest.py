import pytest
import os
from datetime import date
from decimal import Decimal
from itertools import count
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from payroll_engine.core.permissions import Role
from payroll_engine.database import Base, get_db
from payroll_engine.main import app
from payroll_engine.models.attendance import Attendance
from payroll_engine.models.employee import Employee, EmployeeAllowance, EmployeeLoan
from payroll_engine.models.payroll import Payroll
from payroll_engine.models.user import User
from payroll_engine.schemas.payroll import (
    CompensationProfile,
    MonthlySummary,
    PayrollTotals,
)
from payroll_engine.services.payroll_service import PayrollService
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema per test; service-layer commits are real."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Database seed helpers
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def make_employee(db_session):
    """Factory creating an employee with allowances and loans."""
    codes = count(1)

    def _make_employee(
        basic_salary="3000",
        allowances=None,
        hourly_rate=None,
        insurance=None,
        tax_bracket="standard",
        loans=None,
        department="Engineering",
        status="active",
        first_name="Dana",
        last_name="Reyes",
    ):
        employee = Employee(
            employee_code=f"EMP{next(codes):03d}",
            first_name=first_name,
            last_name=last_name,
            department=department,
            position="Engineer",
            status=status,
            basic_salary=Decimal(basic_salary),
            hourly_rate=Decimal(hourly_rate) if hourly_rate is not None else None,
            insurance=Decimal(insurance) if insurance is not None else None,
            tax_bracket=tax_bracket,
        )
        for name, amount in (allowances or {}).items():
            employee.allowances.append(EmployeeAllowance(name=name, amount=Decimal(amount)))
        for loan_status, installment in (loans or []):
            employee.loans.append(EmployeeLoan(status=loan_status, monthly_installment=Decimal(installment)))
        db_session.add(employee)
        db_session.commit()
        return employee

    return _make_employee


@pytest.fixture(scope="function")
def add_attendance(db_session):
    def _add_attendance(employee, day: date, status: str, overtime_hours=None):
        row = Attendance(
            employee_id=employee.id,
            date=day,
            status=status,
            overtime_hours=Decimal(overtime_hours) if overtime_hours is not None else None,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _add_attendance


@pytest.fixture(scope="function")
def make_user(db_session):
    emails = count(1)

    def _make_user(role: Role, employee=None, is_active=True):
        user = User(
            email=f"user{next(emails)}@example.com",
            full_name=f"{role.value.title()} User",
            role=role,
            employee_id=employee.id if employee else None,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture(scope="function")
def auth_headers():
    """Helper fixture building the identity header for a user."""
    def _auth_headers(user):
        return {"X-User-Id": str(user.id)}
    return _auth_headers


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------

class FakeEmployeeDirectory:
    def __init__(self):
        self.profiles = {}

    def add(self, profile: CompensationProfile) -> CompensationProfile:
        self.profiles[profile.employee_id] = profile
        return profile

    def get_profile(self, employee_id):
        profile = self.profiles.get(employee_id)
        return profile.model_copy(deep=True) if profile else None

    def find_profiles(self, employee_ids=None, status=None):
        result = []
        for employee_id in sorted(self.profiles):
            profile = self.profiles[employee_id]
            if employee_ids is not None and employee_id not in employee_ids:
                continue
            if status and profile.status != status:
                continue
            result.append(profile.model_copy(deep=True))
        return result

    def ids_in_department(self, department):
        return [p.employee_id for p in self.profiles.values() if p.department == department]


class FakeAttendanceStore:
    def __init__(self):
        self.entries = {}
        self.requests = []

    def add(self, employee_id, entry):
        self.entries.setdefault(employee_id, []).append(entry)

    def for_employee(self, employee_id, start, end):
        self.requests.append((employee_id, start, end))
        return [e for e in self.entries.get(employee_id, []) if start <= e.date <= end]


class FakePayrollRepository:
    def __init__(self):
        self.records = {}
        self._ids = count(1)
        self.fail_next_transition = False

    def get(self, payroll_id):
        return self.records.get(payroll_id)

    def existing_employee_ids(self, month, year, employee_ids):
        return sorted(
            r.employee_id for r in self.records.values()
            if r.month == month and r.year == year and r.employee_id in employee_ids
        )

    def add_all(self, records):
        for record in records:
            record.id = next(self._ids)
            self.records[record.id] = record
        return records

    def transition(self, payroll_id, expected_status, values):
        record = self.records.get(payroll_id)
        if self.fail_next_transition:
            # Simulates a concurrent writer winning the race
            self.fail_next_transition = False
            record.status = "approved"
            return False
        if record is None or record.status != expected_status:
            return False
        for key, value in values.items():
            setattr(record, key, value)
        record.version_id += 1
        return True

    def _matching(self, filters):
        for record in self.records.values():
            if filters.month is not None and filters.year is not None:
                if (record.month, record.year) != (filters.month, filters.year):
                    continue
            if filters.employee_ids is not None and record.employee_id not in filters.employee_ids:
                continue
            if filters.status and record.status != filters.status:
                continue
            yield record

    def query(self, filters, offset, limit, sort_by, descending):
        rows = sorted(self._matching(filters), key=lambda r: (getattr(r, sort_by) or 0, r.id), reverse=descending)
        return rows[offset:offset + limit], len(rows)

    def totals(self, filters):
        rows = list(self._matching(filters))
        return PayrollTotals(
            total_gross_salary=sum((r.gross_salary for r in rows), Decimal("0.00")),
            total_deductions=sum((r.total_deductions for r in rows), Decimal("0.00")),
            total_net_salary=sum((r.net_salary for r in rows), Decimal("0.00")),
        )

    def monthly_totals(self, year):
        by_month = {}
        for record in self.records.values():
            if record.year == year:
                by_month.setdefault(record.month, []).append(record)
        return [
            MonthlySummary(
                month=month,
                total_employees=len(rows),
                total_gross_salary=sum((r.gross_salary for r in rows), Decimal("0.00")),
                total_deductions=sum((r.total_deductions for r in rows), Decimal("0.00")),
                total_net_salary=sum((r.net_salary for r in rows), Decimal("0.00")),
                total_overtime_pay=sum((r.overtime_pay for r in rows), Decimal("0.00")),
            )
            for month, rows in sorted(by_month.items())
        ]


def make_profile(employee_id=1, **overrides) -> CompensationProfile:
    data = dict(
        employee_id=employee_id,
        employee_code=f"EMP{employee_id:03d}",
        full_name=f"Employee {employee_id}",
        department="Engineering",
        position="Engineer",
        status="active",
        basic_salary=Decimal("3000"),
        allowances={"housing": Decimal("500")},
        hourly_rate=Decimal("20"),
        insurance=Decimal("50"),
        tax_bracket="standard",
        loans=[],
    )
    data.update(overrides)
    return CompensationProfile(**data)


@pytest.fixture
def profile_factory():
    return make_profile


@pytest.fixture
def fake_employees():
    return FakeEmployeeDirectory()


@pytest.fixture
def fake_attendance():
    return FakeAttendanceStore()


@pytest.fixture
def fake_payrolls():
    return FakePayrollRepository()


@pytest.fixture
def flat_tax():
    """Tax collaborator returning 10% of positive gross."""
    def _tax(gross, bracket):
        return max(gross, Decimal("0")) * Decimal("0.10")
    return _tax


@pytest.fixture
def service(fake_employees, fake_attendance, fake_payrolls, flat_tax):
    return PayrollService(
        employees=fake_employees,
        attendance=fake_attendance,
        payrolls=fake_payrolls,
        tax_calculator=flat_tax,
    )
