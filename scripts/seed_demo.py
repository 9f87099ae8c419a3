"""
Seed a development database with one user per role and a few employees.

Usage:
    python scripts/seed_demo.py
"""
from datetime import date, timedelta
from decimal import Decimal

from payroll_engine.core.permissions import Role
from payroll_engine.database import SessionLocal, init_db
from payroll_engine.models import Attendance, Employee, EmployeeAllowance, EmployeeLoan, User

EMPLOYEES = [
    ("EMP001", "Dana", "Reyes", "Engineering", "3000", {"housing": "500"}, "20", "50", "standard"),
    ("EMP002", "Lee", "Okafor", "Finance", "4200", {"housing": "600", "transport": "150"}, "25", "60", "high"),
    ("EMP003", "Sam", "Novak", "Operations", "1800", {}, None, None, "low"),
]


def create_user(db, email, role, employee=None):
    # Check if user already exists to avoid unique constraint errors
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        print(f"User {email} already exists. Skipping.")
        return existing_user

    user = User(
        email=email,
        full_name=f"Demo {role.value.title()}",
        role=role,
        employee_id=employee.id if employee else None,
        is_active=True
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"Created {role.value} -> {email} (X-User-Id: {user.id})")
    return user


def create_employee(db, code, first, last, department, basic, allowances, hourly, insurance, bracket):
    existing = db.query(Employee).filter(Employee.employee_code == code).first()
    if existing:
        print(f"Employee {code} already exists. Skipping.")
        return existing

    employee = Employee(
        employee_code=code,
        first_name=first,
        last_name=last,
        department=department,
        position="Staff",
        basic_salary=Decimal(basic),
        hourly_rate=Decimal(hourly) if hourly else None,
        insurance=Decimal(insurance) if insurance else None,
        tax_bracket=bracket,
    )
    for name, amount in allowances.items():
        employee.allowances.append(EmployeeAllowance(name=name, amount=Decimal(amount)))
    if code == "EMP002":
        employee.loans.append(EmployeeLoan(status="active", monthly_installment=Decimal("150")))
    db.add(employee)
    db.commit()
    db.refresh(employee)
    print(f"Created employee {code} ({first} {last})")
    return employee


def seed_attendance(db, employee, month_start):
    day = month_start
    while day.month == month_start.month:
        if day.weekday() < 5 and not db.query(Attendance).filter_by(employee_id=employee.id, date=day).first():
            status = "absent" if day.day == 5 else "present"
            overtime = Decimal("2") if day.weekday() == 4 else None
            db.add(Attendance(employee_id=employee.id, date=day, status=status, overtime_hours=overtime))
        day += timedelta(days=1)
    db.commit()


def main():
    init_db()
    db = SessionLocal()
    try:
        employees = [create_employee(db, *row) for row in EMPLOYEES]
        month_start = date.today().replace(day=1)
        for employee in employees:
            seed_attendance(db, employee, month_start)

        create_user(db, "admin@example.com", Role.ADMIN)
        create_user(db, "hr@example.com", Role.HR)
        create_user(db, "payroll@example.com", Role.PAYROLL)
        create_user(db, "employee@example.com", Role.EMPLOYEE, employee=employees[0])
    finally:
        db.close()


if __name__ == "__main__":
    main()
