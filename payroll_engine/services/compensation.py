"""
Compensation Calculator

Derives gross salary, deductions and net salary for one employee-period from
the employee's compensation profile and attendance summary.

Every monetary component is rounded half-up to cents as it is produced, and
totals are sums of the rounded components, so total_deductions and net_salary
always reconcile exactly with the stored breakdown.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from payroll_engine.core.exceptions import AppException, ComputationError
from payroll_engine.models.employee import LoanStatus
from payroll_engine.schemas.payroll import (
    AttendanceSummary,
    CompensationProfile,
    DeductionBreakdown,
    PayrollComputation,
)
from payroll_engine.services.tax import TaxCalculator, calculate_tax

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# Fixed 30-day month regardless of the calendar, kept for compatibility with existing payslips
DAYS_PER_MONTH = Decimal("30")
PROVIDENT_FUND_RATE = Decimal("0.12")


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def loan_deduction(profile: CompensationProfile) -> Decimal:
    """Sum of monthly installments over active loans; closed loans contribute nothing."""
    return quantize_money(sum(
        (loan.monthly_installment for loan in profile.loans if loan.status == LoanStatus.ACTIVE),
        Decimal("0"),
    ))


def _tax_for(tax_calculator: TaxCalculator, gross_salary: Decimal, profile: CompensationProfile) -> Decimal:
    try:
        tax = tax_calculator(gross_salary, profile.tax_bracket)
    except AppException:
        raise
    except Exception as e:
        raise ComputationError(
            f"Tax calculation failed for bracket '{profile.tax_bracket}': {e}",
            employee_id=profile.employee_id
        ) from e

    try:
        tax = Decimal(tax)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ComputationError(
            f"Tax calculation returned a non-numeric value: {tax!r}",
            employee_id=profile.employee_id
        ) from e
    if not tax.is_finite() or tax < 0:
        raise ComputationError(
            f"Tax calculation returned an invalid amount: {tax}",
            employee_id=profile.employee_id
        )
    return quantize_money(tax)


def compute_compensation(
    profile: CompensationProfile,
    attendance: AttendanceSummary,
    tax_calculator: TaxCalculator = calculate_tax
) -> PayrollComputation:
    basic_salary = quantize_money(profile.basic_salary)
    allowances = {name: quantize_money(amount) for name, amount in profile.allowances.items()}

    gross_salary = basic_salary + sum(allowances.values(), Decimal("0"))

    overtime_pay = quantize_money(attendance.overtime_hours * profile.hourly_rate)
    gross_salary += overtime_pay

    per_day_salary = basic_salary / DAYS_PER_MONTH
    absent_deduction = quantize_money(attendance.absent_days * per_day_salary)
    # Not clamped: an implausible absent count can drive gross below zero
    gross_salary -= absent_deduction

    deductions = DeductionBreakdown(
        tax=_tax_for(tax_calculator, gross_salary, profile),
        # Deductions are never negative, so a negative gross contributes no PF
        provident_fund=quantize_money(max(gross_salary, Decimal("0")) * PROVIDENT_FUND_RATE),
        insurance=quantize_money(profile.insurance),
        loan=loan_deduction(profile),
        other=Decimal("0.00"),
    )

    if gross_salary < 0:
        logger.warning(
            f"Negative gross salary {gross_salary} for employee {profile.employee_id} "
            f"({attendance.absent_days} absent days)"
        )

    return PayrollComputation(
        basic_salary=basic_salary,
        allowances=allowances,
        overtime_pay=overtime_pay,
        per_day_salary=quantize_money(per_day_salary),
        absent_deduction=absent_deduction,
        gross_salary=gross_salary,
        deductions=deductions,
    )
