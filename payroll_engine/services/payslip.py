"""
Payslip rendering.

Produces a self-contained HTML document that can be printed to PDF in the
browser. Pure formatting: every figure comes from the stored payroll record.
"""
import calendar
from decimal import Decimal
from html import escape
from typing import Optional

from payroll_engine.core.config import settings
from payroll_engine.models.payroll import Payroll
from payroll_engine.schemas.payroll import CompensationProfile


def payslip_filename(employee_code: str, month: int, year: int) -> str:
    return f"payslip-{employee_code}-{month}-{year}.html"


def _row(label: str, amount: Decimal, currency: str, css_class: str = "") -> str:
    class_attr = f' class="{css_class}"' if css_class else ""
    return (
        f"<tr{class_attr}><td>{escape(label)}</td>"
        f"<td style='text-align:right'>{escape(currency)}{Decimal(amount):,.2f}</td></tr>"
    )


def render_payslip(
    payroll: Payroll,
    profile: CompensationProfile,
    company_name: Optional[str] = None,
    currency: Optional[str] = None
) -> str:
    company_name = company_name or settings.payroll.company_name
    currency = settings.payroll.currency_symbol if currency is None else currency
    month_name = calendar.month_name[payroll.month] if 1 <= payroll.month <= 12 else str(payroll.month)

    earnings = [_row("Basic Salary", payroll.basic_salary, currency)]
    for name, amount in payroll.allowance_amounts.items():
        earnings.append(_row(name, amount, currency))
    if payroll.overtime_pay and payroll.overtime_pay > 0:
        earnings.append(_row(f"Overtime Pay ({payroll.overtime_hours} h)", payroll.overtime_pay, currency))
    earnings.append(_row("Gross Salary", payroll.gross_salary, currency, "subtotal"))

    deductions = [
        _row("Tax", payroll.tax_deduction, currency),
        _row("Provident Fund", payroll.provident_fund, currency),
        _row("Insurance", payroll.insurance_deduction, currency),
    ]
    if payroll.loan_deduction and payroll.loan_deduction > 0:
        deductions.append(_row("Loan", payroll.loan_deduction, currency))
    if payroll.other_deduction and payroll.other_deduction > 0:
        deductions.append(_row("Other", payroll.other_deduction, currency))
    deductions.append(_row("Total Deductions", payroll.total_deductions, currency, "subtotal"))

    earnings_html = "\n".join(earnings)
    deductions_html = "\n".join(deductions)

    return f"""<!DOCTYPE html>
<html>
<head>
    <title>Payslip - {month_name} {payroll.year}</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; color: #333; }}
        .header {{ text-align: center; margin-bottom: 30px; border-bottom: 2px solid #2563eb; padding-bottom: 20px; }}
        .header h1 {{ color: #2563eb; margin: 0; }}
        .info-box {{ background: #f8fafc; padding: 15px; border-radius: 8px; margin-bottom: 20px; }}
        .info-box p {{ margin: 5px 0; font-size: 13px; }}
        table {{ width: 100%; border-collapse: collapse; margin: 10px 0 20px 0; }}
        td {{ padding: 8px; border-bottom: 1px solid #e2e8f0; }}
        .subtotal td {{ font-weight: bold; }}
        .net {{ background: #2563eb; color: white; font-weight: bold; font-size: 18px; padding: 12px; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>{escape(company_name)}</h1>
        <p>Payslip</p>
    </div>

    <div class="info-box">
        <p><strong>Employee:</strong> {escape(profile.full_name)}</p>
        <p><strong>Employee ID:</strong> {escape(profile.employee_code)}</p>
        <p><strong>Department:</strong> {escape(profile.department or "-")}</p>
        <p><strong>Position:</strong> {escape(profile.position or "-")}</p>
        <p><strong>Month/Year:</strong> {payroll.month}/{payroll.year}</p>
        <p><strong>Status:</strong> {escape(payroll.status)}</p>
    </div>

    <h2>Earnings</h2>
    <table>
{earnings_html}
    </table>

    <h2>Deductions</h2>
    <table>
{deductions_html}
    </table>

    <div class="net">Net Salary: {escape(currency)}{Decimal(payroll.net_salary):,.2f}</div>
</body>
</html>
"""
