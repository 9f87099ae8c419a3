"""
Bracket-based income tax.

Each tax bracket identifier maps to a flat rate applied to the month's gross
salary. Rates come from the TAX_BRACKET_RATES setting.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Mapping, Optional

from payroll_engine.core.config import settings
from payroll_engine.core.exceptions import ComputationError

TaxCalculator = Callable[[Decimal, str], Decimal]


def calculate_tax(
    gross_salary: Decimal,
    bracket: str,
    rates: Optional[Mapping[str, Decimal]] = None
) -> Decimal:
    rates = settings.payroll.tax_bracket_rates if rates is None else rates
    if bracket not in rates:
        raise ComputationError(f"Unknown tax bracket '{bracket}'")
    if gross_salary <= 0:
        return Decimal("0.00")
    return (gross_salary * rates[bracket]).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def bracket_calculator(rates: Mapping[str, Decimal]) -> TaxCalculator:
    """Build a calculator bound to a fixed rate table."""
    def _calculate(gross_salary: Decimal, bracket: str) -> Decimal:
        return calculate_tax(gross_salary, bracket, rates)
    return _calculate
