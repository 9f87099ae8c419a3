import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from payroll_engine.core.exceptions import AlreadyProcessedError
from payroll_engine.models.payroll import Payroll
from payroll_engine.schemas.payroll import MonthlySummary, PayrollFilters, PayrollTotals
from payroll_engine.services.compensation import quantize_money

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Payroll.created_at,
    "processed_at": Payroll.processed_at,
    "month": Payroll.month,
    "year": Payroll.year,
    "employee_id": Payroll.employee_id,
    "gross_salary": Payroll.gross_salary,
    "net_salary": Payroll.net_salary,
    "total_deductions": Payroll.total_deductions,
    "status": Payroll.status,
}


def _money(value: Optional[Any]) -> Decimal:
    return quantize_money(Decimal(str(value)) if value is not None else Decimal("0"))


class SqlPayrollRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, payroll_id: int) -> Optional[Payroll]:
        return self.db.query(Payroll).options(joinedload(Payroll.employee)).filter(
            Payroll.id == payroll_id
        ).first()

    def existing_employee_ids(self, month: int, year: int, employee_ids: Sequence[int]) -> List[int]:
        if not employee_ids:
            return []
        rows = self.db.query(Payroll.employee_id).filter(
            Payroll.month == month,
            Payroll.year == year,
            Payroll.employee_id.in_(list(employee_ids))
        ).all()
        return sorted(row[0] for row in rows)

    def add_all(self, records: List[Payroll]) -> List[Payroll]:
        if not records:
            return []
        self.db.add_all(records)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # Another batch created a record for the same (employee, month, year)
            first = records[0]
            logger.warning(f"Uniqueness violation persisting payroll batch {first.month}/{first.year}: {e.orig}")
            raise AlreadyProcessedError(first.month, first.year, [r.employee_id for r in records]) from e
        except Exception:
            self.db.rollback()
            raise
        for record in records:
            self.db.refresh(record)
        return records

    def transition(self, payroll_id: int, expected_status: str, values: Dict[str, Any]) -> bool:
        values = dict(values, version_id=Payroll.version_id + 1)
        try:
            updated = self.db.query(Payroll).filter(
                Payroll.id == payroll_id,
                Payroll.status == expected_status
            ).update(values, synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return updated == 1

    def _filtered(self, query, filters: PayrollFilters):
        # Month and year only narrow the result when both are given
        if filters.month is not None and filters.year is not None:
            query = query.filter(Payroll.month == filters.month, Payroll.year == filters.year)
        if filters.employee_ids is not None:
            query = query.filter(Payroll.employee_id.in_(filters.employee_ids))
        if filters.status:
            query = query.filter(Payroll.status == filters.status)
        return query

    def query(
        self,
        filters: PayrollFilters,
        offset: int,
        limit: int,
        sort_by: str,
        descending: bool
    ) -> Tuple[List[Payroll], int]:
        base = self._filtered(self.db.query(Payroll), filters)
        total = base.count()

        column = SORTABLE_COLUMNS[sort_by]
        items = base.options(joinedload(Payroll.employee)).order_by(
            column.desc() if descending else column.asc(),
            Payroll.id.desc() if descending else Payroll.id.asc()
        ).offset(offset).limit(limit).all()
        return items, total

    def totals(self, filters: PayrollFilters) -> PayrollTotals:
        row = self._filtered(
            self.db.query(
                func.sum(Payroll.gross_salary),
                func.sum(Payroll.total_deductions),
                func.sum(Payroll.net_salary),
            ),
            filters
        ).one()
        return PayrollTotals(
            total_gross_salary=_money(row[0]),
            total_deductions=_money(row[1]),
            total_net_salary=_money(row[2]),
        )

    def monthly_totals(self, year: int) -> List[MonthlySummary]:
        rows = self.db.query(
            Payroll.month,
            func.count(Payroll.id),
            func.sum(Payroll.gross_salary),
            func.sum(Payroll.total_deductions),
            func.sum(Payroll.net_salary),
            func.sum(Payroll.overtime_pay),
        ).filter(Payroll.year == year).group_by(Payroll.month).order_by(Payroll.month.asc()).all()

        return [
            MonthlySummary(
                month=month,
                total_employees=count,
                total_gross_salary=_money(gross),
                total_deductions=_money(deductions),
                total_net_salary=_money(net),
                total_overtime_pay=_money(overtime),
            )
            for month, count, gross, deductions, net, overtime in rows
        ]
