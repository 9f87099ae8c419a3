"""
Payroll record lifecycle.

    pending ──approve──▶ approved
       │
       └────reject────▶ rejected

approved and rejected are terminal. Each transition is a conditional update
on the record, so two concurrent calls cannot both observe `pending` and both
succeed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, Optional

from payroll_engine.core.exceptions import InvalidStateTransitionError, NotFoundError
from payroll_engine.models.payroll import Payroll, PayrollStatus
from payroll_engine.repositories.base import PayrollRepository
from payroll_engine.schemas.payroll import PayrollEvent

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[PayrollStatus, FrozenSet[PayrollStatus]] = {
    PayrollStatus.PENDING: frozenset({PayrollStatus.APPROVED, PayrollStatus.REJECTED}),
    PayrollStatus.APPROVED: frozenset(),
    PayrollStatus.REJECTED: frozenset(),
}


@dataclass
class TransitionResult:
    record: Payroll
    event: PayrollEvent


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current: str, target: PayrollStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(PayrollStatus(current), frozenset())


def _transition(
    payrolls: PayrollRepository,
    payroll_id: int,
    target: PayrollStatus,
    values: Dict,
    actor_id: Optional[int],
    now: datetime,
    reason: Optional[str] = None
) -> TransitionResult:
    record = payrolls.get(payroll_id)
    if record is None:
        raise NotFoundError("Payroll record", payroll_id)
    if not can_transition(record.status, target):
        raise InvalidStateTransitionError(payroll_id, record.status, target.value)

    applied = payrolls.transition(
        payroll_id,
        PayrollStatus.PENDING.value,
        dict(values, status=target.value)
    )
    if not applied:
        # Lost the race against a concurrent approve/reject
        current = payrolls.get(payroll_id)
        raise InvalidStateTransitionError(payroll_id, current.status if current else "missing", target.value)

    record = payrolls.get(payroll_id)
    logger.info(f"Payroll {payroll_id} {target.value} by user {actor_id}")
    event = PayrollEvent(
        type=target.value,
        payroll_id=record.id,
        employee_id=record.employee_id,
        month=record.month,
        year=record.year,
        actor_id=actor_id,
        reason=reason,
        occurred_at=now,
    )
    return TransitionResult(record=record, event=event)


def approve(
    payrolls: PayrollRepository,
    payroll_id: int,
    actor_id: Optional[int],
    clock: Callable[[], datetime] = _utcnow
) -> TransitionResult:
    now = clock()
    return _transition(
        payrolls, payroll_id, PayrollStatus.APPROVED,
        {"approved_by": actor_id, "approved_at": now},
        actor_id, now
    )


def reject(
    payrolls: PayrollRepository,
    payroll_id: int,
    actor_id: Optional[int],
    reason: Optional[str],
    clock: Callable[[], datetime] = _utcnow
) -> TransitionResult:
    now = clock()
    return _transition(
        payrolls, payroll_id, PayrollStatus.REJECTED,
        {"rejected_by": actor_id, "rejected_at": now, "rejection_reason": reason},
        actor_id, now, reason=reason
    )
