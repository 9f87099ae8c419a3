import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from payroll_engine.models.notification import Notification
from payroll_engine.schemas.payroll import PayrollEvent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, employee_id: int, event_type: str, payload: Dict[str, Any]) -> Any:
        ...


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        employee_id: int,
        title: str,
        message: str,
        type: str = "info",
        link: Optional[str] = None
    ) -> Notification:
        """
        Internal utility for creating notifications.
        """
        notification = Notification(
            employee_id=employee_id,
            title=title,
            message=message,
            type=type,
            link=link
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(notification)
        return notification

    def notify(self, employee_id: int, event_type: str, payload: Dict[str, Any]) -> Notification:
        """
        Standardized payroll notification trigger.
        """
        return self.create_notification(
            employee_id=employee_id,
            title=f"Payroll {event_type}",
            message=f"Your payroll for {payload['month']}/{payload['year']} has been {event_type}",
            type=f"payroll_{event_type}",
            link=f"/payroll/{payload['payroll_id']}"
        )


class NotificationDispatcher:
    """
    Delivers lifecycle events to a notification sink.

    Delivery is fire-and-forget: a failing sink is logged and never undoes the
    transition that produced the event.
    """

    def __init__(self, sink: NotificationSink):
        self.sink = sink

    def dispatch(self, event: PayrollEvent) -> bool:
        payload = event.model_dump(mode="json")
        try:
            self.sink.notify(event.employee_id, event.type, payload)
        except Exception as e:
            logger.error(
                f"Failed to deliver payroll_{event.type} notification for payroll {event.payroll_id}: {e}",
                exc_info=True
            )
            return False
        return True
