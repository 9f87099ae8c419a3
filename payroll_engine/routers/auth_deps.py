"""
Actor resolution and capability dependencies for FastAPI endpoints.

Authentication itself lives in front of this service; by the time a request
reaches the payroll API the caller's user id is carried in the X-User-Id
header.
"""
import logging
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from payroll_engine.core.exceptions import AuthenticationError
from payroll_engine.core.permissions import Capability, ensure_allowed
from payroll_engine.database import get_db
from payroll_engine.models.user import User
from payroll_engine.services.notification import NotificationDispatcher, NotificationService
from payroll_engine.services.payroll_service import PayrollService, build_payroll_service

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_id: Optional[int] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db)
) -> User:
    """
    Loads the acting user named by the X-User-Id header.
    """
    if x_user_id is None:
        logger.warning("Authentication failed: missing X-User-Id header")
        raise AuthenticationError("Missing user identity")

    user = db.get(User, x_user_id)
    if user is None:
        logger.warning(f"Authentication failed: User {x_user_id} not found in database")
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: User {x_user_id} is inactive")
        raise AuthenticationError("User is inactive")
    return user


def require_capability(capability: Capability) -> Callable:
    """
    Dependency factory that checks the user's role grants a capability.

    Usage:
        @router.post("/process")
        def process(user: User = Depends(require_capability(Capability.PROCESS_PAYROLL))):
            ...
    """
    def capability_checker(current_user: User = Depends(get_current_user)) -> User:
        ensure_allowed(current_user.role, capability, actor_employee_id=current_user.employee_id)
        return current_user
    return capability_checker


def get_payroll_service(db: Session = Depends(get_db)) -> PayrollService:
    return build_payroll_service(db)


def get_notification_dispatcher(db: Session = Depends(get_db)) -> NotificationDispatcher:
    return NotificationDispatcher(NotificationService(db))
