from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class NotFoundError(AppException):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} {identifier} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, "id": identifier}
        )

class AlreadyProcessedError(AppException):
    def __init__(self, month: int, year: int, employee_ids: Optional[list] = None):
        super().__init__(
            message="Payroll already processed for this period",
            status_code=409,
            error_code="ALREADY_PROCESSED",
            details={"month": month, "year": year, "employee_ids": employee_ids or []}
        )

class InvalidStateTransitionError(AppException):
    def __init__(self, payroll_id: Any, current: str, target: str):
        super().__init__(
            message=f"Payroll is not in pending status (current: {current})",
            status_code=409,
            error_code="INVALID_STATE_TRANSITION",
            details={"payroll_id": payroll_id, "current": current, "target": target}
        )

class PayrollValidationError(AppException):
    """Missing or malformed input. Not named ValidationError to stay clear of pydantic's."""
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else None
        )

class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )

class ComputationError(AppException):
    def __init__(self, message: str, employee_id: Any = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="COMPUTATION_ERROR",
            details={"employee_id": employee_id} if employee_id is not None else None
        )
