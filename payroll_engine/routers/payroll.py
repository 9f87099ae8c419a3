"""
Payroll Router

Handles HTTP endpoints for payroll operations.
All business logic is delegated to the payroll service layer; domain errors
propagate as AppException subclasses and are rendered by the app-level
exception handler.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse

from payroll_engine.core.permissions import Capability, ensure_allowed
from payroll_engine.core.schemas import ApiResponse
from payroll_engine.models.user import User
from payroll_engine.routers.auth_deps import (
    get_current_user,
    get_notification_dispatcher,
    get_payroll_service,
    require_capability,
)
from payroll_engine.schemas.payroll import (
    MonthlySummary,
    PayrollFilters,
    PayrollPage,
    PayrollRead,
    ProcessPayrollRequest,
    RejectPayrollRequest,
)
from payroll_engine.services.notification import NotificationDispatcher
from payroll_engine.services.payroll_service import PayrollService


router = APIRouter(
    prefix="/payroll",
    tags=["payroll"],
)


@router.get("")
def list_payroll(
    page: int = 1,
    limit: Optional[int] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    department: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    sort_by: str = "created_at",
    order: str = "desc",
    current_user: User = Depends(require_capability(Capability.LIST_PAYROLL)),
    service: PayrollService = Depends(get_payroll_service)
):
    """
    Paged payroll listing with totals over the whole filtered set.
    """
    filters = PayrollFilters(month=month, year=year, department=department, status=status_filter)
    result = service.list_payroll(filters, page=page, limit=limit, sort_by=sort_by, order=order)
    return ApiResponse[PayrollPage].ok(result).to_dict()


@router.get("/summary/{year}")
def get_yearly_summary(
    year: int,
    current_user: User = Depends(require_capability(Capability.VIEW_SUMMARY)),
    service: PayrollService = Depends(get_payroll_service)
):
    """
    Per-month totals for a year, ordered by month.
    """
    return ApiResponse[List[MonthlySummary]].ok(service.yearly_summary(year)).to_dict()


@router.post("/process", status_code=status.HTTP_201_CREATED)
def process_payroll(
    request: ProcessPayrollRequest,
    current_user: User = Depends(require_capability(Capability.PROCESS_PAYROLL)),
    service: PayrollService = Depends(get_payroll_service)
):
    """
    Run payroll for the period, for the listed employees or every active employee.
    """
    records = service.process_batch(
        request.month,
        request.year,
        employee_ids=request.employee_ids,
        actor_id=current_user.id
    )
    return ApiResponse[List[PayrollRead]].ok(
        [PayrollRead.model_validate(r) for r in records],
        message=f"Payroll processed for {len(records)} employees"
    ).to_dict()


@router.get("/{payroll_id}")
def get_payroll(
    payroll_id: int,
    current_user: User = Depends(get_current_user),
    service: PayrollService = Depends(get_payroll_service)
):
    """
    Get a single payroll record. Employees may only view their own.
    """
    payroll = service.get_payroll(payroll_id)
    ensure_allowed(
        current_user.role,
        Capability.VIEW_PAYROLL,
        owner_employee_id=payroll.employee_id,
        actor_employee_id=current_user.employee_id
    )
    return ApiResponse[PayrollRead].ok(PayrollRead.model_validate(payroll)).to_dict()


@router.post("/{payroll_id}/approve")
def approve_payroll(
    payroll_id: int,
    current_user: User = Depends(require_capability(Capability.APPROVE_PAYROLL)),
    service: PayrollService = Depends(get_payroll_service),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    result = service.approve(payroll_id, current_user.id)
    dispatcher.dispatch(result.event)
    return ApiResponse[PayrollRead].ok(
        PayrollRead.model_validate(result.record),
        message="Payroll approved successfully"
    ).to_dict()


@router.post("/{payroll_id}/reject")
def reject_payroll(
    payroll_id: int,
    request: Optional[RejectPayrollRequest] = None,
    current_user: User = Depends(require_capability(Capability.REJECT_PAYROLL)),
    service: PayrollService = Depends(get_payroll_service)
):
    reason = request.reason if request else None
    result = service.reject(payroll_id, current_user.id, reason)
    return ApiResponse[PayrollRead].ok(
        PayrollRead.model_validate(result.record),
        message="Payroll rejected"
    ).to_dict()


@router.get("/{payroll_id}/payslip")
def download_payslip(
    payroll_id: int,
    current_user: User = Depends(get_current_user),
    service: PayrollService = Depends(get_payroll_service)
):
    """
    Generate and download a payslip.

    Returns an HTML document that can be printed to PDF in the browser.
    """
    payroll = service.get_payroll(payroll_id)
    ensure_allowed(
        current_user.role,
        Capability.DOWNLOAD_PAYSLIP,
        owner_employee_id=payroll.employee_id,
        actor_employee_id=current_user.employee_id
    )
    filename, html_content = service.render_payslip(payroll_id)
    return HTMLResponse(
        content=html_content,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
