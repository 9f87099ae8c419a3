"""
Role-based capability checks for payroll operations.

The transport layer calls `ensure_allowed` before invoking a core operation.
Ownership only matters for the EMPLOYEE role: employees may read their own
payroll records and payslips, nothing else.
"""
import enum
from typing import Dict, FrozenSet, Optional

from payroll_engine.core.exceptions import AccessDeniedError


class Role(str, enum.Enum):
    ADMIN = "admin"
    HR = "hr"
    PAYROLL = "payroll"
    EMPLOYEE = "employee"


class Capability(str, enum.Enum):
    LIST_PAYROLL = "list_payroll"
    VIEW_PAYROLL = "view_payroll"
    PROCESS_PAYROLL = "process_payroll"
    APPROVE_PAYROLL = "approve_payroll"
    REJECT_PAYROLL = "reject_payroll"
    VIEW_SUMMARY = "view_summary"
    DOWNLOAD_PAYSLIP = "download_payslip"


_ALL_ROLES = frozenset(Role)

CAPABILITY_ROLES: Dict[Capability, FrozenSet[Role]] = {
    Capability.LIST_PAYROLL: frozenset({Role.ADMIN, Role.HR, Role.PAYROLL}),
    Capability.VIEW_PAYROLL: _ALL_ROLES,
    Capability.PROCESS_PAYROLL: frozenset({Role.ADMIN, Role.PAYROLL}),
    Capability.APPROVE_PAYROLL: frozenset({Role.ADMIN, Role.HR}),
    Capability.REJECT_PAYROLL: frozenset({Role.ADMIN, Role.HR}),
    Capability.VIEW_SUMMARY: frozenset({Role.ADMIN, Role.HR, Role.PAYROLL}),
    Capability.DOWNLOAD_PAYSLIP: _ALL_ROLES,
}

# Capabilities an EMPLOYEE only holds over records they own
_OWNERSHIP_SCOPED = frozenset({Capability.VIEW_PAYROLL, Capability.DOWNLOAD_PAYSLIP})


def is_allowed(
    role: Role,
    capability: Capability,
    owner_employee_id: Optional[int] = None,
    actor_employee_id: Optional[int] = None,
) -> bool:
    if role not in CAPABILITY_ROLES[capability]:
        return False
    if role == Role.EMPLOYEE and capability in _OWNERSHIP_SCOPED:
        return actor_employee_id is not None and owner_employee_id == actor_employee_id
    return True


def ensure_allowed(
    role: Role,
    capability: Capability,
    owner_employee_id: Optional[int] = None,
    actor_employee_id: Optional[int] = None,
) -> None:
    if not is_allowed(role, capability, owner_employee_id, actor_employee_id):
        raise AccessDeniedError(f"Access denied: {role.value} cannot {capability.value.replace('_', ' ')}")
