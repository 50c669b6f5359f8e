from enum import Enum
from typing import Optional
from uuid import UUID

from apps.api.staff.models import StaffRole, TenantUser


class StaffAction(Enum):
    STAFF = "staff"  # any active staff member
    ADMIN = "admin"  # active admin or manager


ADMIN_ROLES = frozenset({StaffRole.ADMIN.value, StaffRole.MANAGER.value})


def is_authorized(
    tenant_id: UUID, user: Optional[TenantUser], action: StaffAction
) -> bool:
    """Role rule for tenant-scoped actions. Pure: no I/O, no exceptions."""
    if user is None or user.tenant_id != tenant_id:
        return False
    if not user.active:
        return False
    if action is StaffAction.ADMIN:
        return user.role in ADMIN_ROLES
    return True
