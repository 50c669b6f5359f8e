from typing import Annotated
from fastapi import Depends

from apps.api.auth.permissions import StaffAction
from apps.api.auth.service import AccessControlServiceDependency
from apps.api.staff.models import TenantUser
from apps.api.tenant.models import Tenant
from apps.context import bind_staff_user, bind_tenant
from core.authentication.firebase.dependency import CallerDependency


async def get_current_tenant(
    slug: str, access_control: AccessControlServiceDependency
) -> Tenant:
    tenant = await access_control.resolve_tenant(slug)
    bind_tenant(tenant.slug)
    return tenant


TenantDependency = Annotated[Tenant, Depends(get_current_tenant)]


async def get_current_staff(
    tenant: TenantDependency,
    caller: CallerDependency,
    access_control: AccessControlServiceDependency,
) -> TenantUser:
    user = await access_control.authorize(tenant, caller.uid, StaffAction.STAFF)
    bind_staff_user(user.id)
    return user


StaffDependency = Annotated[TenantUser, Depends(get_current_staff)]


async def get_current_admin(
    tenant: TenantDependency,
    caller: CallerDependency,
    access_control: AccessControlServiceDependency,
) -> TenantUser:
    user = await access_control.authorize(tenant, caller.uid, StaffAction.ADMIN)
    bind_staff_user(user.id)
    return user


AdminDependency = Annotated[TenantUser, Depends(get_current_admin)]
