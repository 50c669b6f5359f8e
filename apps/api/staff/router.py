from uuid import UUID
from fastapi import APIRouter

from apps.api.auth.dependency import AdminDependency, StaffDependency, TenantDependency
from apps.api.staff.schema import (
    CreatedStaffResponse,
    CreateEmployeeRequest,
    CreateStaffRequest,
    EmployeeListResponse,
    HasUsersResponse,
    SetActiveRequest,
    TenantUserResponse,
)
from apps.api.staff.service import StaffServiceDependency
from core.fastapi.response.models import SuccessResponse

router = APIRouter(prefix="/j/{slug}", tags=["Staff"])


@router.get("/staff/has-users", summary="Whether the tenant has any staff yet")
async def has_users_endpoint(
    tenant: TenantDependency, staff_service: StaffServiceDependency
) -> HasUsersResponse:
    return HasUsersResponse(has_users=await staff_service.has_users(tenant))


@router.post("/staff/first-admin", summary="Create the first admin of an empty tenant")
async def first_admin_endpoint(
    body: CreateStaffRequest,
    tenant: TenantDependency,
    staff_service: StaffServiceDependency,
) -> CreatedStaffResponse:
    user = await staff_service.bootstrap_first_admin(
        tenant, email=body.email, password=body.password, name=body.name
    )
    return CreatedStaffResponse(id=user.id, uid=user.uid)


@router.get("/staff/me", summary="The calling staff member")
async def me_endpoint(staff: StaffDependency) -> TenantUserResponse:
    return staff


@router.get("/admin/employees", summary="List employees")
async def list_employees_endpoint(
    tenant: TenantDependency,
    admin: AdminDependency,
    staff_service: StaffServiceDependency,
) -> EmployeeListResponse:
    return EmployeeListResponse(employees=await staff_service.list_employees(tenant))


@router.post("/admin/employees", summary="Create an employee account")
async def create_employee_endpoint(
    body: CreateEmployeeRequest,
    tenant: TenantDependency,
    admin: AdminDependency,
    staff_service: StaffServiceDependency,
) -> CreatedStaffResponse:
    user = await staff_service.create_employee(
        tenant,
        email=body.email,
        password=body.password,
        name=body.name,
        role=body.role,
    )
    return CreatedStaffResponse(id=user.id, uid=user.uid)


@router.patch("/admin/employees/{user_id}", summary="Activate or deactivate an employee")
async def set_employee_active_endpoint(
    user_id: UUID,
    body: SetActiveRequest,
    tenant: TenantDependency,
    admin: AdminDependency,
    staff_service: StaffServiceDependency,
) -> SuccessResponse:
    await staff_service.set_employee_active(tenant, user_id, body.active)
    return SuccessResponse()
