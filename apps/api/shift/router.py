from fastapi import APIRouter

from apps.api.auth.dependency import AdminDependency, StaffDependency, TenantDependency
from apps.api.shift.schema import (
    CheckInRequest,
    CurrentShiftResponse,
    LocationRequest,
    ShiftActionResponse,
    ShiftListResponse,
    ShiftResponse,
)
from apps.api.shift.service import ShiftServiceDependency
from core.fastapi.response.pagination import LimitParam

router = APIRouter(prefix="/j/{slug}", tags=["Attendance"])


@router.post("/staff/check-in", summary="Start a shift")
async def check_in_endpoint(
    body: CheckInRequest,
    tenant: TenantDependency,
    staff: StaffDependency,
    shift_service: ShiftServiceDependency,
) -> ShiftActionResponse:
    shift = await shift_service.check_in(tenant, staff, body)
    return ShiftActionResponse(shift_id=shift.id)


@router.post("/staff/check-out", summary="End the open shift")
async def check_out_endpoint(
    body: LocationRequest,
    tenant: TenantDependency,
    staff: StaffDependency,
    shift_service: ShiftServiceDependency,
) -> ShiftActionResponse:
    shift = await shift_service.check_out(tenant, staff, body)
    return ShiftActionResponse(shift_id=shift.id)


@router.get("/staff/current-shift", summary="The caller's open shift, if any")
async def current_shift_endpoint(
    tenant: TenantDependency,
    staff: StaffDependency,
    shift_service: ShiftServiceDependency,
) -> CurrentShiftResponse:
    shift = await shift_service.current_shift(tenant, staff)
    if shift is None:
        return CurrentShiftResponse()
    return CurrentShiftResponse(open_shift_id=shift.id, check_in_at=shift.check_in_at)


@router.get("/admin/shifts", summary="Recent shifts, newest first")
async def list_shifts_endpoint(
    tenant: TenantDependency,
    admin: AdminDependency,
    shift_service: ShiftServiceDependency,
    limit: LimitParam,
) -> ShiftListResponse:
    shifts = await shift_service.list_shifts(tenant, limit=limit)
    return ShiftListResponse(
        shifts=[
            ShiftResponse(
                id=shift.id,
                user_id=shift.user_id,
                check_in_at=shift.check_in_at,
                check_out_at=shift.check_out_at,
                check_in_location=shift.check_in_location,
                check_out_location=shift.check_out_location,
                device_id=shift.device_id,
                display_name=shift.user.name if shift.user else None,
                email=shift.user.email if shift.user else None,
            )
            for shift in shifts
        ]
    )
