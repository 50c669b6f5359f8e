from typing import Optional
from fastapi import APIRouter, Query

from apps.api.auth.dependency import StaffDependency, TenantDependency
from apps.api.key_storage.schema import (
    AssignSlotRequest,
    AssignSlotResponse,
    AssignTagRequest,
    AssignTagResponse,
    AvailableSlotsResponse,
)
from apps.api.key_storage.service import KeyStorageServiceDependency
from apps.api.ticket.dependency import TicketIdPath
from core.utils.validations import parse_uuid

router = APIRouter(prefix="/j/{slug}/staff", tags=["Key Storage"])


@router.post("/tickets/{ticket_id}/assign-slot", summary="Put a ticket's key in a slot")
async def assign_slot_endpoint(
    ticket_id: TicketIdPath,
    tenant: TenantDependency,
    staff: StaffDependency,
    key_storage: KeyStorageServiceDependency,
    body: Optional[AssignSlotRequest] = None,
) -> AssignSlotResponse:
    slot = await key_storage.assign_slot(
        tenant, ticket_id, requested_slot=body.slot_number if body else None
    )
    return AssignSlotResponse(slot_number=slot)


@router.post("/tickets/{ticket_id}/assign-tag", summary="Attach a key tag to a ticket")
async def assign_tag_endpoint(
    ticket_id: TicketIdPath,
    body: AssignTagRequest,
    tenant: TenantDependency,
    staff: StaffDependency,
    key_storage: KeyStorageServiceDependency,
) -> AssignTagResponse:
    tag = await key_storage.assign_tag(tenant, ticket_id, body.tag_number)
    return AssignTagResponse(tag_number=tag)


@router.get("/available-slots", summary="Free key slots, lowest first")
async def available_slots_endpoint(
    tenant: TenantDependency,
    staff: StaffDependency,
    key_storage: KeyStorageServiceDependency,
    for_ticket_id: Optional[str] = Query(None, alias="forTicketId"),
) -> AvailableSlotsResponse:
    available = await key_storage.list_available_slots(
        tenant, exclude_ticket_id=parse_uuid(for_ticket_id)
    )
    return AvailableSlotsResponse(available=available, total_slots=tenant.total_slots)
