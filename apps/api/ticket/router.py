from typing import List, Optional
from fastapi import APIRouter, Query

from apps.api.auth.dependency import AdminDependency, StaffDependency, TenantDependency
from apps.api.ticket.dependency import ticket_id_or_404
from apps.api.ticket.lifecycle import TicketStatus
from apps.api.ticket.schema import (
    CreateTicketRequest,
    CreateTicketResponse,
    PublicTicketResponse,
    RequestCarRequest,
    TicketListResponse,
    UpdateStatusRequest,
)
from apps.api.ticket.service import TicketServiceDependency
from core.fastapi.response.models import SuccessResponse
from core.fastapi.response.pagination import LimitParam

router = APIRouter(prefix="/j/{slug}", tags=["Tickets"])


@router.post("/staff/tickets", summary="Create a ticket for a parked car")
async def create_ticket_endpoint(
    body: CreateTicketRequest,
    tenant: TenantDependency,
    staff: StaffDependency,
    ticket_service: TicketServiceDependency,
) -> CreateTicketResponse:
    created = await ticket_service.create_ticket(tenant=tenant, actor=staff, data=body)
    return CreateTicketResponse(
        ticket_id=created.ticket.id,
        ticket_number=created.ticket.ticket_number,
        public_id=created.ticket.public_id,
        token=created.token,
        customer_url=created.customer_url,
        slot_number=created.ticket.slot_number,
        tag_number=created.ticket.tag_number,
        no_slots_available=created.no_slots_available,
    )


@router.get("/staff/tickets", summary="List tickets, most recently updated first")
async def list_staff_tickets_endpoint(
    tenant: TenantDependency,
    staff: StaffDependency,
    ticket_service: TicketServiceDependency,
    limit: LimitParam,
    status: Optional[List[TicketStatus]] = Query(None),
) -> TicketListResponse:
    tickets = await ticket_service.list_tickets(tenant, statuses=status, limit=limit)
    return TicketListResponse(tickets=tickets)


@router.post("/staff/update-status", summary="Advance a ticket to its next status")
async def update_status_endpoint(
    body: UpdateStatusRequest,
    tenant: TenantDependency,
    staff: StaffDependency,
    ticket_service: TicketServiceDependency,
) -> SuccessResponse:
    await ticket_service.advance_status(
        tenant=tenant,
        actor=staff,
        ticket_id=ticket_id_or_404(body.ticket_id),
        new_status=body.new_status,
    )
    return SuccessResponse()


@router.get("/admin/tickets", summary="List tickets for the admin dashboard")
async def list_admin_tickets_endpoint(
    tenant: TenantDependency,
    admin: AdminDependency,
    ticket_service: TicketServiceDependency,
    limit: LimitParam,
    status: Optional[List[TicketStatus]] = Query(None),
) -> TicketListResponse:
    tickets = await ticket_service.list_tickets(tenant, statuses=status, limit=limit)
    return TicketListResponse(tickets=tickets)


@router.get("/t/{public_id}", summary="Customer view of a ticket")
async def get_public_ticket_endpoint(
    public_id: str,
    tenant: TenantDependency,
    ticket_service: TicketServiceDependency,
    k: Optional[str] = Query(None, description="Ticket access token"),
) -> PublicTicketResponse:
    return await ticket_service.get_public_ticket(tenant, public_id, k)


@router.post("/t/{public_id}/request", summary="Customer asks for their car")
async def request_car_endpoint(
    public_id: str,
    body: RequestCarRequest,
    tenant: TenantDependency,
    ticket_service: TicketServiceDependency,
) -> PublicTicketResponse:
    return await ticket_service.request_car(tenant, public_id, body.token)
