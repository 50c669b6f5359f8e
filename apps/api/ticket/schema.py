from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID
from pydantic import Field

from apps.api.ticket.lifecycle import TicketStatus
from core.fastapi.response.models import CustomBaseModel


class CreateTicketRequest(CustomBaseModel):
    plate_number: Optional[str] = Field(None, max_length=32)
    car_color: Optional[str] = Field(None, max_length=40)
    car_type: Optional[str] = Field(None, max_length=40)
    car_make: Optional[str] = Field(None, max_length=60)
    notes: Optional[str] = None
    plate_image_url: Optional[str] = None
    car_image_url: Optional[str] = None
    tag_number: Optional[str] = Field(None, max_length=64)


class CreateTicketResponse(CustomBaseModel):
    ticket_id: UUID
    ticket_number: str
    public_id: str
    token: str = Field(..., description="Shown once; only its hash is stored")
    customer_url: str
    slot_number: Optional[int] = None
    tag_number: Optional[str] = None
    no_slots_available: bool = False


class TicketResponse(CustomBaseModel):
    id: UUID
    ticket_number: str
    status: TicketStatus
    plate_number: Optional[str] = None
    car_meta: Optional[Dict[str, str]] = None
    notes: Optional[str] = None
    photo_urls: Optional[Dict[str, Optional[str]]] = None
    public_id: str
    slot_number: Optional[int] = None
    tag_number: Optional[str] = None
    arrived_at: Optional[datetime] = None
    parked_at: Optional[datetime] = None
    requested_at: Optional[datetime] = None
    in_progress_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    assigned_to_user_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime


class TicketListResponse(CustomBaseModel):
    tickets: List[TicketResponse]


class UpdateStatusRequest(CustomBaseModel):
    ticket_id: str
    new_status: str


class RequestCarRequest(CustomBaseModel):
    token: Optional[str] = None


class PublicTicketResponse(CustomBaseModel):
    public_id: str
    status: TicketStatus
    requested_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    updated_at: datetime
