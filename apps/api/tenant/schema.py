from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import Field

from apps.api.tenant.models import KeyStorageMode, MAX_SLOTS_COUNT, MIN_SLOTS_COUNT
from core.fastapi.response.models import CustomBaseModel


class GeofenceSchema(CustomBaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius_meters: float = Field(..., gt=0)


class NewTicketRequiredSchema(CustomBaseModel):
    plate_number: Optional[bool] = None
    car_color: Optional[bool] = None
    car_type: Optional[bool] = None
    car_make: Optional[bool] = None
    notes: Optional[bool] = None
    plate_image: Optional[bool] = None
    car_image: Optional[bool] = None
    tag_number: Optional[bool] = None


class TenantSettingsResponse(CustomBaseModel):
    id: UUID
    slug: str
    name: str
    country: Optional[str] = None
    currency: Optional[str] = None
    key_storage_mode: KeyStorageMode
    key_storage_slots_count: Optional[int] = None
    total_slots: int
    geofence: Optional[GeofenceSchema] = None
    new_ticket_required: NewTicketRequiredSchema = Field(
        ...,
        validation_alias="required_fields",
        serialization_alias="newTicketRequired",
    )
    created_at: datetime
    updated_at: datetime


class UpdateSettingsRequest(CustomBaseModel):
    """Only the keys present in the body are applied; ``null`` clears a value."""

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    country: Optional[str] = Field(None, max_length=64)
    currency: Optional[str] = Field(None, max_length=8)
    geofence: Optional[GeofenceSchema] = None
    key_storage_mode: Optional[KeyStorageMode] = None
    key_storage_slots_count: Optional[int] = Field(
        None, ge=MIN_SLOTS_COUNT, le=MAX_SLOTS_COUNT
    )
    new_ticket_required: Optional[NewTicketRequiredSchema] = None


class UpdateSettingsResponse(CustomBaseModel):
    success: bool = True
    settings: TenantSettingsResponse


class PublicConfigResponse(CustomBaseModel):
    id: UUID
    slug: str
    name: str
    country: Optional[str] = None
    currency: Optional[str] = None
    key_storage_mode: KeyStorageMode
    new_ticket_required: NewTicketRequiredSchema = Field(
        ...,
        validation_alias="required_fields",
        serialization_alias="newTicketRequired",
    )
