from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import Field

from core.fastapi.response.models import CustomBaseModel


class LocationRequest(CustomBaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)


class CheckInRequest(LocationRequest):
    device_id: Optional[str] = Field(None, max_length=128)


class ShiftActionResponse(CustomBaseModel):
    success: bool = True
    shift_id: UUID


class CurrentShiftResponse(CustomBaseModel):
    open_shift_id: Optional[UUID] = None
    check_in_at: Optional[datetime] = None


class ShiftResponse(CustomBaseModel):
    id: UUID
    user_id: UUID
    check_in_at: datetime
    check_out_at: Optional[datetime] = None
    check_in_location: Dict[str, Any]
    check_out_location: Optional[Dict[str, Any]] = None
    device_id: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None


class ShiftListResponse(CustomBaseModel):
    shifts: List[ShiftResponse]
