from typing import List, Optional
from pydantic import Field

from core.fastapi.response.models import CustomBaseModel


class AssignSlotRequest(CustomBaseModel):
    slot_number: Optional[int] = Field(None, description="Omit to take the lowest free slot")


class AssignSlotResponse(CustomBaseModel):
    slot_number: int


class AssignTagRequest(CustomBaseModel):
    tag_number: str


class AssignTagResponse(CustomBaseModel):
    tag_number: str


class AvailableSlotsResponse(CustomBaseModel):
    available: List[int]
    total_slots: int
