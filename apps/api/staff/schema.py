from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import Field

from core.fastapi.response.models import CustomBaseModel


class HasUsersResponse(CustomBaseModel):
    has_users: bool


class CreateStaffRequest(CustomBaseModel):
    email: str = Field(..., min_length=3, max_length=120)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=120)


class CreateEmployeeRequest(CreateStaffRequest):
    role: Optional[str] = None  # manager | valet, anything else becomes valet


class CreatedStaffResponse(CustomBaseModel):
    success: bool = True
    id: UUID
    uid: str


class TenantUserResponse(CustomBaseModel):
    id: UUID
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str
    active: bool
    created_at: datetime
    updated_at: datetime


class EmployeeListResponse(CustomBaseModel):
    employees: List[TenantUserResponse]


class SetActiveRequest(CustomBaseModel):
    active: bool
