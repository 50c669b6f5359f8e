from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StaffAccount(BaseModel):
    """Email/password account held by the identity provider for a staff member."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    disabled: bool = False


class VerifiedCaller(BaseModel):
    """Claims of a bearer token that passed verification.

    Only ``uid`` is read by the access gate; the remaining claims are kept
    for logging and ignored otherwise.
    """

    model_config = ConfigDict(extra="ignore")

    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    auth_time: Optional[int] = None


class TokenCheck(BaseModel):
    """Outcome of verifying a bearer token. ``caller`` is set only on success."""

    caller: Optional[VerifiedCaller] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.caller is not None


class NewStaffAccount(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    display_name: Optional[str] = None
