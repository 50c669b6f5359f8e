from typing import Optional
from pydantic import Field

from core.fastapi.response.models import CustomBaseModel


class SubscriptionKeysIn(CustomBaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionIn(CustomBaseModel):
    endpoint: str = Field(..., min_length=1)
    expiration_time: Optional[int] = None
    keys: SubscriptionKeysIn


class PushSubscribeRequest(CustomBaseModel):
    public_id: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    subscription: PushSubscriptionIn
