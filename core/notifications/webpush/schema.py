from enum import Enum as PyEnum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class NotificationStatus(str, PyEnum):
    """
    Status of a push attempt.
    SENT: Accepted by the push service.
    FAILED: Rejected by the push service or never delivered.
    """

    SENT = "sent"
    FAILED = "failed"


class SubscriptionKeys(BaseModel):
    p256dh: str = Field(..., description="Client public key (base64url)")
    auth: str = Field(..., description="Client auth secret (base64url)")


class SubscriptionInfo(BaseModel):
    """Subscription descriptor as produced by the browser PushManager"""

    endpoint: str = Field(..., description="Push service endpoint URL")
    expiration_time: Optional[int] = Field(
        None,
        serialization_alias="expirationTime",
        description="Epoch millis after which the browser drops the subscription",
    )
    keys: SubscriptionKeys


class WebPushNotification(BaseModel):
    """Payload rendered by the service worker"""

    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    tag: Optional[str] = Field(None, description="Replaces earlier notifications with the same tag")
    data: Optional[Dict[str, Any]] = None


class WebPushMessage(BaseModel):
    subscription: SubscriptionInfo
    notification: WebPushNotification
    ttl: int = Field(3600, description="Time to live in seconds")


class WebPushOperationResult(BaseModel):
    success: bool
    status_code: Optional[int] = Field(None, description="HTTP status returned by the push service")
    notification_status: NotificationStatus
