from fastapi import APIRouter

from apps.api.auth.dependency import TenantDependency
from apps.api.notification.schema import PushSubscribeRequest
from apps.api.notification.service import NotificationServiceDependency
from core.fastapi.response.models import SuccessResponse

router = APIRouter(prefix="/j/{slug}", tags=["Notifications"])


@router.post("/push-subscribe", summary="Subscribe to ticket push notifications")
async def push_subscribe_endpoint(
    body: PushSubscribeRequest,
    tenant: TenantDependency,
    notification_service: NotificationServiceDependency,
) -> SuccessResponse:
    await notification_service.subscribe(
        tenant=tenant,
        public_id=body.public_id,
        token=body.token,
        subscription=body.subscription,
    )
    return SuccessResponse()
