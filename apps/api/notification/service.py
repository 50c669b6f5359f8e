import asyncio
import logging
from typing import Annotated, List, Optional
from uuid import UUID

from sqlalchemy import select

from apps.api.notification.dependency import WebPushCoreDependency
from apps.api.notification.models import PushSubscription
from apps.api.notification.schema import PushSubscriptionIn
from apps.api.tenant.models import Tenant
from apps.api.ticket.models import Ticket
from apps.api.ticket.tokens import token_matches
from apps.settings import settings
from core.architecture.service import AbstractService
from core.db.core import SessionDep
from core.exceptions import ForbiddenException, NotFoundException
from core.notifications.webpush.core import WebPushCore
from core.notifications.webpush.exceptions import (
    WebPushException,
    WebPushExpiredSubscriptionError,
)
from core.notifications.webpush.schema import (
    SubscriptionInfo,
    SubscriptionKeys,
    WebPushMessage,
    WebPushNotification,
)

logger = logging.getLogger(__name__)

READY_TITLE = "Car ready"
READY_BODY = "Your car is ready for pickup."


def ready_notification(public_id: str) -> WebPushNotification:
    return WebPushNotification(
        title=READY_TITLE, body=READY_BODY, tag=f"valet-ready-{public_id}"
    )


class NotificationService(AbstractService):
    """
    Stores customer push subscriptions and fans out "car ready" pushes.
    """

    DEPENDENCIES = {"session": SessionDep, "push_core": WebPushCoreDependency}

    def __init__(
        self, session: SessionDep, push_core: Optional[WebPushCore] = None, **kwargs
    ):
        super().__init__(session=session, **kwargs)
        self.push_core = push_core

    async def subscribe(
        self,
        tenant: Tenant,
        public_id: str,
        token: str,
        subscription: PushSubscriptionIn,
    ) -> PushSubscription:
        """
        Register (or refresh) a subscription for a ticket's public id.

        Raises:
            NotFoundException: unknown public id
            ForbiddenException: token does not match the ticket
        """
        token_hash = await self.session.scalar(
            select(Ticket.token_hash).where(
                Ticket.tenant_id == tenant.id, Ticket.public_id == public_id
            )
        )
        if token_hash is None:
            raise NotFoundException("Ticket not found", error_code="TICKET_NOT_FOUND")
        if not token_matches(token, token_hash):
            raise ForbiddenException("Invalid token", error_code="INVALID_TOKEN")

        record = await self.session.scalar(
            select(PushSubscription).where(
                PushSubscription.tenant_id == tenant.id,
                PushSubscription.public_id == public_id,
                PushSubscription.endpoint == subscription.endpoint,
            )
        )
        if record is None:
            record = PushSubscription(
                tenant_id=tenant.id,
                public_id=public_id,
                endpoint=subscription.endpoint,
            )
            self.session.add(record)
        record.p256dh = subscription.keys.p256dh
        record.auth = subscription.keys.auth
        record.expiration_time = subscription.expiration_time

        await self.session.commit()
        await self.session.refresh(record)
        logger.info(f"Push subscription stored for ticket {public_id}")
        return record

    async def list_subscriptions(
        self, tenant_id: UUID, public_id: str
    ) -> List[PushSubscription]:
        result = await self.session.scalars(
            select(PushSubscription)
            .where(
                PushSubscription.tenant_id == tenant_id,
                PushSubscription.public_id == public_id,
            )
            .order_by(PushSubscription.created_at)
        )
        return list(result.all())

    async def notify_ready(self, tenant_id: UUID, public_id: str) -> int:
        """
        Send the "car ready" push to every subscription of ``public_id``.

        Each subscription gets exactly one attempt, concurrently with the
        others. Subscriptions are only read here: failures, including
        endpoints the push service reports as gone, are logged and never
        raised. Returns the number of pushes accepted by the push service.
        """
        if self.push_core is None:
            logger.info(
                f"Push is not configured, skipping ready notification for {public_id}"
            )
            return 0

        subscriptions = await self.list_subscriptions(tenant_id, public_id)
        if not subscriptions:
            return 0

        notification = ready_notification(public_id)
        outcomes = await asyncio.gather(
            *(self._send(subscription, notification) for subscription in subscriptions)
        )

        sent = outcomes.count("sent")
        gone = outcomes.count("gone")
        logger.info(
            f"Ready notification for {public_id}: {sent}/{len(subscriptions)} sent, "
            f"{gone} endpoint(s) gone"
        )
        return sent

    async def _send(
        self, subscription: PushSubscription, notification: WebPushNotification
    ) -> str:
        message = WebPushMessage(
            subscription=SubscriptionInfo(
                endpoint=subscription.endpoint,
                expiration_time=subscription.expiration_time,
                keys=SubscriptionKeys(p256dh=subscription.p256dh, auth=subscription.auth),
            ),
            notification=notification,
            ttl=settings.PUSH_TTL_SECONDS,
        )
        endpoint = subscription.endpoint[:40]
        try:
            await asyncio.to_thread(self.push_core.send, message)
        except WebPushExpiredSubscriptionError:
            logger.warning(f"Push endpoint gone: {endpoint}...")
            return "gone"
        except WebPushException as e:
            logger.warning(
                f"Push to {endpoint}... failed: {e.status_code} {e.error_message}"
            )
            return "failed"
        except Exception as e:
            logger.warning(f"Push to {endpoint}... failed unexpectedly: {e}")
            return "failed"
        return "sent"


NotificationServiceDependency = Annotated[
    NotificationService, NotificationService.get_dependency()
]
