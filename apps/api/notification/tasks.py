import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import BackgroundTasks, Depends

from apps.api.notification.dependency import WebPushCoreDependency
from apps.api.notification.service import NotificationService
from core.db.core import AsyncSessionLocal
from core.notifications.webpush.core import WebPushCore

logger = logging.getLogger(__name__)


async def notify_ticket_ready(
    tenant_id: UUID, public_id: str, push_core: Optional[WebPushCore]
) -> None:
    """Background task: runs after the response, in its own session."""
    async with AsyncSessionLocal() as session:
        service = NotificationService(session=session, push_core=push_core)
        try:
            await service.notify_ready(tenant_id, public_id)
        except Exception:
            # The status change is already committed; nothing to report back to.
            logger.exception(f"Ready notification for {public_id} failed")


class ReadyNotifier:
    """Queues "car ready" pushes to run once the current response is sent."""

    def __init__(
        self, background_tasks: BackgroundTasks, push_core: Optional[WebPushCore]
    ):
        self.background_tasks = background_tasks
        self.push_core = push_core

    def schedule(self, tenant_id: UUID, public_id: str) -> None:
        self.background_tasks.add_task(
            notify_ticket_ready, tenant_id, public_id, self.push_core
        )
        logger.debug(f"Scheduled ready notification for {public_id}")


def get_ready_notifier(
    background_tasks: BackgroundTasks, push_core: WebPushCoreDependency
) -> ReadyNotifier:
    return ReadyNotifier(background_tasks, push_core)


ReadyNotifierDependency = Annotated[ReadyNotifier, Depends(get_ready_notifier)]
