from functools import lru_cache
from typing import Annotated, Optional
from fastapi import Depends

from apps.settings import settings
from core.notifications.webpush.core import WebPushCore


@lru_cache
def get_web_push_core() -> Optional[WebPushCore]:
    """The process-wide push sender, or None when VAPID keys are not configured."""
    if not settings.push_enabled:
        return None
    return WebPushCore(
        vapid_private_key=settings.VAPID_PRIVATE_KEY,
        vapid_subject=settings.VAPID_SUBJECT,
    )


WebPushCoreDependency = Annotated[Optional[WebPushCore], Depends(get_web_push_core)]
