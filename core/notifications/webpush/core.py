import json
import logging
from typing import Optional

from pywebpush import WebPushException as PyWebPushException
from pywebpush import webpush

from core.notifications.webpush.exceptions import (
    WebPushDeliveryError,
    WebPushExpiredSubscriptionError,
    WebPushUnknownError,
)
from core.notifications.webpush.schema import (
    NotificationStatus,
    WebPushMessage,
    WebPushOperationResult,
)

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = (404, 410)


class WebPushCore:
    """
    Sends single Web Push messages signed with VAPID.
    Handles error scenarios by raising WebPushException subclasses.
    """

    def __init__(self, vapid_private_key: str, vapid_subject: str):
        """
        Args:
            vapid_private_key: VAPID private key (base64url or PEM)
            vapid_subject: ``mailto:`` or ``https:`` contact for the push service
        """
        self.vapid_private_key = vapid_private_key
        self.vapid_claims = {"sub": vapid_subject}

    def send(self, message: WebPushMessage) -> WebPushOperationResult:
        """
        Send one notification to one subscription. Blocking; run it in a
        worker thread from async code.

        Raises:
            WebPushExpiredSubscriptionError: The endpoint is gone (404/410).
            WebPushDeliveryError: The push service refused the message.
            WebPushUnknownError: For any other unexpected errors.
        """
        endpoint = message.subscription.endpoint
        try:
            response = webpush(
                subscription_info=message.subscription.model_dump(by_alias=True),
                data=json.dumps(message.notification.model_dump(exclude_none=True)),
                vapid_private_key=self.vapid_private_key,
                vapid_claims=dict(self.vapid_claims),
                ttl=message.ttl,
            )
        except PyWebPushException as e:
            status_code = _status_code(e)
            if status_code in GONE_STATUS_CODES:
                raise WebPushExpiredSubscriptionError(
                    str(e), endpoint=endpoint, status_code=status_code
                ) from e
            raise WebPushDeliveryError(str(e), status_code=status_code) from e
        except Exception as e:
            raise WebPushUnknownError(f"Unexpected error: {str(e)}") from e

        status_code = getattr(response, "status_code", None)
        logger.info(f"Push sent to {endpoint[:40]}... status={status_code}")
        return WebPushOperationResult(
            success=True,
            status_code=status_code,
            notification_status=NotificationStatus.SENT,
        )


def _status_code(error: PyWebPushException) -> Optional[int]:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)
