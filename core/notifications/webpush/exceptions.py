from typing import Optional


class WebPushException(Exception):
    """Base exception for Web Push delivery."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_message = message


class WebPushExpiredSubscriptionError(WebPushException):
    """The push service no longer knows the endpoint (404/410)."""

    def __init__(self, message: str, endpoint: str, status_code: Optional[int] = None):
        super().__init__(message, status_code)
        self.endpoint = endpoint


class WebPushDeliveryError(WebPushException):
    """The push service rejected the message for any other reason."""


class WebPushUnknownError(WebPushException):
    """Raised for any other unexpected error while sending."""
