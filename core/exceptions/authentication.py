from core.exceptions.base import AppException


class UnauthorizedException(AppException):
    """Missing or invalid bearer credential."""

    status_code = 401
    default_error_code = "UNAUTHENTICATED"


class ForbiddenException(AppException):
    """Authenticated, but not allowed to perform the action."""

    status_code = 403
    default_error_code = "FORBIDDEN"
