from core.exceptions.base import AppException


class InvalidRequestException(AppException):
    """Malformed body or out-of-range argument."""

    status_code = 400
    default_error_code = "INVALID_ARGUMENT"


class InvalidStateException(AppException):
    """The tenant is not configured for the requested operation."""

    status_code = 400
    default_error_code = "INVALID_STATE"


class FailedPreconditionException(AppException):
    """The resource is not in a state that allows the requested transition."""

    status_code = 409
    default_error_code = "FAILED_PRECONDITION"
