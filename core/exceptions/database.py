from core.exceptions.base import AppException


class NotFoundException(AppException):
    status_code = 404
    default_error_code = "NOT_FOUND"


class ConflictException(AppException):
    """A unique resource is already held, or a row changed underneath us."""

    status_code = 409
    default_error_code = "CONFLICT"


class ResourceExhaustedException(AppException):
    status_code = 409
    default_error_code = "RESOURCE_EXHAUSTED"
