from core.exceptions.base import AppException
from core.exceptions.authentication import ForbiddenException, UnauthorizedException
from core.exceptions.database import (
    ConflictException,
    NotFoundException,
    ResourceExhaustedException,
)
from core.exceptions.request import (
    FailedPreconditionException,
    InvalidRequestException,
    InvalidStateException,
)

__all__ = [
    "AppException",
    "ConflictException",
    "FailedPreconditionException",
    "ForbiddenException",
    "InvalidRequestException",
    "InvalidStateException",
    "NotFoundException",
    "ResourceExhaustedException",
    "UnauthorizedException",
]
