"""
Ticket status machine.

Statuses move strictly forward, one step at a time::

    PARKED -> REQUESTED -> IN_PROGRESS -> READY -> DELIVERED

``PARKED`` is only ever an initial state. Staff may target any of the other
four, the customer "request car" action may only take ``PARKED`` to
``REQUESTED``. Event names follow the status names except for
``IN_PROGRESS``, which is audited as ``ACCEPTED``.
"""

from enum import Enum
from typing import Optional

from core.exceptions import FailedPreconditionException, InvalidRequestException


class TicketStatus(str, Enum):
    PARKED = "PARKED"
    REQUESTED = "REQUESTED"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    DELIVERED = "DELIVERED"


class EventType(str, Enum):
    TICKET_CREATED = "TICKET_CREATED"
    REQUESTED = "REQUESTED"
    ACCEPTED = "ACCEPTED"
    READY = "READY"
    DELIVERED = "DELIVERED"
    SHIFT_CHECK_IN = "SHIFT_CHECK_IN"
    SHIFT_CHECK_OUT = "SHIFT_CHECK_OUT"


STATUS_ORDER = (
    TicketStatus.PARKED,
    TicketStatus.REQUESTED,
    TicketStatus.IN_PROGRESS,
    TicketStatus.READY,
    TicketStatus.DELIVERED,
)

ACTIVE_STATUSES = frozenset(STATUS_ORDER[:-1])

STAFF_TRANSITION_TARGETS = frozenset(
    {
        TicketStatus.REQUESTED,
        TicketStatus.IN_PROGRESS,
        TicketStatus.READY,
        TicketStatus.DELIVERED,
    }
)

STATUS_EVENT_TYPES = {
    TicketStatus.REQUESTED: EventType.REQUESTED,
    TicketStatus.IN_PROGRESS: EventType.ACCEPTED,
    TicketStatus.READY: EventType.READY,
    TicketStatus.DELIVERED: EventType.DELIVERED,
}

STATUS_TIMESTAMP_FIELDS = {
    TicketStatus.REQUESTED: "requested_at",
    TicketStatus.IN_PROGRESS: "in_progress_at",
    TicketStatus.READY: "ready_at",
    TicketStatus.DELIVERED: "delivered_at",
}

# Timestamps copied onto the customer-facing mirror.
PUBLIC_TIMESTAMP_FIELDS = ("requested_at", "ready_at", "delivered_at")


def next_status(status: TicketStatus) -> Optional[TicketStatus]:
    index = STATUS_ORDER.index(TicketStatus(status))
    if index + 1 < len(STATUS_ORDER):
        return STATUS_ORDER[index + 1]
    return None


def parse_staff_target(value: str) -> TicketStatus:
    try:
        target = TicketStatus(value)
    except ValueError:
        target = None
    if target not in STAFF_TRANSITION_TARGETS:
        raise InvalidRequestException(
            "Invalid newStatus", error_code="INVALID_STATUS"
        )
    return target


def check_transition(current: str, target: TicketStatus) -> None:
    """Raise unless ``target`` is the immediate successor of ``current``."""
    if next_status(TicketStatus(current)) != target:
        raise FailedPreconditionException(
            f"Cannot move ticket from {current} to {target.value}",
            error_code="INVALID_TRANSITION",
        )
