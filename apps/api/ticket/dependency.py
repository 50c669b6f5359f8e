from typing import Annotated
from uuid import UUID
from fastapi import Depends

from core.exceptions import NotFoundException
from core.utils.validations import parse_uuid


def ticket_id_or_404(value: str) -> UUID:
    # Malformed ids cannot match any ticket.
    ticket_id = parse_uuid(value)
    if ticket_id is None:
        raise NotFoundException("Ticket not found", error_code="TICKET_NOT_FOUND")
    return ticket_id


def get_ticket_id(ticket_id: str) -> UUID:
    return ticket_id_or_404(ticket_id)


TicketIdPath = Annotated[UUID, Depends(get_ticket_id)]
