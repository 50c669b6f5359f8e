import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from apps.api.tenant.models import KeyStorageMode
from apps.api.ticket import service as ticket_service
from apps.api.ticket.lifecycle import TicketStatus
from apps.api.ticket.models import Event, PublicTicket, Ticket
from apps.api.ticket.schema import CreateTicketRequest
from apps.api.ticket.service import TicketService
from apps.api.ticket.tokens import hash_token
from apps.settings import settings
from core.db.core import AsyncSessionLocal
from core.exceptions import (
    ConflictException,
    FailedPreconditionException,
    ForbiddenException,
    InvalidRequestException,
    NotFoundException,
)


async def _events(session, ticket_id):
    result = await session.scalars(
        select(Event).where(Event.ticket_id == ticket_id).order_by(Event.at)
    )
    return list(result.all())


# =============================================================================
# Creation
# =============================================================================


async def test_create_ticket(session, tenant, valet):
    service = TicketService(session=session)
    created = await service.create_ticket(
        tenant,
        valet,
        CreateTicketRequest(plate_number=" KL07AB1234 ", car_color="Red", car_make=""),
    )
    ticket = created.ticket

    assert ticket.status == TicketStatus.PARKED.value
    assert ticket.plate_number == "KL07AB1234"
    assert ticket.car_meta == {"color": "Red"}
    assert ticket.arrived_at is not None and ticket.parked_at is not None
    assert ticket.token_hash == hash_token(created.token)
    assert created.token not in ticket.token_hash
    assert created.customer_url == (
        f"https://valet.test/j/acme/t/{ticket.public_id}?k={created.token}"
    )
    assert ticket.slot_number is None

    mirror = await session.get(PublicTicket, ticket.public_id)
    assert mirror.status == TicketStatus.PARKED.value
    assert mirror.ticket_id == ticket.id

    [event] = await _events(session, ticket.id)
    assert event.type == "TICKET_CREATED"
    assert event.actor_user_id == valet.id
    assert event.meta == {
        "publicId": ticket.public_id,
        "ticketNumber": ticket.ticket_number,
    }


async def test_plate_number_is_required_by_default(session, tenant, valet):
    with pytest.raises(InvalidRequestException) as exc:
        await TicketService(session=session).create_ticket(
            tenant, valet, CreateTicketRequest(plate_number="  ")
        )
    assert exc.value.message == "Plate number is required"


async def test_tenant_policy_can_require_more_fields(session, make_tenant, make_user):
    tenant = await make_tenant(
        slug="strict", new_ticket_required={"plateNumber": False, "carColor": True}
    )
    valet = await make_user(tenant, "valet-x")
    service = TicketService(session=session)

    with pytest.raises(InvalidRequestException) as exc:
        await service.create_ticket(tenant, valet, CreateTicketRequest())
    assert exc.value.message == "Car color is required"

    created = await service.create_ticket(
        tenant, valet, CreateTicketRequest(car_color="Blue")
    )
    assert created.ticket.plate_number is None


async def test_tag_required_only_in_tags_mode(session, make_tenant, make_user):
    policy = {"tagNumber": True}
    tags = await make_tenant(
        slug="tagged", mode=KeyStorageMode.TAGS, new_ticket_required=policy
    )
    plain = await make_tenant(slug="plain", new_ticket_required=policy)
    valet = await make_user(tags, "valet-x")
    service = TicketService(session=session)

    with pytest.raises(InvalidRequestException):
        await service.create_ticket(tags, valet, CreateTicketRequest(plate_number="A1"))

    created = await service.create_ticket(
        plain, valet, CreateTicketRequest(plate_number="A1")
    )
    assert created.ticket.tag_number is None


async def test_tag_is_claimed_with_the_ticket(session, tags_tenant, make_user):
    valet = await make_user(tags_tenant, "valet-t")
    service = TicketService(session=session)

    created = await service.create_ticket(
        tags_tenant, valet, CreateTicketRequest(plate_number="A1", tag_number=" K-01 ")
    )
    assert created.ticket.tag_number == "K-01"

    with pytest.raises(ConflictException):
        await service.create_ticket(
            tags_tenant, valet, CreateTicketRequest(plate_number="B2", tag_number="K-01")
        )
    rejected = await session.scalar(select(Ticket.id).where(Ticket.plate_number == "B2"))
    assert rejected is None


async def test_public_id_collision_is_not_a_tag_conflict(
    session, tenant, valet, make_ticket, monkeypatch
):
    existing, _ = await make_ticket(tenant)
    session.expunge_all()
    monkeypatch.setattr(ticket_service, "generate_public_id", lambda: existing.public_id)

    with pytest.raises(IntegrityError):
        await TicketService(session=session).create_ticket(
            tenant, valet, CreateTicketRequest(plate_number="A1")
        )


# =============================================================================
# Staff transitions
# =============================================================================


async def test_advance_status_walks_the_lifecycle(session, tenant, valet, make_ticket):
    ticket, _ = await make_ticket(tenant)
    service = TicketService(session=session)

    for step in ("REQUESTED", "IN_PROGRESS", "READY", "DELIVERED"):
        await service.advance_status(tenant, valet, ticket.id, step)

    ticket = await session.get(Ticket, ticket.id, populate_existing=True)
    assert ticket.status == "DELIVERED"
    assert ticket.assigned_to_user_id == valet.id
    assert ticket.requested_at <= ticket.in_progress_at <= ticket.ready_at
    assert ticket.ready_at <= ticket.delivered_at

    mirror = await session.get(PublicTicket, ticket.public_id, populate_existing=True)
    assert mirror.status == "DELIVERED"
    assert mirror.delivered_at == ticket.delivered_at

    events = await _events(session, ticket.id)
    assert [event.type for event in events] == [
        "REQUESTED",
        "ACCEPTED",
        "READY",
        "DELIVERED",
    ]
    assert events[1].meta == {"newStatus": "IN_PROGRESS"}
    assert all(event.actor_user_id == valet.id for event in events)


async def test_advance_status_rejects_skips(session, tenant, valet, make_ticket):
    ticket, _ = await make_ticket(tenant)
    with pytest.raises(FailedPreconditionException):
        await TicketService(session=session).advance_status(
            tenant, valet, ticket.id, "READY"
        )


async def test_advance_status_rejects_parked_target(session, tenant, valet, make_ticket):
    ticket, _ = await make_ticket(tenant)
    with pytest.raises(InvalidRequestException):
        await TicketService(session=session).advance_status(
            tenant, valet, ticket.id, "PARKED"
        )


async def test_advance_status_unknown_ticket(session, tenant, valet):
    with pytest.raises(NotFoundException):
        await TicketService(session=session).advance_status(
            tenant, valet, uuid.uuid4(), "REQUESTED"
        )


async def test_tickets_are_isolated_by_tenant(
    session, tenant, valet, make_tenant, make_ticket
):
    other = await make_tenant(slug="other")
    ticket, _ = await make_ticket(other)
    with pytest.raises(NotFoundException):
        await TicketService(session=session).advance_status(
            tenant, valet, ticket.id, "REQUESTED"
        )


async def test_concurrent_transition_is_a_conflict(session, tenant, valet, make_ticket):
    ticket, _ = await make_ticket(tenant)
    ticket_id = ticket.id

    async with AsyncSessionLocal() as other_session:
        # Loaded before the first writer commits, so it holds version 1.
        await other_session.get(Ticket, ticket_id)

        await TicketService(session=session).advance_status(
            tenant, valet, ticket_id, "REQUESTED"
        )

        with pytest.raises(ConflictException) as exc:
            await TicketService(session=other_session).advance_status(
                tenant, valet, ticket_id, "REQUESTED"
            )
        assert exc.value.error_code == "TICKET_MODIFIED"

    events = await _events(session, ticket_id)
    assert [event.type for event in events] == ["REQUESTED"]


# =============================================================================
# Customer actions
# =============================================================================


async def test_request_car(session, tenant, make_ticket):
    ticket, token = await make_ticket(tenant)
    public = await TicketService(session=session).request_car(
        tenant, ticket.public_id, token
    )
    assert public.status == "REQUESTED"
    assert public.requested_at is not None

    [event] = await _events(session, ticket.id)
    assert event.type == "REQUESTED"
    assert event.actor_user_id is None
    assert event.meta == {"publicId": ticket.public_id}


async def test_request_car_requires_matching_token(session, tenant, make_ticket):
    ticket, _ = await make_ticket(tenant)
    with pytest.raises(ForbiddenException):
        await TicketService(session=session).request_car(
            tenant, ticket.public_id, "0" * 64
        )


async def test_request_car_token_can_be_disabled(
    session, tenant, make_ticket, monkeypatch
):
    monkeypatch.setattr(settings, "ENFORCE_CUSTOMER_TOKEN", False)
    ticket, _ = await make_ticket(tenant)
    public = await TicketService(session=session).request_car(
        tenant, ticket.public_id, None
    )
    assert public.status == "REQUESTED"


async def test_request_car_only_from_parked(session, tenant, make_ticket):
    ticket, token = await make_ticket(tenant, status=TicketStatus.READY)
    with pytest.raises(FailedPreconditionException) as exc:
        await TicketService(session=session).request_car(
            tenant, ticket.public_id, token
        )
    assert exc.value.message == "Ticket is not in PARKED status"

    ticket = await session.get(Ticket, ticket.id, populate_existing=True)
    assert ticket.status == "READY"


async def test_request_car_unknown_public_id(session, tenant):
    with pytest.raises(NotFoundException):
        await TicketService(session=session).request_car(tenant, "NOPE234567", "x")


async def test_list_tickets_newest_update_first(session, tenant, valet, make_ticket):
    first, _ = await make_ticket(tenant)
    second, _ = await make_ticket(tenant)
    service = TicketService(session=session)
    await service.advance_status(tenant, valet, first.id, "REQUESTED")

    tickets = await service.list_tickets(tenant)
    assert [t.id for t in tickets] == [first.id, second.id]

    requested = await service.list_tickets(tenant, statuses=[TicketStatus.REQUESTED])
    assert [t.id for t in requested] == [first.id]

    assert len(await service.list_tickets(tenant, limit=1)) == 1
