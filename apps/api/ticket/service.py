import logging
import uuid
from dataclasses import dataclass
from typing import Annotated, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from apps.api.key_storage.service import (
    KeyStorageService,
    KeyStorageServiceDependency,
    normalize_tag,
)
from apps.api.notification.tasks import ReadyNotifier, ReadyNotifierDependency
from apps.api.staff.models import TenantUser
from apps.api.tenant.models import KeyStorageMode, Tenant
from apps.api.ticket.lifecycle import (
    PUBLIC_TIMESTAMP_FIELDS,
    STATUS_EVENT_TYPES,
    STATUS_TIMESTAMP_FIELDS,
    EventType,
    TicketStatus,
    check_transition,
    parse_staff_target,
)
from apps.api.ticket.models import Event, PublicTicket, Ticket
from apps.api.ticket.schema import CreateTicketRequest
from apps.api.ticket.tokens import (
    generate_public_id,
    generate_ticket_number,
    generate_token,
    hash_token,
    token_matches,
)
from apps.settings import settings
from core.architecture.service import AbstractService
from core.db.core import SessionDep
from core.db.fields import utcnow
from core.exceptions import (
    ConflictException,
    FailedPreconditionException,
    ForbiddenException,
    InvalidRequestException,
    NotFoundException,
    ResourceExhaustedException,
)
from core.fastapi.response.pagination import clamp_limit

logger = logging.getLogger(__name__)

# (policy key, request attribute, message)
REQUIRED_FIELD_CHECKS = (
    ("plateNumber", "plate_number", "Plate number is required"),
    ("carColor", "car_color", "Car color is required"),
    ("carType", "car_type", "Car type is required"),
    ("carMake", "car_make", "Car brand (make) is required"),
    ("notes", "notes", "Notes are required"),
    ("plateImage", "plate_image_url", "Plate image is required"),
    ("carImage", "car_image_url", "Car image is required"),
)


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


@dataclass
class CreatedTicket:
    ticket: Ticket
    token: str
    customer_url: str
    no_slots_available: bool = False


def customer_url(slug: str, public_id: str, token: str) -> str:
    base_url = settings.CUSTOMER_BASE_URL.rstrip("/")
    return f"{base_url}/j/{slug}/t/{public_id}?k={token}"


class TicketService(AbstractService):
    """
    Ticket lifecycle: creation, staff status transitions and the customer
    "request car" action.

    Every write touches the ticket, its public mirror and the event log in
    one transaction. The ticket's ``version`` column turns a concurrent
    write to the same ticket into a ``ConflictException`` instead of a lost
    update.
    """

    DEPENDENCIES = {
        "session": SessionDep,
        "key_storage": KeyStorageServiceDependency,
        "ready_notifier": ReadyNotifierDependency,
    }

    def __init__(
        self,
        session: SessionDep,
        key_storage: Optional[KeyStorageService] = None,
        ready_notifier: Optional[ReadyNotifier] = None,
        **kwargs,
    ):
        super().__init__(session=session, **kwargs)
        self.key_storage = key_storage or KeyStorageService(session=session)
        self.ready_notifier = ready_notifier

    async def create_ticket(
        self,
        tenant: Tenant,
        actor: Optional[TenantUser],
        data: CreateTicketRequest,
    ) -> CreatedTicket:
        """
        Create a PARKED ticket and return it with its one-time customer token.

        In tags mode a supplied tag is claimed in the same transaction; in
        slots mode the lowest free slot is assigned right after, and running
        out of slots is reported rather than raised.

        Raises:
            InvalidRequestException: a field the tenant requires is missing
            ConflictException: the tag is held by another active ticket
        """
        tenant_id = tenant.id
        slug = tenant.slug
        mode = tenant.key_storage_mode
        actor_id = actor.id if actor else None
        self._check_required_fields(tenant, data)

        now = utcnow()
        token = generate_token()
        public_id = generate_public_id()
        ticket_number = generate_ticket_number()
        car_meta = {
            key: value
            for key, value in (
                ("color", _clean(data.car_color)),
                ("type", _clean(data.car_type)),
                ("make", _clean(data.car_make)),
            )
            if value
        }
        photo_urls = None
        if data.plate_image_url or data.car_image_url:
            photo_urls = {"plate": data.plate_image_url, "car": data.car_image_url}

        ticket = Ticket(
            id=uuid.uuid4(),
            tenant_id=tenant_id,
            ticket_number=ticket_number,
            status=TicketStatus.PARKED.value,
            plate_number=_clean(data.plate_number),
            car_meta=car_meta,
            notes=_clean(data.notes),
            photo_urls=photo_urls,
            public_id=public_id,
            token_hash=hash_token(token),
            arrived_at=now,
            parked_at=now,
            created_at=now,
            updated_at=now,
        )

        tag_claimed = False
        if mode == KeyStorageMode.TAGS.value and normalize_tag(data.tag_number):
            await self.key_storage.lock_tenant(tenant_id)
            await self.key_storage.claim_tag(tenant_id, ticket, data.tag_number)
            tag_claimed = True

        self.session.add(ticket)
        self.session.add(
            PublicTicket(
                public_id=public_id,
                tenant_id=tenant_id,
                ticket_id=ticket.id,
                status=TicketStatus.PARKED.value,
                updated_at=now,
            )
        )
        self.session.add(
            Event(
                tenant_id=tenant_id,
                ticket_id=ticket.id,
                actor_user_id=actor_id,
                type=EventType.TICKET_CREATED.value,
                at=now,
                meta={"publicId": public_id, "ticketNumber": ticket_number},
            )
        )
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if not tag_claimed:
                raise
            raise ConflictException(
                "That tag number is already in use by another ticket",
                error_code="TAG_IN_USE",
            ) from e
        logger.info(f"Created ticket {ticket_number} ({public_id})")

        created = CreatedTicket(
            ticket=ticket,
            token=token,
            customer_url=customer_url(slug, public_id, token),
        )
        if mode == KeyStorageMode.SLOTS.value:
            try:
                await self.key_storage.assign_slot(tenant, ticket.id)
            except ResourceExhaustedException:
                logger.info(f"No free slot for ticket {ticket_number}")
                created.no_slots_available = True
            except ConflictException as e:
                # The ticket exists; staff can assign a slot from the queue.
                logger.warning(f"Slot assignment for {ticket_number} failed: {e}")
            await self.session.refresh(ticket)
        return created

    async def advance_status(
        self,
        tenant: Tenant,
        actor: TenantUser,
        ticket_id: UUID,
        new_status: str,
    ) -> Ticket:
        """
        Move a ticket one step forward on behalf of a staff member.

        Raises:
            InvalidRequestException: target is not REQUESTED, IN_PROGRESS, READY or DELIVERED
            NotFoundException: no such ticket in this tenant
            FailedPreconditionException: target is not the next status
            ConflictException: someone else changed the ticket meanwhile
        """
        target = parse_staff_target(new_status)
        tenant_id = tenant.id
        ticket = await self._get_ticket(tenant_id, ticket_id)
        check_transition(ticket.status, target)

        now = utcnow()
        ticket.status = target.value
        ticket.updated_at = now
        ticket.assigned_to_user_id = actor.id
        setattr(ticket, STATUS_TIMESTAMP_FIELDS[target], now)
        await self._mirror(ticket)
        self.session.add(
            Event(
                tenant_id=tenant_id,
                ticket_id=ticket.id,
                actor_user_id=actor.id,
                type=STATUS_EVENT_TYPES[target].value,
                at=now,
                meta={"newStatus": target.value},
            )
        )
        await self._commit_transition(ticket_id)
        logger.info(f"Ticket {ticket.ticket_number} moved to {target.value}")

        if target is TicketStatus.READY and self.ready_notifier is not None:
            self.ready_notifier.schedule(tenant_id, ticket.public_id)
        return ticket

    async def request_car(
        self, tenant: Tenant, public_id: str, token: Optional[str]
    ) -> PublicTicket:
        """
        Customer action: PARKED -> REQUESTED.

        Raises:
            NotFoundException: unknown public id
            ForbiddenException: token does not match (when enforced)
            FailedPreconditionException: ticket is not PARKED
        """
        tenant_id = tenant.id
        public_ticket = await self._get_public_ticket(tenant_id, public_id)
        ticket = await self._get_ticket(tenant_id, public_ticket.ticket_id)
        if settings.ENFORCE_CUSTOMER_TOKEN:
            self._verify_token(ticket, token)
        if ticket.status != TicketStatus.PARKED.value:
            raise FailedPreconditionException(
                "Ticket is not in PARKED status", error_code="NOT_PARKED"
            )

        now = utcnow()
        ticket.status = TicketStatus.REQUESTED.value
        ticket.requested_at = now
        ticket.updated_at = now
        await self._mirror(ticket, public_ticket)
        self.session.add(
            Event(
                tenant_id=tenant_id,
                ticket_id=ticket.id,
                type=EventType.REQUESTED.value,
                at=now,
                meta={"publicId": public_id},
            )
        )
        await self._commit_transition(ticket.id)
        logger.info(f"Customer requested car for ticket {public_id}")
        return public_ticket

    async def get_public_ticket(
        self, tenant: Tenant, public_id: str, token: Optional[str]
    ) -> PublicTicket:
        public_ticket = await self._get_public_ticket(tenant.id, public_id)
        token_hash = await self.session.scalar(
            select(Ticket.token_hash).where(Ticket.id == public_ticket.ticket_id)
        )
        if not token_matches(token, token_hash):
            raise ForbiddenException("Invalid token", error_code="INVALID_TOKEN")
        return public_ticket

    async def get_ticket(self, tenant: Tenant, ticket_id: UUID) -> Ticket:
        return await self._get_ticket(tenant.id, ticket_id)

    async def list_tickets(
        self,
        tenant: Tenant,
        statuses: Optional[Iterable[TicketStatus]] = None,
        limit: int = 50,
    ) -> List[Ticket]:
        query = select(Ticket).where(Ticket.tenant_id == tenant.id)
        if statuses:
            query = query.where(
                Ticket.status.in_([TicketStatus(s).value for s in statuses])
            )
        query = query.order_by(Ticket.updated_at.desc()).limit(clamp_limit(limit))
        result = await self.session.scalars(query)
        return list(result.all())

    def _check_required_fields(self, tenant: Tenant, data: CreateTicketRequest) -> None:
        required = tenant.required_fields
        for policy_key, attribute, message in REQUIRED_FIELD_CHECKS:
            if required.get(policy_key) and not _clean(getattr(data, attribute)):
                raise InvalidRequestException(message, error_code="FIELD_REQUIRED")
        if (
            tenant.key_storage_mode == KeyStorageMode.TAGS.value
            and required.get("tagNumber")
            and not normalize_tag(data.tag_number)
        ):
            raise InvalidRequestException(
                "Tag number is required when key storage is in Tags mode",
                error_code="FIELD_REQUIRED",
            )

    async def _get_ticket(self, tenant_id: UUID, ticket_id: UUID) -> Ticket:
        ticket = await self.session.scalar(
            select(Ticket).where(Ticket.id == ticket_id, Ticket.tenant_id == tenant_id)
        )
        if ticket is None:
            raise NotFoundException("Ticket not found", error_code="TICKET_NOT_FOUND")
        return ticket

    async def _get_public_ticket(self, tenant_id: UUID, public_id: str) -> PublicTicket:
        public_ticket = await self.session.scalar(
            select(PublicTicket).where(
                PublicTicket.public_id == public_id,
                PublicTicket.tenant_id == tenant_id,
            )
        )
        if public_ticket is None:
            raise NotFoundException("Ticket not found", error_code="TICKET_NOT_FOUND")
        return public_ticket

    async def _mirror(
        self, ticket: Ticket, public_ticket: Optional[PublicTicket] = None
    ) -> None:
        if public_ticket is None:
            public_ticket = await self._get_public_ticket(
                ticket.tenant_id, ticket.public_id
            )
        public_ticket.status = ticket.status
        public_ticket.updated_at = ticket.updated_at
        for field in PUBLIC_TIMESTAMP_FIELDS:
            setattr(public_ticket, field, getattr(ticket, field))

    async def _commit_transition(self, ticket_id: UUID) -> None:
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            logger.warning(f"Concurrent update on ticket {ticket_id}")
            raise ConflictException(
                "Ticket was modified concurrently, please retry",
                error_code="TICKET_MODIFIED",
            ) from e

    @staticmethod
    def _verify_token(ticket: Ticket, token: Optional[str]) -> None:
        if not token_matches(token, ticket.token_hash):
            raise ForbiddenException("Invalid token", error_code="INVALID_TOKEN")


TicketServiceDependency = Annotated[TicketService, TicketService.get_dependency()]
