import logging
from typing import Annotated, List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from apps.api.tenant.models import KeyStorageMode, Tenant
from apps.api.ticket.lifecycle import ACTIVE_STATUSES, TicketStatus
from apps.api.ticket.models import Ticket
from apps.settings import settings
from core.architecture.service import AbstractService
from core.db.core import SessionDep
from core.db.fields import utcnow
from core.exceptions import (
    ConflictException,
    FailedPreconditionException,
    InvalidRequestException,
    InvalidStateException,
    NotFoundException,
    ResourceExhaustedException,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUS_VALUES = sorted(status.value for status in ACTIVE_STATUSES)


def normalize_tag(tag: Optional[str]) -> str:
    return (tag or "").strip()


class KeyStorageService(AbstractService):
    """
    Hands out key slots and key tags to active tickets.

    Every allocation runs under a lock on the tenant row, so two staff
    members working the same tenant are serialized. The partial unique
    indexes on ``tickets`` back this up: if a write still collides (a scan
    that went stale), an automatic slot choice is retried with a fresh scan
    and an explicit slot or tag is reported as a conflict.
    """

    DEPENDENCIES = {"session": SessionDep}

    def __init__(
        self, session: SessionDep, max_attempts: Optional[int] = None, **kwargs
    ):
        super().__init__(session=session, **kwargs)
        self.max_attempts = max(1, max_attempts or settings.SLOT_ASSIGN_MAX_ATTEMPTS)

    async def lock_tenant(self, tenant_id: UUID) -> Tenant:
        """Take the per-tenant allocation lock for the rest of the transaction."""
        tenant = await self.session.scalar(
            select(Tenant)
            .where(Tenant.id == tenant_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if tenant is None:
            raise NotFoundException("Tenant not found", error_code="TENANT_NOT_FOUND")
        return tenant

    async def list_available_slots(
        self, tenant: Tenant, exclude_ticket_id: Optional[UUID] = None
    ) -> List[int]:
        self._require_mode(tenant, KeyStorageMode.SLOTS)
        occupied = await self._occupied_slots(tenant.id, exclude_ticket_id)
        return [n for n in range(1, tenant.total_slots + 1) if n not in occupied]

    async def assign_slot(
        self,
        tenant: Tenant,
        ticket_id: UUID,
        requested_slot: Optional[int] = None,
    ) -> int:
        """
        Put a ticket's key in a slot.

        With ``requested_slot`` the slot must be in range and not held by
        another active ticket; re-assigning a ticket its own slot is a no-op.
        Without it, the lowest free slot is taken.

        Raises:
            InvalidStateException: tenant is not in slots mode
            InvalidRequestException: requested slot out of range
            NotFoundException: unknown ticket
            FailedPreconditionException: ticket already delivered
            ConflictException: requested slot held by another ticket
            ResourceExhaustedException: every slot is taken
        """
        self._require_mode(tenant, KeyStorageMode.SLOTS)
        tenant_id = tenant.id
        total_slots = tenant.total_slots
        if requested_slot is not None and not 1 <= requested_slot <= total_slots:
            raise InvalidRequestException(
                f"Slot must be between 1 and {total_slots}",
                error_code="SLOT_OUT_OF_RANGE",
            )

        attempts = 1 if requested_slot is not None else self.max_attempts
        for attempt in range(1, attempts + 1):
            await self.lock_tenant(tenant_id)
            ticket = await self._get_active_ticket(tenant_id, ticket_id)
            occupied = await self._occupied_slots(tenant_id, exclude_ticket_id=ticket.id)

            if requested_slot is not None:
                if requested_slot in occupied:
                    raise ConflictException(
                        "That slot is already in use", error_code="SLOT_IN_USE"
                    )
                slot = requested_slot
            else:
                slot = next(
                    (n for n in range(1, total_slots + 1) if n not in occupied), None
                )
                if slot is None:
                    raise ResourceExhaustedException(
                        "No slots available",
                        error_code="NO_SLOTS_AVAILABLE",
                        extra={"noSlotsAvailable": True},
                    )

            if ticket.slot_number == slot:
                return slot

            ticket.slot_number = slot
            ticket.updated_at = utcnow()
            try:
                await self.session.commit()
            except IntegrityError as e:
                await self.session.rollback()
                if requested_slot is not None:
                    raise ConflictException(
                        "That slot is already in use", error_code="SLOT_IN_USE"
                    ) from e
                logger.warning(
                    f"Slot {slot} was taken concurrently for ticket {ticket_id} "
                    f"(attempt {attempt}/{attempts})"
                )
                continue
            except StaleDataError as e:
                await self.session.rollback()
                raise ConflictException(
                    "Ticket was modified concurrently, please retry",
                    error_code="TICKET_MODIFIED",
                ) from e

            logger.info(f"Assigned slot {slot} to ticket {ticket_id}")
            return slot

        raise ConflictException(
            "Could not claim a free slot, please retry", error_code="SLOT_CONTENDED"
        )

    async def assign_tag(self, tenant: Tenant, ticket_id: UUID, tag: str) -> str:
        self._require_mode(tenant, KeyStorageMode.TAGS)
        tenant_id = tenant.id
        if not normalize_tag(tag):
            raise InvalidRequestException(
                "Tag number is required", error_code="TAG_REQUIRED"
            )

        await self.lock_tenant(tenant_id)
        ticket = await self._get_active_ticket(tenant_id, ticket_id)
        normalized = await self.claim_tag(tenant_id, ticket, tag)
        ticket.updated_at = utcnow()
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictException(
                "That tag number is already in use by another ticket",
                error_code="TAG_IN_USE",
            ) from e
        except StaleDataError as e:
            await self.session.rollback()
            raise ConflictException(
                "Ticket was modified concurrently, please retry",
                error_code="TICKET_MODIFIED",
            ) from e

        logger.info(f"Assigned tag '{normalized}' to ticket {ticket_id}")
        return normalized

    async def claim_tag(self, tenant_id: UUID, ticket: Ticket, tag: str) -> str:
        """
        Validate and set a tag on ``ticket`` without committing.

        The caller must hold the tenant lock and commit.
        """
        normalized = normalize_tag(tag)
        if not normalized:
            raise InvalidRequestException(
                "Tag number is required", error_code="TAG_REQUIRED"
            )
        holder = await self.session.scalar(
            select(Ticket.id)
            .where(
                Ticket.tenant_id == tenant_id,
                Ticket.status.in_(ACTIVE_STATUS_VALUES),
                Ticket.tag_number == normalized,
                Ticket.id != ticket.id,
            )
            .limit(1)
        )
        if holder is not None:
            raise ConflictException(
                "That tag number is already in use by another ticket",
                error_code="TAG_IN_USE",
            )
        ticket.tag_number = normalized
        return normalized

    async def _occupied_slots(
        self, tenant_id: UUID, exclude_ticket_id: Optional[UUID] = None
    ) -> Set[int]:
        query = select(Ticket.slot_number).where(
            Ticket.tenant_id == tenant_id,
            Ticket.status.in_(ACTIVE_STATUS_VALUES),
            Ticket.slot_number.is_not(None),
        )
        if exclude_ticket_id is not None:
            query = query.where(Ticket.id != exclude_ticket_id)
        return set((await self.session.scalars(query)).all())

    async def _get_active_ticket(self, tenant_id: UUID, ticket_id: UUID) -> Ticket:
        ticket = await self.session.scalar(
            select(Ticket)
            .where(Ticket.id == ticket_id, Ticket.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        if ticket is None:
            raise NotFoundException("Ticket not found", error_code="TICKET_NOT_FOUND")
        if ticket.status == TicketStatus.DELIVERED.value:
            raise FailedPreconditionException(
                "Ticket has already been delivered", error_code="TICKET_DELIVERED"
            )
        return ticket

    @staticmethod
    def _require_mode(tenant: Tenant, mode: KeyStorageMode) -> None:
        if tenant.key_storage_mode != mode.value:
            raise InvalidStateException(
                f"Key storage is not in {mode.value} mode",
                error_code="KEY_STORAGE_MODE_MISMATCH",
            )


KeyStorageServiceDependency = Annotated[
    KeyStorageService, KeyStorageService.get_dependency()
]
