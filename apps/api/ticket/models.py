from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, UUID
from sqlalchemy.orm import relationship
import sqlalchemy as sa

from apps.api.ticket.lifecycle import TicketStatus
from core.db.base import AbstractSQLModel, Base, JSONType
from core.db.fields import TZAwareDateTime, utcnow
from core.db.mixins import TimestampsMixin

# Rows that still hold a key slot or tag.
ACTIVE_ROW = sa.text("status != 'DELIVERED'")


class Ticket(AbstractSQLModel, TimestampsMixin):
    __tablename__ = "tickets"
    __table_args__ = (
        Index(
            "uq_tickets_active_slot",
            "tenant_id",
            "slot_number",
            unique=True,
            postgresql_where=ACTIVE_ROW,
            sqlite_where=ACTIVE_ROW,
        ),
        Index(
            "uq_tickets_active_tag",
            "tenant_id",
            "tag_number",
            unique=True,
            postgresql_where=ACTIVE_ROW,
            sqlite_where=ACTIVE_ROW,
        ),
        Index("ix_tickets_tenant_updated", "tenant_id", "updated_at"),
    )

    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    ticket_number = Column(String(16), nullable=False)
    status = Column(
        String(20),
        default=TicketStatus.PARKED.value,
        server_default=TicketStatus.PARKED.value,
        nullable=False,
        index=True,
    )
    plate_number = Column(String(32), nullable=True)
    car_meta = Column(JSONType, nullable=True)  # {color, type, make}
    notes = Column(Text, nullable=True)
    photo_urls = Column(JSONType, nullable=True)  # {plate, car}

    public_id = Column(String(16), unique=True, nullable=False)
    token_hash = Column(String(64), nullable=False)

    slot_number = Column(Integer, nullable=True)
    tag_number = Column(String(64), nullable=True)

    arrived_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    parked_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    requested_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    in_progress_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    ready_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    delivered_at = Column(TZAwareDateTime(timezone=True), nullable=True)

    assigned_to_user_id = Column(
        UUID(as_uuid=True), ForeignKey("tenant_users.id"), nullable=True
    )

    # Bumped on every UPDATE; a writer holding an older version fails.
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    public_ticket = relationship("PublicTicket", back_populates="ticket", uselist=False)


class PublicTicket(Base):
    """Customer-visible projection of a ticket, keyed by its public id."""

    __tablename__ = "public_tickets"

    public_id = Column(String(16), primary_key=True)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    ticket_id = Column(
        UUID(as_uuid=True), ForeignKey("tickets.id"), nullable=False, unique=True
    )
    status = Column(String(20), nullable=False)
    requested_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    ready_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    delivered_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    updated_at = Column(TZAwareDateTime(timezone=True), default=utcnow, nullable=False)

    ticket = relationship("Ticket", back_populates="public_ticket")

    def __repr__(self) -> str:
        return f"<PublicTicket public_id={self.public_id}>"


class Event(AbstractSQLModel):
    """Append-only audit record."""

    __tablename__ = "events"

    tenant_id = Column(
        UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True
    )
    ticket_id = Column(
        UUID(as_uuid=True), ForeignKey("tickets.id"), nullable=True, index=True
    )
    actor_user_id = Column(
        UUID(as_uuid=True), ForeignKey("tenant_users.id"), nullable=True
    )
    type = Column(String(32), nullable=False)
    at = Column(TZAwareDateTime(timezone=True), default=utcnow, nullable=False)
    meta = Column(JSONType, nullable=True)
