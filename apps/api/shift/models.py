from sqlalchemy import Column, ForeignKey, Index, String, UUID
from sqlalchemy.orm import relationship

from core.db.base import AbstractSQLModel, JSONType
from core.db.fields import TZAwareDateTime, utcnow


class Shift(AbstractSQLModel):
    """A staff member's attendance window; open while check_out_at is null."""

    __tablename__ = "shifts"
    __table_args__ = (Index("ix_shifts_tenant_check_in", "tenant_id", "check_in_at"),)

    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("tenant_users.id"), nullable=False, index=True
    )
    check_in_at = Column(TZAwareDateTime(timezone=True), default=utcnow, nullable=False)
    check_out_at = Column(TZAwareDateTime(timezone=True), nullable=True)
    check_in_location = Column(JSONType, nullable=False)  # {lat, lng, accuracy?}
    check_out_location = Column(JSONType, nullable=True)
    device_id = Column(String(128), nullable=True)

    user = relationship("TenantUser", lazy="joined")
