from sqlalchemy import Boolean, Column, ForeignKey, String, UUID, UniqueConstraint
from enum import Enum as PyEnum

from core.db.base import AbstractSQLModel
from core.db.mixins import TimestampsMixin


class StaffRole(PyEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    VALET = "valet"


class TenantUser(AbstractSQLModel, TimestampsMixin):
    __tablename__ = "tenant_users"
    __table_args__ = (UniqueConstraint("tenant_id", "uid", name="uq_tenant_users_uid"),)

    tenant_id = Column(
        UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True
    )
    uid = Column(String(128), nullable=False)  # Firebase UID
    email = Column(String(120), nullable=True)
    name = Column(String(120), nullable=True)
    role = Column(
        String(20),
        default=StaffRole.VALET.value,
        server_default=StaffRole.VALET.value,
        nullable=False,
    )
    active = Column(Boolean, default=True, server_default="1", nullable=False)
