from sqlalchemy import UUID, BigInteger, Column, ForeignKey, String, UniqueConstraint

from core.db.base import AbstractSQLModel
from core.db.mixins import TimestampsMixin


class PushSubscription(AbstractSQLModel, TimestampsMixin):
    """
    A browser push subscription registered by a customer for one ticket.
    One row per endpoint; re-subscribing replaces the keys.
    """

    __tablename__ = "push_subscriptions"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "public_id", "endpoint", name="uq_push_subscriptions_endpoint"
        ),
    )

    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    public_id = Column(String(16), nullable=False, index=True)
    endpoint = Column(String(2048), nullable=False)
    p256dh = Column(String(255), nullable=False)
    auth = Column(String(255), nullable=False)
    expiration_time = Column(BigInteger, nullable=True)  # epoch millis, from the browser
