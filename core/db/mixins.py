from sqlalchemy import Column
from sqlalchemy.orm import declared_attr

from core.db.fields import TZAwareDateTime, utcnow


class TimestampsMixin:
    @declared_attr
    def created_at(cls):
        return Column(TZAwareDateTime(timezone=True), default=utcnow, nullable=False)

    @declared_attr
    def updated_at(cls):
        return Column(
            TZAwareDateTime(timezone=True),
            default=utcnow,
            onupdate=utcnow,
            nullable=False,
        )
