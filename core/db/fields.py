from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator


class TZAwareDateTime(TypeDecorator):
    """
    DateTime column that always hands back timezone-aware UTC values.

    PostgreSQL keeps the offset natively; SQLite drops it, so naive values
    coming back from the driver are assumed to be UTC.
    """

    impl = DateTime
    cache_ok = True

    def __init__(self, timezone: bool = True, **kwargs):
        super().__init__(timezone=timezone, **kwargs)

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
