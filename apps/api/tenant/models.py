from sqlalchemy import Column, Integer, String
from enum import Enum as PyEnum

from core.db.base import AbstractSQLModel, JSONType
from core.db.mixins import TimestampsMixin


class KeyStorageMode(PyEnum):
    OFF = "off"
    SLOTS = "slots"
    TAGS = "tags"


DEFAULT_SLOTS_COUNT = 100
MIN_SLOTS_COUNT = 1
MAX_SLOTS_COUNT = 999

# Fields staff must fill in when creating a ticket, unless the tenant overrides them.
DEFAULT_REQUIRED_FIELDS = {
    "plateNumber": True,
    "carColor": False,
    "carType": False,
    "carMake": False,
    "notes": False,
    "plateImage": False,
    "carImage": False,
    "tagNumber": False,
}


class Tenant(AbstractSQLModel, TimestampsMixin):
    __tablename__ = "tenants"

    slug = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(120), nullable=False)
    country = Column(String(64), nullable=True)
    currency = Column(String(8), nullable=True)

    key_storage_mode = Column(
        String(10),
        default=KeyStorageMode.OFF.value,
        server_default=KeyStorageMode.OFF.value,
        nullable=False,
    )
    key_storage_slots_count = Column(Integer, default=DEFAULT_SLOTS_COUNT, nullable=True)
    geofence = Column(JSONType, nullable=True)  # {lat, lng, radiusMeters}
    new_ticket_required = Column(JSONType, nullable=True)

    @property
    def total_slots(self) -> int:
        count = self.key_storage_slots_count or DEFAULT_SLOTS_COUNT
        return max(MIN_SLOTS_COUNT, min(MAX_SLOTS_COUNT, count))

    @property
    def required_fields(self) -> dict:
        return {**DEFAULT_REQUIRED_FIELDS, **(self.new_ticket_required or {})}
