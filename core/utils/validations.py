from typing import Optional
from uuid import UUID


def is_valid_uuid(value, version: int = 4) -> bool:
    """True for a canonical UUID string (or UUID) of the given version."""
    if isinstance(value, UUID):
        return value.version == version
    if not isinstance(value, str):
        return False
    try:
        parsed = UUID(value)
    except ValueError:
        return False
    return str(parsed) == value.lower() and parsed.version == version


def parse_uuid(value) -> Optional[UUID]:
    """Parse a path/body identifier, returning None for anything malformed."""
    if isinstance(value, UUID):
        return value
    if not is_valid_uuid(value):
        return None
    return UUID(value)
