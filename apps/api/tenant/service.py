import logging
import re
from typing import Annotated, Optional

from sqlalchemy import select

from apps.api.tenant.cache import TenantSlugCache
from apps.api.tenant.dependency import SlugCacheDependency
from apps.api.tenant.models import (
    DEFAULT_SLOTS_COUNT,
    MAX_SLOTS_COUNT,
    MIN_SLOTS_COUNT,
    KeyStorageMode,
    Tenant,
)
from apps.api.tenant.schema import UpdateSettingsRequest
from core.architecture.service import AbstractService
from core.db.core import SessionDep
from core.db.fields import utcnow
from core.exceptions import ConflictException, InvalidRequestException

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{1,62}$")

# Settings keys an admin may change, as attribute names.
EDITABLE_SETTINGS = (
    "name",
    "country",
    "currency",
    "geofence",
    "key_storage_mode",
    "key_storage_slots_count",
    "new_ticket_required",
)


class TenantService(AbstractService):
    DEPENDENCIES = {"session": SessionDep, "slug_cache": SlugCacheDependency}

    def __init__(
        self,
        session: SessionDep,
        slug_cache: Optional[TenantSlugCache] = None,
        **kwargs,
    ):
        super().__init__(session=session, **kwargs)
        self.slug_cache = slug_cache

    async def create_tenant(
        self,
        slug: str,
        name: str,
        country: Optional[str] = None,
        currency: Optional[str] = None,
        key_storage_mode: str = KeyStorageMode.OFF.value,
        key_storage_slots_count: int = DEFAULT_SLOTS_COUNT,
    ) -> Tenant:
        slug = slug.strip().lower()
        if not SLUG_PATTERN.match(slug):
            raise InvalidRequestException(
                "Slug must be 2-63 lowercase letters, digits or dashes",
                error_code="INVALID_SLUG",
            )
        if key_storage_mode not in {mode.value for mode in KeyStorageMode}:
            raise InvalidRequestException(
                f"Unknown key storage mode '{key_storage_mode}'",
                error_code="INVALID_KEY_STORAGE_MODE",
            )
        if not MIN_SLOTS_COUNT <= key_storage_slots_count <= MAX_SLOTS_COUNT:
            raise InvalidRequestException(
                f"Slot count must be between {MIN_SLOTS_COUNT} and {MAX_SLOTS_COUNT}",
                error_code="INVALID_SLOTS_COUNT",
            )
        existing = await self.session.scalar(select(Tenant.id).where(Tenant.slug == slug))
        if existing is not None:
            raise ConflictException(f"Slug '{slug}' is taken", error_code="SLUG_TAKEN")

        tenant = Tenant(
            slug=slug,
            name=name,
            country=country,
            currency=currency,
            key_storage_mode=key_storage_mode,
            key_storage_slots_count=key_storage_slots_count,
        )
        self.session.add(tenant)
        await self.session.commit()
        await self.session.refresh(tenant)
        logger.info(f"Created tenant '{slug}' ({tenant.id})")
        return tenant

    async def update_settings(
        self, tenant: Tenant, changes: UpdateSettingsRequest
    ) -> Tenant:
        """
        Apply the keys present in ``changes``. Drops the tenant's slug cache
        entry so the next request reloads it.
        """
        provided = changes.model_fields_set & set(EDITABLE_SETTINGS)
        for field in provided:
            value = getattr(changes, field)
            if field == "name" and value is None:
                raise InvalidRequestException("Name cannot be empty")
            if field == "key_storage_mode":
                value = (value or KeyStorageMode.OFF).value
            elif field == "geofence" and value is not None:
                value = value.model_dump(by_alias=True)
            elif field == "new_ticket_required" and value is not None:
                value = value.model_dump(by_alias=True, exclude_none=True)
            setattr(tenant, field, value)
        tenant.updated_at = utcnow()

        await self.session.commit()
        await self.session.refresh(tenant)
        if self.slug_cache is not None:
            self.slug_cache.invalidate(tenant.slug)
        logger.info(f"Updated settings {sorted(provided)} for tenant '{tenant.slug}'")
        return tenant


TenantServiceDependency = Annotated[TenantService, TenantService.get_dependency()]
