import logging
from typing import Annotated
from uuid import UUID

from sqlalchemy import select

from apps.api.auth.permissions import StaffAction, is_authorized
from apps.api.staff.models import TenantUser
from apps.api.tenant.cache import TenantSlugCache
from apps.api.tenant.dependency import SlugCacheDependency
from apps.api.tenant.models import Tenant
from core.architecture.service import AbstractService
from core.db.core import SessionDep
from core.exceptions import ForbiddenException, NotFoundException

logger = logging.getLogger(__name__)


class AccessControlService(AbstractService):
    """
    Resolves the tenant behind a slug and checks a caller's role in it.

    Authentication itself (bearer token -> uid) happens in the Firebase
    dependency; this service only sees verified uids.
    """

    DEPENDENCIES = {"session": SessionDep, "slug_cache": SlugCacheDependency}

    def __init__(self, session: SessionDep, slug_cache: TenantSlugCache, **kwargs):
        super().__init__(session=session, **kwargs)
        self.slug_cache = slug_cache

    async def resolve_tenant(self, slug: str) -> Tenant:
        tenant_id = self.slug_cache.get(slug)
        if tenant_id is not None:
            tenant = await self.session.get(Tenant, tenant_id)
            if tenant is not None and tenant.slug == slug:
                return tenant
            # The cached id no longer points at this slug.
            logger.info(f"Evicting stale slug cache entry for '{slug}'")
            self.slug_cache.invalidate(slug)

        tenant = await self.session.scalar(select(Tenant).where(Tenant.slug == slug))
        if tenant is None:
            raise NotFoundException("Tenant not found", error_code="TENANT_NOT_FOUND")
        self.slug_cache.set(slug, tenant.id)
        return tenant

    async def get_tenant_user(self, tenant_id: UUID, uid: str) -> TenantUser | None:
        return await self.session.scalar(
            select(TenantUser).where(
                TenantUser.tenant_id == tenant_id, TenantUser.uid == uid
            )
        )

    async def authorize(
        self, tenant: Tenant, uid: str, action: StaffAction
    ) -> TenantUser:
        user = await self.get_tenant_user(tenant.id, uid)
        if is_authorized(tenant.id, user, action):
            return user

        if user is None:
            raise ForbiddenException(
                "Not a staff member of this tenant", error_code="STAFF_NOT_FOUND"
            )
        if not user.active:
            raise ForbiddenException("Account is inactive", error_code="STAFF_INACTIVE")
        raise ForbiddenException("Admin access required", error_code="ADMIN_REQUIRED")


AccessControlServiceDependency = Annotated[
    AccessControlService, AccessControlService.get_dependency()
]
