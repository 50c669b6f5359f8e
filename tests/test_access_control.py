import uuid

import pytest

from apps.api.auth.permissions import StaffAction, is_authorized
from apps.api.auth.service import AccessControlService
from apps.api.staff.models import StaffRole, TenantUser
from apps.api.tenant.cache import TenantSlugCache
from core.exceptions import NotFoundException


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _user(tenant_id, role=StaffRole.VALET, active=True):
    return TenantUser(tenant_id=tenant_id, uid="u", role=role.value, active=active)


# =============================================================================
# Role rule
# =============================================================================


def test_is_authorized_role_rules():
    tenant_id = uuid.uuid4()
    valet = _user(tenant_id)
    manager = _user(tenant_id, role=StaffRole.MANAGER)
    admin = _user(tenant_id, role=StaffRole.ADMIN)

    assert is_authorized(tenant_id, valet, StaffAction.STAFF)
    assert not is_authorized(tenant_id, valet, StaffAction.ADMIN)
    assert is_authorized(tenant_id, manager, StaffAction.ADMIN)
    assert is_authorized(tenant_id, admin, StaffAction.ADMIN)


def test_is_authorized_rejects_missing_inactive_and_foreign_users():
    tenant_id = uuid.uuid4()
    assert not is_authorized(tenant_id, None, StaffAction.STAFF)
    assert not is_authorized(
        tenant_id, _user(tenant_id, role=StaffRole.ADMIN, active=False), StaffAction.STAFF
    )
    assert not is_authorized(tenant_id, _user(uuid.uuid4()), StaffAction.STAFF)


# =============================================================================
# Slug cache
# =============================================================================


def test_slug_cache_expires_entries():
    clock = FakeClock()
    cache = TenantSlugCache(ttl_seconds=60, clock=clock)
    tenant_id = uuid.uuid4()

    cache.set("acme", tenant_id)
    clock.now += 59
    assert cache.get("acme") == tenant_id
    clock.now += 1
    assert cache.get("acme") is None
    assert len(cache) == 0


def test_slug_cache_invalidate():
    cache = TenantSlugCache()
    cache.set("acme", uuid.uuid4())
    cache.invalidate("acme")
    assert cache.get("acme") is None


async def test_resolve_tenant_populates_cache(session, tenant):
    cache = TenantSlugCache()
    service = AccessControlService(session=session, slug_cache=cache)

    resolved = await service.resolve_tenant("acme")
    assert resolved.id == tenant.id
    assert cache.get("acme") == tenant.id


async def test_resolve_tenant_unknown_slug(session):
    service = AccessControlService(session=session, slug_cache=TenantSlugCache())
    with pytest.raises(NotFoundException) as exc:
        await service.resolve_tenant("nowhere")
    assert exc.value.error_code == "TENANT_NOT_FOUND"


async def test_resolve_tenant_evicts_vanished_tenant(session):
    cache = TenantSlugCache()
    cache.set("ghost", uuid.uuid4())
    service = AccessControlService(session=session, slug_cache=cache)

    with pytest.raises(NotFoundException):
        await service.resolve_tenant("ghost")
    assert cache.get("ghost") is None


# =============================================================================
# HTTP gate
# =============================================================================


async def test_staff_endpoint_requires_bearer(client, tenant):
    response = await client.get("/api/j/acme/staff/me")
    assert response.status_code == 401
    assert response.json()["errorCode"] == "UNAUTHENTICATED"


async def test_staff_endpoint_rejects_invalid_token(client, tenant, auth):
    response = await client.get("/api/j/acme/staff/me", headers=auth("invalid"))
    assert response.status_code == 401
    assert response.json()["errorCode"] == "INVALID_CREDENTIAL"


async def test_unknown_uid_is_forbidden(client, tenant, auth):
    response = await client.get("/api/j/acme/staff/me", headers=auth("stranger"))
    assert response.status_code == 403
    assert response.json()["errorCode"] == "STAFF_NOT_FOUND"


async def test_inactive_staff_is_forbidden(client, tenant, make_user, auth):
    await make_user(tenant, "sleepy", active=False)
    response = await client.get("/api/j/acme/staff/me", headers=auth("sleepy"))
    assert response.status_code == 403
    assert response.json()["errorCode"] == "STAFF_INACTIVE"


async def test_valet_cannot_use_admin_endpoints(client, valet, auth):
    response = await client.get("/api/j/acme/admin/employees", headers=auth("valet-1"))
    assert response.status_code == 403
    assert response.json()["errorCode"] == "ADMIN_REQUIRED"


async def test_manager_can_use_admin_endpoints(client, tenant, make_user, auth):
    await make_user(tenant, "boss", role=StaffRole.MANAGER)
    response = await client.get("/api/j/acme/admin/employees", headers=auth("boss"))
    assert response.status_code == 200


async def test_staff_of_another_tenant_is_forbidden(
    client, tenant, make_tenant, make_user, auth
):
    other = await make_tenant(slug="other")
    await make_user(other, "outsider", role=StaffRole.ADMIN)
    response = await client.get("/api/j/acme/staff/me", headers=auth("outsider"))
    assert response.status_code == 403


async def test_unknown_tenant_is_not_found(client):
    response = await client.get("/api/j/nowhere/config")
    assert response.status_code == 404
    assert response.json()["errorCode"] == "TENANT_NOT_FOUND"
