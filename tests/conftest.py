"""
Test configuration and fixtures.

Provides:
- A file-backed SQLite database, recreated for every test
- A fake Firebase client (the bearer token is the uid) and a fake push sender
- HTTPX AsyncClient bound to the app with both fakes injected
- Small factories for tenants, staff members and tickets
"""
import os
import tempfile
import uuid
from typing import AsyncGenerator, Optional

import pytest

_DB_DIR = tempfile.mkdtemp(prefix="valet-tests-")
os.environ["APP_DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'valet.db')}"
)
os.environ["APP_CUSTOMER_BASE_URL"] = "https://valet.test"
os.environ.pop("APP_VAPID_PUBLIC_KEY", None)
os.environ.pop("APP_VAPID_PRIVATE_KEY", None)

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app import app
from apps.api.notification.dependency import get_web_push_core
from apps.api.staff.models import StaffRole, TenantUser
from apps.api.tenant.models import KeyStorageMode, Tenant
from apps.api.ticket.lifecycle import TicketStatus
from apps.api.ticket.models import PublicTicket, Ticket
from apps.api.ticket.tokens import (
    generate_public_id,
    generate_ticket_number,
    generate_token,
    hash_token,
)
from core.authentication.firebase.client import get_firebase_client
from core.authentication.firebase.models import StaffAccount, TokenCheck, VerifiedCaller
from core.db.base import Base
from core.db.core import AsyncSessionLocal, engine
from core.db.fields import utcnow
from core.notifications.webpush.schema import (
    NotificationStatus,
    WebPushMessage,
    WebPushOperationResult,
)


# =============================================================================
# Fakes
# =============================================================================


class FakeFirebaseClient:
    """Accepts any bearer token except "invalid" and uses it as the uid."""

    def __init__(self):
        self.created_users = []

    def verify_token(self, token: str) -> TokenCheck:
        if token == "invalid":
            return TokenCheck(reason="Invalid authentication token")
        return TokenCheck(caller=VerifiedCaller(uid=token))

    def create_user(self, email: str, password: str, display_name=None):
        uid = f"uid-{email}"
        self.created_users.append(uid)
        return StaffAccount(uid=uid, email=email, display_name=display_name)


class FakePushCore:
    """Records every send; raises the exception mapped to an endpoint, if any."""

    def __init__(self, failures: Optional[dict] = None):
        self.failures = failures or {}
        self.sent = []

    def send(self, message: WebPushMessage) -> WebPushOperationResult:
        self.sent.append(message)
        error = self.failures.get(message.subscription.endpoint)
        if error is not None:
            raise error
        return WebPushOperationResult(
            success=True, status_code=201, notification_status=NotificationStatus.SENT
        )

    @property
    def endpoints(self):
        return [message.subscription.endpoint for message in self.sent]


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
async def database() -> AsyncGenerator[None, None]:
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    app.state.slug_cache.clear()
    yield
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# =============================================================================
# Factories
# =============================================================================


async def create_tenant(
    session: AsyncSession,
    slug: str = "acme",
    mode: KeyStorageMode = KeyStorageMode.OFF,
    slots: int = 100,
    **fields,
) -> Tenant:
    tenant = Tenant(
        slug=slug,
        name=fields.pop("name", slug.title()),
        key_storage_mode=mode.value,
        key_storage_slots_count=slots,
        **fields,
    )
    session.add(tenant)
    await session.commit()
    await session.refresh(tenant)
    return tenant


async def create_user(
    session: AsyncSession,
    tenant: Tenant,
    uid: str,
    role: StaffRole = StaffRole.VALET,
    active: bool = True,
) -> TenantUser:
    user = TenantUser(
        tenant_id=tenant.id,
        uid=uid,
        email=f"{uid}@example.com",
        name=uid.title(),
        role=role.value,
        active=active,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def create_ticket(
    session: AsyncSession,
    tenant: Tenant,
    status: TicketStatus = TicketStatus.PARKED,
    **fields,
):
    """Insert a ticket and its public mirror directly; returns (ticket, token)."""
    token = generate_token()
    now = utcnow()
    values = dict(
        id=uuid.uuid4(),
        tenant_id=tenant.id,
        ticket_number=generate_ticket_number(),
        status=status.value,
        plate_number="KL07AB1234",
        car_meta={},
        public_id=generate_public_id(),
        token_hash=hash_token(token),
        arrived_at=now,
        parked_at=now,
        created_at=now,
        updated_at=now,
    )
    values.update(fields)
    ticket = Ticket(**values)
    session.add(ticket)
    session.add(
        PublicTicket(
            public_id=ticket.public_id,
            tenant_id=ticket.tenant_id,
            ticket_id=ticket.id,
            status=ticket.status,
            updated_at=now,
        )
    )
    await session.commit()
    await session.refresh(ticket)
    return ticket, token


def bearer(uid: str) -> dict:
    return {"Authorization": f"Bearer {uid}"}


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
async def tenant(session) -> Tenant:
    return await create_tenant(session, slug="acme")


@pytest.fixture
async def slots_tenant(session) -> Tenant:
    return await create_tenant(session, slug="acme-slots", mode=KeyStorageMode.SLOTS, slots=3)


@pytest.fixture
async def tags_tenant(session) -> Tenant:
    return await create_tenant(session, slug="acme-tags", mode=KeyStorageMode.TAGS)


@pytest.fixture
async def admin(session, tenant) -> TenantUser:
    return await create_user(session, tenant, "admin-1", role=StaffRole.ADMIN)


@pytest.fixture
async def valet(session, tenant) -> TenantUser:
    return await create_user(session, tenant, "valet-1", role=StaffRole.VALET)


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def firebase() -> FakeFirebaseClient:
    return FakeFirebaseClient()


@pytest.fixture
def push_core() -> FakePushCore:
    return FakePushCore()


@pytest.fixture
async def client(firebase, push_core) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_firebase_client] = lambda: firebase
    app.dependency_overrides[get_web_push_core] = lambda: push_core
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def make_tenant(session):
    async def factory(**kwargs) -> Tenant:
        return await create_tenant(session, **kwargs)

    return factory


@pytest.fixture
def make_user(session):
    async def factory(tenant: Tenant, uid: str, **kwargs) -> TenantUser:
        return await create_user(session, tenant, uid, **kwargs)

    return factory


@pytest.fixture
def make_ticket(session):
    async def factory(tenant: Tenant, **kwargs):
        return await create_ticket(session, tenant, **kwargs)

    return factory


@pytest.fixture
def auth():
    return bearer
