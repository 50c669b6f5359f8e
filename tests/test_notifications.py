import json
from types import SimpleNamespace

import pytest
from pywebpush import WebPushException as PyWebPushException
from sqlalchemy import select

from apps.api.notification.models import PushSubscription
from apps.api.notification.schema import PushSubscriptionIn, SubscriptionKeysIn
from apps.api.notification.service import NotificationService
from apps.api.ticket.lifecycle import TicketStatus
from core.exceptions import ForbiddenException, NotFoundException
from core.notifications.webpush import core as webpush_core
from core.notifications.webpush.core import WebPushCore
from core.notifications.webpush.exceptions import (
    WebPushDeliveryError,
    WebPushExpiredSubscriptionError,
    WebPushUnknownError,
)
from core.notifications.webpush.schema import (
    SubscriptionInfo,
    SubscriptionKeys,
    WebPushMessage,
    WebPushNotification,
)


def _subscription(endpoint: str, p256dh: str = "p256dh-key") -> PushSubscriptionIn:
    return PushSubscriptionIn(
        endpoint=endpoint, keys=SubscriptionKeysIn(p256dh=p256dh, auth="auth-secret")
    )


async def _endpoints(session, public_id):
    result = await session.scalars(
        select(PushSubscription.endpoint)
        .where(PushSubscription.public_id == public_id)
        .order_by(PushSubscription.endpoint)
    )
    return list(result.all())


# =============================================================================
# Subscriptions
# =============================================================================


async def test_subscribe_requires_valid_token(session, tenant, make_ticket):
    ticket, _ = await make_ticket(tenant)
    service = NotificationService(session=session)

    with pytest.raises(ForbiddenException):
        await service.subscribe(tenant, ticket.public_id, "bad", _subscription("https://push/a"))
    with pytest.raises(NotFoundException):
        await service.subscribe(tenant, "NOPE234567", "bad", _subscription("https://push/a"))


async def test_subscribe_upserts_by_endpoint(session, tenant, make_ticket):
    ticket, token = await make_ticket(tenant)
    service = NotificationService(session=session)

    await service.subscribe(tenant, ticket.public_id, token, _subscription("https://push/a"))
    await service.subscribe(
        tenant, ticket.public_id, token, _subscription("https://push/a", p256dh="rotated")
    )
    await service.subscribe(tenant, ticket.public_id, token, _subscription("https://push/b"))

    subscriptions = await service.list_subscriptions(tenant.id, ticket.public_id)
    assert sorted(s.endpoint for s in subscriptions) == ["https://push/a", "https://push/b"]
    rotated = next(s for s in subscriptions if s.endpoint == "https://push/a")
    assert rotated.p256dh == "rotated"


# =============================================================================
# Dispatch
# =============================================================================


async def test_notify_ready_sends_once_per_subscription(
    session, tenant, make_ticket, push_core
):
    ticket, token = await make_ticket(tenant)
    service = NotificationService(session=session, push_core=push_core)
    for endpoint in ("https://push/a", "https://push/b"):
        await service.subscribe(tenant, ticket.public_id, token, _subscription(endpoint))

    sent = await service.notify_ready(tenant.id, ticket.public_id)

    assert sent == 2
    assert sorted(push_core.endpoints) == ["https://push/a", "https://push/b"]
    notification = push_core.sent[0].notification
    assert notification.title == "Car ready"
    assert notification.body == "Your car is ready for pickup."
    assert notification.tag == f"valet-ready-{ticket.public_id}"


async def test_notify_ready_isolates_failures_and_keeps_subscriptions(
    session, tenant, make_ticket, push_core
):
    ticket, token = await make_ticket(tenant)
    push_core.failures.update(
        {
            "https://push/gone": WebPushExpiredSubscriptionError(
                "gone", endpoint="https://push/gone", status_code=410
            ),
            "https://push/broken": WebPushDeliveryError("nope", status_code=500),
            "https://push/weird": RuntimeError("boom"),
        }
    )
    service = NotificationService(session=session, push_core=push_core)
    endpoints = ["https://push/ok", "https://push/gone", "https://push/broken", "https://push/weird"]
    for endpoint in endpoints:
        await service.subscribe(tenant, ticket.public_id, token, _subscription(endpoint))

    sent = await service.notify_ready(tenant.id, ticket.public_id)

    assert sent == 1
    assert sorted(push_core.endpoints) == sorted(endpoints)
    assert await _endpoints(session, ticket.public_id) == sorted(endpoints)


async def test_notify_ready_keeps_a_gone_endpoint(session, tenant, make_ticket, push_core):
    ticket, token = await make_ticket(tenant)
    push_core.failures["https://push/gone"] = WebPushExpiredSubscriptionError(
        "gone", endpoint="https://push/gone", status_code=404
    )
    service = NotificationService(session=session, push_core=push_core)
    await service.subscribe(tenant, ticket.public_id, token, _subscription("https://push/gone"))

    assert await service.notify_ready(tenant.id, ticket.public_id) == 0
    assert await service.notify_ready(tenant.id, ticket.public_id) == 0

    assert push_core.endpoints == ["https://push/gone", "https://push/gone"]
    assert await _endpoints(session, ticket.public_id) == ["https://push/gone"]


async def test_notify_ready_forwards_expiration_time(session, tenant, make_ticket, push_core):
    ticket, token = await make_ticket(tenant)
    subscription = PushSubscriptionIn(
        endpoint="https://push/a",
        expiration_time=1718000000000,
        keys=SubscriptionKeysIn(p256dh="p256dh-key", auth="auth-secret"),
    )
    service = NotificationService(session=session, push_core=push_core)
    await service.subscribe(tenant, ticket.public_id, token, subscription)

    await service.notify_ready(tenant.id, ticket.public_id)

    [message] = push_core.sent
    assert message.subscription.expiration_time == 1718000000000


async def test_notify_ready_without_push_configured(session, tenant, make_ticket):
    ticket, token = await make_ticket(tenant)
    service = NotificationService(session=session, push_core=None)
    await service.subscribe(tenant, ticket.public_id, token, _subscription("https://push/a"))

    assert await service.notify_ready(tenant.id, ticket.public_id) == 0


async def test_notify_ready_without_subscriptions(session, tenant, make_ticket, push_core):
    ticket, _ = await make_ticket(tenant)
    service = NotificationService(session=session, push_core=push_core)
    assert await service.notify_ready(tenant.id, ticket.public_id) == 0
    assert push_core.sent == []


# =============================================================================
# HTTP
# =============================================================================


async def test_ready_transition_pushes_to_subscribers(
    client, tenant, valet, make_ticket, push_core, auth
):
    ticket, token = await make_ticket(tenant, status=TicketStatus.IN_PROGRESS)

    response = await client.post(
        "/api/j/acme/push-subscribe",
        json={
            "publicId": ticket.public_id,
            "token": token,
            "subscription": {
                "endpoint": "https://push/a",
                "expirationTime": None,
                "keys": {"p256dh": "p256dh-key", "auth": "auth-secret"},
            },
        },
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = await client.post(
        "/api/j/acme/staff/update-status",
        json={"ticketId": str(ticket.id), "newStatus": "READY"},
        headers=auth("valet-1"),
    )
    assert response.status_code == 200
    assert push_core.endpoints == ["https://push/a"]


async def test_push_failure_does_not_fail_the_transition(
    client, tenant, valet, make_ticket, push_core, auth
):
    ticket, token = await make_ticket(tenant, status=TicketStatus.IN_PROGRESS)
    push_core.failures["https://push/a"] = WebPushDeliveryError("down", status_code=503)

    await client.post(
        "/api/j/acme/push-subscribe",
        json={
            "publicId": ticket.public_id,
            "token": token,
            "subscription": {
                "endpoint": "https://push/a",
                "keys": {"p256dh": "p256dh-key", "auth": "auth-secret"},
            },
        },
    )
    response = await client.post(
        "/api/j/acme/staff/update-status",
        json={"ticketId": str(ticket.id), "newStatus": "READY"},
        headers=auth("valet-1"),
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}


async def test_push_subscribe_rejects_bad_token(client, tenant, make_ticket):
    ticket, _ = await make_ticket(tenant)
    response = await client.post(
        "/api/j/acme/push-subscribe",
        json={
            "publicId": ticket.public_id,
            "token": "nope",
            "subscription": {
                "endpoint": "https://push/a",
                "keys": {"p256dh": "p256dh-key", "auth": "auth-secret"},
            },
        },
    )
    assert response.status_code == 403


# =============================================================================
# Web Push core
# =============================================================================


def _message() -> WebPushMessage:
    return WebPushMessage(
        subscription=SubscriptionInfo(
            endpoint="https://push/a",
            expiration_time=1718000000000,
            keys=SubscriptionKeys(p256dh="p256dh-key", auth="auth-secret"),
        ),
        notification=WebPushNotification(title="Car ready", body="Go", tag="t"),
        ttl=120,
    )


def test_webpush_core_signs_and_sends(monkeypatch):
    calls = []

    def fake_webpush(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(status_code=201)

    monkeypatch.setattr(webpush_core, "webpush", fake_webpush)
    result = WebPushCore("private-key", "mailto:ops@example.com").send(_message())

    assert result.success and result.status_code == 201
    [call] = calls
    assert call["vapid_private_key"] == "private-key"
    assert call["vapid_claims"] == {"sub": "mailto:ops@example.com"}
    assert call["ttl"] == 120
    assert json.loads(call["data"]) == {"title": "Car ready", "body": "Go", "tag": "t"}
    assert call["subscription_info"]["endpoint"] == "https://push/a"
    assert call["subscription_info"]["expirationTime"] == 1718000000000


@pytest.mark.parametrize("status_code", [404, 410])
def test_webpush_core_reports_gone_endpoints(monkeypatch, status_code):
    def fake_webpush(**kwargs):
        raise PyWebPushException(
            "Push failed", response=SimpleNamespace(status_code=status_code, text="")
        )

    monkeypatch.setattr(webpush_core, "webpush", fake_webpush)
    with pytest.raises(WebPushExpiredSubscriptionError) as exc:
        WebPushCore("private-key", "mailto:ops@example.com").send(_message())
    assert exc.value.endpoint == "https://push/a"


def test_webpush_core_maps_other_failures(monkeypatch):
    def rejected(**kwargs):
        raise PyWebPushException(
            "Push failed", response=SimpleNamespace(status_code=429, text="")
        )

    monkeypatch.setattr(webpush_core, "webpush", rejected)
    with pytest.raises(WebPushDeliveryError) as exc:
        WebPushCore("private-key", "mailto:ops@example.com").send(_message())
    assert exc.value.status_code == 429

    def broken(**kwargs):
        raise ValueError("bad key")

    monkeypatch.setattr(webpush_core, "webpush", broken)
    with pytest.raises(WebPushUnknownError):
        WebPushCore("private-key", "mailto:ops@example.com").send(_message())
