"""Per-request values stamped onto log records by core.logging."""

from contextvars import ContextVar
import uuid

_tenant_slug: ContextVar[str | None] = ContextVar("tenant_slug", default=None)
_staff_user_id: ContextVar[uuid.UUID | None] = ContextVar(
    "staff_user_id", default=None
)


def bind_tenant(slug: str | None) -> None:
    _tenant_slug.set(slug)


def bind_staff_user(user_id: uuid.UUID | None) -> None:
    _staff_user_id.set(user_id)


def request_log_context() -> dict[str, str]:
    return {
        "tenant": _tenant_slug.get() or "-",
        "user_id": str(_staff_user_id.get() or "-"),
    }
