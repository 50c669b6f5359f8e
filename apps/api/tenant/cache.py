import threading
import time
from typing import Callable, Dict, Optional, Tuple
from uuid import UUID


class TenantSlugCache:
    """
    Time-bounded slug -> tenant id lookup cache.

    Entries expire ``ttl_seconds`` after they were stored. The cache only ever
    holds ids, never tenant rows, so a hit still has to be loaded from the
    database and a stale hit is detected there. One instance lives on
    ``app.state`` and is handed to request handling through a dependency.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[UUID, float]] = {}
        self._lock = threading.Lock()

    def get(self, slug: str) -> Optional[UUID]:
        with self._lock:
            entry = self._entries.get(slug)
            if entry is None:
                return None
            tenant_id, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[slug]
                return None
            return tenant_id

    def set(self, slug: str, tenant_id: UUID) -> None:
        with self._lock:
            self._entries[slug] = (tenant_id, self._clock() + self.ttl_seconds)

    def invalidate(self, slug: str) -> None:
        with self._lock:
            self._entries.pop(slug, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
