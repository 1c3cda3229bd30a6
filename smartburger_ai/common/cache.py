"""In-memory TTL cache for stale-tolerant reads.

Only data that may be a few minutes old without harm belongs here (best
sellers, customer profiles). Stock and catalog reads never go through it.
"""

import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


class TTLCache:
    """Key/value store whose entries expire after a per-entry TTL (seconds)."""

    def __init__(
        self,
        *,
        default_ttl: float = 300.0,
        max_entries: int = 1024,
        clock: Clock = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = self._clock() + (self._default_ttl if ttl is None else ttl)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict()
            self._entries[key] = (value, expires_at)

    def _drop_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _evict(self) -> None:
        # Caller holds the lock. Expired entries go first, then the one expiring soonest.
        self._drop_expired()
        if len(self._entries) >= self._max_entries:
            del self._entries[min(self._entries, key=lambda k: self._entries[k][1])]

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return default
            return value

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def get_or_set(self, key: str, factory: Callable[[], T], ttl: float | None = None) -> T:
        sentinel = object()
        value = self.get(key, sentinel)
        if value is sentinel:
            value = factory()
            self.set(key, value, ttl)
        return value
