import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default TTL per namespace, in seconds.
NAMESPACE_TTLS = {
    "property_search": 120,
    "property_detail": 3600,
    "geocode": 30 * 24 * 3600,
    "autocomplete": 300,
    "default": 3600,
}


class CacheService(Protocol):
    def get(self, key: str, namespace: str = "default") -> Any: ...
    def set(self, key: str, value: Any, ttl: int = 0, namespace: str = "default") -> bool: ...
    def forget(self, key: str, namespace: str = "default") -> bool: ...
    def get_or_compute(self, key: str, ttl: int, namespace: str, compute: Callable[[], T]) -> T: ...
    def invalidate_namespace(self, namespace: str) -> int: ...
    def flush(self) -> None: ...
    def stats(self) -> dict[str, Any]: ...


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


def default_ttl(namespace: str) -> int:
    return NAMESPACE_TTLS.get(namespace, NAMESPACE_TTLS["default"])


class InMemoryCache:
    """Process-local namespaced cache with per-entry expiry.

    The lock covers dictionary access only. ``get_or_compute`` runs the
    computation unlocked, so two callers racing on the same missing key may
    both compute; the later write wins. ``None`` is never stored, a miss and
    a "nothing found" look the same to callers.
    """

    def __init__(self, max_entries: int = 5000, enabled: bool = True,
                 clock: Callable[[], float] = time.time):
        self.max_entries = max(1, int(max_entries))
        self.enabled = enabled
        self.clock = clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.evictions = 0

    def get(self, key: str, namespace: str = "default") -> Any:
        if not self.enabled:
            return None
        now = self.clock()
        with self._lock:
            entry = self._entries.get((namespace, key))
            if entry is not None and entry.expires_at <= now:
                del self._entries[(namespace, key)]
                entry = None
            if entry is None:
                self.misses += 1
                logger.debug("cache miss %s/%s", namespace, key)
                return None
            self.hits += 1
        logger.debug("cache hit %s/%s", namespace, key)
        return entry.value

    def set(self, key: str, value: Any, ttl: int = 0, namespace: str = "default") -> bool:
        if not self.enabled or value is None:
            return False
        ttl = ttl or default_ttl(namespace)
        entry = CacheEntry(key, value, self.clock() + ttl)
        with self._lock:
            if (namespace, key) not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_one()
            self._entries[(namespace, key)] = entry
            self.sets += 1
        return True

    def _evict_one(self) -> None:
        # Caller holds the lock.
        victim = min(self._entries, key=lambda k: self._entries[k].expires_at)
        del self._entries[victim]
        self.evictions += 1

    def forget(self, key: str, namespace: str = "default") -> bool:
        with self._lock:
            if self._entries.pop((namespace, key), None) is None:
                return False
            self.deletes += 1
            return True

    def get_or_compute(self, key: str, ttl: int, namespace: str, compute: Callable[[], T]) -> T:
        value = self.get(key, namespace)
        if value is not None:
            return value
        value = compute()
        self.set(key, value, ttl, namespace)
        return value

    def invalidate_namespace(self, namespace: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k[0] == namespace]
            for k in doomed:
                del self._entries[k]
            self.deletes += len(doomed)
        return len(doomed)

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()
            self._reset_counters()

    def stats(self) -> dict[str, Any]:
        with self._lock:
            total = self.hits + self.misses
            return {
                "entries": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "sets": self.sets,
                "deletes": self.deletes,
                "evictions": self.evictions,
                "hit_ratio": round(self.hits / total, 4) if total else 0.0,
            }
