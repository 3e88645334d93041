"""In-process TTL cache for memoized calculator results"""

import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from payment_flow.config import settings
from payment_flow.infrastructure.observability.metrics import insurance_cache_counter


class TTLCache:
    """
    Read/insert map whose entries expire after ``ttl_seconds``.

    Every ``set`` also sweeps expired entries, including keys never read again.

    Writes are idempotent (recomputing a key yields the same value), so a lock
    only guards the dict itself; no ordering between writers is needed.
    """

    def __init__(self, ttl_seconds: float | None = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = settings.insurance_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._items: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                insurance_cache_counter.labels(result="miss").inc()
                return None

            stored_at, value = item
            if self._clock() - stored_at > self.ttl_seconds:
                del self._items[key]
                insurance_cache_counter.labels(result="expired").inc()
                return None

        insurance_cache_counter.labels(result="hit").inc()
        return value

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            self._items[key] = (now, value)

    def cleanup(self) -> int:
        """Drop expired entries, returning how many were removed"""
        now = self._clock()
        with self._lock:
            return self._evict_expired(now)

    def _evict_expired(self, now: float) -> int:
        # Caller holds the lock
        expired = [k for k, (stored_at, _) in self._items.items() if now - stored_at > self.ttl_seconds]
        for key in expired:
            del self._items[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
