"""In-memory LRU cache with TTL expiration.

Process-level store for trip plans, geocoding results and photo lookups.
Lives as long as the uvicorn worker; nothing is persisted.
"""

import time
from collections import OrderedDict
from typing import Any


class LRUCache:
    """TTL-aware LRU cache. ``ttl_seconds=None`` disables expiry."""

    def __init__(self, max_size: int = 256, ttl_seconds: int | None = 86400) -> None:
        self._cache: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_seconds

    def get(self, key: str) -> Any | None:
        if key not in self._cache:
            return None
        ts, value = self._cache[key]
        if self._ttl is not None and time.time() - ts > self._ttl:
            del self._cache[key]
            return None
        self._cache.move_to_end(key)
        return value

    def set(self, key: str, value: Any) -> None:
        if key in self._cache:
            self._cache.move_to_end(key)
        self._cache[key] = (time.time(), value)
        if len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._cache.keys())

    def clear(self) -> None:
        self._cache.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._cache)
