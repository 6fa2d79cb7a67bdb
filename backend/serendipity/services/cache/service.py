"""Cache service implementation.

This module provides an abstract cache service interface with two
implementations:

- ``InMemoryCacheService``: process-wide TTL-aware LRU store (default)
- ``RedisCacheService``: shared store for multi-worker deployments

Plan cache key consistency: two requests with the same waypoints (same
order), vibe, days, custom preferences and language SHALL map to the same
key, so a finished plan is computed at most once per request signature.
"""

import hashlib
import json
from abc import ABC, abstractmethod
from fnmatch import fnmatchcase
from typing import Any, Optional

import redis.asyncio as redis

from serendipity.utils.cache import LRUCache


class CacheService(ABC):
    """Abstract base class for cache services.

    Defines the interface for caching operations including get, set,
    invalidation and clearing. Also provides static helpers for building
    consistent cache keys.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Retrieve cached value by key.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value if found, None otherwise.
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store value in cache (upsert, last write wins).

        Args:
            key: The cache key to store under.
            value: The value to cache (must be JSON serializable).
            ttl_seconds: Time-to-live in seconds. Implementation default if None.
        """
        pass

    @abstractmethod
    async def invalidate(self, pattern: str) -> int:
        """Invalidate cache entries matching a glob-style pattern.

        Returns:
            Number of keys invalidated.
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a key exists in the cache."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a specific key. Returns False if it didn't exist."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry owned by this cache."""
        pass

    @staticmethod
    def build_plan_key(
        waypoints: list[str],
        vibe: float,
        days: int,
        custom_preferences: Optional[str],
        language: str,
    ) -> str:
        """Generate the cache key for a trip plan request.

        The key is a SHA-256 over the canonical JSON of the request signature,
        so waypoint order matters and nothing else does.

        Example:
            >>> CacheService.build_plan_key(["Paris", "Nice"], 50.0, 3, None, "en")[:5]
            'plan:'
        """
        signature = json.dumps(
            {
                "waypoints": waypoints,
                "vibe": vibe,
                "days": days,
                "customPreferences": custom_preferences,
                "language": language,
            },
            sort_keys=True,
            ensure_ascii=False,
        )
        return f"plan:{hashlib.sha256(signature.encode('utf-8')).hexdigest()}"

    @staticmethod
    def build_geocode_key(
        name: str, proximity: tuple[float, float] | None, language: str | None
    ) -> str:
        """Generate cache key for a geocoding lookup."""
        near = f"{proximity[0]:.4f},{proximity[1]:.4f}" if proximity else "-"
        return f"geocode:{name.strip().lower()}:{near}:{language or '-'}"

    @staticmethod
    def build_photo_key(name: str, coordinates: tuple[float, float]) -> str:
        """Generate cache key for a photo lookup.

        Example:
            >>> CacheService.build_photo_key("Louvre", (2.3376, 48.8606))
            'photo:louvre:2.3376,48.8606'
        """
        return f"photo:{name.strip().lower()}:{coordinates[0]},{coordinates[1]}"


class InMemoryCacheService(CacheService):
    """Process-wide cache backed by an LRU with TTL.

    Values are stored as-is; callers store JSON-shaped data so this backend
    and the Redis one stay interchangeable.
    """

    def __init__(self, max_size: int = 256, default_ttl: int | None = 86400) -> None:
        self._store = LRUCache(max_size=max_size, ttl_seconds=default_ttl)

    async def get(self, key: str) -> Any | None:
        return self._store.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        # Per-entry TTL is not supported in memory; the store-wide TTL applies.
        self._store.set(key, value)

    async def invalidate(self, pattern: str) -> int:
        matched = [key for key in self._store.keys() if fnmatchcase(key, pattern)]
        for key in matched:
            self._store.delete(key)
        return len(matched)

    async def exists(self, key: str) -> bool:
        return key in self._store

    async def delete(self, key: str) -> bool:
        return self._store.delete(key)

    async def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


class RedisCacheService(CacheService):
    """Redis-based implementation of the cache service.

    Uses Redis for storing cached values with support for TTL,
    pattern-based invalidation, and JSON serialization. Every key is
    namespaced with ``prefix`` so ``clear()`` only touches this cache.

    Attributes:
        _client: The Redis async client instance.
        _default_ttl: Default TTL in seconds for cached values.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        default_ttl: int = 86400,
        prefix: str = "serendipity:",
    ) -> None:
        """Initialize the Redis cache service.

        Args:
            redis_url: Redis connection URL. Defaults to localhost:6379.
            default_ttl: Default TTL in seconds. Defaults to 86400 (24 hours).
            prefix: Namespace prepended to every key.
        """
        self._redis_url = redis_url
        self._default_ttl = default_ttl
        self._prefix = prefix
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Any | None:
        client = await self._ensure_connected()
        value = await client.get(self._key(key))
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            # Return raw value if not JSON
            return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        client = await self._ensure_connected()
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        serialized = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        await client.set(self._key(key), serialized, ex=ttl)

    async def invalidate(self, pattern: str) -> int:
        """Invalidate entries matching pattern.

        Uses Redis SCAN to find matching keys and deletes them.
        This is more efficient than KEYS for large datasets.
        """
        client = await self._ensure_connected()
        deleted_count = 0

        cursor = 0
        while True:
            cursor, keys = await client.scan(cursor=cursor, match=self._key(pattern), count=100)
            if keys:
                deleted_count += await client.delete(*keys)
            if cursor == 0:
                break

        return deleted_count

    async def exists(self, key: str) -> bool:
        client = await self._ensure_connected()
        return bool(await client.exists(self._key(key)))

    async def delete(self, key: str) -> bool:
        client = await self._ensure_connected()
        result = await client.delete(self._key(key))
        return result > 0

    async def clear(self) -> None:
        await self.invalidate("*")

    @property
    def default_ttl(self) -> int:
        """Get the default TTL in seconds."""
        return self._default_ttl


def create_cache_service(
    redis_url: str | None = None,
    max_size: int = 256,
    ttl_seconds: int = 86400,
    prefix: str = "serendipity:",
) -> CacheService:
    """Redis when a URL is configured, otherwise the in-memory store."""
    if redis_url:
        return RedisCacheService(redis_url=redis_url, default_ttl=ttl_seconds, prefix=prefix)
    return InMemoryCacheService(max_size=max_size, default_ttl=ttl_seconds)
