"""Cache services: in-memory LRU (default) and Redis."""

from .service import (
    CacheService,
    InMemoryCacheService,
    RedisCacheService,
    create_cache_service,
)

__all__ = [
    "CacheService",
    "InMemoryCacheService",
    "RedisCacheService",
    "create_cache_service",
]
