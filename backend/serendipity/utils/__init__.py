"""Pure helpers: geometry and in-process caching."""

from .cache import LRUCache
from .geo import haversine_distance, haversine_to_many, leg_distances

__all__ = [
    "LRUCache",
    "haversine_distance",
    "haversine_to_many",
    "leg_distances",
]
