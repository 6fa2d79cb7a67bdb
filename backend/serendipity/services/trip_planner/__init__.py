"""Trip planning pipeline."""

from .service import TripPlanner, build_cache_key, serendipity_level

__all__ = ["TripPlanner", "build_cache_key", "serendipity_level"]
