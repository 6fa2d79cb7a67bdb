"""Nearby places around a single location."""

from .service import MAX_DISTANCE_KM, NearbyPlacesService, fallback_offset, round_km

__all__ = ["MAX_DISTANCE_KM", "NearbyPlacesService", "fallback_offset", "round_km"]
