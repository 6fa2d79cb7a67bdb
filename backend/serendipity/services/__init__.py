"""Serendipity Services.

Service layer components:
- Cache: in-memory LRU (default) or Redis for plans, geocodes and photos
- Geocoding: Nominatim (default) or Mapbox place name → coordinates
- Suggestions: Gemini (primary) + Groq (fallback) trip and nearby suggestions
- Sanitizer: repair and validate the JSON inside AI output
- Route Composer: cheapest insertion of suggested stops
- Routing: OSRM (default) or Mapbox Directions driving geometry
- Trip Planner: the end-to-end planning pipeline
- Nearby / Photos: sibling endpoints
"""

from .cache import CacheService, InMemoryCacheService, RedisCacheService, create_cache_service
from .geocoding import GeoResolver, MapboxGeoResolver, NominatimGeoResolver, create_geo_resolver
from .suggestions import (
    GeminiSuggestionService,
    GroqSuggestionService,
    SuggestionService,
    TripBrief,
    create_suggestion_service,
)
from .routing import MapboxRoutingClient, OSRMRoutingClient, RoutingClient, create_routing_client
from .trip_planner import TripPlanner
from .nearby import NearbyPlacesService
from .photos import PhotoLookupService

__all__ = [
    # Cache
    "CacheService",
    "InMemoryCacheService",
    "RedisCacheService",
    "create_cache_service",
    # Geocoding
    "GeoResolver",
    "MapboxGeoResolver",
    "NominatimGeoResolver",
    "create_geo_resolver",
    # Suggestions
    "GeminiSuggestionService",
    "GroqSuggestionService",
    "SuggestionService",
    "TripBrief",
    "create_suggestion_service",
    # Routing
    "MapboxRoutingClient",
    "OSRMRoutingClient",
    "RoutingClient",
    "create_routing_client",
    # Pipelines
    "TripPlanner",
    "NearbyPlacesService",
    "PhotoLookupService",
]
