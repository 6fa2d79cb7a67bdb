"""API routes for Serendipity.

- POST /plan-trip:    full trip plan (geocode → AI suggestions → compose → route)
- POST /nearby:       3-5 real places around one location, within 5 km
- POST /place-photos: Wikipedia/Commons photos for one place

Services are process-wide singletons built from ``get_settings()`` on first
use and injected with ``Depends`` so tests can override them.
"""

import logging
import time
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from serendipity.config import get_settings
from serendipity.models import Coordinates, InvalidInputError, NearbyPlace, PlanTripRequest, TripPlan
from serendipity.services.cache import CacheService, RedisCacheService, create_cache_service
from serendipity.services.geocoding import GeoResolver, create_geo_resolver
from serendipity.services.nearby import NearbyPlacesService
from serendipity.services.photos import PhotoLookupService
from serendipity.services.routing import RoutingClient, create_routing_client
from serendipity.services.suggestions import SuggestionService, create_suggestion_service
from serendipity.services.trip_planner import TripPlanner

logger = logging.getLogger(__name__)

router = APIRouter()

# Separate Redis namespaces so clearing one cache leaves the other intact
PLAN_CACHE_PREFIX = "serendipity:plan:"
LOOKUP_CACHE_PREFIX = "serendipity:lookup:"


class NearbyRequest(BaseModel):
    """Request model for nearby places."""
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    language: Literal["en", "zh"] = "en"

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value):
        return value or "en"


class NearbyResponse(BaseModel):
    nearby_places: list[NearbyPlace]


class PlacePhotosRequest(BaseModel):
    """Request model for place photos."""
    name: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class Photo(BaseModel):
    url: str


class PlacePhotosResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    photos: list[Photo] = Field(default_factory=list)
    count: int = 0


# Service instances
_geo_resolver: GeoResolver | None = None
_suggestion_service: SuggestionService | None = None
_routing_client: RoutingClient | None = None
_plan_cache: CacheService | None = None
_lookup_cache: CacheService | None = None
_trip_planner: TripPlanner | None = None
_nearby_service: NearbyPlacesService | None = None
_photo_service: PhotoLookupService | None = None


def get_plan_cache() -> CacheService:
    global _plan_cache
    if _plan_cache is None:
        settings = get_settings()
        _plan_cache = create_cache_service(
            redis_url=settings.redis_url,
            max_size=settings.plan_cache_max_size,
            ttl_seconds=settings.plan_cache_ttl_seconds,
            prefix=PLAN_CACHE_PREFIX,
        )
    return _plan_cache


def get_lookup_cache() -> CacheService:
    """Shared cache for geocoding and photo lookups."""
    global _lookup_cache
    if _lookup_cache is None:
        settings = get_settings()
        _lookup_cache = create_cache_service(
            redis_url=settings.redis_url,
            max_size=2048,
            ttl_seconds=settings.plan_cache_ttl_seconds,
            prefix=LOOKUP_CACHE_PREFIX,
        )
    return _lookup_cache


def get_geo_resolver() -> GeoResolver:
    global _geo_resolver
    if _geo_resolver is None:
        settings = get_settings()
        _geo_resolver = create_geo_resolver(
            mapbox_token=settings.mapbox_token,
            nominatim_url=settings.nominatim_url,
            timeout=settings.http_timeout_seconds,
            cache=get_lookup_cache(),
        )
    return _geo_resolver


def get_suggestion_service() -> SuggestionService:
    global _suggestion_service
    if _suggestion_service is None:
        settings = get_settings()
        _suggestion_service = create_suggestion_service(
            gemini_api_key=settings.gemini_api_key,
            gemini_model=settings.gemini_model,
            groq_api_key=settings.groq_api_key,
            groq_model=settings.groq_model,
            timeout_seconds=settings.ai_timeout_seconds,
        )
    return _suggestion_service


def get_routing_client() -> RoutingClient:
    global _routing_client
    if _routing_client is None:
        settings = get_settings()
        _routing_client = create_routing_client(
            mapbox_token=settings.mapbox_token,
            osrm_url=settings.osrm_url,
            timeout=settings.http_timeout_seconds,
        )
    return _routing_client


def get_trip_planner() -> TripPlanner:
    global _trip_planner
    if _trip_planner is None:
        _trip_planner = TripPlanner(
            geo_resolver=get_geo_resolver(),
            suggestion_service=get_suggestion_service(),
            routing_client=get_routing_client(),
            cache=get_plan_cache(),
            cache_ttl_seconds=get_settings().plan_cache_ttl_seconds,
        )
    return _trip_planner


def get_nearby_service() -> NearbyPlacesService:
    global _nearby_service
    if _nearby_service is None:
        _nearby_service = NearbyPlacesService(get_geo_resolver(), get_suggestion_service())
    return _nearby_service


def get_photo_service() -> PhotoLookupService:
    global _photo_service
    if _photo_service is None:
        _photo_service = PhotoLookupService(
            cache=get_lookup_cache(),
            timeout=get_settings().http_timeout_seconds,
        )
    return _photo_service


async def close_services() -> None:
    """Release network clients and connections held by the singletons."""
    global _geo_resolver, _routing_client, _photo_service, _plan_cache, _lookup_cache
    global _suggestion_service, _trip_planner, _nearby_service
    if _geo_resolver is not None:
        await _geo_resolver.close()
    if _routing_client is not None:
        await _routing_client.close()
    if _photo_service is not None:
        await _photo_service.close()
    for cache in (_plan_cache, _lookup_cache):
        if isinstance(cache, RedisCacheService):
            await cache.disconnect()
    _geo_resolver = _routing_client = _photo_service = _plan_cache = _lookup_cache = None
    _suggestion_service = _trip_planner = _nearby_service = None


@router.post("/plan-trip", response_model=TripPlan, response_model_by_alias=True)
async def plan_trip(
    request: PlanTripRequest,
    planner: TripPlanner = Depends(get_trip_planner),
) -> TripPlan:
    """Plan a road trip through the given waypoints.

    Errors are raised as PlanningError subclasses and rendered by the
    exception handler in ``main.py``.
    """
    logger.info(f"[PLAN] Request: {' -> '.join(request.waypoints)} (vibe={request.vibe:g}, days={request.days})")
    return await planner.plan_trip(request)


@router.post("/nearby", response_model=NearbyResponse)
async def nearby_places(
    request: NearbyRequest,
    service: NearbyPlacesService = Depends(get_nearby_service),
) -> NearbyResponse:
    """Find 3-5 real places within 5 km of a location."""
    places = await service.find_nearby(request.location, request.coordinates, request.language)
    return NearbyResponse(nearby_places=places)


@router.post("/place-photos", response_model=PlacePhotosResponse)
async def place_photos(
    request: PlacePhotosRequest,
    service: PhotoLookupService = Depends(get_photo_service),
) -> PlacePhotosResponse:
    """Look up photos for a single place."""
    name = (request.name or "").strip()
    if not name or request.coordinates is None:
        raise InvalidInputError("Missing name or coordinates")

    start_time = time.time()
    urls = await service.get_photos(name, request.coordinates)
    elapsed = time.time() - start_time
    logger.info(f"[PHOTOS] Returned {len(urls)} photo(s) for {name} in {elapsed*1000:.0f}ms")

    return PlacePhotosResponse(photos=[Photo(url=url) for url in urls], count=len(urls))
