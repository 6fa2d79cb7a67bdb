"""Trip planner: the top-level planning pipeline.

Stages, in order:

    Validating → CacheCheck → (hit: Done)
               | (miss: ResolvingUserWaypoints → RequestingSuggestions
                  → Sanitizing → ResolvingSuggestionCoordinates → Composing
                  → Routing → Assembling → Caching → Done)

Every stage before Assembling may abort the request with a typed
PlanningError; nothing partial is returned or cached. Routing is the only
degradable stage: no route (or a routing error) yields ``route=None``.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from serendipity.models import (
    Coordinates,
    GeocodeFailureError,
    InvalidInputError,
    PlanningError,
    PlanTripRequest,
    RoutingFailureError,
    SuggestedPlace,
    SuggestionFailureError,
    SuggestionPayload,
    TripPlan,
    Waypoint,
)
from serendipity.services.cache import CacheService
from serendipity.services.geocoding import GeoResolver
from serendipity.services.route_composer import insert
from serendipity.services.routing import RoutingClient
from serendipity.services.sanitizer import parse_trip_suggestions
from serendipity.services.suggestions import SuggestionService, TripBrief

logger = logging.getLogger(__name__)

MIN_WAYPOINTS = 2


def serendipity_level(vibe: float) -> int:
    """Map the 0-100 vibe dial to a 0-10 level, rounding halves up."""
    return int(math.floor(vibe / 10 + 0.5))


def build_cache_key(request: PlanTripRequest) -> str:
    return CacheService.build_plan_key(
        request.waypoints,
        request.vibe,
        request.days,
        request.custom_preferences,
        request.language,
    )


@dataclass
class GeocodedSuggestions:
    """Suggested places that survived geocoding, grouped by source list."""
    waypoints: list[SuggestedPlace]
    start_location: list[SuggestedPlace]
    end_location: list[SuggestedPlace]
    extra: list[SuggestedPlace]
    route: list[SuggestedPlace]

    def extra_union(self) -> list[SuggestedPlace]:
        """Auxiliary places in display order: extra, start city, end city, on-route."""
        return [*self.extra, *self.start_location, *self.end_location, *self.route]


class TripPlanner:
    """Plans a trip from an ordered list of waypoint names.

    All collaborators are injected so tests can swap in doubles and an
    isolated cache per test.
    """

    def __init__(
        self,
        geo_resolver: GeoResolver,
        suggestion_service: SuggestionService,
        routing_client: RoutingClient,
        cache: CacheService,
        cache_ttl_seconds: int | None = None,
    ) -> None:
        self._geo = geo_resolver
        self._suggestions = suggestion_service
        self._routing = routing_client
        self._cache = cache
        self._cache_ttl = cache_ttl_seconds

    @property
    def cache(self) -> CacheService:
        return self._cache

    async def plan_trip(self, request: PlanTripRequest) -> TripPlan:
        """Run the full pipeline for one request.

        Raises:
            InvalidInputError: fewer than two (non-blank) waypoints.
            GeocodeFailureError: one or more waypoints could not be resolved.
            SuggestionFailureError: the suggestion provider failed.
            MalformedSuggestionError: the suggestion text could not be parsed.
        """
        total_start = time.time()

        names = self._validate(request)

        key = build_cache_key(request)
        cached = await self._read_cache(key)
        if cached is not None:
            elapsed = time.time() - total_start
            logger.info(f"[PLAN] Cache HIT for {' -> '.join(names)} ({elapsed*1000:.0f}ms)")
            return cached
        logger.info(f"[PLAN] Cache MISS for {' -> '.join(names)}, running full pipeline")

        stops = await self._resolve_user_waypoints(names, request.language)
        start, end = stops[0], stops[-1]

        level = serendipity_level(request.vibe)
        logger.info(f"[PLAN] Requesting suggestions (serendipity {level}/10, {request.days} day(s))")
        ai_start = time.time()
        raw = await self._request_suggestions(
            TripBrief(
                waypoints=stops,
                days=request.days,
                serendipity_level=level,
                custom_preferences=request.custom_preferences,
                language=request.language,
            )
        )
        payload = parse_trip_suggestions(raw)
        logger.info(
            f"[PLAN] Got {len(payload.waypoints)} suggested stop(s) from AI ({time.time() - ai_start:.1f}s)"
        )

        places = await self._resolve_suggestions(payload, start.coordinates, end.coordinates, request.language)

        composed = insert(
            [stop.coordinates for stop in stops],
            [place.coordinates for place in places.waypoints],
        )
        route = await self._fetch_route(composed)

        plan = TripPlan(
            start=start,
            end=end,
            user_waypoints=stops[1:-1],
            waypoints=places.waypoints,
            extra_suggestions=places.extra_union(),
            route=route,
            itinerary=payload.story_itinerary,
        )

        await self._write_cache(key, plan)
        logger.info(f"[PLAN] Total pipeline: {time.time() - total_start:.1f}s, caching for next time")
        return plan

    # ─── Stages ───

    @staticmethod
    def _validate(request: PlanTripRequest) -> list[str]:
        names = list(request.waypoints)
        if len(names) < MIN_WAYPOINTS:
            raise InvalidInputError(f"At least {MIN_WAYPOINTS} waypoints required")
        if any(not name for name in names):
            raise InvalidInputError("Waypoint names must not be empty")
        return names

    async def _read_cache(self, key: str) -> Optional[TripPlan]:
        try:
            cached = await self._cache.get(key)
        except Exception as e:
            logger.warning(f"[CACHE] Plan cache read failed: {e}")
            return None
        if cached is None:
            return None
        try:
            return TripPlan.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"[CACHE] Ignoring unreadable plan cache entry {key}: {e.error_count()} error(s)")
            return None

    async def _write_cache(self, key: str, plan: TripPlan) -> None:
        try:
            await self._cache.set(key, plan.model_dump(mode="json", by_alias=True), ttl_seconds=self._cache_ttl)
        except Exception as e:
            logger.warning(f"[CACHE] Plan cache write failed: {e}")

    async def _resolve_user_waypoints(self, names: list[str], language: str) -> list[Waypoint]:
        geocode_start = time.time()
        coords = await self._geo.resolve_many(names, language=language)

        missing = [name for name, c in zip(names, coords) if c is None]
        if missing:
            logger.info(f"[PLAN] Could not geocode: {', '.join(missing)}")
            raise GeocodeFailureError(missing)

        logger.info(f"[PLAN] Resolved {len(names)} waypoint(s) ({time.time() - geocode_start:.1f}s)")
        return [Waypoint(name=name, coordinates=c) for name, c in zip(names, coords)]

    async def _request_suggestions(self, brief: TripBrief) -> str:
        try:
            return await self._suggestions.suggest(brief)
        except PlanningError:
            raise
        except Exception as e:
            raise SuggestionFailureError(f"Suggestion service failed: {e}") from e

    async def _resolve_suggestions(
        self,
        payload: SuggestionPayload,
        start: Coordinates,
        end: Coordinates,
        language: str,
    ) -> GeocodedSuggestions:
        """Geocode every suggestion list concurrently; drop what doesn't resolve.

        Start/end-city highlights are looked up by name near the start/end
        coordinate; everything else by its location text.
        """
        results = await asyncio.gather(
            self._geocode_places(payload.waypoints, None, language),
            self._geocode_places(payload.start_location_suggestions, start, language, by_name=True),
            self._geocode_places(payload.end_location_suggestions, end, language, by_name=True),
            self._geocode_places(payload.extra_suggestions, None, language),
            self._geocode_places(payload.route_waypoints, None, language),
        )
        places = GeocodedSuggestions(*results)
        logger.info(
            f"[PLAN] Geocoded suggestions: {len(places.waypoints)} stop(s), "
            f"{len(places.extra_union())} extra"
        )
        return places

    async def _geocode_places(
        self,
        places: list[SuggestedPlace],
        proximity: Optional[Coordinates],
        language: str,
        by_name: bool = False,
    ) -> list[SuggestedPlace]:
        if not places:
            return []
        queries = [place.name if by_name else place.geocode_query for place in places]
        coords = await self._geo.resolve_many(queries, proximity, language)

        resolved = []
        for place, c in zip(places, coords):
            if c is None:
                logger.info(f"[PLAN] Dropping unresolved suggestion: {place.name}")
                continue
            resolved.append(place.model_copy(update={"coordinates": c}))
        return resolved

    async def _fetch_route(self, points: list[Coordinates]) -> Optional[dict[str, Any]]:
        try:
            route = await self._routing.route(points)
        except RoutingFailureError as e:
            logger.warning(f"[PLAN] Routing failed, returning plan without route: {e}")
            return None
        if route is None:
            logger.info("[PLAN] No route returned, plan will have no geometry")
        return route
