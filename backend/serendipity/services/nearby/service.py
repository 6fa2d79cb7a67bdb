"""Nearby places: 3-5 real places around one location.

The suggestion service proposes names only; each name is geocoded near the
origin. A place the geocoder cannot find is pinned at a small deterministic
offset from the origin instead (``0.5 + 0.3·index`` km, spread evenly around
the compass). Anything farther than MAX_DISTANCE_KM from the origin is
dropped; the rest carry their great-circle distance rounded to 0.1 km.
"""

import logging
import math
from typing import Optional

from serendipity.models import (
    Coordinates,
    GeocodeFailureError,
    InvalidInputError,
    NearbyPlace,
    PlanningError,
    SuggestionFailureError,
)
from serendipity.services.geocoding import GeoResolver
from serendipity.services.sanitizer import parse_nearby
from serendipity.services.suggestions import SuggestionService
from serendipity.utils.geo import haversine_distance

logger = logging.getLogger(__name__)

MAX_DISTANCE_KM = 5.0
KM_PER_DEGREE = 111.0


def fallback_offset(origin: Coordinates, index: int, count: int) -> tuple[Coordinates, float]:
    """Deterministic stand-in position for the ``index``-th of ``count`` places.

    Returns the offset coordinates and the nominal offset distance in km.
    """
    angle = index * 2 * math.pi / count
    offset_km = 0.5 + index * 0.3
    lng, lat = origin
    d_lng = (offset_km / KM_PER_DEGREE) * math.cos(angle) / math.cos(math.radians(lat))
    d_lat = (offset_km / KM_PER_DEGREE) * math.sin(angle)
    return (lng + d_lng, lat + d_lat), offset_km


def round_km(distance: float) -> float:
    """Round to one decimal, halves away from zero."""
    return math.floor(distance * 10 + 0.5) / 10


class NearbyPlacesService:
    """Finds and places points of interest near an origin."""

    def __init__(self, geo_resolver: GeoResolver, suggestion_service: SuggestionService) -> None:
        self._geo = geo_resolver
        self._suggestions = suggestion_service

    async def find_nearby(
        self,
        location: Optional[str],
        coordinates: Optional[Coordinates],
        language: str = "en",
    ) -> list[NearbyPlace]:
        """Suggest, locate and distance-filter places near the origin.

        Raises:
            InvalidInputError: neither a location nor coordinates were given.
            GeocodeFailureError: only a location was given and it can't be found.
            SuggestionFailureError / MalformedSuggestionError: upstream failures.
        """
        location = (location or "").strip()
        if not location and coordinates is None:
            raise InvalidInputError("Missing location or coordinates")

        if coordinates is None:
            coordinates = await self._geo.resolve(location, language=language)
            if coordinates is None:
                raise GeocodeFailureError([location])
        if not location:
            location = f"{coordinates[1]:.5f}, {coordinates[0]:.5f}"

        try:
            raw = await self._suggestions.suggest_nearby(location, coordinates, language)
        except PlanningError:
            raise
        except Exception as e:
            raise SuggestionFailureError(f"Suggestion service failed: {e}") from e

        candidates = parse_nearby(raw)
        if not candidates:
            return []

        found = await self._geo.resolve_many([p.name for p in candidates], coordinates, language)

        kept: list[NearbyPlace] = []
        for index, (place, coords) in enumerate(zip(candidates, found)):
            if coords is None:
                coords, offset_km = fallback_offset(coordinates, index, len(candidates))
                logger.info(f"[NEARBY] '{place.name}' not found, using offset ~{offset_km:.1f}km from origin")

            distance = haversine_distance(coordinates[1], coordinates[0], coords[1], coords[0])
            if distance > MAX_DISTANCE_KM:
                logger.info(f"[NEARBY] Filtered out {place.name}: {distance:.2f}km away (>{MAX_DISTANCE_KM:g}km)")
                continue
            kept.append(place.model_copy(update={"coordinates": coords, "distance": round_km(distance)}))

        logger.info(f"[NEARBY] Kept {len(kept)}/{len(candidates)} nearby places near '{location}'")
        return kept
