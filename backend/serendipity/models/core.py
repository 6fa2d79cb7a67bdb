"""Core data models for the Serendipity trip planner.

Pydantic models for coordinates, user waypoints, AI-suggested places and the
assembled trip plan. Coordinates are ``(lng, lat)`` pairs and serialize as
two-element JSON arrays, which is what the map client consumes.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _check_bounds(value: tuple[float, float]) -> tuple[float, float]:
    lng, lat = value
    if not -180 <= lng <= 180:
        raise ValueError(f"longitude {lng} out of range [-180, 180]")
    if not -90 <= lat <= 90:
        raise ValueError(f"latitude {lat} out of range [-90, 90]")
    return value


Coordinates = Annotated[tuple[float, float], AfterValidator(_check_bounds)]
"""WGS84 ``(longitude, latitude)`` pair."""


class PlaceType(str, Enum):
    """Allowed categories for suggested places."""

    FOOD = "food"
    SIGHT = "sight"
    SHOP = "shop"
    ACTIVITY = "activity"


class Waypoint(BaseModel):
    """A user-specified stop. ``coordinates`` is None until resolved."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    coordinates: Optional[Coordinates] = None


class SuggestedPlace(BaseModel):
    """A point of interest proposed by the suggestion service.

    Only ``name`` is mandatory. ``type`` must be one of the PlaceType values
    when present and ``rating`` must fall within [4.0, 5.0]; entries that break
    either rule are rejected by validation and dropped by the sanitizer.
    ``coordinates`` is attached after geocoding.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    type: Optional[PlaceType] = None
    description: str = ""
    reason: str = ""
    rating: Optional[float] = Field(None, ge=4.0, le=5.0)
    location: str = ""
    image_keyword: str = ""
    coordinates: Optional[Coordinates] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    @field_validator("description", "reason", "location", "image_keyword", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else str(value)

    @property
    def geocode_query(self) -> str:
        """Text handed to the geocoder: the address if given, else the name."""
        return self.location or self.name


class NearbyPlace(SuggestedPlace):
    """A place near a given origin, with its distance in kilometres."""

    review_count: Optional[int] = Field(None, ge=0)
    distance: Optional[float] = Field(None, ge=0)


class SuggestionPayload(BaseModel):
    """Validated content of one suggestion-service response."""

    model_config = ConfigDict(frozen=True)

    waypoints: list[SuggestedPlace] = Field(default_factory=list)
    start_location_suggestions: list[SuggestedPlace] = Field(default_factory=list)
    end_location_suggestions: list[SuggestedPlace] = Field(default_factory=list)
    extra_suggestions: list[SuggestedPlace] = Field(default_factory=list)
    route_waypoints: list[SuggestedPlace] = Field(default_factory=list)
    story_itinerary: str = ""


class PlanTripRequest(BaseModel):
    """Request body for ``POST /api/plan-trip``.

    The ≥2 waypoint rule is enforced by the planner, not here, so that it
    surfaces as an InvalidInput error rather than a schema error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    waypoints: list[str] = Field(default_factory=list)
    vibe: float = Field(50, ge=0, le=100, description="Serendipity dial, 0-100")
    days: int = Field(1, ge=1, description="Trip length in days")
    custom_preferences: Optional[str] = None
    language: Literal["en", "zh"] = "en"

    @field_validator("waypoints", mode="before")
    @classmethod
    def _strip_waypoints(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [v.strip() if isinstance(v, str) else v for v in value]
        return value

    @field_validator("custom_preferences", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: Any) -> Any:
        return value or "en"


class TripPlan(BaseModel):
    """Assembled trip plan returned to the client and stored in the plan cache.

    Serialized with camelCase keys (``userWaypoints``, ``extraSuggestions``).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    start: Waypoint
    end: Waypoint
    user_waypoints: list[Waypoint] = Field(default_factory=list)
    waypoints: list[SuggestedPlace] = Field(default_factory=list)
    extra_suggestions: list[SuggestedPlace] = Field(default_factory=list)
    route: Optional[dict[str, Any]] = Field(None, description="GeoJSON geometry of the driving route")
    itinerary: str = ""
