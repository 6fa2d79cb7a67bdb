"""Data models and error types."""

from .core import (
    Coordinates,
    NearbyPlace,
    PlaceType,
    PlanTripRequest,
    SuggestedPlace,
    SuggestionPayload,
    TripPlan,
    Waypoint,
)
from .errors import (
    ErrorCode,
    GeocodeFailureError,
    InvalidInputError,
    MalformedSuggestionError,
    PlanningError,
    RoutingFailureError,
    SuggestionFailureError,
)

__all__ = [
    "Coordinates",
    "NearbyPlace",
    "PlaceType",
    "PlanTripRequest",
    "SuggestedPlace",
    "SuggestionPayload",
    "TripPlan",
    "Waypoint",
    "ErrorCode",
    "GeocodeFailureError",
    "InvalidInputError",
    "MalformedSuggestionError",
    "PlanningError",
    "RoutingFailureError",
    "SuggestionFailureError",
]
