"""Typed planning errors.

Each error carries the HTTP status it maps to; the FastAPI exception handler
in ``main.py`` renders them as ``{"error": ..., "details": ...}``.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    GEOCODE_FAILURE = "GEOCODE_FAILURE"
    SUGGESTION_FAILURE = "SUGGESTION_FAILURE"
    MALFORMED_SUGGESTION = "MALFORMED_SUGGESTION"
    ROUTING_FAILURE = "ROUTING_FAILURE"
    API_ERROR = "API_ERROR"


class PlanningError(Exception):
    """Base class for failures that abort a planning request."""

    code: ErrorCode = ErrorCode.API_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidInputError(PlanningError):
    code = ErrorCode.INVALID_INPUT
    status_code = 400


class GeocodeFailureError(PlanningError):
    """One or more user waypoints could not be resolved."""

    code = ErrorCode.GEOCODE_FAILURE
    status_code = 400

    def __init__(self, names: list[str]) -> None:
        super().__init__(f"Could not find coordinates for: {', '.join(names)}")
        self.names = names


class SuggestionFailureError(PlanningError):
    code = ErrorCode.SUGGESTION_FAILURE
    status_code = 500


class MalformedSuggestionError(PlanningError):
    """Suggestion text could not be repaired into the expected JSON shape."""

    code = ErrorCode.MALFORMED_SUGGESTION
    status_code = 500

    def __init__(self, message: str, raw: str = "", cleaned: str = "") -> None:
        details = f"raw: {raw}\ncleaned: {cleaned}" if raw or cleaned else None
        super().__init__(message, details)
        self.raw = raw
        self.cleaned = cleaned


class RoutingFailureError(PlanningError):
    """Raised by routing clients; the planner degrades to a missing route."""

    code = ErrorCode.ROUTING_FAILURE
    status_code = 502
