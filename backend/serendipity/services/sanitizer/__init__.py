"""Response sanitizer for AI output."""

from .service import (
    clean_json_text,
    extract_json_object,
    parse_nearby,
    parse_places,
    parse_trip_suggestions,
)

__all__ = [
    "clean_json_text",
    "extract_json_object",
    "parse_nearby",
    "parse_places",
    "parse_trip_suggestions",
]
