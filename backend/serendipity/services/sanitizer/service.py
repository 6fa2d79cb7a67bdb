"""Response sanitizer: untrusted model text → validated suggestion payload.

The model is asked for a single JSON object but routinely wraps it in prose or
markdown fences, leaves trailing commas and comments in place, or emits raw
control characters inside strings. ``extract_json_object()`` repairs those
and parses; ``parse_trip_suggestions()`` and ``parse_nearby()`` then validate
the result into typed models, dropping individual entries that do not fit.
"""

import json
import logging
import re
from typing import Any, TypeVar

from pydantic import ValidationError

from serendipity.models import MalformedSuggestionError, NearbyPlace, SuggestedPlace, SuggestionPayload

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=SuggestedPlace)

_FENCE_START = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_END = re.compile(r"\s*```\s*$")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F-\x9F]")

AUXILIARY_LISTS = (
    "start_location_suggestions",
    "end_location_suggestions",
    "extra_suggestions",
    "route_waypoints",
)


def _strip_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments that sit outside string literals."""
    out: list[str] = []
    i, n = 0, len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def clean_json_text(raw: str) -> str:
    """Cut the outermost ``{...}`` out of ``raw`` and apply the textual repairs.

    Raises:
        MalformedSuggestionError: no ``{ ... }`` span exists in ``raw``.
    """
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        raise MalformedSuggestionError("No JSON object found in AI response", raw=raw)

    text = raw[start:end + 1]
    text = _FENCE_END.sub("", _FENCE_START.sub("", text))
    text = _strip_comments(text)
    return _TRAILING_COMMA.sub(r"\1", text)


def extract_json_object(raw: str) -> Any:
    """Repair and parse the JSON object embedded in ``raw``.

    Two attempts: the cleaned text as-is, then once more with control
    characters removed. There is no third attempt.

    Example:
        >>> extract_json_object('Sure! ```json\\n{"a": [1, 2,],}\\n```')
        {'a': [1, 2]}
    """
    cleaned = clean_json_text(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    stripped = _CONTROL_CHARS.sub("", cleaned)
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as e:
        logger.warning(f"[SANITIZE] Unparseable AI response after repair: {e}")
        raise MalformedSuggestionError(
            f"Failed to parse AI response: {e.msg}", raw=raw, cleaned=stripped
        ) from e


def parse_places(items: Any, model: type[P] = SuggestedPlace) -> list[P]:
    """Validate each entry of ``items`` against ``model``; drop the misfits."""
    if not isinstance(items, list):
        return []

    places: list[P] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            places.append(model.model_validate(item))
        except ValidationError as e:
            logger.info(f"[SANITIZE] Dropping invalid entry {item.get('name')!r}: {e.error_count()} error(s)")
    return places


def parse_trip_suggestions(raw: str) -> SuggestionPayload:
    """Parse trip-planning output into a ``SuggestionPayload``.

    The top-level ``waypoints`` field must be present and be a list (it may be
    empty). The auxiliary lists default to empty.

    Raises:
        MalformedSuggestionError: unparseable text or missing ``waypoints``.
    """
    data = extract_json_object(raw)
    if not isinstance(data, dict):
        raise MalformedSuggestionError("AI response is not a JSON object", raw=raw)
    if not isinstance(data.get("waypoints"), list):
        raise MalformedSuggestionError("AI response has no 'waypoints' list", raw=raw)

    story = data.get("story_itinerary")
    payload = SuggestionPayload(
        waypoints=parse_places(data["waypoints"]),
        **{name: parse_places(data.get(name)) for name in AUXILIARY_LISTS},
        story_itinerary=story if isinstance(story, str) else "",
    )

    dropped = len(data["waypoints"]) - len(payload.waypoints)
    if dropped:
        logger.info(f"[SANITIZE] Dropped {dropped} invalid primary waypoint(s)")
    return payload


def parse_nearby(raw: str) -> list[NearbyPlace]:
    """Parse nearby-places output; requires a ``nearby_places`` list."""
    data = extract_json_object(raw)
    if not isinstance(data, dict) or not isinstance(data.get("nearby_places"), list):
        raise MalformedSuggestionError("AI response has no 'nearby_places' list", raw=raw)
    return parse_places(data["nearby_places"], NearbyPlace)
