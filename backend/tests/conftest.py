"""Shared test doubles and fixtures.

The doubles subclass the real service ABCs so the planner sees exactly the
interfaces it uses in production, without touching the network.
"""

import fnmatch
import json
from typing import Any, Optional

import pytest

from serendipity.models import Coordinates, RoutingFailureError
from serendipity.services.cache import InMemoryCacheService
from serendipity.services.geocoding import GeoResolver
from serendipity.services.routing import RoutingClient
from serendipity.services.suggestions import SuggestionService

PARIS = (2.35, 48.85)
NICE = (7.26, 43.71)
LYON = (4.83, 45.76)
MARSEILLE = (5.37, 43.30)


class FakeGeoResolver(GeoResolver):
    """Resolves names from a dict and records every call."""

    def __init__(self, places: dict[str, Coordinates]) -> None:
        super().__init__()
        self.places = dict(places)
        self.calls: list[tuple[str, Optional[Coordinates], Optional[str]]] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    async def _lookup(self, client, name, proximity, language):
        return self.places.get(name)

    async def resolve(self, name, proximity=None, language=None):
        self.calls.append((name, proximity, language))
        return self.places.get(name.strip())


class FakeSuggestionService(SuggestionService):
    """Returns canned text; counts provider calls."""

    def __init__(self, response: str = "", error: Exception | None = None) -> None:
        self._timeout = 1.0
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeRoutingClient(RoutingClient):
    """Returns a LineString through the requested points."""

    def __init__(self, fail: bool = False, empty: bool = False) -> None:
        super().__init__()
        self.fail = fail
        self.empty = empty
        self.requests: list[list[Coordinates]] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    def _build_request(self, points):
        return "http://routing.test", {}

    async def route(self, points):
        self.requests.append(list(points))
        if self.fail:
            raise RoutingFailureError("routing backend unavailable")
        if self.empty or len(points) < 2:
            return None
        return {"type": "LineString", "coordinates": [list(p) for p in points]}


class FakeRedis:
    """Just enough of redis.asyncio.Redis for RedisCacheService."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}
        self.closed = False

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    async def exists(self, key):
        return int(key in self.store)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan(self, cursor=0, match="*", count=100):
        return 0, [k for k in self.store if fnmatch.fnmatchcase(k, match)]

    async def aclose(self):
        self.closed = True


def place(name: str, location: str = "", **extra: Any) -> dict[str, Any]:
    """A well-formed suggested place as the model would emit it."""
    data = {
        "name": name,
        "type": "sight",
        "description": f"{name} description",
        "reason": "worth the stop",
        "rating": 4.5,
        "location": location or name,
        "image_keyword": name.lower(),
    }
    data.update(extra)
    return data


def suggestion_text(
    waypoints: list[dict] | None = None,
    story: str = "# Your Trip\n\n## Day 1\nDrive south.",
    **lists: list[dict],
) -> str:
    """Model output: the JSON payload wrapped in a markdown fence and chatter."""
    payload = {
        "waypoints": waypoints if waypoints is not None else [],
        "start_location_suggestions": lists.get("start_location_suggestions", []),
        "end_location_suggestions": lists.get("end_location_suggestions", []),
        "extra_suggestions": lists.get("extra_suggestions", []),
        "route_waypoints": lists.get("route_waypoints", []),
        "story_itinerary": story,
    }
    return f"Here is your trip!\n```json\n{json.dumps(payload, ensure_ascii=False)}\n```\nEnjoy."


@pytest.fixture
def plan_cache() -> InMemoryCacheService:
    return InMemoryCacheService(max_size=32, default_ttl=None)


@pytest.fixture
def geo() -> FakeGeoResolver:
    return FakeGeoResolver({"Paris": PARIS, "Nice": NICE, "Lyon": LYON, "Marseille": MARSEILLE})


@pytest.fixture
def routing() -> FakeRoutingClient:
    return FakeRoutingClient()
