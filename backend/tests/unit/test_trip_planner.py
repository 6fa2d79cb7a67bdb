"""Unit tests for the trip planning pipeline."""

import pytest

from conftest import (
    LYON,
    MARSEILLE,
    NICE,
    PARIS,
    FakeGeoResolver,
    FakeRoutingClient,
    FakeSuggestionService,
    place,
    suggestion_text,
)
from serendipity.models import (
    GeocodeFailureError,
    InvalidInputError,
    MalformedSuggestionError,
    PlanTripRequest,
    SuggestionFailureError,
    TripPlan,
)
from serendipity.services.cache import InMemoryCacheService
from serendipity.services.trip_planner import TripPlanner, build_cache_key, serendipity_level


def make_request(waypoints: list[str], **kwargs) -> PlanTripRequest:
    return PlanTripRequest(waypoints=waypoints, vibe=kwargs.pop("vibe", 50), days=kwargs.pop("days", 3), **kwargs)


class BrokenCache(InMemoryCacheService):
    async def get(self, key):
        raise ConnectionError("cache down")

    async def set(self, key, value, ttl_seconds=None):
        raise ConnectionError("cache down")


class TestSerendipityLevel:
    @pytest.mark.parametrize(
        "vibe,level",
        [(0, 0), (4, 0), (5, 1), (44, 4), (45, 5), (50, 5), (95, 10), (100, 10)],
    )
    def test_rounds_half_up(self, vibe, level) -> None:
        assert serendipity_level(vibe) == level


class TestBuildCacheKey:
    def test_equal_requests_equal_keys(self) -> None:
        a = PlanTripRequest.model_validate({"waypoints": ["Paris", "Nice"], "vibe": 50, "days": 3})
        b = PlanTripRequest.model_validate(
            {"waypoints": [" Paris ", "Nice"], "vibe": 50.0, "days": 3, "customPreferences": "  ", "language": None}
        )
        assert build_cache_key(a) == build_cache_key(b)

    def test_preferences_change_key(self) -> None:
        a = make_request(["Paris", "Nice"])
        b = make_request(["Paris", "Nice"], custom_preferences="vineyards")
        assert build_cache_key(a) != build_cache_key(b)


class TestTripPlannerEndToEnd:
    """Paris → Nice with one suggested stop in Lyon."""

    def setup_method(self) -> None:
        self.geo = FakeGeoResolver({"Paris": PARIS, "Nice": NICE, "Lyon": LYON, "Marseille": MARSEILLE})
        self.suggestions = FakeSuggestionService(suggestion_text([place("Lyon")]))
        self.routing = FakeRoutingClient()
        self.cache = InMemoryCacheService()
        self.planner = TripPlanner(self.geo, self.suggestions, self.routing, self.cache)

    @pytest.mark.asyncio
    async def test_lyon_inserted_between_paris_and_nice(self) -> None:
        plan = await self.planner.plan_trip(make_request(["Paris", "Nice"]))

        assert plan.start.name == "Paris" and plan.start.coordinates == PARIS
        assert plan.end.name == "Nice" and plan.end.coordinates == NICE
        assert plan.user_waypoints == []
        assert len(plan.waypoints) == 1
        assert plan.waypoints[0].name == "Lyon"
        assert plan.waypoints[0].coordinates == LYON

        assert self.routing.requests == [[PARIS, LYON, NICE]]
        assert plan.route["type"] == "LineString"
        assert len(plan.route["coordinates"]) == 3
        assert plan.itinerary.startswith("# Your Trip")

    @pytest.mark.asyncio
    async def test_prompt_carries_brief(self) -> None:
        await self.planner.plan_trip(make_request(["Paris", "Nice"], vibe=45, custom_preferences="cheese"))
        prompt = self.suggestions.prompts[0]
        assert "Plan a 3-day road trip" in prompt
        assert "1. Paris\n2. Nice" in prompt
        assert "Start coordinates: [2.35, 48.85]" in prompt
        assert "SERENDIPITY LEVEL: 5/10" in prompt
        assert "cheese" in prompt

    @pytest.mark.asyncio
    async def test_second_identical_request_served_from_cache(self) -> None:
        first = await self.planner.plan_trip(make_request(["Paris", "Nice"]))
        second = await self.planner.plan_trip(make_request(["Paris", "Nice"]))

        assert self.suggestions.call_count == 1
        assert len(self.routing.requests) == 1
        assert second.model_dump() == first.model_dump()

    @pytest.mark.asyncio
    async def test_different_request_misses_cache(self) -> None:
        await self.planner.plan_trip(make_request(["Paris", "Nice"]))
        await self.planner.plan_trip(make_request(["Paris", "Nice"], days=4))
        assert self.suggestions.call_count == 2
        assert len(self.cache) == 2

    @pytest.mark.asyncio
    async def test_cleared_cache_recomputes(self) -> None:
        await self.planner.plan_trip(make_request(["Paris", "Nice"]))
        await self.cache.clear()
        await self.planner.plan_trip(make_request(["Paris", "Nice"]))
        assert self.suggestions.call_count == 2

    @pytest.mark.asyncio
    async def test_cached_payload_uses_camel_case(self) -> None:
        request = make_request(["Paris", "Lyon", "Nice"])
        await self.planner.plan_trip(request)
        stored = await self.cache.get(build_cache_key(request))
        assert set(stored) == {"start", "end", "userWaypoints", "waypoints", "extraSuggestions", "route", "itinerary"}
        assert stored["start"]["coordinates"] == [2.35, 48.85]

    @pytest.mark.asyncio
    async def test_user_waypoints_exclude_start_and_end(self) -> None:
        plan = await self.planner.plan_trip(make_request(["Paris", "Lyon", "Marseille", "Nice"]))
        assert [wp.name for wp in plan.user_waypoints] == ["Lyon", "Marseille"]
        assert [wp.coordinates for wp in plan.user_waypoints] == [LYON, MARSEILLE]


class TestTripPlannerSuggestions:
    """Geocoding and merging of the suggestion lists."""

    def setup_method(self) -> None:
        self.geo = FakeGeoResolver(
            {
                "Paris": PARIS,
                "Nice": NICE,
                "Lyon": LYON,
                "Louvre": (2.3376, 48.8606),
                "Castle Hill": (7.2800, 43.6950),
                "Annecy": (6.1294, 45.8992),
                "Beaune": (4.8400, 47.0200),
            }
        )
        self.routing = FakeRoutingClient()
        self.cache = InMemoryCacheService()

    def planner(self, text: str) -> TripPlanner:
        self.suggestions = FakeSuggestionService(text)
        return TripPlanner(self.geo, self.suggestions, self.routing, self.cache)

    @pytest.mark.asyncio
    async def test_unresolved_suggestions_are_dropped(self) -> None:
        text = suggestion_text(
            [place("Lyon"), place("Atlantis")],
            extra_suggestions=[place("Annecy"), place("El Dorado")],
        )
        plan = await self.planner(text).plan_trip(make_request(["Paris", "Nice"]))

        assert [p.name for p in plan.waypoints] == ["Lyon"]
        assert [p.name for p in plan.extra_suggestions] == ["Annecy"]
        assert all(p.coordinates is not None for p in plan.waypoints + plan.extra_suggestions)
        assert self.routing.requests == [[PARIS, LYON, NICE]]

    @pytest.mark.asyncio
    async def test_invalid_entries_are_dropped(self) -> None:
        text = suggestion_text([place("Lyon"), place("Louvre", type="museum"), place("Beaune", rating=2)])
        plan = await self.planner(text).plan_trip(make_request(["Paris", "Nice"]))
        assert [p.name for p in plan.waypoints] == ["Lyon"]

    @pytest.mark.asyncio
    async def test_extra_suggestions_union_order(self) -> None:
        text = suggestion_text(
            [],
            extra_suggestions=[place("Annecy")],
            start_location_suggestions=[place("Louvre", location="Rue de Rivoli")],
            end_location_suggestions=[place("Castle Hill")],
            route_waypoints=[place("Beaune")],
        )
        plan = await self.planner(text).plan_trip(make_request(["Paris", "Nice"]))
        assert [p.name for p in plan.extra_suggestions] == ["Annecy", "Louvre", "Castle Hill", "Beaune"]
        assert plan.waypoints == []
        assert self.routing.requests == [[PARIS, NICE]]

    @pytest.mark.asyncio
    async def test_city_highlights_geocoded_by_name_near_city(self) -> None:
        text = suggestion_text(
            [],
            start_location_suggestions=[place("Louvre", location="Rue de Rivoli")],
            end_location_suggestions=[place("Castle Hill")],
        )
        await self.planner(text).plan_trip(make_request(["Paris", "Nice"], language="zh"))
        assert ("Louvre", PARIS, "zh") in self.geo.calls
        assert ("Castle Hill", NICE, "zh") in self.geo.calls

    @pytest.mark.asyncio
    async def test_primary_stops_geocoded_by_location(self) -> None:
        text = suggestion_text([place("Old Town", location="Lyon")])
        plan = await self.planner(text).plan_trip(make_request(["Paris", "Nice"]))
        assert ("Lyon", None, "en") in self.geo.calls
        assert plan.waypoints[0].name == "Old Town"
        assert plan.waypoints[0].coordinates == LYON

    @pytest.mark.asyncio
    async def test_final_waypoints_keep_suggestion_order(self) -> None:
        # Beaune sits before Lyon on the road, but the list keeps the model's order
        text = suggestion_text([place("Lyon"), place("Beaune")])
        plan = await self.planner(text).plan_trip(make_request(["Paris", "Nice"]))
        assert [p.name for p in plan.waypoints] == ["Lyon", "Beaune"]
        assert self.routing.requests[0] == [PARIS, (4.84, 47.02), LYON, NICE]


class TestTripPlannerFailures:
    """Typed failures abort the request and leave the cache untouched."""

    def setup_method(self) -> None:
        self.geo = FakeGeoResolver({"Paris": PARIS, "Nice": NICE, "Lyon": LYON})
        self.routing = FakeRoutingClient()
        self.cache = InMemoryCacheService()

    @pytest.mark.asyncio
    async def test_fewer_than_two_waypoints(self) -> None:
        suggestions = FakeSuggestionService(suggestion_text())
        planner = TripPlanner(self.geo, suggestions, self.routing, self.cache)
        with pytest.raises(InvalidInputError):
            await planner.plan_trip(make_request(["Paris"]))
        with pytest.raises(InvalidInputError):
            await planner.plan_trip(make_request([]))
        assert suggestions.call_count == 0
        assert self.geo.calls == []

    @pytest.mark.asyncio
    async def test_blank_waypoint_name(self) -> None:
        planner = TripPlanner(self.geo, FakeSuggestionService(suggestion_text()), self.routing, self.cache)
        with pytest.raises(InvalidInputError):
            await planner.plan_trip(make_request(["Paris", "  "]))

    @pytest.mark.asyncio
    async def test_unresolvable_waypoints_named(self) -> None:
        suggestions = FakeSuggestionService(suggestion_text())
        planner = TripPlanner(self.geo, suggestions, self.routing, self.cache)
        with pytest.raises(GeocodeFailureError) as exc_info:
            await planner.plan_trip(make_request(["Paris", "Atlantis", "Nice", "Mu"]))

        assert exc_info.value.names == ["Atlantis", "Mu"]
        assert exc_info.value.to_payload() == {"error": "Could not find coordinates for: Atlantis, Mu"}
        assert exc_info.value.status_code == 400
        assert suggestions.call_count == 0
        assert len(self.cache) == 0

    @pytest.mark.asyncio
    async def test_suggestion_failure(self) -> None:
        suggestions = FakeSuggestionService(error=RuntimeError("quota exceeded"))
        planner = TripPlanner(self.geo, suggestions, self.routing, self.cache)
        with pytest.raises(SuggestionFailureError) as exc_info:
            await planner.plan_trip(make_request(["Paris", "Nice"]))
        assert "quota exceeded" in exc_info.value.message
        assert suggestions.call_count == 1
        assert len(self.cache) == 0

    @pytest.mark.asyncio
    async def test_malformed_suggestion(self) -> None:
        planner = TripPlanner(self.geo, FakeSuggestionService("I cannot help with that."), self.routing, self.cache)
        with pytest.raises(MalformedSuggestionError):
            await planner.plan_trip(make_request(["Paris", "Nice"]))
        assert self.routing.requests == []
        assert len(self.cache) == 0

    @pytest.mark.asyncio
    async def test_routing_failure_degrades_to_no_route(self) -> None:
        routing = FakeRoutingClient(fail=True)
        planner = TripPlanner(self.geo, FakeSuggestionService(suggestion_text([place("Lyon")])), routing, self.cache)
        plan = await planner.plan_trip(make_request(["Paris", "Nice"]))
        assert plan.route is None
        assert len(plan.waypoints) == 1
        assert len(self.cache) == 1

    @pytest.mark.asyncio
    async def test_empty_route_degrades_to_no_route(self) -> None:
        routing = FakeRoutingClient(empty=True)
        planner = TripPlanner(self.geo, FakeSuggestionService(suggestion_text()), routing, self.cache)
        plan = await planner.plan_trip(make_request(["Paris", "Nice"]))
        assert plan.route is None

    @pytest.mark.asyncio
    async def test_cache_errors_do_not_fail_request(self) -> None:
        suggestions = FakeSuggestionService(suggestion_text([place("Lyon")]))
        planner = TripPlanner(self.geo, suggestions, self.routing, BrokenCache())
        plan = await planner.plan_trip(make_request(["Paris", "Nice"]))
        assert isinstance(plan, TripPlan)
        assert plan.waypoints[0].coordinates == LYON
