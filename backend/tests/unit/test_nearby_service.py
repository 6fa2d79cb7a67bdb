"""Unit tests for the nearby places service."""

import json
import math

import pytest

from conftest import FakeGeoResolver, FakeSuggestionService
from serendipity.models import GeocodeFailureError, InvalidInputError, MalformedSuggestionError
from serendipity.services.nearby import MAX_DISTANCE_KM, NearbyPlacesService, fallback_offset, round_km
from serendipity.utils.geo import haversine_distance

ORIGIN = (130.4017, 33.5902)


def north_of(origin, km: float):
    """Point ``km`` kilometres due north of ``origin``."""
    return (origin[0], origin[1] + math.degrees(km / 6371.0))


def nearby_text(*names: str) -> str:
    places = [
        {"name": n, "type": "sight", "description": "...", "rating": 4.5, "review_count": 800, "image_keyword": n}
        for n in names
    ]
    return json.dumps({"nearby_places": places})


class TestFallbackOffset:
    def test_first_place_due_east(self) -> None:
        (lng, lat), offset_km = fallback_offset(ORIGIN, 0, 4)
        assert offset_km == 0.5
        assert lat == pytest.approx(ORIGIN[1])
        assert lng > ORIGIN[0]

    def test_offsets_grow_with_index(self) -> None:
        distances = [fallback_offset(ORIGIN, i, 5)[1] for i in range(5)]
        assert distances == pytest.approx([0.5, 0.8, 1.1, 1.4, 1.7])

    def test_offset_distance_is_close_to_nominal(self) -> None:
        (lng, lat), offset_km = fallback_offset(ORIGIN, 2, 3)
        assert haversine_distance(ORIGIN[1], ORIGIN[0], lat, lng) == pytest.approx(offset_km, rel=0.01)


class TestRoundKm:
    @pytest.mark.parametrize("value,expected", [(4.86, 4.9), (4.94, 4.9), (0.25, 0.3), (1.04, 1.0)])
    def test_one_decimal(self, value, expected) -> None:
        assert round_km(value) == expected


class TestNearbyPlacesService:
    """Tests for NearbyPlacesService.find_nearby."""

    def setup_method(self) -> None:
        self.geo = FakeGeoResolver(
            {
                "Close Shrine": north_of(ORIGIN, 4.9),
                "Far Tower": north_of(ORIGIN, 6.0),
                "Hakata": ORIGIN,
            }
        )

    def service(self, text: str) -> NearbyPlacesService:
        self.suggestions = FakeSuggestionService(text)
        return NearbyPlacesService(self.geo, self.suggestions)

    @pytest.mark.asyncio
    async def test_distance_filter(self) -> None:
        places = await self.service(nearby_text("Close Shrine", "Far Tower")).find_nearby("Hakata", ORIGIN)
        assert [p.name for p in places] == ["Close Shrine"]
        assert places[0].distance == 4.9
        assert places[0].coordinates == north_of(ORIGIN, 4.9)
        assert places[0].review_count == 800

    @pytest.mark.asyncio
    async def test_lookups_biased_to_origin(self) -> None:
        await self.service(nearby_text("Close Shrine")).find_nearby("Hakata", ORIGIN, language="zh")
        assert self.geo.calls == [("Close Shrine", ORIGIN, "zh")]

    @pytest.mark.asyncio
    async def test_unresolved_place_uses_fallback_offset(self) -> None:
        places = await self.service(nearby_text("Close Shrine", "Unknown Cafe", "Far Tower")).find_nearby(
            "Hakata", ORIGIN
        )
        names = [p.name for p in places]
        assert names == ["Close Shrine", "Unknown Cafe"]

        cafe = places[1]
        expected, _ = fallback_offset(ORIGIN, 1, 3)
        assert cafe.coordinates == pytest.approx(expected)
        assert cafe.distance == 0.8

    @pytest.mark.asyncio
    async def test_all_kept_places_within_limit(self) -> None:
        places = await self.service(nearby_text("A", "B", "C", "D", "E")).find_nearby("Hakata", ORIGIN)
        assert len(places) == 5
        assert all(p.distance <= MAX_DISTANCE_KM for p in places)

    @pytest.mark.asyncio
    async def test_location_only_is_geocoded_first(self) -> None:
        places = await self.service(nearby_text("Close Shrine")).find_nearby("Hakata", None)
        assert self.geo.calls[0] == ("Hakata", None, "en")
        assert places[0].distance == 4.9

    @pytest.mark.asyncio
    async def test_coordinates_only_builds_location(self) -> None:
        await self.service(nearby_text("Close Shrine")).find_nearby(None, ORIGIN)
        assert "33.59020, 130.40170" in self.suggestions.prompts[0]

    @pytest.mark.asyncio
    async def test_missing_everything(self) -> None:
        with pytest.raises(InvalidInputError):
            await self.service(nearby_text()).find_nearby("  ", None)

    @pytest.mark.asyncio
    async def test_unknown_location(self) -> None:
        with pytest.raises(GeocodeFailureError):
            await self.service(nearby_text()).find_nearby("Atlantis", None)

    @pytest.mark.asyncio
    async def test_malformed_response(self) -> None:
        with pytest.raises(MalformedSuggestionError):
            await self.service("no json at all").find_nearby("Hakata", ORIGIN)

    @pytest.mark.asyncio
    async def test_empty_list(self) -> None:
        assert await self.service(nearby_text()).find_nearby("Hakata", ORIGIN) == []
