"""Geocoding service: place name → ``(lng, lat)``.

Two providers behind one interface:
- NominatimGeoResolver: OpenStreetMap Nominatim (free, no API key)
- MapboxGeoResolver: Mapbox Geocoding v5 (needs MAPBOX_TOKEN)

"Not found" is a regular ``None`` result, never an exception. Transport
failures and timeouts are logged and also come back as ``None``; callers
decide whether a missing coordinate is fatal.

Requests share one HTTP client per resolver and are throttled per provider:
Nominatim's usage policy allows one request per second, so it runs one
request at a time with spacing; Mapbox allows several in flight.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

import httpx

from serendipity.models import Coordinates
from serendipity.services.cache import CacheService

logger = logging.getLogger(__name__)

USER_AGENT = "Serendipity/1.0 (contact@serendipity.travel)"

# Half-width in degrees of the box used to bias Nominatim toward a point (~50km)
PROXIMITY_BOX_DEGREES = 0.5


def to_coordinates(lng: float, lat: float) -> Optional[Coordinates]:
    """Build a coordinate pair, or None when it is outside WGS84 bounds."""
    lng, lat = float(lng), float(lat)
    if not (-180 <= lng <= 180 and -90 <= lat <= 90):
        return None
    return (lng, lat)


class GeoResolver(ABC):
    """Abstract base class for geocoders.

    Subclasses implement ``_lookup()``; caching, batching and throttling
    live here. ``MAX_CONCURRENT`` caps requests in flight and
    ``MIN_INTERVAL_SECONDS`` spaces request starts.
    """

    MAX_CONCURRENT = 5
    MIN_INTERVAL_SECONDS = 0.0

    def __init__(
        self,
        timeout: float = 10.0,
        cache: CacheService | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        min_interval: float | None = None,
    ) -> None:
        self._timeout = timeout
        self._cache = cache
        self._transport = transport
        self._min_interval = self.MIN_INTERVAL_SECONDS if min_interval is None else min_interval
        self._client: httpx.AsyncClient | None = None
        self._semaphore = asyncio.Semaphore(self.MAX_CONCURRENT)
        self._last_request: float | None = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def _lookup(
        self,
        client: httpx.AsyncClient,
        name: str,
        proximity: Optional[Coordinates],
        language: Optional[str],
    ) -> Optional[Coordinates]:
        """Query the provider for the single best match."""
        ...

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"User-Agent": USER_AGENT},
                limits=httpx.Limits(max_connections=self.MAX_CONCURRENT),
                transport=self._transport,
            )
        return self._client

    async def _throttled_lookup(
        self,
        name: str,
        proximity: Optional[Coordinates],
        language: Optional[str],
    ) -> Optional[Coordinates]:
        async with self._semaphore:
            if self._min_interval > 0 and self._last_request is not None:
                wait = self._last_request + self._min_interval - time.monotonic()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request = time.monotonic()
            return await self._lookup(self._get_client(), name, proximity, language)

    async def resolve(
        self,
        name: str,
        proximity: Optional[Coordinates] = None,
        language: Optional[str] = None,
    ) -> Optional[Coordinates]:
        """Resolve a place name, biased toward ``proximity`` when given."""
        name = name.strip()
        if not name:
            return None

        key = CacheService.build_geocode_key(name, proximity, language)
        if self._cache is not None:
            try:
                cached = await self._cache.get(key)
            except Exception as e:
                logger.warning(f"[GEOCODE] Cache read failed: {e}")
                cached = None
            if cached:
                return (float(cached[0]), float(cached[1]))

        try:
            coords = await self._throttled_lookup(name, proximity, language)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"[GEOCODE] {self.provider_name} error for '{name}': {type(e).__name__}: {e}")
            return None

        if coords is None:
            logger.info(f"[GEOCODE] Not found: '{name}'")
            return None

        if self._cache is not None:
            try:
                await self._cache.set(key, list(coords))
            except Exception as e:
                logger.warning(f"[GEOCODE] Cache write failed: {e}")
        return coords

    async def resolve_many(
        self,
        names: list[str],
        proximity: Optional[Coordinates] = None,
        language: Optional[str] = None,
    ) -> list[Optional[Coordinates]]:
        """Resolve a batch; ``result[i]`` belongs to ``names[i]``.

        Lookups are scheduled together but the provider throttle decides how
        many actually hit the network at once.
        """
        return list(await asyncio.gather(*[self.resolve(n, proximity, language) for n in names]))

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


class NominatimGeoResolver(GeoResolver):
    """OpenStreetMap Nominatim geocoder.

    Proximity is expressed as a non-bounded viewbox around the point, which
    ranks nearby matches first without excluding distant ones.
    """

    NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
    # Public instance policy: at most 1 request per second
    MAX_CONCURRENT = 1
    MIN_INTERVAL_SECONDS = 1.0

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        cache: CacheService | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        min_interval: float | None = None,
    ) -> None:
        super().__init__(timeout=timeout, cache=cache, transport=transport, min_interval=min_interval)
        self._url = base_url or self.NOMINATIM_URL

    @property
    def provider_name(self) -> str:
        return "Nominatim"

    async def _lookup(self, client, name, proximity, language):
        params: dict = {"q": name, "format": "json", "limit": 1}
        if language:
            params["accept-language"] = language
        if proximity:
            lng, lat = proximity
            pad = PROXIMITY_BOX_DEGREES
            params["viewbox"] = f"{lng - pad},{lat + pad},{lng + pad},{lat - pad}"
            params["bounded"] = 0

        response = await client.get(self._url, params=params)
        response.raise_for_status()
        results = response.json()
        if not results:
            return None

        lat = float(results[0].get("lat", 0))
        lon = float(results[0].get("lon", 0))
        if lat == 0 and lon == 0:
            return None
        return to_coordinates(lon, lat)


class MapboxGeoResolver(GeoResolver):
    """Mapbox Geocoding v5 (``mapbox.places``)."""

    MAPBOX_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    MAX_CONCURRENT = 10

    def __init__(
        self,
        access_token: str,
        timeout: float = 10.0,
        cache: CacheService | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not access_token:
            raise ValueError("MAPBOX_TOKEN not provided")
        super().__init__(timeout=timeout, cache=cache, transport=transport)
        self._token = access_token

    @property
    def provider_name(self) -> str:
        return "Mapbox"

    async def _lookup(self, client, name, proximity, language):
        params: dict = {"access_token": self._token, "limit": 1}
        if proximity:
            params["proximity"] = f"{proximity[0]},{proximity[1]}"
        if language:
            params["language"] = language

        response = await client.get(f"{self.MAPBOX_URL}/{quote(name, safe='')}.json", params=params)
        response.raise_for_status()
        features = response.json().get("features") or []
        if not features:
            return None
        lng, lat = features[0]["center"]
        return to_coordinates(lng, lat)


def create_geo_resolver(
    mapbox_token: str | None = None,
    nominatim_url: str | None = None,
    timeout: float = 10.0,
    cache: CacheService | None = None,
) -> GeoResolver:
    """Mapbox when a token is configured, Nominatim otherwise."""
    if mapbox_token:
        logger.info("[GEOCODE] Using Mapbox geocoder")
        return MapboxGeoResolver(mapbox_token, timeout=timeout, cache=cache)
    logger.info("[GEOCODE] Using Nominatim geocoder")
    return NominatimGeoResolver(base_url=nominatim_url, timeout=timeout, cache=cache)
