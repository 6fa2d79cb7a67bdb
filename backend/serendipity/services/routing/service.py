"""Routing clients: ordered coordinates → driving path geometry.

Two providers:
- OSRMRoutingClient: Open Source Routing Machine (free, public server)
- MapboxRoutingClient: Mapbox Directions v5 (needs MAPBOX_TOKEN)

Both return a GeoJSON ``LineString`` geometry dict, or ``None`` when the
provider found no route. Transport failures raise RoutingFailureError; the
trip planner treats either outcome as "no route" and carries on.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import httpx

from serendipity.models import Coordinates, RoutingFailureError

logger = logging.getLogger(__name__)

ROUTE_PARAMS = {
    "overview": "full",
    "geometries": "geojson",
    "steps": "false",
}


def _coords_path(points: Sequence[Coordinates]) -> str:
    return ";".join(f"{lng},{lat}" for lng, lat in points)


class RoutingClient(ABC):
    """Abstract base class for routing providers."""

    def __init__(
        self,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    def _build_request(self, points: Sequence[Coordinates]) -> tuple[str, dict[str, Any]]:
        """Return ``(url, params)`` for a route through ``points``."""
        ...

    async def route(self, points: Sequence[Coordinates]) -> Optional[dict[str, Any]]:
        """Fetch the driving geometry through ``points`` in order.

        Returns:
            GeoJSON geometry dict, or None for fewer than two points or when
            the provider reports no route.

        Raises:
            RoutingFailureError: on transport errors, timeouts or non-2xx.
        """
        if len(points) < 2:
            return None

        url, params = self._build_request(points)
        logger.info(f"[ROUTE] {self.provider_name} request: {len(points)} points")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RoutingFailureError(f"{self.provider_name} routing failed: {type(e).__name__}: {e}") from e
        if not isinstance(data, dict):
            raise RoutingFailureError(f"{self.provider_name} returned an unexpected payload")

        routes = data.get("routes") or []
        if data.get("code", "Ok") != "Ok" or not routes:
            logger.info(f"[ROUTE] {self.provider_name} returned no route: {data.get('code')}")
            return None

        geometry = routes[0].get("geometry")
        if not isinstance(geometry, dict):
            return None
        logger.info(
            f"[ROUTE] {self.provider_name} success: distance={int(routes[0].get('distance', 0))}m, "
            f"points={len(geometry.get('coordinates', []))}"
        )
        return geometry

    async def close(self) -> None:
        pass  # No persistent client to close


class OSRMRoutingClient(RoutingClient):
    """OSRM ``route`` service with the driving profile."""

    OSRM_URL = "https://router.project-osrm.org"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self._base_url = (base_url or self.OSRM_URL).rstrip("/")

    @property
    def provider_name(self) -> str:
        return "OSRM"

    def _build_request(self, points):
        return f"{self._base_url}/route/v1/driving/{_coords_path(points)}", dict(ROUTE_PARAMS)


class MapboxRoutingClient(RoutingClient):
    """Mapbox Directions v5, ``mapbox/driving`` profile."""

    MAPBOX_URL = "https://api.mapbox.com/directions/v5/mapbox/driving"

    def __init__(
        self,
        access_token: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not access_token:
            raise ValueError("MAPBOX_TOKEN not provided")
        super().__init__(timeout=timeout, transport=transport)
        self._token = access_token

    @property
    def provider_name(self) -> str:
        return "Mapbox"

    def _build_request(self, points):
        params = dict(ROUTE_PARAMS, access_token=self._token)
        return f"{self.MAPBOX_URL}/{_coords_path(points)}", params


def create_routing_client(
    mapbox_token: str | None = None,
    osrm_url: str | None = None,
    timeout: float = 15.0,
) -> RoutingClient:
    """Mapbox Directions when a token is configured, OSRM otherwise."""
    if mapbox_token:
        logger.info("[ROUTE] Using Mapbox Directions")
        return MapboxRoutingClient(mapbox_token, timeout=timeout)
    logger.info("[ROUTE] Using OSRM")
    return OSRMRoutingClient(base_url=osrm_url, timeout=timeout)
