"""Routing via OSRM (default) or Mapbox Directions."""

from .service import (
    MapboxRoutingClient,
    OSRMRoutingClient,
    RoutingClient,
    create_routing_client,
)

__all__ = [
    "MapboxRoutingClient",
    "OSRMRoutingClient",
    "RoutingClient",
    "create_routing_client",
]
