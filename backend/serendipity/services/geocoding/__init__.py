"""Geocoding via Nominatim (default) or Mapbox."""

from .service import (
    GeoResolver,
    MapboxGeoResolver,
    NominatimGeoResolver,
    create_geo_resolver,
    to_coordinates,
)

__all__ = [
    "GeoResolver",
    "MapboxGeoResolver",
    "NominatimGeoResolver",
    "create_geo_resolver",
    "to_coordinates",
]
