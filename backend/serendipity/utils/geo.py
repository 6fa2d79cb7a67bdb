"""Great-circle distance helpers.

All distances are in kilometres on a sphere of radius 6371 km. Every helper
goes through ``_haversine`` so the route composer and the nearby filter
measure distance with the same formula.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

EARTH_RADIUS_KM = 6371.0


def _haversine(lng1: ArrayLike, lat1: ArrayLike, lng2: ArrayLike, lat2: ArrayLike) -> NDArray[np.float64]:
    """Element-wise haversine over degree arrays (numpy broadcasting)."""
    lng1, lat1, lng2, lat2 = (np.radians(np.asarray(v, dtype=np.float64)) for v in (lng1, lat1, lng2, lat2))
    a = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lng2 - lng1) / 2) ** 2
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def haversine_to_many(points: NDArray[np.float64], lng: float, lat: float) -> NDArray[np.float64]:
    """Distances from every ``[lng, lat]`` row of ``points`` to one point."""
    if points.size == 0:
        return np.zeros(0, dtype=np.float64)
    return _haversine(points[:, 0], points[:, 1], lng, lat)


def leg_distances(points: NDArray[np.float64]) -> NDArray[np.float64]:
    """Distances between consecutive ``[lng, lat]`` rows (length ``n - 1``)."""
    if len(points) < 2:
        return np.zeros(0, dtype=np.float64)
    return _haversine(points[:-1, 0], points[:-1, 1], points[1:, 0], points[1:, 1])


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance between two points in kilometres."""
    return float(haversine_to_many(np.array([[lng1, lat1]], dtype=np.float64), lng2, lat2)[0])
