"""Route composer: cheapest insertion of suggested stops into a fixed route.

The user's waypoints form a fixed ordered path. Each candidate is inserted,
one at a time and in the order given, into the gap where it adds the least
great-circle distance:

    added(i) = d(P[i-1], C) + d(C, P[i]) - d(P[i-1], P[i])

Ties go to the earliest gap. The fixed points never move relative to each
other. This is a greedy heuristic, not an optimal TSP solver; it is O(n·m)
with the per-candidate scan vectorized over the current legs.
"""

import logging
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from serendipity.models import Coordinates
from serendipity.utils.geo import haversine_to_many, leg_distances

logger = logging.getLogger(__name__)


def _as_array(points: Sequence[Coordinates]) -> NDArray[np.float64]:
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def insertion_costs(path: NDArray[np.float64], candidate: Coordinates) -> NDArray[np.float64]:
    """Added distance for inserting ``candidate`` into each gap of ``path``.

    ``result[k]`` is the cost of inserting between ``path[k]`` and
    ``path[k + 1]``.
    """
    to_candidate = haversine_to_many(path, candidate[0], candidate[1])
    return to_candidate[:-1] + to_candidate[1:] - leg_distances(path)


def insertion_order(fixed: Sequence[Coordinates], candidates: Sequence[Coordinates]) -> list[int]:
    """Compose the route and return it as indices.

    Indices ``0 .. len(fixed)-1`` refer to ``fixed``; ``len(fixed) + j``
    refers to ``candidates[j]``. Every index appears exactly once.
    """
    n_fixed = len(fixed)
    order = list(range(n_fixed))
    path = _as_array(fixed)

    for j, candidate in enumerate(candidates):
        if len(order) < 2:
            # No gap to insert into yet
            position = len(order)
        else:
            costs = insertion_costs(path, candidate)
            # argmin returns the first minimum, i.e. the earliest gap on ties
            position = int(np.argmin(costs)) + 1

        order.insert(position, n_fixed + j)
        path = np.insert(path, position, np.asarray(candidate, dtype=np.float64), axis=0)

    return order


def insert(fixed: Sequence[Coordinates], candidates: Sequence[Coordinates]) -> list[Coordinates]:
    """Insert each candidate into ``fixed`` at its cheapest position.

    Example:
        >>> insert([(2.35, 48.85), (7.26, 43.71)], [(4.83, 45.76)])
        [(2.35, 48.85), (4.83, 45.76), (7.26, 43.71)]
    """
    points = list(fixed) + list(candidates)
    composed = [points[i] for i in insertion_order(fixed, candidates)]
    logger.info(f"[COMPOSE] Inserted {len(candidates)} stop(s) into {len(fixed)} fixed waypoint(s)")
    return composed


def path_length(points: Sequence[Coordinates]) -> float:
    """Total great-circle length of a path in kilometres."""
    return float(leg_distances(_as_array(points)).sum())
