"""
Cost and heuristic functions.

Edge weights are computed once, when an edge is inserted into the graph, by a
``CostFunction(source, target)``. Heuristics estimate the remaining cost
between two coordinates; for A* and NBA* to return optimal paths the heuristic
must never overestimate the true remaining cost and must satisfy the triangle
inequality. :func:`haversine_distance` meets both requirements when edge
weights are themselves geographic distances (:func:`geographic_cost`). With
:func:`node_cost` the same heuristic is *not* guaranteed to be admissible;
use :func:`zero_heuristic` (or Dijkstra) when optimality matters.
"""

from typing import TYPE_CHECKING, Callable, Tuple

import numpy as np

if TYPE_CHECKING:
    from tileplanner.core.routing.graph import Node

Coordinates = Tuple[float, float]

# (source node, target node) -> non-negative edge weight
CostFunction = Callable[["Node", "Node"], float]

# (from coordinates, to coordinates) -> non-negative estimate
HeuristicFunction = Callable[[Coordinates, Coordinates], float]

# Mean Earth radius in meters (IUGG)
EARTH_RADIUS_M = 6371008.8


def haversine_distance(a: Coordinates, b: Coordinates) -> float:
    """
    Great-circle distance between two (lon, lat) points.

    Args:
        a: First point as (longitude, latitude) in degrees
        b: Second point as (longitude, latitude) in degrees

    Returns:
        Distance in meters
    """
    lon1, lat1 = np.radians(a[0]), np.radians(a[1])
    lon2, lat2 = np.radians(b[0]), np.radians(b[1])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2.0) ** 2
    h = min(1.0, float(h))

    return float(2.0 * EARTH_RADIUS_M * np.arcsin(np.sqrt(h)))


def geographic_cost(source: "Node", target: "Node") -> float:
    """Edge-weighted mode: the geographic length of the edge in meters."""
    return haversine_distance(source.coordinates, target.coordinates)


def node_cost(source: "Node", target: "Node") -> float:
    """Node-weighted mode: entering a node costs that node's intrinsic cost."""
    return float(target.cost) if target.cost is not None else 0.0


def zero_heuristic(a: Coordinates, b: Coordinates) -> float:
    """Heuristic that turns A* into Dijkstra. Always admissible."""
    return 0.0
