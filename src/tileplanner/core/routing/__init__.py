"""
Shortest path routing over a network streamed from a tile service.

This module provides:
- A network graph that grows as tiles are merged into it
- A single-flight tile cache and slippy-map tile arithmetic
- A density-aware quadtree choosing tile zoom levels
- Dijkstra, A* and bidirectional NBA* planners
"""

from typing import Dict, Type

from tileplanner.core.errors import ConfigurationError
from tileplanner.core.routing.astar import AStar
from tileplanner.core.routing.cache import TileCache, TileSource
from tileplanner.core.routing.dijkstra import Dijkstra
from tileplanner.core.routing.graph import Edge, NetworkGraph, Node
from tileplanner.core.routing.nba_star import NBAStar
from tileplanner.core.routing.planner import PathMetadata, PathPlanner, PathResult, PlannerConfig
from tileplanner.core.routing.quadtree import QuadTreeNode, SpatialQuadTree
from tileplanner.core.routing.tiles import TileKey

PLANNERS: Dict[str, Type[PathPlanner]] = {
    Dijkstra.name: Dijkstra,
    AStar.name: AStar,
    NBAStar.name: NBAStar,
}


def get_planner_class(name: str) -> Type[PathPlanner]:
    """
    Look up a planner by algorithm name.

    Args:
        name: "Dijkstra", "A*" or "NBA*"

    Returns:
        Planner class

    Raises:
        ConfigurationError: If the name is unknown
    """
    try:
        return PLANNERS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown algorithm '{name}'",
            config_key="algorithm",
            suggestions=[f"Use one of: {', '.join(PLANNERS)}"],
        ) from None


__all__ = [
    "AStar",
    "Dijkstra",
    "Edge",
    "NBAStar",
    "NetworkGraph",
    "Node",
    "PathMetadata",
    "PathPlanner",
    "PathResult",
    "PlannerConfig",
    "PLANNERS",
    "QuadTreeNode",
    "SpatialQuadTree",
    "TileCache",
    "TileKey",
    "TileSource",
    "get_planner_class",
]
