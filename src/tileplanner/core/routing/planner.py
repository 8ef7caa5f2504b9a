"""
Shared machinery for the shortest path planners.

A planner owns one query's :class:`NetworkGraph` and :class:`TileCache`. It
grows the graph on demand: before a node is expanded, the tile under it and
the ring of tiles around it are loaded, and any edges that became traversable
as a result are relaxed against the nodes already settled.

Subclasses only decide how the search is driven (:class:`Dijkstra`,
:class:`AStar`, :class:`NBAStar`); loading, timing, timeouts and result
assembly live here.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import BaseModel, Field, model_validator
from shapely.geometry import LineString

from tileplanner.core.errors import ConfigurationError, TimeoutExceeded
from tileplanner.core.routing.cache import TileCache, TileSource
from tileplanner.core.routing.distance import (
    Coordinates,
    CostFunction,
    HeuristicFunction,
    haversine_distance,
)
from tileplanner.core.routing.frontier import SearchFrontier
from tileplanner.core.routing.graph import NetworkGraph, Node
from tileplanner.core.routing.quadtree import SpatialQuadTree
from tileplanner.core.routing.tiles import (
    MAX_LATITUDE,
    Bounds,
    TileKey,
    lonlat_to_tile,
    neighbor_tiles,
)
from tileplanner.utils.logging import PerformanceTimer

# (node, accumulated cost) -> queue priority
PriorityFunction = Callable[[Node, float], float]


class PlannerConfig(BaseModel):
    """
    Configuration for a route query.

    Attributes:
        zoom: Fixed tile zoom, used when no quadtree is built or a
            coordinate falls outside it
        tile_neighborhood: Width of the tile ring loaded around a node
        timeout: Overall deadline for find_path in seconds
        quadtree_min_zoom: Zoom of the quadtree root region
        quadtree_max_zoom: Zoom at which quadtree regions stop splitting
        quadtree_padding: Fraction of the origin/destination extent added
            on every side of the quadtree root
        quadtree_min_span: Minimum padding in degrees
    """

    zoom: int = Field(14, ge=0, le=22)
    tile_neighborhood: int = Field(1, ge=1, le=3)
    timeout: Optional[float] = Field(None, gt=0)
    quadtree_min_zoom: int = Field(10, ge=0, le=22)
    quadtree_max_zoom: int = Field(17, ge=0, le=22)
    quadtree_padding: float = Field(0.1, ge=0)
    quadtree_min_span: float = Field(0.01, ge=0)

    @model_validator(mode="after")
    def check_zoom_range(self) -> "PlannerConfig":
        if self.quadtree_min_zoom > self.quadtree_max_zoom:
            raise ValueError("quadtree_min_zoom must not exceed quadtree_max_zoom")
        return self


@dataclass
class PathMetadata:
    """
    Statistics of one search.

    Attributes:
        algorithm: Name of the planner that produced the path
        total_cost: Sum of edge weights along the path
        nodes_expanded: Nodes popped from the frontier(s)
        tiles_fetched: Tiles fetched and merged into the graph
        tile_requests: Tile load requests, including cache hits
        elapsed_ms: Wall clock time of the query
    """

    algorithm: str
    total_cost: float = 0.0
    nodes_expanded: int = 0
    tiles_fetched: int = 0
    tile_requests: int = 0
    elapsed_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary."""
        return {
            "algorithm": self.algorithm,
            "total_cost": float(self.total_cost),
            "nodes_expanded": self.nodes_expanded,
            "tiles_fetched": self.tiles_fetched,
            "tile_requests": self.tile_requests,
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


@dataclass
class PathResult:
    """
    A shortest path and the statistics of the search that found it.

    Attributes:
        path: Nodes from origin to destination, both inclusive
        metadata: Search statistics
    """

    path: List[Node]
    metadata: PathMetadata = field(default_factory=lambda: PathMetadata(algorithm=""))

    @property
    def total_cost(self) -> float:
        return self.metadata.total_cost

    def get_geometry(self) -> LineString:
        """
        Get path as Shapely LineString.

        Returns:
            LineString geometry (empty for paths with fewer than two nodes)
        """
        if len(self.path) < 2:
            return LineString()

        return LineString(self.get_waypoints())

    def get_waypoints(self) -> List[Coordinates]:
        """
        Get list of waypoint coordinates.

        Returns:
            List of (lon, lat) tuples
        """
        return [node.coordinates for node in self.path]

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert path to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "path": [node.to_dict() for node in self.path],
            "metadata": self.metadata.to_dict(),
        }


class PathPlanner(ABC):
    """
    Base class of the shortest path planners.

    A planner instance serves a single query at a time; its graph and tile
    cache are never shared with another planner.
    """

    name: str = ""

    def __init__(
        self,
        graph: Optional[NetworkGraph] = None,
        zoom: Optional[int] = None,
        tile_source: Optional[TileSource] = None,
        tiles_base_url: Optional[str] = None,
        cost_function: Optional[CostFunction] = None,
        heuristic: HeuristicFunction = haversine_distance,
        config: Optional[PlannerConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the planner.

        Args:
            graph: Graph to search and grow (a new one is created if omitted)
            zoom: Fixed tile zoom, overrides ``config.zoom``
            tile_source: Source of network tiles; None searches ``graph`` as is
            tiles_base_url: Tile service URL, used to create an HTTP tile
                source when ``tile_source`` is not given
            cost_function: Edge weight function for a newly created graph
            heuristic: Remaining-cost estimate between two coordinates
            config: Planner configuration (uses defaults if not provided)
            logger: Logger to report to (defaults to the module logger)

        Raises:
            ConfigurationError: If both a graph and a conflicting cost
                function are given
        """
        self.config = config or PlannerConfig()
        if zoom is not None:
            self.config = PlannerConfig(**{**self.config.model_dump(), "zoom": zoom})

        if graph is not None and cost_function is not None:
            if cost_function is not graph.cost_function:
                raise ConfigurationError(
                    "cost_function conflicts with the cost function of the given graph",
                    config_key="cost_function",
                )

        self.graph = graph if graph is not None else NetworkGraph(cost_function)
        self.heuristic = heuristic
        self.logger = logger or logging.getLogger(__name__)

        self._owns_source = False
        if tile_source is None and tiles_base_url:
            from tileplanner.integrations.tiles.client import (
                TileClientConfig,
                TileServiceClient,
            )

            tile_source = TileServiceClient(TileClientConfig(base_url=tiles_base_url))
            self._owns_source = True

        self.tile_source = tile_source
        self.cache: Optional[TileCache] = (
            TileCache(self.graph, tile_source) if tile_source is not None else None
        )

        self.quadtree: Optional[SpatialQuadTree] = None
        self._quadtree_threshold: Optional[int] = None
        self._loaded_around: Set[str] = set()
        self.nodes_expanded = 0

    @property
    def zoom(self) -> int:
        return self.config.zoom

    async def close(self) -> None:
        """Close the tile source if this planner created it."""
        if self._owns_source and self.tile_source is not None:
            await self.tile_source.close()  # type: ignore[attr-defined]

    async def __aenter__(self) -> "PathPlanner":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def load_tile_quad_tree(
        self, threshold: Optional[int], bounds: Optional[Bounds] = None
    ) -> Optional[SpatialQuadTree]:
        """
        Enable density-driven tile zoom selection.

        Without ``bounds`` the tree is built at the start of the next
        find_path call, over the padded extent of its origin and destination.

        Args:
            threshold: Maximum node count per tile; None keeps the fixed zoom
            bounds: Region to build the tree over right away

        Returns:
            The built quadtree, or None if building is deferred or disabled

        Raises:
            ConfigurationError: If the threshold is below 1 or the planner has no
                tile source to probe
        """
        if threshold is None:
            self.logger.debug(f"No quadtree threshold, using fixed zoom {self.zoom}")
            return None

        if threshold < 1:
            raise ConfigurationError(
                f"Quadtree threshold must be at least 1, got {threshold}",
                config_key="threshold",
                suggestions=["Pass a positive node count, or omit it to keep the fixed zoom"],
            )

        if self.tile_source is None:
            raise ConfigurationError(
                "A tile quadtree needs a tile source to probe",
                config_key="tiles_base_url",
            )

        self._quadtree_threshold = int(threshold)
        self.quadtree = None
        if bounds is None:
            return None

        return await self._build_quadtree(bounds)

    async def _build_quadtree(self, bounds: Bounds) -> SpatialQuadTree:
        tree = SpatialQuadTree(
            self.tile_source,  # type: ignore[arg-type]
            threshold=self._quadtree_threshold,  # type: ignore[arg-type]
            min_zoom=self.config.quadtree_min_zoom,
            max_zoom=self.config.quadtree_max_zoom,
        )
        with PerformanceTimer("Tile quadtree build"):
            await tree.build(bounds)
        self.quadtree = tree
        return tree

    def query_bounds(self, origin: Node, destination: Node) -> Bounds:
        """
        Padded bounding box around an origin and a destination.

        Args:
            origin: Origin node
            destination: Destination node

        Returns:
            (min_lon, min_lat, max_lon, max_lat)
        """
        lons = (origin.coordinates[0], destination.coordinates[0])
        lats = (origin.coordinates[1], destination.coordinates[1])
        padding, min_span = self.config.quadtree_padding, self.config.quadtree_min_span
        pad_lon = max((max(lons) - min(lons)) * padding, min_span)
        pad_lat = max((max(lats) - min(lats)) * padding, min_span)

        return (
            max(min(lons) - pad_lon, -180.0),
            max(min(lats) - pad_lat, -MAX_LATITUDE),
            min(max(lons) + pad_lon, 180.0),
            min(max(lats) + pad_lat, MAX_LATITUDE),
        )

    def tile_for(self, coordinates: Coordinates) -> TileKey:
        """
        Tile covering a coordinate at the zoom chosen for its region.

        Args:
            coordinates: (lon, lat)

        Returns:
            TileKey
        """
        lon, lat = coordinates
        zoom = self.quadtree.zoom_for(lon, lat) if self.quadtree is not None else None
        return lonlat_to_tile(lon, lat, self.zoom if zoom is None else zoom)

    async def ensure_nodes_loaded(self, node_ids: Iterable[str]) -> None:
        """
        Load the tiles around nodes that are about to be expanded.

        The loads of all given nodes are awaited jointly.

        Args:
            node_ids: Nodes to load the surroundings of
        """
        if self.cache is None:
            return

        pending = [nid for nid in dict.fromkeys(node_ids) if nid not in self._loaded_around]
        if not pending:
            return

        tiles: List[TileKey] = []
        for node_id in pending:
            node = self.graph.get_node(node_id)
            if node is not None:
                tiles.extend(
                    neighbor_tiles(self.tile_for(node.coordinates), self.config.tile_neighborhood)
                )

        await self.cache.ensure_tiles_loaded(tiles)
        self._loaded_around.update(pending)

    async def find_path(self, origin: Any, destination: Any) -> Optional[PathResult]:
        """
        Find the shortest path between two locations.

        Args:
            origin: Origin with ``id`` and ``coordinates`` (Location or Node)
            destination: Destination with ``id`` and ``coordinates``

        Returns:
            PathResult, or None if the destination cannot be reached

        Raises:
            ConfigurationError: If an endpoint has no valid coordinates
            TileFetchError: If a tile needed by the search could not be fetched
            TileDecodeError: If a tile payload was malformed
            TimeoutExceeded: If the configured deadline elapsed
        """
        origin_node = self._as_node(origin, "origin")
        destination_node = self._as_node(destination, "destination")
        self.nodes_expanded = 0

        with PerformanceTimer(f"{self.name} query") as timer:
            if origin_node.id == destination_node.id:
                found: Optional[Tuple[List[str], float]] = ([origin_node.id], 0.0)
                if origin_node.id not in self.graph:
                    self.graph.insert_nodes([origin_node])
            else:
                found = await self._run_with_deadline(origin_node, destination_node)

        if found is None:
            self.logger.info(
                f"{self.name}: no path from {origin_node.id} to {destination_node.id} "
                f"({self.nodes_expanded} nodes expanded)"
            )
            return None

        path_ids, total_cost = found
        metadata = PathMetadata(
            algorithm=self.name,
            total_cost=total_cost,
            nodes_expanded=self.nodes_expanded,
            tiles_fetched=self.cache.tiles_fetched if self.cache else 0,
            tile_requests=self.cache.requests if self.cache else 0,
            elapsed_ms=timer.elapsed_ms,
        )
        path = [self.graph.nodes[node_id] for node_id in path_ids]

        self.logger.info(
            f"{self.name}: path with {len(path)} nodes, cost {total_cost:.3f}, "
            f"{metadata.nodes_expanded} nodes expanded, {metadata.tiles_fetched} tiles fetched"
        )
        return PathResult(path=path, metadata=metadata)

    async def _run_with_deadline(
        self, origin: Node, destination: Node
    ) -> Optional[Tuple[List[str], float]]:
        try:
            if self.config.timeout is None:
                return await self._prepare_and_search(origin, destination)

            return await asyncio.wait_for(
                self._prepare_and_search(origin, destination), timeout=self.config.timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                f"{self.name}: query timed out after {self.config.timeout}s "
                f"({self.nodes_expanded} nodes expanded)"
            )
            raise TimeoutExceeded(
                f"Route query exceeded its {self.config.timeout}s deadline",
                timeout=self.config.timeout,
            ) from None
        finally:
            if self.cache is not None:
                self.cache.cancel_pending()

    async def _prepare_and_search(
        self, origin: Node, destination: Node
    ) -> Optional[Tuple[List[str], float]]:
        if self._quadtree_threshold is not None and self.quadtree is None:
            await self._build_quadtree(self.query_bounds(origin, destination))

        await self._load_endpoints(origin, destination)

        # Edges loaded before this query have no settled endpoints to relax against
        self.graph.pop_new_edges()

        return await self.search(self.graph.nodes[origin.id], self.graph.nodes[destination.id])

    async def _load_endpoints(self, origin: Node, destination: Node) -> None:
        """Load both endpoints' tiles and insert endpoints no tile delivered."""
        if self.cache is not None:
            radius = self.config.tile_neighborhood
            await self.cache.ensure_tiles_loaded(
                neighbor_tiles(self.tile_for(origin.coordinates), radius)
                + neighbor_tiles(self.tile_for(destination.coordinates), radius)
            )

        for endpoint in (origin, destination):
            if endpoint.id not in self.graph:
                self.logger.debug(
                    f"Node {endpoint.id} not found in the loaded tiles, "
                    "anchoring it at its location coordinates"
                )
                self.graph.insert_nodes([endpoint])

    @abstractmethod
    async def search(
        self, origin: Node, destination: Node
    ) -> Optional[Tuple[List[str], float]]:
        """
        Run the search between two graph nodes.

        Returns:
            (node ids from origin to destination, total cost), or None
        """

    async def _run_unidirectional(
        self, origin: Node, destination: Node, priority: PriorityFunction
    ) -> Optional[Tuple[List[str], float]]:
        """
        Best-first search from origin until destination is settled.

        Args:
            origin: Start node
            destination: Goal node
            priority: Queue key of a node reached at a given cost

        Returns:
            (node ids, total cost), or None if the frontier runs empty
        """
        frontier = SearchFrontier()
        frontier.push(origin.id, 0.0, priority(origin, 0.0))

        while True:
            top = frontier.peek()
            if top is None:
                return None

            node_id = top[1]
            await self.ensure_nodes_loaded([node_id])
            self._relax_new_edges(frontier, priority)
            if frontier.peek() != top:
                continue

            frontier.pop()
            self.nodes_expanded += 1

            if node_id == destination.id:
                return frontier.path_to(node_id), frontier.costs[node_id]

            cost = frontier.costs[node_id]
            for edge, neighbor in self.graph.neighbors(node_id):
                new_cost = cost + edge.weight
                frontier.relax(neighbor.id, new_cost, priority(neighbor, new_cost), node_id)

    def _relax_new_edges(self, frontier: SearchFrontier, priority: PriorityFunction) -> None:
        """Relax edges that appeared after their source was already settled."""
        for edge in self.graph.pop_new_edges():
            if edge.source not in frontier.settled:
                continue
            target = self.graph.nodes[edge.target]
            new_cost = frontier.costs[edge.source] + edge.weight
            frontier.relax(edge.target, new_cost, priority(target, new_cost), edge.source)

    def _as_node(self, endpoint: Any, role: str) -> Node:
        node_id = getattr(endpoint, "id", None)
        coordinates = getattr(endpoint, "coordinates", None)
        if node_id is None or coordinates is None:
            raise ConfigurationError(
                f"The {role} must have an id and coordinates",
                config_key=role,
            )

        try:
            lon, lat = (float(c) for c in list(coordinates)[:2])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"The {role} has invalid coordinates: {coordinates!r}",
                config_key=role,
            ) from e

        if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0) or not (
            math.isfinite(lon) and math.isfinite(lat)
        ):
            raise ConfigurationError(
                f"The {role} coordinates ({lon}, {lat}) are outside the WGS84 range",
                config_key=role,
            )

        existing = self.graph.get_node(str(node_id))
        if existing is not None:
            return existing
        return Node(id=str(node_id), coordinates=(lon, lat), cost=getattr(endpoint, "cost", None))
