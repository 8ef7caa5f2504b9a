"""
Mutable network graph fed by tile loads.

Nodes and directed edges arrive tile by tile. An edge becomes traversable
only once both of its endpoints are in the graph; edges that reference a node
from a tile that has not been loaded yet are kept aside and promoted as soon
as that node is inserted.
"""

import math
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

try:
    import networkx as nx
except ImportError:
    raise ImportError(
        "NetworkX is required for the network graph. "
        "Install it with: pip install networkx"
    )

from tileplanner.core.routing.distance import Coordinates, CostFunction, geographic_cost
from tileplanner.models.network import NodeRecord


@dataclass(frozen=True)
class Node:
    """
    Represents a node in the network graph.

    Attributes:
        id: Unique node identifier
        coordinates: (longitude, latitude) in WGS84
        cost: Intrinsic cost, used in node-weighted mode
    """

    id: str
    coordinates: Coordinates
    cost: Optional[float] = None

    @classmethod
    def from_record(cls, record: NodeRecord) -> "Node":
        """Build a node from a decoded tile record."""
        return cls(id=record.id, coordinates=tuple(record.coordinates), cost=record.cost)

    def to_dict(self) -> Dict[str, Any]:
        """Convert node to dictionary."""
        return {"id": self.id, "coordinates": list(self.coordinates), "cost": self.cost}


@dataclass(frozen=True)
class Edge:
    """A traversable directed edge with its weight fixed at insertion time."""

    source: str
    target: str
    weight: float


class NetworkGraph:
    """
    Directed network graph that grows as tiles are merged into it.

    Insertion is idempotent: a node or edge that is already present is left
    untouched. All mutation goes through a re-entrant lock so tiles merged
    from several threads cannot interleave.
    """

    def __init__(self, cost_function: Optional[CostFunction] = None):
        """
        Initialize an empty graph.

        Args:
            cost_function: Computes edge weights on insertion
                (default: geographic distance between the endpoints)
        """
        self.cost_function: CostFunction = cost_function or geographic_cost
        self.graph: nx.DiGraph = nx.DiGraph()
        self.nodes: Dict[str, Node] = {}

        # missing endpoint id -> edges waiting on it
        self._deferred: Dict[str, Set[Tuple[str, str]]] = {}
        # edges that became traversable since the last pop_new_edges()
        self._new_edges: List[Edge] = []
        self._lock = threading.RLock()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get_node(self, node_id: str) -> Optional[Node]:
        """
        Look up a node.

        Args:
            node_id: Node ID

        Returns:
            The node, or None if it has not been loaded
        """
        return self.nodes.get(node_id)

    def insert_nodes(self, nodes: Iterable[Node]) -> int:
        """
        Insert nodes, skipping ids that are already present.

        Deferred edges waiting on a newly inserted node are promoted.

        Args:
            nodes: Nodes to insert

        Returns:
            Number of nodes actually added
        """
        added = 0
        with self._lock:
            for node in nodes:
                if node.id in self.nodes:
                    continue

                self.nodes[node.id] = node
                self.graph.add_node(node.id)
                added += 1

                for source, target in sorted(self._deferred.pop(node.id, ())):
                    self._add_edge(source, target)

        return added

    def insert_edges(self, edges: Iterable[Tuple[str, str]]) -> int:
        """
        Insert directed edges given as (source, target) pairs.

        Edges whose endpoints are not both present are deferred.

        Args:
            edges: Edges to insert

        Returns:
            Number of edges that became traversable
        """
        added = 0
        with self._lock:
            for source, target in edges:
                if self._add_edge(source, target):
                    added += 1

        return added

    def _add_edge(self, source: str, target: str) -> bool:
        if source == target or self.graph.has_edge(source, target):
            return False

        missing = next((nid for nid in (source, target) if nid not in self.nodes), None)
        if missing is not None:
            self._deferred.setdefault(missing, set()).add((source, target))
            return False

        weight = float(self.cost_function(self.nodes[source], self.nodes[target]))
        if not math.isfinite(weight) or weight < 0:
            raise ValueError(
                f"Edge {source} -> {target} has invalid weight {weight}; "
                "cost functions must return finite non-negative values"
            )

        self.graph.add_edge(source, target, weight=weight)
        self._new_edges.append(Edge(source, target, weight))
        return True

    def neighbors(self, node_id: str) -> List[Tuple[Edge, Node]]:
        """
        Outgoing traversable edges of a node with their target nodes.

        Args:
            node_id: Node ID

        Returns:
            List of (edge, target node), ordered by target id
        """
        with self._lock:
            if node_id not in self.graph:
                return []

            result = [
                (Edge(node_id, target, data["weight"]), self.nodes[target])
                for target, data in self.graph.succ[node_id].items()
            ]

        result.sort(key=lambda item: item[1].id)
        return result

    def predecessors(self, node_id: str) -> List[Tuple[Edge, Node]]:
        """
        Incoming traversable edges of a node with their source nodes.

        Args:
            node_id: Node ID

        Returns:
            List of (edge, source node), ordered by source id
        """
        with self._lock:
            if node_id not in self.graph:
                return []

            result = [
                (Edge(source, node_id, data["weight"]), self.nodes[source])
                for source, data in self.graph.pred[node_id].items()
            ]

        result.sort(key=lambda item: item[1].id)
        return result

    def get_edge_weight(self, source: str, target: str) -> float:
        """
        Get the weight of a traversable edge.

        Raises:
            ValueError: If the edge doesn't exist
        """
        if not self.graph.has_edge(source, target):
            raise ValueError(f"No edge between {source} and {target}")

        return self.graph[source][target]["weight"]

    def pop_new_edges(self) -> List[Edge]:
        """
        Edges that became traversable since the previous call.

        Returns:
            Edges ordered by (source, target)
        """
        with self._lock:
            edges, self._new_edges = self._new_edges, []

        edges.sort(key=lambda e: (e.source, e.target))
        return edges

    @property
    def deferred_edge_count(self) -> int:
        """Number of edges still waiting for an endpoint."""
        with self._lock:
            return sum(len(pending) for pending in self._deferred.values())

    def get_graph_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the loaded graph.

        Returns:
            Dictionary with graph statistics
        """
        num_nodes = self.graph.number_of_nodes()
        return {
            "num_nodes": num_nodes,
            "num_edges": self.graph.number_of_edges(),
            "deferred_edges": self.deferred_edge_count,
            "num_components": nx.number_weakly_connected_components(self.graph)
            if num_nodes > 0
            else 0,
        }

    def export_to_geojson(self) -> Dict[str, Any]:
        """
        Export the loaded graph to GeoJSON.

        Returns:
            GeoJSON FeatureCollection of node points and edge lines
        """
        features = []

        for node in self.nodes.values():
            features.append(
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": list(node.coordinates)},
                    "properties": {"id": node.id, "cost": node.cost, "type": "node"},
                }
            )

        for source, target, data in self.graph.edges(data=True):
            features.append(
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "LineString",
                        "coordinates": [
                            list(self.nodes[source].coordinates),
                            list(self.nodes[target].coordinates),
                        ],
                    },
                    "properties": {
                        "source": source,
                        "target": target,
                        "weight": data["weight"],
                        "type": "edge",
                    },
                }
            )

        return {"type": "FeatureCollection", "features": features}
