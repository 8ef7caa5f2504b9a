"""
Shared fixtures for routing tests.

``StaticTileSource`` serves a fixed in-memory network at any zoom level: a
tile holds the nodes whose coordinates fall into it and the edges whose
source node does, so edges that cross tile borders arrive before their
target node and exercise edge deferral.
"""

import asyncio
import random
from typing import Any, Callable, Iterable, List, Optional, Sequence, Set, Tuple

import pytest

from tileplanner.core.errors import TileFetchError
from tileplanner.core.routing.tiles import TileKey, lonlat_to_tile
from tileplanner.models.network import EdgeRecord, NodeRecord, TilePayload

# (id, lon, lat) or (id, lon, lat, cost)
NodeSpec = Tuple[Any, ...]
EdgeSpec = Tuple[str, str]


class StaticTileSource:
    """In-memory TileSource that records every fetch and probe."""

    def __init__(
        self,
        nodes: Iterable[NodeSpec],
        edges: Iterable[EdgeSpec],
        failing: Optional[Iterable[TileKey]] = None,
        delay: float = 0.0,
    ) -> None:
        self.nodes: List[NodeRecord] = [
            NodeRecord(
                id=row[0],
                coordinates=(row[1], row[2]),
                cost=row[3] if len(row) > 3 else None,
            )
            for row in nodes
        ]
        self.edges: List[EdgeSpec] = [(str(s), str(t)) for s, t in edges]
        self.failing: Set[TileKey] = set(failing or ())
        self.delay = delay

        self.fetches: List[TileKey] = []
        self.probes: List[TileKey] = []

    def _nodes_in(self, tile: TileKey) -> List[NodeRecord]:
        return [
            n
            for n in self.nodes
            if lonlat_to_tile(n.coordinates[0], n.coordinates[1], tile.zoom) == tile
        ]

    async def fetch_tile(self, tile: TileKey) -> TilePayload:
        self.fetches.append(tile)
        if self.delay:
            await asyncio.sleep(self.delay)
        if tile in self.failing:
            raise TileFetchError(f"Tile {tile} unavailable", tile=tile, status_code=503)

        nodes = self._nodes_in(tile)
        ids = {n.id for n in nodes}
        edges = [EdgeRecord(source=s, target=t) for s, t in self.edges if s in ids]
        return TilePayload(nodes=nodes, edges=edges)

    async def count_nodes(self, tile: TileKey) -> int:
        self.probes.append(tile)
        return len(self._nodes_in(tile))


def random_network(
    seed: int,
    count: int = 40,
    origin: Tuple[float, float] = (0.30, 0.10),
    span: float = 0.05,
    max_edge: float = 0.015,
) -> Tuple[List[NodeSpec], List[EdgeSpec]]:
    """
    Random geometric network near the equator.

    Nodes closer than ``max_edge`` degrees are joined; most links are two-way,
    some one-way, so forward and backward searches see different graphs.
    """
    rng = random.Random(seed)
    nodes = [
        (f"n{i:03d}", origin[0] + rng.random() * span, origin[1] + rng.random() * span)
        for i in range(count)
    ]

    edges: List[EdgeSpec] = []
    for i, a in enumerate(nodes):
        for b in nodes[i + 1 :]:
            if abs(a[1] - b[1]) <= max_edge and abs(a[2] - b[2]) <= max_edge:
                roll = rng.random()
                if roll < 0.7:
                    edges.extend([(a[0], b[0]), (b[0], a[0])])
                elif roll < 0.85:
                    edges.append((a[0], b[0]))
                else:
                    edges.append((b[0], a[0]))
    return nodes, edges


@pytest.fixture
def make_source() -> Callable[..., StaticTileSource]:
    """Factory for in-memory tile sources."""
    return StaticTileSource


@pytest.fixture
def make_random_network() -> Callable[..., Tuple[List[NodeSpec], List[EdgeSpec]]]:
    """Factory for seeded random networks."""
    return random_network


@pytest.fixture
def square_network() -> Tuple[List[NodeSpec], List[EdgeSpec]]:
    """Four nodes, one per quadrant of a 2x2 zoom-1 tile grid, chained a-b-c-d."""
    nodes = [
        ("a", -10.0, 10.0),
        ("b", 10.0, 10.0),
        ("c", 10.0, -10.0),
        ("d", -10.0, -10.0),
    ]
    edges = [("a", "b"), ("b", "a"), ("b", "c"), ("c", "b"), ("c", "d"), ("d", "c")]
    return nodes, edges


@pytest.fixture
def node_weighted_network() -> Tuple[List[NodeSpec], List[EdgeSpec]]:
    """Two parallel two-edge routes from s to t through nodes of different cost."""
    nodes = [
        ("s", 0.300, 0.100, 0.0),
        ("expensive", 0.305, 0.104, 9.0),
        ("cheap", 0.305, 0.096, 2.0),
        ("t", 0.310, 0.100, 1.0),
    ]
    edges = [("s", "expensive"), ("expensive", "t"), ("s", "cheap"), ("cheap", "t")]
    return nodes, edges


def path_ids(result: Sequence) -> List[str]:
    return [node.id for node in result]


@pytest.fixture
def ids() -> Callable[[Sequence], List[str]]:
    """Extract node ids from a path."""
    return path_ids

