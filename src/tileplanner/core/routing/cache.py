"""
Per-query tile cache with single-flight loading.

Each tile key is fetched and merged into the network graph at most once.
Callers that ask for a tile while it is being fetched wait on the same
in-flight task instead of issuing a second request.
"""

import asyncio
import logging
from typing import Dict, Iterable, Protocol, Set

from tileplanner.core.errors import TileDecodeError
from tileplanner.core.routing.graph import NetworkGraph, Node
from tileplanner.core.routing.tiles import TileKey
from tileplanner.models.network import TilePayload

logger = logging.getLogger(__name__)


class TileSource(Protocol):
    """Anything that can deliver network tiles."""

    async def fetch_tile(self, tile: TileKey) -> TilePayload:
        """Fetch and decode one tile. Raises TileFetchError or TileDecodeError."""
        ...

    async def count_nodes(self, tile: TileKey) -> int:
        """Number of nodes in a tile, used to size the quadtree."""
        ...


class TileCache:
    """
    Memoizes tile loads for one query.

    Attributes:
        graph: Graph that loaded tiles are merged into
        source: Tile source used for fetching
        tiles_fetched: Number of tiles fetched and merged
        requests: Number of ensure_tile_loaded calls
    """

    def __init__(self, graph: NetworkGraph, source: TileSource) -> None:
        """
        Initialize the cache.

        Args:
            graph: Graph that loaded tiles are merged into
            source: Tile source used for fetching
        """
        self.graph = graph
        self.source = source
        self.tiles_fetched = 0
        self.requests = 0

        self._resolved: Set[TileKey] = set()
        self._in_flight: Dict[TileKey, "asyncio.Task[None]"] = {}
        self._lock = asyncio.Lock()

    def is_resolved(self, tile: TileKey) -> bool:
        """Whether a tile has already been merged into the graph."""
        return tile in self._resolved

    async def ensure_tile_loaded(self, tile: TileKey) -> None:
        """
        Make sure a tile is merged into the graph.

        Args:
            tile: Tile to load

        Raises:
            TileFetchError: If the tile could not be fetched
            TileDecodeError: If the tile payload was malformed
        """
        self.requests += 1
        if tile in self._resolved:
            return

        async with self._lock:
            if tile in self._resolved:
                return
            task = self._in_flight.get(tile)
            if task is None:
                task = asyncio.get_running_loop().create_task(self._load(tile))
                self._in_flight[tile] = task
            else:
                logger.debug(f"Joining in-flight fetch of tile {tile}")

        # A cancelled waiter must not cancel the fetch other callers share
        await asyncio.shield(task)

    async def ensure_tiles_loaded(self, tiles: Iterable[TileKey]) -> None:
        """
        Load several tiles concurrently and wait for all of them.

        Args:
            tiles: Tiles to load
        """
        pending = [t for t in dict.fromkeys(tiles) if t not in self._resolved]
        if not pending:
            return

        await asyncio.gather(*(self.ensure_tile_loaded(t) for t in pending))

    async def _load(self, tile: TileKey) -> None:
        try:
            logger.debug(f"Fetching tile {tile}")
            payload = await self.source.fetch_tile(tile)
            self.merge(tile, payload)
        finally:
            self._in_flight.pop(tile, None)

    def merge(self, tile: TileKey, payload: TilePayload) -> None:
        """
        Merge a decoded tile into the graph and mark it resolved.

        Args:
            tile: Tile key
            payload: Decoded tile content

        Raises:
            TileDecodeError: If the tile yields an edge the cost function cannot weigh
        """
        try:
            added_nodes = self.graph.insert_nodes(Node.from_record(n) for n in payload.nodes)
            added_edges = self.graph.insert_edges((e.source, e.target) for e in payload.edges)
        except ValueError as e:
            raise TileDecodeError(str(e), tile=tile) from e

        self._resolved.add(tile)
        self.tiles_fetched += 1

        logger.debug(
            f"Merged tile {tile}: {added_nodes} new nodes, {added_edges} new edges",
            extra={"tile": str(tile)},
        )

    def cancel_pending(self) -> int:
        """
        Abandon all in-flight fetches.

        Returns:
            Number of fetches cancelled
        """
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        self._in_flight.clear()

        if tasks:
            logger.debug(f"Cancelled {len(tasks)} in-flight tile fetches")
        return len(tasks)
