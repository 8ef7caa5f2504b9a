"""
Density-aware quadtree over the query region.

The tree decides which zoom level to fetch tiles at: regions where tiles are
dense with nodes get finer (smaller) tiles, sparse regions keep coarse ones.
A region's node count is the largest node count among the tiles at the
region's zoom that intersect it, so the threshold bounds the size of any
single tile fetch.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from tileplanner.core.routing.cache import TileSource
from tileplanner.core.routing.tiles import Bounds, TileKey, tiles_for_bbox

logger = logging.getLogger(__name__)


@dataclass
class QuadTreeNode:
    """
    A region of the quadtree.

    Attributes:
        bounds: (min_lon, min_lat, max_lon, max_lat)
        zoom: Tile zoom level used for this region
        node_count: Largest tile node count in the region at ``zoom``
        children: NW, NE, SW, SE quadrants, or None for a leaf
    """

    bounds: Bounds
    zoom: int
    node_count: int = 0
    children: Optional[List["QuadTreeNode"]] = None

    @property
    def is_leaf(self) -> bool:
        return self.children is None

    def contains(self, lon: float, lat: float) -> bool:
        min_lon, min_lat, max_lon, max_lat = self.bounds
        return min_lon <= lon <= max_lon and min_lat <= lat <= max_lat

    def quadrants(self) -> List[Bounds]:
        """Bounds of the NW, NE, SW and SE quadrants."""
        min_lon, min_lat, max_lon, max_lat = self.bounds
        mid_lon = (min_lon + max_lon) / 2.0
        mid_lat = (min_lat + max_lat) / 2.0
        return [
            (min_lon, mid_lat, mid_lon, max_lat),
            (mid_lon, mid_lat, max_lon, max_lat),
            (min_lon, min_lat, mid_lon, mid_lat),
            (mid_lon, min_lat, max_lon, mid_lat),
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Convert the subtree to a nested dictionary."""
        data: Dict[str, Any] = {
            "bounds": list(self.bounds),
            "zoom": self.zoom,
            "node_count": self.node_count,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


class SpatialQuadTree:
    """
    Quadtree that picks tile zoom levels by node density.

    Built level by level: the tiles needed to size every region of a level
    are probed concurrently, then regions over the threshold are split.
    """

    def __init__(
        self,
        source: TileSource,
        threshold: int,
        min_zoom: int = 10,
        max_zoom: int = 17,
    ) -> None:
        """
        Initialize the quadtree.

        Args:
            source: Tile source answering node count probes
            threshold: Maximum node count allowed per tile
            min_zoom: Zoom level of the root region
            max_zoom: Zoom level at which regions stop splitting

        Raises:
            ValueError: If the threshold or zoom range is invalid
        """
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        if not 0 <= min_zoom <= max_zoom:
            raise ValueError(f"Invalid zoom range [{min_zoom}, {max_zoom}]")

        self.source = source
        self.threshold = threshold
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.root: Optional[QuadTreeNode] = None

        self._counts: Dict[TileKey, int] = {}

    @property
    def probes(self) -> int:
        """Number of distinct tiles probed while building."""
        return len(self._counts)

    async def build(self, bounds: Bounds) -> QuadTreeNode:
        """
        Build the tree over a bounding box.

        Args:
            bounds: (min_lon, min_lat, max_lon, max_lat) of the query region

        Returns:
            Root node
        """
        self.root = QuadTreeNode(bounds=bounds, zoom=self.min_zoom)
        level = [self.root]

        while level:
            await self._probe(
                tile for region in level for tile in tiles_for_bbox(region.bounds, region.zoom)
            )

            next_level: List[QuadTreeNode] = []
            for region in level:
                region.node_count = self._region_count(region)
                if region.node_count > self.threshold and region.zoom < self.max_zoom:
                    region.children = [
                        QuadTreeNode(bounds=quadrant, zoom=region.zoom + 1)
                        for quadrant in region.quadrants()
                    ]
                    next_level.extend(region.children)
            level = next_level

        logger.info(
            f"Built tile quadtree: depth={self.depth()}, "
            f"leaves={sum(1 for _ in self.leaves())}, probes={self.probes}, "
            f"threshold={self.threshold}"
        )
        return self.root

    async def _probe(self, tiles: Any) -> None:
        missing = [t for t in dict.fromkeys(tiles) if t not in self._counts]
        if not missing:
            return

        counts = await asyncio.gather(*(self.source.count_nodes(t) for t in missing))
        for tile, count in zip(missing, counts):
            self._counts[tile] = count

    def _region_count(self, region: QuadTreeNode) -> int:
        return max(self._counts[t] for t in tiles_for_bbox(region.bounds, region.zoom))

    def zoom_for(self, lon: float, lat: float) -> Optional[int]:
        """
        Zoom level of the leaf containing a coordinate.

        Args:
            lon: Longitude
            lat: Latitude

        Returns:
            Leaf zoom, or None if the coordinate lies outside the tree
        """
        if self.root is None or not self.root.contains(lon, lat):
            return None

        region = self.root
        while region.children is not None:
            region = next(child for child in region.children if child.contains(lon, lat))
        return region.zoom

    def leaves(self) -> Iterator[QuadTreeNode]:
        """Iterate over leaf regions, depth first in NW, NE, SW, SE order."""
        if self.root is None:
            return
        stack = [self.root]
        while stack:
            region = stack.pop()
            if region.children is None:
                yield region
            else:
                stack.extend(reversed(region.children))

    def depth(self) -> int:
        """Number of levels in the tree (0 if not built)."""
        if self.root is None:
            return 0
        return max(leaf.zoom for leaf in self.leaves()) - self.min_zoom + 1
