"""
Slippy-map (XYZ / Web Mercator) tile arithmetic.

Tiles are addressed as ``(zoom, x, y)`` with ``x`` growing eastwards from the
antimeridian and ``y`` growing southwards from the northern Mercator limit.
"""

import math
from typing import List, NamedTuple, Tuple

# Web Mercator latitude limit
MAX_LATITUDE = 85.05112878

# (min_lon, min_lat, max_lon, max_lat)
Bounds = Tuple[float, float, float, float]


class TileKey(NamedTuple):
    """Identifies one tile; used as the tile cache key."""

    zoom: int
    x: int
    y: int

    def __str__(self) -> str:
        return f"{self.zoom}/{self.x}/{self.y}"


def lonlat_to_tile(lon: float, lat: float, zoom: int) -> TileKey:
    """
    Return the tile covering a coordinate at a zoom level.

    Args:
        lon: Longitude in degrees
        lat: Latitude in degrees (clamped to the Mercator limit)
        zoom: Zoom level

    Returns:
        TileKey of the covering tile
    """
    lat = max(min(lat, MAX_LATITUDE), -MAX_LATITUDE)
    n = 2**zoom
    lat_rad = math.radians(lat)

    x = int(math.floor((lon + 180.0) / 360.0 * n))
    y = int(math.floor((1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0 * n))

    # lon == 180 and lat == -MAX_LATITUDE land one past the last tile
    x = min(max(x, 0), n - 1)
    y = min(max(y, 0), n - 1)

    return TileKey(zoom, x, y)


def tile_bounds(tile: TileKey) -> Bounds:
    """
    Geographic bounding box of a tile.

    Args:
        tile: Tile key

    Returns:
        (min_lon, min_lat, max_lon, max_lat)
    """
    n = 2**tile.zoom

    def _lat(y: int) -> float:
        return math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * y / n))))

    min_lon = tile.x / n * 360.0 - 180.0
    max_lon = (tile.x + 1) / n * 360.0 - 180.0
    return (min_lon, _lat(tile.y + 1), max_lon, _lat(tile.y))


def tiles_for_bbox(bounds: Bounds, zoom: int) -> List[TileKey]:
    """
    All tiles at ``zoom`` intersecting a bounding box, row by row from the north-west.

    Args:
        bounds: (min_lon, min_lat, max_lon, max_lat)
        zoom: Zoom level

    Returns:
        List of TileKeys
    """
    min_lon, min_lat, max_lon, max_lat = bounds
    top_left = lonlat_to_tile(min_lon, max_lat, zoom)
    bottom_right = lonlat_to_tile(max_lon, min_lat, zoom)

    return [
        TileKey(zoom, x, y)
        for y in range(top_left.y, bottom_right.y + 1)
        for x in range(top_left.x, bottom_right.x + 1)
    ]


def neighbor_tiles(tile: TileKey, radius: int = 1) -> List[TileKey]:
    """
    The tile itself followed by the ring of tiles around it.

    ``x`` wraps around the antimeridian; rows beyond the poles are dropped.

    Args:
        tile: Center tile
        radius: Ring width in tiles (0 returns only the center)

    Returns:
        Ordered, de-duplicated list of TileKeys, center first
    """
    n = 2**tile.zoom
    keys: List[TileKey] = [tile]
    seen = {tile}

    for dy in range(-radius, radius + 1):
        y = tile.y + dy
        if y < 0 or y >= n:
            continue
        for dx in range(-radius, radius + 1):
            key = TileKey(tile.zoom, (tile.x + dx) % n, y)
            if key not in seen:
                seen.add(key)
                keys.append(key)

    return keys
