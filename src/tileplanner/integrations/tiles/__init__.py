"""
Tile service integration.

Provides access to a network tile service through:
- Tile and tile summary downloads with retries and rate limiting
- Location lookups via the service or a local index file
"""

from tileplanner.integrations.tiles.client import (
    TileClientConfig,
    TileServiceClient,
    validate_tiles_url,
)
from tileplanner.integrations.tiles.locations import LocalLocationIndex, resolve_locations
from tileplanner.integrations.tiles.parser import TileResponseParser

__all__ = [
    "TileServiceClient",
    "TileClientConfig",
    "TileResponseParser",
    "LocalLocationIndex",
    "resolve_locations",
    "validate_tiles_url",
]
