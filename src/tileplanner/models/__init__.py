"""
Data models and schemas.
"""

from .network import EdgeRecord, Location, LocationRecord, NodeRecord, TilePayload

__all__ = [
    "EdgeRecord",
    "Location",
    "LocationRecord",
    "NodeRecord",
    "TilePayload",
]
