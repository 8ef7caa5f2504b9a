"""
TilePlanner - shortest paths over road networks streamed from a tile service.

The network graph is not held in memory up front: tiles are fetched on demand
as the search explores geography.
"""

__version__ = "0.1.0"
