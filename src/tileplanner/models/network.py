"""
Network data models for the tile service.

This module defines the validated shapes of tile payloads, tile summaries
and location records as they come off the wire.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


def _coerce_identifier(value: Any) -> Any:
    """Node identifiers may be strings or integers on the wire; store them as strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


def _validate_lon_lat(value: Tuple[float, float]) -> Tuple[float, float]:
    lon, lat = value
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"Longitude {lon} outside [-180, 180]")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"Latitude {lat} outside [-90, 90]")
    return value


class NodeRecord(BaseModel):
    """
    A network node as delivered in a tile.

    Attributes:
        id: Unique node identifier
        coordinates: (longitude, latitude) in WGS84
        cost: Intrinsic node cost, used in node-weighted mode
    """

    id: str = Field(..., min_length=1, description="Node identifier")
    coordinates: Tuple[float, float] = Field(..., description="(lon, lat) in WGS84")
    cost: Optional[float] = Field(
        None, ge=0, allow_inf_nan=False, description="Intrinsic node cost"
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_identifier(value)

    @field_validator("coordinates", mode="before")
    @classmethod
    def drop_elevation(cls, value: Any) -> Any:
        """Accept [lon, lat, z] positions by dropping the third ordinate."""
        if isinstance(value, (list, tuple)) and len(value) > 2:
            return tuple(value[:2])
        return value

    @field_validator("coordinates")
    @classmethod
    def check_range(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        return _validate_lon_lat(value)


class EdgeRecord(BaseModel):
    """
    A directed edge as delivered in a tile.

    Attributes:
        source: Source node identifier
        target: Target node identifier
    """

    source: str = Field(..., min_length=1, description="Source node identifier")
    target: str = Field(..., min_length=1, description="Target node identifier")

    @field_validator("source", "target", mode="before")
    @classmethod
    def coerce_ids(cls, value: Any) -> Any:
        return _coerce_identifier(value)


class TilePayload(BaseModel):
    """Decoded content of one network tile."""

    nodes: List[NodeRecord] = Field(default_factory=list)
    edges: List[EdgeRecord] = Field(default_factory=list)

    @property
    def node_count(self) -> int:
        """Number of nodes in the tile."""
        return len(self.nodes)


class LocationRecord(BaseModel):
    """
    Location record returned by the location endpoint or a local index.

    Attributes:
        id: Location identifier (matches a network node id)
        label: Human readable name
        wkt: Geometry as Well-Known Text
    """

    id: str = Field(..., min_length=1)
    label: Optional[str] = None
    wkt: str = Field(..., min_length=1)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_identifier(value)


class Location(BaseModel):
    """
    A resolved origin or destination.

    Attributes:
        id: Network node identifier
        label: Human readable name
        coordinates: (longitude, latitude) in WGS84
    """

    id: str = Field(..., min_length=1)
    label: Optional[str] = None
    coordinates: Tuple[float, float]

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _coerce_identifier(value)

    @field_validator("coordinates")
    @classmethod
    def check_range(cls, value: Tuple[float, float]) -> Tuple[float, float]:
        return _validate_lon_lat(value)

    @property
    def display_name(self) -> str:
        """Label if available, otherwise the identifier."""
        return self.label or self.id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "label": self.label,
            "coordinates": list(self.coordinates),
        }
