"""
Tile service response parser.

Decodes tile payloads, tile summaries and location records into the models
in :mod:`tileplanner.models.network`.
"""

import logging
from typing import Any, Dict, List, Optional

import shapely.wkt
from pydantic import ValidationError
from shapely.errors import ShapelyError
from shapely.geometry import Point

from tileplanner.core.errors import LocationResolutionError, TileDecodeError
from tileplanner.models.network import (
    EdgeRecord,
    Location,
    LocationRecord,
    NodeRecord,
    TilePayload,
)

logger = logging.getLogger(__name__)


def _validation_details(error: ValidationError) -> Dict[str, Any]:
    return {
        "errors": error.errors(include_url=False, include_context=False, include_input=False)
    }


class TileResponseParser:
    """Parser for tile service responses."""

    # Keys under which tile summaries report their node count
    COUNT_KEYS = ("nodeCount", "node_count", "count")

    def parse_tile(self, data: Any, tile: Optional[Any] = None) -> TilePayload:
        """
        Decode a tile payload.

        Accepts either ``{"nodes": [...], "edges": [...]}`` or a GeoJSON
        FeatureCollection whose Point features are nodes and whose features
        carrying ``source``/``target`` properties are edges.

        Args:
            data: Parsed JSON body
            tile: Tile key, for error reporting

        Returns:
            TilePayload

        Raises:
            TileDecodeError: If the payload cannot be decoded
        """
        if not isinstance(data, dict):
            raise TileDecodeError(
                f"Tile payload must be a JSON object, got {type(data).__name__}", tile=tile
            )

        is_collection = data.get("type") == "FeatureCollection"
        if not is_collection and "nodes" not in data and "edges" not in data:
            raise TileDecodeError(
                "Tile payload has neither nodes/edges nor a FeatureCollection",
                tile=tile,
                details={"keys": sorted(str(k) for k in data)},
            )

        try:
            if is_collection:
                payload = self._parse_feature_collection(data, tile=tile)
            else:
                payload = TilePayload.model_validate(
                    {"nodes": data.get("nodes") or [], "edges": data.get("edges") or []}
                )
        except ValidationError as e:
            raise TileDecodeError(
                f"Malformed tile payload: {e.error_count()} validation error(s)",
                tile=tile,
                details=_validation_details(e),
            ) from e

        logger.debug(
            f"Decoded tile {tile}: {len(payload.nodes)} nodes, {len(payload.edges)} edges"
        )
        return payload

    def _parse_feature_collection(
        self, data: Dict[str, Any], tile: Optional[Any] = None
    ) -> TilePayload:
        nodes: List[NodeRecord] = []
        edges: List[EdgeRecord] = []

        features = data.get("features")
        if features is None:
            features = []
        if not isinstance(features, list):
            raise TileDecodeError(
                f"FeatureCollection features must be a list, got {type(features).__name__}",
                tile=tile,
            )

        for index, feature in enumerate(features):
            if not isinstance(feature, dict):
                raise TileDecodeError(
                    f"Feature {index} must be a JSON object", tile=tile, details={"index": index}
                )
            properties = feature.get("properties") or {}
            geometry = feature.get("geometry") or {}
            for member, value in (("properties", properties), ("geometry", geometry)):
                if not isinstance(value, dict):
                    raise TileDecodeError(
                        f"Feature {index} {member} must be a JSON object, "
                        f"got {type(value).__name__}",
                        tile=tile,
                        details={"index": index, "member": member},
                    )

            if "source" in properties and "target" in properties:
                edges.append(
                    EdgeRecord(source=properties["source"], target=properties["target"])
                )
            elif geometry.get("type") == "Point":
                nodes.append(
                    NodeRecord(
                        id=properties.get("id", feature.get("id")),
                        coordinates=geometry.get("coordinates"),
                        cost=properties.get("cost"),
                    )
                )

        return TilePayload(nodes=nodes, edges=edges)

    def parse_summary(self, data: Any, tile: Optional[Any] = None) -> int:
        """
        Extract the node count from a tile summary.

        Args:
            data: Parsed JSON body
            tile: Tile key, for error reporting

        Returns:
            Node count

        Raises:
            TileDecodeError: If no valid count is present
        """
        if isinstance(data, dict):
            for key in self.COUNT_KEYS:
                value = data.get(key)
                if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
                    return value

        raise TileDecodeError("Tile summary has no valid node count", tile=tile)

    def parse_location(self, data: Any, identifier: Optional[str] = None) -> Location:
        """
        Decode a location record into coordinates.

        Points give their own coordinates; other geometries are reduced to a
        representative point that lies within them.

        Args:
            data: Record with ``id``, ``label`` and ``wkt``
            identifier: Requested identifier, for error reporting

        Returns:
            Location

        Raises:
            LocationResolutionError: If the record or its geometry is invalid
        """
        try:
            record = LocationRecord.model_validate(data)
        except ValidationError as e:
            raise LocationResolutionError(
                f"Invalid location record for '{identifier}'",
                identifier=identifier,
                details=_validation_details(e),
            ) from e

        try:
            geometry = shapely.wkt.loads(record.wkt)
        except (ShapelyError, ValueError, TypeError) as e:
            raise LocationResolutionError(
                f"Cannot decode geometry of location '{record.id}'",
                identifier=record.id,
                details={"wkt": record.wkt, "error": str(e)},
            ) from e

        if geometry.is_empty:
            raise LocationResolutionError(
                f"Location '{record.id}' has an empty geometry",
                identifier=record.id,
                details={"wkt": record.wkt},
            )

        point = geometry if isinstance(geometry, Point) else geometry.representative_point()

        try:
            return Location(id=record.id, label=record.label, coordinates=(point.x, point.y))
        except ValidationError as e:
            raise LocationResolutionError(
                f"Location '{record.id}' lies outside the WGS84 range",
                identifier=record.id,
                details={"coordinates": [point.x, point.y]},
            ) from e
