"""
Origin and destination resolution.

Identifiers are resolved either through the tile service's location endpoint
or through a local JSON index file holding the same ``{id, label, wkt}``
records, stored as a list of ``[id, record]`` pairs or an object keyed by id.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from tileplanner.core.errors import LocationResolutionError
from tileplanner.integrations.tiles.parser import TileResponseParser
from tileplanner.models.network import Location

logger = logging.getLogger(__name__)


class LocalLocationIndex:
    """Location records loaded from a local index file."""

    def __init__(self, records: Dict[str, Dict[str, Any]]) -> None:
        """
        Initialize the index.

        Args:
            records: Location records keyed by identifier
        """
        self.records = records
        self.parser = TileResponseParser()

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, identifier: object) -> bool:
        return str(identifier) in self.records

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "LocalLocationIndex":
        """
        Load an index file.

        Args:
            path: Path to the JSON index

        Returns:
            LocalLocationIndex

        Raises:
            LocationResolutionError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise LocationResolutionError(
                f"Cannot read location index {path}: {e}",
                details={"path": str(path)},
            ) from e
        except ValueError as e:
            raise LocationResolutionError(
                f"Location index {path} is not valid JSON",
                details={"path": str(path), "error": str(e)},
            ) from e

        if isinstance(data, dict):
            entries = list(data.items())
        elif isinstance(data, list) and all(
            isinstance(entry, (list, tuple)) and len(entry) == 2 for entry in data
        ):
            entries = [tuple(entry) for entry in data]
        else:
            raise LocationResolutionError(
                f"Location index {path} must be an object or a list of [id, record] pairs",
                details={"path": str(path)},
            )

        records: Dict[str, Dict[str, Any]] = {}
        for key, record in entries:
            if isinstance(record, dict):
                records[str(key)] = record

        logger.info(f"Loaded {len(records)} locations from {path}")
        return cls(records)

    def resolve(self, identifier: str) -> Location:
        """
        Resolve an identifier.

        Args:
            identifier: Location identifier

        Returns:
            Location with coordinates

        Raises:
            LocationResolutionError: If the identifier is missing or its
                geometry cannot be decoded
        """
        record = self.records.get(str(identifier))
        if record is None:
            raise LocationResolutionError(
                f"Location '{identifier}' not found in the local index",
                identifier=str(identifier),
            )

        return self.parser.parse_location(
            {"id": identifier, **record}, identifier=str(identifier)
        )


async def resolve_locations(
    identifiers: Sequence[str],
    client: Optional[Any] = None,
    index: Optional[LocalLocationIndex] = None,
) -> List[Location]:
    """
    Resolve several identifiers, concurrently when a service is used.

    Args:
        identifiers: Identifiers to resolve, in order
        client: Object with an async ``resolve_location(identifier)``
        index: Local index, preferred over ``client`` when given

    Returns:
        Locations in the order of ``identifiers``

    Raises:
        LocationResolutionError: If any identifier cannot be resolved
    """
    if index is not None:
        logger.debug("Resolving locations from local index file")
        return [index.resolve(identifier) for identifier in identifiers]

    if client is None:
        raise LocationResolutionError(
            "No location service or local index to resolve locations with"
        )

    logger.debug("Resolving locations from location API")
    return list(
        await asyncio.gather(*(client.resolve_location(identifier) for identifier in identifiers))
    )
