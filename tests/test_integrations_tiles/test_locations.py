"""
Tests for location resolution from a local index or the location service.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from tileplanner.core.errors import LocationResolutionError
from tileplanner.integrations.tiles.locations import LocalLocationIndex, resolve_locations
from tileplanner.models.network import Location

RECORDS = {
    "1": {"label": "Harbour", "wkt": "POINT (13.40 52.50)"},
    "2": {"label": "Station", "wkt": "POINT (13.45 52.52)"},
}


@pytest.fixture
def index_file(tmp_path: Path) -> Path:
    """Index stored as an object keyed by id."""
    path = tmp_path / "index.json"
    path.write_text(json.dumps(RECORDS))
    return path


class TestLocalLocationIndex:
    """Tests for LocalLocationIndex."""

    def test_from_object(self, index_file):
        index = LocalLocationIndex.from_file(index_file)

        assert len(index) == 2
        assert 1 in index
        assert index.resolve("2").coordinates == (13.45, 52.52)

    def test_from_pairs(self, tmp_path):
        path = tmp_path / "pairs.json"
        path.write_text(json.dumps([[1, RECORDS["1"]], [2, RECORDS["2"]], [3, "ignored"]]))

        index = LocalLocationIndex.from_file(path)

        assert len(index) == 2
        assert index.resolve("1").label == "Harbour"

    def test_missing_identifier(self, index_file):
        index = LocalLocationIndex.from_file(index_file)

        with pytest.raises(LocationResolutionError) as exc_info:
            index.resolve("99")

        assert exc_info.value.details["identifier"] == "99"

    def test_missing_file(self, tmp_path):
        with pytest.raises(LocationResolutionError):
            LocalLocationIndex.from_file(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(LocationResolutionError):
            LocalLocationIndex.from_file(path)

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text(json.dumps([1, 2, 3]))

        with pytest.raises(LocationResolutionError):
            LocalLocationIndex.from_file(path)


class TestResolveLocations:
    """Tests for resolve_locations."""

    @pytest.mark.asyncio
    async def test_index_preferred(self, index_file):
        client = AsyncMock()

        origin, destination = await resolve_locations(
            ["1", "2"], client=client, index=LocalLocationIndex.from_file(index_file)
        )

        assert (origin.id, destination.id) == ("1", "2")
        client.resolve_location.assert_not_called()

    @pytest.mark.asyncio
    async def test_service(self):
        client = AsyncMock()
        client.resolve_location.side_effect = lambda identifier: Location(
            id=identifier, coordinates=(0.0, 0.0)
        )

        locations = await resolve_locations(["a", "b"], client=client)

        assert [loc.id for loc in locations] == ["a", "b"]
        assert client.resolve_location.await_count == 2

    @pytest.mark.asyncio
    async def test_service_error_propagates(self):
        client = AsyncMock()
        client.resolve_location.side_effect = LocationResolutionError("Location 'b' not found")

        with pytest.raises(LocationResolutionError):
            await resolve_locations(["a", "b"], client=client)

    @pytest.mark.asyncio
    async def test_no_source(self):
        with pytest.raises(LocationResolutionError):
            await resolve_locations(["a"])
