"""
Tests for the network data models.
"""

import pytest
from pydantic import ValidationError

from tileplanner.models.network import (
    EdgeRecord,
    Location,
    LocationRecord,
    NodeRecord,
    TilePayload,
)


class TestNodeRecord:
    """Tests for NodeRecord."""

    def test_integer_id_becomes_string(self):
        assert NodeRecord(id=42, coordinates=(1.0, 2.0)).id == "42"

    def test_boolean_id_rejected(self):
        with pytest.raises(ValidationError):
            NodeRecord(id=True, coordinates=(1.0, 2.0))

    def test_elevation_dropped(self):
        record = NodeRecord(id="a", coordinates=[1.0, 2.0, 35.0])
        assert record.coordinates == (1.0, 2.0)

    @pytest.mark.parametrize("coordinates", [(181.0, 0.0), (0.0, -91.0)])
    def test_out_of_range(self, coordinates):
        with pytest.raises(ValidationError):
            NodeRecord(id="a", coordinates=coordinates)

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError):
            NodeRecord(id="a", coordinates=(0.0, 0.0), cost=-0.5)

    @pytest.mark.parametrize("cost", [float("inf"), float("nan")])
    def test_non_finite_cost_rejected(self, cost):
        with pytest.raises(ValidationError):
            NodeRecord(id="a", coordinates=(0.0, 0.0), cost=cost)


class TestEdgeRecord:
    """Tests for EdgeRecord."""

    def test_ids_coerced(self):
        edge = EdgeRecord(source=1, target="2")
        assert (edge.source, edge.target) == ("1", "2")

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            EdgeRecord(source="", target="2")


class TestTilePayload:
    """Tests for TilePayload."""

    def test_node_count(self):
        payload = TilePayload(
            nodes=[NodeRecord(id="a", coordinates=(0.0, 0.0))],
            edges=[EdgeRecord(source="a", target="b")],
        )
        assert payload.node_count == 1
        assert TilePayload().node_count == 0


class TestLocation:
    """Tests for LocationRecord and Location."""

    def test_record_requires_wkt(self):
        with pytest.raises(ValidationError):
            LocationRecord(id="a")

    def test_display_name(self):
        assert Location(id=7, label="Depot", coordinates=(1.0, 2.0)).display_name == "Depot"
        assert Location(id=7, coordinates=(1.0, 2.0)).display_name == "7"

    def test_to_dict(self):
        location = Location(id="7", coordinates=(1.0, 2.0))
        assert location.to_dict() == {"id": "7", "label": None, "coordinates": [1.0, 2.0]}
