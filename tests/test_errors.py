"""
Tests for custom exception hierarchy.
"""

from tileplanner.core.errors import (
    ConfigurationError,
    LocationResolutionError,
    TileDecodeError,
    TileFetchError,
    TilePlannerException,
    TimeoutExceeded,
)
from tileplanner.core.routing.tiles import TileKey


class TestTilePlannerException:
    """Tests for base TilePlannerException class."""

    def test_basic_exception(self):
        """Test basic exception creation."""
        exc = TilePlannerException(message="Test error", error_code="TEST_ERROR")

        assert str(exc) == "TEST_ERROR: Test error"
        assert exc.message == "Test error"
        assert exc.details == {}
        assert exc.suggestions == []

    def test_to_dict(self):
        """Test conversion to dictionary."""
        exc = TilePlannerException(
            message="Test error",
            error_code="TEST_ERROR",
            details={"key": "value"},
            suggestions=["suggestion"],
        )

        assert exc.to_dict() == {
            "error_code": "TEST_ERROR",
            "message": "Test error",
            "details": {"key": "value"},
            "suggestions": ["suggestion"],
        }

    def test_repr(self):
        """Test string representation."""
        repr_str = repr(TilePlannerException(message="Test error", error_code="TEST_ERROR"))

        assert "TilePlannerException" in repr_str
        assert "TEST_ERROR" in repr_str


class TestSpecificExceptions:
    """Tests for the query error types."""

    def test_configuration_error(self):
        exc = ConfigurationError("Unknown algorithm 'X'", config_key="algorithm")

        assert exc.error_code == "CONFIGURATION_ERROR"
        assert exc.details["config_key"] == "algorithm"
        assert exc.suggestions

    def test_configuration_error_custom_suggestions(self):
        exc = ConfigurationError("Bad", suggestions=["Use NBA*"])
        assert exc.suggestions == ["Use NBA*"]

    def test_location_resolution_error(self):
        exc = LocationResolutionError("Location '7' not found", identifier="7")

        assert exc.error_code == "LOCATION_RESOLUTION_ERROR"
        assert exc.details["identifier"] == "7"

    def test_tile_fetch_error(self):
        tile = TileKey(14, 8205, 8187)
        exc = TileFetchError(
            "Tile unavailable",
            tile=tile,
            url="https://tiles.example.org/tile/14/8205/8187",
            status_code=503,
        )

        assert exc.tile == tile
        assert exc.status_code == 503
        assert exc.details == {
            "tile": "14/8205/8187",
            "url": "https://tiles.example.org/tile/14/8205/8187",
            "status_code": 503,
        }

    def test_tile_decode_error(self):
        exc = TileDecodeError("Malformed tile", tile=TileKey(3, 1, 2), details={"errors": []})

        assert exc.error_code == "TILE_DECODE_ERROR"
        assert exc.details["tile"] == "3/1/2"
        assert exc.details["errors"] == []

    def test_timeout_exceeded(self):
        exc = TimeoutExceeded("Too slow", timeout=2.5)

        assert exc.error_code == "TIMEOUT_EXCEEDED"
        assert exc.details["timeout_seconds"] == 2.5

    def test_hierarchy(self):
        for exc_class in (
            ConfigurationError,
            LocationResolutionError,
            TileFetchError,
            TileDecodeError,
            TimeoutExceeded,
        ):
            assert issubclass(exc_class, TilePlannerException)
