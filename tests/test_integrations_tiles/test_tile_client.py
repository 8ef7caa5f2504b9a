"""
Tests for the tile service client.

Tests cover:
- URL validation and client configuration
- Rate limiting
- Tile fetches, retries and error mapping
- Summary probes and their fallback
- Location lookups
"""

import httpx
import pytest
import respx

from tileplanner.core.errors import (
    ConfigurationError,
    LocationResolutionError,
    TileDecodeError,
    TileFetchError,
)
from tileplanner.core.routing.tiles import TileKey
from tileplanner.integrations.tiles.client import (
    RateLimiter,
    TileClientConfig,
    TileServiceClient,
    validate_tiles_url,
)

BASE_URL = "https://tiles.example.org"
TILE = TileKey(14, 8205, 8187)
TILE_URL = f"{BASE_URL}/tile/14/8205/8187"

MOCK_TILE = {
    "nodes": [
        {"id": 1, "coordinates": [0.300, 0.100]},
        {"id": 2, "coordinates": [0.302, 0.101]},
    ],
    "edges": [{"source": 1, "target": 2}, {"source": 2, "target": 1}],
}


@pytest.fixture
def client_config() -> TileClientConfig:
    """Client configuration without retry delays."""
    return TileClientConfig(base_url=BASE_URL, max_retries=2, retry_backoff_factor=0.0)


class TestValidateTilesUrl:
    """Tests for validate_tiles_url."""

    def test_strips_trailing_slash(self):
        assert validate_tiles_url("https://tiles.example.org/api/") == (
            "https://tiles.example.org/api"
        )

    @pytest.mark.parametrize("url", ["tiles.example.org", "ftp://tiles.example.org", "http://"])
    def test_rejects_invalid(self, url):
        with pytest.raises(ConfigurationError) as exc_info:
            validate_tiles_url(url)

        assert exc_info.value.details["config_key"] == "tiles_base_url"

    def test_config_validates_base_url(self):
        with pytest.raises(ConfigurationError):
            TileClientConfig(base_url="not a url")


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_initialization(self):
        limiter = RateLimiter(calls=10, period=1.0)
        assert limiter.calls == 10
        assert limiter.tokens == 10.0

    def test_exhaustion(self):
        limiter = RateLimiter(calls=5, period=1.0)

        for _ in range(5):
            assert limiter.try_acquire() is True

        assert limiter.try_acquire() is False
        assert limiter.wait_time() > 0

    @pytest.mark.asyncio
    async def test_acquire_waits_for_refill(self):
        limiter = RateLimiter(calls=2, period=0.1)
        for _ in range(2):
            await limiter.acquire()

        await limiter.acquire()
        assert limiter.tokens < 1


class TestFetchTile:
    """Tests for tile fetches."""

    @respx.mock
    async def test_fetch_success(self, client_config):
        route = respx.get(TILE_URL).mock(return_value=httpx.Response(200, json=MOCK_TILE))

        async with TileServiceClient(client_config) as client:
            payload = await client.fetch_tile(TILE)

        assert route.call_count == 1
        assert [n.id for n in payload.nodes] == ["1", "2"]
        assert payload.edges[0].source == "1"
        assert client.request_count == 1

    @respx.mock
    async def test_not_found_is_not_retried(self, client_config):
        route = respx.get(TILE_URL).mock(return_value=httpx.Response(404))

        async with TileServiceClient(client_config) as client:
            with pytest.raises(TileFetchError) as exc_info:
                await client.fetch_tile(TILE)

        assert route.call_count == 1
        assert exc_info.value.status_code == 404
        assert exc_info.value.tile == TILE

    @respx.mock
    async def test_server_error_is_retried(self, client_config):
        route = respx.get(TILE_URL).mock(
            side_effect=[httpx.Response(503), httpx.Response(200, json=MOCK_TILE)]
        )

        async with TileServiceClient(client_config) as client:
            payload = await client.fetch_tile(TILE)

        assert route.call_count == 2
        assert payload.node_count == 2

    @respx.mock
    async def test_max_retries_exceeded(self, client_config):
        route = respx.get(TILE_URL).mock(return_value=httpx.Response(503))

        async with TileServiceClient(client_config) as client:
            with pytest.raises(TileFetchError) as exc_info:
                await client.fetch_tile(TILE)

        assert route.call_count == 3
        assert exc_info.value.status_code == 503

    @respx.mock
    async def test_rate_limited_response_is_retried(self, client_config):
        route = respx.get(TILE_URL).mock(
            side_effect=[httpx.Response(429), httpx.Response(200, json=MOCK_TILE)]
        )

        async with TileServiceClient(client_config) as client:
            await client.fetch_tile(TILE)

        assert route.call_count == 2

    @respx.mock
    async def test_connection_error(self, client_config):
        route = respx.get(TILE_URL).mock(side_effect=httpx.ConnectError("Connection refused"))

        async with TileServiceClient(client_config) as client:
            with pytest.raises(TileFetchError) as exc_info:
                await client.fetch_tile(TILE)

        assert route.call_count == 3
        assert exc_info.value.status_code is None
        assert "ConnectError" in exc_info.value.message

    @respx.mock
    async def test_invalid_json(self, client_config):
        respx.get(TILE_URL).mock(return_value=httpx.Response(200, content=b"<html>oops</html>"))

        async with TileServiceClient(client_config) as client:
            with pytest.raises(TileDecodeError):
                await client.fetch_tile(TILE)

    @respx.mock
    async def test_malformed_payload(self, client_config):
        respx.get(TILE_URL).mock(
            return_value=httpx.Response(200, json={"nodes": [{"id": 1, "coordinates": "x"}]})
        )

        async with TileServiceClient(client_config) as client:
            with pytest.raises(TileDecodeError) as exc_info:
                await client.fetch_tile(TILE)

        assert exc_info.value.details["errors"]


class TestCountNodes:
    """Tests for node count probes."""

    @respx.mock
    async def test_summary_endpoint(self, client_config):
        summary = respx.get(f"{TILE_URL}/summary").mock(
            return_value=httpx.Response(200, json={"nodeCount": 1234})
        )

        async with TileServiceClient(client_config) as client:
            count = await client.count_nodes(TILE)

        assert count == 1234
        assert summary.call_count == 1
        assert client.request_count == 1

    @respx.mock
    async def test_missing_summary_falls_back_to_fetch(self, client_config):
        summary = respx.get(f"{TILE_URL}/summary").mock(return_value=httpx.Response(404))
        tile = respx.get(TILE_URL).mock(return_value=httpx.Response(200, json=MOCK_TILE))

        async with TileServiceClient(client_config) as client:
            first = await client.count_nodes(TILE)
            second = await client.count_nodes(TILE)
            stats = client.get_stats()

        assert first == second == 2
        # The missing endpoint is remembered
        assert summary.call_count == 1
        assert tile.call_count == 2
        assert stats["summary_endpoint"] is False

    @respx.mock
    async def test_summary_server_error_propagates(self, client_config):
        respx.get(f"{TILE_URL}/summary").mock(return_value=httpx.Response(500))

        async with TileServiceClient(client_config) as client:
            with pytest.raises(TileFetchError):
                await client.count_nodes(TILE)

    @respx.mock
    async def test_summary_disabled(self):
        config = TileClientConfig(base_url=BASE_URL, use_summary_endpoint=False)
        tile = respx.get(TILE_URL).mock(return_value=httpx.Response(200, json=MOCK_TILE))

        async with TileServiceClient(config) as client:
            assert await client.count_nodes(TILE) == 2

        assert tile.call_count == 1


class TestResolveLocation:
    """Tests for location lookups."""

    @respx.mock
    async def test_resolve_point(self, client_config):
        route = respx.get(f"{BASE_URL}/location", params={"id": "42"}).mock(
            return_value=httpx.Response(
                200, json={"id": 42, "label": "Harbour", "wkt": "POINT (13.4 52.5)"}
            )
        )

        async with TileServiceClient(client_config) as client:
            location = await client.resolve_location("42")

        assert route.call_count == 1
        assert location.id == "42"
        assert location.display_name == "Harbour"
        assert location.coordinates == (13.4, 52.5)

    @respx.mock
    async def test_unknown_location(self, client_config):
        respx.get(f"{BASE_URL}/location").mock(return_value=httpx.Response(404))

        async with TileServiceClient(client_config) as client:
            with pytest.raises(LocationResolutionError) as exc_info:
                await client.resolve_location("nowhere")

        assert "not found" in exc_info.value.message
        assert exc_info.value.details["identifier"] == "nowhere"

    @respx.mock
    async def test_location_service_down(self, client_config):
        respx.get(f"{BASE_URL}/location").mock(side_effect=httpx.ConnectTimeout("timed out"))

        async with TileServiceClient(client_config) as client:
            with pytest.raises(LocationResolutionError):
                await client.resolve_location("42")
