"""
Tile service HTTP client.

Implements client for:
- Network tiles: ``GET {base}/tile/{z}/{x}/{y}``
- Tile summaries used to size the quadtree: ``GET {base}/tile/{z}/{x}/{y}/summary``
- Location lookups: ``GET {base}/location?id={id}``

Transient failures (timeouts, transport errors, HTTP 5xx and 429) are retried
with exponential backoff; other failures are raised on the first attempt.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, Field, field_validator

from tileplanner.core.errors import (
    ConfigurationError,
    LocationResolutionError,
    TileDecodeError,
    TileFetchError,
)
from tileplanner.core.retry import async_retry
from tileplanner.core.routing.tiles import TileKey
from tileplanner.integrations.tiles.parser import TileResponseParser
from tileplanner.models.network import Location, TilePayload

logger = logging.getLogger(__name__)


def validate_tiles_url(url: str) -> str:
    """
    Check that a tile service URL is an absolute HTTP(S) URL.

    Args:
        url: Candidate base URL

    Returns:
        The URL without a trailing slash

    Raises:
        ConfigurationError: If the URL is not a valid HTTP(S) URL
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(
            f"Tile interface {url} is not a valid HTTP URL",
            config_key="tiles_base_url",
        ) from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigurationError(
            f"Tile interface {url} is not a valid HTTP URL",
            config_key="tiles_base_url",
            suggestions=["Use an absolute URL such as https://tiles.example.org"],
        )

    return url.rstrip("/")


class TileClientConfig(BaseModel):
    """Configuration for the tile service client."""

    base_url: str = Field(..., description="Base URL of the tile service")
    timeout: float = Field(default=10.0, description="Request timeout in seconds", ge=0.1, le=120.0)
    max_retries: int = Field(default=3, description="Maximum number of retries", ge=0, le=10)
    retry_backoff_factor: float = Field(
        default=0.5, description="Delay before the first retry in seconds", ge=0.0, le=10.0
    )
    rate_limit_calls: int = Field(default=50, description="Max calls per time window", ge=1)
    rate_limit_period: float = Field(
        default=1.0, description="Rate limit window in seconds", ge=0.1
    )
    use_summary_endpoint: bool = Field(
        default=True, description="Probe node counts via the summary endpoint"
    )

    @field_validator("base_url")
    @classmethod
    def check_base_url(cls, value: str) -> str:
        return validate_tiles_url(value)


class RateLimiter:
    """Token bucket rate limiter."""

    def __init__(self, calls: int, period: float) -> None:
        """
        Initialize rate limiter.

        Args:
            calls: Maximum number of calls per period
            period: Time period in seconds
        """
        self.calls = calls
        self.period = period
        self.tokens = float(calls)
        self.last_update = time.monotonic()

    def try_acquire(self) -> bool:
        """
        Take a token if one is available.

        Returns:
            True if token acquired, False if rate limited
        """
        now = time.monotonic()
        elapsed = now - self.last_update

        # Refill tokens based on elapsed time
        self.tokens = min(self.calls, self.tokens + elapsed * (self.calls / self.period))
        self.last_update = now

        if self.tokens >= 1:
            self.tokens -= 1
            return True

        return False

    def wait_time(self) -> float:
        """Seconds until the next token is available."""
        if self.tokens >= 1:
            return 0.0

        return (1 - self.tokens) * (self.period / self.calls)

    async def acquire(self) -> None:
        """Wait until a token is available and take it."""
        while not self.try_acquire():
            wait_time = self.wait_time()
            logger.debug(f"Rate limited, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)


class TransientStatusError(httpx.HTTPStatusError):
    """HTTP status that is worth retrying (5xx or 429)."""


RETRYABLE_EXCEPTIONS = (httpx.TransportError, TransientStatusError)


class TileServiceClient:
    """
    Client for a network tile service.

    Satisfies the ``TileSource`` protocol used by the tile cache and the
    quadtree, and resolves location identifiers.
    """

    def __init__(
        self,
        config: TileClientConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize tile service client.

        Args:
            config: Client configuration
            client: HTTP client to use (one is created if omitted)
        """
        self.config = config
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            follow_redirects=True,
        )
        self.rate_limiter = RateLimiter(
            self.config.rate_limit_calls,
            self.config.rate_limit_period,
        )
        self.parser = TileResponseParser()

        self.request_count = 0
        self._summary_supported = self.config.use_summary_endpoint

        logger.info(f"Tile client initialized with base URL: {self.config.base_url}")

    async def __aenter__(self) -> "TileServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def tile_url(self, tile: TileKey) -> str:
        """URL of a tile's network data."""
        return f"{self.config.base_url}/tile/{tile.zoom}/{tile.x}/{tile.y}"

    async def _send(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        await self.rate_limiter.acquire()

        self.request_count += 1
        logger.debug(f"Making request to {url} with params: {params}")
        response = await self.client.get(url, params=params)

        if response.status_code >= 500 or response.status_code == 429:
            raise TransientStatusError(
                f"Server error '{response.status_code}' for url '{response.url}'",
                request=response.request,
                response=response,
            )
        response.raise_for_status()
        return response

    async def _make_request(
        self, url: str, params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Make HTTP request with rate limiting and retries.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            Successful response

        Raises:
            httpx.HTTPStatusError: On a non-success status after retries
            httpx.TransportError: On network failure after retries
        """
        send = async_retry(
            max_attempts=self.config.max_retries + 1,
            base_delay=self.config.retry_backoff_factor,
            retryable_exceptions=RETRYABLE_EXCEPTIONS,
        )(self._send)
        return await send(url, params)

    async def _get_json(self, url: str, tile: TileKey) -> Any:
        try:
            response = await self._make_request(url)
        except httpx.HTTPStatusError as e:
            raise TileFetchError(
                f"Tile service returned HTTP {e.response.status_code} for tile {tile}",
                tile=tile,
                url=url,
                status_code=e.response.status_code,
            ) from e
        except httpx.TransportError as e:
            raise TileFetchError(
                f"Failed to fetch tile {tile}: {type(e).__name__}: {e}",
                tile=tile,
                url=url,
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise TileDecodeError(
                f"Tile {tile} is not valid JSON", tile=tile, details={"url": url}
            ) from e

    async def fetch_tile(self, tile: TileKey) -> TilePayload:
        """
        Fetch and decode one tile.

        Args:
            tile: Tile to fetch

        Returns:
            Decoded tile payload

        Raises:
            TileFetchError: On network failure or non-success status
            TileDecodeError: If the payload is malformed
        """
        data = await self._get_json(self.tile_url(tile), tile)
        return self.parser.parse_tile(data, tile=tile)

    async def count_nodes(self, tile: TileKey) -> int:
        """
        Number of nodes in a tile.

        Uses the summary endpoint when enabled. A service without one
        (404 or 501) is remembered and probed by full fetches from then on.

        Args:
            tile: Tile to probe

        Returns:
            Node count

        Raises:
            TileFetchError: On network failure or non-success status
            TileDecodeError: If the response is malformed
        """
        if self._summary_supported:
            url = f"{self.tile_url(tile)}/summary"
            try:
                data = await self._get_json(url, tile)
                return self.parser.parse_summary(data, tile=tile)
            except TileFetchError as e:
                if e.status_code not in (404, 501):
                    raise
                logger.warning(
                    f"Tile service has no summary endpoint (HTTP {e.status_code}), "
                    "probing node counts with full tile fetches"
                )
                self._summary_supported = False

        payload = await self.fetch_tile(tile)
        return payload.node_count

    async def resolve_location(self, identifier: str) -> Location:
        """
        Resolve a location identifier through the location endpoint.

        Args:
            identifier: Location identifier

        Returns:
            Location with coordinates

        Raises:
            LocationResolutionError: If the identifier is unknown, the
                service fails, or the geometry cannot be decoded
        """
        url = f"{self.config.base_url}/location"
        try:
            response = await self._make_request(url, params={"id": identifier})
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = (
                f"Location '{identifier}' not found"
                if status == 404
                else f"Location service returned HTTP {status} for '{identifier}'"
            )
            raise LocationResolutionError(
                message, identifier=identifier, details={"url": url, "status_code": status}
            ) from e
        except httpx.TransportError as e:
            raise LocationResolutionError(
                f"Failed to reach the location service: {type(e).__name__}: {e}",
                identifier=identifier,
                details={"url": url},
            ) from e
        except ValueError as e:
            raise LocationResolutionError(
                f"Location service returned invalid JSON for '{identifier}'",
                identifier=identifier,
                details={"url": url},
            ) from e

        location = self.parser.parse_location(data, identifier=identifier)
        logger.debug(f"Resolved location {identifier} to {location.coordinates}")
        return location

    def get_stats(self) -> Dict[str, Any]:
        """
        Get client statistics.

        Returns:
            Dictionary with request statistics
        """
        return {
            "base_url": self.config.base_url,
            "requests": self.request_count,
            "summary_endpoint": self._summary_supported,
        }
