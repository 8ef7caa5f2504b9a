"""
Custom exception hierarchy for TilePlanner.

This module defines the exceptions raised while preparing and running a
route query. A query that finds no path is not an error: planners return
``None`` for that case.
"""

from typing import Any, Dict, List, Optional


class TilePlannerException(Exception):
    """
    Base exception for all TilePlanner-specific errors.

    Attributes:
        error_code: String identifier for the error type
        message: User-friendly error message
        details: Technical details for logging/debugging
        suggestions: Optional list of resolution suggestions
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize TilePlannerException.

        Args:
            message: User-friendly error message
            error_code: String identifier for the error type
            details: Technical details for logging
            suggestions: List of suggestions for resolution
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary.

        Returns:
            Dictionary representation of the error
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions,
        }

    def __str__(self) -> str:
        """String representation of the exception."""
        return f"{self.error_code}: {self.message}"

    def __repr__(self) -> str:
        """Detailed string representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}')"
        )


class ConfigurationError(TilePlannerException):
    """
    Raised when a query is misconfigured.

    Used for an invalid tile base URL, an unknown algorithm name or missing
    coordinates. Always reported before any search begins.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize ConfigurationError.

        Args:
            message: User-friendly error message
            config_key: Configuration key that is invalid
            details: Technical details about the configuration error
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if config_key:
            error_details["config_key"] = config_key

        default_suggestions = [
            "Check the command line options",
            "Verify environment variables prefixed with TILEPLANNER_",
        ]

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )


class LocationResolutionError(TilePlannerException):
    """
    Raised when an origin or destination identifier cannot be resolved.

    Covers identifiers missing from the location service or the local index,
    and geometries that cannot be decoded into coordinates.
    """

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize LocationResolutionError.

        Args:
            message: User-friendly error message
            identifier: Location identifier that failed to resolve
            details: Technical details about the failure
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if identifier is not None:
            error_details["identifier"] = identifier

        default_suggestions = [
            "Verify the identifier exists in the location service or index",
            "Check that the location geometry is valid WKT",
        ]

        super().__init__(
            message=message,
            error_code="LOCATION_RESOLUTION_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )


class TileFetchError(TilePlannerException):
    """
    Raised when a tile cannot be fetched from the tile service.

    A missing tile can hide the true shortest path, so the error aborts the
    query instead of being treated as an empty tile.
    """

    def __init__(
        self,
        message: str,
        tile: Optional[Any] = None,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize TileFetchError.

        Args:
            message: User-friendly error message
            tile: Tile key that failed
            url: Requested URL
            status_code: HTTP status code, if a response was received
            details: Technical details about the failure
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if tile is not None:
            error_details["tile"] = str(tile)
        if url:
            error_details["url"] = url
        if status_code is not None:
            error_details["status_code"] = status_code

        self.tile = tile
        self.status_code = status_code

        default_suggestions = [
            "Check that the tile service is reachable",
            "Try again later if the service is overloaded",
        ]

        super().__init__(
            message=message,
            error_code="TILE_FETCH_ERROR",
            details=error_details,
            suggestions=suggestions or default_suggestions,
        )


class TileDecodeError(TilePlannerException):
    """
    Raised when a tile payload cannot be decoded into nodes and edges.
    """

    def __init__(
        self,
        message: str,
        tile: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize TileDecodeError.

        Args:
            message: User-friendly error message
            tile: Tile key whose payload was malformed
            details: Technical details about the decode failure
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if tile is not None:
            error_details["tile"] = str(tile)

        self.tile = tile

        super().__init__(
            message=message,
            error_code="TILE_DECODE_ERROR",
            details=error_details,
            suggestions=suggestions or ["Verify the tile service returns network tiles"],
        )


class TimeoutExceeded(TilePlannerException):
    """
    Raised when a query runs past its deadline.

    Distinct from the no-path result: the search was interrupted, not
    exhausted.
    """

    def __init__(
        self,
        message: str,
        timeout: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        """
        Initialize TimeoutExceeded.

        Args:
            message: User-friendly error message
            timeout: Deadline in seconds that elapsed
            details: Technical details
            suggestions: List of suggestions for resolution
        """
        error_details = details or {}
        if timeout is not None:
            error_details["timeout_seconds"] = timeout

        super().__init__(
            message=message,
            error_code="TIMEOUT_EXCEEDED",
            details=error_details,
            suggestions=suggestions
            or ["Increase the query timeout", "Use a coarser zoom level"],
        )
