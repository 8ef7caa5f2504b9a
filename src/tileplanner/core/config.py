"""
Configuration settings for TilePlanner.
"""

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Attributes:
        tiles_base_url: Default tile service URL
        default_zoom: Zoom level used when none is given
        algorithm: Default shortest path algorithm
        request_timeout: HTTP request timeout in seconds
        max_retries: Retries for transient tile fetch failures
        query_timeout: Overall deadline for one query in seconds
        log_level: Default log level
        json_logs: Write log files as JSON lines
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="TILEPLANNER_",
    )

    # Tile service
    tiles_base_url: Optional[str] = None
    default_zoom: int = 14
    request_timeout: float = 10.0
    max_retries: int = 3

    # Search
    algorithm: Literal["Dijkstra", "A*", "NBA*"] = "NBA*"
    query_timeout: Optional[float] = None
    tile_neighborhood: int = 1

    # Quadtree
    quadtree_min_zoom: int = 10
    quadtree_max_zoom: int = 17

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Optional[str] = None
    json_logs: bool = False


# Global settings instance
settings = Settings()
