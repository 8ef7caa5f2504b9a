"""
Command line interface for route queries.

Example:
    tileplanner -f 1 -t 42 -z 14 --tiles https://tiles.example.org -a "NBA*"
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tileplanner.core.config import settings
from tileplanner.core.errors import ConfigurationError, TilePlannerException
from tileplanner.core.logging_config import setup_logging
from tileplanner.core.routing import (
    PLANNERS,
    Dijkstra,
    PathResult,
    PlannerConfig,
    get_planner_class,
)
from tileplanner.core.routing.distance import geographic_cost, node_cost
from tileplanner.integrations.tiles.client import (
    TileClientConfig,
    TileServiceClient,
    validate_tiles_url,
)
from tileplanner.integrations.tiles.locations import LocalLocationIndex, resolve_locations

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_PATH = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_QUERY_ERROR = 3


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="tileplanner",
        description="Compute shortest paths over a network streamed from a tile service",
    )
    parser.add_argument("-f", "--from", dest="origin", required=True, help="Origin node identifier")
    parser.add_argument(
        "-t", "--to", dest="destination", required=True, help="Destination node identifier"
    )
    parser.add_argument(
        "-z",
        "--zoom",
        type=int,
        default=settings.default_zoom,
        help=f"Zoom level to be used for tiles (default: {settings.default_zoom})",
    )
    parser.add_argument(
        "--tiles",
        default=settings.tiles_base_url,
        required=settings.tiles_base_url is None,
        help="Tile interface URL",
    )
    parser.add_argument(
        "--threshold",
        type=int,
        default=None,
        help="Maximum node count threshold allowed for the tile quadtree index",
    )
    parser.add_argument(
        "-a",
        "--algorithm",
        choices=list(PLANNERS),
        default=settings.algorithm,
        help=f"Shortest path algorithm to be used (default: {settings.algorithm})",
    )
    parser.add_argument(
        "--node-weighted",
        action="store_true",
        help="Take the cost of a move from the node entered instead of the edge length",
    )
    parser.add_argument(
        "-i", "--index", type=Path, default=None, help="Path to local location index"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.query_timeout,
        help="Overall query deadline in seconds",
    )
    parser.add_argument(
        "--export-graph",
        type=Path,
        default=None,
        help="Write the loaded network to this GeoJSON file",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
    parser.add_argument(
        "--json-logs",
        action="store_true",
        default=settings.json_logs,
        help="Write the log file as JSON lines",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    return parser.parse_args(argv)


def format_result(result: PathResult) -> str:
    """
    Render a path for the terminal.

    Args:
        result: Path found by a planner

    Returns:
        Numbered node list, WKT geometry and metadata
    """
    lines = ["SHORTEST PATH found:"]
    lines.extend(f"   {i}. {node.id}" for i, node in enumerate(result.path, start=1))

    geometry = result.get_geometry()
    if geometry.is_empty:
        lon, lat = result.path[0].coordinates
        lines.append(f"POINT ({lon} {lat})")
    else:
        lines.append(geometry.wkt)

    lines.append(f"SHORTEST PATH metadata: {json.dumps(result.metadata.to_dict(), indent=3)}")
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    """
    Resolve locations, run the planner and print the result.

    Args:
        args: Parsed command line arguments

    Returns:
        Process exit code

    Raises:
        TilePlannerException: On configuration, location, tile or timeout errors
    """
    tiles_url = validate_tiles_url(args.tiles)
    planner_class = get_planner_class(args.algorithm)

    cost_function = node_cost if args.node_weighted else geographic_cost
    if args.node_weighted and planner_class is not Dijkstra:
        logger.warning(
            f"{args.algorithm} uses a geographic heuristic, which is not guaranteed to be "
            "admissible for node-weighted costs; the path may not be the shortest"
        )

    try:
        config = PlannerConfig(
            zoom=args.zoom,
            timeout=args.timeout,
            tile_neighborhood=settings.tile_neighborhood,
            quadtree_min_zoom=settings.quadtree_min_zoom,
            quadtree_max_zoom=settings.quadtree_max_zoom,
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid planner configuration: {e}") from e

    client_config = TileClientConfig(
        base_url=tiles_url,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )

    async with TileServiceClient(client_config) as client:
        planner = planner_class(tile_source=client, cost_function=cost_function, config=config)
        await planner.load_tile_quad_tree(args.threshold)

        index = LocalLocationIndex.from_file(args.index) if args.index else None
        origin, destination = await resolve_locations(
            [args.origin, args.destination], client=client, index=index
        )
        logger.info(
            f"Calculating route from {origin.display_name} to {destination.display_name} "
            f"using {args.algorithm} algorithm"
        )

        result = await planner.find_path(origin, destination)

        if args.export_graph:
            args.export_graph.write_text(json.dumps(planner.graph.export_to_geojson()))
            logger.info(f"Wrote loaded network ({len(planner.graph)} nodes) to {args.export_graph}")

        logger.debug(f"Tile client stats: {client.get_stats()}")

    if result is None:
        print("No path was found :(")
        return EXIT_NO_PATH

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_result(result))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """
    Console script entry point.

    Args:
        argv: Arguments (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    args = parse_args(argv)
    setup_logging(
        log_level="DEBUG" if args.debug else None,
        log_file=args.log_file,
        json_logs=args.json_logs,
    )

    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        logger.error(str(e))
        for suggestion in e.suggestions:
            logger.info(f"Suggestion: {suggestion}")
        return EXIT_CONFIGURATION_ERROR
    except TilePlannerException as e:
        logger.error(str(e), extra={"details": e.details})
        return EXIT_QUERY_ERROR


if __name__ == "__main__":
    sys.exit(main())
