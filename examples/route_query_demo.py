"""
Demo script for route queries over a preloaded network.

This example demonstrates the planners without a tile service:
1. Build a small grid network in memory
2. Find the same route with Dijkstra, A* and NBA*
3. Compare costs and search effort
4. Export the network and the route to GeoJSON
"""

import asyncio
import json

from tileplanner.core.routing import PLANNERS, NetworkGraph, Node


def build_grid(size: int = 12, spacing: float = 0.001) -> NetworkGraph:
    """Two-way grid around (13.40, 52.50) with every third row one-way eastbound."""
    graph = NetworkGraph()
    graph.insert_nodes(
        Node(id=f"{row}-{col}", coordinates=(13.40 + col * spacing, 52.50 + row * spacing))
        for row in range(size)
        for col in range(size)
    )

    edges = []
    for row in range(size):
        for col in range(size):
            here = f"{row}-{col}"
            if col + 1 < size:
                edges.append((here, f"{row}-{col + 1}"))
                if row % 3:
                    edges.append((f"{row}-{col + 1}", here))
            if row + 1 < size:
                edges.extend([(here, f"{row + 1}-{col}"), (f"{row + 1}-{col}", here)])
    graph.insert_edges(edges)
    return graph


async def run() -> None:
    print("=" * 60)
    print("Route Query Demo")
    print("=" * 60)

    # 1. Build network
    print("\n1. Building grid network...")
    graph = build_grid()
    stats = graph.get_graph_stats()
    print(f"   - Nodes: {stats['num_nodes']}")
    print(f"   - Edges: {stats['num_edges']}")

    origin, destination = graph.nodes["0-0"], graph.nodes["11-11"]

    # 2. Run every planner on the same query
    print(f"\n2. Routing {origin.id} -> {destination.id}:")
    print("-" * 60)

    results = {}
    for name, planner_class in PLANNERS.items():
        planner = planner_class(graph=graph)
        result = await planner.find_path(origin, destination)
        results[name] = result
        print(
            f"   {name:<9} cost={result.total_cost:8.1f}m  "
            f"nodes={len(result.path):3d}  expanded={result.metadata.nodes_expanded:4d}"
        )

    # 3. Compare
    print("\n3. Optimality Check:")
    print("-" * 60)
    costs = [r.total_cost for r in results.values()]
    same = max(costs) - min(costs) < 1e-6
    print(f"   {'PASS' if same else 'FAIL'}: all planners agree on the shortest cost")

    # 4. Export
    print("\n4. Exporting to GeoJSON...")
    geojson = graph.export_to_geojson()
    geojson["features"].append(
        {
            "type": "Feature",
            "geometry": results["NBA*"].get_geometry().__geo_interface__,
            "properties": {"type": "route", **results["NBA*"].metadata.to_dict()},
        }
    )
    print(f"   - Features: {len(geojson['features'])}")
    print(f"   - Size: {len(json.dumps(geojson))} bytes")

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


def main():
    """Run route query demo."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
