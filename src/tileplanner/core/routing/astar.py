"""
A* search guided by a geographic heuristic.

The heuristic is evaluated from each node's static coordinates, so it is
recomputed per node rather than cached. Optimality requires the heuristic to
be admissible and consistent for the cost function in use; see
:mod:`tileplanner.core.routing.distance`.
"""

from typing import List, Optional, Tuple

from tileplanner.core.routing.graph import Node
from tileplanner.core.routing.planner import PathPlanner


class AStar(PathPlanner):
    """A* search: priority = accumulated cost + heuristic(node, destination)."""

    name = "A*"

    async def search(
        self, origin: Node, destination: Node
    ) -> Optional[Tuple[List[str], float]]:
        goal = destination.coordinates

        def priority(node: Node, cost: float) -> float:
            return cost + self.heuristic(node.coordinates, goal)

        return await self._run_unidirectional(origin, destination, priority)
