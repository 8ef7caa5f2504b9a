"""
Uniform-cost search.
"""

from typing import List, Optional, Tuple

from tileplanner.core.routing.graph import Node
from tileplanner.core.routing.planner import PathPlanner


class Dijkstra(PathPlanner):
    """
    Dijkstra's algorithm over the lazily loaded network.

    Nodes are expanded in order of accumulated cost; the search stops as
    soon as the destination is settled. The heuristic is ignored.
    """

    name = "Dijkstra"

    async def search(
        self, origin: Node, destination: Node
    ) -> Optional[Tuple[List[str], float]]:
        return await self._run_unidirectional(origin, destination, lambda node, cost: cost)
