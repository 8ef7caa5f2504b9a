"""
Bidirectional heuristic search (NBA*).

A forward search from the origin and a backward search from the destination
over reversed edges run against the same growing graph. Both use the balanced
potential::

    p_f(v) = (h(v, destination) - h(v, origin)) / 2
    p_b(v) = -p_f(v)

so a frontier's priority is ``cost + potential``. Whichever frontier has the
smaller top priority expands next; ties go to the forward search. Every
relaxation that reaches a node labelled by the other search updates the best
meeting cost, and the search stops once

    top_f + top_b >= best_meeting_cost

With balanced potentials this is the exact bidirectional Dijkstra stopping
rule on reduced edge costs, so the path is optimal whenever the heuristic is
consistent.
"""

import math
from typing import Callable, List, Optional, Tuple

from tileplanner.core.routing.frontier import SearchFrontier
from tileplanner.core.routing.graph import Node
from tileplanner.core.routing.planner import PathPlanner

# node -> forward potential p_f(node)
PotentialFunction = Callable[[Node], float]


class NBAStar(PathPlanner):
    """Bidirectional A* with balanced potentials."""

    name = "NBA*"

    best_meeting_cost: float = math.inf
    meeting_node: Optional[str] = None

    async def search(
        self, origin: Node, destination: Node
    ) -> Optional[Tuple[List[str], float]]:
        start, goal = origin.coordinates, destination.coordinates

        def potential(node: Node) -> float:
            return (
                self.heuristic(node.coordinates, goal) - self.heuristic(node.coordinates, start)
            ) / 2.0

        forward = SearchFrontier()
        backward = SearchFrontier()
        forward.push(origin.id, 0.0, potential(origin))
        backward.push(destination.id, 0.0, -potential(destination))

        self.best_meeting_cost = math.inf
        self.meeting_node = None

        while True:
            top_f = forward.peek()
            top_b = backward.peek()
            if top_f is None or top_b is None:
                break
            if forward.top_priority + backward.top_priority >= self.best_meeting_cost:
                break

            # Both frontiers load the surroundings of their next node together
            await self.ensure_nodes_loaded([top_f[1], top_b[1]])
            self._relax_new_edges_both(forward, backward, potential)
            if forward.peek() != top_f or backward.peek() != top_b:
                continue

            if top_f[0] <= top_b[0]:
                self._expand_forward(forward, backward, potential)
            else:
                self._expand_backward(forward, backward, potential)

        if self.meeting_node is None:
            return None

        meeting = self.meeting_node
        path = forward.path_to(meeting) + list(reversed(backward.path_to(meeting)))[1:]
        self.logger.debug(
            f"NBA* frontiers met at {meeting} "
            f"(forward settled {len(forward.settled)}, backward settled {len(backward.settled)})"
        )
        return path, self.best_meeting_cost

    def _expand_forward(
        self, forward: SearchFrontier, backward: SearchFrontier, potential: PotentialFunction
    ) -> None:
        _, node_id = forward.pop()  # type: ignore[misc]
        self.nodes_expanded += 1

        cost = forward.costs[node_id]
        for edge, neighbor in self.graph.neighbors(node_id):
            new_cost = cost + edge.weight
            forward.relax(neighbor.id, new_cost, new_cost + potential(neighbor), node_id)
            self._update_meeting(neighbor.id, forward, backward)

    def _expand_backward(
        self, forward: SearchFrontier, backward: SearchFrontier, potential: PotentialFunction
    ) -> None:
        _, node_id = backward.pop()  # type: ignore[misc]
        self.nodes_expanded += 1

        cost = backward.costs[node_id]
        for edge, neighbor in self.graph.predecessors(node_id):
            new_cost = cost + edge.weight
            backward.relax(neighbor.id, new_cost, new_cost - potential(neighbor), node_id)
            self._update_meeting(neighbor.id, forward, backward)

    def _relax_new_edges_both(
        self, forward: SearchFrontier, backward: SearchFrontier, potential: PotentialFunction
    ) -> None:
        """Relax late edges from forward-settled sources and into backward-settled targets."""
        for edge in self.graph.pop_new_edges():
            if edge.source in forward.settled:
                target = self.graph.nodes[edge.target]
                new_cost = forward.costs[edge.source] + edge.weight
                forward.relax(edge.target, new_cost, new_cost + potential(target), edge.source)
                self._update_meeting(edge.target, forward, backward)

            if edge.target in backward.settled:
                source = self.graph.nodes[edge.source]
                new_cost = backward.costs[edge.target] + edge.weight
                backward.relax(edge.source, new_cost, new_cost - potential(source), edge.target)
                self._update_meeting(edge.source, forward, backward)

    def _update_meeting(
        self, node_id: str, forward: SearchFrontier, backward: SearchFrontier
    ) -> None:
        if node_id not in forward.costs or node_id not in backward.costs:
            return

        total = forward.costs[node_id] + backward.costs[node_id]
        if total < self.best_meeting_cost:
            self.best_meeting_cost = total
            self.meeting_node = node_id
