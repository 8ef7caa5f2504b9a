"""
Search frontier shared by all planners.

A frontier is one search direction: a binary heap of ``(priority, sequence,
node_id)`` entries with lazy deletion, plus the best known cost and
back-pointer of every labelled node. ``sequence`` is an insertion counter, so
entries with equal priority pop in insertion order.
"""

import heapq
import itertools
import math
from typing import Dict, List, Optional, Set, Tuple


class SearchFrontier:
    """
    Priority queue and labels of one search direction.

    Attributes:
        costs: Best known accumulated cost per labelled node
        parents: Back-pointer per labelled node (None for the root)
        settled: Nodes whose cost is final
    """

    def __init__(self) -> None:
        self._heap: List[Tuple[float, int, str]] = []
        self._counter = itertools.count()
        self._latest: Dict[str, int] = {}

        self.costs: Dict[str, float] = {}
        self.parents: Dict[str, Optional[str]] = {}
        self.settled: Set[str] = set()

    def __len__(self) -> int:
        return len(self._latest)

    def push(
        self, node_id: str, cost: float, priority: float, parent: Optional[str] = None
    ) -> None:
        """Label a node and queue it, superseding any earlier entry for it."""
        sequence = next(self._counter)
        self.costs[node_id] = cost
        self.parents[node_id] = parent
        self._latest[node_id] = sequence
        heapq.heappush(self._heap, (priority, sequence, node_id))

    def relax(self, node_id: str, cost: float, priority: float, parent: str) -> bool:
        """
        Offer a new cost for a node.

        Args:
            node_id: Node reached
            cost: Accumulated cost through ``parent``
            priority: Queue key for the new label
            parent: Node the cost was reached from

        Returns:
            True if the cost was strictly better and the node was (re)queued
        """
        if node_id in self.settled or cost >= self.costs.get(node_id, math.inf):
            return False

        self.push(node_id, cost, priority, parent)
        return True

    def peek(self) -> Optional[Tuple[float, str]]:
        """Lowest (priority, node_id) still queued, discarding stale entries."""
        while self._heap:
            priority, sequence, node_id = self._heap[0]
            if self._latest.get(node_id) == sequence:
                return priority, node_id
            heapq.heappop(self._heap)
        return None

    def pop(self) -> Optional[Tuple[float, str]]:
        """Remove the lowest entry and settle its node."""
        top = self.peek()
        if top is None:
            return None

        heapq.heappop(self._heap)
        node_id = top[1]
        del self._latest[node_id]
        self.settled.add(node_id)
        return top

    @property
    def top_priority(self) -> float:
        """Priority of the lowest entry, infinity when empty."""
        top = self.peek()
        return top[0] if top is not None else math.inf

    def path_to(self, node_id: str) -> List[str]:
        """Node ids from the root of this frontier to ``node_id``."""
        path = [node_id]
        parent = self.parents.get(node_id)
        while parent is not None:
            path.append(parent)
            parent = self.parents.get(parent)
        path.reverse()
        return path
