"""
Tests for the search frontier.
"""

import math

from tileplanner.core.routing.frontier import SearchFrontier


class TestSearchFrontier:
    """Tests for SearchFrontier."""

    def test_empty(self):
        frontier = SearchFrontier()

        assert len(frontier) == 0
        assert frontier.peek() is None
        assert frontier.pop() is None
        assert frontier.top_priority == math.inf

    def test_pops_in_priority_order(self):
        frontier = SearchFrontier()
        frontier.push("c", 3.0, 3.0)
        frontier.push("a", 1.0, 1.0)
        frontier.push("b", 2.0, 2.0)

        assert [frontier.pop()[1] for _ in range(3)] == ["a", "b", "c"]
        assert frontier.settled == {"a", "b", "c"}

    def test_ties_pop_in_insertion_order(self):
        frontier = SearchFrontier()
        for node_id in ("z", "m", "a"):
            frontier.push(node_id, 1.0, 1.0)

        assert [frontier.pop()[1] for _ in range(3)] == ["z", "m", "a"]

    def test_relax_improves_and_skips_stale_entries(self):
        frontier = SearchFrontier()
        frontier.push("s", 0.0, 0.0)
        frontier.push("x", 10.0, 10.0, parent="s")

        assert frontier.relax("x", 4.0, 4.0, "s") is True
        assert frontier.relax("x", 4.0, 4.0, "s") is False
        assert frontier.relax("x", 7.0, 7.0, "s") is False
        assert len(frontier) == 2

        frontier.pop()
        assert frontier.pop() == (4.0, "x")
        # The superseded (10.0, x) entry is discarded
        assert frontier.peek() is None

    def test_settled_nodes_are_final(self):
        frontier = SearchFrontier()
        frontier.push("s", 0.0, 0.0)
        frontier.pop()

        assert frontier.relax("s", -1.0, -1.0, "x") is False
        assert frontier.costs["s"] == 0.0

    def test_path_to(self):
        frontier = SearchFrontier()
        frontier.push("s", 0.0, 0.0)
        frontier.relax("a", 1.0, 1.0, "s")
        frontier.relax("b", 2.0, 2.0, "a")

        assert frontier.path_to("b") == ["s", "a", "b"]
        assert frontier.path_to("s") == ["s"]
