"""Tests for downstream closure computation."""

from __future__ import annotations

import pytest

from convograph.graph.cascade import compute_closure, count_child_branches
from convograph.graph.models import Edge, Graph, Node


def _graph(node_ids: list[str], pairs: list[tuple[str, str]]) -> Graph:
    return Graph(
        nodes=tuple(Node(id=n) for n in node_ids),
        edges=tuple(Edge(id=f"{s}-{t}", source=s, target=t) for s, t in pairs),
    )


@pytest.fixture()
def branching() -> Graph:
    """1 → 2, 2 → 3, 2 → 4, 4 → 5, plus an unrelated 6."""
    return _graph(
        ["1", "2", "3", "4", "5", "6"],
        [("1", "2"), ("2", "3"), ("2", "4"), ("4", "5")],
    )


class TestComputeClosure:
    def test_subtree_and_touching_edges(self, branching: Graph) -> None:
        closure = compute_closure("2", branching)
        assert closure.node_ids == {"2", "3", "4", "5"}
        assert closure.edge_ids == {"1-2", "2-3", "2-4", "4-5"}
        assert closure.node_count == 4
        assert closure.edge_count == 4

    def test_leaf(self, branching: Graph) -> None:
        closure = compute_closure("5", branching)
        assert closure.node_ids == {"5"}
        assert closure.edge_ids == {"4-5"}

    def test_root_takes_everything_reachable(self, branching: Graph) -> None:
        closure = compute_closure("1", branching)
        assert closure.node_ids == {"1", "2", "3", "4", "5"}
        assert "6" not in closure.node_ids

    def test_unknown_node_gives_empty_closure(self, branching: Graph) -> None:
        closure = compute_closure("nope", branching)
        assert closure.is_empty
        assert closure.edge_ids == frozenset()

    def test_incoming_edge_from_outside_is_included(self) -> None:
        graph = _graph(["a", "b", "x"], [("a", "b"), ("x", "b")])
        closure = compute_closure("b", graph)
        assert closure.node_ids == {"b"}
        assert closure.edge_ids == {"a-b", "x-b"}

    def test_diamond_visits_shared_child_once(self) -> None:
        graph = _graph(["a", "b", "c", "d"], [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")])
        closure = compute_closure("a", graph)
        assert closure.node_ids == {"a", "b", "c", "d"}

    def test_terminates_on_malformed_cycle(self) -> None:
        graph = _graph(["a", "b"], [("a", "b"), ("b", "a")])
        closure = compute_closure("a", graph)
        assert closure.node_ids == {"a", "b"}

    def test_dangling_child_is_not_collected(self) -> None:
        graph = _graph(["a"], [("a", "ghost")])
        closure = compute_closure("a", graph)
        assert closure.node_ids == {"a"}
        assert closure.edge_ids == {"a-ghost"}


class TestCountChildBranches:
    def test_counts_outgoing_edges(self, branching: Graph) -> None:
        assert count_child_branches(branching, ["2"]) == 2
        assert count_child_branches(branching, ["2", "4"]) == 3

    def test_leaf_has_none(self, branching: Graph) -> None:
        assert count_child_branches(branching, ["3"]) == 0
