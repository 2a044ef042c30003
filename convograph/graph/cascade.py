"""Downstream closure computation for cascading branch deletion."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from convograph.graph.models import Graph


@dataclass(frozen=True)
class CascadeClosure:
    """Everything a branch deletion rooted at ``root_id`` would remove."""

    root_id: str
    node_ids: frozenset[str]
    edge_ids: frozenset[str]

    @property
    def node_count(self) -> int:
        return len(self.node_ids)

    @property
    def edge_count(self) -> int:
        return len(self.edge_ids)

    @property
    def is_empty(self) -> bool:
        return not self.node_ids


def compute_closure(node_id: str, graph: Graph) -> CascadeClosure:
    """Collect *node_id* plus every node reachable from it via outgoing edges.

    The edge set includes every edge touching a removed node, including edges
    coming *into* the subtree from outside, so no dangling reference survives
    the deletion.  A visited set guarantees termination on malformed (cyclic)
    input.  If *node_id* does not exist the closure is empty.
    """
    existing = graph.node_ids
    if node_id not in existing:
        return CascadeClosure(root_id=node_id, node_ids=frozenset(), edge_ids=frozenset())

    children: dict[str, list[str]] = {}
    for edge in graph.edges:
        children.setdefault(edge.source, []).append(edge.target)

    visited: set[str] = {node_id}
    queue = deque([node_id])
    while queue:
        current = queue.popleft()
        for child in children.get(current, ()):
            if child not in visited and child in existing:
                visited.add(child)
                queue.append(child)

    edge_ids = frozenset(
        e.id for e in graph.edges if e.source in visited or e.target in visited
    )
    return CascadeClosure(root_id=node_id, node_ids=frozenset(visited), edge_ids=edge_ids)


def count_child_branches(graph: Graph, node_ids: list[str]) -> int:
    """Number of outgoing edges from *node_ids* (shown in the delete prompt)."""
    wanted = set(node_ids)
    return sum(1 for e in graph.edges if e.source in wanted)
