"""Cycle validation for candidate edge sets.

``is_acyclic`` is called on every edge-creation attempt with the candidate
edge already inserted, so it has to stay linear in the size of the graph.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable

from convograph.graph.models import Edge


def is_acyclic(node_ids: Iterable[str], edges: Iterable[Edge]) -> bool:
    """Return ``True`` if the directed graph formed by *edges* has no cycle.

    Kahn's algorithm: repeatedly peel off nodes with zero in-degree; the graph
    is acyclic iff every node is eventually peeled.  Endpoints that are not in
    *node_ids* (dangling edges) are still counted as vertices so a cycle
    through them is not missed.  A self-loop never reaches in-degree zero and
    is therefore rejected; parallel edges just raise an in-degree and are
    undone one by one.
    """
    in_degree: dict[str, int] = {nid: 0 for nid in node_ids}
    adjacency: dict[str, list[str]] = {nid: [] for nid in in_degree}

    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
        adjacency.setdefault(edge.target, [])
        in_degree.setdefault(edge.source, 0)
        in_degree[edge.target] = in_degree.get(edge.target, 0) + 1

    queue = deque(nid for nid, degree in in_degree.items() if degree == 0)
    removed = 0
    while queue:
        current = queue.popleft()
        removed += 1
        for target in adjacency[current]:
            in_degree[target] -= 1
            if in_degree[target] == 0:
                queue.append(target)

    return removed == len(in_degree)


def would_create_cycle(node_ids: Iterable[str], edges: Iterable[Edge], candidate: Edge) -> bool:
    """Convenience wrapper: does adding *candidate* to *edges* close a cycle?"""
    return not is_acyclic(node_ids, [*edges, candidate])
