"""Incremental change batches coming from the canvas layer.

A change is a small dict, the same shape the canvas emits::

    {"type": "position", "id": "n1", "position": {"x": 10, "y": 20}}
    {"type": "select",   "id": "n1", "selected": true}
    {"type": "remove",   "id": "n1"}

Unknown change types and changes naming an id that does not exist are
ignored; the canvas may send stale batches.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable

from convograph.graph.models import Edge, Graph, Node, Position

logger = logging.getLogger(__name__)

NODE_CHANGE_TYPES: tuple[str, ...] = ("position", "select", "remove")
EDGE_CHANGE_TYPES: tuple[str, ...] = ("select", "remove")


def _selected(item_extra: dict[str, Any], selected: bool) -> dict[str, Any]:
    return {**item_extra, "selected": bool(selected)}


def apply_node_changes(graph: Graph, changes: Iterable[dict[str, Any]]) -> tuple[Graph, list[str]]:
    """Apply a batch of node changes.

    Returns:
        The new graph (the same object when nothing applied) and the ids
        of the nodes that were removed.  Edges incident to removed nodes
        are dropped as well.
    """
    nodes: dict[str, Node] = {n.id: n for n in graph.nodes}
    removed: list[str] = []
    applied = 0

    for change in changes:
        kind = change.get("type")
        node_id = change.get("id")
        node = nodes.get(node_id)  # type: ignore[arg-type]
        if node is None or kind not in NODE_CHANGE_TYPES:
            logger.debug("Ignoring node change %r", change)
            continue
        applied += 1
        if kind == "position":
            pos = change.get("position") or {}
            nodes[node.id] = replace(
                node, position=Position(x=pos.get("x", node.position.x), y=pos.get("y", node.position.y))
            )
        elif kind == "select":
            nodes[node.id] = replace(node, extra=_selected(node.extra, change.get("selected", False)))
        elif kind == "remove":
            del nodes[node.id]
            removed.append(node.id)

    if not applied:
        return graph, removed

    gone = set(removed)
    edges = tuple(e for e in graph.edges if e.source not in gone and e.target not in gone)
    # Preserve original node order.
    kept = tuple(nodes[n.id] for n in graph.nodes if n.id in nodes)
    return Graph(nodes=kept, edges=edges), removed


def apply_edge_changes(graph: Graph, changes: Iterable[dict[str, Any]]) -> Graph:
    """Apply a batch of edge select/remove changes."""
    edges: dict[str, Edge] = {e.id: e for e in graph.edges}
    applied = 0

    for change in changes:
        kind = change.get("type")
        edge = edges.get(change.get("id"))  # type: ignore[arg-type]
        if edge is None or kind not in EDGE_CHANGE_TYPES:
            logger.debug("Ignoring edge change %r", change)
            continue
        applied += 1
        if kind == "select":
            edges[edge.id] = replace(edge, extra=_selected(edge.extra, change.get("selected", False)))
        else:
            del edges[edge.id]

    if not applied:
        return graph
    return Graph(
        nodes=graph.nodes,
        edges=tuple(edges[e.id] for e in graph.edges if e.id in edges),
    )
