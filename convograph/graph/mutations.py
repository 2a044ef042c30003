"""Pure intent → outcome functions over :class:`Graph` snapshots.

Each function takes a graph plus an intent and returns a *new* graph (or a
structured rejection); the input graph is never modified.  ``GraphStore``
composes these and commits the results.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Optional

from convograph.graph.cascade import CascadeClosure, compute_closure
from convograph.graph.cycles import is_acyclic
from convograph.graph.errors import NodeNotFoundError
from convograph.graph.models import Edge, Graph, Node, NodeData

logger = logging.getLogger(__name__)


class ConnectRejection(str, Enum):
    SAME_NODE = "same_node"
    DUPLICATE = "duplicate"
    CYCLE = "cycle"
    MISSING_NODE = "missing_node"


REJECTION_MESSAGES: dict[ConnectRejection, str] = {
    ConnectRejection.SAME_NODE: "Cannot create a connection to the same node.",
    ConnectRejection.DUPLICATE: "These nodes are already connected.",
    ConnectRejection.CYCLE: "This connection would create a cycle. Choose a different target.",
    ConnectRejection.MISSING_NODE: "Both ends of a connection must be existing nodes.",
}


@dataclass(frozen=True)
class ConnectOutcome:
    """Result of an edge-creation attempt.

    On rejection ``graph`` is the untouched input graph and ``edge`` is
    ``None``.
    """

    graph: Graph
    edge: Optional[Edge] = None
    reason: Optional[ConnectRejection] = None

    @property
    def accepted(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> Optional[str]:
        return REJECTION_MESSAGES[self.reason] if self.reason else None


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

def _validate_edge(
    graph: Graph, others: tuple[Edge, ...], source: str, target: str
) -> Optional[ConnectRejection]:
    if source == target:
        return ConnectRejection.SAME_NODE
    ids = graph.node_ids
    if source not in ids or target not in ids:
        return ConnectRejection.MISSING_NODE
    if any(e.source == source and e.target == target for e in others):
        return ConnectRejection.DUPLICATE
    if not is_acyclic(ids, [*others, Edge(id="__candidate__", source=source, target=target)]):
        return ConnectRejection.CYCLE
    return None


def connect_edge(
    graph: Graph, source: str, target: str, edge_id: Optional[str] = None
) -> ConnectOutcome:
    """The only way an edge is added: validate, then append.

    Raises:
        ValueError: If *edge_id* is given and already used.
    """
    if edge_id is not None and graph.get_edge(edge_id) is not None:
        raise ValueError(f"Edge id already in use: {edge_id!r}")

    reason = _validate_edge(graph, graph.edges, source, target)
    if reason is not None:
        logger.info("Rejected edge %s -> %s: %s", source, target, reason.value)
        return ConnectOutcome(graph=graph, reason=reason)

    edge = Edge(id=edge_id or new_id("edge"), source=source, target=target)
    return ConnectOutcome(graph=replace(graph, edges=(*graph.edges, edge)), edge=edge)


def rewire_edge(graph: Graph, edge_id: str, source: str, target: str) -> ConnectOutcome:
    """Move an existing edge to new endpoints, validated like a new edge.

    The rewired edge moves to the end of the edge list so it becomes the
    target's most recently connected parent.

    Raises:
        ValueError: If *edge_id* does not exist.
    """
    current = graph.get_edge(edge_id)
    if current is None:
        raise ValueError(f"Edge not found: {edge_id!r}")

    others = tuple(e for e in graph.edges if e.id != edge_id)
    reason = _validate_edge(graph, others, source, target)
    if reason is not None:
        logger.info("Rejected rewire of %s to %s -> %s: %s", edge_id, source, target, reason.value)
        return ConnectOutcome(graph=graph, reason=reason)

    edge = replace(current, source=source, target=target)
    return ConnectOutcome(graph=replace(graph, edges=(*others, edge)), edge=edge)


def remove_edges_connected_to_node(graph: Graph, node_id: str) -> Graph:
    """Drop every edge touching *node_id*; the node itself stays."""
    return replace(
        graph,
        edges=tuple(e for e in graph.edges if e.source != node_id and e.target != node_id),
    )


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

def add_node(graph: Graph, node: Node) -> Graph:
    """Append *node*.

    Raises:
        ValueError: If the id is already taken.
    """
    if graph.get_node(node.id) is not None:
        raise ValueError(f"Node id already in use: {node.id!r}")
    return replace(graph, nodes=(*graph.nodes, node))


def update_node_data(graph: Graph, node_id: str, update: Callable[[NodeData], NodeData]) -> Graph:
    """Replace the data payload of *node_id* with ``update(old_data)``."""
    if graph.get_node(node_id) is None:
        raise NodeNotFoundError(node_id)
    return replace(
        graph,
        nodes=tuple(
            replace(n, data=update(n.data)) if n.id == node_id else n for n in graph.nodes
        ),
    )


def remove_node(graph: Graph, node_id: str) -> Graph:
    """Remove one node and its incident edges; children stay, unlinked."""
    pruned = remove_edges_connected_to_node(graph, node_id)
    return replace(pruned, nodes=tuple(n for n in pruned.nodes if n.id != node_id))


def delete_branch_cascade(graph: Graph, node_id: str) -> tuple[Graph, CascadeClosure]:
    """Remove *node_id*, all its descendants, and every edge touching them.

    A no-op (empty closure, same graph) when *node_id* does not exist.
    """
    closure = compute_closure(node_id, graph)
    if closure.is_empty:
        return graph, closure
    pruned = Graph(
        nodes=tuple(n for n in graph.nodes if n.id not in closure.node_ids),
        edges=tuple(e for e in graph.edges if e.id not in closure.edge_ids),
    )
    return pruned, closure


def restore(graph: Graph, nodes: Iterable[Node], edges: Iterable[Edge]) -> Graph:
    """Put previously removed *nodes* and *edges* back.

    Anything whose id has been reused since, and edges whose endpoints no
    longer exist, are skipped so the graph stays valid.  Edges touching a
    skipped node are dropped too, so they never attach to the node that now
    holds its id.  An edge that would now close a cycle is skipped as well.
    """
    node_ids = set(graph.node_ids)
    restored_nodes = list(graph.nodes)
    skipped: set[str] = set()
    for node in nodes:
        if node.id in node_ids:
            skipped.add(node.id)
            continue
        restored_nodes.append(node)
        node_ids.add(node.id)

    edge_ids = {e.id for e in graph.edges}
    restored_edges = list(graph.edges)
    for edge in edges:
        if edge.id in edge_ids or edge.source not in node_ids or edge.target not in node_ids:
            continue
        if edge.source in skipped or edge.target in skipped:
            continue
        if not is_acyclic(node_ids, [*restored_edges, edge]):
            continue
        restored_edges.append(edge)
        edge_ids.add(edge.id)

    return Graph(nodes=tuple(restored_nodes), edges=tuple(restored_edges))
