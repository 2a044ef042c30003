"""The Graph Store: sole owner of a live conversation graph.

Every mutation goes through a :class:`GraphStore` method, which builds a new
:class:`~convograph.graph.models.Graph` with the pure functions in
:mod:`convograph.graph.mutations` and then commits it in one step.  A graph
obtained earlier from ``store.graph`` is never modified, so readers holding a
snapshot keep seeing a consistent graph.

Usage::

    store = GraphStore(snapshot.graph)
    unsubscribe = store.subscribe(lambda s: print("v", s.version))

    outcome = store.connect_edge("n1", "n2")
    if not outcome.accepted:
        print(outcome.reason.value, outcome.message)

    store.delete_branch_cascade("n2")
    transcript = list(store.collect_context("n1"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Optional, Union

from convograph.graph import mutations
from convograph.graph.cascade import CascadeClosure, compute_closure, count_child_branches
from convograph.graph.changes import apply_edge_changes, apply_node_changes
from convograph.graph.classify import classify, classify_graph
from convograph.graph.context import UpstreamContext, collect_context
from convograph.graph.errors import NodeError, NodeNotFoundError
from convograph.graph.layout import calculate_branch_position
from convograph.graph.models import (
    EDITABLE_FIELDS,
    Edge,
    Graph,
    Message,
    Node,
    NodeData,
    Position,
    now_ms,
)
from convograph.graph.mutations import ConnectOutcome

logger = logging.getLogger(__name__)

Listener = Callable[["GraphStore"], None]


@dataclass(frozen=True)
class BranchDeletion:
    """History entry recorded for each cascade so it can be undone."""

    root_id: str
    nodes: tuple[Node, ...]
    edges: tuple[Edge, ...]


@dataclass(frozen=True)
class DeletePreview:
    """What deleting *node_ids* would entail, for confirmation prompts."""

    node_ids: tuple[str, ...]
    branch_count: int
    closure_node_ids: frozenset[str]
    closure_edge_ids: frozenset[str]

    @property
    def has_branches(self) -> bool:
        return self.branch_count > 0

    @property
    def node_count(self) -> int:
        return len(self.closure_node_ids)

    @property
    def edge_count(self) -> int:
        return len(self.closure_edge_ids)


def build_node(
    prompt: str = "",
    model: str = "",
    *,
    node_id: Optional[str] = None,
    position: Optional[Position] = None,
    label: Optional[str] = None,
    node_type: Optional[str] = None,
    source_node_id: Optional[str] = None,
) -> Node:
    """Create a fresh idle chat node (not yet added to any graph)."""
    return Node(
        id=node_id or mutations.new_id("node"),
        position=position or Position(),
        data=NodeData(
            model=model,
            prompt=prompt,
            label=label,
            node_type=node_type,
            source_node_id=source_node_id,
            created_at=now_ms(),
        ),
    )


def _check_unique(ids: list[str], what: str) -> None:
    seen: set[str] = set()
    for item in ids:
        if item in seen:
            raise ValueError(f"Duplicate {what} id: {item!r}")
        seen.add(item)


class GraphStore:
    """Owns one graph snapshot plus selection, version and undo state."""

    def __init__(self, graph: Optional[Graph] = None) -> None:
        self._graph = Graph()
        self.version = 0
        self.selected_node_id: Optional[str] = None
        self._listeners: list[Listener] = []
        self._past: list[BranchDeletion] = []
        self._future: list[BranchDeletion] = []
        if graph is not None:
            self.load(graph)

    # ------------------------------------------------------------------
    # State and subscriptions
    # ------------------------------------------------------------------

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._graph.nodes

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._graph.edges

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _commit(self, graph: Graph, action: str) -> None:
        self._graph = graph
        self.version += 1
        if self.selected_node_id is not None and graph.get_node(self.selected_node_id) is None:
            self.selected_node_id = None
        logger.debug(
            "Committed %s (v%d): %d nodes, %d edges",
            action,
            self.version,
            len(graph.nodes),
            len(graph.edges),
        )
        self._notify()

    def _require(self, node_id: str) -> Node:
        node = self._graph.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    # ------------------------------------------------------------------
    # Bulk load
    # ------------------------------------------------------------------

    def set_nodes(self, nodes: Iterable[Node]) -> None:
        """Replace all nodes (initial load).  Duplicate ids raise ``ValueError``."""
        nodes = tuple(nodes)
        _check_unique([n.id for n in nodes], "node")
        graph = replace(self._graph, nodes=nodes)
        self._warn_dangling(graph)
        self._commit(graph, "set_nodes")

    def set_edges(self, edges: Iterable[Edge]) -> None:
        """Replace all edges (initial load).  Duplicate ids raise ``ValueError``.

        Edges pointing at missing nodes are accepted but treated as unusable
        by every later operation.
        """
        edges = tuple(edges)
        _check_unique([e.id for e in edges], "edge")
        graph = replace(self._graph, edges=edges)
        self._warn_dangling(graph)
        self._commit(graph, "set_edges")

    def load(self, graph: Graph) -> None:
        """Replace nodes and edges together and reset undo history."""
        _check_unique([n.id for n in graph.nodes], "node")
        _check_unique([e.id for e in graph.edges], "edge")
        self._warn_dangling(graph)
        self._past.clear()
        self._future.clear()
        self._commit(graph, "load")

    @staticmethod
    def _warn_dangling(graph: Graph) -> None:
        dangling = graph.dangling_edges()
        if dangling:
            logger.warning("Graph has %d dangling edge(s): %s", len(dangling), [e.id for e in dangling])

    # ------------------------------------------------------------------
    # Canvas change batches
    # ------------------------------------------------------------------

    def apply_node_changes(self, changes: Iterable[dict[str, Any]]) -> list[str]:
        """Apply position/select/remove changes; returns removed node ids."""
        graph, removed = apply_node_changes(self._graph, changes)
        if graph is not self._graph:
            self._commit(graph, "apply_node_changes")
        return removed

    def apply_edge_changes(self, changes: Iterable[dict[str, Any]]) -> None:
        graph = apply_edge_changes(self._graph, changes)
        if graph is not self._graph:
            self._commit(graph, "apply_edge_changes")

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def connect_edge(self, source: str, target: str, edge_id: Optional[str] = None) -> ConnectOutcome:
        """Add an edge if it keeps the graph valid; otherwise change nothing."""
        outcome = mutations.connect_edge(self._graph, source, target, edge_id)
        if outcome.accepted:
            self._commit(outcome.graph, "connect_edge")
        return outcome

    def rewire_edge(self, edge_id: str, source: str, target: str) -> ConnectOutcome:
        outcome = mutations.rewire_edge(self._graph, edge_id, source, target)
        if outcome.accepted:
            self._commit(outcome.graph, "rewire_edge")
        return outcome

    def remove_edges_connected_to_node(self, node_id: str) -> None:
        graph = mutations.remove_edges_connected_to_node(self._graph, node_id)
        if len(graph.edges) != len(self._graph.edges):
            self._commit(graph, "remove_edges_connected_to_node")

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def remove_node(self, node_id: str) -> None:
        """Remove one node and its edges.  No-op for an unknown id."""
        if self._graph.get_node(node_id) is None:
            return
        self._commit(mutations.remove_node(self._graph, node_id), "remove_node")

    def delete_branch_cascade(self, node_id: str) -> CascadeClosure:
        """Remove *node_id* and all its descendants.  Idempotent."""
        before = self._graph
        graph, closure = mutations.delete_branch_cascade(before, node_id)
        if closure.is_empty:
            return closure

        self._past.append(
            BranchDeletion(
                root_id=node_id,
                nodes=tuple(n for n in before.nodes if n.id in closure.node_ids),
                edges=tuple(e for e in before.edges if e.id in closure.edge_ids),
            )
        )
        self._future.clear()
        logger.info(
            "Cascade delete from %s: %d node(s), %d edge(s)",
            node_id,
            closure.node_count,
            closure.edge_count,
        )
        self._commit(graph, "delete_branch_cascade")
        return closure

    def preview_delete(self, node_ids: Iterable[str]) -> DeletePreview:
        """Closure sizes and child-branch count for a pending delete."""
        ids = [nid for nid in node_ids if self._graph.get_node(nid) is not None]
        closure_nodes: set[str] = set()
        closure_edges: set[str] = set()
        for nid in ids:
            closure = compute_closure(nid, self._graph)
            closure_nodes |= closure.node_ids
            closure_edges |= closure.edge_ids
        return DeletePreview(
            node_ids=tuple(ids),
            branch_count=count_child_branches(self._graph, ids),
            closure_node_ids=frozenset(closure_nodes),
            closure_edge_ids=frozenset(closure_edges),
        )

    def request_delete(self, node_ids: Iterable[str], cascade: bool = False) -> DeletePreview:
        """Delete nodes the way the canvas does.

        Nodes without child branches are removed with their edges.  If any
        node has children and *cascade* is false nothing happens and the
        returned preview tells the caller to ask for confirmation; with
        *cascade* every node goes through :meth:`delete_branch_cascade`.
        """
        preview = self.preview_delete(node_ids)
        if preview.has_branches and not cascade:
            return preview
        for nid in preview.node_ids:
            if cascade:
                self.delete_branch_cascade(nid)
            else:
                self.remove_node(nid)
        return preview

    def undo(self) -> bool:
        """Restore the most recent cascade deletion.  ``False`` if none."""
        if not self._past:
            return False
        entry = self._past.pop()
        self._future.insert(0, entry)
        self._commit(mutations.restore(self._graph, entry.nodes, entry.edges), "undo")
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone cascade deletion."""
        if not self._future:
            return False
        entry = self._future.pop(0)
        graph, closure = mutations.delete_branch_cascade(self._graph, entry.root_id)
        self._past.append(entry)
        if not closure.is_empty:
            self._commit(graph, "redo")
        return True

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node: Node) -> Node:
        """Add *node*, stamping ``createdAt`` when it is missing."""
        if node.data.created_at is None:
            node = replace(node, data=node.data.evolve(created_at=now_ms()))
        self._commit(mutations.add_node(self._graph, node), "add_node")
        return node

    def update_node_data(self, node_id: str, **fields: Any) -> Node:
        """Edit user-facing fields (``prompt``, ``model``, ``label``, ...).

        Raises:
            NodeNotFoundError: If *node_id* does not exist.
            ValueError: For unknown fields or invalid values.
        """
        self._require(node_id)
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if not fields:
            raise ValueError("No fields provided to update_node_data()")
        graph = mutations.update_node_data(self._graph, node_id, lambda d: d.evolve(**fields))
        self._commit(graph, "update_node_data")
        return self._require(node_id)

    def set_node_status(self, node_id: str, status: str) -> None:
        self._commit(
            mutations.update_node_data(self._graph, node_id, lambda d: d.evolve(status=status)),
            "set_node_status",
        )

    def set_node_error(self, node_id: str, error: Union[NodeError, str, None]) -> None:
        """Attach (or clear, with ``None``) an execution error message."""
        message = error.message if isinstance(error, NodeError) else error
        self._commit(
            mutations.update_node_data(self._graph, node_id, lambda d: d.evolve(error=message)),
            "set_node_error",
        )

    def add_message(self, node_id: str, message: Message) -> None:
        """Append *message* to a node's history (ids are unique per node)."""
        node = self._require(node_id)
        if any(m.id == message.id for m in node.data.messages):
            raise ValueError(f"Message id already used on {node_id!r}: {message.id!r}")
        self._commit(
            mutations.update_node_data(
                self._graph, node_id, lambda d: d.evolve(messages=(*d.messages, message))
            ),
            "add_message",
        )

    def clear_messages(self, node_id: str) -> None:
        self._commit(
            mutations.update_node_data(self._graph, node_id, lambda d: d.evolve(messages=())),
            "clear_messages",
        )

    def convert_to_input(self, node_id: str) -> None:
        """Clear the prompt so the node can take a follow-up, keeping history."""

        def convert(data: NodeData) -> NodeData:
            return data.evolve(prompt="", node_type="hybrid" if data.messages else "input")

        self._commit(mutations.update_node_data(self._graph, node_id, convert), "convert_to_input")

    def duplicate_node(self, node_id: str) -> Node:
        """Copy a node (no edges) with a new id, offset 200 to the right."""
        original = self._require(node_id)
        data = original.data
        if data.label is not None:
            data = data.evolve(label=f"{data.label} (Copy)")
        copy = Node(
            id=mutations.new_id("node"),
            position=Position(x=original.position.x + 200, y=original.position.y),
            data=data,
            extra=dict(original.extra),
        )
        self._commit(mutations.add_node(self._graph, copy), "duplicate_node")
        return copy

    def create_branch(
        self,
        parent_id: str,
        prompt: str = "",
        model: Optional[str] = None,
        viewport: Optional[tuple[float, float]] = None,
    ) -> tuple[Node, Edge]:
        """Fork a new input node off *parent_id* and link it in one commit."""
        parent = self._require(parent_id)
        index = len(self._graph.outgoing(parent_id))
        child = build_node(
            prompt=prompt,
            model=model if model is not None else parent.data.model,
            position=calculate_branch_position(parent.position, index, viewport=viewport),
            source_node_id=parent_id,
        )
        outcome = mutations.connect_edge(mutations.add_node(self._graph, child), parent_id, child.id)
        if not outcome.accepted or outcome.edge is None:
            # A brand-new leaf can always be linked; anything else is a bug.
            raise RuntimeError(f"Branch edge rejected: {outcome.reason}")
        self._commit(outcome.graph, "create_branch")
        return child, outcome.edge

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_node(self, node_id: Optional[str]) -> None:
        if node_id is not None:
            self._require(node_id)
        self.selected_node_id = node_id
        self._notify()

    @property
    def selected_node(self) -> Optional[Node]:
        if self.selected_node_id is None:
            return None
        return self._graph.get_node(self.selected_node_id)

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------

    def collect_context(self, node_id: str) -> UpstreamContext:
        return collect_context(node_id, self._graph)

    def classify(self, node_id: str) -> str:
        return classify(self._require(node_id).data)

    def node_types(self) -> dict[str, str]:
        return classify_graph(self._graph)
