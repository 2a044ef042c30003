"""Upstream context collection.

``collect_context(node_id, graph)`` walks the designated-parent chain from a
node back to its root and yields the transcript that is sent to a model when
the node is executed::

    root messages, root prompt, ..., parent messages, parent prompt,
    own messages, own prompt

Designated parent
-----------------
A node may have several incoming edges.  Histories are never merged: the
parent followed is the one whose edge was connected most recently, i.e. the
last incoming edge in edge-list order whose source exists.  Dangling edges
are passed over and reported in ``missing_nodes``.  ``connect_edge``
appends, and the snapshot keeps edge order, so the choice is stable across
save/load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from convograph.graph.errors import NodeError, NodeNotFoundError, context_incomplete_error
from convograph.graph.models import Edge, Graph, Message, Node

logger = logging.getLogger(__name__)


def _parent_lookup(graph: Graph, node_id: str) -> tuple[Optional[Edge], list[str]]:
    """Designated parent edge of *node_id* plus the dangling sources passed over."""
    node_ids = graph.node_ids
    skipped: list[str] = []
    for edge in reversed(graph.incoming(node_id)):
        if edge.source in node_ids:
            return edge, skipped
        skipped.append(edge.source)
    return None, skipped


def designated_parent_edge(graph: Graph, node_id: str) -> Optional[Edge]:
    """Return the incoming edge that defines *node_id*'s context, if any.

    Edges whose source no longer exists are never designated.
    """
    return _parent_lookup(graph, node_id)[0]


def prompt_message(node: Node) -> Optional[Message]:
    """Render a node's pending prompt as a ``user`` message (``None`` if blank)."""
    if not node.data.has_prompt:
        return None
    return Message(
        id=f"{node.id}:prompt",
        role="user",
        content=node.data.prompt,
        created_at=node.data.created_at,
    )


def node_contribution(node: Node) -> Iterator[Message]:
    """Messages a single node adds to a transcript: history, then prompt."""
    yield from node.data.messages
    pending = prompt_message(node)
    if pending is not None:
        yield pending


@dataclass(frozen=True)
class UpstreamContext:
    """The result of walking a node's ancestry.

    Iterating yields the transcript.  Every iteration recomputes it from the
    held graph snapshot, so the object can be iterated any number of times
    and holds no cursor.
    """

    node_id: str
    chain: tuple[str, ...]
    error_nodes: tuple[str, ...] = ()
    missing_nodes: tuple[str, ...] = ()
    graph: Graph = field(default_factory=Graph, repr=False, compare=False)

    @property
    def is_complete(self) -> bool:
        return not self.error_nodes and not self.missing_nodes

    def __iter__(self) -> Iterator[Message]:
        for node_id in self.chain:
            node = self.graph.get_node(node_id)
            if node is not None:
                yield from node_contribution(node)

    @property
    def messages(self) -> list[Message]:
        return list(self)

    def as_payload(self) -> list[dict[str, str]]:
        """``[{"role", "content"}]`` list in the shape model clients expect."""
        return [{"role": m.role, "content": m.content} for m in self]

    def incomplete_error(self) -> Optional[NodeError]:
        if self.is_complete:
            return None
        return context_incomplete_error(list(self.error_nodes), list(self.missing_nodes))


def collect_context(node_id: str, graph: Graph) -> UpstreamContext:
    """Assemble the conversation context for *node_id*.

    Ancestors in ``error`` status still contribute but are reported in
    ``error_nodes``; incoming edges whose source does not exist are passed
    over and reported in ``missing_nodes``.  Either makes the context
    incomplete without raising.

    Raises:
        NodeNotFoundError: If *node_id* is not in *graph*.
    """
    target = graph.get_node(node_id)
    if target is None:
        raise NodeNotFoundError(node_id)

    chain: list[str] = [node_id]
    seen: set[str] = {node_id}
    missing: list[str] = []
    current = node_id

    while True:
        edge, dangling = _parent_lookup(graph, current)
        for source in dangling:
            if source not in missing:
                missing.append(source)
        if edge is None:
            break
        parent_id = edge.source
        if parent_id in seen:
            # Malformed (cyclic) input; stop at the first repeat.
            logger.warning("Cycle detected while collecting context for %s at %s", node_id, parent_id)
            break
        seen.add(parent_id)
        chain.append(parent_id)
        current = parent_id

    chain.reverse()
    error_nodes = tuple(
        nid for nid in chain[:-1] if graph.get_node(nid).data.status == "error"  # type: ignore[union-attr]
    )
    context = UpstreamContext(
        node_id=node_id,
        chain=tuple(chain),
        error_nodes=error_nodes,
        missing_nodes=tuple(missing),
        graph=graph,
    )
    logger.debug(
        "Context for %s: chain=%s complete=%s", node_id, context.chain, context.is_complete
    )
    return context
