"""Node role classification.

The role is derived from a node's own data only; edges play no part in it.
"""

from __future__ import annotations

from convograph.graph.models import Graph, NodeData


def classify(data: NodeData) -> str:
    """Return ``"input"``, ``"response"`` or ``"hybrid"`` for *data*.

    An explicit ``node_type`` override wins.  Otherwise a node that has an
    assistant reply is a ``response`` when its prompt is blank and a
    ``hybrid`` when it carries a follow-up prompt; everything else, including
    a prompt that has not been run yet, is an ``input``.
    """
    if data.node_type is not None:
        return data.node_type
    if data.has_assistant_message:
        return "hybrid" if data.has_prompt else "response"
    return "input"


def classify_graph(graph: Graph) -> dict[str, str]:
    """Map every node id in *graph* to its derived type."""
    return {node.id: classify(node.data) for node in graph.nodes}
