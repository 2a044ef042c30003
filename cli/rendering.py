"""Utilities for rendering conversation graphs in the CLI."""

from __future__ import annotations

from convograph.graph.classify import classify
from convograph.graph.context import designated_parent_edge
from convograph.graph.models import Graph, Node

_ICONS = {
    "input": "✏️",
    "response": "💬",
    "hybrid": "🔀",
}

_STATUS_MARKS = {
    "running": " …",
    "error": " ❌",
    "success": "",
    "idle": "",
}


def node_title(node: Node, width: int = 40) -> str:
    """A one-line label: the node label, else its prompt, else the last message."""
    data = node.data
    text = data.label or data.prompt.strip()
    if not text and data.messages:
        text = data.messages[-1].content
    text = " ".join(text.split()) or "(empty)"
    return text if len(text) <= width else text[: width - 1] + "…"


def render_node_line(node: Node) -> str:
    node_type = classify(node.data)
    icon = _ICONS.get(node_type, "📦")
    mark = _STATUS_MARKS.get(node.data.status, "")
    return f"{icon} [{node_type}] {node_title(node)} ({node.id}){mark}"


def render_forest(graph: Graph) -> str:
    """Render *graph* as an ASCII forest, one tree per root.

    A node with several parents is drawn under its designated parent (the
    most recently connected one); every other incoming edge is listed as a
    ``↳ also from`` line so no link is hidden.
    """
    if not graph.nodes:
        return "(empty graph)"

    children: dict[str, list[str]] = {}
    extra_parents: dict[str, list[str]] = {}
    node_ids = graph.node_ids
    for node in graph.nodes:
        primary = designated_parent_edge(graph, node.id)
        for edge in graph.incoming(node.id):
            if edge.source not in node_ids:
                continue
            if edge is primary:
                children.setdefault(edge.source, []).append(node.id)
            else:
                extra_parents.setdefault(node.id, []).append(edge.source)

    lines: list[str] = []
    visited: set[str] = set()

    def _render(node_id: str, prefix: str, is_last: bool, is_root: bool) -> None:
        if node_id in visited:
            return
        visited.add(node_id)
        node = graph.get_node(node_id)
        if node is None:
            return

        if is_root:
            lines.append(render_node_line(node))
            child_prefix = ""
        else:
            connector = "└── " if is_last else "├── "
            lines.append(f"{prefix}{connector}{render_node_line(node)}")
            child_prefix = prefix + ("    " if is_last else "│   ")

        for other in extra_parents.get(node_id, []):
            lines.append(f"{child_prefix}    ↳ also from {other}")

        kids = children.get(node_id, [])
        for i, child_id in enumerate(kids):
            _render(child_id, child_prefix, i == len(kids) - 1, False)

    roots = [n.id for n in graph.roots()]
    # A node whose designated parent is missing has no drawn parent either.
    drawn_under = {c for kids in children.values() for c in kids}
    for node in graph.nodes:
        if node.id not in drawn_under and node.id not in roots:
            roots.append(node.id)

    for root_id in roots:
        _render(root_id, "", True, True)
    return "\n".join(lines)
