"""Export a project snapshot as Markdown or JSON."""

from __future__ import annotations

from datetime import datetime

from convograph.graph.snapshot import ProjectSnapshot

EXPORT_FORMATS: dict[str, tuple[str, str]] = {
    # id: (extension, mime type)
    "markdown": (".md", "text/markdown"),
    "json": (".json", "application/json"),
}


def export_markdown(snapshot: ProjectSnapshot) -> str:
    """Render every node's model, prompt and message history as Markdown."""
    updated = datetime.fromtimestamp(snapshot.updated_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
    lines: list[str] = [f"# {snapshot.title}", f"\n**Last Updated:** {updated}", ""]

    for node in snapshot.graph.nodes:
        data = node.data
        lines.append(f"## {data.label or 'Untitled Node'}")
        lines.append(f"\n**Model:** {data.model or 'Unknown'}")
        lines.append(f"\n**Prompt:** {data.prompt or 'No prompt'}")

        if data.messages:
            lines.append("\n### Messages:")
            for message in data.messages:
                lines.append(f"\n**{message.role.upper()}:**")
                lines.append(message.content)
                lines.append("")

        lines.append("")

    return "\n".join(lines)


def export_json(snapshot: ProjectSnapshot) -> str:
    return snapshot.to_json(indent=2)


def export_snapshot(snapshot: ProjectSnapshot, fmt: str) -> str:
    """Dispatch on *fmt* (``markdown`` or ``json``).

    Raises:
        ValueError: For an unsupported format.
    """
    if fmt == "markdown":
        return export_markdown(snapshot)
    if fmt == "json":
        return export_json(snapshot)
    raise ValueError(f"Unsupported export format {fmt!r}; use: {', '.join(EXPORT_FORMATS)}")
