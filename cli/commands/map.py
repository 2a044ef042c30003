"""Commands for viewing and editing the active project's conversation graph."""

from contextlib import contextmanager
from typing import Iterator, Optional

import typer

from convograph.db import get_connection, init_db
from convograph.db.projects import get_project, save_project
from convograph.graph.errors import NodeNotFoundError
from convograph.graph.models import Position
from convograph.graph.snapshot import ProjectSnapshot
from convograph.graph.store import GraphStore, build_node

from cli.context import load_context, require_context
from cli.rendering import node_title, render_forest, render_node_line

map_app = typer.Typer(help="View and edit the conversation graph.", no_args_is_help=True)


@contextmanager
def _active_store(save: bool = True) -> Iterator[tuple[ProjectSnapshot, GraphStore]]:
    """Yield the active snapshot and a ``GraphStore`` over it; persist on exit.

    Nothing is written when the body raises (including ``typer.Exit``).
    """
    ctx = load_context()
    conn = get_connection()
    init_db(conn)
    try:
        snapshot = get_project(conn, ctx.active_project_id)
        if snapshot is None:
            typer.echo(f"❌ Active project {ctx.active_project_id} no longer exists.")
            raise typer.Exit(code=1)
        try:
            store = GraphStore(snapshot.graph)
        except ValueError as exc:
            typer.echo(f"❌ Project graph is invalid: {exc}")
            raise typer.Exit(code=1) from exc
        start = store.version
        yield snapshot, store
        if save and store.version != start:
            snapshot.graph = store.graph
            save_project(conn, snapshot)
    finally:
        conn.close()


def _fail(message: str) -> None:
    typer.echo(f"❌ {message}")
    raise typer.Exit(code=1)


@map_app.command("show")
@require_context
def map_show(
    format: str = typer.Option("tree", "--format", help="Output format: tree | list"),
) -> None:
    """Display the graph as an ASCII forest or a flat list."""
    if format not in ("tree", "list"):
        _fail(f"Unknown format {format!r}. Use: tree | list")

    with _active_store(save=False) as (_, store):
        if format == "list":
            if not store.nodes:
                typer.echo("(empty graph)")
            for node in store.nodes:
                typer.echo(f"  {render_node_line(node)}")
            for edge in store.edges:
                typer.echo(f"  {edge.source} → {edge.target}  [{edge.id}]")
            return
        typer.echo(render_forest(store.graph))


@map_app.command("add")
@require_context
def map_add(
    prompt: str = typer.Argument("", help="Prompt text for the new node."),
    model: Optional[str] = typer.Option(None, help="Model id. Defaults to the project's default."),
    label: Optional[str] = typer.Option(None, help="Display label."),
    x: float = typer.Option(0.0, help="Canvas x position."),
    y: float = typer.Option(0.0, help="Canvas y position."),
) -> None:
    """Add a standalone node to the graph."""
    with _active_store() as (snapshot, store):
        node = store.add_node(
            build_node(
                prompt=prompt,
                model=model or snapshot.settings.get("defaultModel", ""),
                position=Position(x=x, y=y),
                label=label,
            )
        )
    typer.echo(f"✅ Added node {node.id}")


@map_app.command("connect")
@require_context
def map_connect(
    source_id: str = typer.Argument(..., help="Source node id."),
    target_id: str = typer.Argument(..., help="Target node id."),
) -> None:
    """Connect two nodes (source → target) if the graph stays acyclic."""
    with _active_store() as (_, store):
        outcome = store.connect_edge(source_id, target_id)
        if not outcome.accepted:
            _fail(f"{outcome.message} ({outcome.reason.value})")
    typer.echo(f"✅ Connected: {source_id} → {target_id}")


@map_app.command("delete")
@require_context
def map_delete(
    node_id: str = typer.Argument(..., help="Node id to delete."),
    cascade: bool = typer.Option(
        False, "--cascade", help="Also delete every descendant branch."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete a node; nodes with child branches need ``--cascade``."""
    with _active_store() as (_, store):
        if store.graph.get_node(node_id) is None:
            _fail(f"Node {node_id} not found.")

        preview = store.preview_delete([node_id])
        if preview.has_branches and not cascade:
            _fail(
                f"Node has {preview.branch_count} child branch(es). "
                "Re-run with --cascade to delete the whole branch."
            )

        if cascade and not yes:
            typer.confirm(
                f"Delete {preview.node_count} node(s) and {preview.edge_count} edge(s)?",
                abort=True,
            )

        store.request_delete([node_id], cascade=cascade)
        removed = preview.node_count if cascade else 1
    typer.echo(f"🗑️  Deleted {removed} node(s).")


@map_app.command("branch")
@require_context
def map_branch(
    parent_id: str = typer.Argument(..., help="Node to fork from."),
    prompt: str = typer.Option("", help="Prompt for the new branch."),
    model: Optional[str] = typer.Option(None, help="Model id. Defaults to the parent's."),
) -> None:
    """Fork a new node off *parent_id*."""
    with _active_store() as (_, store):
        try:
            node, _ = store.create_branch(parent_id, prompt=prompt, model=model)
        except NodeNotFoundError:
            _fail(f"Node {parent_id} not found.")
    typer.echo(f"🌿 Branched {node.id} from {parent_id}")


@map_app.command("prompt")
@require_context
def map_prompt(
    node_id: str = typer.Argument(..., help="Node to edit."),
    text: str = typer.Argument(..., help="New prompt text."),
) -> None:
    """Set the pending prompt of a node."""
    with _active_store() as (_, store):
        try:
            node = store.update_node_data(node_id, prompt=text)
        except NodeNotFoundError:
            _fail(f"Node {node_id} not found.")
    typer.echo(f"✏️  Updated {node_title(node)} ({node.id})")


@map_app.command("context")
@require_context
def map_context(
    node_id: str = typer.Argument(..., help="Node whose upstream transcript to show."),
) -> None:
    """Print the transcript that running *node_id* would send to a model."""
    with _active_store(save=False) as (_, store):
        try:
            context = store.collect_context(node_id)
        except NodeNotFoundError:
            _fail(f"Node {node_id} not found.")

    typer.echo(f"Chain: {' → '.join(context.chain)}")
    typer.echo("-" * 40)
    for message in context:
        typer.echo(f"{message.role.upper()}: {message.content}")

    error = context.incomplete_error()
    if error is not None:
        typer.echo(f"⚠️  {error.message}")
