"""Project management commands."""

from pathlib import Path
from typing import Optional

import typer

from convograph.db import get_connection, init_db
from convograph.db.projects import (
    create_project,
    delete_project,
    find_project,
    get_project,
    list_projects,
)
from convograph.export import EXPORT_FORMATS, export_snapshot
from cli.context import clear_context, load_context, require_context, save_context

project_app = typer.Typer(help="Manage conversation projects.", no_args_is_help=True)


@project_app.command("new")
def project_new(
    name: str = typer.Argument(..., help="Title of the new project.")
) -> None:
    """Create a new project and switch to it."""
    conn = get_connection()
    init_db(conn)

    try:
        snapshot = create_project(conn, name)
        typer.echo(f"✅ Project created: {snapshot.title} ({snapshot.id})")

        ctx = load_context()
        ctx.active_project_id = snapshot.id
        ctx.active_project_name = snapshot.title
        save_context(ctx)

        typer.echo(f"📂 Switched to project: {snapshot.title}")
    finally:
        conn.close()


@project_app.command("list")
def project_list() -> None:
    """List all projects, most recently updated first."""
    conn = get_connection()
    init_db(conn)

    try:
        projects = list_projects(conn)
        if not projects:
            typer.echo("No projects found.")
            return

        active_id = load_context().active_project_id
        typer.echo("Projects:")
        for p in projects:
            marker = "*" if p.id == active_id else " "
            typer.echo(f"{marker} {p.title} \t[{p.id}]")
    finally:
        conn.close()


@project_app.command("switch")
def project_switch(
    identifier: str = typer.Argument(..., help="Project title or id.")
) -> None:
    """Switch the active project."""
    conn = get_connection()
    init_db(conn)

    try:
        target = find_project(conn, identifier)
        if target is None:
            typer.echo(f"❌ Project '{identifier}' not found.")
            raise typer.Exit(code=1)

        ctx = load_context()
        ctx.active_project_id = target.id
        ctx.active_project_name = target.title
        save_context(ctx)

        typer.echo(f"📂 Switched to project: {target.title}")
    finally:
        conn.close()


@project_app.command("export")
@require_context
def project_export(
    fmt: str = typer.Option("markdown", "--format", help="Export format: markdown | json"),
    output: Optional[Path] = typer.Option(
        None, help="Output file. Defaults to <project_title>.md / .json"
    ),
) -> None:
    """Export the active project as Markdown or JSON."""
    if fmt not in EXPORT_FORMATS:
        typer.echo(f"❌ Unknown format {fmt!r}. Use: {' | '.join(EXPORT_FORMATS)}")
        raise typer.Exit(code=1)

    ctx = load_context()
    conn = get_connection()
    init_db(conn)

    try:
        snapshot = get_project(conn, ctx.active_project_id)
        if snapshot is None:
            typer.echo(f"❌ Active project {ctx.active_project_id} no longer exists.")
            raise typer.Exit(code=1)

        if not output:
            safe_name = "".join(
                c for c in snapshot.title if c.isalnum() or c in (" ", "-", "_")
            ).strip().replace(" ", "_") or "project"
            suffix = ".md" if fmt == "markdown" else ".json"
            output = Path(f"{safe_name}{suffix}")

        output.write_text(export_snapshot(snapshot, fmt), encoding="utf-8")
        typer.echo(f"✅ Exported to {output.absolute()}")
    finally:
        conn.close()


@project_app.command("delete")
def project_delete(
    identifier: str = typer.Argument(..., help="Project title or id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete a project and its whole graph."""
    conn = get_connection()
    init_db(conn)

    try:
        target = find_project(conn, identifier)
        if target is None:
            typer.echo(f"❌ Project '{identifier}' not found.")
            raise typer.Exit(code=1)

        if not yes:
            typer.confirm(f"Delete project '{target.title}'?", abort=True)

        delete_project(conn, target.id)
        typer.echo(f"🗑️  Deleted project: {target.title}")

        if load_context().active_project_id == target.id:
            clear_context()
    finally:
        conn.close()
