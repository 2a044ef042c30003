"""convograph CLI entry-point for project and graph operations.

Usage:
    convograph --help

Command groups:
    project   → create, list, switch, export and delete projects
    map       → show and edit the active project's conversation graph
"""

from __future__ import annotations

from typing import Optional

import typer

from convograph import __version__
from convograph.config import configure_logging, settings
from convograph.db import get_connection, init_db

from cli.commands.map import map_app
from cli.commands.project import project_app

app = typer.Typer(
    name="convograph",
    help="Branching LLM conversation graphs from the command line.",
    no_args_is_help=True,
)
app.add_typer(project_app, name="project")
app.add_typer(map_app, name="map")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)."
    ),
) -> None:
    configure_logging(log_level)


@app.command("init")
def init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[init] Database ready at {settings.db_path}")


@app.command("version")
def version() -> None:
    typer.echo(f"convograph {__version__}")


if __name__ == "__main__":
    app()
