"""The CLI's notion of "current project".

``project new`` and ``project switch`` record the project that the ``map``
commands edit; the record is a small JSON file, ``context.json``, inside
``settings.cli_config_dir``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from functools import wraps
from pathlib import Path
from typing import Callable

import typer

from convograph.config import settings

logger = logging.getLogger(__name__)


@dataclass
class CliContext:
    active_project_id: str | None = None
    active_project_name: str | None = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> CliContext:
        """Parse a saved context; an unreadable file means no active project."""
        try:
            raw = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable CLI context file")
            return cls()
        if not isinstance(raw, dict):
            logger.warning("Ignoring CLI context that is not a JSON object")
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in raw.items() if k in known})


def context_path() -> Path:
    return settings.cli_config_dir / "context.json"


def load_context() -> CliContext:
    path = context_path()
    if not path.exists():
        return CliContext()
    try:
        return CliContext.from_json(path.read_text(encoding="utf-8"))
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return CliContext()


def save_context(ctx: CliContext) -> None:
    settings.cli_config_dir.mkdir(parents=True, exist_ok=True)
    context_path().write_text(ctx.to_json(), encoding="utf-8")


def clear_context() -> None:
    """Forget the active project (after it has been deleted)."""
    save_context(CliContext())


def require_context(func: Callable) -> Callable:
    """Exit with code 1 unless a project is active.

    The wrapped command reads the project itself through :func:`load_context`.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        if not load_context().active_project_id:
            typer.echo("❌ No active project selected.")
            typer.echo(
                "Create one with 'convograph project new TITLE' "
                "or pick one with 'convograph project switch PROJECT'."
            )
            raise typer.Exit(code=1)
        return func(*args, **kwargs)

    return wrapper
