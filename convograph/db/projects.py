"""CRUD helpers for stored project snapshots.

A project is one row in ``projects`` holding the whole snapshot as JSON.
The graph engine never touches storage: callers load a snapshot, mutate it
through a ``GraphStore``, and save it back with :func:`save_project`.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Optional

from convograph.graph.snapshot import ProjectSnapshot, new_snapshot


@dataclass
class ProjectRecord:
    """Listing row: everything except the snapshot body."""

    id: str
    title: str
    version: int
    created_at: int
    updated_at: int


def _row_to_record(row: sqlite3.Row) -> ProjectRecord:
    return ProjectRecord(
        id=row["id"],
        title=row["title"],
        version=row["version"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_project(conn: sqlite3.Connection, title: Optional[str] = None) -> ProjectSnapshot:
    """Insert an empty project and return its snapshot."""
    snapshot = new_snapshot(title)
    now = snapshot.updated_at
    with conn:
        conn.execute(
            """
            INSERT INTO projects (id, title, version, snapshot, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (snapshot.id, snapshot.title, snapshot.version, snapshot.to_json(), now, now),
        )
    return snapshot


def get_project(conn: sqlite3.Connection, project_id: str) -> Optional[ProjectSnapshot]:
    """Fetch and rehydrate a snapshot.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT snapshot FROM projects WHERE id = ?", (project_id,)
    ).fetchone()
    return ProjectSnapshot.from_json(row["snapshot"]) if row else None


def find_project(conn: sqlite3.Connection, name_or_id: str) -> Optional[ProjectRecord]:
    """Look a project up by exact id, then by title (most recent first)."""
    row = conn.execute(
        """
        SELECT id, title, version, created_at, updated_at
        FROM   projects
        WHERE  id = ? OR title = ?
        ORDER  BY (id = ?) DESC, updated_at DESC
        LIMIT  1
        """,
        (name_or_id, name_or_id, name_or_id),
    ).fetchone()
    return _row_to_record(row) if row else None


def list_projects(conn: sqlite3.Connection) -> list[ProjectRecord]:
    """Return every project, most recently updated first."""
    rows = conn.execute(
        """
        SELECT id, title, version, created_at, updated_at
        FROM   projects
        ORDER  BY updated_at DESC
        """
    ).fetchall()
    return [_row_to_record(r) for r in rows]


def save_project(conn: sqlite3.Connection, snapshot: ProjectSnapshot) -> ProjectSnapshot:
    """Insert or replace *snapshot*, refreshing ``metadata.updatedAt``."""
    snapshot.touch()
    body = snapshot.to_json()
    with conn:
        conn.execute(
            """
            INSERT INTO projects (id, title, version, snapshot, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title      = excluded.title,
                version    = excluded.version,
                snapshot   = excluded.snapshot,
                updated_at = excluded.updated_at
            """,
            (
                snapshot.id,
                snapshot.title,
                snapshot.version,
                body,
                snapshot.updated_at,
                snapshot.updated_at,
            ),
        )
    return snapshot


def delete_project(conn: sqlite3.Connection, project_id: str) -> bool:
    """Delete a project.  Returns ``False`` if it did not exist."""
    with conn:
        cursor = conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
    return cursor.rowcount > 0
