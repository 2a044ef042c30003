"""Project snapshot endpoints.

Routes
------
GET    /projects                     List projects (id, title, updatedAt)
POST   /projects                     Create an empty project
GET    /projects/{id}                Full snapshot
PUT    /projects/{id}                Replace the snapshot (load path)
DELETE /projects/{id}                Delete a project
GET    /projects/{id}/export         Export as markdown or json
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from convograph.db.projects import (
    create_project,
    delete_project,
    get_project,
    list_projects,
    save_project,
)
from convograph.export import EXPORT_FORMATS, export_snapshot
from convograph.graph.snapshot import ProjectSnapshot
from convograph.graph.store import GraphStore

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ProjectCreate(BaseModel):
    title: Optional[str] = None


class ProjectSummary(BaseModel):
    id: str
    title: str
    version: int
    createdAt: int
    updatedAt: int


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[ProjectSummary])
def list_projects_endpoint(request: Request) -> list[dict[str, Any]]:
    """Return all projects, most recently updated first."""
    conn = request.app.state.db
    return [
        {
            "id": p.id,
            "title": p.title,
            "version": p.version,
            "createdAt": p.created_at,
            "updatedAt": p.updated_at,
        }
        for p in list_projects(conn)
    ]


@router.post("", status_code=201)
def create_project_endpoint(body: ProjectCreate, request: Request) -> dict[str, Any]:
    """Create an empty project and return its snapshot."""
    conn = request.app.state.db
    return create_project(conn, body.title).to_dict()


@router.get("/{project_id}")
def get_project_endpoint(project_id: str, request: Request) -> dict[str, Any]:
    conn = request.app.state.db
    snapshot = get_project(conn, project_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found.")
    return snapshot.to_dict()


@router.put("/{project_id}")
def replace_project_endpoint(
    project_id: str, body: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Store a full snapshot under *project_id* (the canvas load/save path)."""
    conn = request.app.state.db
    if body.get("id", project_id) != project_id:
        raise HTTPException(status_code=400, detail="Snapshot id does not match the URL.")
    try:
        snapshot = ProjectSnapshot.from_dict({**body, "id": project_id})
        GraphStore(snapshot.graph)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return save_project(conn, snapshot).to_dict()


@router.delete("/{project_id}")
def delete_project_endpoint(project_id: str, request: Request) -> Response:
    conn = request.app.state.db
    if not delete_project(conn, project_id):
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found.")
    return Response(status_code=204)


@router.get("/{project_id}/export")
def export_project_endpoint(
    project_id: str, request: Request, format: str = "markdown"
) -> Response:
    """Return the project rendered in *format* (``markdown`` or ``json``)."""
    conn = request.app.state.db
    snapshot = get_project(conn, project_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found.")
    if format not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported format {format!r}; use one of {', '.join(EXPORT_FORMATS)}.",
        )
    _, media_type = EXPORT_FORMATS[format]
    return Response(content=export_snapshot(snapshot, format), media_type=media_type)
