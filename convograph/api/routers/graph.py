"""Graph intent endpoints.

Every request loads the project snapshot, applies one intent through a
``GraphStore``, and saves the result.  Rejected intents leave the stored
snapshot untouched.

Routes
------
POST   /projects/{pid}/nodes                    Add a node
PATCH  /projects/{pid}/nodes/{nid}              Edit prompt / model / label / nodeType
POST   /projects/{pid}/nodes/{nid}/branch       Fork a branch node off {nid}
DELETE /projects/{pid}/nodes/{nid}?cascade=     Delete a node (single or whole branch)
GET    /projects/{pid}/nodes/{nid}/cascade      Preview what a cascade would remove
GET    /projects/{pid}/nodes/{nid}/context      Upstream transcript + completeness
GET    /projects/{pid}/node-types               Derived type for every node
POST   /projects/{pid}/edges                    Connect two nodes (409 on rejection)
POST   /projects/{pid}/changes                  Apply canvas change batches
"""

from __future__ import annotations

import sqlite3
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from convograph.db.projects import get_project, save_project
from convograph.graph.classify import classify
from convograph.graph.errors import NodeNotFoundError
from convograph.graph.models import Node, Position
from convograph.graph.snapshot import ProjectSnapshot
from convograph.graph.store import GraphStore, build_node

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class PositionIn(BaseModel):
    x: float = 0
    y: float = 0


class NodeCreate(BaseModel):
    id: Optional[str] = None
    prompt: str = ""
    model: Optional[str] = None
    label: Optional[str] = None
    nodeType: Optional[str] = None
    position: Optional[PositionIn] = None


class NodeUpdate(BaseModel):
    prompt: Optional[str] = None
    model: Optional[str] = None
    label: Optional[str] = None
    nodeType: Optional[str] = None


class BranchCreate(BaseModel):
    prompt: str = ""
    model: Optional[str] = None


class EdgeCreate(BaseModel):
    source: str
    target: str
    id: Optional[str] = None


class ChangeBatch(BaseModel):
    nodes: list[dict[str, Any]] = []
    edges: list[dict[str, Any]] = []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load(conn: sqlite3.Connection, project_id: str) -> tuple[ProjectSnapshot, GraphStore]:
    snapshot = get_project(conn, project_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found.")
    try:
        store = GraphStore(snapshot.graph)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Stored graph is invalid: {exc}") from exc
    return snapshot, store


def _save(conn: sqlite3.Connection, snapshot: ProjectSnapshot, store: GraphStore) -> None:
    snapshot.graph = store.graph
    save_project(conn, snapshot)


def _node_out(node: Node) -> dict[str, Any]:
    out = node.to_dict()
    out["nodeType"] = classify(node.data)
    return out


def _edge_out(edge: Any) -> dict[str, Any]:
    return edge.to_dict()


def _not_found(exc: NodeNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

@router.post("/{project_id}/nodes", status_code=201)
def add_node_endpoint(project_id: str, body: NodeCreate, request: Request) -> dict[str, Any]:
    """Create a node on the canvas."""
    conn = request.app.state.db
    snapshot, store = _load(conn, project_id)
    model = body.model or snapshot.settings.get("defaultModel", "")
    pos = body.position or PositionIn()
    try:
        node = store.add_node(
            build_node(
                prompt=body.prompt,
                model=model,
                node_id=body.id,
                position=Position(x=pos.x, y=pos.y),
                label=body.label,
                node_type=body.nodeType,
            )
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    _save(conn, snapshot, store)
    return _node_out(node)


@router.patch("/{project_id}/nodes/{node_id}")
def update_node_endpoint(
    project_id: str, node_id: str, body: NodeUpdate, request: Request
) -> dict[str, Any]:
    """Edit the user-facing fields of a node."""
    conn = request.app.state.db
    snapshot, store = _load(conn, project_id)
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if "nodeType" in updates:
        updates["node_type"] = updates.pop("nodeType")
    if not updates:
        raise HTTPException(status_code=422, detail="No fields provided to update.")
    try:
        node = store.update_node_data(node_id, **updates)
    except NodeNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    _save(conn, snapshot, store)
    return _node_out(node)


@router.post("/{project_id}/nodes/{node_id}/branch", status_code=201)
def branch_endpoint(
    project_id: str, node_id: str, body: BranchCreate, request: Request
) -> dict[str, Any]:
    """Fork a new input node off *node_id* and link it."""
    conn = request.app.state.db
    snapshot, store = _load(conn, project_id)
    try:
        node, edge = store.create_branch(node_id, prompt=body.prompt, model=body.model)
    except NodeNotFoundError as exc:
        raise _not_found(exc) from exc
    _save(conn, snapshot, store)
    return {"node": _node_out(node), "edge": _edge_out(edge)}


@router.delete("/{project_id}/nodes/{node_id}")
def delete_node_endpoint(
    project_id: str, node_id: str, request: Request, cascade: bool = False
) -> JSONResponse:
    """Delete a node.

    Without ``cascade`` a node that still has child branches is not deleted;
    the response is ``409`` with the cascade preview so the caller can ask
    for confirmation.
    """
    conn = request.app.state.db
    snapshot, store = _load(conn, project_id)
    if store.graph.get_node(node_id) is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id!r}")

    preview = store.request_delete([node_id], cascade=cascade)
    body = {
        "branchCount": preview.branch_count,
        "nodeIds": sorted(preview.closure_node_ids) if cascade else [node_id],
        "edgeCount": preview.edge_count if cascade else None,
    }
    if preview.has_branches and not cascade:
        body.update(
            {
                "detail": "Node has child branches; repeat with cascade=true to delete them.",
                "nodeIds": sorted(preview.closure_node_ids),
                "edgeCount": preview.edge_count,
            }
        )
        return JSONResponse(status_code=409, content=body)

    _save(conn, snapshot, store)
    return JSONResponse(status_code=200, content=body)


@router.get("/{project_id}/nodes/{node_id}/cascade")
def cascade_preview_endpoint(project_id: str, node_id: str, request: Request) -> dict[str, Any]:
    """Counts and ids a cascade deletion of *node_id* would remove."""
    conn = request.app.state.db
    _, store = _load(conn, project_id)
    if store.graph.get_node(node_id) is None:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id!r}")
    preview = store.preview_delete([node_id])
    return {
        "branchCount": preview.branch_count,
        "nodeCount": preview.node_count,
        "edgeCount": preview.edge_count,
        "nodeIds": sorted(preview.closure_node_ids),
        "edgeIds": sorted(preview.closure_edge_ids),
    }


@router.get("/{project_id}/nodes/{node_id}/context")
def context_endpoint(project_id: str, node_id: str, request: Request) -> dict[str, Any]:
    """The transcript that executing *node_id* would send to a model."""
    conn = request.app.state.db
    _, store = _load(conn, project_id)
    try:
        context = store.collect_context(node_id)
    except NodeNotFoundError as exc:
        raise _not_found(exc) from exc
    error = context.incomplete_error()
    return {
        "nodeId": context.node_id,
        "chain": list(context.chain),
        "messages": [m.to_dict() for m in context],
        "isComplete": context.is_complete,
        "errorNodes": list(context.error_nodes),
        "missingNodes": list(context.missing_nodes),
        "error": error.to_dict() if error else None,
    }


@router.get("/{project_id}/node-types")
def node_types_endpoint(project_id: str, request: Request) -> dict[str, str]:
    conn = request.app.state.db
    _, store = _load(conn, project_id)
    return store.node_types()


# ---------------------------------------------------------------------------
# Edges and change batches
# ---------------------------------------------------------------------------

@router.post("/{project_id}/edges", status_code=201)
def connect_endpoint(project_id: str, body: EdgeCreate, request: Request) -> JSONResponse:
    """Connect *source* → *target*; ``409`` with a reason on rejection."""
    conn = request.app.state.db
    snapshot, store = _load(conn, project_id)
    try:
        outcome = store.connect_edge(body.source, body.target, edge_id=body.id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if not outcome.accepted:
        return JSONResponse(
            status_code=409,
            content={"reason": outcome.reason.value, "message": outcome.message},  # type: ignore[union-attr]
        )
    _save(conn, snapshot, store)
    return JSONResponse(status_code=201, content=_edge_out(outcome.edge))


@router.post("/{project_id}/changes")
def changes_endpoint(project_id: str, body: ChangeBatch, request: Request) -> dict[str, Any]:
    """Apply node then edge change batches from the canvas."""
    conn = request.app.state.db
    snapshot, store = _load(conn, project_id)
    removed = store.apply_node_changes(body.nodes)
    store.apply_edge_changes(body.edges)
    _save(conn, snapshot, store)
    return {
        "removedNodes": removed,
        "nodes": len(store.nodes),
        "edges": len(store.edges),
    }
