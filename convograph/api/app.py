"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``) and initialises the schema.  On
shutdown it closes the connection cleanly.

Routers
-------
Both endpoint groups are mounted under ``/projects``:

    /projects                  snapshot CRUD and export
    /projects/{id}/nodes|edges graph intents (connect, delete, branch, ...)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from convograph import __version__
from convograph.config import configure_logging
from convograph.db import get_connection, init_db

from convograph.api.routers import graph as graph_router
from convograph.api.routers import projects as projects_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    configure_logging()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="convograph API",
        description=(
            "REST interface for branching LLM conversation graphs. "
            "Exposes project snapshot storage, edge validation, cascading "
            "branch deletion, node classification and upstream context "
            "assembly."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Allow browser canvases on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(projects_router.router, prefix="/projects", tags=["projects"])
    app.include_router(graph_router.router, prefix="/projects", tags=["graph"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn convograph.api.app:app --reload
app = create_app()
