"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from convograph.api import app

    uvicorn convograph.api:app --reload
"""

from convograph.api.app import app

__all__ = ["app"]
