"""Database layer package.

Public re-exports so callers can write::

    from convograph.db import get_connection, init_db
    from convograph.db import projects
"""

from convograph.db.connection import get_connection
from convograph.db.migrations import init_db
from convograph.db import projects

__all__ = ["get_connection", "init_db", "projects"]
