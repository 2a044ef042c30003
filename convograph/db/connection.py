"""Connection to the project store.

All project snapshots live in one SQLite file inside the workspace
(``settings.db_path``).  Pass ``":memory:"`` for a throwaway store.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional, Union

from convograph.config import settings

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def get_connection(db_path: Optional[Union[Path, str]] = None) -> sqlite3.Connection:
    """Open the project store.

    Rows come back as :class:`sqlite3.Row`.  File databases run in WAL mode
    and their directory is created on first use.
    """
    if db_path is None:
        settings.ensure_workspace()
        path = str(settings.db_path)
    else:
        path = str(db_path)
        if path != MEMORY:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    if path != MEMORY:
        conn.execute("PRAGMA journal_mode = WAL")
    logger.debug("Opened project store %s", path)
    return conn
