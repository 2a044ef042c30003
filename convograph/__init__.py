"""convograph: branching LLM conversation graphs.

Sub-packages::

    convograph.graph   the conversation graph engine (models, store, algorithms)
    convograph.db      SQLite storage for project snapshots
    convograph.api     FastAPI HTTP surface
"""

__version__ = "0.3.0"
