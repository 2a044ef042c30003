"""Conversation graph engine.

Public re-exports so callers can write::

    from convograph.graph import GraphStore, collect_context, classify
"""

from convograph.graph.cascade import CascadeClosure, compute_closure
from convograph.graph.classify import classify, classify_graph
from convograph.graph.context import UpstreamContext, collect_context
from convograph.graph.cycles import is_acyclic
from convograph.graph.errors import (
    NodeError,
    NodeNotFoundError,
    check_api_key_missing,
    format_error,
)
from convograph.graph.models import Edge, Graph, Message, Node, NodeData, Position
from convograph.graph.mutations import ConnectOutcome, ConnectRejection
from convograph.graph.snapshot import ProjectSnapshot, new_snapshot
from convograph.graph.store import DeletePreview, GraphStore, build_node

__all__ = [
    "CascadeClosure",
    "ConnectOutcome",
    "ConnectRejection",
    "DeletePreview",
    "Edge",
    "Graph",
    "GraphStore",
    "Message",
    "Node",
    "NodeData",
    "NodeError",
    "NodeNotFoundError",
    "Position",
    "ProjectSnapshot",
    "UpstreamContext",
    "build_node",
    "check_api_key_missing",
    "classify",
    "classify_graph",
    "collect_context",
    "compute_closure",
    "format_error",
    "is_acyclic",
    "new_snapshot",
]
