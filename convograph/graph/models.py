"""Frozen dataclass models for the conversation graph.

These are plain Python values – no behaviour beyond (de)serialisation and
lookup helpers.  Every collection is a tuple so a :class:`Graph` is a true
snapshot: mutation code builds a new one instead of editing in place.

The dict shape mirrors the persisted project snapshot (camelCase keys).  Keys
the engine does not know about are kept in ``extra`` and written back
unchanged, and optional fields that were absent on load are omitted on save.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from time import time
from typing import Any, Optional

ROLES: tuple[str, ...] = ("user", "assistant", "system")
STATUSES: tuple[str, ...] = ("idle", "running", "error", "success")
NODE_TYPES: tuple[str, ...] = ("input", "response", "hybrid")


def now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time() * 1000)


def _check(value: str, allowed: tuple[str, ...], what: str) -> str:
    if value not in allowed:
        raise ValueError(f"Invalid {what} {value!r}; expected one of {', '.join(allowed)}")
    return value


def _extra(raw: dict[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {k: v for k, v in raw.items() if k not in known}


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

_MESSAGE_KEYS = ("id", "role", "content", "createdAt", "metadata")


@dataclass(frozen=True)
class Message:
    id: str
    role: str
    content: str
    created_at: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        _check(self.role, ROLES, "message role")

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Message:
        return cls(
            id=str(raw["id"]),
            role=raw["role"],
            content=raw.get("content", ""),
            created_at=raw.get("createdAt"),
            metadata=raw.get("metadata"),
            extra=_extra(raw, _MESSAGE_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "role": self.role, "content": self.content}
        if self.created_at is not None:
            out["createdAt"] = self.created_at
        if self.metadata is not None:
            out["metadata"] = dict(self.metadata)
        out.update(self.extra)
        return out


# ---------------------------------------------------------------------------
# Node payload
# ---------------------------------------------------------------------------

_DATA_KEYS = (
    "label",
    "model",
    "prompt",
    "messages",
    "status",
    "error",
    "nodeType",
    "sourceNodeId",
    "createdAt",
)

# Fields ``NodeData.evolve`` accepts, mapped from snake_case to dict keys.
EDITABLE_FIELDS: dict[str, str] = {
    "label": "label",
    "model": "model",
    "prompt": "prompt",
    "status": "status",
    "error": "error",
    "node_type": "nodeType",
    "source_node_id": "sourceNodeId",
}


@dataclass(frozen=True)
class NodeData:
    model: str = ""
    prompt: str = ""
    messages: tuple[Message, ...] = ()
    status: str = "idle"
    error: Optional[str] = None
    node_type: Optional[str] = None
    source_node_id: Optional[str] = None
    created_at: Optional[int] = None
    label: Optional[str] = None
    # False only when a loaded payload had no "messages" key at all.
    messages_present: bool = field(default=True, compare=False)
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        _check(self.status, STATUSES, "node status")
        if self.node_type is not None:
            _check(self.node_type, NODE_TYPES, "node type")

    @property
    def has_prompt(self) -> bool:
        return bool(self.prompt.strip())

    @property
    def has_assistant_message(self) -> bool:
        return any(m.role == "assistant" for m in self.messages)

    def evolve(self, **changes: Any) -> NodeData:
        """Return a copy with *changes* applied (thin wrapper over ``replace``)."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> NodeData:
        messages = raw.get("messages")
        return cls(
            model=raw.get("model", ""),
            prompt=raw.get("prompt", ""),
            messages=tuple(Message.from_dict(m) for m in messages or ()),
            status=raw.get("status", "idle"),
            error=raw.get("error"),
            node_type=raw.get("nodeType"),
            source_node_id=raw.get("sourceNodeId"),
            created_at=raw.get("createdAt"),
            label=raw.get("label"),
            messages_present=messages is not None,
            extra=_extra(raw, _DATA_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.label is not None:
            out["label"] = self.label
        out["model"] = self.model
        out["prompt"] = self.prompt
        if self.messages_present or self.messages:
            out["messages"] = [m.to_dict() for m in self.messages]
        out["status"] = self.status
        for key, value in (
            ("error", self.error),
            ("nodeType", self.node_type),
            ("sourceNodeId", self.source_node_id),
            ("createdAt", self.created_at),
        ):
            if value is not None:
                out[key] = value
        out.update(self.extra)
        return out


# ---------------------------------------------------------------------------
# Nodes and edges
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


_NODE_KEYS = ("id", "position", "data")


@dataclass(frozen=True)
class Node:
    id: str
    position: Position = field(default_factory=Position)
    data: NodeData = field(default_factory=NodeData)
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Node:
        pos = raw.get("position") or {}
        return cls(
            id=str(raw["id"]),
            position=Position(x=pos.get("x", 0), y=pos.get("y", 0)),
            data=NodeData.from_dict(raw.get("data") or {}),
            extra=_extra(raw, _NODE_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "position": self.position.to_dict(),
            "data": self.data.to_dict(),
        }
        out.update(self.extra)
        return out


_EDGE_KEYS = ("id", "source", "target")


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Edge:
        return cls(
            id=str(raw["id"]),
            source=str(raw["source"]),
            target=str(raw["target"]),
            extra=_extra(raw, _EDGE_KEYS),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        out.update(self.extra)
        return out


# ---------------------------------------------------------------------------
# Graph snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Graph:
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    @property
    def node_ids(self) -> frozenset[str]:
        return frozenset(n.id for n in self.nodes)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def incoming(self, node_id: str) -> list[Edge]:
        """Edges targeting *node_id*, in edge-list (connect) order."""
        return [e for e in self.edges if e.target == node_id]

    def outgoing(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def roots(self) -> list[Node]:
        """Nodes with no incoming edge from an existing node."""
        ids = self.node_ids
        fed = {e.target for e in self.edges if e.source in ids}
        return [n for n in self.nodes if n.id not in fed]

    def dangling_edges(self) -> list[Edge]:
        """Edges whose source or target does not exist."""
        ids = self.node_ids
        return [e for e in self.edges if e.source not in ids or e.target not in ids]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Graph:
        return cls(
            nodes=tuple(Node.from_dict(n) for n in raw.get("nodes") or ()),
            edges=tuple(Edge.from_dict(e) for e in raw.get("edges") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
