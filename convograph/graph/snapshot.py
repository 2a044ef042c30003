"""Persisted project snapshot.

Shape (round-trips exactly; field order is irrelevant)::

    {
      "id": "project-…",
      "version": 1,
      "metadata": {"title": "…", "updatedAt": 1700000000000},
      "graph": {
        "nodes": [{"id", "position": {"x", "y"}, "data": {…}}],
        "edges": [{"id", "source", "target"}],
        "viewport": {"x": 0, "y": 0, "zoom": 1}
      },
      "settings": {"defaultModel": "…", "language": "en"},
      "history": …
    }

``history`` belongs to the canvas layer and is carried through untouched.
Optional keys missing on load (``version``, ``metadata.updatedAt``,
``graph.viewport``, ``settings``, ``history``) are filled with defaults in
memory and left out again on save while they still hold that default.
``updatedAt`` is written once :meth:`ProjectSnapshot.touch` stamps it.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from convograph.config import settings as app_settings
from convograph.graph.models import Graph, now_ms

DEFAULT_VIEWPORT: dict[str, float] = {"x": 0, "y": 0, "zoom": 1}

_TOP_KEYS = ("id", "version", "metadata", "graph", "settings", "history")
_GRAPH_KEYS = ("nodes", "edges", "viewport")
_OPTIONAL_KEYS = ("version", "updatedAt", "viewport", "settings", "history")


def _default_history() -> dict[str, Any]:
    return {"past": [], "present": None, "future": []}


@dataclass
class ProjectSnapshot:
    id: str
    title: str = "Untitled Project"
    version: int = 1
    updated_at: int = field(default_factory=now_ms)
    graph: Graph = field(default_factory=Graph)
    viewport: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_VIEWPORT))
    settings: dict[str, Any] = field(default_factory=dict)
    history: Any = field(default_factory=_default_history)
    metadata_extra: dict[str, Any] = field(default_factory=dict)
    graph_extra: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    # Optional keys the loaded payload did not carry.
    absent_keys: frozenset[str] = field(default=frozenset(), compare=False)

    # ------------------------------------------------------------------
    # dict / JSON
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ProjectSnapshot:
        """Rehydrate a snapshot.

        Raises:
            ValueError: If required keys are missing or node data is invalid.
        """
        if "id" not in raw:
            raise ValueError("Snapshot is missing 'id'")
        metadata = dict(raw.get("metadata") or {})
        graph_raw = dict(raw.get("graph") or {})
        try:
            graph = Graph.from_dict(graph_raw)
        except KeyError as exc:
            raise ValueError(f"Snapshot graph is missing field {exc}") from exc
        present = {
            "version": "version" in raw,
            "updatedAt": "updatedAt" in metadata,
            "viewport": "viewport" in graph_raw,
            "settings": "settings" in raw,
            "history": "history" in raw,
        }
        return cls(
            id=str(raw["id"]),
            title=metadata.pop("title", "Untitled Project"),
            version=raw.get("version", 1),
            updated_at=metadata.pop("updatedAt", now_ms()),
            graph=graph,
            viewport=graph_raw.get("viewport") or dict(DEFAULT_VIEWPORT),
            settings=dict(raw.get("settings") or {}),
            history=raw.get("history"),
            metadata_extra=metadata,
            graph_extra={k: v for k, v in graph_raw.items() if k not in _GRAPH_KEYS},
            extra={k: v for k, v in raw.items() if k not in _TOP_KEYS},
            absent_keys=frozenset(k for k in _OPTIONAL_KEYS if not present[k]),
        )

    def touch(self) -> None:
        """Stamp ``updatedAt`` with the current time."""
        self.updated_at = now_ms()
        self.absent_keys = self.absent_keys - {"updatedAt"}

    def _omit(self, key: str, is_default: bool) -> bool:
        return key in self.absent_keys and is_default

    def to_dict(self) -> dict[str, Any]:
        graph = self.graph.to_dict()
        if not self._omit("viewport", self.viewport == DEFAULT_VIEWPORT):
            graph["viewport"] = dict(self.viewport)
        graph.update(self.graph_extra)
        metadata: dict[str, Any] = {"title": self.title}
        if "updatedAt" not in self.absent_keys:
            metadata["updatedAt"] = self.updated_at
        metadata.update(self.metadata_extra)
        out: dict[str, Any] = {"id": self.id}
        if not self._omit("version", self.version == 1):
            out["version"] = self.version
        out["metadata"] = metadata
        out["graph"] = graph
        if not self._omit("settings", not self.settings):
            out["settings"] = dict(self.settings)
        if not self._omit("history", self.history is None):
            out["history"] = self.history
        out.update(self.extra)
        return out

    @classmethod
    def from_json(cls, text: str) -> ProjectSnapshot:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Snapshot is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError("Snapshot must be a JSON object")
        return cls.from_dict(raw)

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def new_snapshot(title: Optional[str] = None, project_id: Optional[str] = None) -> ProjectSnapshot:
    """An empty project using the configured defaults."""
    return ProjectSnapshot(
        id=project_id or f"project-{uuid.uuid4()}",
        title=(title or "").strip() or "Untitled Project",
        settings={
            "defaultModel": app_settings.default_model,
            "language": app_settings.default_language,
        },
    )
