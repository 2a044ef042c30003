"""Execution-failure taxonomy and engine exceptions.

``format_error`` turns whatever an execution collaborator raised into a
:class:`NodeError` the UI layer can render.  Nothing in here is part of the
graph invariants; a ``NodeError`` is attached to a node, never raised.

Error types
-----------
    api_key_missing     no key configured for the provider (advisory check)
    api_key_invalid     401 / "unauthorized" / "api key"
    rate_limit          429 / "rate limit"
    model_not_found     404 / "model not found"
    network_error       network / fetch / connection / timeout
    context_incomplete  "context" / "upstream", or an incomplete transcript
    unknown             anything else
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

NODE_ERROR_TYPES: tuple[str, ...] = (
    "api_key_missing",
    "api_key_invalid",
    "rate_limit",
    "network_error",
    "model_not_found",
    "context_incomplete",
    "unknown",
)

_GENERIC_MESSAGE = "An unexpected error occurred"
_SETTINGS_ACTION = "Go to Settings"
_NETWORK_TERMS = ("network", "fetch", "connection", "timeout")


class NodeNotFoundError(ValueError):
    """Raised when an operation names a node id that is not in the graph."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id!r}")
        self.node_id = node_id


@dataclass(frozen=True)
class NodeError:
    type: str
    message: str
    retryable: bool
    action_label: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in NODE_ERROR_TYPES:
            raise ValueError(f"Unknown node error type {self.type!r}")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.type,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.action_label is not None:
            out["actionLabel"] = self.action_label
        return out


def _status_of(error: BaseException) -> Optional[int]:
    """Pull an HTTP status from the usual attribute spellings."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def format_error(error: Any, context: Optional[str] = None) -> NodeError:
    """Translate a raw failure into exactly one :class:`NodeError`.

    Args:
        error: An exception, a plain string, or anything else.
        context: Optional label prefixed to ``unknown`` messages
            (e.g. ``"Running node 3"``).
    """
    if isinstance(error, str):
        return NodeError(type="unknown", message=error, retryable=True)

    if not isinstance(error, BaseException):
        message = f"{context}: {_GENERIC_MESSAGE}" if context else _GENERIC_MESSAGE
        return NodeError(type="unknown", message=message, retryable=True)

    status = _status_of(error)
    message = str(error) or _GENERIC_MESSAGE
    lowered = message.lower()

    if status == 401 or "unauthorized" in lowered or "api key" in lowered:
        return NodeError(
            type="api_key_invalid",
            message="Authentication failed. Please check your API key in settings.",
            retryable=False,
            action_label=_SETTINGS_ACTION,
        )

    if status == 429 or "rate limit" in lowered:
        return NodeError(
            type="rate_limit",
            message="Rate limit exceeded. Please wait a moment before retrying.",
            retryable=True,
        )

    if status == 404 or "model not found" in lowered:
        return NodeError(
            type="model_not_found",
            message="The selected model was not found. Please choose a different model.",
            retryable=False,
        )

    if any(term in lowered for term in _NETWORK_TERMS):
        return NodeError(
            type="network_error",
            message="Network error. Check your connection and try again.",
            retryable=True,
        )

    if "context" in lowered or "upstream" in lowered:
        return NodeError(type="context_incomplete", message=message, retryable=True)

    return NodeError(
        type="unknown",
        message=f"{context}: {message}" if context else message,
        retryable=True,
    )


def check_api_key_missing(provider: str, api_keys: dict[str, str]) -> Optional[NodeError]:
    """Return an ``api_key_missing`` error when *provider* has no usable key."""
    key = api_keys.get(provider)
    if not key or not key.strip():
        return NodeError(
            type="api_key_missing",
            message=f"API key for {provider} is missing. Please add it in settings.",
            retryable=False,
            action_label=_SETTINGS_ACTION,
        )
    return None


def context_incomplete_error(error_nodes: list[str], missing_nodes: list[str]) -> NodeError:
    """Build the error used when an upstream transcript cannot be trusted."""
    parts: list[str] = []
    if error_nodes:
        parts.append(f"upstream node(s) in error: {', '.join(error_nodes)}")
    if missing_nodes:
        parts.append(f"missing upstream node(s): {', '.join(missing_nodes)}")
    detail = "; ".join(parts) or "upstream chain is incomplete"
    return NodeError(
        type="context_incomplete",
        message=f"Context is incomplete: {detail}.",
        retryable=True,
    )
