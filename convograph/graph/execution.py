"""The seam between the graph engine and whatever calls a model.

The engine does not talk to providers.  ``execute_node`` takes a plain
``generate(model, messages)`` callable, feeds it the collected context, and
writes the outcome back onto the node as a status transition plus either an
assistant message or an error.  Failures are recorded, never raised, so one
failing node cannot disturb its siblings or descendants.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from convograph.graph.errors import (
    NodeError,
    NodeNotFoundError,
    check_api_key_missing,
    format_error,
)
from convograph.graph.models import Message, now_ms
from convograph.graph.mutations import new_id
from convograph.graph.store import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    content: str
    model: Optional[str] = None
    tokens: Optional[int] = None


Generate = Callable[[str, list[dict[str, str]]], Union[str, GenerationResult]]


def _fail(store: GraphStore, node_id: str, error: NodeError) -> NodeError:
    store.set_node_status(node_id, "error")
    store.set_node_error(node_id, error)
    logger.info("Node %s failed: %s (%s)", node_id, error.type, error.message)
    return error


def execute_node(
    store: GraphStore,
    node_id: str,
    generate: Generate,
    *,
    api_keys: Optional[dict[str, str]] = None,
    provider: Optional[str] = None,
    default_model: str = "",
    allow_incomplete: bool = False,
) -> Optional[NodeError]:
    """Run one node against a model.

    Args:
        store: Store holding the node.
        node_id: Node to execute.
        generate: ``generate(model, [{"role", "content"}, ...])`` returning the
            reply text or a :class:`GenerationResult`.
        api_keys: Configured provider keys; checked only when *provider* is set.
        provider: Provider the node's model belongs to.
        default_model: Used when the node has no model of its own.
        allow_incomplete: Run even if an ancestor is in error or missing.

    Returns:
        ``None`` on success (or when there is nothing to run), otherwise the
        :class:`NodeError` that was attached to the node.

    Raises:
        NodeNotFoundError: If *node_id* does not exist.
    """
    node = store.graph.get_node(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)

    prompt = node.data.prompt.strip()
    if not prompt:
        logger.debug("Node %s has no prompt; nothing to execute", node_id)
        return None

    if provider is not None:
        missing = check_api_key_missing(provider, api_keys or {})
        if missing is not None:
            return _fail(store, node_id, missing)

    context = store.collect_context(node_id)
    incomplete = context.incomplete_error()
    if incomplete is not None and not allow_incomplete:
        return _fail(store, node_id, incomplete)
    payload = context.as_payload()

    model = node.data.model or default_model
    store.set_node_status(node_id, "running")
    store.set_node_error(node_id, None)
    asked_at = now_ms()

    try:
        result = generate(model, payload)
    except Exception as exc:  # noqa: BLE001
        return _fail(store, node_id, format_error(exc, context=f"Running node {node_id}"))

    if isinstance(result, str):
        result = GenerationResult(content=result)

    # The prompt is recorded together with its reply; on failure it stays pending.
    store.add_message(
        node_id,
        Message(id=new_id("msg"), role="user", content=prompt, created_at=asked_at),
    )

    metadata = {
        key: value
        for key, value in (("model", result.model or model), ("tokens", result.tokens))
        if value
    }
    store.add_message(
        node_id,
        Message(
            id=new_id("msg"),
            role="assistant",
            content=result.content,
            created_at=now_ms(),
            metadata=metadata or None,
        ),
    )
    store.set_node_status(node_id, "success")
    store.update_node_data(node_id, prompt="")
    logger.info("Node %s executed with %s", node_id, model)
    return None
