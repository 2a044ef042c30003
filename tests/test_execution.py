"""Tests for the execute_node seam (no real model calls)."""

from __future__ import annotations

import pytest

from convograph.graph.errors import NodeNotFoundError
from convograph.graph.execution import GenerationResult, execute_node
from convograph.graph.models import Edge, Graph, Message, Node, NodeData
from convograph.graph.store import GraphStore


class _FakeModel:
    """Records calls and returns a canned reply (or raises)."""

    def __init__(self, reply=None, error: Exception | None = None) -> None:
        self.reply = reply if reply is not None else "An answer"
        self.error = error
        self.calls: list[tuple[str, list[dict[str, str]]]] = []

    def __call__(self, model: str, messages: list[dict[str, str]]):
        self.calls.append((model, messages))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture()
def store() -> GraphStore:
    """root (answered) → child (pending prompt)."""
    return GraphStore(
        Graph(
            nodes=(
                Node(
                    id="root",
                    data=NodeData(
                        model="gpt-4o",
                        messages=(
                            Message(id="u", role="user", content="Hi"),
                            Message(id="a", role="assistant", content="Hello"),
                        ),
                        status="success",
                    ),
                ),
                Node(id="child", data=NodeData(model="gpt-4o", prompt="What next?")),
            ),
            edges=(Edge("e", "root", "child"),),
        )
    )


class TestSuccess:
    def test_runs_and_records_reply(self, store: GraphStore) -> None:
        fake = _FakeModel()
        assert execute_node(store, "child", fake) is None

        model, payload = fake.calls[0]
        assert model == "gpt-4o"
        assert [m["content"] for m in payload] == ["Hi", "Hello", "What next?"]

        data = store.graph.get_node("child").data
        assert data.status == "success"
        assert data.prompt == ""
        assert [m.role for m in data.messages] == ["user", "assistant"]
        assert data.messages[-1].content == "An answer"
        assert data.messages[-1].metadata == {"model": "gpt-4o"}
        assert store.classify("child") == "response"

    def test_generation_result_metadata(self, store: GraphStore) -> None:
        fake = _FakeModel(reply=GenerationResult(content="ok", model="gpt-4o-mini", tokens=12))
        execute_node(store, "child", fake)
        last = store.graph.get_node("child").data.messages[-1]
        assert last.metadata == {"model": "gpt-4o-mini", "tokens": 12}

    def test_default_model_used_when_node_has_none(self) -> None:
        store = GraphStore(Graph(nodes=(Node(id="n", data=NodeData(prompt="q")),)))
        fake = _FakeModel()
        execute_node(store, "n", fake, default_model="claude-x")
        assert fake.calls[0][0] == "claude-x"

    def test_blank_prompt_is_noop(self, store: GraphStore) -> None:
        fake = _FakeModel()
        version = store.version
        assert execute_node(store, "root", fake) is None
        assert fake.calls == []
        assert store.version == version


class TestFailures:
    def test_exception_is_recorded_not_raised(self, store: GraphStore) -> None:
        fake = _FakeModel(error=RuntimeError("Rate limit exceeded"))
        error = execute_node(store, "child", fake)
        assert error is not None
        assert error.type == "rate_limit"
        data = store.graph.get_node("child").data
        assert data.status == "error"
        assert data.error == error.message
        # Siblings and ancestors untouched.
        assert store.graph.get_node("root").data.status == "success"

    def test_missing_api_key(self, store: GraphStore) -> None:
        fake = _FakeModel()
        error = execute_node(store, "child", fake, provider="openai", api_keys={})
        assert error.type == "api_key_missing"
        assert fake.calls == []
        assert store.graph.get_node("child").data.status == "error"

    def test_incomplete_context_blocks_run(self, store: GraphStore) -> None:
        store.set_node_status("root", "error")
        fake = _FakeModel()
        error = execute_node(store, "child", fake)
        assert error.type == "context_incomplete"
        assert fake.calls == []

    def test_incomplete_context_can_be_allowed(self, store: GraphStore) -> None:
        store.set_node_status("root", "error")
        fake = _FakeModel()
        assert execute_node(store, "child", fake, allow_incomplete=True) is None
        assert len(fake.calls) == 1

    def test_retry_clears_previous_error(self, store: GraphStore) -> None:
        execute_node(store, "child", _FakeModel(error=RuntimeError("boom")))
        assert store.graph.get_node("child").data.error
        assert execute_node(store, "child", _FakeModel()) is None
        data = store.graph.get_node("child").data
        assert data.error is None
        assert data.status == "success"

    def test_retry_after_failure_sends_prompt_once(self, store: GraphStore) -> None:
        execute_node(store, "child", _FakeModel(error=RuntimeError("boom")))
        data = store.graph.get_node("child").data
        assert data.messages == ()
        assert data.prompt == "What next?"

        fake = _FakeModel(reply="A")
        assert execute_node(store, "child", fake) is None
        payload = fake.calls[0][1]
        assert [m["content"] for m in payload] == ["Hi", "Hello", "What next?"]
        data = store.graph.get_node("child").data
        assert [(m.role, m.content) for m in data.messages] == [
            ("user", "What next?"),
            ("assistant", "A"),
        ]

    def test_unknown_node(self, store: GraphStore) -> None:
        with pytest.raises(NodeNotFoundError):
            execute_node(store, "nope", _FakeModel())
