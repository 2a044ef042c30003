"""Tests for node role classification."""

from __future__ import annotations

import itertools

import pytest

from convograph.graph.classify import classify, classify_graph
from convograph.graph.models import Edge, Graph, Message, Node, NodeData


def _data(
    *,
    user: bool = False,
    assistant: bool = False,
    prompt: str = "",
    node_type: str | None = None,
) -> NodeData:
    messages = []
    if user:
        messages.append(Message(id="u", role="user", content="question"))
    if assistant:
        messages.append(Message(id="a", role="assistant", content="answer"))
    return NodeData(messages=tuple(messages), prompt=prompt, node_type=node_type)


class TestClassifyRules:
    def test_fresh_node_is_input(self) -> None:
        assert classify(NodeData()) == "input"

    def test_unrun_prompt_is_input(self) -> None:
        assert classify(_data(prompt="What is X?")) == "input"

    def test_answered_with_blank_prompt_is_response(self) -> None:
        assert classify(_data(user=True, assistant=True)) == "response"

    def test_answered_with_follow_up_is_hybrid(self) -> None:
        assert classify(_data(user=True, assistant=True, prompt="And Y?")) == "hybrid"

    def test_whitespace_prompt_counts_as_blank(self) -> None:
        assert classify(_data(assistant=True, prompt="   \n\t")) == "response"

    def test_user_message_only_is_input(self) -> None:
        assert classify(_data(user=True)) == "input"

    def test_system_message_only_is_input(self) -> None:
        data = NodeData(messages=(Message(id="s", role="system", content="be brief"),))
        assert classify(data) == "input"

    @pytest.mark.parametrize("override", ["input", "response", "hybrid"])
    def test_override_wins(self, override: str) -> None:
        data = _data(user=True, assistant=True, prompt="follow-up", node_type=override)
        assert classify(data) == override


class TestTruthTable:
    """Every combination of (user msg, assistant msg, prompt, override)."""

    @pytest.mark.parametrize(
        "user,assistant,has_prompt,override",
        list(itertools.product([False, True], [False, True], [False, True], [None, "response"])),
    )
    def test_combination(self, user, assistant, has_prompt, override) -> None:
        data = _data(
            user=user,
            assistant=assistant,
            prompt="p" if has_prompt else "",
            node_type=override,
        )
        if override is not None:
            expected = override
        elif assistant:
            expected = "hybrid" if has_prompt else "response"
        else:
            expected = "input"
        assert classify(data) == expected


class TestClassifyGraph:
    def test_edges_do_not_affect_type(self) -> None:
        graph = Graph(
            nodes=(
                Node(id="1", data=_data(user=True, assistant=True)),
                Node(id="2", data=_data(prompt="next")),
            ),
            edges=(Edge(id="e", source="1", target="2"),),
        )
        assert classify_graph(graph) == {"1": "response", "2": "input"}

    def test_empty_graph(self) -> None:
        assert classify_graph(Graph()) == {}
