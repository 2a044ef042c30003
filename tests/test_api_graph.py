"""Tests for the graph intent endpoints under /projects/{id}."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from convograph.api.app import create_app
from convograph.db.connection import get_connection
from convograph.db.migrations import init_db
from convograph.db.projects import get_project, save_project
from convograph.graph.models import Graph, Node


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setattr("convograph.config.settings.workspace_dir", tmp_path)
    conn = get_connection(db_path=":memory:")
    init_db(conn)
    app = create_app()

    with TestClient(app, raise_server_exceptions=True) as c:
        c.app.state.db = conn
        yield c

    conn.close()


@pytest.fixture()
def pid(client) -> str:
    return client.post("/projects", json={"title": "Graph"}).json()["id"]


def _add(client, pid: str, node_id: str, prompt: str = "") -> dict:
    resp = client.post(f"/projects/{pid}/nodes", json={"id": node_id, "prompt": prompt})
    assert resp.status_code == 201
    return resp.json()


def _connect(client, pid: str, source: str, target: str):
    return client.post(f"/projects/{pid}/edges", json={"source": source, "target": target})


@pytest.fixture()
def chain(client, pid) -> str:
    """1 → 2 → 3."""
    for nid in ("1", "2", "3"):
        _add(client, pid, nid, prompt=f"prompt {nid}")
    assert _connect(client, pid, "1", "2").status_code == 201
    assert _connect(client, pid, "2", "3").status_code == 201
    return pid


class TestNodes:
    def test_add_node(self, client, pid):
        node = _add(client, pid, "a", prompt="Hello")
        assert node["id"] == "a"
        assert node["data"]["prompt"] == "Hello"
        assert node["data"]["model"]  # project default
        assert node["nodeType"] == "input"

    def test_add_duplicate_id(self, client, pid):
        _add(client, pid, "a")
        resp = client.post(f"/projects/{pid}/nodes", json={"id": "a"})
        assert resp.status_code == 422

    def test_unknown_project(self, client):
        resp = client.post("/projects/nope/nodes", json={})
        assert resp.status_code == 404

    def test_patch_node(self, client, pid):
        _add(client, pid, "a")
        resp = client.patch(f"/projects/{pid}/nodes/a", json={"label": "Alpha", "nodeType": "hybrid"})
        assert resp.status_code == 200
        assert resp.json()["data"]["label"] == "Alpha"
        assert resp.json()["nodeType"] == "hybrid"

    def test_patch_unknown_node(self, client, pid):
        resp = client.patch(f"/projects/{pid}/nodes/nope", json={"prompt": "x"})
        assert resp.status_code == 404

    def test_patch_invalid_node_type(self, client, pid):
        _add(client, pid, "a")
        resp = client.patch(f"/projects/{pid}/nodes/a", json={"nodeType": "bogus"})
        assert resp.status_code == 422

    def test_patch_empty_body(self, client, pid):
        _add(client, pid, "a")
        assert client.patch(f"/projects/{pid}/nodes/a", json={}).status_code == 422

    def test_node_types(self, client, chain):
        resp = client.get(f"/projects/{chain}/node-types")
        assert resp.json() == {"1": "input", "2": "input", "3": "input"}


class TestEdges:
    def test_cycle_rejected_with_reason(self, client, chain):
        resp = _connect(client, chain, "3", "1")
        assert resp.status_code == 409
        assert resp.json()["reason"] == "cycle"
        assert resp.json()["message"]
        edges = client.get(f"/projects/{chain}").json()["graph"]["edges"]
        assert len(edges) == 2

    def test_forward_edge_accepted(self, client, chain):
        resp = _connect(client, chain, "1", "3")
        assert resp.status_code == 201
        assert resp.json()["source"] == "1"
        edges = client.get(f"/projects/{chain}").json()["graph"]["edges"]
        assert len(edges) == 3

    @pytest.mark.parametrize(
        "source,target,reason",
        [("2", "2", "same_node"), ("1", "2", "duplicate"), ("1", "ghost", "missing_node")],
    )
    def test_other_rejections(self, client, chain, source, target, reason):
        resp = _connect(client, chain, source, target)
        assert resp.status_code == 409
        assert resp.json()["reason"] == reason


class TestDelete:
    def test_cascade_preview(self, client, chain):
        resp = client.get(f"/projects/{chain}/nodes/2/cascade")
        assert resp.status_code == 200
        body = resp.json()
        assert body["nodeIds"] == ["2", "3"]
        assert body["edgeCount"] == 2
        assert body["branchCount"] == 1

    def test_delete_with_children_needs_cascade(self, client, chain):
        resp = client.delete(f"/projects/{chain}/nodes/2")
        assert resp.status_code == 409
        assert resp.json()["branchCount"] == 1
        nodes = client.get(f"/projects/{chain}").json()["graph"]["nodes"]
        assert len(nodes) == 3

    def test_cascade_delete(self, client, chain):
        resp = client.delete(f"/projects/{chain}/nodes/2", params={"cascade": "true"})
        assert resp.status_code == 200
        assert resp.json()["nodeIds"] == ["2", "3"]
        graph = client.get(f"/projects/{chain}").json()["graph"]
        assert [n["id"] for n in graph["nodes"]] == ["1"]
        assert graph["edges"] == []

    def test_delete_leaf(self, client, chain):
        resp = client.delete(f"/projects/{chain}/nodes/3")
        assert resp.status_code == 200
        graph = client.get(f"/projects/{chain}").json()["graph"]
        assert [n["id"] for n in graph["nodes"]] == ["1", "2"]

    def test_delete_unknown(self, client, chain):
        assert client.delete(f"/projects/{chain}/nodes/nope").status_code == 404


class TestBranchAndContext:
    def test_branch(self, client, chain):
        resp = client.post(f"/projects/{chain}/nodes/2/branch", json={"prompt": "alt"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["edge"]["source"] == "2"
        assert body["node"]["data"]["sourceNodeId"] == "2"
        assert body["node"]["data"]["prompt"] == "alt"

    def test_branch_unknown_parent(self, client, chain):
        assert client.post(f"/projects/{chain}/nodes/nope/branch", json={}).status_code == 404

    def test_context(self, client, chain):
        resp = client.get(f"/projects/{chain}/nodes/3/context")
        assert resp.status_code == 200
        body = resp.json()
        assert body["chain"] == ["1", "2", "3"]
        assert [m["content"] for m in body["messages"]] == ["prompt 1", "prompt 2", "prompt 3"]
        assert body["isComplete"] is True
        assert body["error"] is None

    def test_context_unknown_node(self, client, chain):
        assert client.get(f"/projects/{chain}/nodes/nope/context").status_code == 404


class TestChanges:
    def test_position_and_remove(self, client, chain):
        resp = client.post(
            f"/projects/{chain}/changes",
            json={
                "nodes": [
                    {"type": "position", "id": "1", "position": {"x": 40, "y": 50}},
                    {"type": "remove", "id": "3"},
                ],
                "edges": [],
            },
        )
        assert resp.status_code == 200
        assert resp.json() == {"removedNodes": ["3"], "nodes": 2, "edges": 1}
        node = client.get(f"/projects/{chain}").json()["graph"]["nodes"][0]
        assert node["position"] == {"x": 40, "y": 50}


class TestInvalidStoredGraph:
    def test_graph_routes_answer_400(self, client, pid):
        conn = client.app.state.db
        snapshot = get_project(conn, pid)
        snapshot.graph = Graph(nodes=(Node(id="n"), Node(id="n")))
        save_project(conn, snapshot)

        resp = client.get(f"/projects/{pid}/node-types")
        assert resp.status_code == 400
        assert "invalid" in resp.json()["detail"]
