"""Tests for the REST and WebSocket API."""
import json
import time

import pytest
from fastapi.testclient import TestClient

from gridflow.config import settings
from gridflow.main import app


def _ref(node_id, port_id):
    return {"nodeId": node_id, "portId": port_id}


def _wire(wire_id, kind, source, target):
    return {"id": wire_id, "kind": kind, "from": _ref(*source), "to": _ref(*target)}


ADD_GRAPH = {
    "name": "Add",
    "nodes": [
        {"id": "s", "type": "flow.start", "title": "Start"},
        {"id": "add", "type": "math.add", "title": "Add"},
        {"id": "log", "type": "ui.log", "title": "Log"},
        {"id": "a", "type": "util.integer", "title": "A", "state": {"value": 2}},
        {"id": "b", "type": "util.integer", "title": "B", "state": {"value": 3}},
    ],
    "wires": [
        _wire("w1", "exec", ("s", "exec_out"), ("add", "exec_in")),
        _wire("w2", "exec", ("add", "exec_out"), ("log", "exec_in")),
        _wire("w3", "data", ("a", "value"), ("add", "a")),
        _wire("w4", "data", ("b", "value"), ("add", "b")),
        _wire("w5", "data", ("add", "result"), ("log", "msg")),
    ],
}

DELAY_GRAPH = {
    "nodes": [
        {"id": "s", "type": "flow.start"},
        {"id": "d", "type": "flow.delay", "title": "Delay", "state": {"ms": 5000}},
    ],
    "wires": [_wire("w1", "exec", ("s", "exec_out"), ("d", "exec_in"))],
}


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _wait_for_result(client, execution_id, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        resp = client.get(f"/api/results/{execution_id}")
        if resp.status_code == 200:
            return resp.json()
        time.sleep(0.05)
    pytest.fail(f"Run {execution_id} did not finish")


class TestNodesEndpoint:
    def test_lists_built_in_nodes(self, client):
        resp = client.get("/api/nodes")
        assert resp.status_code == 200
        data = resp.json()
        assert data["math.add"]["category"] == "Math"
        ports = {p["id"]: p for p in data["math.add"]["inputs"]}
        assert ports["a"]["dataType"] == "number"
        assert ports["extra"]["multi"] is True
        assert data["flow.start"]["isStart"] is True


class TestValidation:
    def test_valid_graph(self, client):
        resp = client.post("/api/validate", json=ADD_GRAPH)
        assert resp.json() == {"valid": True, "errors": []}

    def test_invalid_graph(self, client):
        graph = {**ADD_GRAPH, "nodes": ADD_GRAPH["nodes"] + [{"id": "x", "type": "nope"}]}
        data = client.post("/api/validate", json=graph).json()
        assert data["valid"] is False
        assert any("unknown node type" in e for e in data["errors"])

    def test_wire_check_ok(self, client):
        body = {"graph": ADD_GRAPH, "from": _ref("log", "exec_out"), "to": _ref("b", "exec_in")}
        assert client.post("/api/wires/check", json=body).json() == {
            "ok": True, "kind": "exec", "errors": [],
        }

    def test_wire_check_rejects_cycle(self, client):
        body = {"graph": ADD_GRAPH, "from": _ref("log", "exec_out"), "to": _ref("add", "exec_in")}
        data = client.post("/api/wires/check", json=body).json()
        assert data["ok"] is False
        assert any("cycle" in e for e in data["errors"])


class TestExecution:
    def test_execute_and_fetch_results(self, client):
        resp = client.post("/api/execute", json={"graph": ADD_GRAPH})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "started"

        result = _wait_for_result(client, body["execution_id"])
        assert result["state"] == "completed"
        assert result["order"] == ["s", "a", "b", "add", "log"]
        assert result["values"]["add"] == {"result": 5}
        assert result["statuses"]["log"]["status"] == "done"

    def test_events_streamed_over_websocket(self, client):
        with client.websocket_connect("/ws/runs/sess-ws") as ws:
            resp = client.post("/api/execute", json={"graph": ADD_GRAPH, "session_id": "sess-ws"})
            assert resp.json()["session_id"] == "sess-ws"
            messages = []
            while True:
                message = ws.receive_json()
                messages.append(message)
                if message["type"] in ("run-ended", "run-aborted"):
                    break

        types = [m["type"] for m in messages]
        assert types[0] == "run-started"
        assert types[-1] == "run-ended"
        done = [m for m in messages if m["type"] == "node-done"]
        assert [m["node_id"] for m in done] == ["s", "a", "b", "add", "log"]
        _wait_for_result(client, resp.json()["execution_id"])

    def test_cycle_reported_as_failed(self, client):
        graph = {
            "nodes": [{"id": "a", "type": "ui.log"}, {"id": "b", "type": "ui.log"}],
            "wires": [
                _wire("w1", "exec", ("a", "exec_out"), ("b", "exec_in")),
                _wire("w2", "exec", ("b", "exec_out"), ("a", "exec_in")),
            ],
        }
        resp = client.post("/api/execute", json={"graph": graph})
        result = _wait_for_result(client, resp.json()["execution_id"])
        assert result["state"] == "failed"
        assert "Cycle detected" in result["error"]

    def test_cancel_run(self, client):
        resp = client.post("/api/execute", json={"graph": DELAY_GRAPH})
        execution_id = resp.json()["execution_id"]

        second = client.post("/api/execute", json={"graph": ADD_GRAPH})
        assert second.status_code == 409

        cancel = client.post(f"/api/execute/{execution_id}/cancel")
        assert cancel.json() == {"status": "cancelling"}

        result = _wait_for_result(client, execution_id)
        assert result["state"] == "aborted"
        assert result["error"] == "Cancelled by user"

    def test_cancel_unknown(self, client):
        assert client.post("/api/execute/nope/cancel").status_code == 404

    def test_results_unknown(self, client):
        assert client.get("/api/results/nope").status_code == 404


class TestCustomNodes:
    def test_lists_packs(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "custom_nodes_dir", tmp_path)
        pack = tmp_path / "demo"
        pack.mkdir()
        (pack / "manifest.json").write_text(json.dumps({"name": "Demo", "nodes": [{"type": "demo.x"}]}))

        data = client.get("/api/custom-nodes").json()
        assert [p["slug"] for p in data["packs"]] == ["demo"]
        assert data["packs"][0]["nodes"][0]["type"] == "demo.x"

    def test_run_unknown_pack(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "custom_nodes_dir", tmp_path)
        resp = client.post("/api/custom-nodes/run", json={"slug": "missing", "payload": {}})
        assert resp.json() == {"error": "Invalid pack"}


class TestSocketCancel:
    def test_cancel_message_aborts_session_runs(self, client):
        with client.websocket_connect("/ws/runs/sess-cancel") as ws:
            resp = client.post(
                "/api/execute", json={"graph": DELAY_GRAPH, "session_id": "sess-cancel"}
            )
            assert ws.receive_json()["type"] == "run-started"
            ws.send_json({"type": "cancel"})
            while ws.receive_json()["type"] not in ("run-ended", "run-aborted"):
                pass

        result = _wait_for_result(client, resp.json()["execution_id"])
        assert result["state"] == "aborted"
        assert result["error"] == "Cancelled by user"
