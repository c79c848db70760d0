"""API endpoint tests."""

import pytest
from fastapi.testclient import TestClient

from comfy_bridge.api import workflows
from comfy_bridge.main import app
from comfy_bridge.services.errors import ExecutionError, JobTimeoutError


@pytest.fixture
def client():
    return TestClient(app)


def test_execute_returns_output_items(client, monkeypatch):
    seen = {}

    async def fake_run_items(items, credentials):
        seen["items"] = items
        return [{"json": {"filename": "a.png"}}]

    monkeypatch.setattr(workflows, "run_items", fake_run_items)

    resp = client.post(
        "/api/workflows/execute",
        json={"items": [{"workflow": '{"1": {}}', "timeout_minutes": 2}]},
    )

    assert resp.status_code == 200
    assert resp.json() == {"items": [{"json": {"filename": "a.png"}}]}
    assert seen["items"][0].timeout_minutes == 2


@pytest.mark.parametrize(
    "error, status",
    [
        (ExecutionError("Workflow execution failed"), 502),
        (JobTimeoutError("Execution timeout after 60 attempts"), 504),
    ],
)
def test_execute_maps_errors(client, monkeypatch, error, status):
    async def failing_run_items(items, credentials):
        raise error

    monkeypatch.setattr(workflows, "run_items", failing_run_items)

    resp = client.post("/api/workflows/execute", json={"items": [{"workflow": {}}]})

    assert resp.status_code == status
    assert resp.json()["detail"] == f"ComfyUI API Error: {error}"


def test_execute_rejects_non_positive_timeout(client):
    resp = client.post(
        "/api/workflows/execute",
        json={"items": [{"workflow": {}, "timeout_minutes": 0}]},
    )
    assert resp.status_code == 422


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_system_comfy_reports_probe_result(client, monkeypatch):
    from comfy_bridge.services.comfy_client import ComfyClient

    async def alive(self):
        return 200

    monkeypatch.setattr(ComfyClient, "check_connection", alive)
    body = client.get("/api/system/comfy").json()
    assert body["status"] == "ok"
    assert "latency_ms" in body


def test_system_comfy_reports_unreachable_server(client, monkeypatch):
    import httpx
    from comfy_bridge.services.comfy_client import ComfyClient

    async def refuse(self):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(ComfyClient, "check_connection", refuse)
    body = client.get("/api/system/comfy").json()
    assert body["status"] == "error"
    assert "connection refused" in body["error"]
