"""API route tests. Components are wired against a temp JSON store; lifespan is disabled."""
from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from shared.errors import FetchExhausted
from shared.models.domain import ReconcileResult
from shared.store.json_file import JsonFileStatusStore
from shared.utils.log_sink import LogConfigStore

from api.app import create_app
from api.dependencies import init_dependencies
from reconciler.ledger import StatusLedger
from reconciler.refresh import RefreshGate, RefreshService

from conftest import NOW, fixed_clock, make_settings


@pytest.fixture
def engine() -> MagicMock:
    engine = MagicMock()
    engine.reconcile = AsyncMock(return_value=ReconcileResult(updated=True, processed_at=NOW))
    return engine


@pytest.fixture
def client(tmp_path: Path, engine: MagicMock) -> TestClient:
    """Test client with lifespan disabled and dependencies wired to temp files."""
    settings = make_settings(tmp_path)
    ledger = StatusLedger(
        JsonFileStatusStore(settings.state_path), clock=fixed_clock(), code_factory=lambda: "042517"
    )
    refresh = RefreshService(engine, RefreshGate(), None, clock=fixed_clock())
    log_config = LogConfigStore(settings.log_config_path, settings.log_max_bytes, settings.log_min_bytes)
    init_dependencies(ledger, refresh, log_config, settings)

    app = create_app(use_lifespan=False)
    with TestClient(app) as c:
        yield c


def test_health_returns_ok(client: TestClient) -> None:
    """GET /health returns 200 and status ok."""
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data.get("status") == "ok"
    assert data.get("service") == "api"
    assert data.get("refreshing") is False


def test_health_carries_request_id(client: TestClient) -> None:
    r = client.get("/health", headers={"X-Request-ID": "abc123"})
    assert r.headers.get("x-request-id") == "abc123"


def test_status_empty(client: TestClient) -> None:
    r = client.get("/api/status")
    assert r.status_code == 200
    assert r.json() == []


def test_dispatch_then_list(client: TestClient) -> None:
    r = client.post("/api/dispatch", json={"callsign": " bg4abc "})
    assert r.status_code == 200
    body = r.json()
    assert body["callsign"] == "BG4ABC"
    assert body["dispatchCode"] == "042517"
    assert body["status"] == "sent"
    assert body["warning"] is None

    statuses = client.get("/api/status").json()
    assert [s["callsign"] for s in statuses] == ["BG4ABC"]


def test_dispatch_requires_callsign(client: TestClient) -> None:
    r = client.post("/api/dispatch", json={"callsign": "  "})
    assert r.status_code == 400
    assert r.json() == {"error": "callsign is required"}


def test_mark_received(client: TestClient) -> None:
    client.post("/api/dispatch", json={"callsign": "BG4ABC"})
    r = client.post(
        "/api/mark-received", json={"callsign": "bg4abc", "receivedAt": "2024-05-02T08:00:00Z"}
    )
    assert r.status_code == 200
    assert r.json()["status"] == "received"
    assert r.json()["receivedAt"].startswith("2024-05-02T08:00:00")


def test_mark_received_unknown(client: TestClient) -> None:
    r = client.post("/api/mark-received", json={"callsign": "ZZ9ZZ"})
    assert r.status_code == 404
    assert r.json() == {"error": "callsign not found"}


def test_resolve_warning_confirm(client: TestClient) -> None:
    client.post("/api/dispatch", json={"callsign": "BG4ABC"})
    r = client.post("/api/resolve-warning", json={"callsign": "BG4ABC", "action": "confirm"})
    assert r.status_code == 200
    assert r.json()["status"] == "received"
    assert r.json()["warning"] is None


def test_resolve_warning_bad_action(client: TestClient) -> None:
    r = client.post("/api/resolve-warning", json={"callsign": "BG4ABC", "action": "delete"})
    assert r.status_code == 400
    assert r.json() == {"error": "action must be ignore or confirm"}


def test_refresh_ok(client: TestClient) -> None:
    r = client.post("/api/refresh")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["sync"]["updated"] is True
    assert body["dispatch"]["skipped"] is True


def test_refresh_failure_is_500(client: TestClient, engine: MagicMock) -> None:
    engine.reconcile.side_effect = FetchExhausted("https://x.test/e.json", 3, None)
    r = client.post("/api/refresh")
    assert r.status_code == 500
    assert "https://x.test/e.json" in r.json()["error"]


def test_log_config_roundtrip(client: TestClient) -> None:
    assert client.get("/api/log-config").json() == {"maxBytes": 4 * 1024 * 1024}

    r = client.post("/api/log-config", json={"maxBytes": 2048})
    assert r.status_code == 200
    assert r.json() == {"maxBytes": 2048}
    assert client.get("/api/log-config").json() == {"maxBytes": 2048}


@pytest.mark.parametrize("value", [1024, 0, "abc", None])
def test_log_config_rejects_small_or_invalid(client: TestClient, value: object) -> None:
    r = client.post("/api/log-config", json={"maxBytes": value})
    assert r.status_code == 400
    assert r.json() == {"error": "maxBytes must be > 1024"}


def test_logs_are_plain_text(client: TestClient, tmp_path: Path) -> None:
    (tmp_path / "qsl.log").write_text('{"event": "hello"}\n', encoding="utf-8")
    r = client.get("/api/logs")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert "hello" in r.text
