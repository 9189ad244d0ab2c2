"""Tests for the status app."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from pixgg_listener import SERVICE_NAME, __version__
from pixgg_listener.api.app import create_app, render_status
from pixgg_listener.status.model import ConnectionStatus


@pytest.fixture
def client(app_config, status) -> TestClient:
    return TestClient(create_app(config=app_config, status=status))


class TestStatusEndpoint:
    def test_initial_status(self, client) -> None:
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == SERVICE_NAME
        assert data["version"] == __version__
        assert data["status"] == "starting"
        assert data["pusher"] == {
            "connected": False,
            "cluster": "us2",
            "channel": "donations-channel",
            "event": "messages",
        }
        assert data["webhooks"] == {
            "sent": 0,
            "failed": 0,
            "targetUrl": "https://hooks.example.com/pixgg",
        }
        assert data["lastEvent"] is None
        assert data["timestamp"].endswith("Z")

    def test_uptime_block(self, client) -> None:
        uptime = client.get("/").json()["uptime"]
        assert set(uptime) == {"startTime", "seconds", "formatted"}
        assert uptime["startTime"].endswith("Z")
        assert uptime["seconds"] >= 0
        assert uptime["formatted"] == f"{uptime['seconds'] // 60}m {uptime['seconds'] % 60}s"

    def test_reflects_model_changes(self, client, status, donation) -> None:
        status.mark_running()
        status.record_sent()
        status.record_sent()
        status.record_failed()
        status.record_event(donation)
        data = client.get("/").json()
        assert data["status"] == "running"
        assert data["pusher"]["connected"] is True
        assert data["webhooks"]["sent"] == 2
        assert data["webhooks"]["failed"] == 1
        assert data["lastEvent"]["donatorNickname"] == "Alice"
        assert data["lastEvent"]["totalAmount"] == 10.5
        assert data["lastEvent"]["transactionId"] == "abc123"
        assert data["lastEvent"]["timestamp"].endswith("Z")

    def test_reads_do_not_mutate(self, client, status) -> None:
        before = status.snapshot()
        for _ in range(3):
            client.get("/")
        after = status.snapshot()
        assert (before.status, before.webhooks_sent, before.webhooks_failed) == (
            after.status,
            after.webhooks_sent,
            after.webhooks_failed,
        )

    def test_uptime_non_decreasing(self, client) -> None:
        seconds = [client.get("/").json()["uptime"]["seconds"] for _ in range(5)]
        assert seconds == sorted(seconds)

    def test_query_string_still_served(self, client) -> None:
        assert client.get("/?verbose=1").status_code == 200

    def test_no_docs_routes(self, client) -> None:
        for path in ("/docs", "/redoc", "/openapi.json"):
            assert client.get(path).status_code == 404


class TestNotFound:
    @pytest.mark.parametrize("path", ["/status", "/health", "/favicon.ico", "/a/b/c"])
    def test_unknown_path(self, client, path: str) -> None:
        response = client.get(path)
        assert response.status_code == 404
        assert response.json() == {
            "error": "Not Found",
            "message": f"endpoint not found: GET {path}",
        }

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
    def test_other_methods_on_root(self, client, method: str) -> None:
        response = client.request(method, "/")
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Not Found"
        assert body["message"] == f"endpoint not found: {method} /"


class TestRenderStatus:
    def test_render_from_snapshot(self, app_config, status) -> None:
        status.mark_running()
        body = render_status(status.snapshot(), app_config)
        assert body.status == ConnectionStatus.RUNNING.value
        assert body.last_event is None
        dumped = body.model_dump(by_alias=True)
        assert "lastEvent" in dumped
        assert "targetUrl" in dumped["webhooks"]


class TestCreateApp:
    def test_defaults_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("PUSHER_CLUSTER", "eu")
        app = create_app()
        assert app.state.config.pusher.cluster == "eu"
        assert app.state.status.status == ConnectionStatus.STARTING

    def test_state_holds_injected_objects(self, app_config, status) -> None:
        app = create_app(config=app_config, status=status)
        assert app.state.config is app_config
        assert app.state.status is status
