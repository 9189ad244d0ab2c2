"""Shared test fixtures for the listener test suite."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import httpx
import pytest

from pixgg_listener.config.settings import (
    AppConfig,
    PusherConfig,
    ServerConfig,
    WebhookConfig,
)
from pixgg_listener.status.model import StatusModel

if TYPE_CHECKING:
    from collections.abc import Callable

    from pixgg_listener.delivery.pipeline import DeliveryPipeline

WEBHOOK_URL = "https://hooks.example.com/pixgg"

_ENV_PREFIXES = ("PUSHER_", "WEBHOOK_", "SERVER_", "METRICS_")
_ENV_NAMES = ("LOG_LEVEL", "CONFIG_PATH", "PUSHER", "WEBHOOK", "SERVER", "METRICS")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep the developer's environment and .env file out of the tests."""
    for name in list(os.environ):
        upper = name.upper()
        if upper.startswith(_ENV_PREFIXES) or upper in _ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def pusher_config() -> PusherConfig:
    return PusherConfig(
        app_key="test-app-key",
        cluster="us2",
        channel_key="donations-channel",
        event_name="messages",
    )


@pytest.fixture
def webhook_config() -> WebhookConfig:
    return WebhookConfig(target_url=WEBHOOK_URL, timeout=2000)


@pytest.fixture
def app_config(pusher_config, webhook_config) -> AppConfig:
    """Provide a complete AppConfig with safe defaults."""
    return AppConfig(
        pusher=pusher_config,
        webhook=webhook_config,
        server=ServerConfig(host="127.0.0.1", port=0),
    )


@pytest.fixture
def status() -> StatusModel:
    return StatusModel()


@pytest.fixture
def donation() -> dict:
    return {
        "TransactionId": "abc123",
        "DonatorNickname": "Alice",
        "TotalAmount": 10.5,
        "DonatorMessage": "Keep it up!",
        "AWSPublicLink": "https://cdn.example.com/tts/abc123.mp3",
        "AudioDuration": 4.2,
        "Currency": "BRL",
    }


class RecordingHandler:
    """httpx MockTransport handler that records requests."""

    def __init__(self, status_code: int = 200, *, error: Exception | None = None) -> None:
        self.status_code = status_code
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})


@pytest.fixture
def make_pipeline(webhook_config, status) -> Callable[..., DeliveryPipeline]:
    """Factory building a DeliveryPipeline wired to a mock HTTP transport."""
    from pixgg_listener.delivery.pipeline import DeliveryPipeline

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> DeliveryPipeline:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return DeliveryPipeline(kwargs.pop("config", webhook_config), status, client=client, **kwargs)

    return _make


@pytest.fixture
def recording_handler() -> type[RecordingHandler]:
    """The RecordingHandler class, for building mock webhook targets."""
    return RecordingHandler
