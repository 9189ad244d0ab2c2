"""Tests for the webhook delivery pipeline."""

from __future__ import annotations

import asyncio
import json
import logging
from unittest.mock import patch

import httpx
import pytest

from pixgg_listener import USER_AGENT
from pixgg_listener.config.settings import WebhookConfig
from pixgg_listener.delivery.pipeline import DeliveryPipeline
from pixgg_listener.metrics.collector import ListenerMetrics

WEBHOOK_URL = "https://hooks.example.com/pixgg"


def _sample(metrics: ListenerMetrics, name: str, labels: dict | None = None) -> float | None:
    return metrics.registry.get_sample_value(name, labels or {})


# ---------------------------------------------------------------------------
# Successful delivery
# ---------------------------------------------------------------------------


class TestDeliverSuccess:
    async def test_200_counts_as_sent(self, make_pipeline, recording_handler, status, donation) -> None:
        handler = recording_handler(200)
        pipeline = make_pipeline(handler)
        assert await pipeline.deliver(donation) is True
        assert status.webhooks_sent == 1
        assert status.webhooks_failed == 0
        await pipeline.close()

    async def test_request_shape(self, make_pipeline, recording_handler, donation) -> None:
        handler = recording_handler(200)
        pipeline = make_pipeline(handler)
        await pipeline.deliver(donation)
        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["content-type"] == "application/json"
        assert request.headers["user-agent"] == USER_AGENT
        body = json.loads(request.content)
        assert body["transactionId"] == "abc123"
        assert body["donatorNickname"] == "Alice"
        assert body["originalEvent"] == donation
        await pipeline.close()

    async def test_configured_timeout_applied(self, make_pipeline, recording_handler, donation) -> None:
        handler = recording_handler(200)
        pipeline = make_pipeline(handler)
        await pipeline.deliver(donation)
        timeout = handler.requests[0].extensions["timeout"]
        assert timeout["connect"] == 2.0
        assert timeout["read"] == 2.0
        await pipeline.close()

    async def test_one_request_per_event(self, make_pipeline, recording_handler, donation) -> None:
        handler = recording_handler(200)
        pipeline = make_pipeline(handler)
        for _ in range(3):
            await pipeline.deliver(donation)
        assert len(handler.requests) == 3
        await pipeline.close()

    async def test_target_url_property(self, make_pipeline, recording_handler) -> None:
        pipeline = make_pipeline(recording_handler())
        assert pipeline.target_url == WEBHOOK_URL
        await pipeline.close()


# ---------------------------------------------------------------------------
# Non-2xx responses
# ---------------------------------------------------------------------------


class TestDeliverRejected:
    async def test_500_counts_as_sent_by_default(
        self, make_pipeline, recording_handler, status, donation, caplog
    ) -> None:
        pipeline = make_pipeline(recording_handler(500))
        with caplog.at_level(logging.ERROR):
            assert await pipeline.deliver(donation) is True
        assert status.webhooks_sent == 1
        assert status.webhooks_failed == 0
        assert "server responded with status 500" in caplog.text
        await pipeline.close()

    async def test_rejected_counts_as_failed_when_configured(
        self, make_pipeline, recording_handler, status, donation
    ) -> None:
        config = WebhookConfig(target_url=WEBHOOK_URL, count_rejected_as_failed=True)
        pipeline = make_pipeline(recording_handler(404), config=config)
        assert await pipeline.deliver(donation) is False
        assert status.webhooks_sent == 0
        assert status.webhooks_failed == 1
        await pipeline.close()


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestDeliverFailure:
    async def test_connect_error_is_no_response(
        self, make_pipeline, recording_handler, status, donation, caplog
    ) -> None:
        handler = recording_handler(error=httpx.ConnectError("connection refused"))
        pipeline = make_pipeline(handler)
        with caplog.at_level(logging.ERROR):
            assert await pipeline.deliver(donation) is False
        assert status.webhooks_failed == 1
        assert status.webhooks_sent == 0
        assert "no response from server" in caplog.text
        await pipeline.close()

    async def test_timeout_is_no_response(self, make_pipeline, recording_handler, status, donation, caplog) -> None:
        handler = recording_handler(error=httpx.ReadTimeout("timed out"))
        pipeline = make_pipeline(handler)
        with caplog.at_level(logging.ERROR):
            assert await pipeline.deliver(donation) is False
        assert status.webhooks_failed == 1
        assert "no response from server" in caplog.text
        await pipeline.close()

    async def test_unsupported_protocol_is_request_failure(self, status, donation, caplog) -> None:
        # Validation is bypassed so the pipeline sees the bad scheme at send time.
        config = WebhookConfig.model_construct(
            target_url="ftp://hooks.example.com/in",
            timeout=1000,
            count_rejected_as_failed=False,
        )
        pipeline = DeliveryPipeline(config, status)
        with caplog.at_level(logging.ERROR):
            assert await pipeline.deliver(donation) is False
        assert status.webhooks_failed == 1
        assert "no response" not in caplog.text
        await pipeline.close()

    async def test_invalid_url_is_request_failure(self, status, recording_handler, donation) -> None:
        target = "http://hooks.example.com:notaport/in"
        with pytest.raises(httpx.InvalidURL):
            httpx.URL(target)
        config = WebhookConfig.model_construct(
            target_url=target,
            timeout=1000,
            count_rejected_as_failed=False,
        )
        handler = recording_handler()
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        pipeline = DeliveryPipeline(config, status, client=client)
        assert await pipeline.deliver(donation) is False
        assert status.webhooks_failed == 1
        assert handler.requests == []
        await pipeline.close()
        await client.aclose()

    async def test_build_failure_is_request_failure(
        self, make_pipeline, recording_handler, status, donation, caplog
    ) -> None:
        handler = recording_handler()
        pipeline = make_pipeline(handler)
        with (
            patch.object(httpx.AsyncClient, "build_request", side_effect=httpx.InvalidURL("bad url")),
            caplog.at_level(logging.ERROR),
        ):
            assert await pipeline.deliver(donation) is False
        assert status.webhooks_failed == 1
        assert status.webhooks_sent == 0
        assert handler.requests == []
        assert "request could not be built" in caplog.text
        await pipeline.close()

    async def test_unserializable_payload_is_request_failure(
        self, make_pipeline, recording_handler, status
    ) -> None:
        handler = recording_handler()
        pipeline = make_pipeline(handler)
        assert await pipeline.deliver({"TransactionId": object()}) is False
        assert status.webhooks_failed == 1
        assert handler.requests == []
        await pipeline.close()

    async def test_unexpected_error_never_raises(self, make_pipeline, recording_handler, status, donation) -> None:
        pipeline = make_pipeline(recording_handler(error=RuntimeError("boom")))
        assert await pipeline.deliver(donation) is False
        assert status.webhooks_failed == 1
        await pipeline.close()


# ---------------------------------------------------------------------------
# Dispatch and lifecycle
# ---------------------------------------------------------------------------


class TestDispatch:
    async def test_dispatch_returns_immediately(self, make_pipeline, recording_handler, status, donation) -> None:
        release = asyncio.Event()

        async def _slow(request: httpx.Request) -> httpx.Response:
            await release.wait()
            return httpx.Response(200)

        pipeline = make_pipeline(_slow)
        task = pipeline.dispatch(donation)
        await asyncio.sleep(0)
        assert pipeline.pending == 1
        assert status.webhooks_sent == 0
        release.set()
        assert await task is True
        assert pipeline.pending == 0
        assert status.webhooks_sent == 1
        await pipeline.close()

    async def test_close_waits_for_in_flight(self, make_pipeline, recording_handler, status, donation) -> None:
        pipeline = make_pipeline(recording_handler(200))
        for _ in range(5):
            pipeline.dispatch(donation)
        await pipeline.close()
        assert pipeline.pending == 0
        assert status.webhooks_sent == 5

    @pytest.mark.parametrize("outcomes", [[200, 200, 200], [200, "error", 500, "error"], ["error"] * 4])
    async def test_sent_plus_failed_equals_events(self, make_pipeline, status, donation, outcomes) -> None:
        remaining = list(outcomes)

        def _handler(request: httpx.Request) -> httpx.Response:
            outcome = remaining.pop(0)
            if outcome == "error":
                raise httpx.ConnectError("refused")
            return httpx.Response(outcome)

        pipeline = make_pipeline(_handler)
        for _ in outcomes:
            await pipeline.deliver(donation)
        await pipeline.close()
        assert status.webhooks_sent + status.webhooks_failed == len(outcomes)
        assert status.webhooks_failed == outcomes.count("error")

    async def test_start_creates_owned_client(self, webhook_config, status) -> None:
        pipeline = DeliveryPipeline(webhook_config, status)
        await pipeline.start()
        client = pipeline._client
        assert isinstance(client, httpx.AsyncClient)
        await pipeline.close()
        assert client.is_closed

    async def test_close_leaves_injected_client_open(self, webhook_config, status, recording_handler) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler()))
        pipeline = DeliveryPipeline(webhook_config, status, client=client)
        await pipeline.close()
        assert not client.is_closed
        await client.aclose()


class TestDeliveryMetrics:
    async def test_sent_metric(self, make_pipeline, recording_handler, donation) -> None:
        metrics = ListenerMetrics()
        pipeline = make_pipeline(recording_handler(200), metrics=metrics)
        await pipeline.deliver(donation)
        await pipeline.close()
        assert _sample(metrics, "pixgg_webhooks_sent_total") == 1.0
        assert _sample(metrics, "pixgg_webhook_delivery_duration_seconds_count") == 1.0

    async def test_failed_metric_reason(self, make_pipeline, recording_handler, donation) -> None:
        metrics = ListenerMetrics()
        handler = recording_handler(error=httpx.ConnectError("refused"))
        pipeline = make_pipeline(handler, metrics=metrics)
        await pipeline.deliver(donation)
        await pipeline.close()
        assert _sample(metrics, "pixgg_webhooks_failed_total", {"reason": "no_response"}) == 1.0
