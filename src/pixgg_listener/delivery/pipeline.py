"""Webhook delivery — one POST per donation event.

Every received donation yields exactly one delivery attempt: no retries,
no queue, no deduplication. Outcomes only ever show up in the status
counters, the metrics and the log.

Classification of an attempt:

- a response came back (any status code)  → counted as sent
- the request went out, nothing came back → counted as failed ("no response")
- the request could not be built or sent  → counted as failed

Non-2xx responses are logged as rejected but still counted as sent unless
``count_rejected_as_failed`` is set.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from pixgg_listener import USER_AGENT
from pixgg_listener.delivery.payload import OutboundPayload
from pixgg_listener.errors.delivery_errors import (
    DeliveryError,
    DeliveryNoResponseError,
    DeliveryRejectedError,
    DeliveryRequestError,
)
from pixgg_listener.utils.log import pretty_json

if TYPE_CHECKING:
    from pixgg_listener.config.settings import WebhookConfig
    from pixgg_listener.metrics.collector import ListenerMetrics
    from pixgg_listener.status.model import StatusModel

logger = logging.getLogger(__name__)

# Longest response body quoted in a rejection log line
_BODY_PREVIEW = 500


class DeliveryPipeline:
    """Transforms donation events and POSTs them to the webhook target.

    Usage::

        pipeline = DeliveryPipeline(config.webhook, status)
        await pipeline.start()
        pipeline.dispatch(event)      # fire-and-forget
        ok = await pipeline.deliver(event)
        await pipeline.close()
    """

    def __init__(
        self,
        config: WebhookConfig,
        status: StatusModel,
        *,
        metrics: ListenerMetrics | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._status = status
        self._metrics = metrics
        self._client = client
        self._owns_client = client is None
        self._pending: set[asyncio.Task[bool]] = set()

    @property
    def target_url(self) -> str:
        return self._config.target_url

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._pending)

    async def start(self) -> None:
        """Create the underlying HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout_seconds)
            self._owns_client = True

    async def close(self) -> None:
        """Let in-flight deliveries finish, then close the HTTP client."""
        if self._pending:
            logger.info("Waiting for %d webhook delivery(ies) in flight", len(self._pending))
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def dispatch(self, event: Any) -> asyncio.Task[bool]:
        """Schedule :meth:`deliver` for *event* without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def deliver(self, event: Any) -> bool:
        """Attempt one delivery of *event*; never raises.

        Returns:
            True if the attempt was counted as sent.
        """
        payload = OutboundPayload.from_event(event)
        try:
            if self._metrics is not None:
                with self._metrics.track_delivery():
                    response = await self._send(payload)
            else:
                response = await self._send(payload)
        except DeliveryError as exc:
            self._log_failure(exc)
            self._count_failed(exc.reason)
            return False
        except Exception:
            logger.exception("Webhook delivery failed - unexpected error")
            self._count_failed(DeliveryRequestError.reason)
            return False

        try:
            self._check_response(response)
        except DeliveryRejectedError as exc:
            self._log_failure(exc)
            if self._config.count_rejected_as_failed:
                self._count_failed(exc.reason)
                return False
        else:
            logger.info("Webhook delivered, status %d", response.status_code)

        self._status.record_sent()
        if self._metrics is not None:
            self._metrics.webhook_sent()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _send(self, payload: OutboundPayload) -> httpx.Response:
        """Build and send the POST request.

        Raises:
            DeliveryRequestError: The request could not be built or sent.
            DeliveryNoResponseError: No response arrived.
        """
        if self._client is None:
            await self.start()
        client = self._client
        assert client is not None  # noqa: S101

        logger.info("Sending webhook to %s", self._config.target_url)
        body = payload.to_dict()
        logger.debug("Payload: %s", pretty_json(body))

        try:
            request = client.build_request(
                "POST",
                self._config.target_url,
                json=body,
                headers={"Content-Type": "application/json", "User-Agent": USER_AGENT},
                timeout=self._config.timeout_seconds,
            )
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise DeliveryRequestError(f"request could not be built: {exc}") from exc

        try:
            return await client.send(request)
        except httpx.UnsupportedProtocol as exc:
            raise DeliveryRequestError(f"request could not be sent: {exc}") from exc
        except httpx.HTTPError as exc:
            raise DeliveryNoResponseError(f"{type(exc).__name__}: {exc}") from exc

    @staticmethod
    def _check_response(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise DeliveryRejectedError(
            f"server responded with status {response.status_code}",
            status_code=response.status_code,
            body=response.text[:_BODY_PREVIEW],
        )

    def _count_failed(self, reason: str) -> None:
        self._status.record_failed()
        if self._metrics is not None:
            self._metrics.webhook_failed(reason)

    @staticmethod
    def _log_failure(exc: DeliveryError) -> None:
        if isinstance(exc, DeliveryRejectedError):
            logger.error(
                "Webhook delivery failed - server responded with status %d: %s",
                exc.status_code,
                exc.body,
            )
        elif isinstance(exc, DeliveryNoResponseError):
            logger.error("Webhook delivery failed - no response from server: %s", exc.message)
        else:
            logger.error("Webhook delivery failed - %s", exc.message)

