"""Subscription controller — Pusher lifecycle and event routing.

Translates transport callbacks into status transitions and hands each
donation to the delivery pipeline without waiting on it.

    subscription succeeded → RUNNING, connected
    disconnected           → DISCONNECTED, not connected
    reconnected            → RUNNING, connected
    error                  → ERROR (sticky)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pixgg_listener.pusher.protocol import SUBSCRIPTION_SUCCEEDED
from pixgg_listener.pusher.transport import ConnectionEvent
from pixgg_listener.utils.log import pretty_json

if TYPE_CHECKING:
    from collections.abc import Callable

    from pixgg_listener.config.settings import PusherConfig
    from pixgg_listener.delivery.pipeline import DeliveryPipeline
    from pixgg_listener.metrics.collector import ListenerMetrics
    from pixgg_listener.pusher.transport import Channel, PusherTransport
    from pixgg_listener.status.model import StatusModel

logger = logging.getLogger(__name__)

# Channel events that are only logged
AUXILIARY_EVENTS: dict[str, str] = {
    "skip-alert": "Skip-alert received",
    "clear-queue": "Queue cleared",
    "pause": "Pause received",
}


class SubscriptionController:
    """Owns the Pusher subscription for one channel and event."""

    def __init__(
        self,
        transport: PusherTransport,
        pipeline: DeliveryPipeline,
        status: StatusModel,
        config: PusherConfig,
        *,
        metrics: ListenerMetrics | None = None,
    ) -> None:
        self._transport = transport
        self._pipeline = pipeline
        self._status = status
        self._config = config
        self._metrics = metrics
        self._channel: Channel | None = None
        self._handlers_bound = False
        self._shut_down = False

    @property
    def channel(self) -> Channel | None:
        return self._channel

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    async def connect(self) -> None:
        """Bind lifecycle callbacks, subscribe, and start the transport."""
        logger.info(
            "Connecting to Pusher [%s, %s]...",
            self._config.app_key,
            self._config.cluster,
        )
        connection = self._transport.connection
        connection.bind(ConnectionEvent.ERROR, self.on_connection_error)
        connection.bind(ConnectionEvent.DISCONNECTED, self.on_disconnected)
        connection.bind(ConnectionEvent.RECONNECTED, self.on_reconnected)

        self._channel = self._transport.subscribe(self._config.channel_key)
        self._channel.bind(SUBSCRIPTION_SUCCEEDED, self.on_subscription_succeeded)
        await self._transport.connect()

    async def shutdown(self) -> None:
        """Disconnect from Pusher; later calls are no-ops."""
        if self._shut_down:
            return
        self._shut_down = True
        logger.info("Disconnecting from Pusher")
        await self._transport.disconnect()

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def on_subscription_succeeded(self, _data: Any = None) -> None:
        logger.info("Subscribed to channel: %s", self._config.channel_key)
        self._status.mark_running()
        self._set_connected(True)
        if self._handlers_bound or self._channel is None:
            return
        self._channel.bind(self._config.event_name, self.on_donation)
        for event in AUXILIARY_EVENTS:
            self._channel.bind(event, self._auxiliary_handler(event))
        self._handlers_bound = True

    def on_donation(self, data: Any) -> None:
        """Record the donation and dispatch its delivery."""
        event = data if isinstance(data, dict) else {}
        logger.info("--- New donation received ---")
        logger.info(
            "Donator: %s, Amount: %s",
            event.get("DonatorNickname"),
            event.get("TotalAmount"),
        )
        logger.debug("Full event: %s", pretty_json(data))
        if self._metrics is not None:
            self._metrics.event_received(self._config.event_name)
        self._status.record_event(data)
        self._pipeline.dispatch(data)

    def on_connection_error(self, error: Any = None) -> None:
        logger.error("Pusher connection error: %s", error)
        self._status.mark_error()

    def on_disconnected(self, _data: Any = None) -> None:
        logger.warning("Pusher connection lost")
        self._status.mark_disconnected()
        self._set_connected(False)

    def on_reconnected(self, _data: Any = None) -> None:
        logger.info("Pusher connection restored")
        self._status.mark_running()
        self._set_connected(True)

    def _auxiliary_handler(self, event: str) -> Callable[[Any], None]:
        label = AUXILIARY_EVENTS[event]

        def _handler(data: Any) -> None:
            if self._metrics is not None:
                self._metrics.event_received(event)
            logger.info("%s: %s", label, pretty_json(data))

        return _handler

    def _set_connected(self, connected: bool) -> None:
        if self._metrics is not None:
            self._metrics.set_connected(connected)

