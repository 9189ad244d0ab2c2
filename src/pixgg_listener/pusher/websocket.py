"""Websocket Pusher client.

Speaks the Pusher Channels protocol over ``websockets``. The transport
owns reconnection: after an established connection drops it waits with
exponential backoff, reconnects, re-subscribes every channel and emits
``reconnected``. Close codes 4000-4099 are fatal and stop the loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from pixgg_listener import __version__
from pixgg_listener.errors.listener_errors import PusherConnectionError
from pixgg_listener.pusher import protocol
from pixgg_listener.pusher.protocol import PusherFrame
from pixgg_listener.pusher.transport import (
    Channel,
    ConnectionEvent,
    ConnectionState,
    PusherTransport,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from pixgg_listener.config.settings import PusherConfig

logger = logging.getLogger(__name__)

CLIENT_NAME = "pixgg-listener"
RECONNECT_DELAY = 1.0  # seconds
MAX_RECONNECT_DELAY = 30.0
PONG_TIMEOUT = 30.0


def build_url(config: PusherConfig) -> str:
    """Websocket URL for the configured app key and cluster."""
    scheme, port = ("wss", 443) if config.encrypted else ("ws", 80)
    return (
        f"{scheme}://{config.ws_host}:{port}/app/{config.app_key}"
        f"?protocol={protocol.PROTOCOL_VERSION}&client={CLIENT_NAME}&version={__version__}&flash=false"
    )


class WebsocketTransport(PusherTransport):
    """Pusher client backed by a websocket connection.

    Usage::

        transport = WebsocketTransport(config.pusher)
        channel = transport.subscribe("my-channel")
        channel.bind("my-event", handler)
        await transport.connect()
        ...
        await transport.disconnect()
    """

    def __init__(
        self,
        config: PusherConfig,
        *,
        reconnect_delay: float = RECONNECT_DELAY,
        max_reconnect_delay: float = MAX_RECONNECT_DELAY,
        pong_timeout: float = PONG_TIMEOUT,
        connector: Callable[[str], Any] | None = None,
    ) -> None:
        super().__init__()
        self._config = config
        self._reconnect_delay = reconnect_delay
        self._max_reconnect_delay = max_reconnect_delay
        self._pong_timeout = pong_timeout
        self._connector = connector or websockets.connect
        self._activity_timeout = protocol.DEFAULT_ACTIVITY_TIMEOUT
        self._ws: Any = None
        self._task: asyncio.Task[None] | None = None
        self._closing = False
        self._ever_connected = False
        self._sends: set[asyncio.Task[None]] = set()

    @property
    def url(self) -> str:
        return build_url(self._config)

    @property
    def is_running(self) -> bool:
        """Whether the connection loop is active."""
        return self._task is not None and not self._task.done()

    async def connect(self) -> None:
        """Start the connection loop in the background."""
        if self.is_running:
            return
        self._closing = False
        self._task = asyncio.create_task(self._run(), name="pusher-connection")

    async def disconnect(self) -> None:
        """Close the socket and stop reconnecting."""
        if self._closing and not self.is_running:
            return
        self._closing = True
        if self._ws is not None:
            with contextlib.suppress(Exception):
                await self._ws.close()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        was_connected = self.connection.state == ConnectionState.CONNECTED
        self.connection.state = ConnectionState.DISCONNECTED
        if was_connected:
            self.connection.emit(ConnectionEvent.DISCONNECTED)

    def _on_subscribe(self, channel: Channel) -> None:
        if self._ws is not None and self.connection.state == ConnectionState.CONNECTED:
            task = asyncio.get_running_loop().create_task(self._send(protocol.subscribe_frame(channel.name)))
            self._sends.add(task)
            task.add_done_callback(self._sends.discard)

    # ------------------------------------------------------------------
    # Connection loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        """Connect, run a session, back off, repeat."""
        delay = self._reconnect_delay
        while not self._closing:
            self.connection.state = ConnectionState.CONNECTING
            logger.debug("Connecting to %s", self.url)
            established = False
            try:
                async with self._connector(self.url) as ws:
                    self._ws = ws
                    established = await self._session(ws)
            except asyncio.CancelledError:
                raise
            except ConnectionClosed as exc:
                established = self.connection.state == ConnectionState.CONNECTED
                code = exc.rcvd.code if exc.rcvd is not None else None
                if protocol.is_fatal_close(code):
                    reason = exc.rcvd.reason if exc.rcvd is not None else ""
                    self._fail(PusherConnectionError(f"Pusher closed the connection: {reason}", pusher_code=code))
                    return
                logger.debug("Pusher connection closed (code %s)", code)
            except (OSError, TimeoutError, WebSocketException) as exc:
                self.connection.emit(
                    ConnectionEvent.ERROR,
                    PusherConnectionError(f"Pusher connection failed: {exc}"),
                )
            finally:
                self._ws = None

            if self._closing:
                return
            if established:
                self._mark_unavailable()
                delay = self._reconnect_delay
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._max_reconnect_delay)

    async def _session(self, ws: Any) -> bool:
        """Read frames until the socket closes or stops answering pings.

        Returns:
            True if the connection had been established.
        """
        awaiting_pong = False
        while True:
            timeout = self._pong_timeout if awaiting_pong else self._activity_timeout
            try:
                raw = await asyncio.wait_for(ws.recv(), timeout=timeout)
            except TimeoutError:
                if awaiting_pong:
                    logger.warning("Pusher did not answer ping, reconnecting")
                    return self.connection.state == ConnectionState.CONNECTED
                await self._send(protocol.ping_frame(), ws)
                awaiting_pong = True
                continue
            awaiting_pong = False
            try:
                frame = PusherFrame.parse(raw)
            except ValueError:
                logger.warning("Ignoring malformed Pusher frame: %r", raw)
                continue
            await self.handle_frame(frame, ws)

    async def handle_frame(self, frame: PusherFrame, ws: Any = None) -> None:
        """Apply one inbound frame."""
        event = frame.event
        if event == protocol.CONNECTION_ESTABLISHED:
            await self._on_established(frame.data, ws)
        elif event == protocol.ERROR:
            data = frame.data if isinstance(frame.data, dict) else {"message": frame.data}
            self.connection.emit(
                ConnectionEvent.ERROR,
                PusherConnectionError(str(data.get("message") or "pusher error"), pusher_code=data.get("code")),
            )
        elif event == protocol.PING:
            await self._send(protocol.pong_frame(), ws)
        elif event == protocol.PONG:
            return
        elif frame.channel is not None:
            channel = self._channels.get(frame.channel)
            if channel is None:
                logger.debug("Event %s for unknown channel %s", event, frame.channel)
                return
            if event == protocol.INTERNAL_SUBSCRIPTION_SUCCEEDED:
                channel.subscribed = True
                channel.emit(protocol.SUBSCRIPTION_SUCCEEDED, frame.data)
            else:
                channel.emit(event, frame.data)
        else:
            logger.debug("Unhandled Pusher event %s", event)

    async def _on_established(self, data: Any, ws: Any) -> None:
        info = data if isinstance(data, dict) else {}
        self.connection.socket_id = info.get("socket_id")
        timeout = info.get("activity_timeout")
        if isinstance(timeout, int | float) and timeout > 0:
            self._activity_timeout = min(float(timeout), protocol.DEFAULT_ACTIVITY_TIMEOUT)
        self.connection.state = ConnectionState.CONNECTED
        logger.debug("Pusher connection established (socket %s)", self.connection.socket_id)
        self.connection.emit(ConnectionEvent.CONNECTED, info)
        if self._ever_connected:
            self.connection.emit(ConnectionEvent.RECONNECTED, info)
        self._ever_connected = True
        for name in list(self._channels):
            await self._send(protocol.subscribe_frame(name), ws)

    async def _send(self, frame: PusherFrame, ws: Any = None) -> None:
        target = ws if ws is not None else self._ws
        if target is None:
            return
        try:
            await target.send(frame.encode())
        except ConnectionClosed:
            logger.debug("Could not send %s, socket closed", frame.event)

    def _mark_unavailable(self) -> None:
        self.connection.state = ConnectionState.UNAVAILABLE
        for channel in self._channels.values():
            channel.subscribed = False
        self.connection.emit(ConnectionEvent.DISCONNECTED)

    def _fail(self, error: PusherConnectionError) -> None:
        was_connected = self.connection.state == ConnectionState.CONNECTED
        self.connection.state = ConnectionState.FAILED
        for channel in self._channels.values():
            channel.subscribed = False
        # Listeners must see the connection go down before the error.
        if was_connected:
            self.connection.emit(ConnectionEvent.DISCONNECTED)
        self.connection.emit(ConnectionEvent.ERROR, error)
