"""Pusher transport interface and the in-memory backend.

A transport owns one connection and any number of channel subscriptions.
Consumers register plain callables with :meth:`Connection.bind` and
:meth:`Channel.bind`; the transport invokes them from its own task, one at
a time, on the running event loop.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from pixgg_listener.pusher.protocol import SUBSCRIPTION_SUCCEEDED, decode_data

if TYPE_CHECKING:
    from collections.abc import Callable

    Callback = Callable[[Any], None]

logger = logging.getLogger(__name__)


class ConnectionState(enum.StrEnum):
    """Transport connection states."""

    INITIALIZED = "initialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"
    DISCONNECTED = "disconnected"


class ConnectionEvent(enum.StrEnum):
    """Lifecycle events emitted on :class:`Connection`."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTED = "reconnected"
    ERROR = "error"


class _Bindings:
    """Event name → callbacks registry."""

    def __init__(self) -> None:
        self._callbacks: dict[str, list[Callback]] = {}

    def bind(self, event: str, callback: Callback) -> None:
        """Register *callback* for *event*."""
        self._callbacks.setdefault(event, []).append(callback)

    def unbind(self, event: str, callback: Callback | None = None) -> None:
        """Remove one callback, or every callback for *event*."""
        if callback is None:
            self._callbacks.pop(event, None)
            return
        callbacks = self._callbacks.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def bound_events(self) -> list[str]:
        return [event for event, callbacks in self._callbacks.items() if callbacks]

    def emit(self, event: str, data: Any = None) -> int:
        """Invoke the callbacks bound to *event*; return how many ran."""
        callbacks = list(self._callbacks.get(event, []))
        for cb in callbacks:
            try:
                cb(data)
            except Exception:
                logger.exception("Pusher callback error on %s %s", self._describe(), event)
        return len(callbacks)

    def _describe(self) -> str:
        return "connection"


class Connection(_Bindings):
    """Connection lifecycle bindings plus the current state."""

    def __init__(self) -> None:
        super().__init__()
        self.state = ConnectionState.INITIALIZED
        self.socket_id: str | None = None


class Channel(_Bindings):
    """A subscribed channel."""

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self.subscribed = False

    def _describe(self) -> str:
        return f"channel {self.name}"


class PusherTransport(ABC):
    """Abstract Pusher client interface."""

    def __init__(self) -> None:
        self.connection = Connection()
        self._channels: dict[str, Channel] = {}

    @property
    def channels(self) -> dict[str, Channel]:
        return dict(self._channels)

    def channel(self, name: str) -> Channel | None:
        """Return the channel named *name* if subscribed."""
        return self._channels.get(name)

    def subscribe(self, name: str) -> Channel:
        """Subscribe to *name*; success is reported via ``pusher:subscription_succeeded``."""
        channel = self._channels.get(name)
        if channel is None:
            channel = Channel(name)
            self._channels[name] = channel
        self._on_subscribe(channel)
        return channel

    def _on_subscribe(self, channel: Channel) -> None:  # noqa: B027
        """Hook for backends that must act on a new subscription."""

    @abstractmethod
    async def connect(self) -> None:
        """Start connecting; outcomes arrive as connection callbacks."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection; safe to call more than once."""


class MemoryTransport(PusherTransport):
    """In-process transport driven by the caller.

    Used by tests and for local runs without a Pusher account: the
    ``publish``/``drop``/``restore``/``fail`` helpers stand in for frames
    pushed by the server.
    """

    def __init__(self) -> None:
        super().__init__()
        self.disconnect_calls = 0

    async def connect(self) -> None:
        """Mark connected and confirm every pending subscription."""
        self.connection.state = ConnectionState.CONNECTED
        self.connection.emit(ConnectionEvent.CONNECTED)
        for channel in list(self._channels.values()):
            self.confirm_subscription(channel.name)

    async def disconnect(self) -> None:
        """Mark disconnected."""
        self.disconnect_calls += 1
        if self.connection.state == ConnectionState.DISCONNECTED:
            return
        self.connection.state = ConnectionState.DISCONNECTED
        for channel in self._channels.values():
            channel.subscribed = False
        self.connection.emit(ConnectionEvent.DISCONNECTED)

    # -- Simulation helpers --

    def confirm_subscription(self, name: str) -> None:
        channel = self._channels[name]
        channel.subscribed = True
        channel.emit(SUBSCRIPTION_SUCCEEDED, {})

    def publish(self, channel: str, event: str, data: Any = None) -> int:
        """Deliver *event* on *channel*; string data is JSON-decoded like on the wire."""
        target = self._channels.get(channel)
        if target is None:
            return 0
        return target.emit(event, decode_data(data))

    def drop(self) -> None:
        """Simulate the server dropping the connection."""
        self.connection.state = ConnectionState.UNAVAILABLE
        for channel in self._channels.values():
            channel.subscribed = False
        self.connection.emit(ConnectionEvent.DISCONNECTED)

    def restore(self) -> None:
        """Simulate a successful automatic reconnect."""
        self.connection.state = ConnectionState.CONNECTED
        self.connection.emit(ConnectionEvent.CONNECTED)
        self.connection.emit(ConnectionEvent.RECONNECTED)
        for channel in list(self._channels.values()):
            self.confirm_subscription(channel.name)

    def fail(self, error: Any) -> None:
        """Simulate a connection error reported by the server."""
        self.connection.emit(ConnectionEvent.ERROR, error)
