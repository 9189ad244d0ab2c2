"""Pusher client — transport interface, in-memory and websocket backends."""

from pixgg_listener.pusher.transport import (
    Channel,
    Connection,
    ConnectionEvent,
    ConnectionState,
    MemoryTransport,
    PusherTransport,
)
from pixgg_listener.pusher.websocket import WebsocketTransport

__all__ = [
    "Channel",
    "Connection",
    "ConnectionEvent",
    "ConnectionState",
    "MemoryTransport",
    "PusherTransport",
    "WebsocketTransport",
]
