"""Pusher Channels wire protocol (version 7) — frames and event names."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

PROTOCOL_VERSION = 7

# -- Connection-level events --

CONNECTION_ESTABLISHED = "pusher:connection_established"
ERROR = "pusher:error"
PING = "pusher:ping"
PONG = "pusher:pong"
SUBSCRIBE = "pusher:subscribe"
UNSUBSCRIBE = "pusher:unsubscribe"

# -- Channel-level events --

INTERNAL_SUBSCRIPTION_SUCCEEDED = "pusher_internal:subscription_succeeded"
SUBSCRIPTION_SUCCEEDED = "pusher:subscription_succeeded"
SUBSCRIPTION_ERROR = "pusher:subscription_error"

# Server default; the connection_established frame may lower it.
DEFAULT_ACTIVITY_TIMEOUT = 120.0


def decode_data(data: Any) -> Any:
    """Decode an event's ``data`` member.

    Pusher sends channel payloads as JSON-encoded strings. Anything that is
    not valid JSON is returned unchanged.
    """
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except ValueError:
        return data


def is_fatal_close(code: int | None) -> bool:
    """Close codes 4000-4099 mean the client must not reconnect."""
    return code is not None and 4000 <= code <= 4099


@dataclass(frozen=True)
class PusherFrame:
    """One JSON frame exchanged over the websocket."""

    event: str
    data: Any = None
    channel: str | None = None

    @classmethod
    def parse(cls, raw: str | bytes) -> PusherFrame:
        """Parse a raw websocket message.

        Raises:
            ValueError: The message is not a JSON object with an ``event``.
        """
        message = json.loads(raw)
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            msg = "frame is not a pusher event object"
            raise ValueError(msg)
        return cls(
            event=message["event"],
            data=decode_data(message.get("data")),
            channel=message.get("channel"),
        )

    def encode(self) -> str:
        """Serialize for sending."""
        message: dict[str, Any] = {"event": self.event, "data": self.data if self.data is not None else {}}
        if self.channel is not None:
            message["channel"] = self.channel
        return json.dumps(message)


def subscribe_frame(channel: str) -> PusherFrame:
    return PusherFrame(event=SUBSCRIBE, data={"channel": channel})


def pong_frame() -> PusherFrame:
    return PusherFrame(event=PONG, data={})


def ping_frame() -> PusherFrame:
    return PusherFrame(event=PING, data={})
