"""Status endpoint response schemas.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PusherBlock(_CamelModel):
    """Subscription identity and connection flag."""

    connected: bool
    cluster: str
    channel: str
    event: str


class WebhooksBlock(_CamelModel):
    """Delivery counters."""

    sent: int
    failed: int
    target_url: str


class UptimeBlock(_CamelModel):
    start_time: str
    seconds: int
    formatted: str


class LastEventBlock(_CamelModel):
    """Summary of the most recently received donation."""

    timestamp: str
    donator_nickname: Any = None
    total_amount: Any = None
    transaction_id: Any = None


class StatusResponse(_CamelModel):
    """``GET /`` body."""

    service: str
    version: str
    status: str
    pusher: PusherBlock
    webhooks: WebhooksBlock
    uptime: UptimeBlock
    last_event: LastEventBlock | None
    timestamp: str


class ErrorResponse(BaseModel):
    """Body of every non-200 response."""

    error: str
    message: str
