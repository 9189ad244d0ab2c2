"""In-memory status model shared by the listener and the status server.

The model is created once per process and injected into every component
that reads or writes it. All access goes through a lock so the status
server can take a consistent snapshot while events are being routed.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


class ConnectionStatus(enum.StrEnum):
    """Lifecycle of the Pusher subscription.

    Lifecycle: STARTING → RUNNING ⇄ DISCONNECTED, RUNNING | DISCONNECTED → ERROR
    """

    STARTING = "starting"
    RUNNING = "running"
    DISCONNECTED = "disconnected"
    ERROR = "error"


# Allowed (from, to) edges. ERROR has no way out.
TRANSITIONS: frozenset[tuple[ConnectionStatus, ConnectionStatus]] = frozenset(
    {
        (ConnectionStatus.STARTING, ConnectionStatus.RUNNING),
        (ConnectionStatus.RUNNING, ConnectionStatus.DISCONNECTED),
        (ConnectionStatus.DISCONNECTED, ConnectionStatus.RUNNING),
        (ConnectionStatus.RUNNING, ConnectionStatus.ERROR),
        (ConnectionStatus.DISCONNECTED, ConnectionStatus.ERROR),
    }
)


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(tz=UTC)


def isoformat(moment: datetime) -> str:
    """ISO-8601 with milliseconds and a ``Z`` suffix."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LastEvent:
    """Summary of the most recently received donation."""

    timestamp: datetime
    donator_nickname: Any = None
    total_amount: Any = None
    transaction_id: Any = None

    @classmethod
    def from_event(cls, event: Any, *, received_at: datetime | None = None) -> LastEvent:
        """Build from a raw donation event; missing fields become ``None``."""
        data = event if isinstance(event, dict) else {}
        return cls(
            timestamp=received_at or utc_now(),
            donator_nickname=data.get("DonatorNickname"),
            total_amount=data.get("TotalAmount"),
            transaction_id=data.get("TransactionId"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the status endpoint's camelCase keys."""
        return {
            "timestamp": isoformat(self.timestamp),
            "donatorNickname": self.donator_nickname,
            "totalAmount": self.total_amount,
            "transactionId": self.transaction_id,
        }


@dataclass(frozen=True)
class StatusSnapshot:
    """Immutable copy of the status model at one instant."""

    status: ConnectionStatus
    pusher_connected: bool
    start_time: datetime
    uptime_seconds: int
    webhooks_sent: int
    webhooks_failed: int
    last_event: LastEvent | None = None

    @property
    def uptime_formatted(self) -> str:
        """``<minutes>m <seconds>s``."""
        return f"{self.uptime_seconds // 60}m {self.uptime_seconds % 60}s"


@dataclass
class StatusModel:
    """Mutable health record and delivery counters for one process.

    Writers: the subscription controller (status, connection flag, last
    event) and the delivery pipeline (counters). Reader: the status server,
    via :meth:`snapshot`.
    """

    start_time: datetime = field(default_factory=utc_now)
    _status: ConnectionStatus = ConnectionStatus.STARTING
    _pusher_connected: bool = False
    _webhooks_sent: int = 0
    _webhooks_failed: int = 0
    _last_event: LastEvent | None = None
    _started: float = field(default_factory=lambda: time.monotonic())
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    # -- Readers --

    @property
    def status(self) -> ConnectionStatus:
        with self._lock:
            return self._status

    @property
    def pusher_connected(self) -> bool:
        with self._lock:
            return self._pusher_connected

    @property
    def webhooks_sent(self) -> int:
        with self._lock:
            return self._webhooks_sent

    @property
    def webhooks_failed(self) -> int:
        with self._lock:
            return self._webhooks_failed

    @property
    def last_event(self) -> LastEvent | None:
        with self._lock:
            return self._last_event

    def uptime_seconds(self) -> int:
        """Whole seconds since the model was created (monotonic clock)."""
        return int(time.monotonic() - self._started)

    def snapshot(self) -> StatusSnapshot:
        """Return a consistent, immutable view of every field."""
        with self._lock:
            return StatusSnapshot(
                status=self._status,
                pusher_connected=self._pusher_connected,
                start_time=self.start_time,
                uptime_seconds=self.uptime_seconds(),
                webhooks_sent=self._webhooks_sent,
                webhooks_failed=self._webhooks_failed,
                last_event=self._last_event,
            )

    # -- Connection transitions --

    def transition(self, target: ConnectionStatus, *, connected: bool | None = None) -> bool:
        """Move to *target* if the edge is allowed.

        The connection flag, when given, is always recorded: it mirrors the
        transport even when the status edge is refused.

        Returns:
            True if the status now equals *target*.
        """
        with self._lock:
            if connected is not None:
                self._pusher_connected = connected
            current = self._status
            if current == target:
                return True
            if (current, target) not in TRANSITIONS:
                logger.debug("Ignoring status transition %s -> %s", current, target)
                return False
            self._status = target
        logger.debug("Status transition %s -> %s", current, target)
        return True

    def mark_running(self) -> bool:
        return self.transition(ConnectionStatus.RUNNING, connected=True)

    def mark_disconnected(self) -> bool:
        return self.transition(ConnectionStatus.DISCONNECTED, connected=False)

    def mark_error(self) -> bool:
        return self.transition(ConnectionStatus.ERROR)

    # -- Event and delivery bookkeeping --

    def record_event(self, event: Any, *, received_at: datetime | None = None) -> LastEvent:
        """Overwrite the last-event summary with *event*."""
        last = LastEvent.from_event(event, received_at=received_at)
        with self._lock:
            self._last_event = last
        return last

    def record_sent(self) -> int:
        """Count one delivery attempt that got a response."""
        with self._lock:
            self._webhooks_sent += 1
            return self._webhooks_sent

    def record_failed(self) -> int:
        """Count one delivery attempt that failed."""
        with self._lock:
            self._webhooks_failed += 1
            return self._webhooks_failed
