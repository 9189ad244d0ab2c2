"""Status model — connection health and delivery counters."""

from pixgg_listener.status.model import (
    ConnectionStatus,
    LastEvent,
    StatusModel,
    StatusSnapshot,
)

__all__ = ["ConnectionStatus", "LastEvent", "StatusModel", "StatusSnapshot"]
