"""PIXGG webhook listener — relay Pusher donation alerts to an HTTP webhook."""

from __future__ import annotations

__version__ = "1.0.0"

SERVICE_NAME = "PIXGG Webhook Listener"
USER_AGENT = f"PIXGG-Webhook-Listener/{__version__}"

__all__ = ["SERVICE_NAME", "USER_AGENT", "__version__"]
