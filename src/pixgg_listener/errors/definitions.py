"""Pre-defined error instances."""

from __future__ import annotations

from pixgg_listener.errors.listener_errors import ListenerError

# -- Status server ---------------------------------------------------------

ErrNotFound = ListenerError("endpoint not found", status_code=404, code="not-found")
