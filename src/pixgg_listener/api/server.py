"""Embedded uvicorn server for the status app.

The socket is bound up front so a busy port surfaces as
:class:`ListenBindError` instead of uvicorn exiting the whole process;
the relay keeps listening to Pusher without a status server.
"""

from __future__ import annotations

import contextlib
import logging
import socket
from typing import TYPE_CHECKING

import uvicorn

from pixgg_listener.errors.listener_errors import ListenBindError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind a listening TCP socket.

    Raises:
        ListenBindError: The address is already in use or not bindable.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        msg = f"Cannot listen on {host}:{port}: {exc.strerror or exc}"
        raise ListenBindError(msg, host=host, port=port) from exc
    sock.set_inheritable(True)
    return sock


class StatusServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the caller."""

    def install_signal_handlers(self) -> None:
        """Signals are handled by the bootstrap, not uvicorn."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def request_exit(self) -> None:
        self.should_exit = True


def build_server(app: FastAPI, host: str, port: int) -> StatusServer:
    """Create the server; logging is already configured by the bootstrap."""
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        access_log=False,
        lifespan="off",
    )
    return StatusServer(config)
