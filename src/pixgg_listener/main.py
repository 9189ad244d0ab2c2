"""Application entry point for the PIXGG webhook listener.

Validates configuration, wires the status model, delivery pipeline,
subscription controller and status server together, and runs until
SIGINT/SIGTERM. Exit status is 0 after a signal, 1 on invalid settings.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from typing import TYPE_CHECKING

from pixgg_listener import SERVICE_NAME
from pixgg_listener.api.app import create_app
from pixgg_listener.api.server import StatusServer, bind_socket, build_server
from pixgg_listener.config.settings import LogLevel, load_config
from pixgg_listener.delivery.pipeline import DeliveryPipeline
from pixgg_listener.errors.listener_errors import ConfigurationError, ListenBindError
from pixgg_listener.listener.controller import SubscriptionController
from pixgg_listener.metrics.collector import ListenerMetrics
from pixgg_listener.pusher.websocket import WebsocketTransport
from pixgg_listener.status.model import StatusModel
from pixgg_listener.utils.log import configure_logging

if TYPE_CHECKING:
    from pixgg_listener.config.settings import AppConfig
    from pixgg_listener.pusher.transport import PusherTransport

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1


def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals) -> None:
        logger.info("Received %s, disconnecting...", sig.name)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler.
            signal.signal(sig, lambda signum, _frame: loop.call_soon_threadsafe(_on_signal, signal.Signals(signum)))


def _start_status_server(
    config: AppConfig,
    status: StatusModel,
    metrics: ListenerMetrics,
) -> tuple[StatusServer, asyncio.Task[None]] | None:
    """Bind and start the status server; ``None`` if the port is unavailable."""
    host, port = config.server.host, config.server.port
    try:
        sock = bind_socket(host, port)
    except ListenBindError as exc:
        logger.critical("%s - status server disabled", exc.message)
        return None
    app = create_app(config=config, status=status, metrics=metrics)
    server = build_server(app, host, port)
    task = asyncio.create_task(server.serve(sockets=[sock]), name="status-server")
    logger.info("Status server listening on http://%s:%d", host, port)
    return server, task


async def _stop_status_server(server: StatusServer, task: asyncio.Task[None]) -> None:
    server.request_exit()
    try:
        await task
    except Exception:
        logger.exception("Status server stopped with an error")


async def run(
    config: AppConfig,
    *,
    transport: PusherTransport | None = None,
    stop: asyncio.Event | None = None,
) -> None:
    """Run the relay until *stop* is set (by default on SIGINT/SIGTERM)."""
    status = StatusModel()
    metrics = ListenerMetrics()
    if config.metrics.enabled:
        try:
            metrics.serve(config.metrics.port)
            logger.info("Metrics available on port %d", config.metrics.port)
        except OSError as exc:
            logger.error("Cannot expose metrics on port %d: %s", config.metrics.port, exc)

    pipeline = DeliveryPipeline(config.webhook, status, metrics=metrics)
    await pipeline.start()
    controller = SubscriptionController(
        transport or WebsocketTransport(config.pusher),
        pipeline,
        status,
        config.pusher,
        metrics=metrics,
    )

    if stop is None:
        stop = asyncio.Event()
        _install_signal_handlers(stop)

    server = _start_status_server(config, status, metrics)
    try:
        await controller.connect()
        await stop.wait()
    finally:
        await controller.shutdown()
        if server is not None:
            await _stop_status_server(*server)
        await pipeline.close()
    logger.info("%s stopped", SERVICE_NAME)


def main() -> None:
    """Start the listener."""
    configure_logging(os.getenv("LOG_LEVEL", LogLevel.INFO))
    logger.info("=== %s starting ===", SERVICE_NAME)
    try:
        config = load_config()
    except ConfigurationError as exc:
        logger.error(exc.message)
        logger.error("Copy env.example to .env and fill in the settings")
        sys.exit(EXIT_CONFIG)

    configure_logging(config.log_level)
    asyncio.run(run(config))
    sys.exit(EXIT_OK)


if __name__ == "__main__":
    main()
