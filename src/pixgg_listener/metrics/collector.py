"""Metrics collector — Prometheus counters, gauges, histograms.

Relay metrics:
- ``pixgg_webhooks_sent_total`` counter
- ``pixgg_webhooks_failed_total`` counter-vec (reason)
- ``pixgg_events_received_total`` counter-vec (event)
- ``pixgg_pusher_connected`` gauge
- ``pixgg_webhook_delivery_duration_seconds`` histogram
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

if TYPE_CHECKING:
    from collections.abc import Iterator


# Metric name prefix
_PREFIX = "pixgg"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`ListenerMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def gauge(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Gauge:
        """Register and return a Gauge."""
        return Gauge(name, doc, labels, registry=self._registry)

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class ListenerMetrics:
    """High-level relay metrics.

    These mirror the status model counters for scraping; the status model
    remains the source of truth for the status endpoint.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._sent = self._collector.counter(
            f"{_PREFIX}_webhooks_sent",
            "Webhook delivery attempts that received a response",
        )
        self._failed = self._collector.counter(
            f"{_PREFIX}_webhooks_failed",
            "Webhook delivery attempts that failed",
            ("reason",),
        )
        self._received = self._collector.counter(
            f"{_PREFIX}_events_received",
            "Channel events received from Pusher",
            ("event",),
        )
        self._connected = self._collector.gauge(
            f"{_PREFIX}_pusher_connected",
            "1 while the Pusher connection is up",
        )
        self._delivery = self._collector.histogram(
            f"{_PREFIX}_webhook_delivery_duration_seconds",
            "Duration of webhook delivery attempts",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:  # noqa: S104
        """Expose the registry on its own HTTP port."""
        start_http_server(port, addr=addr, registry=self.registry)

    # -- Counters --

    def webhook_sent(self) -> None:
        self._sent.inc()

    def webhook_failed(self, reason: str) -> None:
        self._failed.labels(reason=reason).inc()

    def event_received(self, event: str) -> None:
        self._received.labels(event=event).inc()

    def set_connected(self, connected: bool) -> None:
        """Record the current Pusher connection state."""
        self._connected.set(1 if connected else 0)

    # -- Operation trackers (context managers) --

    @contextmanager
    def track_delivery(self) -> Iterator[None]:
        """Track the duration of one webhook delivery attempt."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._delivery.observe(time.monotonic() - start)
