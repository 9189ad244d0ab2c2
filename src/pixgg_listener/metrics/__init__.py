"""Metrics — Prometheus metrics collection and exposure."""

from __future__ import annotations

from pixgg_listener.metrics.collector import ListenerMetrics, MetricsCollector
from pixgg_listener.metrics.middleware import PrometheusMiddleware

__all__ = ["ListenerMetrics", "MetricsCollector", "PrometheusMiddleware"]
