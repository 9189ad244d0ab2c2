"""API middleware — CORS, metrics."""

from pixgg_listener.api.middleware.cors import setup_cors
from pixgg_listener.metrics.middleware import PrometheusMiddleware

__all__ = ["PrometheusMiddleware", "setup_cors"]
