"""Configuration models and loader."""

from pixgg_listener.config.settings import (
    AppConfig,
    LogLevel,
    MetricsConfig,
    PusherConfig,
    ServerConfig,
    WebhookConfig,
    load_config,
)

__all__ = [
    "AppConfig",
    "LogLevel",
    "MetricsConfig",
    "PusherConfig",
    "ServerConfig",
    "WebhookConfig",
    "load_config",
]
