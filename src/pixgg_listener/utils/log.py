"""Logging setup for the listener process.

Every line is rendered as::

    [2024-05-01T12:00:00.123Z] [INFO] message

The level names follow the configured ``LOG_LEVEL`` vocabulary, so
``WARNING`` records are printed as ``WARN``.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import UTC, datetime
from typing import Any

from pixgg_listener.config.settings import LogLevel
from pixgg_listener.status.model import isoformat

_LEVELS: dict[LogLevel, int] = {
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARN: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}

_LEVEL_NAMES: dict[int, str] = {
    logging.CRITICAL: "FATAL",
    logging.ERROR: "ERROR",
    logging.WARNING: "WARN",
    logging.INFO: "INFO",
    logging.DEBUG: "DEBUG",
}

# Third-party loggers that should share our handler and format.
_ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "websockets", "httpx")


def to_logging_level(level: LogLevel | str) -> int:
    """Map a configured level name to a :mod:`logging` level number."""
    try:
        return _LEVELS[LogLevel(str(level).strip().lower())]
    except ValueError:
        return logging.INFO


class ListenerFormatter(logging.Formatter):
    """``[<iso timestamp>] [<LEVEL>] <message>`` formatter."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = isoformat(datetime.fromtimestamp(record.created, tz=UTC))
        level = _LEVEL_NAMES.get(record.levelno, record.levelname)
        line = f"[{stamp}] [{level}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def build_logging_config(level: LogLevel | str) -> dict[str, Any]:
    """Return a :func:`logging.config.dictConfig` mapping for *level*."""
    numeric = to_logging_level(level)
    loggers: dict[str, dict[str, Any]] = {
        name: {"handlers": ["console"], "level": numeric, "propagate": False}
        for name in _ROUTED_LOGGERS
    }
    # httpx logs every request at INFO; only show it when debugging.
    if numeric > logging.DEBUG:
        loggers["httpx"]["level"] = max(numeric, logging.WARNING)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"listener": {"()": ListenerFormatter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "listener",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": loggers,
        "root": {"handlers": ["console"], "level": numeric},
    }


def configure_logging(level: LogLevel | str = LogLevel.INFO) -> dict[str, Any]:
    """Install the listener logging configuration and return it.

    The returned mapping is also handed to uvicorn so it does not install
    its own formatters.
    """
    config = build_logging_config(level)
    logging.config.dictConfig(config)
    return config


def pretty_json(data: Any) -> str:
    """Indented JSON for debug log lines; falls back to ``repr``."""
    try:
        return json.dumps(data, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(data)
