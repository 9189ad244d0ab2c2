"""ListenerError — base exception class for all listener errors."""

from __future__ import annotations


class ListenerError(Exception):
    """Base error for all listener operations.

    Attributes:
        message: Human-readable error description.
        status_code: Suggested HTTP status code.
        code: Machine-readable error code string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "listener-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class ConfigurationError(ListenerError):
    """A required setting is missing or invalid.

    Attributes:
        problems: One entry per offending setting.
    """

    def __init__(self, message: str, *, problems: list[str] | None = None) -> None:
        super().__init__(message, code="configuration-error")
        self.problems = problems or []


class PusherConnectionError(ListenerError):
    """The Pusher transport reported a connection-level error."""

    def __init__(self, message: str, *, pusher_code: int | None = None) -> None:
        super().__init__(message, status_code=502, code="pusher-connection-error")
        self.pusher_code = pusher_code


class ListenBindError(ListenerError):
    """The status server could not bind its listen address."""

    def __init__(self, message: str, *, host: str = "", port: int = 0) -> None:
        super().__init__(message, code="listen-bind-error")
        self.host = host
        self.port = port
