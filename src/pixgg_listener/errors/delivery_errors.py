"""Webhook delivery errors.

Each subclass names one failure shape of a single delivery attempt. They are
raised inside the pipeline and always handled there.
"""

from __future__ import annotations

from pixgg_listener.errors.listener_errors import ListenerError


class DeliveryError(ListenerError):
    """Base error for a failed webhook delivery attempt."""

    reason = "error"

    def __init__(self, message: str, *, status_code: int = 502, code: str = "delivery-error") -> None:
        super().__init__(message, status_code=status_code, code=code)


class DeliveryRejectedError(DeliveryError):
    """The webhook target responded with a non-success status."""

    reason = "rejected"

    def __init__(self, message: str, *, status_code: int, body: str = "") -> None:
        super().__init__(message, status_code=status_code, code="delivery-rejected")
        self.body = body


class DeliveryNoResponseError(DeliveryError):
    """The request went out but no response came back (network error, timeout)."""

    reason = "no_response"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=504, code="delivery-no-response")


class DeliveryRequestError(DeliveryError):
    """The request could not be built or sent at all."""

    reason = "request"

    def __init__(self, message: str) -> None:
        super().__init__(message, code="delivery-request-failed")
