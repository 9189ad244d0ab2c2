"""Error hierarchy for the listener."""

from pixgg_listener.errors.delivery_errors import (
    DeliveryError,
    DeliveryNoResponseError,
    DeliveryRejectedError,
    DeliveryRequestError,
)
from pixgg_listener.errors.listener_errors import (
    ConfigurationError,
    ListenBindError,
    ListenerError,
    PusherConnectionError,
)

__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "DeliveryNoResponseError",
    "DeliveryRejectedError",
    "DeliveryRequestError",
    "ListenBindError",
    "ListenerError",
    "PusherConnectionError",
]
