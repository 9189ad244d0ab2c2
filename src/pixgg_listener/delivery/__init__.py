"""Delivery — donation event → webhook POST."""

from pixgg_listener.delivery.payload import OutboundPayload
from pixgg_listener.delivery.pipeline import DeliveryPipeline

__all__ = ["DeliveryPipeline", "OutboundPayload"]
