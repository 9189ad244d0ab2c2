"""Listener — Pusher subscription lifecycle and event routing."""

from pixgg_listener.listener.controller import AUXILIARY_EVENTS, SubscriptionController

__all__ = ["AUXILIARY_EVENTS", "SubscriptionController"]
