"""Core components for the Stream Feed SDK.

Request machinery shared by every resource wrapper:
enrichment, dispatch, error classification, hooks and validation.
"""

from __future__ import annotations

from .dispatcher import Dispatcher
from .enricher import RequestEnricher, base_url_for
from .errors import ErrorFactory
from .events import ClientEvent, EventBus, HandlerRegistration
from .validation import BatchChangeValidator

__all__ = [
    "Dispatcher",
    "RequestEnricher",
    "base_url_for",
    "ErrorFactory",
    "ClientEvent",
    "EventBus",
    "HandlerRegistration",
    "BatchChangeValidator",
]
