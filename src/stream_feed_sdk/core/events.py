"""Per-client observation hooks.

One handler per event: registering again replaces the previous handler,
``off()`` with no argument clears every handler. Handler failures are logged
and never reach the request that triggered them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Callable

from ..telemetry import get_logger

Handler = Callable[..., Any]


class ClientEvent(StrEnum):
    """Events fired by the dispatcher."""

    REQUEST = "request"
    RESPONSE = "response"


class HandlerRegistration:
    """Handle returned by ``EventBus.on``."""

    def __init__(self, bus: EventBus, event: ClientEvent, handler: Handler) -> None:
        self._bus = bus
        self.event = event
        self.handler = handler

    def remove(self) -> bool:
        """Deregister, unless the handler has since been replaced."""
        return self._bus.remove(self.event, self.handler)


class EventBus:
    """Replaceable request/response hooks owned by a client instance."""

    def __init__(self) -> None:
        self._handlers: dict[ClientEvent, Handler] = {}
        self._logger = get_logger(component="events")

    def on(self, event: ClientEvent | str, handler: Handler) -> HandlerRegistration:
        key = ClientEvent(event)
        self._handlers[key] = handler
        return HandlerRegistration(self, key, handler)

    def off(self, event: ClientEvent | str | None = None) -> None:
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(ClientEvent(event), None)

    def remove(self, event: ClientEvent, handler: Handler) -> bool:
        if self._handlers.get(event) is handler:
            del self._handlers[event]
            return True
        return False

    def handler_for(self, event: ClientEvent | str) -> Handler | None:
        return self._handlers.get(ClientEvent(event))

    def emit(self, event: ClientEvent, *args: Any) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            return
        try:
            handler(*args)
        except Exception:
            self._logger.warning("Observation hook failed", event=event.value, exc_info=True)
