"""In-process publish/subscribe."""

from __future__ import annotations

import logging
from typing import Any, Callable

_LOGGER = logging.getLogger(__name__)

ROUTE_CHANGE = "route:change"
APP_READY = "app:ready"
CHAT_REPLY = "chat:reply"

Handler = Callable[[Any], None]


class EventBus:
    """
    Handlers for one event name are kept in a set, so invocation order is
    unspecified. emit() is synchronous and may be re-entered from a handler.
    A failing handler is logged and never affects the emitter or its siblings.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, set[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        self._listeners.setdefault(event, set()).add(handler)
        return lambda: self.off(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        handlers = self._listeners.get(event)
        if handlers is None:
            return
        handlers.discard(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        handlers = self._listeners.get(event)
        if not handlers:
            return
        # snapshot: handlers may subscribe/unsubscribe while we iterate
        for handler in list(handlers):
            try:
                handler(payload)
            except Exception:
                _LOGGER.exception("Event handler for %r failed", event)

    def handler_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))
