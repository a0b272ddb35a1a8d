"""Event registry for hub events."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .constants import PROTOCOL_EVENTS

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventRegistry:
    """Ordered multi-subscriber registry keyed by event name.

    Handlers for an event run in registration order. A handler that raises is
    logged and reported through ``on_handler_error``; the remaining handlers
    still run and the exception never reaches the dispatcher.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._handlers: dict[str, list[Handler]] = {}
        self.on_handler_error: Callable[[str, Handler, Exception], None] | None = (
            None
        )

    def on(self, event_name: str, handler: Handler) -> None:
        """Register a handler for an event.

        Args:
            event_name: Event name, e.g. "ReceiveMessage"
            handler: Callable invoked with the event payload
        """
        if not callable(handler):
            raise TypeError(f"handler for {event_name!r} must be callable")

        if event_name not in PROTOCOL_EVENTS:
            logger.debug("Registering handler for non-protocol event %s", event_name)

        with self._lock:
            handlers = self._handlers.setdefault(event_name, [])
            if handler in handlers:
                logger.debug("Handler already registered for %s", event_name)
                return
            handlers.append(handler)

    def off(self, event_name: str, handler: Handler) -> None:
        """Remove a previously registered handler.

        Unknown events and handlers are ignored.
        """
        with self._lock:
            handlers = self._handlers.get(event_name)
            if not handlers:
                return
            try:
                handlers.remove(handler)
            except ValueError:
                return
            if not handlers:
                del self._handlers[event_name]

    def dispatch(self, event_name: str, *payload: Any) -> int:
        """Invoke every handler registered for an event.

        Args:
            event_name: Event to fan out
            *payload: Positional arguments passed to each handler

        Returns:
            Number of handlers invoked
        """
        with self._lock:
            handlers = list(self._handlers.get(event_name, ()))

        if not handlers:
            return 0

        logger.debug("Dispatching %s to %d handler(s)", event_name, len(handlers))

        for handler in handlers:
            try:
                handler(*payload)
            except Exception as e:
                logger.exception("Error in %s handler %r: %s", event_name, handler, e)
                if self.on_handler_error:
                    try:
                        self.on_handler_error(event_name, handler, e)
                    except Exception as report_error:
                        logger.exception(
                            "Error in on_handler_error callback: %s", report_error
                        )

        return len(handlers)

    def handlers(self, event_name: str) -> tuple[Handler, ...]:
        """Get the handlers currently registered for an event, in order."""
        with self._lock:
            return tuple(self._handlers.get(event_name, ()))

    def event_names(self) -> list[str]:
        """Get names of events with at least one handler."""
        with self._lock:
            return list(self._handlers)

    def clear(self, event_name: str | None = None) -> None:
        """Remove all handlers, or only those of one event."""
        with self._lock:
            if event_name is None:
                self._handlers.clear()
            else:
                self._handlers.pop(event_name, None)
