from __future__ import annotations

import inspect
from enum import Enum
from typing import Any
from typing import Callable
from typing import Optional
from typing import Union

from .._logging import get_logger
from ._models import ServerMessageType
from ._models import SessionEvent

EventType = Union[ServerMessageType, SessionEvent, str]


def _event_key(event: EventType) -> str:
    # Enum members and their raw string values address the same listeners.
    return event.value if isinstance(event, Enum) else str(event)


class EventEmitter:
    """
    Event emitter for server messages and client session events.

    Supports both decorator and direct registration patterns.
    Only synchronous callbacks are supported.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callable]] = {}
        self._once_handlers: dict[str, list[Callable]] = {}
        self._logger = get_logger(__name__)

    def on(self, event: EventType, callback: Optional[Callable] = None) -> Callable:
        """
        Register persistent event handler.

        Args:
            event: The event type to listen for
            callback: The callback function (optional for decorator usage)

        Returns:
            The callback function or decorator

        Example:
            @client.on(ServerMessageType.ADD_TRANSCRIPT)
            def handle_transcript(message):
                print(message["metadata"]["transcript"])
        """
        if callback is not None:
            self._add_handler(event, callback, persistent=True)
            return callback

        def decorator(func: Callable) -> Callable:
            self._add_handler(event, func, persistent=True)
            return func

        return decorator

    def once(self, event: EventType, callback: Optional[Callable] = None) -> Callable:
        """Register a handler that is removed after its first call."""
        if callback is not None:
            self._add_handler(event, callback, persistent=False)
            return callback

        def decorator(func: Callable) -> Callable:
            self._add_handler(event, func, persistent=False)
            return func

        return decorator

    def off(self, event: EventType, callback: Callable) -> None:
        """Remove an event handler registered with on() or once()."""
        key = _event_key(event)
        for target in (self._handlers, self._once_handlers):
            if callback in target.get(key, []):
                target[key].remove(callback)

    def emit(self, event: EventType, message: Any) -> None:
        """
        Call every handler registered for the event, in registration order.

        A failing handler is logged and does not stop the others.
        """
        key = _event_key(event)

        for callback in list(self._handlers.get(key, [])):
            try:
                callback(message)
            except Exception as e:
                self._logger.warning("Event handler error (%s): %s", key, e, exc_info=True)

        once_handlers = self._once_handlers.pop(key, [])
        for callback in once_handlers:
            try:
                callback(message)
            except Exception as e:
                self._logger.warning("One-time event handler error (%s): %s", key, e, exc_info=True)

    def remove_all_listeners(self, event: Optional[EventType] = None) -> None:
        """
        Remove all listeners for an event, or all events if none specified.
        """
        if event is not None:
            key = _event_key(event)
            self._handlers.pop(key, None)
            self._once_handlers.pop(key, None)
        else:
            self._handlers.clear()
            self._once_handlers.clear()

    def listeners(self, event: EventType) -> list[Callable]:
        """Get all listeners for an event, persistent ones first."""
        key = _event_key(event)
        return list(self._handlers.get(key, [])) + list(self._once_handlers.get(key, []))

    def _add_handler(self, event: EventType, callback: Callable, persistent: bool) -> None:
        if not callable(callback):
            raise TypeError("Callback must be callable")

        if inspect.iscoroutinefunction(callback):
            raise ValueError("Only synchronous callbacks are supported")

        target = self._handlers if persistent else self._once_handlers
        handlers = target.setdefault(_event_key(event), [])
        if callback not in handlers:
            handlers.append(callback)
