"""Minimal per-object event emitter."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

from coindaemon.logs import LogSink, default_log_sink

Listener = Callable[..., Any]


class EventEmitter:
    """Listener registry owned by a single object."""

    def __init__(self, log: LogSink | None = None):
        self.log = log or default_log_sink
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        """Register a listener and return it for a later ``off``."""
        self._listeners[event].append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register a listener that is removed after its first call."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        wrapper.listener = listener
        self._listeners[event].append(wrapper)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener, or a ``once`` wrapper around it, if registered."""
        listeners = self._listeners.get(event, [])
        for registered in listeners:
            if registered is listener or getattr(registered, "listener", None) is listener:
                listeners.remove(registered)
                return

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener for ``event`` in registration order.

        A failing listener is logged and does not prevent the others
        from being called.

        Returns:
            True if the event had listeners
        """
        listeners = list(self._listeners.get(event, []))
        for listener in listeners:
            try:
                listener(*args)
            except Exception as e:
                self.log("error", f"Listener for '{event}' failed: {e}")
        return bool(listeners)
