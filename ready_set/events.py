"""Readiness events and the listener registry that delivers them."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from .errors import ArgumentValidationError


@dataclass(frozen=True)
class ServiceEvent:
    """Base event carrying the published key and its value."""

    name: str
    value: Any = None


@dataclass(frozen=True)
class ServiceReady(ServiceEvent):
    """Emitted the first time a key is published."""


@dataclass(frozen=True)
class ServiceReplace(ServiceEvent):
    """Emitted when an already-published key is overwritten."""


@dataclass(frozen=True)
class ServiceRemove(ServiceEvent):
    """Reserved; the registry has no removal operation and never emits it."""


EventListener: TypeAlias = Callable[[ServiceEvent], None]
EventCallback: TypeAlias = Callable[[ServiceEvent], None]


class EventEmitter:
    """Listeners keyed by event name, called in registration order."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[EventListener, bool]]] = {}

    def on(self, event_name: str, listener: EventListener) -> None:
        self._add(event_name, listener, once=False)

    def once(self, event_name: str, listener: EventListener) -> None:
        """Register a listener that is removed after its first call."""
        self._add(event_name, listener, once=True)

    def off(self, event_name: str, listener: EventListener) -> bool:
        """Remove the first registration of ``listener``; return whether one was found."""
        entries = self._listeners.get(event_name)
        if not entries:
            return False
        for index, (registered, _) in enumerate(entries):
            if registered == listener:
                del entries[index]
                if not entries:
                    del self._listeners[event_name]
                return True
        return False

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))

    def emit(self, event_name: str, event: ServiceEvent) -> bool:
        """Call every listener for ``event_name``; return whether any existed."""
        entries = self._listeners.get(event_name)
        if not entries:
            return False
        snapshot = list(entries)
        remaining = [entry for entry in entries if not entry[1]]
        if remaining:
            self._listeners[event_name] = remaining
        else:
            del self._listeners[event_name]
        for listener, _ in snapshot:
            listener(event)
        return True

    def _add(self, event_name: str, listener: EventListener, *, once: bool) -> None:
        if not isinstance(event_name, str):
            raise ArgumentValidationError(f"event_name must be a string, got {type(event_name).__name__}")
        if not callable(listener):
            raise ArgumentValidationError("listener must be callable")
        self._listeners.setdefault(event_name, []).append((listener, once))
