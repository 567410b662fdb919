"""Join coordinator built on the service store.

``Injector`` adds multi-key joins, capture-and-replay, best-effort injection
and readiness notifications on top of ``ServiceStore``. It only calls store
operations; all mutable registry state lives in the store.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from functools import partial
from typing import Any

from .config import InjectorOptions, coerce_options
from .errors import ArgumentValidationError
from .events import (
    EventCallback,
    EventEmitter,
    EventListener,
    ServiceEvent,
    ServiceReady,
    ServiceReplace,
)
from .join import Capture, JoinDescriptor, MissingHandler, normalize_keys
from .scheduling import AsyncioScheduler, Scheduler
from .store import ServiceStore, Unfulfilled

logger = logging.getLogger(__name__)


def _require_name(name: Any) -> str:
    if not isinstance(name, str):
        raise ArgumentValidationError(f"name must be a string, got {type(name).__name__}")
    return name


def _require_callable(value: Any, arg: str) -> None:
    if not callable(value):
        raise ArgumentValidationError(f"{arg} must be callable")


class Injector:
    """Registry of named values with "when all ready" joins.

    Args:
        options: ``InjectorOptions`` or a mapping of option fields.
        scheduler: Runs deferred turns. Defaults to an ``AsyncioScheduler``.
        on_event: Optional callback receiving every emitted readiness event.
        **option_overrides: Individual option fields, e.g. ``ready_event_name``.
    """

    def __init__(
        self,
        options: InjectorOptions | Mapping[str, Any] | None = None,
        *,
        scheduler: Scheduler | None = None,
        on_event: EventCallback | None = None,
        **option_overrides: Any,
    ) -> None:
        if on_event is not None:
            _require_callable(on_event, "on_event")
        if scheduler is not None and not callable(getattr(scheduler, "call_soon", None)):
            raise ArgumentValidationError("scheduler must provide call_soon()")
        self._options = coerce_options(options, **option_overrides)
        self._scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._services = ServiceStore(self._scheduler)
        self._emitter = EventEmitter()
        self.on_event = on_event

    @property
    def options(self) -> InjectorOptions:
        return self._options

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def ready_event_name(self) -> str:
        return self._options.ready_event_name

    @property
    def remove_event_name(self) -> str:
        return self._options.remove_event_name

    @property
    def replace_event_name(self) -> str:
        return self._options.replace_event_name

    # Store pass-through

    def get(self, name: str) -> Any:
        return self._services.get(_require_name(name))

    def has(self, name: str) -> bool:
        return self._services.has(_require_name(name))

    def set(self, name: str, value: Any) -> Any:
        """Publish ``value`` under ``name`` and emit a ready or replace event.

        Returns:
            The value previously published under ``name``, or None.
        """
        existed, previous = self._services.put(_require_name(name), value)
        if existed:
            self._emit(self.replace_event_name, ServiceReplace(name=name, value=value))
        else:
            self._emit(self.ready_event_name, ServiceReady(name=name, value=value))
        return previous

    def list_unfulfilled(self) -> list[Unfulfilled] | None:
        return self._services.list_unfulfilled()

    # Joins

    def when(self, keys: str | Sequence[str], target: Callable[..., Any]) -> None:
        """Call ``target`` with the values of ``keys`` once all are published.

        A single key is delegated to the store, so ``target`` runs inline when
        the key is already present. Several keys always resolve on a later
        scheduler turn, even when every key is already present.
        """
        local = normalize_keys(keys, "keys")
        _require_callable(target, "target")
        if not local:
            target()
            return
        if len(local) == 1:
            self._services.register_waiter(local[0], target)
            return

        join = JoinDescriptor(tuple(local))

        def observe(name: str, value: Any) -> None:
            if join.observe(name, value):
                logger.debug("Join on %r satisfied", list(join.keys))
                self._scheduler.call_soon(target, *join.values)

        for name in join.distinct:
            self._services.register_waiter(name, partial(observe, name))

    def capture(self, keys: str | Sequence[str]) -> Capture:
        """Start a join whose action is supplied later through the returned handle."""
        local = normalize_keys(keys, "keys")
        handle = Capture(JoinDescriptor(tuple(local)))
        for name in handle.outstanding():
            self._services.register_waiter(name, partial(handle._observe, name))
        return handle

    def inject(
        self,
        keys: str | Sequence[str],
        target: Callable[..., Any],
        missing: MissingHandler | None = None,
    ) -> bool:
        """Call ``target`` now with whatever ``keys`` are published.

        Each absent key is offered to ``missing``; if there is no handler or
        it returns a falsy result the call stops there and ``target`` is not
        invoked. Forgiven keys are passed as None.

        Returns:
            True if ``target`` was invoked.
        """
        local = normalize_keys(keys, "keys")
        _require_callable(target, "target")
        if missing is not None:
            _require_callable(missing, "missing")
        values: list[Any] = []
        for name in local:
            if self._services.has(name):
                values.append(self._services.get(name))
                continue
            if missing is None or not missing(name):
                logger.debug("Inject of %r abandoned at missing key %r", local, name)
                return False
            values.append(None)
        target(*values)
        return True

    # Readiness notifications

    def on(self, event_name: str, listener: EventListener) -> None:
        self._emitter.on(event_name, listener)

    def once(self, event_name: str, listener: EventListener) -> None:
        self._emitter.once(event_name, listener)

    def off(self, event_name: str, listener: EventListener) -> bool:
        return self._emitter.off(event_name, listener)

    def listener_count(self, event_name: str) -> int:
        return self._emitter.listener_count(event_name)

    def _emit(self, event_name: str, event: ServiceEvent) -> None:
        self._emitter.emit(event_name, event)
        if self.on_event is not None:
            self.on_event(event)
