"""Key/value store with deferred waiters.

The store owns every piece of mutable registry state: the published entries
and, for keys that have no value yet, the ordered callbacks waiting for one.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .scheduling import Scheduler

logger = logging.getLogger(__name__)

Waiter = Callable[[Any], None]


@dataclass(frozen=True, slots=True)
class Unfulfilled:
    """A key that still has callbacks waiting for its first value."""

    name: str
    waiters: int


class ServiceStore:
    """Published entries plus pending waiters, keyed by name.

    Publishing a key detaches its waiter list in the same step that stores the
    value, then hands the detached list to the scheduler. ``set`` never calls
    waiter code itself.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._lock = threading.RLock()
        self._items: dict[str, Any] = {}
        self._waiters: dict[str, list[Waiter]] = {}

    def get(self, name: str) -> Any:
        with self._lock:
            return self._items.get(name)

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._items

    def put(self, name: str, value: Any) -> tuple[bool, Any]:
        """Publish a value and report whether the key already existed.

        Returns:
            ``(existed, previous)``; ``previous`` is None for a new key.
        """
        with self._lock:
            existed = name in self._items
            previous = self._items.get(name)
            self._items[name] = value
            waiting = self._waiters.pop(name, None)
        logger.debug("Published %r (%s)", name, "replace" if existed else "new")
        if waiting:
            logger.debug("Scheduling %d waiter(s) for %r", len(waiting), name)
            self._scheduler.call_soon(self._drain, name, waiting, value)
        return existed, previous

    def set(self, name: str, value: Any) -> Any:
        """Publish a value; return the previous one (None for a new key)."""
        _, previous = self.put(name, value)
        return previous

    def register_waiter(self, name: str, waiter: Waiter) -> None:
        """Call ``waiter`` with the key's value, now if present, else once published."""
        with self._lock:
            present = name in self._items
            if present:
                value = self._items[name]
            else:
                self._waiters.setdefault(name, []).append(waiter)
        if present:
            waiter(value)
        else:
            logger.debug("Waiting on %r", name)

    def list_unfulfilled(self) -> list[Unfulfilled] | None:
        """Snapshot of keys with pending waiters, or None when nothing is pending."""
        with self._lock:
            pending = [Unfulfilled(name=name, waiters=len(waiters)) for name, waiters in self._waiters.items()]
        return pending or None

    @staticmethod
    def _drain(name: str, waiting: list[Waiter], value: Any) -> None:
        logger.debug("Draining %d waiter(s) for %r", len(waiting), name)
        for waiter in waiting:
            try:
                waiter(value)
            except Exception:
                logger.exception("Waiter %r for %r failed", waiter, name)
