"""Schedulers that run deferred callbacks as later turns.

Waiter drainage and multi-key join targets never run inside the call that
triggered them. They are handed to a scheduler, which runs them as separate
turns once the current caller has unwound:

- ``TurnQueue`` keeps an explicit FIFO that the host drains between turns.
- ``AsyncioScheduler`` hands turns to the running asyncio loop, and keeps a
  ``TurnQueue`` backlog for work scheduled while no loop is running.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol

from .errors import SchedulerError

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Anything that can run a callback on a later turn."""

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None: ...


def _run_turn(callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
    try:
        callback(*args)
    except Exception:
        logger.exception("Scheduled callback %r failed", callback)


class TurnQueue:
    """Explicit FIFO of pending turns.

    Nothing runs until the owner calls ``run_once`` or ``drain``.
    """

    def __init__(self) -> None:
        self._turns: deque[tuple[Callable[..., Any], tuple[Any, ...]]] = deque()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        self._turns.append((callback, args))

    @property
    def pending(self) -> int:
        return len(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def take(self) -> list[tuple[Callable[..., Any], tuple[Any, ...]]]:
        """Remove and return every pending turn without running it."""
        turns = list(self._turns)
        self._turns.clear()
        return turns

    def run_once(self) -> int:
        """Run the turns queued so far; turns they schedule wait for the next call."""
        count = len(self._turns)
        for _ in range(count):
            callback, args = self._turns.popleft()
            _run_turn(callback, args)
        return count

    def drain(self, max_turns: int | None = None) -> int:
        """Run turns until the queue is empty.

        Args:
            max_turns: Upper bound on the number of turns to run. Exceeding it
                raises ``SchedulerError`` instead of looping forever.

        Returns:
            The number of callbacks that ran.
        """
        total = 0
        while self._turns:
            if max_turns is not None and total >= max_turns:
                raise SchedulerError(
                    f"Turn queue still has {len(self._turns)} pending turn(s) after {max_turns} turn(s)"
                )
            callback, args = self._turns.popleft()
            _run_turn(callback, args)
            total += 1
        return total


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    The loop is bound the first time the scheduler is used from inside a
    running loop (or at construction, if one is running then). Work scheduled
    from other threads while that loop runs is handed over with
    ``call_soon_threadsafe``; work scheduled when no loop is available waits
    in a backlog.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._backlog = TurnQueue()
        self._in_flight = 0
        self._loop: asyncio.AbstractEventLoop | None = None
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            pass

    @property
    def pending(self) -> int:
        """Callbacks scheduled but not yet run (loop and backlog)."""
        with self._lock:
            return self._in_flight + self._backlog.pending

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._loop = loop
            self._flush_backlog(loop, threadsafe=False)
            self._submit(loop, callback, args, threadsafe=False)
            return
        bound = self._loop
        if bound is not None and bound.is_running() and not bound.is_closed():
            logger.debug("Handing %r to the loop from another thread", callback)
            self._flush_backlog(bound, threadsafe=True)
            self._submit(bound, callback, args, threadsafe=True)
            return
        logger.debug("No running loop; queueing %r in backlog", callback)
        with self._lock:
            self._backlog.call_soon(callback, *args)

    def _submit(
        self,
        loop: asyncio.AbstractEventLoop,
        callback: Callable[..., Any],
        args: tuple[Any, ...],
        *,
        threadsafe: bool,
    ) -> None:
        with self._lock:
            self._in_flight += 1

        def turn() -> None:
            with self._lock:
                self._in_flight -= 1
            _run_turn(callback, args)

        if threadsafe:
            loop.call_soon_threadsafe(turn)
        else:
            loop.call_soon(turn)

    def _flush_backlog(self, loop: asyncio.AbstractEventLoop, *, threadsafe: bool) -> None:
        with self._lock:
            turns = self._backlog.take()
        for callback, args in turns:
            self._submit(loop, callback, args, threadsafe=threadsafe)

    def drain(self, max_turns: int | None = None) -> int:
        """Synchronously run work queued while no loop was running."""
        return self._backlog.drain(max_turns=max_turns)

    async def settle(self, max_turns: int = 10_000) -> None:
        """Yield to the loop until every scheduled callback has run."""
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._flush_backlog(loop, threadsafe=False)
        turns = 0
        while self.pending:
            if turns >= max_turns:
                raise SchedulerError(
                    f"Scheduler did not settle after {max_turns} turn(s); "
                    f"{self.pending} callback(s) still pending"
                )
            await asyncio.sleep(0)
            turns += 1
            self._flush_backlog(loop, threadsafe=False)
