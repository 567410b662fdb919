"""Join and capture bookkeeping for multi-key waits.

A join tracks an ordered request of keys (duplicates allowed) and fills a
positional values buffer as each distinct key is published. It is satisfied
once every distinct key has arrived; a repeated key fills all of its
positions with a single arrival.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ArgumentValidationError

logger = logging.getLogger(__name__)

MissingHandler = Callable[[str], Any]


class JoinState(str, Enum):
    ACCUMULATING = "accumulating"
    SATISFIED = "satisfied"


@dataclass
class JoinDescriptor:
    """Progress of one multi-key request."""

    keys: tuple[str, ...]
    positions: dict[str, list[int]] = field(init=False)
    values: list[Any] = field(init=False)
    observed: set[str] = field(init=False, default_factory=set)
    state: JoinState = field(init=False, default=JoinState.ACCUMULATING)

    def __post_init__(self) -> None:
        self.keys = tuple(self.keys)
        self.positions = {}
        for index, name in enumerate(self.keys):
            self.positions.setdefault(name, []).append(index)
        self.values = [None] * len(self.keys)
        if not self.positions:
            self.state = JoinState.SATISFIED

    @property
    def distinct(self) -> list[str]:
        """Distinct keys in order of first appearance."""
        return list(self.positions)

    @property
    def required(self) -> int:
        return len(self.positions)

    @property
    def count(self) -> int:
        return len(self.observed)

    @property
    def satisfied(self) -> bool:
        return self.state is JoinState.SATISFIED

    def outstanding(self) -> list[str]:
        return [name for name in self.positions if name not in self.observed]

    def observe(self, name: str, value: Any) -> bool:
        """Record a key's value; return True on the transition to SATISFIED."""
        if name in self.observed:
            return False
        self.observed.add(name)
        for index in self.positions[name]:
            self.values[index] = value
        if self.state is JoinState.ACCUMULATING and self.count == self.required:
            self.state = JoinState.SATISFIED
            return True
        return False


class Capture:
    """Handle for a join whose consuming action is supplied later.

    ``when`` queues replay targets that fire once the join is satisfied (or
    immediately if it already is). ``apply`` fires an action now, either
    because the join is satisfied or because the caller's ``missing`` handler
    forgave every outstanding key.
    """

    def __init__(self, descriptor: JoinDescriptor) -> None:
        self._descriptor = descriptor
        self._replays: list[Callable[..., Any]] = []

    def __repr__(self) -> str:
        return f"Capture(keys={list(self._descriptor.keys)!r}, state={self._descriptor.state.value!r})"

    @property
    def keys(self) -> tuple[str, ...]:
        return self._descriptor.keys

    @property
    def satisfied(self) -> bool:
        return self._descriptor.satisfied

    def outstanding(self) -> list[str]:
        """Distinct keys that have not been published yet."""
        return self._descriptor.outstanding()

    def when(self, target: Callable[..., Any]) -> "Capture":
        if not callable(target):
            raise ArgumentValidationError("target must be callable")
        if self._descriptor.satisfied:
            target(*self._descriptor.values)
        else:
            self._replays.append(target)
        return self

    def apply(self, action: Callable[..., Any], missing: MissingHandler | None = None) -> bool:
        """Invoke ``action`` with the captured values if the join allows it now.

        While keys are outstanding, ``missing(key)`` is asked about each of
        them in request order. A missing handler that is absent or returns a
        falsy result makes this call a no-op; nothing is remembered, so the
        caller may try again later. Forgiven keys are passed as None.

        Returns:
            True if ``action`` was invoked.
        """
        if not callable(action):
            raise ArgumentValidationError("action must be callable")
        if missing is not None and not callable(missing):
            raise ArgumentValidationError("missing must be callable")
        if not self._descriptor.satisfied:
            for name in self._descriptor.outstanding():
                if missing is None or not missing(name):
                    return False
        action(*self._descriptor.values)
        return True

    def _observe(self, name: str, value: Any) -> None:
        if not self._descriptor.observe(name, value):
            return
        replays, self._replays = self._replays, []
        logger.debug("Capture of %r satisfied; replaying %d target(s)", list(self.keys), len(replays))
        for target in replays:
            try:
                target(*self._descriptor.values)
            except Exception:
                logger.exception("Capture replay target %r failed", target)


def normalize_keys(keys: str | Sequence[str], arg: str = "keys") -> list[str]:
    """Accept a single key or a list/tuple of keys; reject anything else."""
    if isinstance(keys, str):
        return [keys]
    if not isinstance(keys, (list, tuple)):
        raise ArgumentValidationError(
            f"{arg} must be either a string or a list of strings, got {type(keys).__name__}"
        )
    for index, name in enumerate(keys):
        if not isinstance(name, str):
            raise ArgumentValidationError(f"{arg}[{index}] must be a string, got {type(name).__name__}")
    return list(keys)
