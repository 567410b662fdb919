"""Process-wide default injector.

``default_injector()`` builds one ``Injector`` on first use, with options read
from the environment, and returns that same instance for the rest of the
process. The module-level functions are shortcuts onto it.
"""
from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Any

from .config import InjectorOptions
from .injector import Injector
from .join import Capture, MissingHandler
from .store import Unfulfilled

_lock = threading.Lock()
_default: Injector | None = None


def default_injector() -> Injector:
    global _default
    if _default is None:
        with _lock:
            if _default is None:
                _default = Injector(InjectorOptions.from_env())
    return _default


def get(name: str) -> Any:
    return default_injector().get(name)


def set(name: str, value: Any) -> Any:
    return default_injector().set(name, value)


def has(name: str) -> bool:
    return default_injector().has(name)


def when(keys: str | Sequence[str], target: Callable[..., Any]) -> None:
    default_injector().when(keys, target)


def capture(keys: str | Sequence[str]) -> Capture:
    return default_injector().capture(keys)


def inject(
    keys: str | Sequence[str],
    target: Callable[..., Any],
    missing: MissingHandler | None = None,
) -> bool:
    return default_injector().inject(keys, target, missing)


def list_unfulfilled() -> list[Unfulfilled] | None:
    return default_injector().list_unfulfilled()
