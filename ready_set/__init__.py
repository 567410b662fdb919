"""ready-set: a registry of named values with "when all ready" joins.

Producers publish values under string keys; consumers ask to be called once
every key they need has been published.

    from ready_set import Injector, TurnQueue

    turns = TurnQueue()
    injector = Injector(scheduler=turns)
    injector.when(["db", "cache"], lambda db, cache: ...)
    injector.set("db", connect())
    injector.set("cache", cache)
    turns.drain()
"""
from .config import InjectorOptions, load_options
from .default import default_injector
from .errors import (
    ArgumentValidationError,
    ManifestError,
    ReadySetError,
    SchedulerError,
)
from .events import (
    EventCallback,
    EventEmitter,
    ServiceEvent,
    ServiceReady,
    ServiceRemove,
    ServiceReplace,
)
from .injector import Injector
from .join import Capture, JoinDescriptor, JoinState
from .scheduling import AsyncioScheduler, Scheduler, TurnQueue
from .store import ServiceStore, Unfulfilled

__all__ = [
    # Registry
    "Injector",
    "ServiceStore",
    "Unfulfilled",
    "default_injector",
    # Joins
    "Capture",
    "JoinDescriptor",
    "JoinState",
    # Scheduling
    "Scheduler",
    "TurnQueue",
    "AsyncioScheduler",
    # Events
    "EventCallback",
    "EventEmitter",
    "ServiceEvent",
    "ServiceReady",
    "ServiceReplace",
    "ServiceRemove",
    # Config
    "InjectorOptions",
    "load_options",
    # Errors
    "ReadySetError",
    "ArgumentValidationError",
    "SchedulerError",
    "ManifestError",
]
