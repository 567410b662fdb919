"""Manifest schema, loader and checker.

A manifest is a JSON file listing services to publish and consumers that wait
on them. Checking a manifest publishes every service into an injector,
registers every consumer as a join, runs the scheduler until it is idle and
reports which consumers were satisfied.
"""
from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import InjectorOptions
from .errors import ArgumentValidationError, ManifestError
from .events import ServiceEvent
from .injector import Injector
from .scheduling import AsyncioScheduler, TurnQueue
from .store import Unfulfilled


class ReadySetManifest(BaseModel):
    """Manifest schema (v1)."""

    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = 1
    options: InjectorOptions = Field(default_factory=InjectorOptions)
    services: dict[str, Any] = Field(default_factory=dict)
    consumers: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("services", "consumers")
    @classmethod
    def validate_names(cls, v: dict[str, Any]) -> dict[str, Any]:
        for name in v:
            if not name.strip():
                raise ValueError("names must be non-empty strings")
        return v


@dataclass
class ManifestReport:
    """Outcome of checking a manifest."""

    satisfied: list[str] = field(default_factory=list)
    waiting: list[str] = field(default_factory=list)
    events: list[str] = field(default_factory=list)
    unfulfilled: list[Unfulfilled] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.waiting

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "satisfied": list(self.satisfied),
            "waiting": list(self.waiting),
            "events": list(self.events),
            "unfulfilled": [asdict(item) for item in self.unfulfilled],
        }


def load_manifest(path: str | Path) -> ReadySetManifest:
    """Load and validate a manifest file."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"Could not read manifest {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Manifest {path} is not valid JSON: {exc}") from exc
    try:
        return ReadySetManifest.model_validate(raw)
    except ValidationError as exc:
        raise ManifestError(f"Invalid manifest {path}: {exc}") from exc

def _resolve_injector(manifest: ReadySetManifest, injector: Injector | None) -> Injector:
    if injector is None:
        return Injector(manifest.options, scheduler=TurnQueue())
    # A given injector keeps its own event names.
    if "options" in manifest.model_fields_set and manifest.options != injector.options:
        raise ManifestError(
            "Manifest options differ from the options of the given injector; "
            "omit 'options' from the manifest or check it without an injector"
        )
    return injector


@contextmanager
def _recording(injector: Injector, report: ManifestReport) -> Iterator[None]:
    def record(event: ServiceEvent) -> None:
        report.events.append(f"{type(event).__name__}:{event.name}")

    injector.on(injector.ready_event_name, record)
    injector.on(injector.replace_event_name, record)
    try:
        yield
    finally:
        injector.off(injector.ready_event_name, record)
        injector.off(injector.replace_event_name, record)


def _publish(manifest: ReadySetManifest, injector: Injector, report: ManifestReport) -> None:
    def make_target(consumer: str):
        def target(*_values: Any) -> None:
            report.satisfied.append(consumer)

        return target

    for consumer, keys in manifest.consumers.items():
        injector.when(keys, make_target(consumer))
    for name, value in manifest.services.items():
        injector.set(name, value)


def _finish(manifest: ReadySetManifest, injector: Injector, report: ManifestReport) -> ManifestReport:
    report.waiting = [name for name in manifest.consumers if name not in report.satisfied]
    report.unfulfilled = injector.list_unfulfilled() or []
    return report


def check_manifest(manifest: ReadySetManifest, injector: Injector | None = None) -> ManifestReport:
    """Publish a manifest's services and report which consumers became ready.

    Without an ``injector`` the check runs on a private injector built from
    ``manifest.options``. A given injector must use a ``TurnQueue`` so every
    deferred turn can be run before reporting; injectors on an event loop
    are checked with ``check_manifest_async``.
    """
    injector = _resolve_injector(manifest, injector)
    scheduler = injector.scheduler
    if not isinstance(scheduler, TurnQueue):
        raise ArgumentValidationError(
            f"check_manifest needs an injector on a TurnQueue, got {type(scheduler).__name__}; "
            "use check_manifest_async for event-loop schedulers"
        )
    report = ManifestReport()
    with _recording(injector, report):
        _publish(manifest, injector, report)
        scheduler.drain()
    return _finish(manifest, injector, report)


async def check_manifest_async(manifest: ReadySetManifest, injector: Injector | None = None) -> ManifestReport:
    """Like ``check_manifest``, but settles an ``AsyncioScheduler`` on the running loop."""
    injector = _resolve_injector(manifest, injector)
    scheduler = injector.scheduler
    if not isinstance(scheduler, (TurnQueue, AsyncioScheduler)):
        raise ArgumentValidationError(
            f"Cannot settle scheduler of type {type(scheduler).__name__}"
        )
    report = ManifestReport()
    with _recording(injector, report):
        _publish(manifest, injector, report)
        if isinstance(scheduler, TurnQueue):
            scheduler.drain()
        else:
            await scheduler.settle()
    return _finish(manifest, injector, report)
