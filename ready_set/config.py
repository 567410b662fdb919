"""Injector options.

Options can be passed directly, loaded from a JSON file, or read from the
environment (used by the process-wide default injector).
"""
from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ArgumentValidationError

ENV_READY_EVENT_VAR = "READY_SET_READY_EVENT"
ENV_REMOVE_EVENT_VAR = "READY_SET_REMOVE_EVENT"
ENV_REPLACE_EVENT_VAR = "READY_SET_REPLACE_EVENT"

DEFAULT_READY_EVENT = "service-ready"
DEFAULT_REMOVE_EVENT = "service-remove"
DEFAULT_REPLACE_EVENT = "service-replace"


class InjectorOptions(BaseModel):
    """Event names used by an injector's readiness notifications."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    ready_event_name: str = DEFAULT_READY_EVENT
    # Accepted for compatibility; nothing removes a published key.
    remove_event_name: str = DEFAULT_REMOVE_EVENT
    replace_event_name: str = Field(default=DEFAULT_REPLACE_EVENT, alias="evict_event_name")

    @field_validator("ready_event_name", "remove_event_name", "replace_event_name")
    @classmethod
    def validate_event_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("event name must be a non-empty string")
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "InjectorOptions":
        """Build options from ``READY_SET_*`` environment variables."""
        env = os.environ if environ is None else environ
        data: dict[str, str] = {}
        if env.get(ENV_READY_EVENT_VAR):
            data["ready_event_name"] = env[ENV_READY_EVENT_VAR]
        if env.get(ENV_REMOVE_EVENT_VAR):
            data["remove_event_name"] = env[ENV_REMOVE_EVENT_VAR]
        if env.get(ENV_REPLACE_EVENT_VAR):
            data["replace_event_name"] = env[ENV_REPLACE_EVENT_VAR]
        return coerce_options(data)


def coerce_options(
    options: InjectorOptions | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> InjectorOptions:
    """Validate options given as a model, a mapping, and/or keyword overrides."""
    if options is None:
        data: dict[str, Any] = {}
    elif isinstance(options, InjectorOptions):
        if not overrides:
            return options
        data = options.model_dump()
    elif isinstance(options, Mapping):
        data = dict(options)
    else:
        raise ArgumentValidationError(
            f"options must be InjectorOptions or a mapping, got {type(options).__name__}"
        )
    if "replace_event_name" in overrides or "evict_event_name" in overrides:
        data.pop("replace_event_name", None)
        data.pop("evict_event_name", None)
    data.update(overrides)
    try:
        return InjectorOptions.model_validate(data)
    except ValidationError as exc:
        raise ArgumentValidationError(f"Invalid injector options: {exc}") from exc


def load_options(path: str | Path) -> InjectorOptions:
    """Load options from a JSON file."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ArgumentValidationError(f"Could not read options from {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ArgumentValidationError(f"Options file {path} must contain a JSON object")
    return coerce_options(raw)
