"""Exception types raised by ready-set."""
from __future__ import annotations


class ReadySetError(Exception):
    """Base class for ready-set errors."""


class ArgumentValidationError(ReadySetError, TypeError):
    """An argument has the wrong type or shape."""


class SchedulerError(ReadySetError, RuntimeError):
    """A scheduler could not settle its pending turns."""


class ManifestError(ReadySetError, ValueError):
    """A manifest file could not be read or validated."""
