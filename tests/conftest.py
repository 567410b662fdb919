"""Shared fixtures for the ready-set test suite.

Most tests drive the registry with an explicit ``TurnQueue`` so that every
deferred turn is run by the test itself. Tests marked ``anyio`` run on an
asyncio loop with the default ``AsyncioScheduler``.
"""
import pytest

from ready_set import Injector, TurnQueue


@pytest.fixture
def turns():
    """A turn queue that the test drains explicitly."""
    return TurnQueue()


@pytest.fixture
def injector(turns):
    """An injector whose deferred work goes to the ``turns`` fixture."""
    return Injector(scheduler=turns)


class Recorder:
    """Callable that records the arguments of every call."""

    def __init__(self, result=None):
        self.calls: list[tuple] = []
        self.result = result

    def __call__(self, *args):
        self.calls.append(args)
        return self.result

    @property
    def called(self) -> bool:
        return bool(self.calls)


@pytest.fixture
def recorder():
    """Factory for argument-recording callbacks."""
    return Recorder


@pytest.fixture
def anyio_backend():
    """Run ``anyio``-marked tests on asyncio, as the suite is written for."""
    return "asyncio"
