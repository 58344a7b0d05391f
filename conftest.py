"""Shared fixtures for the action runtime tests."""

import threading
from datetime import datetime, timedelta

import pytest

from action_runtime import ActionRuntime, CommandRunner, RuntimeConfig


class FakeClock:
    """Settable clock; advance it explicitly in tests."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0)
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self.current

    def advance(self, **kwargs):
        with self._lock:
            self.current = self.current + timedelta(**kwargs)
        return self.current


class ConcurrencyProbe:
    """Counts attempts and records the peak number running at once."""

    def __init__(self):
        self.calls = 0
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def enter(self):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.peak = max(self.peak, self.active)

    def exit(self):
        with self._lock:
            self.active -= 1


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def probe():
    return ConcurrencyProbe()


@pytest.fixture
def fast_config():
    return RuntimeConfig(poll_interval_seconds=0.05, max_workers=5)


@pytest.fixture
def runtime(fast_config):
    """Runtime polling every 50ms on the real clock."""
    rt = ActionRuntime(config=fast_config, shell=CommandRunner())
    yield rt
    rt.shutdown(wait=True)


@pytest.fixture
def clocked_runtime(clock):
    """Runtime on a fake clock whose own poll job never fires during a test."""
    rt = ActionRuntime(
        config=RuntimeConfig(poll_interval_seconds=3600, max_workers=5),
        shell=CommandRunner(),
        clock=clock,
    )
    yield rt
    rt.shutdown(wait=True)
