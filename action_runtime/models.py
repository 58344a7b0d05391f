"""
Data model for the action runtime.

Definitions are supplied by the host program and never change once
registered. Registry entries hold the runtime-owned scheduling state
for one definition.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

UNIT_MILLISECONDS = {
    'seconds': 1000,
    'minutes': 60 * 1000,
    'hours': 60 * 60 * 1000,
    'days': 24 * 60 * 60 * 1000,
}

DEFAULT_UNIT = 'minutes'

ACTION_LOGGER_NAME = 'action_runtime.actions'


@dataclass(frozen=True)
class ActionInterval:
    """Recurrence of an action: run every `every` `unit`s."""
    every: int
    unit: str = DEFAULT_UNIT


@dataclass(frozen=True)
class ActionDefinition:
    """
    A named unit of work supplied by the host program.

    `execute` and the hooks may be plain callables or coroutine functions.
    Without an `interval` the action only runs when triggered manually.
    """
    name: str
    description: str
    execute: Callable[..., Any]
    on_run: Optional[Callable[..., Any]] = None
    on_complete: Optional[Callable[..., Any]] = None
    on_error: Optional[Callable[..., Any]] = None
    interval: Optional[ActionInterval] = None


def unit_milliseconds(unit: Optional[str]) -> int:
    """Length of one interval unit in milliseconds (minutes when unset)."""
    return UNIT_MILLISECONDS[unit or DEFAULT_UNIT]


def interval_milliseconds(definition: ActionDefinition) -> int:
    """
    Interval of a definition in milliseconds.

    Definitions without an interval count as one minute; the value is
    stored but never consulted by the scheduler for them.
    """
    interval = definition.interval
    if interval is None:
        return unit_milliseconds(DEFAULT_UNIT)
    return interval.every * unit_milliseconds(interval.unit)


class RegistryEntry:
    """
    Scheduling state for one registered action.

    The per-entry lock is the guard: an attempt holds it from before
    `execute` starts until its hooks have finished.
    """

    def __init__(self, definition: ActionDefinition, next_due_at: datetime):
        self.definition = definition
        self.next_due_at = next_due_at
        self.has_fired = False
        self._guard = threading.Lock()

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def running(self) -> bool:
        return self._guard.locked()

    @property
    def scheduled(self) -> bool:
        """True when the action runs automatically."""
        return self.definition.interval is not None

    def acquire(self) -> bool:
        """Take the guard without waiting; False if an attempt is in flight."""
        return self._guard.acquire(blocking=False)

    def release(self):
        self._guard.release()

    def reschedule(self, now: datetime):
        self.next_due_at = now + timedelta(
            milliseconds=interval_milliseconds(self.definition)
        )

    def is_due(self, now: datetime) -> bool:
        return self.scheduled and not self.running and now >= self.next_due_at

    def __repr__(self):
        return (
            f"RegistryEntry(name={self.name!r}, next_due_at={self.next_due_at}, "
            f"running={self.running}, has_fired={self.has_fired})"
        )


class ActionLogger:
    """Info/error lines tagged as coming from the action subsystem."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(ACTION_LOGGER_NAME)

    def info(self, message: str):
        self._logger.info(f"[action] {message}")

    def error(self, message: str):
        self._logger.error(f"[action] {message}")


@dataclass
class ActionContext:
    """
    Per-attempt view handed to `execute` and the hooks.

    `state` is a new, empty dict for every attempt; nothing written to it
    survives into the next attempt.
    """
    log: ActionLogger
    shell: Any
    now: Callable[[], datetime]
    action_name: str = ''
    state: Dict[str, Any] = field(default_factory=dict)
