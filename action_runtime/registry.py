"""
In-memory registry of action definitions.

Registration is all-or-nothing: a batch is fully validated before any
entry is inserted, and insertion happens under the same lock the
scheduler uses for its due-scan.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from action_runtime.models import (
    UNIT_MILLISECONDS,
    ActionDefinition,
    ActionInterval,
    RegistryEntry,
)

logger = logging.getLogger(__name__)

# Mapping keys accepted for each ActionDefinition field
_FIELD_ALIASES = {
    'name': ('name',),
    'description': ('description',),
    'execute': ('execute',),
    'on_run': ('on_run', 'onRun'),
    'on_complete': ('on_complete', 'onComplete'),
    'on_error': ('on_error', 'onError'),
    'interval': ('interval',),
}

_MISSING = object()


class ActionValidationError(ValueError):
    """Raised when a batch of action definitions is rejected."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(
            "Invalid action definition: " + "; ".join(self.errors)
        )


def _coerce_interval(interval: Any) -> Any:
    if isinstance(interval, Mapping):
        return ActionInterval(
            every=interval.get('every', _MISSING),
            unit=interval.get('unit'),
        )
    return interval


def coerce_definition(raw: Any) -> Any:
    """
    Turn a mapping into an ActionDefinition.

    Both snake_case and camelCase hook names are accepted, and an interval
    given as a mapping becomes an ActionInterval, also on an ActionDefinition.
    Anything else is returned unchanged so validation can report it.
    """
    if isinstance(raw, ActionDefinition):
        if isinstance(raw.interval, Mapping):
            return replace(raw, interval=_coerce_interval(raw.interval))
        return raw
    if not isinstance(raw, Mapping):
        return raw

    values: Dict[str, Any] = {}
    for field_name, aliases in _FIELD_ALIASES.items():
        for alias in aliases:
            if alias in raw:
                values[field_name] = raw[alias]
                break
        else:
            values[field_name] = _MISSING if field_name in ('name', 'description', 'execute') else None

    values['interval'] = _coerce_interval(values['interval'])
    return ActionDefinition(**values)


def validate_definition(definition: Any, position: int) -> List[str]:
    """
    Validate a single definition.

    Returns:
        List of validation errors (empty if valid)
    """
    if not isinstance(definition, ActionDefinition):
        return [f"Action #{position}: expected a mapping or ActionDefinition, "
                f"got {type(definition).__name__}"]

    errors = []
    name = definition.name
    label = f"Action '{name}'" if isinstance(name, str) and name else f"Action #{position}"

    if name is _MISSING:
        errors.append(f"{label}: 'name' is required")
    elif not isinstance(name, str):
        errors.append(f"{label}: 'name' must be a string")
    elif not name.strip():
        errors.append(f"{label}: 'name' cannot be empty")

    if definition.description is _MISSING:
        errors.append(f"{label}: 'description' is required")
    elif not isinstance(definition.description, str):
        errors.append(f"{label}: 'description' must be a string")

    if definition.execute is _MISSING:
        errors.append(f"{label}: 'execute' is required")
    elif not callable(definition.execute):
        errors.append(f"{label}: 'execute' must be callable")

    for hook in ('on_run', 'on_complete', 'on_error'):
        value = getattr(definition, hook)
        if value is not None and not callable(value):
            errors.append(f"{label}: '{hook}' must be callable")

    interval = definition.interval
    if interval is not None:
        if not isinstance(interval, ActionInterval):
            errors.append(f"{label}: 'interval' must be a mapping or ActionInterval")
        else:
            every = interval.every
            if every is _MISSING:
                errors.append(f"{label}: 'interval.every' is required")
            elif isinstance(every, bool) or not isinstance(every, int) or every <= 0:
                errors.append(f"{label}: 'interval.every' must be a positive integer")
            unit = interval.unit
            if unit is not None and (not isinstance(unit, str) or unit not in UNIT_MILLISECONDS):
                errors.append(
                    f"{label}: 'interval.unit' must be one of "
                    f"{', '.join(UNIT_MILLISECONDS)}"
                )

    return errors


class ActionRegistry:
    """
    Table of registered actions keyed by name.

    All reads and writes of the table go through `lock`.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._entries: Dict[str, RegistryEntry] = {}
        self.lock = threading.Lock()

    def register(self, definitions: Iterable[Any]) -> List[RegistryEntry]:
        """
        Validate and insert a batch of definitions.

        Args:
            definitions: ActionDefinition instances or mappings

        Returns:
            The newly created entries, in batch order

        Raises:
            ActionValidationError: If any definition is malformed or any name
                collides; nothing from the batch is registered.
        """
        batch = [coerce_definition(raw) for raw in definitions]

        errors = []
        for position, definition in enumerate(batch):
            errors.extend(validate_definition(definition, position))
        if errors:
            raise ActionValidationError(errors)

        with self.lock:
            seen = set()
            for definition in batch:
                if definition.name in self._entries or definition.name in seen:
                    errors.append(f"Duplicate action name: {definition.name}")
                seen.add(definition.name)
            if errors:
                raise ActionValidationError(errors)

            now = self._clock()
            created = []
            for definition in batch:
                entry = RegistryEntry(definition, next_due_at=now)
                entry.reschedule(now)
                self._entries[definition.name] = entry
                created.append(entry)

        logger.info(f"Registered {len(created)} action(s): "
                    f"{', '.join(e.name for e in created) or '-'}")
        return created

    def get(self, name: str) -> Optional[RegistryEntry]:
        with self.lock:
            return self._entries.get(name)

    def claim_due(self, now: datetime) -> List[RegistryEntry]:
        """
        Take the guard of every due entry.

        The caller owns the returned entries and must finish each one with
        `complete`.
        """
        with self.lock:
            return [
                entry for entry in self._entries.values()
                if entry.is_due(now) and entry.acquire()
            ]

    def complete(self, entry: RegistryEntry, now: datetime):
        """Reschedule a finished attempt and release its guard."""
        with self.lock:
            entry.reschedule(now)
            entry.release()

    def names(self) -> List[str]:
        with self.lock:
            return list(self._entries)

    def __contains__(self, name: str) -> bool:
        with self.lock:
            return name in self._entries

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def __repr__(self):
        return f"ActionRegistry(actions={len(self)})"
