"""
Execution guard and lifecycle hooks.

One attempt runs `execute`, then either `on_run` (first success only)
and `on_complete`, or `on_error`. Nothing raised by the action or its
hooks escapes an attempt; failures surface through the action logger
and `on_error`.
"""

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Any, Callable

from action_runtime.models import ActionContext, ActionLogger, RegistryEntry
from action_runtime.registry import ActionRegistry

logger = logging.getLogger(__name__)


async def _await(awaitable):
    return await awaitable


def call_action(func: Callable[..., Any], *args) -> Any:
    """Call a plain or async callable and wait for its result."""
    result = func(*args)
    if inspect.isawaitable(result):
        return asyncio.run(_await(result))
    return result


class ExecutionGuard:
    """
    Runs attempts for registry entries, one at a time per entry.

    Each entry's guard is held from before `execute` until the last
    applicable hook has returned or failed.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        shell: Any,
        clock: Callable[[], datetime] = datetime.now,
        action_logger: ActionLogger = None,
    ):
        self.registry = registry
        self.shell = shell
        self.clock = clock
        self.log = action_logger or ActionLogger()

    def attempt(self, entry: RegistryEntry):
        """Run one attempt unless one is already in flight for this entry."""
        if not entry.acquire():
            logger.debug(f"Action '{entry.name}' is already running, skipping")
            return
        self.run_acquired(entry)

    def run_acquired(self, entry: RegistryEntry):
        """
        Run one attempt for an entry whose guard the caller already holds.

        The guard is released, and the entry rescheduled from the time of
        completion, whatever the outcome.
        """
        definition = entry.definition
        try:
            context = self.build_context(entry)
            try:
                call_action(definition.execute, context)
            except Exception as error:
                self.log.error(f"action {entry.name} failed: {error}")
                if definition.on_error is not None:
                    self._call_hook(entry, 'on_error', definition.on_error, context, error)
            else:
                if not entry.has_fired:
                    if definition.on_run is not None:
                        self._call_hook(entry, 'on_run', definition.on_run, context)
                    entry.has_fired = True
                if definition.on_complete is not None:
                    self._call_hook(entry, 'on_complete', definition.on_complete, context)
        finally:
            self.registry.complete(entry, self.clock())

    def build_context(self, entry: RegistryEntry) -> ActionContext:
        return ActionContext(
            log=self.log,
            shell=self.shell,
            now=self.clock,
            action_name=entry.name,
        )

    def _call_hook(self, entry: RegistryEntry, hook_name: str, hook: Callable, *args):
        """Invoke a hook; a failing hook is logged and otherwise ignored."""
        try:
            call_action(hook, *args)
        except Exception as error:
            self.log.error(f"{hook_name} handler for action {entry.name} failed: {error}")
            logger.debug(f"{hook_name} handler traceback for '{entry.name}'", exc_info=True)
