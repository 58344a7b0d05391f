"""
Runtime facade handed to the host program.

`define` registers actions and starts the scheduler loop; `run`
triggers one action by name, bypassing its due time but not its guard.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from action_runtime.commands import CommandRunner
from action_runtime.config import RuntimeConfig
from action_runtime.execution import ExecutionGuard
from action_runtime.loop import SchedulerLoop
from action_runtime.models import ActionLogger
from action_runtime.registry import ActionRegistry

logger = logging.getLogger(__name__)


class UnknownActionError(KeyError):
    """Raised by `run` for a name that was never registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(name)

    def __str__(self):
        return f"Unknown action: {self.name}"


class ActionRuntime:
    """
    Registry, execution guard and scheduler loop for one host program.

    Failures inside actions and hooks never reach callers of `define`
    or `run`; only invalid definitions and unknown names do.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        shell: Any = None,
        clock: Callable[[], datetime] = datetime.now,
        action_logger: Optional[ActionLogger] = None,
    ):
        """
        Initialize action runtime.

        Args:
            config: Runtime settings (loaded from file/environment if None)
            shell: Command runner exposed to actions as `context.shell`
            clock: Current-time source for due times and `context.now`
            action_logger: Logger exposed to actions as `context.log`

        Raises:
            ValueError: If the configuration is invalid
        """
        self.config = config or RuntimeConfig.load()
        errors = self.config.validate()
        if errors:
            raise ValueError("Invalid runtime configuration: " + "; ".join(errors))

        self.registry = ActionRegistry(clock=clock)
        self.guard = ExecutionGuard(
            self.registry,
            shell=shell or CommandRunner(timeout=self.config.command_timeout),
            clock=clock,
            action_logger=action_logger,
        )
        self.loop = SchedulerLoop(self.registry, self.guard, self.config, clock=clock)

    def define(self, definitions: Iterable[Any]) -> 'ActionRuntime':
        """
        Register a batch of actions and make sure the scheduler is polling.

        Args:
            definitions: ActionDefinition instances or mappings

        Returns:
            This runtime, for calling `run`

        Raises:
            ActionValidationError: If the batch is rejected (nothing is registered)
        """
        self.registry.register(definitions)
        if self.loop.stopped:
            logger.warning("Action scheduler has been shut down; "
                           "new actions will only run when triggered manually")
        else:
            self.loop.start()
        return self

    def run(self, name: str):
        """
        Run an action now, in the calling thread.

        Returns once the attempt and its hooks have finished, or at once
        if an attempt for this action is already in flight.

        Raises:
            UnknownActionError: If no action with this name is registered
        """
        entry = self.registry.get(name)
        if entry is None:
            raise UnknownActionError(name)
        self.guard.attempt(entry)

    async def arun(self, name: str):
        """Awaitable form of `run` for asyncio hosts."""
        if name not in self.registry:
            raise UnknownActionError(name)
        await asyncio.to_thread(self.run, name)

    def shutdown(self, wait: bool = True):
        """Stop automatic scheduling; manual `run` keeps working."""
        self.loop.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.shutdown()

    def __repr__(self):
        return f"ActionRuntime(actions={len(self.registry)}, running={self.loop.running})"


# Global runtime instance
_runtime: Optional[ActionRuntime] = None


def get_runtime() -> ActionRuntime:
    """Get or create the global runtime instance."""
    global _runtime
    if _runtime is None:
        _runtime = ActionRuntime()
    return _runtime


def define(definitions: Iterable[Any]) -> ActionRuntime:
    """Register actions on the global runtime and return it."""
    return get_runtime().define(definitions)
