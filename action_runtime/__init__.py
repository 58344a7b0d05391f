"""
Action Runtime

In-process scheduler for named actions: units of work with an optional
recurring interval and lifecycle hooks, run on a timer or on demand.

Features:
- Atomic, validated registration of action definitions
- Coarse polling scheduler (APScheduler) for interval actions
- Per-action guard preventing overlapping attempts
- onRun / onComplete / onError hooks with error isolation
- Shell command runner available to every action
"""

from action_runtime.commands import CommandError, CommandResult, CommandRunner
from action_runtime.config import LoggingConfig, RuntimeConfig
from action_runtime.models import (
    ActionContext,
    ActionDefinition,
    ActionInterval,
    ActionLogger,
    interval_milliseconds,
)
from action_runtime.registry import ActionValidationError
from action_runtime.runtime import ActionRuntime, UnknownActionError, define, get_runtime

__version__ = "0.1.0"
__all__ = [
    "ActionContext",
    "ActionDefinition",
    "ActionInterval",
    "ActionLogger",
    "ActionRuntime",
    "ActionValidationError",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "LoggingConfig",
    "RuntimeConfig",
    "UnknownActionError",
    "define",
    "get_runtime",
    "interval_milliseconds",
]
