#!/usr/bin/env python3
"""
Basic Usage Examples for the action runtime

Defines a few actions, triggers one manually and lets the scheduler
run the interval action for a few seconds.

Run with:
    python examples/basic_usage.py
or through the CLI:
    action-runtime list examples.basic_usage:ACTIONS
"""

import logging
import sys
import time
from pathlib import Path

# Add parent directory to path for imports (if running as standalone script)
sys.path.insert(0, str(Path(__file__).parent.parent))

from action_runtime import ActionDefinition, ActionInterval, ActionRuntime, RuntimeConfig


def disk_usage(ctx):
    """Report disk usage of the current directory."""
    result = ctx.shell.run("du -sh .")
    if not result.ok:
        raise RuntimeError(f"du failed: {result.stderr.strip()}")
    ctx.log.info(f"disk usage at {ctx.now():%H:%M:%S}: {result.stdout.strip()}")


def announce_first_run(ctx):
    ctx.log.info(f"{ctx.action_name} completed for the first time")


def report_failure(ctx, error):
    ctx.log.error(f"{ctx.action_name} needs attention: {error}")


def flaky(ctx):
    raise RuntimeError("upstream unavailable")


ACTIONS = [
    ActionDefinition(
        name="disk-usage",
        description="Log disk usage every 2 seconds",
        execute=disk_usage,
        on_run=announce_first_run,
        on_error=report_failure,
        interval=ActionInterval(every=2, unit="seconds"),
    ),
    {
        "name": "flaky",
        "description": "Always fails; only runs when triggered",
        "execute": flaky,
        "onError": report_failure,
    },
]


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    with ActionRuntime(config=RuntimeConfig(poll_interval_seconds=0.5)) as runtime:
        runtime.define(ACTIONS)

        # Manual trigger: failures surface through on_error, not as exceptions
        runtime.run("flaky")

        print("Letting the scheduler run for 5 seconds...")
        time.sleep(5)


if __name__ == "__main__":
    main()
