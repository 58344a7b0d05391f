"""
Polling scheduler for actions with an interval.

A single APScheduler background job polls the registry every
`poll_interval_seconds`. Each due action is handed to the loop's worker
pool, so a tick never waits for an attempt to finish.
"""

import concurrent.futures
import logging
from concurrent.futures import Future
from datetime import datetime
from typing import Callable

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED,
)
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from action_runtime.config import RuntimeConfig
from action_runtime.execution import ExecutionGuard
from action_runtime.models import RegistryEntry
from action_runtime.registry import ActionRegistry

logger = logging.getLogger(__name__)

POLL_JOB_ID = 'action-runtime-poll'


class SchedulerLoop:
    """
    Coarse poller dispatching due actions to the execution guard.

    Started at most once; after `shutdown` it stays stopped.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        guard: ExecutionGuard,
        config: RuntimeConfig,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.registry = registry
        self.guard = guard
        self.config = config
        self.clock = clock
        self._started = False
        self._stopped = False

        # Attempts never go through the scheduler's job store: the poll job
        # would otherwise need the store lock that shutdown holds.
        self._workers = concurrent.futures.ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix='action'
        )

        executors = {
            'default': ThreadPoolExecutor(1),
        }

        job_defaults = {
            'coalesce': True,
            'misfire_grace_time': None,
        }

        self.scheduler = BackgroundScheduler(
            executors=executors,
            job_defaults=job_defaults
        )
        self._setup_event_listeners()

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _setup_event_listeners(self):
        """Setup APScheduler event listeners for logging."""

        def job_error_listener(event):
            logger.error(
                f"Job '{event.job_id}' raised exception: {event.exception}\n{event.traceback}"
            )

        def job_missed_listener(event):
            logger.warning(f"Job '{event.job_id}' missed scheduled run time")

        def job_max_instances_listener(event):
            logger.debug(f"Job '{event.job_id}' still running, tick skipped")

        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(job_missed_listener, EVENT_JOB_MISSED)
        self.scheduler.add_listener(job_max_instances_listener, EVENT_JOB_MAX_INSTANCES)

    def start(self):
        """Start polling. Calls after the first are no-ops."""
        if self._started or self._stopped:
            return
        self._started = True

        self.scheduler.add_job(
            self.tick,
            'interval',
            seconds=self.config.poll_interval_seconds,
            id=POLL_JOB_ID,
            max_instances=1,
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(
            f"Action scheduler started (poll every {self.config.poll_interval_seconds}s, "
            f"{self.config.max_workers} worker(s))"
        )

    def tick(self):
        """Dispatch every due, idle action once."""
        if self._stopped:
            return
        # Guards are held from here so a dispatched but not yet started
        # attempt cannot be dispatched again by the next tick.
        for entry in self.registry.claim_due(self.clock()):
            self._dispatch(entry)

    def _dispatch(self, entry: RegistryEntry):
        logger.debug(f"Dispatching action '{entry.name}'")
        try:
            future = self._workers.submit(self.guard.run_acquired, entry)
        except Exception as e:
            # Claimed entries must be released or they would never run again
            logger.error(f"Failed to dispatch action '{entry.name}': {e}")
            self.registry.complete(entry, self.clock())
            return
        future.add_done_callback(self._attempt_done)

    @staticmethod
    def _attempt_done(future: Future):
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Action attempt raised: {error!r}")

    def shutdown(self, wait: bool = True):
        """
        Stop polling.

        Attempts already dispatched still run to completion; a tick that
        is still dispatching when the workers stop releases what it claimed.

        Args:
            wait: If True, wait for in-flight attempts to complete
        """
        if not self.running:
            self._stopped = True
            self._workers.shutdown(wait=wait)
            return
        self._stopped = True
        logger.info("Stopping action scheduler...")
        self.scheduler.shutdown(wait=wait)
        self._workers.shutdown(wait=wait)
        logger.info("Action scheduler stopped")
