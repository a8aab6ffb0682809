"""Task manager lifecycle — start, stop, schedule.

The ``TaskManager`` owns a set of ``CronJob`` definitions and runs each
one on its own asyncio background task.  A job's ticks never overlap:
the next sleep starts only after the previous tick returned.

Shutdown is a graceful drain: ``stop()`` prevents new ticks, wakes the
sleeping loops and waits for an in-flight tick to finish (bounded by
``shutdown_timeout``) before returning.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from bridge_relayer.metrics.collector import RelayerMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CronJob:
    """A recurring background job."""

    handler: Callable[[], Awaitable[None]]
    period: float  # seconds
    name: str = ""
    run_immediately: bool = False


class TaskManager:
    """Manages asyncio-based cron jobs.

    Usage::

        tm = TaskManager(metrics=relayer_metrics)
        tm.register("process_queue", CronJob(handler=..., period=30, run_immediately=True))
        await tm.start()
        ...
        await tm.stop()
    """

    def __init__(
        self,
        *,
        metrics: RelayerMetrics | None = None,
        shutdown_timeout: float = 30.0,
    ) -> None:
        self._jobs: dict[str, CronJob] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._running = False
        self._wake = asyncio.Event()
        self._metrics = metrics
        self._shutdown_timeout = shutdown_timeout

    @property
    def is_running(self) -> bool:
        """Whether the task manager is currently running."""
        return self._running

    @property
    def jobs(self) -> dict[str, CronJob]:
        """Registered jobs (name → CronJob)."""
        return dict(self._jobs)

    def register(self, name: str, job: CronJob) -> None:
        """Register a cron job.  Can be called before or after start().

        If the manager is already running the job is started immediately.
        """
        resolved = replace(job, name=name)
        self._jobs[name] = resolved
        self._locks.setdefault(name, asyncio.Lock())
        if self._running:
            self._tasks[name] = asyncio.create_task(self._run_loop(resolved))

    async def start(self) -> None:
        """Start all registered cron jobs."""
        if self._running:
            return
        self._running = True
        self._wake = asyncio.Event()
        for name, job in self._jobs.items():
            self._tasks[name] = asyncio.create_task(self._run_loop(job))
        logger.info("TaskManager started with %d jobs", len(self._jobs))

    async def stop(self) -> None:
        """Stop scheduling and wait for in-flight ticks to finish."""
        if not self._running:
            return
        self._running = False
        self._wake.set()
        tasks = list(self._tasks.values())
        self._tasks.clear()
        if not tasks:
            logger.info("TaskManager stopped")
            return

        done, pending = await asyncio.wait(tasks, timeout=self._shutdown_timeout)
        for task in pending:
            logger.error(
                "Task %s did not finish within %.1fs, cancelling",
                task.get_name(),
                self._shutdown_timeout,
            )
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for task in done:
            exc = task.exception()
            if exc is not None:
                logger.error("Task error during shutdown: %s", exc)
        logger.info("TaskManager stopped")

    async def run_once(self, name: str) -> None:
        """Run one tick of *name* outside the schedule.

        Waits for a scheduled tick of the same job that is in flight.
        """
        await self._tick(self._jobs[name])

    async def _run_loop(self, job: CronJob) -> None:
        """Run *job* every *job.period* seconds until stopped."""
        if job.run_immediately:
            await self._tick(job)
        while self._running:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._wake.wait(), timeout=job.period)
            if not self._running:
                break
            await self._tick(job)

    async def _tick(self, job: CronJob) -> None:
        name = job.name or "unnamed"
        lock = self._locks.setdefault(name, asyncio.Lock())
        try:
            async with lock:
                if self._metrics:
                    with self._metrics.track_tick(name):
                        await job.handler()
                else:
                    await job.handler()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Cron job %r failed", name)
