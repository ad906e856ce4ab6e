"""APScheduler-based cron execution of registered tasks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from c3p1.core.errors import TaskNotFoundError
from c3p1.db.models import TaskRun
from c3p1.scheduler.tracker import TaskContext, TaskRunTracker

logger = logging.getLogger(__name__)

TaskHandler = Callable[[TaskContext], Awaitable[str]]


@dataclass(frozen=True)
class ScheduledTask:
    """A named task with a cron expression and a handler returning a summary."""

    name: str
    schedule: str
    handler: TaskHandler


class TaskScheduler:
    """Fires registered tasks on their cron schedules and tracks every run.

    Tasks are registered once, before start(). Each firing spawns an
    independent run; a task whose previous run is still in flight simply
    gets a second, concurrent run row. There is no per-task lock.
    """

    def __init__(self, tracker: TaskRunTracker, timezone: str = "UTC"):
        """Initialize the scheduler.

        Args:
            tracker: Run tracker wrapping every execution.
            timezone: IANA timezone string for cron schedules (e.g., "America/New_York").
        """
        self.tracker = tracker
        self._timezone = timezone
        self._tz = ZoneInfo(timezone)
        self._tasks: dict[str, ScheduledTask] = {}
        self._scheduler: AsyncIOScheduler | None = None
        self._in_flight: set[asyncio.Task[Any]] = set()

    @property
    def registered_tasks(self) -> list[ScheduledTask]:
        """Registered tasks in registration order."""
        return list(self._tasks.values())

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def register(self, task: ScheduledTask) -> None:
        """Register a task.

        Raises:
            RuntimeError: If the scheduler has already started.
            ValueError: If the name is taken or the cron expression is invalid.
        """
        if self._scheduler is not None:
            raise RuntimeError(f"Cannot register task {task.name} after the scheduler has started")
        if task.name in self._tasks:
            raise ValueError(f"Task already registered: {task.name}")
        try:
            CronTrigger.from_crontab(task.schedule, timezone=self._tz)
        except (ValueError, KeyError) as e:
            raise ValueError(f"Invalid cron expression '{task.schedule}' for task {task.name}: {e}") from e

        self._tasks[task.name] = task
        logger.info(f"Registered task: {task.name} ({task.schedule})")

    async def start(self) -> None:
        """Install a cron trigger for every registered task and start firing."""
        self._scheduler = AsyncIOScheduler(timezone=self._tz)

        for task in self._tasks.values():
            trigger = CronTrigger.from_crontab(task.schedule, timezone=self._tz)
            self._scheduler.add_job(
                func=self._fire,
                trigger=trigger,
                args=[task],
                id=task.name,
                name=task.name,
                replace_existing=True,
            )
            logger.info(f"Scheduled: {task.name}")

        self._scheduler.start()
        logger.info(f"Scheduler started with {len(self._tasks)} task(s)")

    async def stop(self) -> None:
        """Stop firing and wait for in-flight runs to reach a terminal state."""
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

        if self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} in-flight run(s)")
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def run_now(self, task_name: str) -> TaskRun:
        """Run a registered task immediately, bypassing its schedule.

        Returns:
            The run row in its terminal state.

        Raises:
            TaskNotFoundError: If no task with that name is registered.
        """
        task = self._tasks.get(task_name)
        if task is None:
            raise TaskNotFoundError(task_name)
        return await self._run(task, metadata={"manual": True})

    async def _fire(self, task: ScheduledTask) -> None:
        """Cron entry point: spawn the run and return immediately."""
        try:
            run = asyncio.create_task(self._run(task), name=f"task-run:{task.name}")
        except Exception as e:
            logger.error(f"Failed to start scheduled run of {task.name}: {e}", exc_info=True)
            return

        self._in_flight.add(run)
        run.add_done_callback(self._on_run_done)

    def _on_run_done(self, run: asyncio.Task[Any]) -> None:
        self._in_flight.discard(run)
        if run.cancelled():
            logger.warning(f"Run {run.get_name()} was cancelled")
            return
        exc = run.exception()
        if exc is not None:
            logger.error(f"Run {run.get_name()} could not be tracked: {exc}")

    async def _run(self, task: ScheduledTask, metadata: dict[str, Any] | None = None) -> TaskRun:
        """Execute one run: start row, call handler, record exactly one terminal state."""
        logger.info(f"Starting task: {task.name}")
        run = await self.tracker.start(task.name, metadata)
        ctx = self.tracker.create_context(run)

        try:
            summary = await task.handler(ctx)
        except Exception as e:
            error_message = str(e) or type(e).__name__
            logger.error(f"Failed task: {task.name} - {error_message}", exc_info=True)
            return await self.tracker.fail(run.id, error_message)

        summary = "" if summary is None else str(summary)
        logger.info(f"Completed task: {task.name} - {summary}")
        return await self.tracker.complete(run.id, summary)
