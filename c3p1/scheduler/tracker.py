"""Run tracking for scheduled and interactive units of work."""

import logging
from dataclasses import dataclass, field
from typing import Any

from c3p1.core.metrics import AuditLogger
from c3p1.db.database import DatabaseManager
from c3p1.db.models import TaskRun, TaskRunStatus
from c3p1.db.repositories.task_run_repo import TaskRunRepository

logger = logging.getLogger(__name__)

SCHEDULED_TRIGGER = "scheduled"


@dataclass
class TaskContext:
    """Context passed to every task handler for consistent audit logging.

    Both log methods are append-only and best-effort: a failed audit write
    is logged and never raised into the handler.
    """

    task_run_id: int
    task_name: str
    audit: AuditLogger = field(repr=False)

    @property
    def trigger_ref(self) -> str:
        return str(self.task_run_id)

    async def log_action(self, action_type: str, summary: str, metadata: dict[str, Any] | None = None) -> None:
        """Record an action taken by the task."""
        await self.audit.log_action(SCHEDULED_TRIGGER, self.trigger_ref, action_type, summary, metadata)

    async def log_usage(self, tokens_in: int, tokens_out: int) -> None:
        """Record model token usage incurred by the task."""
        await self.audit.log_usage(SCHEDULED_TRIGGER, self.trigger_ref, tokens_in, tokens_out)


class TaskRunTracker:
    """Drives TaskRun rows through running -> completed | failed.

    Terminal states are final; a second transition raises TaskRunStateError.
    """

    def __init__(self, db: DatabaseManager, audit: AuditLogger, agent_id: str = "c3p1"):
        """Initialize the tracker.

        Args:
            db: Database manager providing sessions.
            audit: Audit logger handed to task contexts.
            agent_id: Identifier stamped on every run.
        """
        self._db = db
        self._audit = audit
        self.agent_id = agent_id

    async def start(self, task_name: str, metadata: dict[str, Any] | None = None) -> TaskRun:
        """Create a run in the running state."""
        async with self._db.session() as session:
            run = await TaskRunRepository(session).start(task_name, self.agent_id, metadata)
        logger.info(f"Started task run {run.id}: {task_name}")
        return run

    async def complete(self, run_id: int, result_summary: str) -> TaskRun:
        """Mark a running run completed with the handler's summary."""
        async with self._db.session() as session:
            return await TaskRunRepository(session).finish(run_id, TaskRunStatus.COMPLETED, result_summary)

    async def fail(self, run_id: int, error_message: str) -> TaskRun:
        """Mark a running run failed with the error message."""
        async with self._db.session() as session:
            return await TaskRunRepository(session).finish(run_id, TaskRunStatus.FAILED, error_message)

    async def get(self, run_id: int) -> TaskRun | None:
        """Fetch a run by ID."""
        async with self._db.session() as session:
            return await TaskRunRepository(session).get_by_id(run_id)

    async def recent(self, task_name: str | None = None, limit: int = 20) -> list[TaskRun]:
        """List recent runs, newest first."""
        async with self._db.session() as session:
            return await TaskRunRepository(session).list_recent(task_name, limit)

    def create_context(self, run: TaskRun) -> TaskContext:
        """Build the context handed to a task handler for a run."""
        return TaskContext(task_run_id=run.id, task_name=run.task_name, audit=self._audit)
