"""Repository for task run lifecycle rows."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from c3p1.core.errors import TaskRunStateError
from c3p1.core.timezone import utc_now
from c3p1.db.models import TaskRun, TaskRunStatus
from c3p1.db.repositories.base import BaseRepository


class TaskRunRepository(BaseRepository[TaskRun]):
    """Repository for task run operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, TaskRun)

    async def start(
        self,
        task_name: str,
        agent_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> TaskRun:
        """Create a run in the running state."""
        run = TaskRun(
            task_name=task_name,
            agent_id=agent_id,
            status=TaskRunStatus.RUNNING.value,
            started_at=utc_now(),
            run_metadata=metadata,
        )
        return await self._insert(run)

    async def finish(self, run_id: int, status: TaskRunStatus, result_summary: str) -> TaskRun:
        """Move a running row to a terminal state.

        Args:
            run_id: Task run ID
            status: COMPLETED or FAILED
            result_summary: Handler summary or error message

        Returns:
            Updated TaskRun

        Raises:
            TaskRunStateError: If the run is missing or already terminal.
        """
        if status == TaskRunStatus.RUNNING:
            raise TaskRunStateError("Cannot finish a run into the running state")

        run = await self.get_by_id(run_id)
        if run is None:
            raise TaskRunStateError(f"Task run {run_id} not found")
        if run.status != TaskRunStatus.RUNNING.value:
            raise TaskRunStateError(f"Task run {run_id} is already {run.status}")

        run.status = status.value
        # Never earlier than started_at, even if the clock stepped backwards
        run.completed_at = max(utc_now(), run.started_at)
        run.result_summary = result_summary
        return await self._flush(run)

    async def list_recent(self, task_name: str | None = None, limit: int = 20) -> list[TaskRun]:
        """List recent runs, newest first, optionally filtered by task name."""
        stmt = select(TaskRun).order_by(TaskRun.id.desc()).limit(limit)
        if task_name:
            stmt = stmt.where(TaskRun.task_name == task_name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
