"""Repository for work item operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from c3p1.core.timezone import utc_now
from c3p1.db.models import WorkItem, WorkStatus
from c3p1.db.repositories.base import BaseRepository


class WorkRepository(BaseRepository[WorkItem]):
    """Repository for work item operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, WorkItem)

    async def add(self, project_id: int, summary: str, tags: list[str] | None = None) -> WorkItem:
        """Insert a new pending work item.

        Args:
            project_id: Owning project ID
            summary: Imperative summary of the work
            tags: Free-form tags

        Returns:
            Created WorkItem instance
        """
        item = WorkItem(
            project_id=project_id,
            summary=summary,
            tags=list(tags or []),
            status=WorkStatus.PENDING.value,
        )
        return await self._insert(item)

    async def start(self, work_id: int) -> WorkItem | None:
        """Move a work item to in_progress, stamping its start time."""
        item = await self.get_by_id(work_id)
        if item is None:
            return None
        item.status = WorkStatus.IN_PROGRESS.value
        item.started_at = utc_now()
        return await self._flush(item)

    async def complete(self, work_id: int, completed_summary: str | None = None) -> WorkItem | None:
        """Mark a work item completed, stamping its completion time.

        Args:
            work_id: Work item ID
            completed_summary: Optional past-tense summary of what was done

        Returns:
            Updated WorkItem, or None if no such item exists
        """
        item = await self.get_by_id(work_id)
        if item is None:
            return None
        item.status = WorkStatus.COMPLETED.value
        item.completed_at = utc_now()
        if completed_summary:
            item.completed_summary = completed_summary
        return await self._flush(item)

    async def update_fields(
        self,
        work_id: int,
        summary: str | None = None,
        tags: list[str] | None = None,
    ) -> WorkItem | None:
        """Apply a partial update to summary and/or tags."""
        item = await self.get_by_id(work_id)
        if item is None:
            return None
        if summary:
            item.summary = summary
        if tags is not None:
            item.tags = list(tags)
        return await self._flush(item)

    async def list_by_status(
        self,
        status: WorkStatus,
        project_id: int | None = None,
        limit: int | None = None,
    ) -> list[WorkItem]:
        """List work items in a given status, newest first.

        Completed items are ordered by completion time, in-progress items by
        start time, and pending items by creation time.
        """
        order_column = {
            WorkStatus.PENDING: WorkItem.created_at,
            WorkStatus.IN_PROGRESS: WorkItem.started_at,
            WorkStatus.COMPLETED: WorkItem.completed_at,
        }[status]

        stmt = select(WorkItem).where(WorkItem.status == status.value).order_by(order_column.desc())
        if project_id is not None:
            stmt = stmt.where(WorkItem.project_id == project_id)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def recent_completed_summaries(self, limit: int = 5) -> list[str]:
        """Summaries of the most recently completed items, newest first."""
        stmt = (
            select(WorkItem.summary)
            .where(WorkItem.status == WorkStatus.COMPLETED.value)
            .order_by(WorkItem.completed_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
