"""Repository for project lookups."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from c3p1.db.models import Project, ProjectStatus
from c3p1.db.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for project operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Project)

    async def get_by_slug(self, slug: str) -> Project | None:
        """Get a project by its slug, or None if absent."""
        result = await self.session.execute(select(Project).where(Project.slug == slug))
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Project]:
        """List active projects, most recently updated first."""
        stmt = (
            select(Project)
            .where(Project.status == ProjectStatus.ACTIVE.value)
            .order_by(Project.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
