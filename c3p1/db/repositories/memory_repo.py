"""Repository for memory file rows."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from c3p1.core.timezone import utc_now
from c3p1.db.models import Memory
from c3p1.db.repositories.base import BaseRepository


class MemoryRepository(BaseRepository[Memory]):
    """Repository for path-addressed memory files."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Memory)

    async def get_by_path(self, path: str) -> Memory | None:
        """Get the memory file stored at an exact path."""
        result = await self.session.execute(select(Memory).where(Memory.path == path))
        return result.scalar_one_or_none()

    async def exists(self, path: str) -> bool:
        """Check whether a file exists at an exact path."""
        result = await self.session.execute(select(Memory.id).where(Memory.path == path))
        return result.first() is not None

    async def list_paths(self, prefix: str) -> list[str]:
        """List stored paths beginning with prefix, sorted."""
        stmt = (
            select(Memory.path)
            .where(Memory.path.startswith(prefix, autoescape=True))
            .order_by(Memory.path)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, path: str, content: str) -> Memory:
        """Insert a new memory file."""
        now = utc_now()
        return await self._insert(Memory(path=path, content=content, created_at=now, updated_at=now))

    async def set_content(self, memory: Memory, content: str) -> Memory:
        """Replace a file's content and stamp its update time."""
        memory.content = content
        memory.updated_at = utc_now()
        return await self._flush(memory)

    async def move(self, memory: Memory, new_path: str) -> Memory:
        """Change a file's path in place, keeping its content."""
        memory.path = new_path
        memory.updated_at = utc_now()
        return await self._flush(memory)

    async def delete_path(self, path: str) -> int:
        """Delete the file at an exact path. Returns rows deleted."""
        stmt = delete(Memory).where(Memory.path == path).execution_options(synchronize_session=False)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every file whose path begins with prefix. Returns rows deleted."""
        stmt = (
            delete(Memory)
            .where(Memory.path.startswith(prefix, autoescape=True))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
