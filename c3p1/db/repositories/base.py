"""Shared helpers for the c3p1 repositories."""

from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from c3p1.db.models import Base

T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """Session-bound repository for one mapped class.

    Writes are flushed, never committed; the owning
    ``DatabaseManager.session()`` block decides the transaction outcome.
    """

    def __init__(self, session: AsyncSession, model_class: type[T]):
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, id: int) -> T | None:
        return await self.session.get(self.model_class, id)

    async def remove(self, entity: T) -> None:
        """Delete a row, leaving dependent rows to the database's FK cascade."""
        await self.session.delete(entity)
        await self.session.flush()

    async def _insert(self, entity: T) -> T:
        # Refresh picks up server defaults and the generated primary key.
        self.session.add(entity)
        return await self._flush(entity)

    async def _flush(self, entity: T) -> T:
        await self.session.flush()
        await self.session.refresh(entity)
        return entity
