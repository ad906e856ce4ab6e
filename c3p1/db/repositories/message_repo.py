"""Repository for conversation messages."""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from c3p1.db.models import Message
from c3p1.db.repositories.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Repository for per-conversation message history."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Message)

    async def add(
        self,
        conversation_key: str,
        role: str,
        content: str,
        agent_id: str | None = None,
    ) -> Message:
        """Append a message to a conversation."""
        message = Message(
            conversation_key=conversation_key,
            role=role,
            content=content,
            agent_id=agent_id,
        )
        return await self._insert(message)

    async def get_recent(self, conversation_key: str, limit: int) -> list[Message]:
        """Get the newest `limit` messages of a conversation, oldest first."""
        stmt = (
            select(Message)
            .where(Message.conversation_key == conversation_key)
            .order_by(Message.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def count(self, conversation_key: str) -> int:
        """Count messages stored for a conversation."""
        stmt = select(func.count(Message.id)).where(Message.conversation_key == conversation_key)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def prune(self, conversation_key: str, keep: int) -> int:
        """Delete all but the newest `keep` messages of a conversation.

        Returns:
            Number of rows deleted
        """
        newest = (
            select(Message.id)
            .where(Message.conversation_key == conversation_key)
            .order_by(Message.id.desc())
            .limit(keep)
        )
        stmt = (
            delete(Message)
            .where(Message.conversation_key == conversation_key)
            .where(Message.id.not_in(newest))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
