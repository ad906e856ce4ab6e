"""Durable, bounded per-conversation message history."""

import logging

from c3p1.agent.conversation import ChatMessage
from c3p1.db.database import DatabaseManager
from c3p1.db.models import MessageRole
from c3p1.db.repositories.message_repo import MessageRepository

logger = logging.getLogger(__name__)

MAX_HISTORY = 20


def conversation_key(thread_ts: str | None, channel: str, is_dm: bool) -> str:
    """Derive the key a conversation's turns are stored under.

    Direct messages share one conversation per channel; channel messages are
    grouped by thread, falling back to the channel itself outside a thread.

    Examples:
        >>> conversation_key(None, "D123", is_dm=True)
        'dm:D123'
        >>> conversation_key("1712345678.000100", "C456", is_dm=False)
        '1712345678.000100'
        >>> conversation_key(None, "C456", is_dm=False)
        'channel:C456'
    """
    if is_dm:
        return f"dm:{channel}"
    return thread_ts or f"channel:{channel}"


class ConversationHistory:
    """Maps conversation keys to their newest N messages.

    The bound is enforced on every append by deleting the oldest rows beyond
    N, so the table never grows past N rows per key.
    """

    def __init__(self, db: DatabaseManager, agent_id: str = "c3p1", max_history: int = MAX_HISTORY):
        """Initialize the history store.

        Args:
            db: Database manager providing sessions.
            agent_id: Identifier stamped on assistant messages.
            max_history: Messages kept per conversation key.
        """
        if max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")
        self._db = db
        self.agent_id = agent_id
        self.max_history = max_history

    async def add_message(self, key: str, role: str, content: str) -> None:
        """Append a message and drop the oldest beyond the bound."""
        role = MessageRole(role).value
        agent_id = self.agent_id if role == MessageRole.ASSISTANT.value else None

        async with self._db.session() as session:
            repo = MessageRepository(session)
            await repo.add(key, role, content, agent_id=agent_id)
            pruned = await repo.prune(key, keep=self.max_history)

        if pruned:
            logger.debug(f"Pruned {pruned} old message(s) from conversation {key}")

    async def get_history(self, key: str) -> list[ChatMessage]:
        """Get the newest messages of a conversation, oldest first."""
        async with self._db.session() as session:
            rows = await MessageRepository(session).get_recent(key, self.max_history)
            return [ChatMessage(role=row.role, content=row.content) for row in rows]

    async def has_conversation(self, key: str) -> bool:
        """Check whether any messages exist for a key."""
        async with self._db.session() as session:
            return await MessageRepository(session).count(key) > 0
