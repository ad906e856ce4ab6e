"""Conversation-facing entry point: history in, reply out."""

import logging

from c3p1.agent.conversation import ConversationLoop
from c3p1.agent.history import ConversationHistory

logger = logging.getLogger(__name__)

APOLOGY_RESPONSE = (
    "I apologize, sir. I seem to have encountered a technical difficulty. "
    "Perhaps we might try again?"
)


class Assistant:
    """Answers a user's message within a keyed conversation.

    Failures never surface as silence: any error from the loop or the store
    is logged and replaced by an apology. A failed turn leaves only the
    user's message in history.
    """

    def __init__(self, history: ConversationHistory, loop: ConversationLoop):
        self.history = history
        self.loop = loop

    async def respond(self, key: str, text: str) -> str:
        """Record the user's message, run the loop, and record the reply.

        Args:
            key: Conversation key (see conversation_key()).
            text: The user's message.

        Returns:
            The assistant's reply, or an apology if anything failed.
        """
        try:
            await self.history.add_message(key, "user", text)
            messages = await self.history.get_history(key)
            reply = await self.loop.run(messages, conversation_key=key)
            await self.history.add_message(key, "assistant", reply)
            return reply
        except Exception as e:
            logger.error(f"Error handling message for {key}: {e}", exc_info=True)
            return APOLOGY_RESPONSE
