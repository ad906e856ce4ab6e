"""Conversational agent: tool-use loop, tool executor, and memory filesystem."""

from c3p1.agent.assistant import Assistant
from c3p1.agent.conversation import ChatMessage, ConversationLoop
from c3p1.agent.executor import ToolExecutor
from c3p1.agent.history import ConversationHistory, conversation_key
from c3p1.agent.memory import MemoryStore

__all__ = [
    "Assistant",
    "ChatMessage",
    "ConversationHistory",
    "ConversationLoop",
    "MemoryStore",
    "ToolExecutor",
    "conversation_key",
]
