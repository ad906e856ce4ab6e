"""Bounded tool-use loop between the conversation and the language model."""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from c3p1.agent.executor import ToolExecutor
from c3p1.agent.prompts import SYSTEM_PROMPT
from c3p1.agent.tools import TOOLS, ToolInvocation
from c3p1.core.metrics import AuditLogger, InvocationMetrics

logger = logging.getLogger(__name__)

MAX_ROUNDS = 10

EMPTY_RESPONSE = "I seem to have lost my train of thought, sir. Could you say that again?"
STUCK_RESPONSE = (
    "I apologize, sir, but I seem to have gotten stuck in a loop. "
    "Perhaps we could try a different approach?"
)

# Anthropic stop_reason signalling the model considers its turn complete
END_TURN = "end_turn"


@dataclass(frozen=True)
class ChatMessage:
    """One conversation turn as stored in history."""

    role: str
    content: str


def to_model_messages(history: Sequence[ChatMessage]) -> list[BaseMessage]:
    """Convert stored history into LangChain messages."""
    messages: list[BaseMessage] = []
    for message in history:
        if message.role == "assistant":
            messages.append(AIMessage(content=message.content))
        else:
            messages.append(HumanMessage(content=message.content))
    return messages


def extract_text(content: Any) -> str:
    """Extract text from message content, handling both string and block formats.

    Anthropic responses that use tools carry a list of typed blocks:
    [{"type": "text", "text": "..."}, {"type": "tool_use", ...}]

    Returns:
        Joined text blocks, or empty string if there are none.
    """
    if isinstance(content, str):
        return content.strip()
    if not isinstance(content, list):
        return str(content).strip()

    text_parts = []
    for block in content:
        if isinstance(block, str):
            text_parts.append(block)
        elif isinstance(block, dict):
            if block.get("type") == "text" and block.get("text"):
                text_parts.append(block["text"])
    return "\n".join(text_parts).strip()


class ConversationLoop:
    """Drives a bounded multi-round exchange with the model.

    Each round sends the full message list. A response without tool calls
    ends the run with its text. A response with tool calls has every call
    executed concurrently; the response and the paired results are appended
    and the next round begins, unless the model already signalled end_turn.
    The round cap is a hard safety valve.

    Token usage is accumulated across rounds. When a conversation key is
    given, exactly one usage record is written per run, detached from the
    reply path.
    """

    def __init__(
        self,
        model: BaseChatModel,
        executor: ToolExecutor,
        audit: AuditLogger | None = None,
        max_rounds: int = MAX_ROUNDS,
        system_prompt: str = SYSTEM_PROMPT,
        tools: list[dict[str, Any]] | None = None,
        model_name: str = "",
    ):
        """Initialize the loop.

        Args:
            model: Chat model; tools are bound here once.
            executor: Tool executor for model-issued invocations.
            audit: Audit logger for per-conversation usage records.
            max_rounds: Maximum model calls per run.
            system_prompt: Fixed system instruction.
            tools: Tool definitions to expose (defaults to TOOLS).
            model_name: Model identifier recorded in metrics.
        """
        self._model = model.bind_tools(tools if tools is not None else TOOLS)
        self._executor = executor
        self._audit = audit
        self.max_rounds = max_rounds
        self.system_prompt = system_prompt
        self.model_name = model_name
        self._last_metrics: InvocationMetrics | None = None

    @property
    def last_metrics(self) -> InvocationMetrics | None:
        """Token usage metrics from the most recent run, or None before any run."""
        return self._last_metrics

    async def run(self, history: Sequence[ChatMessage], conversation_key: str | None = None) -> str:
        """Answer the last user turn of a conversation.

        Args:
            history: Conversation so far, oldest first, ending with the user's turn.
            conversation_key: Key to attribute token usage to (optional).

        Returns:
            The assistant's reply text.

        Raises:
            Exception: Upstream model failures propagate unchanged.
        """
        metrics = InvocationMetrics(model=self.model_name)
        self._last_metrics = metrics
        messages = to_model_messages(history)
        started = time.monotonic()

        try:
            while metrics.rounds < self.max_rounds:
                response = await self._model.ainvoke([SystemMessage(content=self.system_prompt), *messages])
                metrics.rounds += 1
                metrics.add_usage(response.usage_metadata)

                if not response.tool_calls:
                    return extract_text(response.content) or EMPTY_RESPONSE

                invocations = [
                    ToolInvocation(name=call["name"], input=call["args"], invocation_id=call["id"])
                    for call in response.tool_calls
                ]
                logger.debug(
                    f"Round {metrics.rounds}: executing {len(invocations)} tool call(s): "
                    f"{[i.name for i in invocations]}"
                )
                results = await self._executor.execute_all(invocations)

                # Consecutive ToolMessages are sent as one user turn of tool_result blocks
                messages.append(response)
                messages.extend(
                    ToolMessage(content=result.content, tool_call_id=result.invocation_id)
                    for result in results
                )

                if (response.response_metadata or {}).get("stop_reason") == END_TURN:
                    return extract_text(response.content) or EMPTY_RESPONSE

            logger.warning(f"Conversation loop hit the {self.max_rounds}-round cap")
            return STUCK_RESPONSE
        finally:
            metrics.duration_ms = (time.monotonic() - started) * 1000
            self._record_usage(metrics, conversation_key)

    def _record_usage(self, metrics: InvocationMetrics, conversation_key: str | None) -> None:
        if not conversation_key or self._audit is None:
            return
        try:
            self._audit.log_usage_detached(
                "conversation",
                conversation_key,
                metrics.input_tokens,
                metrics.output_tokens,
            )
        except Exception as e:
            logger.warning(f"Failed to schedule usage write for {conversation_key}: {e}")
