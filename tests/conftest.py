"""Shared fixtures for c3p1 tests."""

import tempfile
from pathlib import Path
from typing import Any

import pytest
from langchain_core.messages import AIMessage, BaseMessage

from c3p1.db.database import DatabaseManager
from c3p1.db.models import Project


@pytest.fixture
async def db_manager():
    """Provide a temporary database manager."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        manager = DatabaseManager(db_path)
        await manager.init_db()
        yield manager
        await manager.close()


@pytest.fixture
async def project(db_manager: DatabaseManager) -> Project:
    """Insert an active project with slug 'droid'."""
    async with db_manager.session() as session:
        project = Project(slug="droid", title="Droid", description="Protocol droid firmware")
        session.add(project)
        await session.flush()
        await session.refresh(project)
    return project


def ai_message(
    text: str = "",
    tool_calls: list[dict[str, Any]] | None = None,
    stop_reason: str | None = None,
    input_tokens: int = 10,
    output_tokens: int = 5,
) -> AIMessage:
    """Build an AIMessage shaped like a ChatAnthropic response."""
    if stop_reason is None:
        stop_reason = "tool_use" if tool_calls else "end_turn"
    return AIMessage(
        content=text,
        tool_calls=tool_calls or [],
        usage_metadata={
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        },
        response_metadata={"stop_reason": stop_reason},
    )


def tool_call(name: str, args: dict[str, Any], call_id: str) -> dict[str, Any]:
    """Build a tool call entry for ai_message()."""
    return {"name": name, "args": args, "id": call_id, "type": "tool_call"}


class ScriptedModel:
    """Chat model stand-in that replays a fixed list of responses.

    Once the script runs out, the last response is repeated. Each call's
    message list is recorded in `calls`.
    """

    def __init__(self, responses: list[AIMessage | Exception]):
        self.responses = list(responses)
        self.calls: list[list[BaseMessage]] = []
        self.bound_tools: list[dict[str, Any]] | None = None

    def bind_tools(self, tools: list[dict[str, Any]]) -> "ScriptedModel":
        self.bound_tools = tools
        return self

    async def ainvoke(self, messages: list[BaseMessage]) -> AIMessage:
        self.calls.append(list(messages))
        index = min(len(self.calls), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def scripted_model():
    """Factory for ScriptedModel instances."""
    return ScriptedModel


@pytest.fixture
def make_ai_message():
    """Builder for scripted AIMessage responses."""
    return ai_message


@pytest.fixture
def make_tool_call():
    """Builder for tool call entries."""
    return tool_call
