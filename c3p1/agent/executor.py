"""Dispatch of model-issued tool invocations to concrete handlers."""

import asyncio
import json
import logging
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ValidationError

from c3p1.agent.memory import MemoryStore
from c3p1.agent.tools import (
    AddWorkItemInput,
    CompleteWorkItemInput,
    DeleteWorkItemInput,
    MemoryInput,
    QueryDatabaseInput,
    ToolInvocation,
    ToolResult,
    UpdateWorkItemInput,
    format_validation_error,
)
from c3p1.db.database import DatabaseManager
from c3p1.db.models import WorkStatus
from c3p1.db.repositories.project_repo import ProjectRepository
from c3p1.db.repositories.work_repo import WorkRepository

logger = logging.getLogger(__name__)

MAX_LOGGED_RESULT_CHARS = 500
STYLE_REFERENCE_COUNT = 5

_SELECT_PATTERN = re.compile(r"^select\b", re.IGNORECASE)

Handler = Callable[[Any], Awaitable[str]]


def _error(message: str) -> str:
    return json.dumps({"error": message})


def _ok(payload: dict[str, Any]) -> str:
    return json.dumps(payload, default=str)


class ToolExecutor:
    """Executes named tools and serializes their results.

    `execute` never raises: validation problems, missing rows, and store
    failures all come back as a JSON `{"error": ...}` payload (or, for the
    memory tool, an error sentence) so the model can decide how to recover.
    """

    def __init__(self, db: DatabaseManager, memory: MemoryStore):
        """Initialize the executor.

        Args:
            db: Database manager for queries and work item mutations.
            memory: Memory filesystem backing the memory tool.
        """
        self._db = db
        self._memory = memory
        self._handlers: dict[str, tuple[type[BaseModel], Handler]] = {
            "query_database": (QueryDatabaseInput, self._query_database),
            "add_work_item": (AddWorkItemInput, self._add_work_item),
            "complete_work_item": (CompleteWorkItemInput, self._complete_work_item),
            "update_work_item": (UpdateWorkItemInput, self._update_work_item),
            "delete_work_item": (DeleteWorkItemInput, self._delete_work_item),
            "memory": (MemoryInput, self._memory.execute),
        }

    @property
    def tool_names(self) -> frozenset[str]:
        """Names this executor can dispatch."""
        return frozenset(self._handlers)

    async def execute(self, name: str, tool_input: Mapping[str, Any] | None) -> str:
        """Run one tool and return its serialized result.

        Args:
            name: Tool name as issued by the model.
            tool_input: Tool arguments as issued by the model.

        Returns:
            Result string (JSON for database tools, prose for memory).
        """
        entry = self._handlers.get(name)
        if entry is None:
            result = _error(f"Unknown tool: {name}")
        else:
            input_model, handler = entry
            try:
                args = input_model.model_validate(dict(tool_input or {}))
                result = await handler(args)
            except ValidationError as e:
                result = _error(format_validation_error(e))
            except Exception as e:
                logger.error(f"Tool {name} failed: {e}", exc_info=True)
                result = _error(str(e) or type(e).__name__)

        self._log_invocation(name, tool_input, result)
        return result

    async def execute_all(self, invocations: Sequence[ToolInvocation]) -> list[ToolResult]:
        """Run a round's invocations concurrently.

        Results are returned in invocation order regardless of completion order.
        """
        contents = await asyncio.gather(
            *(self.execute(invocation.name, invocation.input) for invocation in invocations)
        )
        return [
            ToolResult(invocation_id=invocation.invocation_id, content=content)
            for invocation, content in zip(invocations, contents)
        ]

    def _log_invocation(self, name: str, tool_input: Mapping[str, Any] | None, result: str) -> None:
        try:
            if tool_input and tool_input.get("sql"):
                detail = f"SQL: {tool_input['sql']}"
            else:
                detail = f"Input: {json.dumps(tool_input, default=str)}"
            if len(result) > MAX_LOGGED_RESULT_CHARS:
                result = result[:MAX_LOGGED_RESULT_CHARS] + "..."
            logger.info(f"[TOOL] {name}\n  {detail}\n  Result: {result}")
        except Exception as e:
            logger.debug(f"Failed to log tool invocation {name}: {e}")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _query_database(self, args: QueryDatabaseInput) -> str:
        cleaned = args.sql.strip().rstrip(";").strip()
        if not _SELECT_PATTERN.match(cleaned):
            return _error("Only SELECT queries are allowed")

        try:
            rows = await self._db.execute_readonly(cleaned)
        except Exception as e:
            reason = getattr(e, "orig", None) or e
            return _error(f"Query failed: {reason}")
        return _ok({"rows": rows})

    async def _add_work_item(self, args: AddWorkItemInput) -> str:
        async with self._db.session() as session:
            project = await ProjectRepository(session).get_by_slug(args.project_slug)
            if project is None:
                return _error(f'Project "{args.project_slug}" not found')

            works = WorkRepository(session)
            item = await works.add(project.id, args.summary, args.tags)
            style_examples = await works.recent_completed_summaries(STYLE_REFERENCE_COUNT)
            payload = {
                "success": True,
                "item": item.to_dict(),
                "style_reference": style_examples,
                "note": "For future items, match the voice of style_reference examples",
            }
        return _ok(payload)

    async def _complete_work_item(self, args: CompleteWorkItemInput) -> str:
        async with self._db.session() as session:
            item = await WorkRepository(session).complete(args.work_id, args.completed_summary)
            if item is None:
                return _error(f"Work item {args.work_id} not found")
            payload = {"success": True, "item": item.to_dict()}
        return _ok(payload)

    async def _update_work_item(self, args: UpdateWorkItemInput) -> str:
        if not args.summary and args.tags is None:
            return _error("At least one of summary or tags is required")

        async with self._db.session() as session:
            item = await WorkRepository(session).update_fields(args.work_id, args.summary, args.tags)
            if item is None:
                return _error(f"Work item {args.work_id} not found")
            payload = {"success": True, "item": item.to_dict()}
        return _ok(payload)

    async def _delete_work_item(self, args: DeleteWorkItemInput) -> str:
        async with self._db.session() as session:
            works = WorkRepository(session)
            item = await works.get_by_id(args.work_id)
            if item is None:
                return _error(f"Work item {args.work_id} not found")
            if item.status != WorkStatus.PENDING.value:
                return _error(
                    f"Cannot delete work item {args.work_id}: status is {item.status}, "
                    f"only pending items can be deleted"
                )
            await works.remove(item)
        return _ok({"success": True, "message": f"Work item {args.work_id} deleted"})
