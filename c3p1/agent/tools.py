"""Tool definitions exposed to the model, and the input models that validate them.

The definitions below are the only contract the model sees. Every name in
TOOLS must have a matching entry in ToolExecutor's dispatch table.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

MEMORY_TOOL_TYPE = "memory_20250818"
MEMORY_TOOL_BETA = "context-management-2025-06-27"

# Built-in memory capability; the model knows its command schema natively
MEMORY_TOOL: dict[str, Any] = {
    "type": MEMORY_TOOL_TYPE,
    "name": "memory",
}

CUSTOM_TOOLS: list[dict[str, Any]] = [
    {
        "name": "query_database",
        "description": (
            "Execute a read-only SQL query against the database. Use this to look up "
            "information about projects, work items, etc. Only SELECT queries are allowed."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "sql": {
                    "type": "string",
                    "description": "The SELECT query to execute",
                },
            },
            "required": ["sql"],
        },
    },
    {
        "name": "add_work_item",
        "description": "Add a new pending work item to a project.",
        "input_schema": {
            "type": "object",
            "properties": {
                "project_slug": {
                    "type": "string",
                    "description": 'Project slug (e.g., "c3p1", "quizio")',
                },
                "summary": {
                    "type": "string",
                    "description": 'Brief description in imperative form (e.g., "Add user authentication")',
                },
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Tags for the work item (e.g., ["feature", "ui"])',
                },
            },
            "required": ["project_slug", "summary", "tags"],
        },
    },
    {
        "name": "complete_work_item",
        "description": "Mark a work item as completed.",
        "input_schema": {
            "type": "object",
            "properties": {
                "work_id": {
                    "type": "number",
                    "description": "The ID of the work item to complete",
                },
                "completed_summary": {
                    "type": "string",
                    "description": "Optional summary of what was accomplished (past tense)",
                },
            },
            "required": ["work_id"],
        },
    },
    {
        "name": "update_work_item",
        "description": "Update an existing work item (summary, tags).",
        "input_schema": {
            "type": "object",
            "properties": {
                "work_id": {
                    "type": "number",
                    "description": "The ID of the work item to update",
                },
                "summary": {
                    "type": "string",
                    "description": "New summary (imperative form)",
                },
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "New tags array",
                },
            },
            "required": ["work_id"],
        },
    },
    {
        "name": "delete_work_item",
        "description": 'Delete a pending work item permanently. Only works on items with status "pending".',
        "input_schema": {
            "type": "object",
            "properties": {
                "work_id": {
                    "type": "number",
                    "description": "The ID of the work item to delete",
                },
            },
            "required": ["work_id"],
        },
    },
]

TOOLS: list[dict[str, Any]] = [*CUSTOM_TOOLS, MEMORY_TOOL]

TOOL_NAMES: frozenset[str] = frozenset(tool["name"] for tool in TOOLS)


@dataclass(frozen=True)
class ToolInvocation:
    """A model-issued request to run a named tool."""

    name: str
    input: dict[str, Any]
    invocation_id: str


@dataclass(frozen=True)
class ToolResult:
    """The serialized outcome of one ToolInvocation."""

    invocation_id: str
    content: str


# ============================================================================
# Input models
# ============================================================================


class QueryDatabaseInput(BaseModel):
    """Input schema for query_database."""

    sql: str = Field(min_length=1, description="The SELECT query to execute")


class AddWorkItemInput(BaseModel):
    """Input schema for add_work_item."""

    project_slug: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    tags: list[str]


class CompleteWorkItemInput(BaseModel):
    """Input schema for complete_work_item."""

    work_id: int
    completed_summary: str | None = None


class UpdateWorkItemInput(BaseModel):
    """Input schema for update_work_item."""

    work_id: int
    summary: str | None = None
    tags: list[str] | None = None


class DeleteWorkItemInput(BaseModel):
    """Input schema for delete_work_item."""

    work_id: int


class MemoryInput(BaseModel):
    """Input schema for the memory tool.

    Only `command` is always required; which other fields matter depends on
    the command.
    """

    command: str
    path: str | None = None
    file_text: str | None = None
    old_str: str | None = None
    new_str: str | None = None
    insert_line: int | None = None
    insert_text: str | None = None
    old_path: str | None = None
    new_path: str | None = None
    view_range: list[int] | None = None


def format_validation_error(error: ValidationError) -> str:
    """Render a pydantic ValidationError as one short, model-readable line.

    Examples:
        "work_id is required"
        "tags: Input should be a valid list"
    """
    parts: list[str] = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "input"
        if item["type"] == "missing":
            parts.append(f"{field} is required")
        else:
            parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)
