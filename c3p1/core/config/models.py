"""Pydantic configuration models for c3p1.

This module defines all configuration models used throughout c3p1.
For loading and expansion logic, see loader.py.
"""

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, field_validator


class DatabaseConfig(BaseModel):
    """Configuration for the relational store."""

    path: str = Field(default="c3p1.db", description="Path to the SQLite database file")
    echo: bool = Field(default=False, description="Echo SQL statements to the log")


class AnthropicConfig(BaseModel):
    """Configuration for the model call layer."""

    api_key: str | None = Field(default=None, description="Anthropic API key")
    model: str = Field(default="claude-sonnet-4-20250514", description="Model identifier")
    max_tokens: int = Field(default=1024, description="Max output tokens per model call")
    max_retries: int = Field(
        default=3,
        description="Retry attempts for transient upstream failures (exponential backoff)",
    )
    timeout_seconds: float = Field(default=120.0, description="Per-request timeout in seconds")


class AgentConfig(BaseModel):
    """Configuration for the conversational agent."""

    agent_id: str = Field(default="c3p1", description="Identifier stamped on assistant rows and task runs")
    max_history: int = Field(default=20, description="Messages kept per conversation key")
    max_rounds: int = Field(default=10, description="Hard cap on model rounds per request")


class MemoryConfig(BaseModel):
    """Configuration for the virtual memory filesystem."""

    root: str = Field(default="/memories", description="Reserved root prefix for memory paths")

    @field_validator("root")
    @classmethod
    def validate_root(cls, v: str) -> str:
        """Root must be absolute and must not end with a separator."""
        if not v.startswith("/") or v == "/":
            raise ValueError(f"Memory root must be an absolute path below '/': {v!r}")
        return v.rstrip("/")


class PromptTaskDefinition(BaseModel):
    """A scheduled task that sends a fixed prompt through the conversation loop."""

    name: str = Field(description="Unique task identifier")
    schedule: str = Field(description="Cron expression (e.g., '0 9 * * *')")
    prompt: str = Field(description="User prompt sent to the model when the task fires")
    enabled: bool = Field(default=True, description="Whether the task is registered")

    @field_validator("schedule")
    @classmethod
    def validate_cron_expression(cls, v: str) -> str:
        """Validate cron expression is parseable at config load time."""
        try:
            CronTrigger.from_crontab(v)
        except (ValueError, KeyError) as e:
            raise ValueError(f"Invalid cron expression '{v}': {e}") from e
        return v


class SchedulerConfig(BaseModel):
    """Configuration for the task scheduler."""

    timezone: str = Field(default="UTC", description="IANA timezone for cron schedules")
    tasks: list[PromptTaskDefinition] = Field(default_factory=list, description="Prompt tasks to register")


class LoggingConfig(BaseModel):
    """Configuration for logging system."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    directory: str = Field(default="logs", description="Directory for log files")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB before rotation")
    backup_count: int = Field(default=5, description="Number of backup log files to keep")


class Config(BaseModel):
    """Root configuration for c3p1."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    model_config = {"extra": "allow"}
