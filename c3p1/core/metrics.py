"""Token usage metrics and best-effort audit writes for c3p1."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from c3p1.db.database import DatabaseManager
from c3p1.db.repositories.audit_repo import AuditRepository

logger = logging.getLogger(__name__)


@dataclass
class InvocationMetrics:
    """Token usage metrics from a single conversation loop run.

    Aggregates token counts across all model calls within one run.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    rounds: int = 0
    duration_ms: float = 0.0
    model: str = ""

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add_usage(self, usage: dict[str, Any] | None) -> None:
        """Accumulate a round's usage report (LangChain usage_metadata format)."""
        if not usage:
            return
        self.input_tokens += int(usage.get("input_tokens") or 0)
        self.output_tokens += int(usage.get("output_tokens") or 0)


class AuditLogger:
    """Append-only writer for action receipts and API usage.

    Every write is best-effort: failures are logged and never raised, so
    auditing can never change the outcome of the operation being audited.
    Detached writes are tracked so they can be drained on shutdown.
    """

    def __init__(self, db: DatabaseManager):
        self._db = db
        self._pending: set[asyncio.Task[None]] = set()

    async def log_action(
        self,
        trigger_type: str,
        trigger_ref: str,
        action_type: str,
        summary: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Append an action receipt, logging instead of raising on failure."""
        try:
            async with self._db.session() as session:
                await AuditRepository(session).log_action(
                    trigger_type, trigger_ref, action_type, summary, metadata
                )
        except Exception as e:
            logger.warning(f"Failed to log action {action_type} for {trigger_type}:{trigger_ref}: {e}")

    async def log_usage(
        self,
        trigger_type: str,
        trigger_ref: str,
        tokens_in: int,
        tokens_out: int,
    ) -> None:
        """Append an API usage record, logging instead of raising on failure."""
        try:
            async with self._db.session() as session:
                await AuditRepository(session).log_usage(trigger_type, trigger_ref, tokens_in, tokens_out)
        except Exception as e:
            logger.warning(f"Failed to log usage for {trigger_type}:{trigger_ref}: {e}")

    def log_usage_detached(
        self,
        trigger_type: str,
        trigger_ref: str,
        tokens_in: int,
        tokens_out: int,
    ) -> asyncio.Task[None]:
        """Schedule a usage write without awaiting it.

        Returns:
            The background task (already tracked; callers may ignore it).
        """
        task = asyncio.create_task(self.log_usage(trigger_type, trigger_ref, tokens_in, tokens_out))

        # Strong reference until done
        self._pending.add(task)
        task.add_done_callback(self._on_detached_done)
        return task

    def _on_detached_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Detached usage write was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Detached usage write failed: {exc}")

    @property
    def pending(self) -> int:
        """Number of detached writes still in flight."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all detached writes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
