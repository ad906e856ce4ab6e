"""Repository for append-only audit records (action receipts and API usage)."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from c3p1.db.models import ActionReceipt, ApiUsage
from c3p1.db.repositories.base import BaseRepository


class AuditRepository(BaseRepository[ActionReceipt]):
    """Repository for audit writes.

    Rows are only ever inserted; there is no update or delete path.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, ActionReceipt)

    async def log_action(
        self,
        trigger_type: str,
        trigger_ref: str,
        action_type: str,
        summary: str,
        metadata: dict[str, Any] | None = None,
    ) -> ActionReceipt:
        """Append an action receipt.

        Args:
            trigger_type: What initiated the action ("scheduled", "conversation")
            trigger_ref: Correlation reference (task run ID or conversation key)
            action_type: Short machine-readable action name
            summary: Human-readable description
            metadata: Optional structured details

        Returns:
            Created ActionReceipt instance
        """
        receipt = ActionReceipt(
            trigger_type=trigger_type,
            trigger_ref=trigger_ref,
            action_type=action_type,
            summary=summary,
            details=metadata,
        )
        self.session.add(receipt)
        await self.session.flush()
        return receipt

    async def log_usage(
        self,
        trigger_type: str,
        trigger_ref: str,
        tokens_in: int,
        tokens_out: int,
    ) -> ApiUsage:
        """Append an API usage record."""
        usage = ApiUsage(
            trigger_type=trigger_type,
            trigger_ref=trigger_ref,
            tokens_in=tokens_in,
            tokens_out=tokens_out,
        )
        self.session.add(usage)
        await self.session.flush()
        return usage

    async def actions_for(self, trigger_type: str, trigger_ref: str) -> list[ActionReceipt]:
        """List action receipts for a trigger, oldest first."""
        stmt = (
            select(ActionReceipt)
            .where(ActionReceipt.trigger_type == trigger_type, ActionReceipt.trigger_ref == trigger_ref)
            .order_by(ActionReceipt.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def usage_for(self, trigger_type: str, trigger_ref: str) -> list[ApiUsage]:
        """List usage records for a trigger, oldest first."""
        stmt = (
            select(ApiUsage)
            .where(ApiUsage.trigger_type == trigger_type, ApiUsage.trigger_ref == trigger_ref)
            .order_by(ApiUsage.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
