"""SQLAlchemy implementation of WebhookEventRepository

The webhook_events table doubles as the durable retry queue.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.webhook_event_repository import WebhookEventRepository
from src.domain.webhook_event import WebhookEvent


class SqlAlchemyWebhookEventRepository(WebhookEventRepository):
    """
    SQLAlchemy implementation of WebhookEventRepository

    Features:
    - Retry scan bounded by retry budget, minimum age and batch size
    - Dead-letter listing for operators
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, event: WebhookEvent) -> WebhookEvent:
        self.session.add(event)
        await self.session.flush()
        await self.session.refresh(event)
        return event

    async def get_by_id(self, event_id: str) -> Optional[WebhookEvent]:
        stmt = select(WebhookEvent).where(WebhookEvent.id == event_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_processed_duplicate(
        self,
        event: str,
        payment_id: Optional[str],
        subscription_id: Optional[str],
    ) -> Optional[WebhookEvent]:
        stmt = select(WebhookEvent).where(
            WebhookEvent.event == event,
            WebhookEvent.processed == True,  # noqa: E712
        )

        if payment_id is None:
            stmt = stmt.where(WebhookEvent.gateway_payment_id.is_(None))
        else:
            stmt = stmt.where(WebhookEvent.gateway_payment_id == payment_id)

        if subscription_id is None:
            stmt = stmt.where(WebhookEvent.gateway_subscription_id.is_(None))
        else:
            stmt = stmt.where(WebhookEvent.gateway_subscription_id == subscription_id)

        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def list_retryable(
        self, max_retries: int, older_than: datetime, limit: int
    ) -> List[WebhookEvent]:
        """
        Unprocessed events still inside the retry budget, oldest first

        Args:
            max_retries: Events with retry_count >= max_retries are dead-lettered
            older_than: Only events created before this instant (fixed backoff)
            limit: Batch size
        """
        stmt = (
            select(WebhookEvent)
            .where(
                WebhookEvent.processed == False,  # noqa: E712
                WebhookEvent.retry_count < max_retries,
                WebhookEvent.created_at < older_than,
            )
            .order_by(WebhookEvent.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_dead_lettered(
        self, max_retries: int, limit: int = 50, offset: int = 0
    ) -> tuple[List[WebhookEvent], int]:
        conditions = (
            WebhookEvent.processed == False,  # noqa: E712
            WebhookEvent.retry_count >= max_retries,
        )

        count_stmt = select(func.count()).select_from(WebhookEvent).where(*conditions)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar_one()

        stmt = (
            select(WebhookEvent)
            .where(*conditions)
            .order_by(WebhookEvent.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def mark_processed(self, event_id: str, processed_at: datetime) -> None:
        event = await self.get_by_id(event_id)
        if event:
            event.processed = True
            event.processed_at = processed_at
            event.processing_error = None
            self.session.add(event)
            await self.session.flush()

    async def mark_failed(self, event_id: str, error: str) -> int:
        event = await self.get_by_id(event_id)
        if not event:
            return 0
        event.retry_count += 1
        event.processing_error = error[:2000]
        self.session.add(event)
        await self.session.flush()
        return event.retry_count
