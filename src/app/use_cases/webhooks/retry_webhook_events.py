"""RetryWebhookEvents Use Case

One pass of the cron-driven retry queue with fixed backoff.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.webhook_event_repository import WebhookEventRepository
from src.domain.base import utcnow
from .dtos import RetryResultDTO
from .processor import DEFAULT_MAX_RETRIES, WebhookProcessor

logger = logging.getLogger(__name__)

DEFAULT_MIN_AGE = timedelta(minutes=5)
DEFAULT_BATCH_SIZE = 50


class RetryWebhookEvents:
    """
    Use Case: Retry failed webhook events

    Selection: processed = False AND retry_count < max_retries AND
    created_at < now - min_age, oldest first, at most batch_size.
    An event reaching max_retries is dead-lettered and never selected again.
    """

    def __init__(
        self,
        event_repo: WebhookEventRepository,
        processor: WebhookProcessor,
        max_retries: int = DEFAULT_MAX_RETRIES,
        min_age: timedelta = DEFAULT_MIN_AGE,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.event_repo = event_repo
        self.processor = processor
        self.max_retries = max_retries
        self.min_age = min_age
        self.batch_size = batch_size

    async def execute(self, now: Optional[datetime] = None) -> Result[RetryResultDTO]:
        now = now or utcnow()
        try:
            events = await self.event_repo.list_retryable(
                max_retries=self.max_retries,
                older_than=now - self.min_age,
                limit=self.batch_size,
            )
        except Exception as e:
            return Return.err(
                Error(
                    code="RETRY_WEBHOOKS_FAILED",
                    message="Failed to load retryable webhook events",
                    reason=str(e),
                )
            )

        result = RetryResultDTO(total=len(events))
        # A failed attempt rolls back and expires every loaded row, keep plain values
        attempts = [(event.id, event.retry_count) for event in events]

        for event_id, retry_count in attempts:
            try:
                event = await self.event_repo.get_by_id(event_id)
                if event is None or event.processed:
                    result.success += 1
                    continue
                if await self.processor.process(event, now=now):
                    result.success += 1
                    continue
            except Exception as e:
                logger.error(f"Retry of webhook event {event_id} aborted: {e}")
            result.failed += 1
            if retry_count + 1 >= self.max_retries:
                result.max_retries_reached += 1

        logger.info(
            f"Webhook retry pass: {result.total} events, {result.success} processed, "
            f"{result.failed} failed, {result.max_retries_reached} dead-lettered"
        )
        return Return.ok(result)
