"""WebhookProcessor

Runs one processing attempt of a stored webhook event. Shared by the
ingestion endpoint and the retry job so both follow the same state machine:

    RECEIVED -> PROCESSING -> PROCESSED
                           -> FAILED (retry_count += 1)
"""

import logging
from datetime import datetime
from typing import Optional
from src.app.errors import BillingError
from src.app.repositories.webhook_event_repository import WebhookEventRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.webhook_event import WebhookEvent, WebhookEventType
from .dtos import WebhookPayloadDTO
from .handlers import WebhookHandlers

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


class WebhookProcessor:
    def __init__(
        self,
        uow: UnitOfWork,
        event_repo: WebhookEventRepository,
        handlers: WebhookHandlers,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.uow = uow
        self.event_repo = event_repo
        self.handlers = handlers
        self.max_retries = max_retries

    async def process(self, event: WebhookEvent, now: Optional[datetime] = None) -> bool:
        """
        Process one event

        Returns:
            True if the event is now processed, False if the attempt failed
            (the failure is recorded on the event)
        """
        now = now or utcnow()
        event_id = event.id
        event_name = event.event
        payload = dict(event.payload or {})

        try:
            event_type = WebhookEventType.parse(event_name)
            if event_type is None:
                logger.warning(f"Unhandled webhook event type {event_name} ({event_id}), acknowledging")
            else:
                await self.handlers.handle(event_type, WebhookPayloadDTO.model_validate(payload), now)

            await self.event_repo.mark_processed(event_id, now)
            await self.uow.commit()
            logger.info(f"Webhook event {event_id} ({event_name}) processed")
            return True

        except Exception as e:
            await self.uow.rollback()
            if isinstance(e, BillingError):
                error = f"{e.code}: {e.message}"
            else:
                error = f"{type(e).__name__}: {e}"

            retry_count = await self.event_repo.mark_failed(event_id, error)
            await self.uow.commit()

            if retry_count >= self.max_retries:
                logger.error(
                    f"Webhook event {event_id} ({event_name}) dead-lettered after {retry_count} attempts: {error}"
                )
            else:
                logger.warning(
                    f"Webhook event {event_id} ({event_name}) failed, attempt {retry_count}/{self.max_retries}: {error}"
                )
            return False
