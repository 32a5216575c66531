"""ListDeadLetteredEvents Use Case"""

from libs.result import Result, Return, Error
from src.app.repositories.webhook_event_repository import WebhookEventRepository
from .dtos import DeadLetterPageDTO, WebhookEventDTO
from .processor import DEFAULT_MAX_RETRIES


class ListDeadLetteredEvents:
    """
    Use Case: List webhook events that exhausted their retry budget

    These stay processed = False and need operator intervention.
    """

    def __init__(self, event_repo: WebhookEventRepository, max_retries: int = DEFAULT_MAX_RETRIES):
        self.event_repo = event_repo
        self.max_retries = max_retries

    async def execute(self, limit: int = 50, offset: int = 0) -> Result[DeadLetterPageDTO]:
        limit = max(1, min(limit, 200))
        offset = max(0, offset)
        try:
            events, total = await self.event_repo.list_dead_lettered(self.max_retries, limit=limit, offset=offset)
            return Return.ok(
                DeadLetterPageDTO(
                    events=[
                        WebhookEventDTO(
                            id=event.id,
                            event=event.event,
                            gateway_payment_id=event.gateway_payment_id,
                            gateway_subscription_id=event.gateway_subscription_id,
                            processed=event.processed,
                            processing_error=event.processing_error,
                            retry_count=event.retry_count,
                            created_at=event.created_at,
                            processed_at=event.processed_at,
                            payload=event.payload or {},
                        )
                        for event in events
                    ],
                    total=total,
                    limit=limit,
                    offset=offset,
                )
            )
        except Exception as e:
            return Return.err(
                Error(
                    code="LIST_DEAD_LETTER_FAILED",
                    message="Failed to list dead-lettered webhook events",
                    reason=str(e),
                )
            )
