"""ReceiveWebhook Use Case

Entry point of gateway callbacks: authenticate, validate, deduplicate,
persist, then process synchronously. A failed processing attempt is still a
successful receipt; the retry queue picks the event up later.
"""

import hmac
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import ValidationError as PayloadValidationError
from libs.result import Result, Return, Error
from src.app.errors import AuthorizationError, BillingError, ValidationError
from src.app.repositories.webhook_event_repository import WebhookEventRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.webhook_event import WebhookEvent, WebhookEventType
from .dtos import WebhookAckDTO, WebhookPayloadDTO
from .processor import WebhookProcessor

logger = logging.getLogger(__name__)


def validate_correlation(event_type: Optional[WebhookEventType], payload: WebhookPayloadDTO) -> None:
    """
    Required correlation ids per event family

    - PAYMENT_*: payment.id and payment.customer
    - SUBSCRIPTION_*: subscription.id
    Unknown event types carry no requirement; they are stored and acknowledged.
    """
    if event_type is None:
        return
    if event_type.is_payment_event:
        if payload.payment is None:
            raise ValidationError(f"{event_type.value} requires a payment object")
        if not payload.payment.customer:
            raise ValidationError(f"{event_type.value} requires payment.customer")
    elif event_type.is_subscription_event:
        if payload.subscription is None:
            raise ValidationError(f"{event_type.value} requires a subscription object")


class ReceiveWebhook:
    """
    Use Case: Receive a gateway webhook

    Flow:
    1. Shared-secret token check (when a token is configured)
    2. Payload and correlation id validation
    3. Duplicate of an already processed delivery -> acknowledged, nothing else
    4. Persist event (processed = False) and commit
    5. Process synchronously through WebhookProcessor
    """

    def __init__(
        self,
        uow: UnitOfWork,
        event_repo: WebhookEventRepository,
        processor: WebhookProcessor,
        webhook_token: Optional[str] = None,
    ):
        self.uow = uow
        self.event_repo = event_repo
        self.processor = processor
        self.webhook_token = webhook_token

    def _authenticate(self, token: Optional[str]) -> None:
        if not self.webhook_token:
            logger.warning("No webhook token configured, gateway callbacks are not authenticated")
            return
        if not token or not hmac.compare_digest(token, self.webhook_token):
            raise AuthorizationError("Invalid webhook token")

    async def execute(
        self,
        body: Dict[str, Any],
        token: Optional[str],
        now: Optional[datetime] = None,
    ) -> Result[WebhookAckDTO]:
        now = now or utcnow()
        try:
            self._authenticate(token)

            try:
                payload = WebhookPayloadDTO.model_validate(body)
            except PayloadValidationError as e:
                raise ValidationError("Malformed webhook payload", reason=str(e)) from e

            event_type = WebhookEventType.parse(payload.event)
            validate_correlation(event_type, payload)

            logger.info(
                f"Webhook received: {payload.event} "
                f"payment={payload.payment_id} subscription={payload.subscription_id}"
            )

            duplicate = await self.event_repo.find_processed_duplicate(
                payload.event, payload.payment_id, payload.subscription_id
            )
            if duplicate:
                logger.info(f"Webhook {payload.event} already processed as {duplicate.id}, skipping")
                return Return.ok(
                    WebhookAckDTO(event=payload.event, event_id=duplicate.id, duplicate=True, processed=True)
                )

            event = await self.event_repo.create(
                WebhookEvent(
                    event=payload.event,
                    gateway_payment_id=payload.payment_id,
                    gateway_subscription_id=payload.subscription_id,
                    payload=body,
                    created_at=now,
                )
            )
            event_id = event.id
            await self.uow.commit()

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="WEBHOOK_RECEIVE_FAILED",
                    message="Failed to record webhook",
                    reason=str(e),
                )
            )

        processed = await self.processor.process(event, now=now)
        return Return.ok(WebhookAckDTO(event=payload.event, event_id=event_id, processed=processed))
