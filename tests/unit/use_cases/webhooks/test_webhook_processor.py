"""Unit tests for WebhookProcessor"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.errors import NotFoundError
from src.app.use_cases.webhooks.processor import WebhookProcessor
from src.domain.webhook_event import WebhookEvent, WebhookEventType


def stored_event(name="PAYMENT_OVERDUE", retry_count=0):
    return WebhookEvent(
        id="evt_1",
        event=name,
        gateway_payment_id="pay_1",
        payload={"event": name, "payment": {"id": "pay_1", "customer": "cus_123"}},
        retry_count=retry_count,
    )


@pytest.fixture
def mock_event_repo():
    repo = MagicMock()
    repo.mark_processed = AsyncMock()
    repo.mark_failed = AsyncMock(return_value=1)
    return repo


@pytest.fixture
def mock_handlers():
    handlers = MagicMock()
    handlers.handle = AsyncMock()
    return handlers


@pytest.fixture
def processor(mock_uow, mock_event_repo, mock_handlers):
    return WebhookProcessor(mock_uow, mock_event_repo, mock_handlers, max_retries=5)


@pytest.mark.asyncio
class TestWebhookProcessor:
    async def test_success_marks_processed(self, processor, mock_event_repo, mock_handlers, mock_uow, now):
        processed = await processor.process(stored_event(), now=now)

        assert processed is True
        event_type, payload, _ = mock_handlers.handle.call_args[0]
        assert event_type == WebhookEventType.PAYMENT_OVERDUE
        assert payload.payment.customer == "cus_123"
        mock_event_repo.mark_processed.assert_called_once_with("evt_1", now)
        mock_event_repo.mark_failed.assert_not_called()
        mock_uow.commit.assert_called_once()

    async def test_failure_rolls_back_and_records_error(
        self, processor, mock_event_repo, mock_handlers, mock_uow, caplog
    ):
        """
        Given: The handler raises (user not found)
        When: The event is processed
        Then: Handler writes are rolled back, the failure is recorded and committed,
              the event stays unprocessed
        """
        mock_handlers.handle = AsyncMock(side_effect=NotFoundError("No user for customer cus_123", code="USER_NOT_FOUND"))

        processed = await processor.process(stored_event())

        assert processed is False
        mock_uow.rollback.assert_called_once()
        mock_event_repo.mark_processed.assert_not_called()
        mock_event_repo.mark_failed.assert_called_once_with("evt_1", "USER_NOT_FOUND: No user for customer cus_123")
        mock_uow.commit.assert_called_once()
        assert "attempt 1/5" in caplog.text

    async def test_final_failure_is_logged_as_dead_letter(
        self, processor, mock_event_repo, mock_handlers, caplog
    ):
        mock_handlers.handle = AsyncMock(side_effect=RuntimeError("boom"))
        mock_event_repo.mark_failed = AsyncMock(return_value=5)

        processed = await processor.process(stored_event(retry_count=4))

        assert processed is False
        assert "dead-lettered after 5 attempts" in caplog.text

    async def test_unknown_event_type_is_acknowledged(self, processor, mock_event_repo, mock_handlers):
        processed = await processor.process(stored_event(name="INVOICE_CREATED"))

        assert processed is True
        mock_handlers.handle.assert_not_called()
        mock_event_repo.mark_processed.assert_called_once()
