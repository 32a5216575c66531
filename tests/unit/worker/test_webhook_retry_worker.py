"""Unit tests for WebhookRetryWorker"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from libs.result import Error, Return
from src.app.use_cases.webhooks.dtos import RetryResultDTO
from src.worker.webhook_retry import WebhookRetryWorker

def use_case_returning(result):
    use_case = MagicMock()
    use_case.execute = AsyncMock(return_value=result)
    return MagicMock(return_value=use_case)


@pytest.mark.asyncio
class TestWebhookRetryWorker:
    async def test_run_once_returns_retry_counts(self, mock_config, mock_services):
        """
        Given: Retry is enabled and the retry pass succeeds
        When: run_once is called
        Then: The pass counts are returned
        """
        mock_services.retry_webhook_events = use_case_returning(
            Return.ok(RetryResultDTO(total=3, success=2, failed=1, max_retries_reached=1))
        )

        worker = WebhookRetryWorker(config=mock_config)
        result = await worker.run_once()

        assert result.total == 3
        assert result.max_retries_reached == 1
        assert "1 dead-lettered" in worker.describe(result)

    async def test_run_once_skips_when_disabled(self, mock_config, mock_services):
        mock_config.WEBHOOK_RETRY_ENABLED = False
        mock_services.retry_webhook_events = MagicMock()

        result = await WebhookRetryWorker(config=mock_config).run_once()

        assert result == RetryResultDTO()
        mock_services.retry_webhook_events.assert_not_called()

    async def test_run_once_raises_on_error(self, mock_config, mock_services):
        mock_services.retry_webhook_events = use_case_returning(
            Return.err(Error(code="RETRY_WEBHOOKS_FAILED", message="Failed to load retryable events"))
        )

        with pytest.raises(RuntimeError):
            await WebhookRetryWorker(config=mock_config).run_once()

    async def test_shutdown_disposes_database(self, mock_config, mock_services):
        worker = WebhookRetryWorker(config=mock_config)

        await worker.shutdown()

        mock_services.database.dispose.assert_called_once()
