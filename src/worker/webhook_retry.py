"""Webhook Retry Background Worker

Re-processes stored webhook events whose handling failed, until they succeed
or exhaust their retries.
"""

import asyncio
import logging

from config import ApplicationConfig
from src.app.use_cases.webhooks.dtos import RetryResultDTO
from src.worker.base import BaseWorker, run_worker

logger = logging.getLogger(__name__)


class WebhookRetryWorker(BaseWorker):
    """
    Background worker for the webhook retry queue

    Usage:
        worker = WebhookRetryWorker()
        result = await worker.run_once()

        await worker.run_forever(interval_seconds=300)
    """

    name = "webhook retry"
    enabled_setting = "WEBHOOK_RETRY_ENABLED"

    async def run_once(self) -> RetryResultDTO:
        if not self.enabled:
            logger.info("Webhook retry is disabled, skipping")
            return RetryResultDTO()

        async with self.services() as services:
            result = await services.retry_webhook_events().execute()

        if result.is_err():
            logger.error(f"Webhook retry failed: {result.error.message}")
            raise RuntimeError(f"Webhook retry failed: {result.error.message}")

        response = result.value
        if response.max_retries_reached > 0:
            logger.error(f"ALERT: {response.max_retries_reached} webhook events moved to the dead letter list")
        return response

    def describe(self, result: RetryResultDTO) -> str:
        return (
            f"{result.total} retried, {result.success} succeeded, {result.failed} failed, "
            f"{result.max_retries_reached} dead-lettered"
        )


async def main():
    """
    Usage:
        python -m src.worker.webhook_retry --once
        python -m src.worker.webhook_retry --interval 300
    """
    await run_worker(
        WebhookRetryWorker,
        "Webhook Retry Worker",
        ApplicationConfig.WEBHOOK_RETRY_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
