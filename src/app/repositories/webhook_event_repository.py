"""Webhook Event Repository Interface

Defines the contract of the durable webhook retry queue.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from src.domain.webhook_event import WebhookEvent


class WebhookEventRepository(ABC):
    """
    Repository interface for WebhookEvent persistence

    Retry scans select processed=False AND retry_count < max_retries AND
    created_at < older_than, oldest first.
    """

    @abstractmethod
    async def create(self, event: WebhookEvent) -> WebhookEvent:
        pass

    @abstractmethod
    async def get_by_id(self, event_id: str) -> Optional[WebhookEvent]:
        pass

    @abstractmethod
    async def find_processed_duplicate(
        self,
        event: str,
        payment_id: Optional[str],
        subscription_id: Optional[str],
    ) -> Optional[WebhookEvent]:
        """
        Find an already processed delivery of the same event

        Args:
            event: Gateway event type
            payment_id: Payment id carried by the event
            subscription_id: Subscription id carried by the event
        """
        pass

    @abstractmethod
    async def list_retryable(
        self, max_retries: int, older_than: datetime, limit: int
    ) -> List[WebhookEvent]:
        """Unprocessed events still inside the retry budget"""
        pass

    @abstractmethod
    async def list_dead_lettered(
        self, max_retries: int, limit: int = 50, offset: int = 0
    ) -> tuple[List[WebhookEvent], int]:
        """Unprocessed events that exhausted the retry budget"""
        pass

    @abstractmethod
    async def mark_processed(self, event_id: str, processed_at: datetime) -> None:
        """Flag event as processed and clear the last error"""
        pass

    @abstractmethod
    async def mark_failed(self, event_id: str, error: str) -> int:
        """
        Record a failed attempt

        Returns:
            The new retry_count
        """
        pass
