"""Realtime Notifier Implementations

Provides concrete channels for publishing credit updates.
"""

import asyncio
import logging
from typing import Optional
import httpx
from src.app.services.realtime_notifier import CreditsUpdatedEvent, RealtimeNotifier

logger = logging.getLogger(__name__)


class LoggingRealtimeNotifier(RealtimeNotifier):
    """
    Notifier that logs credit updates

    Useful for development and testing, or as a fallback.
    """

    async def publish(self, event: CreditsUpdatedEvent) -> bool:
        logger.info(
            f"[CREDITS UPDATED] User: {event.user_id}, "
            f"Used: {event.credits_used}, "
            f"Limit: {event.credits_limit}, "
            f"Purchased: {event.purchased_balance}, "
            f"Reason: {event.reason}"
        )
        return True


class QueueRealtimeNotifier(RealtimeNotifier):
    """
    In-process fan-out to subscribed asyncio queues

    Each observer owns one bounded queue; the billing router's
    ``/users/{user_id}/events`` stream subscribes one per connection.
    A full queue drops the event for that observer only.
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = {}

    def subscribe(self, user_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.setdefault(user_id, set()).add(queue)
        return queue

    def unsubscribe(self, user_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(user_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[user_id]

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscribers.get(user_id, ()))

    async def publish(self, event: CreditsUpdatedEvent) -> bool:
        delivered = False
        for queue in list(self._subscribers.get(event.user_id, ())):
            try:
                queue.put_nowait(event)
                delivered = True
            except asyncio.QueueFull:
                logger.warning(f"Realtime queue full for user {event.user_id}, dropping event")
        return delivered


class WebhookRealtimeNotifier(RealtimeNotifier):
    """
    Notifier that forwards credit updates via HTTP webhook

    Sends JSON payload to the configured URL (e.g. a websocket gateway).
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize webhook notifier

        Args:
            webhook_url: URL to POST updates to
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport

    async def publish(self, event: CreditsUpdatedEvent) -> bool:
        payload = {
            "type": "credits_updated",
            "user_id": event.user_id,
            "credits_used": event.credits_used,
            "credits_limit": event.credits_limit,
            "purchased_balance": event.purchased_balance,
            "reason": event.reason,
            "occurred_at": event.occurred_at.isoformat(),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to publish credit update for user {event.user_id}: {e}")
            return False


class CompositeRealtimeNotifier(RealtimeNotifier):
    """Notifier that delegates to multiple channels"""

    def __init__(self, notifiers: list[RealtimeNotifier]):
        self.notifiers = notifiers

    async def publish(self, event: CreditsUpdatedEvent) -> bool:
        """
        Publish to every configured channel

        Returns:
            True if at least one channel succeeded, False otherwise
        """
        success = False
        for notifier in self.notifiers:
            try:
                if await notifier.publish(event):
                    success = True
            except Exception as e:
                logger.error(f"Realtime notifier {type(notifier).__name__} failed: {e}")
        return success


def create_realtime_notifier(
    webhook_url: Optional[str] = None,
    queue_notifier: Optional[QueueRealtimeNotifier] = None,
) -> RealtimeNotifier:
    """
    Factory function to create the configured notifier

    Args:
        webhook_url: Optional webhook URL for an external fan-out service
        queue_notifier: Optional in-process queue fan-out

    Returns:
        Configured RealtimeNotifier
    """
    notifiers: list[RealtimeNotifier] = [LoggingRealtimeNotifier()]

    if queue_notifier is not None:
        notifiers.append(queue_notifier)

    if webhook_url:
        notifiers.append(WebhookRealtimeNotifier(webhook_url))

    if len(notifiers) == 1:
        return notifiers[0]

    return CompositeRealtimeNotifier(notifiers)
