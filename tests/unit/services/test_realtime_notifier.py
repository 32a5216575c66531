"""Unit tests for realtime notifier channels"""

import json
import pytest
import httpx
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from src.adapter.services.realtime_notifier import (
    CompositeRealtimeNotifier,
    LoggingRealtimeNotifier,
    QueueRealtimeNotifier,
    WebhookRealtimeNotifier,
    create_realtime_notifier,
)
from src.api.routes.billing import stream_credit_events
from src.app.services.realtime_notifier import CreditsUpdatedEvent


@pytest.fixture
def event(now):
    return CreditsUpdatedEvent(
        user_id="user_123",
        credits_used=150,
        credits_limit=500,
        purchased_balance=100,
        reason="SPEND",
        occurred_at=now,
    )


@pytest.mark.asyncio
class TestQueueRealtimeNotifier:
    async def test_delivers_to_user_subscribers_only(self, event):
        notifier = QueueRealtimeNotifier()
        mine = notifier.subscribe("user_123")
        other = notifier.subscribe("user_456")

        delivered = await notifier.publish(event)

        assert delivered is True
        assert mine.get_nowait() == event
        assert other.empty()

    async def test_full_queue_drops_event(self, event):
        notifier = QueueRealtimeNotifier(max_queue_size=1)
        queue = notifier.subscribe("user_123")

        assert await notifier.publish(event) is True
        assert await notifier.publish(event) is False
        assert queue.qsize() == 1

    async def test_unsubscribe(self, event):
        notifier = QueueRealtimeNotifier()
        queue = notifier.subscribe("user_123")
        notifier.unsubscribe("user_123", queue)

        assert notifier.subscriber_count("user_123") == 0
        assert await notifier.publish(event) is False


@pytest.mark.asyncio
class TestWebhookRealtimeNotifier:
    async def test_posts_event_payload(self, event):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            return httpx.Response(200)

        notifier = WebhookRealtimeNotifier("https://ws.example.com/push", transport=httpx.MockTransport(handler))

        assert await notifier.publish(event) is True
        assert captured["url"] == "https://ws.example.com/push"
        assert captured["body"]["type"] == "credits_updated"
        assert captured["body"]["credits_used"] == 150
        assert captured["body"]["reason"] == "SPEND"

    async def test_http_error_returns_false(self, event):
        notifier = WebhookRealtimeNotifier(
            "https://ws.example.com/push",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )

        assert await notifier.publish(event) is False


@pytest.mark.asyncio
class TestCompositeRealtimeNotifier:
    async def test_failing_channel_does_not_block_others(self, event):
        broken = MagicMock()
        broken.publish = AsyncMock(side_effect=RuntimeError("socket closed"))
        working = MagicMock()
        working.publish = AsyncMock(return_value=True)

        notifier = CompositeRealtimeNotifier([broken, working])

        assert await notifier.publish(event) is True
        working.publish.assert_called_once_with(event)

    async def test_all_channels_failing(self, event):
        silent = MagicMock()
        silent.publish = AsyncMock(return_value=False)

        assert await CompositeRealtimeNotifier([silent]).publish(event) is False


def test_factory_returns_logging_notifier_without_channels():
    assert isinstance(create_realtime_notifier(), LoggingRealtimeNotifier)


def test_factory_composes_configured_channels():
    queue = QueueRealtimeNotifier()

    notifier = create_realtime_notifier(webhook_url="https://ws.example.com/push", queue_notifier=queue)

    assert isinstance(notifier, CompositeRealtimeNotifier)
    assert queue in notifier.notifiers
    assert any(isinstance(n, WebhookRealtimeNotifier) for n in notifier.notifiers)


@pytest.mark.asyncio
class TestCreditEventStream:
    async def test_stream_relays_published_events(self, event):
        notifier = QueueRealtimeNotifier()
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(queue_notifier=notifier)))

        response = await stream_credit_events("user_123", request)
        stream = response.body_iterator

        assert response.media_type == "text/event-stream"
        assert await stream.__anext__() == "event: hello\ndata: {}\n\n"
        assert notifier.subscriber_count("user_123") == 1

        await notifier.publish(event)
        chunk = await stream.__anext__()

        assert chunk.startswith("event: credits_updated\ndata: ")
        data = json.loads(chunk.split("data: ", 1)[1])
        assert data["user_id"] == "user_123"
        assert data["credits_used"] == 150

        await stream.aclose()
        assert notifier.subscriber_count("user_123") == 0
