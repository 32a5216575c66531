from .handlers import EVENT_HANDLERS, WebhookHandlers
from .processor import WebhookProcessor
from .receive_webhook import ReceiveWebhook
from .retry_webhook_events import RetryWebhookEvents
from .list_dead_lettered_events import ListDeadLetteredEvents

__all__ = [
    "EVENT_HANDLERS",
    "WebhookHandlers",
    "WebhookProcessor",
    "ReceiveWebhook",
    "RetryWebhookEvents",
    "ListDeadLetteredEvents",
]
