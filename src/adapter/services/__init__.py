from .unit_of_work import SqlAlchemyUnitOfWork
from .database import Database
from .asaas_gateway import AsaasGatewayClient
from .realtime_notifier import (
    LoggingRealtimeNotifier,
    QueueRealtimeNotifier,
    WebhookRealtimeNotifier,
    CompositeRealtimeNotifier,
    create_realtime_notifier,
)

__all__ = [
    "SqlAlchemyUnitOfWork",
    "Database",
    "AsaasGatewayClient",
    "LoggingRealtimeNotifier",
    "QueueRealtimeNotifier",
    "WebhookRealtimeNotifier",
    "CompositeRealtimeNotifier",
    "create_realtime_notifier",
]
