from .unit_of_work import UnitOfWork
from .realtime_notifier import RealtimeNotifier, CreditsUpdatedEvent
from .payment_gateway import PaymentGateway, GatewayPayment, GatewaySubscription

__all__ = [
    "UnitOfWork",
    "RealtimeNotifier",
    "CreditsUpdatedEvent",
    "PaymentGateway",
    "GatewayPayment",
    "GatewaySubscription",
]
