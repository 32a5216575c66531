"""Background workers for the credits service"""
from .webhook_retry import WebhookRetryWorker
from .credit_expiration import CreditExpirationWorker
from .payment_reconciliation import PaymentReconciliationWorker
from .subscription_maintenance import SubscriptionMaintenanceWorker

__all__ = [
    "WebhookRetryWorker",
    "CreditExpirationWorker",
    "PaymentReconciliationWorker",
    "SubscriptionMaintenanceWorker",
]
