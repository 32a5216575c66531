from .user_account_repository import UserAccountRepository
from .ledger_entry_repository import LedgerEntryRepository
from .credit_purchase_repository import CreditPurchaseRepository
from .payment_repository import PaymentRepository
from .webhook_event_repository import WebhookEventRepository
from .subscription_plan_repository import SubscriptionPlanRepository

__all__ = [
    "UserAccountRepository",
    "LedgerEntryRepository",
    "CreditPurchaseRepository",
    "PaymentRepository",
    "WebhookEventRepository",
    "SubscriptionPlanRepository",
]
