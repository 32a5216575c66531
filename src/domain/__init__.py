from .base import BaseModel, generate_uuid, utcnow
from .user_account import UserAccount, UserRole, SubscriptionStatus, BillingCycle
from .ledger_entry import LedgerEntry, EntryKind, CreditSource, LedgerMetadata
from .credit_purchase import CreditPurchase, PurchaseStatus
from .payment import Payment, PaymentType, PaymentStatus
from .webhook_event import WebhookEvent, WebhookEventType
from .subscription_plan import SubscriptionPlan
from .credit_balance import CreditBalance, compute_available_credits

__all__ = [
    "BaseModel",
    "generate_uuid",
    "utcnow",
    "UserAccount",
    "UserRole",
    "SubscriptionStatus",
    "BillingCycle",
    "LedgerEntry",
    "EntryKind",
    "CreditSource",
    "LedgerMetadata",
    "CreditPurchase",
    "PurchaseStatus",
    "Payment",
    "PaymentType",
    "PaymentStatus",
    "WebhookEvent",
    "WebhookEventType",
    "SubscriptionPlan",
    "CreditBalance",
    "compute_available_credits",
]
