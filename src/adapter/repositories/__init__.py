from .user_account_repository import SqlAlchemyUserAccountRepository
from .ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from .credit_purchase_repository import SqlAlchemyCreditPurchaseRepository
from .payment_repository import SqlAlchemyPaymentRepository
from .webhook_event_repository import SqlAlchemyWebhookEventRepository
from .subscription_plan_repository import SqlAlchemySubscriptionPlanRepository

__all__ = [
    "SqlAlchemyUserAccountRepository",
    "SqlAlchemyLedgerEntryRepository",
    "SqlAlchemyCreditPurchaseRepository",
    "SqlAlchemyPaymentRepository",
    "SqlAlchemyWebhookEventRepository",
    "SqlAlchemySubscriptionPlanRepository",
]
