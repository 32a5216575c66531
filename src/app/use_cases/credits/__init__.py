from .get_available_credits import GetAvailableCredits
from .adjust_credits import AdjustCredits
from .renew_subscription_credits import RenewSubscriptionCredits
from .spend_credits import SpendCredits
from .grant_purchased_credits import GrantPurchasedCredits
from .expire_purchase_package import ExpirePurchasePackage
from .expire_yearly_subscription_credits import ExpireYearlySubscriptionCredits
from .recompute_ledger import RecomputeLedger, RecomputeAllLedgers
from .list_ledger_entries import ListLedgerEntries

__all__ = [
    "GetAvailableCredits",
    "AdjustCredits",
    "RenewSubscriptionCredits",
    "SpendCredits",
    "GrantPurchasedCredits",
    "ExpirePurchasePackage",
    "ExpireYearlySubscriptionCredits",
    "RecomputeLedger",
    "RecomputeAllLedgers",
    "ListLedgerEntries",
]
