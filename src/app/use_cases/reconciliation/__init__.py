from .expire_purchased_credits import ExpirePurchasedCredits
from .expire_yearly_credits import ExpireYearlyCredits
from .verify_payment_inconsistencies import VerifyPaymentInconsistencies
from .sync_next_due_dates import SyncNextDueDates
from .detect_balance_drift import DetectBalanceDrift
from .renew_monthly_credits import RenewMonthlyCredits
from .verify_subscriptions import VerifySubscriptions

__all__ = [
    "ExpirePurchasedCredits",
    "ExpireYearlyCredits",
    "VerifyPaymentInconsistencies",
    "SyncNextDueDates",
    "DetectBalanceDrift",
    "RenewMonthlyCredits",
    "VerifySubscriptions",
]
