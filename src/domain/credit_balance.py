"""Credit Balance Computation

Pure functions deriving a user's available credits from the account state.
Every writer computes ``balance_after`` through ``compute_available_credits``
so ledger snapshots and balance reads agree.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from src.domain.user_account import BillingCycle, UserAccount

DEFAULT_GRACE_PERIOD = timedelta(hours=24)

CYCLE_LENGTHS = {
    BillingCycle.MONTHLY: timedelta(days=30),
    BillingCycle.YEARLY: timedelta(days=365),
}


@dataclass(frozen=True)
class CreditBalance:
    subscription: int
    purchased: int

    @property
    def total(self) -> int:
        return self.subscription + self.purchased


def cycle_length(billing_cycle: Optional[BillingCycle]) -> timedelta:
    return CYCLE_LENGTHS.get(billing_cycle or BillingCycle.MONTHLY)


def subscription_credits_available(
    account: UserAccount,
    now: datetime,
    grace_period: timedelta = DEFAULT_GRACE_PERIOD,
) -> int:
    """
    Subscription pool available at ``now``

    - No expiry or expiry in the future: max(0, limit - used)
    - Expired, but renewed at/after the expiry: post-renewal state
    - Expired less than ``grace_period`` ago: still granted (late renewal webhook)
    - Expired longer than that: 0
    """
    remaining = max(0, account.credits_limit - account.credits_used)
    expires_at = account.credits_expires_at

    if expires_at is None or expires_at > now:
        return remaining

    renewed_at = account.last_credit_renewal_at
    if renewed_at is not None and renewed_at >= expires_at:
        return remaining

    if now - expires_at <= grace_period:
        return remaining

    return 0


def compute_available_credits(
    account: UserAccount,
    now: datetime,
    grace_period: timedelta = DEFAULT_GRACE_PERIOD,
) -> CreditBalance:
    return CreditBalance(
        subscription=subscription_credits_available(account, now, grace_period),
        purchased=max(0, account.credits_balance),
    )
