"""Data Transfer Objects for Reconciliation Jobs

Each job reports per-category counts.
"""

from datetime import datetime
from typing import List
from pydantic import BaseModel, Field


class ExpirePurchasedCreditsResultDTO(BaseModel):
    packages_checked: int = 0
    packages_expired: int = 0
    credits_expired: int = 0
    errors: int = 0


class ExpireYearlyCreditsResultDTO(BaseModel):
    users_checked: int = 0
    users_expired: int = 0
    credits_expired: int = 0
    errors: int = 0


class PaymentInconsistencyResultDTO(BaseModel):
    active_users_with_overdue: int = 0
    pending_payments_now_overdue: int = 0
    active_users_without_payments: int = 0
    flagged_user_ids: List[str] = Field(default_factory=list)
    errors: int = 0


class SyncNextDueDatesResultDTO(BaseModel):
    users_checked: int = 0
    users_updated: int = 0
    from_gateway: int = 0
    from_subscription_start: int = 0
    from_default: int = 0
    errors: int = 0


class RenewMonthlyCreditsResultDTO(BaseModel):
    users_checked: int = 0
    users_renewed: int = 0
    credits_granted: int = 0
    already_renewed: int = 0
    errors: int = 0


class VerifySubscriptionsResultDTO(BaseModel):
    users_checked: int = 0
    expired_annual: int = 0
    status_synced: int = 0
    errors: int = 0


class BalanceDriftDTO(BaseModel):
    """Cached purchased pool vs. remaining credits of live packages"""

    user_id: str
    cached_balance: int
    packages_remaining: int
    drift: int = Field(..., description="cached_balance - packages_remaining")


class BalanceDriftReportDTO(BaseModel):
    users_checked: int
    drifts_found: int
    drifts: List[BalanceDriftDTO]
    checked_at: datetime
    execution_time_ms: int
