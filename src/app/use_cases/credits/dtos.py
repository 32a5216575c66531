"""Data Transfer Objects for Credit Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from src.domain.ledger_entry import CreditSource
from src.domain.user_account import BillingCycle


class CreditPool(str, Enum):
    PLAN = "PLAN"
    PURCHASED = "PURCHASED"


class AdjustOperation(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"


SPENDING_SOURCES = frozenset({
    CreditSource.GENERATION,
    CreditSource.TRAINING,
    CreditSource.UPSCALE,
    CreditSource.EDIT,
    CreditSource.VIDEO,
})


class AvailableCreditsDTO(BaseModel):
    """Available credits of a user, split by pool"""

    user_id: str = Field(..., description="User identifier")
    subscription: int = Field(..., ge=0, description="Subscription pool available now")
    purchased: int = Field(..., ge=0, description="Purchased pool available now")
    total: int = Field(..., ge=0, description="subscription + purchased")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "0c5e0c1e-5e8e-4a43-9a0e-0b8f6b0b6c11",
                "subscription": 450,
                "purchased": 100,
                "total": 550
            }
        }


class CreditSnapshotDTO(BaseModel):
    """Account credit state at one instant"""

    credits_limit: int
    credits_used: int
    purchased_balance: int
    subscription_available: int
    total_available: int


class AdjustCreditsCommandDTO(BaseModel):
    """
    Command DTO for an administrative credit adjustment

    Used as input to AdjustCredits use case.
    """

    user_id: str = Field(..., description="Target user")
    pool: CreditPool = Field(..., description="PLAN or PURCHASED")
    operation: AdjustOperation = Field(..., description="ADD or REMOVE")
    amount: int = Field(..., gt=0, description="Requested credit delta (must be > 0)")
    reason: str = Field(..., description="Audit reason")
    admin_id: Optional[str] = Field(default=None, description="Acting administrator")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "0c5e0c1e-5e8e-4a43-9a0e-0b8f6b0b6c11",
                "pool": "PURCHASED",
                "operation": "ADD",
                "amount": 100,
                "reason": "compensation for outage",
                "admin_id": "a1b2c3"
            }
        }


class AdjustCreditsResponseDTO(BaseModel):
    user_id: str
    ledger_entry_id: int
    pool: CreditPool
    operation: AdjustOperation
    requested_amount: int
    applied_amount: int
    clamped: bool
    before: CreditSnapshotDTO
    after: CreditSnapshotDTO


class RenewCreditsCommandDTO(BaseModel):
    """
    Command DTO for a subscription credit renewal

    cycle_start guards against double grants: the renewal is skipped when
    the account was already renewed at or after it.
    """

    user_id: str = Field(..., description="Target user")
    plan_id: Optional[str] = Field(default=None, description="Plan to renew on (defaults to the user's plan)")
    billing_cycle: Optional[BillingCycle] = Field(default=None, description="Cycle (defaults to the user's cycle)")
    cycle_start: Optional[datetime] = Field(default=None, description="Start of the billing cycle being paid")
    reference_id: Optional[str] = Field(default=None, description="Payment id or admin reference")
    admin_id: Optional[str] = Field(default=None, description="Acting administrator, for manual renewals")


class RenewCreditsResponseDTO(BaseModel):
    user_id: str
    renewed: bool
    plan_id: Optional[str] = None
    billing_cycle: Optional[BillingCycle] = None
    credits_granted: int = 0
    credits_expires_at: Optional[datetime] = None
    ledger_entry_id: Optional[int] = None


class SpendCreditsCommandDTO(BaseModel):
    """Command DTO for consuming credits"""

    user_id: str = Field(..., description="Spending user")
    amount: int = Field(..., gt=0, description="Credits to consume (must be > 0)")
    source: CreditSource = Field(default=CreditSource.GENERATION, description="What consumed the credits")
    description: Optional[str] = Field(default=None, max_length=255)
    reference_id: Optional[str] = Field(default=None, description="Generation/training id")

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "0c5e0c1e-5e8e-4a43-9a0e-0b8f6b0b6c11",
                "amount": 50,
                "source": "GENERATION",
                "description": "Image generation",
                "reference_id": "gen_123"
            }
        }


class SpendCreditsResponseDTO(BaseModel):
    user_id: str
    ledger_entry_id: int
    amount: int
    from_subscription: int
    from_purchased: int
    balance_after: int


class GrantPurchasedCreditsCommandDTO(BaseModel):
    package_id: str = Field(..., description="Credit purchase to confirm")
    gateway_payment_id: Optional[str] = Field(default=None, description="Confirming payment")


class GrantPurchasedCreditsResponseDTO(BaseModel):
    package_id: str
    user_id: str
    granted: bool
    credit_amount: int
    valid_until: Optional[datetime] = None
    ledger_entry_id: Optional[int] = None


class ExpirePackageResponseDTO(BaseModel):
    package_id: str
    user_id: str
    expired_now: bool
    credits_expired: int = 0
    ledger_entry_id: Optional[int] = None


class ExpireYearlyCreditsResponseDTO(BaseModel):
    user_id: str
    expired_now: bool
    credits_expired: int = 0
    ledger_entry_id: Optional[int] = None


class LedgerEntryDTO(BaseModel):
    id: int
    user_id: str
    kind: str
    source: str
    amount: int
    balance_after: int
    description: Optional[str] = None
    reference_id: Optional[str] = None
    credit_purchase_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class LedgerPageDTO(BaseModel):
    user_id: str
    entries: List[LedgerEntryDTO]
    total: int
    limit: int
    offset: int


class RecomputeLedgerResponseDTO(BaseModel):
    user_id: str
    current_total: int
    entries_total: int
    entries_updated: int


class RecomputeAllLedgersResponseDTO(BaseModel):
    users_processed: int = 0
    entries_updated: int = 0
    errors: int = 0
