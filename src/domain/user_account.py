"""User Account Domain Entity

Account Credit State embedded in the user record. Holds the two credit pools
(subscription cycle and purchased) and the subscription lifecycle fields that
drive them.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, Integer, String
from src.domain.base import BaseModel, generate_uuid, UTCDateTime, utcnow


class UserRole(str, Enum):
    """User roles"""
    USER = "USER"
    ADMIN = "ADMIN"


class SubscriptionStatus(str, Enum):
    """Subscription status as mirrored from the payment gateway"""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    CHARGEBACK = "CHARGEBACK"


class BillingCycle(str, Enum):
    """Subscription billing cycle"""
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class UserAccount(BaseModel, table=True):
    """
    User Account - credit state and subscription lifecycle of one user

    Domain Rules:
    - credits_balance (purchased pool) is never negative
    - credits_used may transiently exceed credits_limit; availability is
      always computed as max(0, credits_limit - credits_used)
    - Credit fields are only written by the balance use cases, which
      lock the row (SELECT FOR UPDATE) and append a ledger entry in the
      same transaction
    """

    __tablename__ = "user_accounts"
    __table_args__ = (
        CheckConstraint('credits_balance >= 0', name='credits_balance_non_negative'),
        Index('ix_user_accounts_subscription_status', 'subscription_status'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="User identifier"
    )

    email: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True),
        description="User e-mail"
    )

    role: UserRole = Field(
        default=UserRole.USER,
        description="User role (USER, ADMIN)"
    )

    plan_id: Optional[str] = Field(
        default=None,
        description="Current subscription plan identifier"
    )

    billing_cycle: Optional[BillingCycle] = Field(
        default=None,
        description="Billing cycle of the current subscription"
    )

    subscription_status: Optional[SubscriptionStatus] = Field(
        default=None,
        description="Subscription status mirrored from the gateway"
    )

    gateway_customer_id: Optional[str] = Field(
        default=None,
        index=True,
        unique=True,
        description="Customer id at the payment gateway"
    )

    subscription_id: Optional[str] = Field(
        default=None,
        index=True,
        description="Subscription id at the payment gateway"
    )

    subscription_started_at: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="First activation of the subscription"
    )

    subscription_ends_at: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="End of the subscription (set on cancellation)"
    )

    next_due_date: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="Next charge due date at the gateway"
    )

    credits_limit: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Subscription credits granted this cycle"
    )

    credits_used: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Subscription credits consumed this cycle"
    )

    credits_balance: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Purchased/bonus credits (cached sum of live packages)"
    )

    credits_expires_at: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="End of the current credit cycle"
    )

    last_credit_renewal_at: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="Timestamp of the last subscription credit renewal"
    )

    created_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Last update timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "0c5e0c1e-5e8e-4a43-9a0e-0b8f6b0b6c11",
                "email": "ana@example.com",
                "role": "USER",
                "plan_id": "PREMIUM",
                "billing_cycle": "MONTHLY",
                "subscription_status": "ACTIVE",
                "gateway_customer_id": "cus_000005219613",
                "subscription_id": "sub_VXJBYgP2u0eO",
                "credits_limit": 1200,
                "credits_used": 150,
                "credits_balance": 300,
                "credits_expires_at": "2024-02-01T00:00:00Z",
                "last_credit_renewal_at": "2024-01-01T00:00:00Z"
            }
        }
