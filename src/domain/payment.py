"""Payment Domain Entity

Local mirror of a gateway charge. Drives subscription status transitions;
not part of the credit ledger.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import Numeric, String
from src.domain.base import BaseModel, generate_uuid, UTCDateTime, utcnow
from src.domain.user_account import BillingCycle


class PaymentType(str, Enum):
    """What the payment pays for"""
    SUBSCRIPTION = "SUBSCRIPTION"
    CREDIT_PURCHASE = "CREDIT_PURCHASE"


class PaymentStatus(str, Enum):
    """Payment status"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    OVERDUE = "OVERDUE"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class Payment(BaseModel, table=True):
    """
    Payment - a charge issued by the payment gateway

    Domain Rules:
    - gateway_payment_id is unique
    - Status transitions: PENDING -> CONFIRMED | OVERDUE -> CONFIRMED,
      any -> REFUNDED | CANCELLED
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index('ix_payments_status_due_date', 'status', 'due_date'),
        Index('ix_payments_user_type', 'user_id', 'type'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Payment identifier"
    )

    user_id: str = Field(
        sa_column=Column(String(64), nullable=False),
        description="Paying user"
    )

    gateway_payment_id: Optional[str] = Field(
        default=None,
        unique=True,
        index=True,
        description="Payment id at the gateway"
    )

    type: PaymentType = Field(
        description="SUBSCRIPTION or CREDIT_PURCHASE"
    )

    status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        description="Payment status"
    )

    value: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 2), nullable=False, default=0),
        description="Charged value"
    )

    plan_id: Optional[str] = Field(
        default=None,
        description="Plan paid for (subscription payments)"
    )

    billing_cycle: Optional[BillingCycle] = Field(
        default=None,
        description="Billing cycle paid for (subscription payments)"
    )

    due_date: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="Charge due date"
    )

    confirmed_date: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="Confirmation timestamp"
    )

    created_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Record creation timestamp"
    )

    updated_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Last update timestamp"
    )
