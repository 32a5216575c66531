"""Credit Purchase Domain Entity

A purchased (or bonus) credit package with its own validity window.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import Integer, String
from src.domain.base import BaseModel, generate_uuid, UTCDateTime, utcnow


class PurchaseStatus(str, Enum):
    """Credit purchase status"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class CreditPurchase(BaseModel, table=True):
    """
    Credit Purchase - purchased credit package

    Domain Rules:
    - Created PENDING at checkout, CONFIRMED when the payment is confirmed
    - used_credits grows as the package is spent, never above credit_amount
    - is_expired flips false -> true exactly once, by the expiration job
    """

    __tablename__ = "credit_purchases"
    __table_args__ = (
        Index('ix_credit_purchases_expiration', 'is_expired', 'valid_until'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Package identifier"
    )

    user_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Owner of the package"
    )

    package_name: str = Field(
        default="",
        sa_column=Column(String(100), nullable=False, default=""),
        description="Display name of the purchased package"
    )

    credit_amount: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Credits granted by the package"
    )

    used_credits: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Credits already spent from the package"
    )

    status: PurchaseStatus = Field(
        default=PurchaseStatus.PENDING,
        description="Purchase status"
    )

    valid_until: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="Expiration of the package credits"
    )

    is_expired: bool = Field(
        default=False,
        description="Set once by the expiration job"
    )

    gateway_payment_id: Optional[str] = Field(
        default=None,
        index=True,
        description="Payment id at the gateway"
    )

    gateway_checkout_id: Optional[str] = Field(
        default=None,
        index=True,
        description="Checkout session id at the gateway"
    )

    confirmed_at: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="Payment confirmation timestamp"
    )

    created_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Purchase creation timestamp"
    )

    @property
    def remaining_credits(self) -> int:
        return max(0, self.credit_amount - self.used_credits)
