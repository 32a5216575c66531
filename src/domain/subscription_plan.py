"""Subscription Plan Domain Entity

Catalogue of plans and the monthly credit grant of each.
"""

from datetime import datetime
from decimal import Decimal
from sqlmodel import Field, Column
from sqlalchemy import Integer, Numeric, String
from src.domain.base import BaseModel, UTCDateTime, utcnow


class SubscriptionPlan(BaseModel, table=True):
    """
    Subscription Plan - credit grant per billing cycle

    Domain Rules:
    - id is the plan code (e.g. STARTER, PREMIUM) and is unique
    - monthly_credits is granted per month; yearly plans receive
      twelve months of credits up front
    """

    __tablename__ = "subscription_plans"

    id: str = Field(
        sa_column=Column(String(50), primary_key=True),
        description="Plan code"
    )

    name: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="Plan display name"
    )

    monthly_credits: int = Field(
        sa_column=Column(Integer, nullable=False),
        description="Credits granted per month"
    )

    monthly_price: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 2), nullable=False, default=0),
        description="Monthly price"
    )

    is_active: bool = Field(
        default=True,
        description="Whether new subscriptions may use the plan"
    )

    created_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Plan creation timestamp"
    )
