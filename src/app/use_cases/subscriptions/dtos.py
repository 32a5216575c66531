"""Data Transfer Objects for Subscription Use Cases"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from src.domain.user_account import BillingCycle, SubscriptionStatus


class UpdateSubscriptionStatusCommandDTO(BaseModel):
    """
    Command DTO for a subscription status transition

    Every field besides status is optional and only written when given, so
    replaying the same command is a no-op.
    """

    user_id: str = Field(..., description="Target user")
    status: SubscriptionStatus = Field(..., description="Target status")
    subscription_id: Optional[str] = Field(default=None, description="Gateway subscription to link")
    plan_id: Optional[str] = Field(default=None)
    billing_cycle: Optional[BillingCycle] = Field(default=None)
    next_due_date: Optional[datetime] = Field(default=None)
    subscription_ends_at: Optional[datetime] = Field(default=None)


class SubscriptionStatusResponseDTO(BaseModel):
    user_id: str
    previous_status: Optional[SubscriptionStatus] = None
    status: SubscriptionStatus
    changed: bool


class CreatePlanCommandDTO(BaseModel):
    """Command DTO for creating a subscription plan"""

    id: str = Field(..., min_length=1, max_length=50, description="Plan code, e.g. PREMIUM")
    name: str = Field(..., min_length=1, max_length=100)
    monthly_credits: int = Field(..., gt=0, description="Credits granted per month")
    monthly_price: Decimal = Field(default=Decimal("0"), ge=0)
    is_active: bool = Field(default=True)

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: str) -> str:
        return v.strip().upper()

    class Config:
        json_schema_extra = {
            "example": {
                "id": "PREMIUM",
                "name": "Premium",
                "monthly_credits": 1200,
                "monthly_price": "89.90",
                "is_active": True
            }
        }


class PlanResponseDTO(BaseModel):
    id: str
    name: str
    monthly_credits: int
    monthly_price: Decimal
    is_active: bool
    created_at: datetime
