"""Request schemas for Admin API"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from src.app.use_cases.credits.dtos import AdjustOperation, CreditPool
from src.domain.user_account import BillingCycle


class AdjustCreditsRequestSchema(BaseModel):
    """
    Request schema for a manual credit adjustment

    Used for POST /admin/credits/users/{user_id}/adjust endpoint.
    """

    type: CreditPool = Field(
        ...,
        description="Pool to adjust (PLAN or PURCHASED)"
    )

    operation: AdjustOperation = Field(
        ...,
        description="ADD or REMOVE"
    )

    amount: int = Field(
        ...,
        gt=0,
        description="Credit amount (must be > 0)"
    )

    reason: str = Field(
        ...,
        description="Audit reason (at least 10 characters)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "type": "PURCHASED",
                "operation": "ADD",
                "amount": 100,
                "reason": "Compensation for failed generations"
            }
        }


class RenewCreditsRequestSchema(BaseModel):
    """Manual renewal; every field defaults to the user's current subscription"""

    plan_id: Optional[str] = None
    billing_cycle: Optional[BillingCycle] = None
    cycle_start: Optional[datetime] = Field(
        default=None,
        description="Cycle being renewed; a renewal already covering it is skipped"
    )
