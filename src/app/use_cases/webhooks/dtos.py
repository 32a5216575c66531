"""Data Transfer Objects for Webhook Use Cases

Gateway payloads use camelCase; aliases map them to snake_case fields.
Unknown keys are kept so the stored payload stays complete.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class GatewayPaymentPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    status: Optional[str] = None
    value: Optional[Decimal] = None
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    billing_type: Optional[str] = Field(default=None, alias="billingType")
    external_reference: Optional[str] = Field(default=None, alias="externalReference")
    checkout_session: Optional[str] = Field(default=None, alias="checkoutSession")


class GatewaySubscriptionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    customer: Optional[str] = None
    status: Optional[str] = None
    cycle: Optional[str] = None
    value: Optional[Decimal] = None
    next_due_date: Optional[date] = Field(default=None, alias="nextDueDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")


class WebhookPayloadDTO(BaseModel):
    """
    Webhook body as delivered by the gateway

    { "event": "...", "payment": {...}?, "subscription": {...}? }
    """

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "event": "PAYMENT_CONFIRMED",
                "payment": {
                    "id": "pay_080225913252",
                    "customer": "cus_000005219613",
                    "subscription": "sub_VXJBYgP2u0eO",
                    "status": "CONFIRMED",
                    "value": 89.9,
                    "dueDate": "2024-01-10",
                },
            }
        },
    )

    event: str = Field(..., min_length=1)
    payment: Optional[GatewayPaymentPayload] = None
    subscription: Optional[GatewaySubscriptionPayload] = None

    @property
    def payment_id(self) -> Optional[str]:
        return self.payment.id if self.payment else None

    @property
    def subscription_id(self) -> Optional[str]:
        return self.subscription.id if self.subscription else None


class WebhookAckDTO(BaseModel):
    received: bool = True
    event: str
    event_id: Optional[str] = None
    duplicate: bool = False
    processed: bool = False


class RetryResultDTO(BaseModel):
    """Counts of one retry pass; serialized with the gateway-facing camelCase key"""

    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    success: int = 0
    failed: int = 0
    max_retries_reached: int = Field(default=0, serialization_alias="maxRetriesReached")


class WebhookEventDTO(BaseModel):
    id: str
    event: str
    gateway_payment_id: Optional[str] = None
    gateway_subscription_id: Optional[str] = None
    processed: bool
    processing_error: Optional[str] = None
    retry_count: int
    created_at: datetime
    processed_at: Optional[datetime] = None
    payload: Dict[str, Any]


class DeadLetterPageDTO(BaseModel):
    events: List[WebhookEventDTO]
    total: int
    limit: int
    offset: int
