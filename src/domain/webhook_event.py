"""Webhook Event Domain Entity

Durable record of every gateway callback, doubling as the retry queue.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, String, Text
from src.domain.base import BaseModel, generate_uuid, UTCDateTime, utcnow


class WebhookEventType(str, Enum):
    """Gateway event types understood by the dispatcher"""
    PAYMENT_CREATED = "PAYMENT_CREATED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAYMENT_OVERDUE = "PAYMENT_OVERDUE"
    PAYMENT_DELETED = "PAYMENT_DELETED"
    PAYMENT_REFUNDED = "PAYMENT_REFUNDED"
    PAYMENT_RESTORED = "PAYMENT_RESTORED"
    PAYMENT_UNAUTHORIZED = "PAYMENT_UNAUTHORIZED"
    PAYMENT_CHARGEBACK_REQUESTED = "PAYMENT_CHARGEBACK_REQUESTED"
    PAYMENT_CHARGEBACK_DISPUTE = "PAYMENT_CHARGEBACK_DISPUTE"
    PAYMENT_AWAITING_CHARGEBACK_REVERSAL = "PAYMENT_AWAITING_CHARGEBACK_REVERSAL"
    PAYMENT_AWAITING_RISK_ANALYSIS = "PAYMENT_AWAITING_RISK_ANALYSIS"
    PAYMENT_APPROVED_BY_RISK_ANALYSIS = "PAYMENT_APPROVED_BY_RISK_ANALYSIS"
    PAYMENT_REPROVED_BY_RISK_ANALYSIS = "PAYMENT_REPROVED_BY_RISK_ANALYSIS"
    PAYMENT_REFUND_IN_PROGRESS = "PAYMENT_REFUND_IN_PROGRESS"
    PAYMENT_CREDITED = "PAYMENT_CREDITED"
    PAYMENT_ANTICIPATED = "PAYMENT_ANTICIPATED"
    PAYMENT_CHECKOUT_VIEWED = "PAYMENT_CHECKOUT_VIEWED"
    PAYMENT_DUNNING_RECEIVED = "PAYMENT_DUNNING_RECEIVED"
    PAYMENT_DUNNING_REQUESTED = "PAYMENT_DUNNING_REQUESTED"
    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_UPDATED = "SUBSCRIPTION_UPDATED"
    SUBSCRIPTION_EXPIRED = "SUBSCRIPTION_EXPIRED"
    SUBSCRIPTION_CANCELLED = "SUBSCRIPTION_CANCELLED"
    SUBSCRIPTION_REACTIVATED = "SUBSCRIPTION_REACTIVATED"

    @property
    def is_payment_event(self) -> bool:
        return self.value.startswith("PAYMENT_")

    @property
    def is_subscription_event(self) -> bool:
        return self.value.startswith("SUBSCRIPTION_")

    @classmethod
    def parse(cls, raw: str) -> Optional["WebhookEventType"]:
        try:
            return cls(raw)
        except ValueError:
            return None


class WebhookEvent(BaseModel, table=True):
    """
    Webhook Event - one gateway callback delivery

    Lifecycle:
    - Created with processed=False on receipt
    - processed flips to True after successful handling
    - Each failed attempt increments retry_count and stores processing_error
    - Once retry_count reaches the retry budget the event is dead-lettered:
      it stays processed=False and retry scans skip it
    """

    __tablename__ = "webhook_events"
    __table_args__ = (
        Index('ix_webhook_events_retry_scan', 'processed', 'retry_count', 'created_at'),
        Index('ix_webhook_events_dedup', 'event', 'gateway_payment_id', 'gateway_subscription_id'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Event record identifier"
    )

    event: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="Gateway event type as delivered"
    )

    gateway_payment_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
        description="Payment id carried by the event"
    )

    gateway_subscription_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(100), nullable=True),
        description="Subscription id carried by the event"
    )

    payload: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
        description="Raw event body"
    )

    processed: bool = Field(
        default=False,
        description="True once handled successfully"
    )

    processing_error: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Last processing error"
    )

    retry_count: int = Field(
        default=0,
        description="Number of failed processing attempts"
    )

    created_at: datetime = Field(
        sa_type=UTCDateTime,
        default_factory=utcnow,
        description="Receipt timestamp"
    )

    processed_at: Optional[datetime] = Field(
        sa_type=UTCDateTime,
        default=None,
        description="Successful processing timestamp"
    )

    @property
    def event_type(self) -> Optional[WebhookEventType]:
        return WebhookEventType.parse(self.event)
