"""Payment Gateway Interface

Thin contract over the payment provider API, used by webhook handlers
and reconciliation jobs to fetch authoritative state.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel


class GatewaySubscription(BaseModel):
    id: str
    customer: str
    status: str
    cycle: Optional[str] = None
    value: Optional[Decimal] = None
    next_due_date: Optional[datetime] = None
    deleted: bool = False


class GatewayPayment(BaseModel):
    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    status: str
    value: Optional[Decimal] = None
    due_date: Optional[datetime] = None
    external_reference: Optional[str] = None


class PaymentGateway(ABC):
    """
    Abstract payment gateway client

    Raises:
        TransientGatewayError: Network failures and 5xx responses
        NotFoundError: Resource unknown to the gateway
    """

    @abstractmethod
    async def get_subscription(self, subscription_id: str) -> GatewaySubscription:
        pass

    @abstractmethod
    async def get_payment(self, payment_id: str) -> GatewayPayment:
        pass
