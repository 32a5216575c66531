"""Payment Repository Interface

Defines the contract for payment record persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from src.domain.payment import Payment


class PaymentRepository(ABC):
    """Repository interface for Payment persistence"""

    @abstractmethod
    async def get_by_gateway_id(self, gateway_payment_id: str) -> Optional[Payment]:
        """Retrieve payment by gateway payment id"""
        pass

    @abstractmethod
    async def get_latest_subscription_payment(self, user_id: str) -> Optional[Payment]:
        """Most recent SUBSCRIPTION payment of a user by due date"""
        pass

    @abstractmethod
    async def list_pending_past_due(self, now: datetime, limit: int) -> List[Payment]:
        """PENDING payments with due_date < now"""
        pass

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    async def update(self, payment: Payment) -> Payment:
        pass
