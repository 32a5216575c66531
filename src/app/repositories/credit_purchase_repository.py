"""Credit Purchase Repository Interface

Defines the contract for purchased credit package persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence
from src.domain.credit_purchase import CreditPurchase


class CreditPurchaseRepository(ABC):
    """Repository interface for CreditPurchase persistence"""

    @abstractmethod
    async def get_by_id(self, package_id: str, for_update: bool = False) -> Optional[CreditPurchase]:
        """
        Retrieve package by ID

        Args:
            package_id: Package identifier
            for_update: If True, lock the row with SELECT FOR UPDATE
        """
        pass

    @abstractmethod
    async def find_by_gateway_reference(
        self,
        payment_id: Optional[str] = None,
        checkout_ids: Sequence[Optional[str]] = (),
    ) -> Optional[CreditPurchase]:
        """Match a purchase by gateway payment id or any of the checkout references"""
        pass

    @abstractmethod
    async def list_expired_unmarked(self, now: datetime, limit: int) -> List[CreditPurchase]:
        """CONFIRMED packages with valid_until < now and is_expired = False"""
        pass

    @abstractmethod
    async def list_spendable(self, user_id: str, now: datetime, for_update: bool = False) -> List[CreditPurchase]:
        """
        CONFIRMED, unexpired packages of a user with credits left,
        ordered by valid_until ascending (soonest to expire first)
        """
        pass

    @abstractmethod
    async def sum_remaining_by_user(self) -> dict[str, int]:
        """Remaining credits of CONFIRMED packages not yet marked expired, per user"""
        pass

    @abstractmethod
    async def create(self, purchase: CreditPurchase) -> CreditPurchase:
        pass

    @abstractmethod
    async def update(self, purchase: CreditPurchase) -> CreditPurchase:
        pass
