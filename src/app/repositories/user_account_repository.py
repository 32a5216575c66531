"""User Account Repository Interface

Defines the contract for account credit state persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from src.domain.user_account import UserAccount


class UserAccountRepository(ABC):
    """
    Repository interface for UserAccount persistence

    Balance writers read the account with for_update=True (SELECT FOR UPDATE)
    so concurrent mutations of the same user serialize.
    """

    @abstractmethod
    async def get_by_id(self, user_id: str, for_update: bool = False) -> Optional[UserAccount]:
        """
        Retrieve account by user ID

        Args:
            user_id: User identifier
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            UserAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_customer_id(self, customer_id: str) -> Optional[UserAccount]:
        """
        Retrieve account by payment gateway customer ID

        Args:
            customer_id: Gateway customer identifier

        Returns:
            UserAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, account: UserAccount) -> UserAccount:
        """Persist a new account"""
        pass

    @abstractmethod
    async def update(self, account: UserAccount) -> UserAccount:
        """
        Flush changes of an account

        Should be called within a transaction with the account already locked.
        """
        pass

    @abstractmethod
    async def list_yearly_expired(self, now: datetime, limit: int) -> List[UserAccount]:
        """
        Accounts on yearly billing whose credit cycle ended before ``now``
        """
        pass

    @abstractmethod
    async def list_monthly_lapsed(self, lapsed_before: datetime, limit: int) -> List[UserAccount]:
        """
        ACTIVE monthly accounts with a plan whose credit cycle ended at or
        before ``lapsed_before``
        """
        pass

    @abstractmethod
    async def list_active_with_subscription(self, after_id: Optional[str], limit: int) -> List[UserAccount]:
        """
        ACTIVE accounts with a gateway subscription, ordered by id

        Args:
            after_id: Keyset cursor, only ids greater than it are returned
            limit: Page size
        """
        pass

    @abstractmethod
    async def list_active_missing_due_date(self, limit: int) -> List[UserAccount]:
        """ACTIVE accounts with a subscription id but no next_due_date"""
        pass

    @abstractmethod
    async def list_active_with_overdue_latest_payment(self, limit: int) -> List[UserAccount]:
        """ACTIVE accounts whose most recent SUBSCRIPTION payment (by due date) is OVERDUE"""
        pass

    @abstractmethod
    async def get_purchased_balances(self) -> dict[str, int]:
        """Cached purchased pool of every account holding one (credits_balance > 0)"""
        pass

    @abstractmethod
    async def list_active_without_subscription_payments(self, limit: int) -> List[UserAccount]:
        """ACTIVE accounts with a subscription id and zero SUBSCRIPTION payment records"""
        pass
