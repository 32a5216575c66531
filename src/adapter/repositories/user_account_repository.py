"""SQLAlchemy implementation of UserAccountRepository

Provides persistence for UserAccount entities with pessimistic locking support
so concurrent balance mutations of one user serialize.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import exists, func
from sqlalchemy.orm import aliased
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.user_account_repository import UserAccountRepository
from src.domain.base import utcnow
from src.domain.payment import Payment, PaymentStatus, PaymentType
from src.domain.user_account import BillingCycle, SubscriptionStatus, UserAccount


class SqlAlchemyUserAccountRepository(UserAccountRepository):
    """
    SQLAlchemy implementation of UserAccountRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Batch-limited scans for the reconciliation jobs
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str, for_update: bool = False) -> Optional[UserAccount]:
        """
        Retrieve account by ID with optional row-level locking

        Args:
            user_id: User identifier
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            UserAccount if found, None otherwise
        """
        stmt = select(UserAccount).where(UserAccount.id == user_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_customer_id(self, customer_id: str) -> Optional[UserAccount]:
        stmt = select(UserAccount).where(UserAccount.gateway_customer_id == customer_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, account: UserAccount) -> UserAccount:
        self.session.add(account)
        await self.session.flush()
        await self.session.refresh(account)
        return account

    async def update(self, account: UserAccount) -> UserAccount:
        """
        Flush account changes and bump updated_at

        Note:
            Should be called within a transaction with the account already locked
        """
        account.updated_at = utcnow()
        self.session.add(account)
        await self.session.flush()
        return account

    async def list_yearly_expired(self, now: datetime, limit: int) -> List[UserAccount]:
        stmt = (
            select(UserAccount)
            .where(
                UserAccount.billing_cycle == BillingCycle.YEARLY,
                UserAccount.credits_expires_at.is_not(None),
                UserAccount.credits_expires_at < now,
            )
            .order_by(UserAccount.credits_expires_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_monthly_lapsed(self, lapsed_before: datetime, limit: int) -> List[UserAccount]:
        stmt = (
            select(UserAccount)
            .where(
                UserAccount.subscription_status == SubscriptionStatus.ACTIVE,
                UserAccount.billing_cycle == BillingCycle.MONTHLY,
                UserAccount.plan_id.is_not(None),
                UserAccount.credits_expires_at.is_not(None),
                UserAccount.credits_expires_at <= lapsed_before,
            )
            .order_by(UserAccount.credits_expires_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active_with_subscription(self, after_id: Optional[str], limit: int) -> List[UserAccount]:
        stmt = select(UserAccount).where(
            UserAccount.subscription_status == SubscriptionStatus.ACTIVE,
            UserAccount.subscription_id.is_not(None),
        )
        if after_id is not None:
            stmt = stmt.where(UserAccount.id > after_id)
        stmt = stmt.order_by(UserAccount.id).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active_missing_due_date(self, limit: int) -> List[UserAccount]:
        stmt = (
            select(UserAccount)
            .where(
                UserAccount.subscription_status == SubscriptionStatus.ACTIVE,
                UserAccount.subscription_id.is_not(None),
                UserAccount.next_due_date.is_(None),
            )
            .order_by(UserAccount.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active_without_subscription_payments(self, limit: int) -> List[UserAccount]:
        has_payment = exists().where(
            Payment.user_id == UserAccount.id,
            Payment.type == PaymentType.SUBSCRIPTION,
        )
        stmt = (
            select(UserAccount)
            .where(
                UserAccount.subscription_status == SubscriptionStatus.ACTIVE,
                UserAccount.subscription_id.is_not(None),
                ~has_payment,
            )
            .order_by(UserAccount.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active_with_overdue_latest_payment(self, limit: int) -> List[UserAccount]:
        previous = aliased(Payment)
        latest_due_date = (
            select(func.max(previous.due_date))
            .where(
                previous.user_id == UserAccount.id,
                previous.type == PaymentType.SUBSCRIPTION,
            )
            .scalar_subquery()
        )
        latest_is_overdue = exists().where(
            Payment.user_id == UserAccount.id,
            Payment.type == PaymentType.SUBSCRIPTION,
            Payment.status == PaymentStatus.OVERDUE,
            Payment.due_date == latest_due_date,
        )
        stmt = (
            select(UserAccount)
            .where(
                UserAccount.subscription_status == SubscriptionStatus.ACTIVE,
                latest_is_overdue,
            )
            .order_by(UserAccount.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_purchased_balances(self) -> dict[str, int]:
        stmt = select(UserAccount.id, UserAccount.credits_balance).where(UserAccount.credits_balance > 0)
        result = await self.session.execute(stmt)
        return {user_id: balance for user_id, balance in result.all()}
