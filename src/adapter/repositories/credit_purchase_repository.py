"""SQLAlchemy implementation of CreditPurchaseRepository"""

from datetime import datetime
from typing import List, Optional, Sequence
from sqlalchemy import func, or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_purchase_repository import CreditPurchaseRepository
from src.domain.credit_purchase import CreditPurchase, PurchaseStatus


class SqlAlchemyCreditPurchaseRepository(CreditPurchaseRepository):
    """
    SQLAlchemy implementation of CreditPurchaseRepository

    Features:
    - Package row locking for at-most-once expiration
    - Soonest-to-expire ordering for spending
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, package_id: str, for_update: bool = False) -> Optional[CreditPurchase]:
        """
        Retrieve package by ID with optional row-level locking

        Args:
            package_id: Package identifier
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            CreditPurchase if found, None otherwise
        """
        stmt = select(CreditPurchase).where(CreditPurchase.id == package_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_gateway_reference(
        self,
        payment_id: Optional[str] = None,
        checkout_ids: Sequence[Optional[str]] = (),
    ) -> Optional[CreditPurchase]:
        conditions = []
        if payment_id:
            conditions.append(CreditPurchase.gateway_payment_id == payment_id)
        checkout_ids = [checkout_id for checkout_id in checkout_ids if checkout_id]
        if checkout_ids:
            conditions.append(CreditPurchase.gateway_checkout_id.in_(checkout_ids))
        if not conditions:
            return None

        stmt = select(CreditPurchase).where(or_(*conditions)).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_expired_unmarked(self, now: datetime, limit: int) -> List[CreditPurchase]:
        stmt = (
            select(CreditPurchase)
            .where(
                CreditPurchase.status == PurchaseStatus.CONFIRMED,
                CreditPurchase.is_expired == False,  # noqa: E712
                CreditPurchase.valid_until.is_not(None),
                CreditPurchase.valid_until < now,
            )
            .order_by(CreditPurchase.valid_until.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_spendable(self, user_id: str, now: datetime, for_update: bool = False) -> List[CreditPurchase]:
        stmt = (
            select(CreditPurchase)
            .where(
                CreditPurchase.user_id == user_id,
                CreditPurchase.status == PurchaseStatus.CONFIRMED,
                CreditPurchase.is_expired == False,  # noqa: E712
                CreditPurchase.used_credits < CreditPurchase.credit_amount,
                or_(CreditPurchase.valid_until.is_(None), CreditPurchase.valid_until > now),
            )
            .order_by(CreditPurchase.valid_until.is_(None), CreditPurchase.valid_until.asc())
        )

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_remaining_by_user(self) -> dict[str, int]:
        remaining = func.sum(CreditPurchase.credit_amount - CreditPurchase.used_credits)
        stmt = (
            select(CreditPurchase.user_id, remaining)
            .where(
                CreditPurchase.status == PurchaseStatus.CONFIRMED,
                CreditPurchase.is_expired == False,  # noqa: E712
            )
            .group_by(CreditPurchase.user_id)
        )
        result = await self.session.execute(stmt)
        return {user_id: int(total or 0) for user_id, total in result.all()}

    async def create(self, purchase: CreditPurchase) -> CreditPurchase:
        self.session.add(purchase)
        await self.session.flush()
        await self.session.refresh(purchase)
        return purchase

    async def update(self, purchase: CreditPurchase) -> CreditPurchase:
        self.session.add(purchase)
        await self.session.flush()
        return purchase
