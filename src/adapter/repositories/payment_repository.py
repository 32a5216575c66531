"""SQLAlchemy implementation of PaymentRepository"""

from datetime import datetime
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.base import utcnow
from src.domain.payment import Payment, PaymentStatus, PaymentType


class SqlAlchemyPaymentRepository(PaymentRepository):
    """SQLAlchemy implementation of PaymentRepository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_gateway_id(self, gateway_payment_id: str) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.gateway_payment_id == gateway_payment_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_subscription_payment(self, user_id: str) -> Optional[Payment]:
        stmt = (
            select(Payment)
            .where(
                Payment.user_id == user_id,
                Payment.type == PaymentType.SUBSCRIPTION,
            )
            .order_by(Payment.due_date.desc(), Payment.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_pending_past_due(self, now: datetime, limit: int) -> List[Payment]:
        stmt = (
            select(Payment)
            .where(
                Payment.status == PaymentStatus.PENDING,
                Payment.due_date.is_not(None),
                Payment.due_date < now,
            )
            .order_by(Payment.due_date.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, payment: Payment) -> Payment:
        self.session.add(payment)
        await self.session.flush()
        await self.session.refresh(payment)
        return payment

    async def update(self, payment: Payment) -> Payment:
        payment.updated_at = utcnow()
        self.session.add(payment)
        await self.session.flush()
        return payment
