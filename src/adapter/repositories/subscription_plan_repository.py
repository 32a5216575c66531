"""SQLAlchemy implementation of SubscriptionPlanRepository"""

from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.subscription_plan_repository import SubscriptionPlanRepository
from src.domain.subscription_plan import SubscriptionPlan


class SqlAlchemySubscriptionPlanRepository(SubscriptionPlanRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, plan_id: str) -> Optional[SubscriptionPlan]:
        stmt = select(SubscriptionPlan).where(SubscriptionPlan.id == plan_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_active(self) -> List[SubscriptionPlan]:
        stmt = (
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active == True)  # noqa: E712
            .order_by(SubscriptionPlan.monthly_credits.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        """
        Create a new plan

        Raises:
            IntegrityError: If the plan id already exists
        """
        self.session.add(plan)
        await self.session.flush()
        await self.session.refresh(plan)
        return plan
