"""Subscription Plan Repository Interface"""

from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.subscription_plan import SubscriptionPlan


class SubscriptionPlanRepository(ABC):
    """Repository interface for SubscriptionPlan persistence"""

    @abstractmethod
    async def get_by_id(self, plan_id: str) -> Optional[SubscriptionPlan]:
        pass

    @abstractmethod
    async def list_active(self) -> List[SubscriptionPlan]:
        pass

    @abstractmethod
    async def create(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        """
        Persist a new plan

        Raises:
            IntegrityError: If the plan id already exists
        """
        pass
