"""CreatePlan Use Case"""

from libs.result import Result, Return, Error
from sqlalchemy.exc import IntegrityError
from src.app.errors import ErrorCode
from src.app.repositories.subscription_plan_repository import SubscriptionPlanRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.subscription_plan import SubscriptionPlan
from .dtos import CreatePlanCommandDTO, PlanResponseDTO


class CreatePlan:
    """
    Use Case: Create a subscription plan

    Re-creating an existing plan id is a conflict and writes nothing.
    """

    def __init__(self, uow: UnitOfWork, plan_repo: SubscriptionPlanRepository):
        self.uow = uow
        self.plan_repo = plan_repo

    async def execute(self, command: CreatePlanCommandDTO) -> Result[PlanResponseDTO]:
        conflict = Error(
            code=ErrorCode.PLAN_ALREADY_EXISTS,
            message=f"Plan {command.id} already exists",
        )
        try:
            existing = await self.plan_repo.get_by_id(command.id)
            if existing:
                return Return.err(conflict)

            plan = await self.plan_repo.create(
                SubscriptionPlan(
                    id=command.id,
                    name=command.name,
                    monthly_credits=command.monthly_credits,
                    monthly_price=command.monthly_price,
                    is_active=command.is_active,
                )
            )
            await self.uow.commit()

            return Return.ok(
                PlanResponseDTO(
                    id=plan.id,
                    name=plan.name,
                    monthly_credits=plan.monthly_credits,
                    monthly_price=plan.monthly_price,
                    is_active=plan.is_active,
                    created_at=plan.created_at,
                )
            )

        except IntegrityError:
            # Concurrent insert of the same id
            await self.uow.rollback()
            return Return.err(conflict)
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CREATE_PLAN_FAILED",
                    message="Failed to create plan",
                    reason=str(e),
                )
            )
