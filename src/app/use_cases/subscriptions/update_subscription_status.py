"""UpdateSubscriptionStatus Use Case

Writes the target subscription state of a user. Credits are never touched
here; renewals go through RenewSubscriptionCredits.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, NotFoundError
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.user_account import SubscriptionStatus
from .dtos import SubscriptionStatusResponseDTO, UpdateSubscriptionStatusCommandDTO

logger = logging.getLogger(__name__)

ENDED_STATUSES = frozenset({SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED})


class UpdateSubscriptionStatus:
    """
    Use Case: Set a user's subscription status

    Business Rules:
    1. Absolute writes only (set status = X), safe to replay
    2. First activation records subscription_started_at
    3. Plan is kept on OVERDUE/CANCELLED/EXPIRED; status gates access
    4. Ending a subscription stamps subscription_ends_at once
    """

    def __init__(self, uow: UnitOfWork, user_repo: UserAccountRepository):
        self.uow = uow
        self.user_repo = user_repo

    async def execute(
        self, command: UpdateSubscriptionStatusCommandDTO, now: Optional[datetime] = None
    ) -> Result[SubscriptionStatusResponseDTO]:
        now = now or utcnow()
        try:
            account = await self.user_repo.get_by_id(command.user_id, for_update=True)
            if not account:
                raise NotFoundError(f"User {command.user_id} not found", code=ErrorCode.USER_NOT_FOUND)

            previous = account.subscription_status
            account.subscription_status = command.status

            if command.status == SubscriptionStatus.ACTIVE and account.subscription_started_at is None:
                account.subscription_started_at = now
            if command.subscription_id:
                account.subscription_id = command.subscription_id
            if command.plan_id:
                account.plan_id = command.plan_id
            if command.billing_cycle:
                account.billing_cycle = command.billing_cycle
            if command.next_due_date:
                account.next_due_date = command.next_due_date
            if command.subscription_ends_at:
                account.subscription_ends_at = command.subscription_ends_at
            elif command.status in ENDED_STATUSES and account.subscription_ends_at is None:
                account.subscription_ends_at = now

            await self.user_repo.update(account)
            await self.uow.commit()

            if previous != command.status:
                logger.info(
                    f"Subscription status of user {account.id}: "
                    f"{previous.value if previous else None} -> {command.status.value}"
                )

            return Return.ok(
                SubscriptionStatusResponseDTO(
                    user_id=account.id,
                    previous_status=previous,
                    status=command.status,
                    changed=previous != command.status,
                )
            )

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="UPDATE_SUBSCRIPTION_FAILED",
                    message="Failed to update subscription status",
                    reason=str(e),
                )
            )
