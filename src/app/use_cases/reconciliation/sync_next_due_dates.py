"""SyncNextDueDates Job

Fills in the next charge date of active subscriptions that lack one.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import NotFoundError, TransientGatewayError
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import cycle_length
from src.domain.user_account import SubscriptionStatus
from .dtos import SyncNextDueDatesResultDTO

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_DUE_IN = timedelta(days=30)


class SyncNextDueDates:
    """
    Use Case: Sync next due dates

    Resolution order per user:
    1. Gateway subscription nextDueDate
    2. subscription_started_at + cycle length
    3. now + 30 days

    Transient gateway failures count as errors and leave the user for the
    next run. A subscription that is no longer ACTIVE at the gateway is skipped.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        gateway: Optional[PaymentGateway] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.gateway = gateway
        self.batch_size = batch_size

    async def _from_gateway(self, subscription_id: str) -> tuple[bool, Optional[datetime]]:
        """(still active at the gateway, next due date if known)"""
        if self.gateway is None:
            return True, None
        try:
            subscription = await self.gateway.get_subscription(subscription_id)
        except NotFoundError:
            logger.warning(f"Subscription {subscription_id} unknown to the gateway")
            return True, None
        if subscription.status and subscription.status != SubscriptionStatus.ACTIVE.value:
            return False, None
        return True, subscription.next_due_date

    async def execute(self, now: Optional[datetime] = None) -> Result[SyncNextDueDatesResultDTO]:
        now = now or utcnow()
        try:
            accounts = await self.user_repo.list_active_missing_due_date(self.batch_size)
        except Exception as e:
            return Return.err(
                Error(
                    code="SYNC_DUE_DATES_FAILED",
                    message="Failed to load users without next due date",
                    reason=str(e),
                )
            )

        result = SyncNextDueDatesResultDTO(users_checked=len(accounts))
        targets = [(account.id, account.subscription_id) for account in accounts]

        for user_id, subscription_id in targets:
            try:
                active, next_due_date = await self._from_gateway(subscription_id)
                if not active:
                    logger.warning(f"Subscription {subscription_id} of user {user_id} is not ACTIVE at the gateway")
                    continue

                account = await self.user_repo.get_by_id(user_id, for_update=True)
                if account is None or account.next_due_date is not None:
                    await self.uow.rollback()
                    continue

                if next_due_date is not None:
                    result.from_gateway += 1
                elif account.subscription_started_at is not None:
                    next_due_date = account.subscription_started_at + cycle_length(account.billing_cycle)
                    result.from_subscription_start += 1
                else:
                    next_due_date = now + DEFAULT_DUE_IN
                    result.from_default += 1
                    logger.warning(f"No anchor for user {user_id}, next due date defaulted to {next_due_date.date()}")

                account.next_due_date = next_due_date
                await self.user_repo.update(account)
                await self.uow.commit()
                result.users_updated += 1

            except TransientGatewayError as e:
                await self.uow.rollback()
                result.errors += 1
                logger.error(f"Gateway unavailable syncing user {user_id}: {e.reason or e.message}")
            except Exception as e:
                await self.uow.rollback()
                result.errors += 1
                logger.error(f"Error syncing next due date of user {user_id}: {e}")

        logger.info(
            f"Next due date sync: {result.users_updated}/{result.users_checked} updated, {result.errors} errors"
        )
        return Return.ok(result)
