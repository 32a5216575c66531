"""ExpireYearlyCredits Job"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.use_cases.credits.expire_yearly_subscription_credits import ExpireYearlySubscriptionCredits
from src.domain.base import utcnow
from .dtos import ExpireYearlyCreditsResultDTO

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class ExpireYearlyCredits:
    """
    Use Case: Expire yearly subscription credits

    Selection: billing_cycle = YEARLY AND credits_expires_at < now, at most
    batch_size users per run. Failures are isolated per user.
    """

    def __init__(
        self,
        user_repo: UserAccountRepository,
        expire_user: ExpireYearlySubscriptionCredits,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.user_repo = user_repo
        self.expire_user = expire_user
        self.batch_size = batch_size

    async def execute(self, now: Optional[datetime] = None) -> Result[ExpireYearlyCreditsResultDTO]:
        now = now or utcnow()
        try:
            accounts = await self.user_repo.list_yearly_expired(now, self.batch_size)
        except Exception as e:
            logger.error(f"Yearly credit expiration failed to load users: {e}")
            return Return.err(
                Error(
                    code="EXPIRE_YEARLY_CREDITS_FAILED",
                    message="Failed to load users with expired yearly credits",
                    reason=str(e),
                )
            )

        result = ExpireYearlyCreditsResultDTO(users_checked=len(accounts))
        user_ids = [account.id for account in accounts]

        for user_id in user_ids:
            outcome = await self.expire_user.execute(user_id, now=now)
            if outcome.is_err():
                result.errors += 1
                logger.error(f"Failed to expire yearly credits of user {user_id}: {outcome.error.reason}")
                continue
            if outcome.value.expired_now:
                result.users_expired += 1
                result.credits_expired += outcome.value.credits_expired

        logger.info(
            f"Yearly credit expiration: {result.users_expired}/{result.users_checked} users, "
            f"{result.credits_expired} credits, {result.errors} errors"
        )
        return Return.ok(result)
