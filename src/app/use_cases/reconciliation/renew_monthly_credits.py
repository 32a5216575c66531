"""RenewMonthlyCredits Job

Safety net for monthly renewals whose payment webhook never arrived.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.use_cases.credits.dtos import RenewCreditsCommandDTO
from src.app.use_cases.credits.renew_subscription_credits import RenewSubscriptionCredits
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD
from src.domain.user_account import BillingCycle
from .dtos import RenewMonthlyCreditsResultDTO

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class RenewMonthlyCredits:
    """
    Use Case: Renew lapsed monthly subscription credits

    Selection: ACTIVE, MONTHLY, with a plan, and credits_expires_at older
    than the grace period. The lapsed credits_expires_at is passed as the
    renewal cycle_start, so a user renewed by a webhook after the lapse is
    skipped by the renewal guard.
    """

    def __init__(
        self,
        user_repo: UserAccountRepository,
        renew_credits: RenewSubscriptionCredits,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.user_repo = user_repo
        self.renew_credits = renew_credits
        self.grace_period = grace_period
        self.batch_size = batch_size

    async def execute(self, now: Optional[datetime] = None) -> Result[RenewMonthlyCreditsResultDTO]:
        now = now or utcnow()
        try:
            accounts = await self.user_repo.list_monthly_lapsed(now - self.grace_period, self.batch_size)
        except Exception as e:
            logger.error(f"Monthly credit renewal failed to load users: {e}")
            return Return.err(
                Error(
                    code="RENEW_MONTHLY_CREDITS_FAILED",
                    message="Failed to load lapsed monthly subscriptions",
                    reason=str(e),
                )
            )

        result = RenewMonthlyCreditsResultDTO(users_checked=len(accounts))
        targets = [(account.id, account.plan_id, account.credits_expires_at) for account in accounts]

        for user_id, plan_id, lapsed_at in targets:
            outcome = await self.renew_credits.execute(
                RenewCreditsCommandDTO(
                    user_id=user_id,
                    plan_id=plan_id,
                    billing_cycle=BillingCycle.MONTHLY,
                    cycle_start=lapsed_at,
                    reference_id=f"monthly-renewal:{now.date().isoformat()}",
                ),
                now=now,
            )
            if outcome.is_err():
                result.errors += 1
                logger.error(f"Failed to renew monthly credits of user {user_id}: {outcome.error.message}")
                continue
            if outcome.value.renewed:
                result.users_renewed += 1
                result.credits_granted += outcome.value.credits_granted
                logger.warning(f"Renewed monthly credits of user {user_id} without a payment webhook")
            else:
                result.already_renewed += 1

        logger.info(
            f"Monthly credit renewal: {result.users_renewed}/{result.users_checked} users, "
            f"{result.credits_granted} credits, {result.errors} errors"
        )
        return Return.ok(result)
