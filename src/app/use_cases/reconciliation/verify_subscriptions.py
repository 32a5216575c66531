"""VerifySubscriptions Job

Re-checks locally ACTIVE subscriptions against the gateway and ends yearly
subscriptions past their end date.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import NotFoundError, TransientGatewayError
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.payment_gateway import PaymentGateway
from src.app.use_cases.subscriptions.dtos import UpdateSubscriptionStatusCommandDTO
from src.app.use_cases.subscriptions.update_subscription_status import UpdateSubscriptionStatus
from src.domain.base import utcnow
from src.domain.user_account import BillingCycle, SubscriptionStatus
from .dtos import VerifySubscriptionsResultDTO

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_ANNUAL_GRACE = timedelta(days=7)

# Gateway subscription status -> local status
GATEWAY_ENDED_STATUSES = {
    "EXPIRED": SubscriptionStatus.EXPIRED,
    "INACTIVE": SubscriptionStatus.CANCELLED,
}


class VerifySubscriptions:
    """
    Use Case: Verify active subscriptions

    Per ACTIVE user with a gateway subscription, in order:
    1. Yearly subscription ended more than annual_grace ago -> EXPIRED
    2. Deleted, INACTIVE or unknown at the gateway -> CANCELLED
    3. EXPIRED at the gateway -> EXPIRED

    Users are walked in pages of batch_size. Transient gateway errors count
    as errors and leave the user untouched for the next run.
    """

    def __init__(
        self,
        user_repo: UserAccountRepository,
        update_status: UpdateSubscriptionStatus,
        gateway: Optional[PaymentGateway] = None,
        annual_grace: timedelta = DEFAULT_ANNUAL_GRACE,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.user_repo = user_repo
        self.update_status = update_status
        self.gateway = gateway
        self.annual_grace = annual_grace
        self.batch_size = batch_size

    async def _gateway_status(self, subscription_id: str) -> Optional[SubscriptionStatus]:
        """Local status the gateway state calls for, None when still active"""
        try:
            subscription = await self.gateway.get_subscription(subscription_id)
        except NotFoundError:
            logger.warning(f"Subscription {subscription_id} unknown to the gateway")
            return SubscriptionStatus.CANCELLED
        if subscription.deleted:
            return SubscriptionStatus.CANCELLED
        return GATEWAY_ENDED_STATUSES.get(subscription.status)

    async def _target_status(
        self, subscription_id: str, billing_cycle: Optional[BillingCycle], ends_at: Optional[datetime], now: datetime
    ) -> tuple[Optional[SubscriptionStatus], bool]:
        """(status to set or None, whether it is an annual expiry)"""
        if billing_cycle == BillingCycle.YEARLY and ends_at is not None and now > ends_at + self.annual_grace:
            return SubscriptionStatus.EXPIRED, True
        if self.gateway is None:
            return None, False
        return await self._gateway_status(subscription_id), False

    async def execute(self, now: Optional[datetime] = None) -> Result[VerifySubscriptionsResultDTO]:
        now = now or utcnow()
        result = VerifySubscriptionsResultDTO()
        after_id = None

        while True:
            try:
                accounts = await self.user_repo.list_active_with_subscription(after_id, self.batch_size)
            except Exception as e:
                logger.error(f"Subscription verification failed to load users: {e}")
                return Return.err(
                    Error(
                        code="VERIFY_SUBSCRIPTIONS_FAILED",
                        message="Failed to load active subscriptions",
                        reason=str(e),
                    )
                )
            if not accounts:
                break

            targets = [
                (account.id, account.subscription_id, account.billing_cycle, account.subscription_ends_at)
                for account in accounts
            ]
            after_id = targets[-1][0]

            for user_id, subscription_id, billing_cycle, ends_at in targets:
                result.users_checked += 1
                try:
                    status, annual = await self._target_status(subscription_id, billing_cycle, ends_at, now)
                    if status is None:
                        continue

                    outcome = await self.update_status.execute(
                        UpdateSubscriptionStatusCommandDTO(user_id=user_id, status=status), now=now
                    )
                    if outcome.is_err():
                        result.errors += 1
                        logger.error(f"Failed to set user {user_id} {status.value}: {outcome.error.message}")
                        continue

                    if annual:
                        result.expired_annual += 1
                    else:
                        result.status_synced += 1
                    logger.warning(f"Subscription {subscription_id} of user {user_id} set {status.value}")
                except TransientGatewayError as e:
                    result.errors += 1
                    logger.error(f"Gateway unavailable verifying user {user_id}: {e.reason or e.message}")
                except Exception as e:
                    result.errors += 1
                    logger.error(f"Error verifying subscription of user {user_id}: {e}")

            if len(targets) < self.batch_size:
                break

        logger.info(
            f"Subscription verification: {result.users_checked} checked, {result.expired_annual} annual expired, "
            f"{result.status_synced} synced, {result.errors} errors"
        )
        return Return.ok(result)
