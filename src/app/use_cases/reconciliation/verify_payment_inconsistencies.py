"""VerifyPaymentInconsistencies Job

Heals drift between local subscription state and payment records.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.subscriptions.dtos import UpdateSubscriptionStatusCommandDTO
from src.app.use_cases.subscriptions.update_subscription_status import UpdateSubscriptionStatus
from src.domain.base import utcnow
from src.domain.payment import PaymentStatus, PaymentType
from src.domain.user_account import SubscriptionStatus
from .dtos import PaymentInconsistencyResultDTO

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class VerifyPaymentInconsistencies:
    """
    Use Case: Verify payment inconsistencies

    Checks:
    (a) ACTIVE users whose latest SUBSCRIPTION payment is OVERDUE -> user OVERDUE
    (b) PENDING payments past due -> payment OVERDUE, and the user OVERDUE
        when it is the subscription payment of an ACTIVE user
    (c) ACTIVE users with a subscription id and no payment records -> flagged
        for operator review, nothing is changed

    Each check is capped at batch_size records; failures are isolated per record.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        payment_repo: PaymentRepository,
        update_status: UpdateSubscriptionStatus,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.payment_repo = payment_repo
        self.update_status = update_status
        self.batch_size = batch_size

    async def _mark_user_overdue(self, user_id: str, now: datetime) -> bool:
        result = await self.update_status.execute(
            UpdateSubscriptionStatusCommandDTO(user_id=user_id, status=SubscriptionStatus.OVERDUE),
            now=now,
        )
        if result.is_err():
            raise RuntimeError(f"{result.error.code}: {result.error.message}")
        return result.value.changed

    async def _check_active_with_overdue(self, result: PaymentInconsistencyResultDTO, now: datetime) -> None:
        accounts = await self.user_repo.list_active_with_overdue_latest_payment(self.batch_size)
        user_ids = [account.id for account in accounts]

        for user_id in user_ids:
            try:
                if await self._mark_user_overdue(user_id, now):
                    result.active_users_with_overdue += 1
                    logger.warning(f"User {user_id} was ACTIVE with an OVERDUE subscription payment, set OVERDUE")
            except Exception as e:
                result.errors += 1
                logger.error(f"Failed to flag user {user_id} as OVERDUE: {e}")

    async def _check_pending_past_due(self, result: PaymentInconsistencyResultDTO, now: datetime) -> None:
        payments = await self.payment_repo.list_pending_past_due(now, self.batch_size)
        payment_ids = [payment.gateway_payment_id for payment in payments]

        for gateway_payment_id in payment_ids:
            try:
                payment = await self.payment_repo.get_by_gateway_id(gateway_payment_id)
                if payment is None or payment.status != PaymentStatus.PENDING:
                    continue
                payment.status = PaymentStatus.OVERDUE
                await self.payment_repo.update(payment)
                user_id = payment.user_id
                cascade = payment.type == PaymentType.SUBSCRIPTION
                await self.uow.commit()
                result.pending_payments_now_overdue += 1

                if cascade:
                    account = await self.user_repo.get_by_id(user_id)
                    if account and account.subscription_status == SubscriptionStatus.ACTIVE:
                        await self._mark_user_overdue(user_id, now)
                        logger.warning(f"Subscription payment {gateway_payment_id} past due, user {user_id} set OVERDUE")
            except Exception as e:
                await self.uow.rollback()
                result.errors += 1
                logger.error(f"Failed to process past-due payment {gateway_payment_id}: {e}")

    async def _check_active_without_payments(self, result: PaymentInconsistencyResultDTO) -> None:
        accounts = await self.user_repo.list_active_without_subscription_payments(self.batch_size)
        for account in accounts:
            result.active_users_without_payments += 1
            result.flagged_user_ids.append(account.id)
            logger.warning(
                f"User {account.id} is ACTIVE with subscription {account.subscription_id} "
                f"but has no payment records, needs review"
            )

    async def execute(self, now: Optional[datetime] = None) -> Result[PaymentInconsistencyResultDTO]:
        now = now or utcnow()
        result = PaymentInconsistencyResultDTO()

        for check in (
            lambda: self._check_active_with_overdue(result, now),
            lambda: self._check_pending_past_due(result, now),
            lambda: self._check_active_without_payments(result),
        ):
            try:
                await check()
            except Exception as e:
                await self.uow.rollback()
                result.errors += 1
                logger.error(f"Payment inconsistency check failed: {e}")

        logger.info(
            f"Payment inconsistency verification: {result.active_users_with_overdue} active with overdue, "
            f"{result.pending_payments_now_overdue} pending now overdue, "
            f"{result.active_users_without_payments} without payments, {result.errors} errors"
        )
        return Return.ok(result)
