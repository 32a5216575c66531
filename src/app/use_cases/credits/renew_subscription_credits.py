"""RenewSubscriptionCredits Use Case

Resets the subscription pool to the plan grant at the start of a paid cycle.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, NotFoundError, ValidationError
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.subscription_plan_repository import SubscriptionPlanRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.realtime_notifier import RealtimeNotifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD, compute_available_credits, cycle_length
from src.domain.ledger_entry import CreditSource, EntryKind, LedgerEntry, LedgerMetadata
from src.domain.user_account import BillingCycle
from .dtos import RenewCreditsCommandDTO, RenewCreditsResponseDTO
from .support import publish_credits_updated

logger = logging.getLogger(__name__)


class RenewSubscriptionCredits:
    """
    Use Case: Renew subscription credits for a new billing cycle

    Business Rules:
    1. Grant = plan monthly credits, x12 for yearly cycles (front-loaded, no rollover)
    2. credits_used = 0, credits_limit = grant
    3. last_credit_renewal_at = now, credits_expires_at = now + cycle length
    4. One EARNED/SUBSCRIPTION ledger entry for the full grant
    5. Guard: skipped when last_credit_renewal_at >= cycle_start, so duplicate
       webhook deliveries never double-grant
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        ledger_repo: LedgerEntryRepository,
        plan_repo: SubscriptionPlanRepository,
        notifier: Optional[RealtimeNotifier] = None,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo
        self.plan_repo = plan_repo
        self.notifier = notifier
        self.grace_period = grace_period

    async def execute(
        self, command: RenewCreditsCommandDTO, now: Optional[datetime] = None
    ) -> Result[RenewCreditsResponseDTO]:
        now = now or utcnow()
        try:
            account = await self.user_repo.get_by_id(command.user_id, for_update=True)
            if not account:
                raise NotFoundError(f"User {command.user_id} not found", code=ErrorCode.USER_NOT_FOUND)

            if (
                command.cycle_start is not None
                and account.last_credit_renewal_at is not None
                and account.last_credit_renewal_at >= command.cycle_start
            ):
                response = RenewCreditsResponseDTO(
                    user_id=account.id,
                    renewed=False,
                    plan_id=account.plan_id,
                    billing_cycle=account.billing_cycle,
                    credits_expires_at=account.credits_expires_at,
                )
                logger.info(
                    f"Renewal skipped for user {account.id}: already renewed at "
                    f"{account.last_credit_renewal_at.isoformat()} (cycle start {command.cycle_start.isoformat()})"
                )
                await self.uow.rollback()
                return Return.ok(response)

            plan_id = command.plan_id or account.plan_id
            if not plan_id:
                raise ValidationError(f"User {account.id} has no plan to renew")

            plan = await self.plan_repo.get_by_id(plan_id)
            if not plan:
                raise NotFoundError(f"Plan {plan_id} not found", code=ErrorCode.PLAN_NOT_FOUND)

            billing_cycle = command.billing_cycle or account.billing_cycle or BillingCycle.MONTHLY
            grant = plan.monthly_credits * 12 if billing_cycle == BillingCycle.YEARLY else plan.monthly_credits

            account.plan_id = plan.id
            account.billing_cycle = billing_cycle
            account.credits_used = 0
            account.credits_limit = grant
            account.last_credit_renewal_at = now
            account.credits_expires_at = now + cycle_length(billing_cycle)
            await self.user_repo.update(account)

            balance = compute_available_credits(account, now, self.grace_period)
            entry = await self.ledger_repo.append(
                LedgerEntry(
                    user_id=account.id,
                    kind=EntryKind.EARNED,
                    source=CreditSource.SUBSCRIPTION,
                    amount=grant,
                    balance_after=balance.total,
                    description=f"{plan.name} {billing_cycle.value.lower()} credits renewal"[:255],
                    reference_id=command.reference_id,
                    metadata_json=LedgerMetadata(
                        admin_id=command.admin_id,
                        plan_id=plan.id,
                        billing_cycle=billing_cycle.value,
                    ).model_dump(exclude_none=True),
                    created_at=now,
                )
            )

            await self.uow.commit()

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RENEW_CREDITS_FAILED",
                    message="Failed to renew subscription credits",
                    reason=str(e),
                )
            )

        logger.info(
            f"Renewed {grant} {billing_cycle.value} credits for user {account.id} "
            f"(plan {plan.id}, expires {account.credits_expires_at.isoformat()})"
        )
        await publish_credits_updated(self.notifier, account, "subscription_renewal", entry.id)

        return Return.ok(
            RenewCreditsResponseDTO(
                user_id=account.id,
                renewed=True,
                plan_id=plan.id,
                billing_cycle=billing_cycle,
                credits_granted=grant,
                credits_expires_at=account.credits_expires_at,
                ledger_entry_id=entry.id,
            )
        )
