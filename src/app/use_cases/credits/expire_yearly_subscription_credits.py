"""ExpireYearlySubscriptionCredits Use Case

Yearly credits do not roll over: once the yearly cycle ends the pool is zeroed
and the expiry cleared until the next renewal sets it again.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, NotFoundError
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.realtime_notifier import RealtimeNotifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD, compute_available_credits
from src.domain.ledger_entry import CreditSource, EntryKind, LedgerEntry
from src.domain.user_account import BillingCycle
from .dtos import ExpireYearlyCreditsResponseDTO
from .support import publish_credits_updated

logger = logging.getLogger(__name__)


class ExpireYearlySubscriptionCredits:
    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        ledger_repo: LedgerEntryRepository,
        notifier: Optional[RealtimeNotifier] = None,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo
        self.notifier = notifier
        self.grace_period = grace_period

    async def execute(self, user_id: str, now: Optional[datetime] = None) -> Result[ExpireYearlyCreditsResponseDTO]:
        now = now or utcnow()
        entry = None
        try:
            account = await self.user_repo.get_by_id(user_id, for_update=True)
            if not account:
                raise NotFoundError(f"User {user_id} not found", code=ErrorCode.USER_NOT_FOUND)

            # Re-check under the lock, a renewal may have landed since the scan
            if (
                account.billing_cycle != BillingCycle.YEARLY
                or account.credits_expires_at is None
                or account.credits_expires_at >= now
            ):
                response = ExpireYearlyCreditsResponseDTO(user_id=account.id, expired_now=False)
                await self.uow.rollback()
                return Return.ok(response)

            before = compute_available_credits(account, now, self.grace_period)
            expired_credits = before.subscription

            account.credits_used = 0
            account.credits_limit = 0
            account.credits_expires_at = None
            await self.user_repo.update(account)

            if expired_credits > 0:
                after = compute_available_credits(account, now, self.grace_period)
                entry = await self.ledger_repo.append(
                    LedgerEntry(
                        user_id=account.id,
                        kind=EntryKind.EXPIRED,
                        source=CreditSource.EXPIRATION,
                        amount=expired_credits,
                        balance_after=after.total,
                        description="Yearly subscription credits expired",
                        metadata_json={"billing_cycle": BillingCycle.YEARLY.value},
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
                    code="EXPIRE_YEARLY_CREDITS_FAILED",
                    message=f"Failed to expire yearly credits of user {user_id}",
                    reason=str(e),
                )
            )

        logger.info(f"Expired yearly subscription credits of user {account.id} ({expired_credits} credits)")
        await publish_credits_updated(
            self.notifier, account, "yearly_credits_expired", entry.id if entry else None
        )

        return Return.ok(
            ExpireYearlyCreditsResponseDTO(
                user_id=account.id,
                expired_now=True,
                credits_expired=expired_credits,
                ledger_entry_id=entry.id if entry else None,
            )
        )
