"""AdjustCredits Use Case

Administrative adjustment of one credit pool with a ledger entry written in
the same transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, NotFoundError, ValidationError
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.realtime_notifier import RealtimeNotifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD
from src.domain.ledger_entry import CreditSource, EntryKind, LedgerEntry, LedgerMetadata
from .dtos import AdjustCreditsCommandDTO, AdjustCreditsResponseDTO, AdjustOperation, CreditPool
from .support import clamped_subtract, publish_credits_updated, snapshot

logger = logging.getLogger(__name__)

DEFAULT_REASON_MIN_LENGTH = 10


class AdjustCredits:
    """
    Use Case: Adjust a user's credits (admin)

    Business Rules:
    1. PLAN ADD lowers credits_used (floored at 0), PLAN REMOVE raises it
    2. PURCHASED ADD raises credits_balance, PURCHASED REMOVE lowers it (floored at 0)
    3. Floors never fail the call; they log BALANCE_CLAMPED
    4. Exactly one ledger entry per call; amount is the change of the total
       available credits, balance_after the resulting total
    5. Reason is mandatory for the audit trail

    Flow:
    1. Validate reason
    2. Lock account (SELECT FOR UPDATE)
    3. Snapshot before, mutate pool, snapshot after
    4. Append ledger entry
    5. Commit, then publish realtime update
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        ledger_repo: LedgerEntryRepository,
        notifier: Optional[RealtimeNotifier] = None,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        reason_min_length: int = DEFAULT_REASON_MIN_LENGTH,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo
        self.notifier = notifier
        self.grace_period = grace_period
        self.reason_min_length = reason_min_length

    async def execute(
        self, command: AdjustCreditsCommandDTO, now: Optional[datetime] = None
    ) -> Result[AdjustCreditsResponseDTO]:
        now = now or utcnow()
        try:
            reason = command.reason.strip()
            if len(reason) < self.reason_min_length:
                raise ValidationError(
                    f"Reason must be at least {self.reason_min_length} characters",
                    reason=f"length={len(reason)}",
                )

            account = await self.user_repo.get_by_id(command.user_id, for_update=True)
            if not account:
                raise NotFoundError(f"User {command.user_id} not found", code=ErrorCode.USER_NOT_FOUND)

            before = snapshot(account, now, self.grace_period)
            clamped = False

            if command.pool == CreditPool.PLAN:
                if command.operation == AdjustOperation.ADD:
                    clamped = command.amount > account.credits_used
                    account.credits_used = clamped_subtract(
                        account.credits_used, command.amount, account.id, "PLAN"
                    )
                else:
                    if command.amount > before.subscription_available:
                        clamped = True
                        logger.warning(
                            f"BALANCE_CLAMPED user={account.id} pool=PLAN "
                            f"available={before.subscription_available} requested={command.amount}"
                        )
                    account.credits_used += command.amount
            else:
                if command.operation == AdjustOperation.ADD:
                    account.credits_balance += command.amount
                else:
                    clamped = command.amount > account.credits_balance
                    account.credits_balance = clamped_subtract(
                        account.credits_balance, command.amount, account.id, "PURCHASED"
                    )

            after = snapshot(account, now, self.grace_period)
            applied = abs(after.total_available - before.total_available)

            await self.user_repo.update(account)

            metadata = LedgerMetadata(
                reason=reason,
                admin_id=command.admin_id,
                pool=command.pool.value,
                operation=command.operation.value,
                requested_amount=command.amount,
                clamped=clamped,
                before=before.model_dump(),
            )
            entry = await self.ledger_repo.append(
                LedgerEntry(
                    user_id=account.id,
                    kind=EntryKind.EARNED if command.operation == AdjustOperation.ADD else EntryKind.SPENT,
                    source=CreditSource.ADMIN_ADJUSTMENT,
                    amount=applied,
                    balance_after=after.total_available,
                    description=f"Admin {command.operation.value} {command.pool.value}: {reason}"[:255],
                    reference_id=command.admin_id,
                    metadata_json=metadata.model_dump(exclude_none=True),
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
                    code="ADJUST_CREDITS_FAILED",
                    message="Failed to adjust credits",
                    reason=str(e),
                )
            )

        logger.info(
            f"Admin {command.admin_id} adjusted {command.pool.value} credits of user {account.id}: "
            f"{command.operation.value} {command.amount} (applied {applied}), total {after.total_available}"
        )
        await publish_credits_updated(self.notifier, account, "admin_adjustment", entry.id)

        return Return.ok(
            AdjustCreditsResponseDTO(
                user_id=account.id,
                ledger_entry_id=entry.id,
                pool=command.pool,
                operation=command.operation,
                requested_amount=command.amount,
                applied_amount=applied,
                clamped=clamped,
                before=before,
                after=after,
            )
        )
