"""RecomputeLedger Use Cases

Administrative repair of ledger balance snapshots.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, NotFoundError
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD, compute_available_credits
from .dtos import RecomputeAllLedgersResponseDTO, RecomputeLedgerResponseDTO

logger = logging.getLogger(__name__)


class RecomputeLedger:
    """
    Use Case: Rebuild balance_after of every ledger entry of a user

    Algorithm:
    Forward history has no known starting point, the present total does.
    1. running = current available total
    2. Walk entries newest -> oldest
    3. entry.balance_after = running; running -= entry.signed_amount

    Only balance_after is rewritten; amount and kind are never touched.
    Running it twice with no intervening writes yields the same values.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        ledger_repo: LedgerEntryRepository,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo
        self.grace_period = grace_period

    async def execute(self, user_id: str, now: Optional[datetime] = None) -> Result[RecomputeLedgerResponseDTO]:
        now = now or utcnow()
        try:
            # Lock the account so no balance writer appends while we walk
            account = await self.user_repo.get_by_id(user_id, for_update=True)
            if not account:
                raise NotFoundError(f"User {user_id} not found", code=ErrorCode.USER_NOT_FOUND)

            current_total = compute_available_credits(account, now, self.grace_period).total
            entries = await self.ledger_repo.list_newest_first(user_id)

            running = current_total
            updated = 0
            for entry in entries:
                if entry.balance_after != running:
                    await self.ledger_repo.update_balance_after(entry.id, running)
                    updated += 1
                running -= entry.signed_amount

            await self.uow.commit()

            if updated:
                logger.warning(f"Recomputed ledger of user {user_id}: {updated}/{len(entries)} entries corrected")

            return Return.ok(
                RecomputeLedgerResponseDTO(
                    user_id=user_id,
                    current_total=current_total,
                    entries_total=len(entries),
                    entries_updated=updated,
                )
            )

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RECOMPUTE_LEDGER_FAILED",
                    message=f"Failed to recompute ledger of user {user_id}",
                    reason=str(e),
                )
            )


class RecomputeAllLedgers:
    """Runs RecomputeLedger for every user owning ledger entries, isolating failures per user"""

    def __init__(self, ledger_repo: LedgerEntryRepository, recompute: RecomputeLedger):
        self.ledger_repo = ledger_repo
        self.recompute = recompute

    async def execute(self, now: Optional[datetime] = None) -> Result[RecomputeAllLedgersResponseDTO]:
        now = now or utcnow()
        try:
            user_ids = await self.ledger_repo.list_user_ids()
        except Exception as e:
            return Return.err(
                Error(
                    code="RECOMPUTE_LEDGER_FAILED",
                    message="Failed to list ledger users",
                    reason=str(e),
                )
            )

        summary = RecomputeAllLedgersResponseDTO()
        for user_id in user_ids:
            result = await self.recompute.execute(user_id, now=now)
            if result.is_err():
                summary.errors += 1
                logger.error(f"Ledger recompute failed for user {user_id}: {result.error.message} ({result.error.reason})")
                continue
            summary.users_processed += 1
            summary.entries_updated += result.value.entries_updated

        logger.info(
            f"Ledger recompute finished: {summary.users_processed} users, "
            f"{summary.entries_updated} entries corrected, {summary.errors} errors"
        )
        return Return.ok(summary)
