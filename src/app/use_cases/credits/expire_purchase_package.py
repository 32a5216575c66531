"""ExpirePurchasePackage Use Case

Removes the unused remainder of a purchased package once its validity ends.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, NotFoundError
from src.app.repositories.credit_purchase_repository import CreditPurchaseRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.realtime_notifier import RealtimeNotifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD, compute_available_credits
from src.domain.ledger_entry import CreditSource, EntryKind, LedgerEntry, LedgerMetadata
from .dtos import ExpirePackageResponseDTO
from .support import clamped_subtract, publish_credits_updated

logger = logging.getLogger(__name__)


class ExpirePurchasePackage:
    """
    Use Case: Expire a purchased credit package

    Business Rules:
    1. At most once: is_expired is re-checked once the package row is locked
    2. Locks the account row before the package row
    3. remaining = credit_amount - used_credits; when > 0 it is deducted from
       credits_balance (floored at 0) with one EXPIRED/EXPIRATION entry
    4. is_expired is set in the same transaction as the deduction
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        ledger_repo: LedgerEntryRepository,
        purchase_repo: CreditPurchaseRepository,
        notifier: Optional[RealtimeNotifier] = None,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo
        self.purchase_repo = purchase_repo
        self.notifier = notifier
        self.grace_period = grace_period

    async def execute(self, package_id: str, now: Optional[datetime] = None) -> Result[ExpirePackageResponseDTO]:
        now = now or utcnow()
        account = None
        entry = None
        deducted = 0
        try:
            package = await self.purchase_repo.get_by_id(package_id)
            if not package:
                raise NotFoundError(f"Credit package {package_id} not found", code=ErrorCode.PACKAGE_NOT_FOUND)

            if not package.is_expired:
                # Account row before package row, the order SpendCredits locks in
                if package.remaining_credits > 0:
                    account = await self.user_repo.get_by_id(package.user_id, for_update=True)
                    if not account:
                        raise NotFoundError(f"User {package.user_id} not found", code=ErrorCode.USER_NOT_FOUND)
                package = await self.purchase_repo.get_by_id(package_id, for_update=True)

            if package.is_expired:
                response = ExpirePackageResponseDTO(package_id=package.id, user_id=package.user_id, expired_now=False)
                await self.uow.rollback()
                return Return.ok(response)

            remaining = package.remaining_credits
            if remaining > 0:
                balance_before = account.credits_balance
                account.credits_balance = clamped_subtract(balance_before, remaining, account.id, "PURCHASED")
                deducted = balance_before - account.credits_balance
                await self.user_repo.update(account)

                balance = compute_available_credits(account, now, self.grace_period)
                entry = await self.ledger_repo.append(
                    LedgerEntry(
                        user_id=account.id,
                        kind=EntryKind.EXPIRED,
                        source=CreditSource.EXPIRATION,
                        amount=deducted,
                        balance_after=balance.total,
                        description=f"Expired credits of package {package.package_name}".strip()[:255],
                        credit_purchase_id=package.id,
                        metadata_json=LedgerMetadata(
                            package_id=package.id,
                            remaining_credits=remaining,
                            valid_until=package.valid_until.isoformat() if package.valid_until else None,
                        ).model_dump(exclude_none=True),
                        created_at=now,
                    )
                )

            package.is_expired = True
            await self.purchase_repo.update(package)

            await self.uow.commit()

        except BillingError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="EXPIRE_PACKAGE_FAILED",
                    message=f"Failed to expire credit package {package_id}",
                    reason=str(e),
                )
            )

        if account is not None:
            logger.info(f"Expired {deducted} credits of package {package_id} for user {account.id}")
            await publish_credits_updated(self.notifier, account, "credits_expired", entry.id)

        return Return.ok(
            ExpirePackageResponseDTO(
                package_id=package.id,
                user_id=package.user_id,
                expired_now=True,
                credits_expired=deducted,
                ledger_entry_id=entry.id if entry else None,
            )
        )
