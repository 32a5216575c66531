"""GrantPurchasedCredits Use Case

Confirms a purchased credit package and adds it to the purchased pool.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, NotFoundError, ValidationError
from src.app.repositories.credit_purchase_repository import CreditPurchaseRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.realtime_notifier import RealtimeNotifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD, compute_available_credits
from src.domain.credit_purchase import CreditPurchase, PurchaseStatus
from src.domain.ledger_entry import CreditSource, EntryKind, LedgerEntry, LedgerMetadata
from .dtos import GrantPurchasedCreditsCommandDTO, GrantPurchasedCreditsResponseDTO
from .support import publish_credits_updated

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 365


class GrantPurchasedCredits:
    """
    Use Case: Grant credits of a paid package

    Business Rules:
    1. Only PENDING packages are granted; CONFIRMED is an idempotent no-op
    2. valid_until defaults to confirmation + validity days
    3. credits_balance += credit_amount with one EARNED/PURCHASE entry
    4. Locks the account row before the package row, status re-checked under lock
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        ledger_repo: LedgerEntryRepository,
        purchase_repo: CreditPurchaseRepository,
        notifier: Optional[RealtimeNotifier] = None,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
        validity_days: int = DEFAULT_VALIDITY_DAYS,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.ledger_repo = ledger_repo
        self.purchase_repo = purchase_repo
        self.notifier = notifier
        self.grace_period = grace_period
        self.validity_days = validity_days

    @staticmethod
    def _already_granted(package: CreditPurchase) -> Optional[GrantPurchasedCreditsResponseDTO]:
        if package.status == PurchaseStatus.CONFIRMED:
            return GrantPurchasedCreditsResponseDTO(
                package_id=package.id,
                user_id=package.user_id,
                granted=False,
                credit_amount=package.credit_amount,
                valid_until=package.valid_until,
            )
        if package.status != PurchaseStatus.PENDING:
            raise ValidationError(f"Credit package {package.id} is {package.status.value}")
        return None

    async def execute(
        self, command: GrantPurchasedCreditsCommandDTO, now: Optional[datetime] = None
    ) -> Result[GrantPurchasedCreditsResponseDTO]:
        now = now or utcnow()
        try:
            package = await self.purchase_repo.get_by_id(command.package_id)
            if not package:
                raise NotFoundError(
                    f"Credit package {command.package_id} not found", code=ErrorCode.PACKAGE_NOT_FOUND
                )

            response = self._already_granted(package)
            if response is None:
                # Account row before package row, the order SpendCredits locks in
                account = await self.user_repo.get_by_id(package.user_id, for_update=True)
                if not account:
                    raise NotFoundError(f"User {package.user_id} not found", code=ErrorCode.USER_NOT_FOUND)
                package = await self.purchase_repo.get_by_id(command.package_id, for_update=True)
                response = self._already_granted(package)

            if response is not None:
                await self.uow.rollback()
                return Return.ok(response)

            package.status = PurchaseStatus.CONFIRMED
            package.confirmed_at = now
            if command.gateway_payment_id:
                package.gateway_payment_id = command.gateway_payment_id
            if package.valid_until is None:
                package.valid_until = now + timedelta(days=self.validity_days)
            await self.purchase_repo.update(package)

            account.credits_balance += package.credit_amount
            await self.user_repo.update(account)

            balance = compute_available_credits(account, now, self.grace_period)
            entry = await self.ledger_repo.append(
                LedgerEntry(
                    user_id=account.id,
                    kind=EntryKind.EARNED,
                    source=CreditSource.PURCHASE,
                    amount=package.credit_amount,
                    balance_after=balance.total,
                    description=f"Credit package {package.package_name}".strip()[:255],
                    reference_id=package.gateway_payment_id,
                    credit_purchase_id=package.id,
                    metadata_json=LedgerMetadata(package_id=package.id).model_dump(exclude_none=True),
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
                    code="GRANT_CREDITS_FAILED",
                    message="Failed to grant purchased credits",
                    reason=str(e),
                )
            )

        logger.info(f"Added {package.credit_amount} purchased credits to user {account.id} (package {package.id})")
        await publish_credits_updated(self.notifier, account, "credit_purchase", entry.id)

        return Return.ok(
            GrantPurchasedCreditsResponseDTO(
                package_id=package.id,
                user_id=account.id,
                granted=True,
                credit_amount=package.credit_amount,
                valid_until=package.valid_until,
                ledger_entry_id=entry.id,
            )
        )
