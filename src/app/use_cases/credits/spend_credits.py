"""SpendCredits Use Case

Consumes credits for a generation, training or other paid operation.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import BillingError, ErrorCode, InsufficientCreditsError, NotFoundError, ValidationError
from src.app.repositories.credit_purchase_repository import CreditPurchaseRepository
from src.app.repositories.ledger_entry_repository import LedgerEntryRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.realtime_notifier import RealtimeNotifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD, compute_available_credits
from src.domain.ledger_entry import EntryKind, LedgerEntry
from .dtos import SPENDING_SOURCES, SpendCreditsCommandDTO, SpendCreditsResponseDTO
from .support import publish_credits_updated

logger = logging.getLogger(__name__)


class SpendCredits:
    """
    Use Case: Spend credits

    Business Rules:
    1. Subscription pool is consumed first
    2. Remainder comes from purchased packages, soonest valid_until first
    3. Insufficient total -> rejected with no mutation
    4. One SPENT ledger entry for the whole amount
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

    async def execute(
        self, command: SpendCreditsCommandDTO, now: Optional[datetime] = None
    ) -> Result[SpendCreditsResponseDTO]:
        now = now or utcnow()
        try:
            if command.source not in SPENDING_SOURCES:
                raise ValidationError(f"{command.source.value} is not a spending source")

            account = await self.user_repo.get_by_id(command.user_id, for_update=True)
            if not account:
                raise NotFoundError(f"User {command.user_id} not found", code=ErrorCode.USER_NOT_FOUND)

            available = compute_available_credits(account, now, self.grace_period)
            if available.total < command.amount:
                raise InsufficientCreditsError(
                    f"Insufficient credits. Required: {command.amount}, Available: {available.total}",
                    reason=f"subscription={available.subscription}, purchased={available.purchased}",
                )

            from_subscription = min(command.amount, available.subscription)
            from_purchased = command.amount - from_subscription
            account.credits_used += from_subscription

            package_ids = []
            if from_purchased > 0:
                outstanding = from_purchased
                packages = await self.purchase_repo.list_spendable(account.id, now, for_update=True)
                for package in packages:
                    if outstanding == 0:
                        break
                    take = min(outstanding, package.remaining_credits)
                    package.used_credits += take
                    outstanding -= take
                    package_ids.append(package.id)
                    await self.purchase_repo.update(package)
                account.credits_balance -= from_purchased

            await self.user_repo.update(account)

            balance_after = compute_available_credits(account, now, self.grace_period).total
            entry = await self.ledger_repo.append(
                LedgerEntry(
                    user_id=account.id,
                    kind=EntryKind.SPENT,
                    source=command.source,
                    amount=command.amount,
                    balance_after=balance_after,
                    description=command.description,
                    reference_id=command.reference_id,
                    credit_purchase_id=package_ids[0] if len(package_ids) == 1 else None,
                    metadata_json={
                        "from_subscription": from_subscription,
                        "from_purchased": from_purchased,
                        "package_ids": package_ids,
                    },
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
                    code="SPEND_CREDITS_FAILED",
                    message="Failed to spend credits",
                    reason=str(e),
                )
            )

        await publish_credits_updated(self.notifier, account, command.source.value.lower(), entry.id)

        return Return.ok(
            SpendCreditsResponseDTO(
                user_id=account.id,
                ledger_entry_id=entry.id,
                amount=command.amount,
                from_subscription=from_subscription,
                from_purchased=from_purchased,
                balance_after=balance_after,
            )
        )
