"""Helpers shared by the credit use cases"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from src.app.services.realtime_notifier import CreditsUpdatedEvent, RealtimeNotifier
from src.domain.credit_balance import compute_available_credits
from src.domain.ledger_entry import LedgerEntry
from src.domain.user_account import UserAccount
from .dtos import CreditSnapshotDTO, LedgerEntryDTO

logger = logging.getLogger(__name__)


def snapshot(account: UserAccount, now: datetime, grace_period: timedelta) -> CreditSnapshotDTO:
    balance = compute_available_credits(account, now, grace_period)
    return CreditSnapshotDTO(
        credits_limit=account.credits_limit,
        credits_used=account.credits_used,
        purchased_balance=account.credits_balance,
        subscription_available=balance.subscription,
        total_available=balance.total,
    )


def clamped_subtract(current: int, amount: int, user_id: str, pool: str) -> int:
    """current - amount floored at zero. Logs BALANCE_CLAMPED when the floor applies."""
    if amount > current:
        logger.warning(
            f"BALANCE_CLAMPED user={user_id} pool={pool} current={current} requested={amount}"
        )
        return 0
    return current - amount


async def publish_credits_updated(
    notifier: Optional[RealtimeNotifier],
    account: UserAccount,
    reason: str,
    ledger_entry_id: Optional[int] = None,
) -> None:
    """Best-effort realtime fan-out. Must only be called after commit."""
    if notifier is None:
        return
    try:
        await notifier.publish(
            CreditsUpdatedEvent(
                user_id=account.id,
                credits_used=account.credits_used,
                credits_limit=account.credits_limit,
                purchased_balance=account.credits_balance,
                reason=reason,
                ledger_entry_id=ledger_entry_id,
            )
        )
    except Exception as e:
        logger.error(f"Realtime notification failed for user {account.id}: {e}")


def to_ledger_entry_dto(entry: LedgerEntry) -> LedgerEntryDTO:
    return LedgerEntryDTO(
        id=entry.id,
        user_id=entry.user_id,
        kind=entry.kind.value,
        source=entry.source.value,
        amount=entry.amount,
        balance_after=entry.balance_after,
        description=entry.description,
        reference_id=entry.reference_id,
        credit_purchase_id=entry.credit_purchase_id,
        metadata=entry.metadata_json,
        created_at=entry.created_at,
    )
