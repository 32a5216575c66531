"""GetAvailableCredits Use Case

Reads a user's available credits with the subscription grace window applied.
"""

from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.errors import ErrorCode
from src.app.repositories.user_account_repository import UserAccountRepository
from src.domain.base import utcnow
from src.domain.credit_balance import DEFAULT_GRACE_PERIOD, compute_available_credits
from .dtos import AvailableCreditsDTO


class GetAvailableCredits:
    """
    Use Case: Get available credits of a user

    Business Rules:
    1. Subscription pool = max(0, limit - used) while the cycle is running
    2. After expiry, a renewal at/after the expiry restores the pool
    3. Otherwise the pool survives for the grace period, then drops to 0
    4. Purchased pool = cached credits_balance
    """

    def __init__(
        self,
        user_repo: UserAccountRepository,
        grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ):
        self.user_repo = user_repo
        self.grace_period = grace_period

    async def execute(self, user_id: str, now: Optional[datetime] = None) -> Result[AvailableCreditsDTO]:
        try:
            account = await self.user_repo.get_by_id(user_id)

            if not account:
                return Return.err(
                    Error(
                        code=ErrorCode.USER_NOT_FOUND,
                        message=f"User {user_id} not found",
                    )
                )

            balance = compute_available_credits(account, now or utcnow(), self.grace_period)

            return Return.ok(
                AvailableCreditsDTO(
                    user_id=account.id,
                    subscription=balance.subscription,
                    purchased=balance.purchased,
                    total=balance.total,
                )
            )

        except Exception as e:
            return Return.err(
                Error(
                    code="GET_CREDITS_FAILED",
                    message="Failed to retrieve available credits",
                    reason=str(e),
                )
            )
