"""DetectBalanceDrift Use Case

Compares the cached purchased pool of each user against the remaining
credits of that user's live packages.
"""

import logging
import time
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.credit_purchase_repository import CreditPurchaseRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.domain.base import utcnow
from .dtos import BalanceDriftDTO, BalanceDriftReportDTO

logger = logging.getLogger(__name__)


class DetectBalanceDrift:
    """
    Use Case: Detect purchased balance drift

    Business Rules:
    1. Live packages: CONFIRMED and not yet marked expired
    2. drift = credits_balance - sum(credit_amount - used_credits)
    3. Read-only: drift is reported for operators, never corrected here
       (admin adjustments add to the pool without a package, so a positive
       drift is not necessarily an error)
    """

    def __init__(self, user_repo: UserAccountRepository, purchase_repo: CreditPurchaseRepository):
        self.user_repo = user_repo
        self.purchase_repo = purchase_repo

    async def execute(self, now: Optional[datetime] = None) -> Result[BalanceDriftReportDTO]:
        start_time = time.time()
        checked_at = now or utcnow()

        try:
            cached = await self.user_repo.get_purchased_balances()
            remaining = await self.purchase_repo.sum_remaining_by_user()

            drifts: list[BalanceDriftDTO] = []
            user_ids = sorted(set(cached) | set(remaining))

            for user_id in user_ids:
                cached_balance = cached.get(user_id, 0)
                packages_remaining = remaining.get(user_id, 0)
                if cached_balance != packages_remaining:
                    drift = BalanceDriftDTO(
                        user_id=user_id,
                        cached_balance=cached_balance,
                        packages_remaining=packages_remaining,
                        drift=cached_balance - packages_remaining,
                    )
                    drifts.append(drift)
                    logger.warning(
                        f"Balance drift for user {user_id}: cached={cached_balance}, "
                        f"packages={packages_remaining}, drift={drift.drift}"
                    )

            execution_time_ms = int((time.time() - start_time) * 1000)
            logger.info(
                f"Balance drift check: {len(drifts)} drifts out of {len(user_ids)} users in {execution_time_ms}ms"
            )

            return Return.ok(
                BalanceDriftReportDTO(
                    users_checked=len(user_ids),
                    drifts_found=len(drifts),
                    drifts=drifts,
                    checked_at=checked_at,
                    execution_time_ms=execution_time_ms,
                )
            )

        except Exception as e:
            logger.error(f"Balance drift detection failed: {e}")
            return Return.err(
                Error(
                    code="DRIFT_DETECTION_FAILED",
                    message="Failed to detect balance drift",
                    reason=str(e),
                )
            )
