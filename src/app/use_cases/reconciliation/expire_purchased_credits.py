"""ExpirePurchasedCredits Job

Finds purchased packages past their validity and expires each one.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.credit_purchase_repository import CreditPurchaseRepository
from src.app.use_cases.credits.expire_purchase_package import ExpirePurchasePackage
from src.domain.base import utcnow
from .dtos import ExpirePurchasedCreditsResultDTO

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class ExpirePurchasedCredits:
    """
    Use Case: Expire purchased credits

    Selection: status = CONFIRMED AND valid_until < now AND is_expired = False,
    at most batch_size packages per run. Failures are isolated per package.
    """

    def __init__(
        self,
        purchase_repo: CreditPurchaseRepository,
        expire_package: ExpirePurchasePackage,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.purchase_repo = purchase_repo
        self.expire_package = expire_package
        self.batch_size = batch_size

    async def execute(self, now: Optional[datetime] = None) -> Result[ExpirePurchasedCreditsResultDTO]:
        now = now or utcnow()
        try:
            packages = await self.purchase_repo.list_expired_unmarked(now, self.batch_size)
        except Exception as e:
            logger.error(f"Purchased credit expiration failed to load packages: {e}")
            return Return.err(
                Error(
                    code="EXPIRE_CREDITS_FAILED",
                    message="Failed to load expired credit packages",
                    reason=str(e),
                )
            )

        result = ExpirePurchasedCreditsResultDTO(packages_checked=len(packages))
        package_ids = [package.id for package in packages]

        for package_id in package_ids:
            outcome = await self.expire_package.execute(package_id, now=now)
            if outcome.is_err():
                result.errors += 1
                logger.error(
                    f"Failed to expire package {package_id}: {outcome.error.message} ({outcome.error.reason})"
                )
                continue
            if outcome.value.expired_now:
                result.packages_expired += 1
                result.credits_expired += outcome.value.credits_expired

        logger.info(
            f"Purchased credit expiration: {result.packages_expired}/{result.packages_checked} packages, "
            f"{result.credits_expired} credits, {result.errors} errors"
        )
        return Return.ok(result)
