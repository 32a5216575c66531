"""Credit Expiration Background Worker

Expires purchased packages past their validity and yearly subscription
credits past their cycle.
"""

import asyncio
import logging
from pydantic import BaseModel

from config import ApplicationConfig
from src.app.use_cases.reconciliation.dtos import (
    ExpirePurchasedCreditsResultDTO,
    ExpireYearlyCreditsResultDTO,
)
from src.worker.base import BaseWorker, run_worker

logger = logging.getLogger(__name__)


class CreditExpirationResultDTO(BaseModel):
    purchased: ExpirePurchasedCreditsResultDTO
    yearly: ExpireYearlyCreditsResultDTO


class CreditExpirationWorker(BaseWorker):
    """
    Background worker for credit expiration

    Both jobs run in every cycle; a failure of one does not stop the other.
    """

    name = "credit expiration"
    enabled_setting = "CREDIT_EXPIRATION_ENABLED"

    async def run_once(self) -> CreditExpirationResultDTO:
        if not self.enabled:
            logger.info("Credit expiration is disabled, skipping")
            return CreditExpirationResultDTO(
                purchased=ExpirePurchasedCreditsResultDTO(),
                yearly=ExpireYearlyCreditsResultDTO(),
            )

        async with self.services() as services:
            purchased = await services.expire_purchased_credits().execute()
        async with self.services() as services:
            yearly = await services.expire_yearly_credits().execute()

        if purchased.is_err():
            logger.error(f"Purchased credit expiration failed: {purchased.error.message}")
        if yearly.is_err():
            logger.error(f"Yearly credit expiration failed: {yearly.error.message}")
        if purchased.is_err() and yearly.is_err():
            raise RuntimeError("Credit expiration failed")

        return CreditExpirationResultDTO(
            purchased=purchased.value if purchased.is_ok() else ExpirePurchasedCreditsResultDTO(errors=1),
            yearly=yearly.value if yearly.is_ok() else ExpireYearlyCreditsResultDTO(errors=1),
        )

    def describe(self, result: CreditExpirationResultDTO) -> str:
        return (
            f"{result.purchased.packages_expired} packages expired ({result.purchased.credits_expired} credits), "
            f"{result.yearly.users_expired} yearly users expired ({result.yearly.credits_expired} credits)"
        )


async def main():
    """
    Usage:
        python -m src.worker.credit_expiration --once
        python -m src.worker.credit_expiration --interval 3600
    """
    await run_worker(
        CreditExpirationWorker,
        "Credit Expiration Worker",
        ApplicationConfig.CREDIT_EXPIRATION_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
