"""Subscription Maintenance Background Worker

Renews monthly credits whose payment webhook never arrived and re-checks
active subscriptions against the gateway.
"""

import asyncio
import logging
from typing import Optional
from pydantic import BaseModel

from config import ApplicationConfig
from src.app.use_cases.reconciliation.dtos import RenewMonthlyCreditsResultDTO, VerifySubscriptionsResultDTO
from src.worker.base import BaseWorker, run_worker

logger = logging.getLogger(__name__)


class SubscriptionMaintenanceResultDTO(BaseModel):
    renewals: Optional[RenewMonthlyCreditsResultDTO] = None
    subscriptions: Optional[VerifySubscriptionsResultDTO] = None


class SubscriptionMaintenanceWorker(BaseWorker):
    """
    Runs the monthly renewal safety net, then subscription verification.
    A job that fails leaves its slot empty.
    """

    name = "subscription maintenance"
    enabled_setting = "SUBSCRIPTION_MAINTENANCE_ENABLED"

    async def run_once(self) -> SubscriptionMaintenanceResultDTO:
        response = SubscriptionMaintenanceResultDTO()
        if not self.enabled:
            logger.info("Subscription maintenance is disabled, skipping")
            return response

        async with self.services() as services:
            result = await services.renew_monthly_credits().execute()
        if result.is_ok():
            response.renewals = result.value
            if response.renewals.users_renewed > 0:
                logger.warning(f"{response.renewals.users_renewed} monthly renewals had no payment webhook")
        else:
            logger.error(f"Monthly credit renewal failed: {result.error.message}")

        async with self.services() as services:
            result = await services.verify_subscriptions().execute()
        if result.is_ok():
            response.subscriptions = result.value
        else:
            logger.error(f"Subscription verification failed: {result.error.message}")

        return response

    def describe(self, result: SubscriptionMaintenanceResultDTO) -> str:
        parts = []
        if result.renewals:
            parts.append(f"{result.renewals.users_renewed} renewed")
        if result.subscriptions:
            parts.append(
                f"{result.subscriptions.expired_annual} annual expired, "
                f"{result.subscriptions.status_synced} synced"
            )
        return ", ".join(parts) or "no job succeeded"


async def main():
    """
    Usage:
        python -m src.worker.subscription_maintenance --once
        python -m src.worker.subscription_maintenance --interval 21600
    """
    await run_worker(
        SubscriptionMaintenanceWorker,
        "Subscription Maintenance Worker",
        ApplicationConfig.SUBSCRIPTION_MAINTENANCE_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
