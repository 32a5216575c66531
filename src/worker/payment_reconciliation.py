"""Payment Reconciliation Background Worker

Heals subscription state against payment records, fills missing due dates
and reports purchased-balance drift.
"""

import asyncio
import logging
from typing import Optional
from pydantic import BaseModel

from config import ApplicationConfig
from src.app.use_cases.reconciliation.dtos import (
    BalanceDriftReportDTO,
    PaymentInconsistencyResultDTO,
    SyncNextDueDatesResultDTO,
)
from src.worker.base import BaseWorker, run_worker

logger = logging.getLogger(__name__)


class PaymentReconciliationResultDTO(BaseModel):
    inconsistencies: Optional[PaymentInconsistencyResultDTO] = None
    due_dates: Optional[SyncNextDueDatesResultDTO] = None
    drift: Optional[BalanceDriftReportDTO] = None


class PaymentReconciliationWorker(BaseWorker):
    """
    Background worker for payment reconciliation

    Runs, in order: payment inconsistency verification, next due date sync
    and balance drift detection. A job that fails leaves its slot empty.
    """

    name = "payment reconciliation"
    enabled_setting = "PAYMENT_RECONCILIATION_ENABLED"

    async def run_once(self) -> PaymentReconciliationResultDTO:
        response = PaymentReconciliationResultDTO()
        if not self.enabled:
            logger.info("Payment reconciliation is disabled, skipping")
            return response

        async with self.services() as services:
            result = await services.verify_payment_inconsistencies().execute()
        if result.is_ok():
            response.inconsistencies = result.value
        else:
            logger.error(f"Payment inconsistency verification failed: {result.error.message}")

        async with self.services() as services:
            result = await services.sync_next_due_dates().execute()
        if result.is_ok():
            response.due_dates = result.value
        else:
            logger.error(f"Next due date sync failed: {result.error.message}")

        async with self.services() as services:
            result = await services.detect_balance_drift().execute()
        if result.is_ok():
            response.drift = result.value
            if response.drift.drifts_found > 0:
                logger.error(f"ALERT: {response.drift.drifts_found} purchased balance drifts found!")
        else:
            logger.error(f"Balance drift detection failed: {result.error.message}")

        return response

    def describe(self, result: PaymentReconciliationResultDTO) -> str:
        parts = []
        if result.inconsistencies:
            parts.append(
                f"{result.inconsistencies.active_users_with_overdue + result.inconsistencies.pending_payments_now_overdue}"
                f" set overdue, {result.inconsistencies.active_users_without_payments} flagged"
            )
        if result.due_dates:
            parts.append(f"{result.due_dates.users_updated} due dates synced")
        if result.drift:
            parts.append(f"{result.drift.drifts_found} drifts")
        return ", ".join(parts) or "no job succeeded"


async def main():
    """
    Usage:
        python -m src.worker.payment_reconciliation --once
        python -m src.worker.payment_reconciliation --interval 86400
    """
    await run_worker(
        PaymentReconciliationWorker,
        "Payment Reconciliation Worker",
        ApplicationConfig.PAYMENT_RECONCILIATION_INTERVAL_SECONDS,
    )


if __name__ == "__main__":
    asyncio.run(main())
