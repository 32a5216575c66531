"""Unit tests for PaymentReconciliationWorker"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from libs.result import Error, Return
from src.app.use_cases.reconciliation.dtos import (
    BalanceDriftDTO,
    BalanceDriftReportDTO,
    PaymentInconsistencyResultDTO,
    SyncNextDueDatesResultDTO,
)
from src.worker.payment_reconciliation import PaymentReconciliationWorker

def use_case_returning(result):
    use_case = MagicMock()
    use_case.execute = AsyncMock(return_value=result)
    return MagicMock(return_value=use_case)


@pytest.mark.asyncio
class TestPaymentReconciliationWorker:
    async def test_runs_all_jobs_in_order(self, mock_config, mock_services, now):
        mock_services.verify_payment_inconsistencies = use_case_returning(
            Return.ok(PaymentInconsistencyResultDTO(active_users_with_overdue=1))
        )
        mock_services.sync_next_due_dates = use_case_returning(
            Return.ok(SyncNextDueDatesResultDTO(users_checked=2, users_updated=2))
        )
        mock_services.detect_balance_drift = use_case_returning(
            Return.ok(
                BalanceDriftReportDTO(
                    users_checked=5,
                    drifts_found=1,
                    drifts=[BalanceDriftDTO(user_id="u1", cached_balance=10, packages_remaining=0, drift=10)],
                    checked_at=now,
                    execution_time_ms=3,
                )
            )
        )

        worker = PaymentReconciliationWorker(config=mock_config)
        result = await worker.run_once()

        assert result.inconsistencies.active_users_with_overdue == 1
        assert result.due_dates.users_updated == 2
        assert result.drift.drifts_found == 1
        assert worker.describe(result) == "1 set overdue, 0 flagged, 2 due dates synced, 1 drifts"

    async def test_failed_job_leaves_its_slot_empty(self, mock_config, mock_services):
        mock_services.verify_payment_inconsistencies = use_case_returning(
            Return.ok(PaymentInconsistencyResultDTO())
        )
        mock_services.sync_next_due_dates = use_case_returning(
            Return.err(Error(code="SYNC_DUE_DATES_FAILED", message="Failed to load users without next due date"))
        )
        mock_services.detect_balance_drift = use_case_returning(
            Return.err(Error(code="DRIFT_DETECTION_FAILED", message="Failed to detect balance drift"))
        )

        result = await PaymentReconciliationWorker(config=mock_config).run_once()

        assert result.inconsistencies is not None
        assert result.due_dates is None
        assert result.drift is None

    async def test_disabled(self, mock_config, mock_services):
        mock_config.PAYMENT_RECONCILIATION_ENABLED = False

        worker = PaymentReconciliationWorker(config=mock_config)
        result = await worker.run_once()

        assert worker.describe(result) == "no job succeeded"
