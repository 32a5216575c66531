"""Unit tests for DetectBalanceDrift"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.reconciliation import DetectBalanceDrift


@pytest.mark.asyncio
class TestDetectBalanceDrift:
    async def test_reports_users_whose_cache_disagrees(self, now):
        """
        Given: u1 consistent, u2 cached above its packages, u3 packages with no cache
        When: Drift detection runs
        Then: u2 and u3 are reported with signed drift, nothing is written
        """
        user_repo = MagicMock()
        user_repo.get_purchased_balances = AsyncMock(return_value={"u1": 100, "u2": 150})
        purchase_repo = MagicMock()
        purchase_repo.sum_remaining_by_user = AsyncMock(return_value={"u1": 100, "u2": 100, "u3": 20})

        result = await DetectBalanceDrift(user_repo, purchase_repo).execute(now=now)

        report = result.value
        assert report.users_checked == 3
        assert report.drifts_found == 2
        drifts = {d.user_id: d.drift for d in report.drifts}
        assert drifts == {"u2": 50, "u3": -20}
        assert report.checked_at == now

    async def test_failure_returns_error(self):
        user_repo = MagicMock()
        user_repo.get_purchased_balances = AsyncMock(side_effect=Exception("db error"))

        result = await DetectBalanceDrift(user_repo, MagicMock()).execute()

        assert result.is_err()
        assert result.error.code == "DRIFT_DETECTION_FAILED"
