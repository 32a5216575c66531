"""Unit tests for RenewMonthlyCredits"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from libs.result import Error, Return
from src.app.use_cases.credits.dtos import RenewCreditsResponseDTO
from src.app.use_cases.reconciliation import RenewMonthlyCredits
from src.domain.user_account import BillingCycle


def renewal_use_case(*outcomes):
    use_case = MagicMock()
    use_case.execute = AsyncMock(side_effect=list(outcomes))
    return use_case


def renewed(user_id, credits=500):
    return Return.ok(RenewCreditsResponseDTO(user_id=user_id, renewed=True, credits_granted=credits))


@pytest.mark.asyncio
class TestRenewMonthlyCredits:
    async def test_lapsed_cycle_is_renewed_from_its_expiry(self, make_account, now):
        lapsed_at = now - timedelta(days=2)
        account = make_account(credits_expires_at=lapsed_at)
        user_repo = MagicMock()
        user_repo.list_monthly_lapsed = AsyncMock(return_value=[account])
        renew = renewal_use_case(renewed("user_123"))

        result = await RenewMonthlyCredits(user_repo, renew).execute(now=now)

        assert result.value.users_checked == 1
        assert result.value.users_renewed == 1
        assert result.value.credits_granted == 500
        user_repo.list_monthly_lapsed.assert_called_once_with(now - timedelta(hours=24), 50)

        command = renew.execute.call_args.args[0]
        assert command.user_id == "user_123"
        assert command.plan_id == "PREMIUM"
        assert command.billing_cycle == BillingCycle.MONTHLY
        assert command.cycle_start == lapsed_at
        assert command.reference_id == "monthly-renewal:2024-06-15"

    async def test_user_renewed_by_webhook_is_counted_not_granted(self, make_account, now):
        user_repo = MagicMock()
        user_repo.list_monthly_lapsed = AsyncMock(return_value=[make_account(credits_expires_at=now - timedelta(days=3))])
        renew = renewal_use_case(Return.ok(RenewCreditsResponseDTO(user_id="user_123", renewed=False)))

        result = await RenewMonthlyCredits(user_repo, renew).execute(now=now)

        assert result.value.already_renewed == 1
        assert result.value.users_renewed == 0
        assert result.value.credits_granted == 0

    async def test_one_failure_does_not_stop_the_batch(self, make_account, now):
        user_repo = MagicMock()
        user_repo.list_monthly_lapsed = AsyncMock(
            return_value=[
                make_account(id="user_a", credits_expires_at=now - timedelta(days=2)),
                make_account(id="user_b", credits_expires_at=now - timedelta(days=2)),
            ]
        )
        renew = renewal_use_case(
            Return.err(Error(code="PLAN_NOT_FOUND", message="Plan PREMIUM not found")),
            renewed("user_b"),
        )

        result = await RenewMonthlyCredits(user_repo, renew).execute(now=now)

        assert result.value.errors == 1
        assert result.value.users_renewed == 1
        assert renew.execute.call_count == 2

    async def test_load_failure(self, now):
        user_repo = MagicMock()
        user_repo.list_monthly_lapsed = AsyncMock(side_effect=Exception("connection reset"))

        result = await RenewMonthlyCredits(user_repo, renewal_use_case()).execute(now=now)

        assert result.is_err()
        assert result.error.code == "RENEW_MONTHLY_CREDITS_FAILED"
