"""Unit tests for RenewSubscriptionCredits use case"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.credits.dtos import RenewCreditsCommandDTO
from src.app.use_cases.credits.renew_subscription_credits import RenewSubscriptionCredits
from src.domain.ledger_entry import CreditSource, EntryKind
from src.domain.subscription_plan import SubscriptionPlan
from src.domain.user_account import BillingCycle


@pytest.fixture
def mock_user_repo():
    repo = MagicMock()
    repo.update = AsyncMock(side_effect=lambda a: a)
    return repo


@pytest.fixture
def mock_plan_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=SubscriptionPlan(id="PREMIUM", name="Premium", monthly_credits=500))
    return repo


@pytest.fixture
def renew_use_case(mock_uow, mock_user_repo, mock_ledger_repo, mock_plan_repo, mock_notifier):
    return RenewSubscriptionCredits(
        uow=mock_uow,
        user_repo=mock_user_repo,
        ledger_repo=mock_ledger_repo,
        plan_repo=mock_plan_repo,
        notifier=mock_notifier,
    )


@pytest.mark.asyncio
class TestRenewSubscriptionCredits:
    async def test_monthly_renewal_resets_the_cycle(
        self, renew_use_case, mock_user_repo, mock_ledger_repo, mock_uow, make_account, now
    ):
        """
        Given: Monthly user mid-cycle with 100 credits used
        When: A new cycle starting now is renewed
        Then: used=0, limit=500, expiry 30 days out, one EARNED SUBSCRIPTION entry
        """
        account = make_account()
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        result = await renew_use_case.execute(
            RenewCreditsCommandDTO(user_id="user_123", cycle_start=now, reference_id="pay_1"), now=now
        )

        assert result.is_ok()
        assert result.value.renewed is True
        assert result.value.credits_granted == 500
        assert account.credits_used == 0
        assert account.credits_limit == 500
        assert account.last_credit_renewal_at == now
        assert account.credits_expires_at == now + timedelta(days=30)

        entry = mock_ledger_repo.appended[0]
        assert entry.kind == EntryKind.EARNED
        assert entry.source == CreditSource.SUBSCRIPTION
        assert entry.amount == 500
        assert entry.balance_after == 600
        assert entry.reference_id == "pay_1"
        mock_uow.commit.assert_called_once()

    async def test_yearly_renewal_grants_twelve_months(self, renew_use_case, mock_user_repo, make_account, now):
        account = make_account(billing_cycle=BillingCycle.YEARLY)
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        result = await renew_use_case.execute(RenewCreditsCommandDTO(user_id="user_123"), now=now)

        assert result.value.credits_granted == 6000
        assert account.credits_expires_at == now + timedelta(days=365)

    async def test_cycle_already_renewed_is_a_no_op(
        self, renew_use_case, mock_user_repo, mock_ledger_repo, mock_uow, mock_notifier, make_account, now
    ):
        """
        Given: The account was renewed after the cycle start (duplicate confirmation)
        When: The same cycle is renewed again
        Then: renewed=False, no ledger entry, no commit
        """
        account = make_account(last_credit_renewal_at=now - timedelta(hours=1))
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        result = await renew_use_case.execute(
            RenewCreditsCommandDTO(user_id="user_123", cycle_start=now - timedelta(hours=2)), now=now
        )

        assert result.is_ok()
        assert result.value.renewed is False
        assert account.credits_used == 100
        assert mock_ledger_repo.appended == []
        mock_uow.commit.assert_not_called()
        mock_notifier.publish.assert_not_called()

    async def test_user_without_plan(self, renew_use_case, mock_user_repo, make_account, now):
        mock_user_repo.get_by_id = AsyncMock(return_value=make_account(plan_id=None))

        result = await renew_use_case.execute(RenewCreditsCommandDTO(user_id="user_123"), now=now)

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"

    async def test_unknown_plan(self, renew_use_case, mock_user_repo, mock_plan_repo, mock_uow, make_account, now):
        mock_user_repo.get_by_id = AsyncMock(return_value=make_account())
        mock_plan_repo.get_by_id = AsyncMock(return_value=None)

        result = await renew_use_case.execute(RenewCreditsCommandDTO(user_id="user_123", plan_id="GOLD"), now=now)

        assert result.is_err()
        assert result.error.code == "PLAN_NOT_FOUND"
        mock_uow.rollback.assert_called_once()
