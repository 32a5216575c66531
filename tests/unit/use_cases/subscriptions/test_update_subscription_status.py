"""Unit tests for UpdateSubscriptionStatus use case"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.subscriptions.dtos import UpdateSubscriptionStatusCommandDTO
from src.app.use_cases.subscriptions.update_subscription_status import UpdateSubscriptionStatus
from src.domain.user_account import SubscriptionStatus


@pytest.fixture
def mock_user_repo():
    repo = MagicMock()
    repo.update = AsyncMock(side_effect=lambda a: a)
    return repo


@pytest.fixture
def update_status(mock_uow, mock_user_repo):
    return UpdateSubscriptionStatus(mock_uow, mock_user_repo)


@pytest.mark.asyncio
class TestUpdateSubscriptionStatus:
    async def test_overdue_keeps_plan_and_credits(self, update_status, mock_user_repo, mock_uow, make_account, now):
        """
        Given: ACTIVE user on PREMIUM
        When: Status is set to OVERDUE
        Then: Status changes, plan and credit fields are untouched
        """
        account = make_account()
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        result = await update_status.execute(
            UpdateSubscriptionStatusCommandDTO(user_id="user_123", status=SubscriptionStatus.OVERDUE), now=now
        )

        assert result.is_ok()
        assert result.value.previous_status == SubscriptionStatus.ACTIVE
        assert result.value.changed is True
        assert account.subscription_status == SubscriptionStatus.OVERDUE
        assert account.plan_id == "PREMIUM"
        assert account.credits_limit == 500
        assert account.credits_used == 100
        mock_uow.commit.assert_called_once()

    async def test_replay_reports_no_change(self, update_status, mock_user_repo, make_account, now):
        mock_user_repo.get_by_id = AsyncMock(return_value=make_account())

        result = await update_status.execute(
            UpdateSubscriptionStatusCommandDTO(user_id="user_123", status=SubscriptionStatus.ACTIVE), now=now
        )

        assert result.value.changed is False

    async def test_first_activation_records_start(self, update_status, mock_user_repo, make_account, now):
        account = make_account(subscription_status=SubscriptionStatus.PENDING, subscription_started_at=None)
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        await update_status.execute(
            UpdateSubscriptionStatusCommandDTO(
                user_id="user_123", status=SubscriptionStatus.ACTIVE, subscription_id="sub_new"
            ),
            now=now,
        )

        assert account.subscription_started_at == now
        assert account.subscription_id == "sub_new"

    async def test_reactivation_keeps_original_start(self, update_status, mock_user_repo, make_account, now):
        started = now - timedelta(days=200)
        account = make_account(subscription_status=SubscriptionStatus.OVERDUE, subscription_started_at=started)
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        await update_status.execute(
            UpdateSubscriptionStatusCommandDTO(user_id="user_123", status=SubscriptionStatus.ACTIVE), now=now
        )

        assert account.subscription_started_at == started

    async def test_cancellation_stamps_end_once(self, update_status, mock_user_repo, make_account, now):
        account = make_account()
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        await update_status.execute(
            UpdateSubscriptionStatusCommandDTO(user_id="user_123", status=SubscriptionStatus.CANCELLED), now=now
        )
        await update_status.execute(
            UpdateSubscriptionStatusCommandDTO(user_id="user_123", status=SubscriptionStatus.CANCELLED),
            now=now + timedelta(days=1),
        )

        assert account.subscription_ends_at == now

    async def test_unknown_user(self, update_status, mock_user_repo, mock_uow):
        mock_user_repo.get_by_id = AsyncMock(return_value=None)

        result = await update_status.execute(
            UpdateSubscriptionStatusCommandDTO(user_id="missing", status=SubscriptionStatus.ACTIVE)
        )

        assert result.is_err()
        assert result.error.code == "USER_NOT_FOUND"
        mock_uow.rollback.assert_called_once()
