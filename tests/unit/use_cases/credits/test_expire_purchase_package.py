"""Unit tests for ExpirePurchasePackage use case"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.credits.expire_purchase_package import ExpirePurchasePackage
from src.domain.credit_purchase import CreditPurchase, PurchaseStatus
from src.domain.ledger_entry import CreditSource, EntryKind


@pytest.fixture
def mock_user_repo():
    repo = MagicMock()
    repo.update = AsyncMock(side_effect=lambda a: a)
    return repo


@pytest.fixture
def mock_purchase_repo():
    repo = MagicMock()
    repo.update = AsyncMock(side_effect=lambda p: p)
    return repo


@pytest.fixture
def expire_use_case(mock_uow, mock_user_repo, mock_ledger_repo, mock_purchase_repo, mock_notifier):
    return ExpirePurchasePackage(
        uow=mock_uow,
        user_repo=mock_user_repo,
        ledger_repo=mock_ledger_repo,
        purchase_repo=mock_purchase_repo,
        notifier=mock_notifier,
    )


def expired_package(now, used=50, **overrides):
    fields = dict(
        id="pkg_1",
        user_id="user_123",
        package_name="Starter",
        credit_amount=100,
        used_credits=used,
        status=PurchaseStatus.CONFIRMED,
        valid_until=now - timedelta(days=1),
    )
    fields.update(overrides)
    return CreditPurchase(**fields)


@pytest.mark.asyncio
class TestExpirePurchasePackage:
    async def test_remaining_credits_are_removed(
        self, expire_use_case, mock_user_repo, mock_ledger_repo, mock_purchase_repo, mock_uow, make_account, now
    ):
        """
        Given: Package of 100 credits with 50 used, validity passed, purchased pool 100
        When: The package is expired
        Then: Purchased pool 50, one EXPIRED entry of 50, package marked expired
        """
        package = expired_package(now)
        account = make_account(credits_balance=100)
        mock_purchase_repo.get_by_id = AsyncMock(return_value=package)
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        result = await expire_use_case.execute("pkg_1", now=now)

        assert result.is_ok()
        assert result.value.expired_now is True
        assert result.value.credits_expired == 50
        assert account.credits_balance == 50
        assert package.is_expired is True

        entry = mock_ledger_repo.appended[0]
        assert entry.kind == EntryKind.EXPIRED
        assert entry.source == CreditSource.EXPIRATION
        assert entry.amount == 50
        assert entry.credit_purchase_id == "pkg_1"
        assert entry.balance_after == 450
        mock_uow.commit.assert_called_once()

    async def test_cached_balance_below_remaining_is_clamped(
        self, expire_use_case, mock_user_repo, mock_ledger_repo, mock_purchase_repo, make_account, now, caplog
    ):
        mock_purchase_repo.get_by_id = AsyncMock(return_value=expired_package(now, used=0))
        account = make_account(credits_balance=30)
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        result = await expire_use_case.execute("pkg_1", now=now)

        assert result.value.credits_expired == 30
        assert account.credits_balance == 0
        assert mock_ledger_repo.appended[0].amount == 30
        assert "BALANCE_CLAMPED" in caplog.text

    async def test_fully_used_package_is_marked_without_entry(
        self, expire_use_case, mock_user_repo, mock_ledger_repo, mock_purchase_repo, mock_uow, now
    ):
        package = expired_package(now, used=100)
        mock_purchase_repo.get_by_id = AsyncMock(return_value=package)
        mock_user_repo.get_by_id = AsyncMock()

        result = await expire_use_case.execute("pkg_1", now=now)

        assert result.value.expired_now is True
        assert result.value.credits_expired == 0
        assert package.is_expired is True
        assert mock_ledger_repo.appended == []
        mock_user_repo.get_by_id.assert_not_called()
        mock_uow.commit.assert_called_once()

    async def test_already_expired_package_is_a_no_op(
        self, expire_use_case, mock_ledger_repo, mock_purchase_repo, mock_uow, now
    ):
        mock_purchase_repo.get_by_id = AsyncMock(return_value=expired_package(now, is_expired=True))

        result = await expire_use_case.execute("pkg_1", now=now)

        assert result.is_ok()
        assert result.value.expired_now is False
        assert mock_ledger_repo.appended == []
        mock_uow.commit.assert_not_called()

    async def test_account_row_is_locked_before_package_row(
        self, expire_use_case, mock_user_repo, mock_purchase_repo, make_account, now
    ):
        """
        Given: A package with unused credits
        When: The package is expired
        Then: The account is locked first, then the package is re-read under lock
        """
        package = expired_package(now)
        locks = []

        async def get_package(package_id, for_update=False):
            locks.append(("package", for_update))
            return package

        async def get_account(user_id, for_update=False):
            locks.append(("account", for_update))
            return make_account()

        mock_purchase_repo.get_by_id = AsyncMock(side_effect=get_package)
        mock_user_repo.get_by_id = AsyncMock(side_effect=get_account)

        result = await expire_use_case.execute("pkg_1", now=now)

        assert result.value.expired_now is True
        assert locks == [("package", False), ("account", True), ("package", True)]

    async def test_package_expired_while_waiting_for_lock_is_a_no_op(
        self, expire_use_case, mock_user_repo, mock_ledger_repo, mock_purchase_repo, mock_uow, make_account, now
    ):
        account = make_account(credits_balance=100)
        mock_purchase_repo.get_by_id = AsyncMock(
            side_effect=[expired_package(now), expired_package(now, is_expired=True)]
        )
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        result = await expire_use_case.execute("pkg_1", now=now)

        assert result.value.expired_now is False
        assert account.credits_balance == 100
        assert mock_ledger_repo.appended == []
        mock_uow.commit.assert_not_called()
