"""Unit tests for GetAvailableCredits and ListLedgerEntries use cases"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.credits.get_available_credits import GetAvailableCredits
from src.app.use_cases.credits.list_ledger_entries import ListLedgerEntries
from src.domain.ledger_entry import CreditSource, EntryKind, LedgerEntry


@pytest.fixture
def mock_user_repo():
    return MagicMock()


@pytest.mark.asyncio
class TestGetAvailableCredits:
    async def test_returns_both_pools(self, mock_user_repo, make_account, now):
        mock_user_repo.get_by_id = AsyncMock(return_value=make_account())

        result = await GetAvailableCredits(mock_user_repo).execute("user_123", now=now)

        assert result.is_ok()
        assert result.value.subscription == 400
        assert result.value.purchased == 100
        assert result.value.total == 500

    async def test_grace_period_is_applied(self, mock_user_repo, make_account, now):
        account = make_account(credits_expires_at=now - timedelta(hours=30))
        mock_user_repo.get_by_id = AsyncMock(return_value=account)

        short = await GetAvailableCredits(mock_user_repo, grace_period=timedelta(hours=24)).execute("user_123", now=now)
        long = await GetAvailableCredits(mock_user_repo, grace_period=timedelta(hours=48)).execute("user_123", now=now)

        assert short.value.subscription == 0
        assert long.value.subscription == 400

    async def test_unknown_user(self, mock_user_repo):
        mock_user_repo.get_by_id = AsyncMock(return_value=None)

        result = await GetAvailableCredits(mock_user_repo).execute("missing")

        assert result.is_err()
        assert result.error.code == "USER_NOT_FOUND"


@pytest.mark.asyncio
class TestListLedgerEntries:
    async def test_page_is_mapped_and_limit_clamped(self, mock_user_repo, mock_ledger_repo, make_account, now):
        mock_user_repo.get_by_id = AsyncMock(return_value=make_account())
        mock_ledger_repo.get_by_user_id = AsyncMock(
            return_value=(
                [
                    LedgerEntry(
                        id=7,
                        user_id="user_123",
                        kind=EntryKind.SPENT,
                        source=CreditSource.VIDEO,
                        amount=20,
                        balance_after=480,
                        created_at=now,
                    )
                ],
                31,
            )
        )

        result = await ListLedgerEntries(mock_user_repo, mock_ledger_repo).execute("user_123", limit=500, offset=-3)

        assert result.is_ok()
        page = result.value
        assert page.limit == 100
        assert page.offset == 0
        assert page.total == 31
        assert page.entries[0].kind == "SPENT"
        assert page.entries[0].source == "VIDEO"
        mock_ledger_repo.get_by_user_id.assert_called_once_with("user_123", limit=100, offset=0)
