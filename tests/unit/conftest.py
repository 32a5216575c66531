import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from src.domain.user_account import BillingCycle, SubscriptionStatus, UserAccount

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def mock_notifier():
    notifier = MagicMock()
    notifier.publish = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def make_account():
    """Factory for active monthly accounts, 400 subscription + 100 purchased credits by default"""

    def _make(**overrides):
        fields = dict(
            id="user_123",
            email="user@example.com",
            plan_id="PREMIUM",
            billing_cycle=BillingCycle.MONTHLY,
            subscription_status=SubscriptionStatus.ACTIVE,
            gateway_customer_id="cus_123",
            subscription_id="sub_123",
            credits_limit=500,
            credits_used=100,
            credits_balance=100,
            credits_expires_at=NOW + timedelta(days=20),
            last_credit_renewal_at=NOW - timedelta(days=10),
        )
        fields.update(overrides)
        return UserAccount(**fields)

    return _make


@pytest.fixture
def mock_ledger_repo():
    """Ledger repository whose append assigns incrementing ids"""
    repo = MagicMock()
    appended = []

    async def _append(entry):
        entry.id = len(appended) + 1
        appended.append(entry)
        return entry

    repo.append = AsyncMock(side_effect=_append)
    repo.appended = appended
    return repo
