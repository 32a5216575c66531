import pytest_asyncio
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from httpx import ASGITransport, AsyncClient
from config import ApplicationConfig
from src.adapter.services.database import Database
from src.api.app import create_app
from src.depends import get_session
from src.domain.base import utcnow
from src.domain.credit_purchase import CreditPurchase, PurchaseStatus
from src.domain.subscription_plan import SubscriptionPlan
from src.domain.user_account import BillingCycle, SubscriptionStatus, UserAccount, UserRole


class IntegrationConfig(ApplicationConfig):
    DB_URI = "sqlite+aiosqlite:///:memory:"
    DB_ECHO = False
    DB_CREATE_ALL = False
    API_PREFIX = ""
    CORS_ORIGINS = []
    WEBHOOK_TOKEN = "webhook_test_token"
    CRON_SECRET = "cron_test_secret"
    ADMIN_API_TOKEN = "admin_test_token"
    GATEWAY_API_KEY = None
    REALTIME_WEBHOOK_URL = None


@pytest_asyncio.fixture(scope="function")
async def database():
    """Fresh in-memory database per test"""
    database = Database(IntegrationConfig.DB_URI)
    await database.create_all()

    yield database

    await database.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    """Create a new database session for each test"""
    async with database.session() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session):
    """Create test client with database session override"""
    app = create_app(IntegrationConfig)

    # Override the session dependency to use test session
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def seeded(db_session):
    """
    PREMIUM plan, one admin and one active monthly subscriber

    The subscriber holds 400 subscription credits (500 - 100 used) and a
    100-credit purchased package, 500 in total.
    """
    now = utcnow()
    db_session.add_all([
        SubscriptionPlan(id="PREMIUM", name="Premium", monthly_credits=500, monthly_price=Decimal("89.90")),
        UserAccount(id="admin_1", email="admin@example.com", role=UserRole.ADMIN),
        UserAccount(
            id="user_1",
            email="user@example.com",
            plan_id="PREMIUM",
            billing_cycle=BillingCycle.MONTHLY,
            subscription_status=SubscriptionStatus.ACTIVE,
            gateway_customer_id="cus_1",
            subscription_id="sub_1",
            subscription_started_at=now - timedelta(days=40),
            next_due_date=now + timedelta(days=20),
            credits_limit=500,
            credits_used=100,
            credits_balance=100,
            credits_expires_at=now + timedelta(days=20),
            last_credit_renewal_at=now - timedelta(days=10),
        ),
        CreditPurchase(
            id="pkg_1",
            user_id="user_1",
            package_name="Starter",
            credit_amount=100,
            status=PurchaseStatus.CONFIRMED,
            valid_until=now + timedelta(days=200),
            confirmed_at=now - timedelta(days=5),
        ),
    ])
    await db_session.commit()
    return SimpleNamespace(user_id="user_1", admin_id="admin_1", package_id="pkg_1", customer_id="cus_1")


@pytest_asyncio.fixture
def admin_headers():
    return {"Authorization": "Bearer admin_test_token", "X-Admin-User-Id": "admin_1"}


@pytest_asyncio.fixture
def cron_headers():
    return {"Authorization": "Bearer cron_test_secret"}


@pytest_asyncio.fixture
def webhook_headers():
    return {"asaas-access-token": "webhook_test_token"}
