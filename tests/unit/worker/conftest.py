import pytest
from unittest.mock import AsyncMock, MagicMock, patch


@pytest.fixture
def mock_config():
    """Settings object with every worker enabled and no external channels"""
    config = MagicMock()
    config.DB_URI = "sqlite+aiosqlite:///:memory:"
    config.REALTIME_WEBHOOK_URL = None
    config.GATEWAY_API_KEY = None
    config.WEBHOOK_RETRY_ENABLED = True
    config.CREDIT_EXPIRATION_ENABLED = True
    config.PAYMENT_RECONCILIATION_ENABLED = True
    config.SUBSCRIPTION_MAINTENANCE_ENABLED = True
    return config


@pytest.fixture
def mock_services():
    """BillingServices built by the worker, with Database patched out"""
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)

    services = MagicMock()
    with patch("src.worker.base.Database") as mock_database_class, patch(
        "src.worker.base.BillingServices", return_value=services
    ):
        database = mock_database_class.return_value
        database.session.return_value = session
        database.dispose = AsyncMock()
        services.database = database
        yield services

