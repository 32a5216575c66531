import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./credits.db")
    DB_ECHO = bool(data.get("DB_ECHO", False))
    DB_CREATE_ALL = bool(data.get("DB_CREATE_ALL", True))
    API_PREFIX = data.get("API_PREFIX", "")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    API_RELOAD = bool(data.get("API_RELOAD", False))
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # Shared secrets
    WEBHOOK_TOKEN = data.get("WEBHOOK_TOKEN", None)
    CRON_SECRET = data.get("CRON_SECRET", None)
    ADMIN_API_TOKEN = data.get("ADMIN_API_TOKEN", None)

    # Payment gateway
    GATEWAY_API_URL = data.get("GATEWAY_API_URL", "https://sandbox.asaas.com/api/v3")
    GATEWAY_API_KEY = data.get("GATEWAY_API_KEY", None)
    GATEWAY_TIMEOUT_SECONDS = data.get("GATEWAY_TIMEOUT_SECONDS", 10.0)

    # Webhook retry queue
    WEBHOOK_MAX_RETRIES = data.get("WEBHOOK_MAX_RETRIES", 5)
    WEBHOOK_RETRY_MIN_AGE_SECONDS = data.get("WEBHOOK_RETRY_MIN_AGE_SECONDS", 300)

    # Credits
    JOB_BATCH_SIZE = data.get("JOB_BATCH_SIZE", 50)
    SUBSCRIPTION_GRACE_PERIOD_HOURS = data.get("SUBSCRIPTION_GRACE_PERIOD_HOURS", 24)
    PURCHASED_CREDITS_VALIDITY_DAYS = data.get("PURCHASED_CREDITS_VALIDITY_DAYS", 365)
    ADMIN_REASON_MIN_LENGTH = data.get("ADMIN_REASON_MIN_LENGTH", 10)
    ANNUAL_EXPIRY_GRACE_DAYS = data.get("ANNUAL_EXPIRY_GRACE_DAYS", 7)

    # Realtime credit updates
    REALTIME_WEBHOOK_URL = data.get("REALTIME_WEBHOOK_URL", None)
    REALTIME_QUEUE_SIZE = data.get("REALTIME_QUEUE_SIZE", 100)

    # Workers
    WEBHOOK_RETRY_ENABLED = bool(data.get("WEBHOOK_RETRY_ENABLED", True))
    WEBHOOK_RETRY_INTERVAL_SECONDS = data.get("WEBHOOK_RETRY_INTERVAL_SECONDS", 300)  # 5 minutes
    CREDIT_EXPIRATION_ENABLED = bool(data.get("CREDIT_EXPIRATION_ENABLED", True))
    CREDIT_EXPIRATION_INTERVAL_SECONDS = data.get("CREDIT_EXPIRATION_INTERVAL_SECONDS", 3600)  # Hourly
    PAYMENT_RECONCILIATION_ENABLED = bool(data.get("PAYMENT_RECONCILIATION_ENABLED", True))
    PAYMENT_RECONCILIATION_INTERVAL_SECONDS = data.get("PAYMENT_RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
    SUBSCRIPTION_MAINTENANCE_ENABLED = bool(data.get("SUBSCRIPTION_MAINTENANCE_ENABLED", True))
    SUBSCRIPTION_MAINTENANCE_INTERVAL_SECONDS = data.get("SUBSCRIPTION_MAINTENANCE_INTERVAL_SECONDS", 21600)  # 6 hours
