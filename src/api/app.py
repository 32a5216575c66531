"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from src.adapter.services.asaas_gateway import AsaasGatewayClient
from src.adapter.services.database import Database
from src.adapter.services.realtime_notifier import QueueRealtimeNotifier, create_realtime_notifier
from src.api.error import register_error_handlers
from src.api.routes import admin, billing, cron, payments
from src.domain.base import utcnow

logger = logging.getLogger(__name__)


def create_app(config) -> FastAPI:
    """
    Build the API application

    The database handle, realtime notifier and gateway client live on
    ``app.state`` and are created here, once per application.
    """
    logging.basicConfig(
        level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting credits service")
        if config.DB_CREATE_ALL:
            await app.state.database.create_all()
        yield
        logger.info("Shutting down credits service")
        await app.state.database.dispose()

    app = FastAPI(
        title="Credits Service",
        description="Credit ledger, payment webhooks and reconciliation jobs",
        version="1.0.0",
        lifespan=lifespan,
    )

    if config.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.CORS_ORIGINS,
            allow_credentials=config.CORS_ALLOW_CREDENTIALS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    queue_notifier = QueueRealtimeNotifier(max_queue_size=config.REALTIME_QUEUE_SIZE)

    app.state.config = config
    app.state.database = Database(config.DB_URI, echo=config.DB_ECHO)
    app.state.queue_notifier = queue_notifier
    app.state.notifier = create_realtime_notifier(
        webhook_url=config.REALTIME_WEBHOOK_URL,
        queue_notifier=queue_notifier,
    )
    app.state.gateway = None
    if config.GATEWAY_API_KEY:
        app.state.gateway = AsaasGatewayClient(
            api_key=config.GATEWAY_API_KEY,
            base_url=config.GATEWAY_API_URL,
            timeout=config.GATEWAY_TIMEOUT_SECONDS,
        )
    else:
        logger.warning("GATEWAY_API_KEY not set, gateway lookups are disabled")

    register_error_handlers(app)

    prefix = config.API_PREFIX
    app.include_router(payments.router, prefix=prefix)
    app.include_router(cron.router, prefix=prefix)
    app.include_router(admin.router, prefix=prefix)
    app.include_router(billing.router, prefix=prefix)

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok", "timestamp": utcnow().isoformat()}

    return app
