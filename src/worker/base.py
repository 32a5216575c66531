"""Shared plumbing of the background workers"""

import argparse
import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from config import ApplicationConfig
from src.adapter.factory import BillingServices
from src.adapter.services.asaas_gateway import AsaasGatewayClient
from src.adapter.services.database import Database
from src.adapter.services.realtime_notifier import create_realtime_notifier

logger = logging.getLogger(__name__)


class BaseWorker(ABC):
    """
    Owns a Database handle and runs ``run_once`` on an interval

    Subclasses implement ``run_once`` and ``describe``.
    """

    name = "worker"
    enabled_setting: Optional[str] = None

    def __init__(self, db_uri: Optional[str] = None, config=ApplicationConfig):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to config.DB_URI)
            config: Settings object (defaults to ApplicationConfig)
        """
        self.config = config
        self.db_uri = db_uri or config.DB_URI
        self.database = Database(self.db_uri)
        self.notifier = create_realtime_notifier(webhook_url=config.REALTIME_WEBHOOK_URL)
        self.gateway = None
        if config.GATEWAY_API_KEY:
            self.gateway = AsaasGatewayClient(
                api_key=config.GATEWAY_API_KEY,
                base_url=config.GATEWAY_API_URL,
                timeout=config.GATEWAY_TIMEOUT_SECONDS,
            )

        logger.info(f"{type(self).__name__} initialized")

    @property
    def enabled(self) -> bool:
        if self.enabled_setting is None:
            return True
        return bool(getattr(self.config, self.enabled_setting, True))

    @asynccontextmanager
    async def services(self) -> AsyncIterator[BillingServices]:
        async with self.database.session() as session:
            yield BillingServices(session, self.config, notifier=self.notifier, gateway=self.gateway)

    @abstractmethod
    async def run_once(self):
        pass

    def describe(self, result) -> str:
        return str(result)

    async def run_forever(self, interval_seconds: int):
        """
        Run continuously at the given interval

        A failed cycle is logged and the loop keeps going.
        """
        logger.info(f"Starting continuous {self.name} with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                logger.info(f"{self.name} cycle complete: {self.describe(result)}")
            except Exception as e:
                logger.error(f"{self.name} cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.database.dispose()
        logger.info(f"{type(self).__name__} shutdown complete")


async def run_worker(worker_cls, description: str, default_interval: int):
    """Command line entry point shared by the worker modules"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=default_interval,
        help=f"Interval between runs in seconds (default: {default_interval})"
    )
    args = parser.parse_args()

    worker = worker_cls()

    try:
        if args.once:
            result = await worker.run_once()
            print(f"{worker.name} complete: {worker.describe(result)}")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()
