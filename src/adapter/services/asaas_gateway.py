"""Asaas Payment Gateway Client

httpx-based implementation of PaymentGateway for the Asaas v3 API.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
import httpx
from src.app.errors import NotFoundError, TransientGatewayError
from src.app.services.payment_gateway import GatewayPayment, GatewaySubscription, PaymentGateway

logger = logging.getLogger(__name__)

SANDBOX_URL = "https://sandbox.asaas.com/api/v3"


def _parse_date(raw: Optional[str]) -> Optional[datetime]:
    """Asaas dates are YYYY-MM-DD"""
    if not raw:
        return None
    return datetime.strptime(raw[:10], "%Y-%m-%d")


class AsaasGatewayClient(PaymentGateway):
    """
    Asaas API client

    Error mapping:
    - Network errors, timeouts and 5xx responses -> TransientGatewayError
    - 404 -> NotFoundError
    - Other 4xx -> TransientGatewayError with the response body as reason
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = SANDBOX_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "access_token": self.api_key,
        }

    async def _get(self, path: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Gateway request failed: GET {path}: {e}")
            raise TransientGatewayError(f"Gateway request failed: {path}", reason=str(e)) from e

        if response.status_code == 404:
            raise NotFoundError(f"Gateway resource not found: {path}")

        if response.status_code >= 400:
            logger.error(f"Gateway returned {response.status_code} for GET {path}")
            raise TransientGatewayError(
                f"Gateway returned {response.status_code}",
                reason=response.text[:500],
            )

        return response.json()

    async def get_subscription(self, subscription_id: str) -> GatewaySubscription:
        data = await self._get(f"/subscriptions/{subscription_id}")
        return GatewaySubscription(
            id=data["id"],
            customer=data.get("customer", ""),
            status=data.get("status", ""),
            cycle=data.get("cycle"),
            value=data.get("value"),
            next_due_date=_parse_date(data.get("nextDueDate")),
            deleted=bool(data.get("deleted", False)),
        )

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        data = await self._get(f"/payments/{payment_id}")
        return GatewayPayment(
            id=data["id"],
            customer=data.get("customer"),
            subscription=data.get("subscription"),
            status=data.get("status", ""),
            value=data.get("value"),
            due_date=_parse_date(data.get("dueDate")),
            external_reference=data.get("externalReference"),
        )
