"""Unit tests for the Asaas gateway client"""

import pytest
import httpx
from datetime import datetime

from src.adapter.services.asaas_gateway import AsaasGatewayClient
from src.app.errors import NotFoundError, TransientGatewayError


def client_with(handler):
    return AsaasGatewayClient(
        api_key="test_key",
        base_url="https://gateway.test/api/v3/",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
class TestAsaasGatewayClient:
    async def test_get_subscription(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["token"] = request.headers.get("access_token")
            return httpx.Response(
                200,
                json={
                    "id": "sub_123",
                    "customer": "cus_123",
                    "status": "ACTIVE",
                    "cycle": "MONTHLY",
                    "value": 89.9,
                    "nextDueDate": "2024-07-10",
                },
            )

        subscription = await client_with(handler).get_subscription("sub_123")

        assert seen == {"path": "/api/v3/subscriptions/sub_123", "token": "test_key"}
        assert subscription.status == "ACTIVE"
        assert subscription.next_due_date == datetime(2024, 7, 10)
        assert subscription.deleted is False

    async def test_deleted_subscription(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"id": "sub_123", "customer": "cus_123", "status": "INACTIVE", "deleted": True}
            )

        subscription = await client_with(handler).get_subscription("sub_123")

        assert subscription.deleted is True
        assert subscription.next_due_date is None

    async def test_get_payment(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"id": "pay_1", "customer": "cus_123", "status": "PENDING", "dueDate": "2024-06-01"},
            )

        payment = await client_with(handler).get_payment("pay_1")

        assert payment.id == "pay_1"
        assert payment.subscription is None
        assert payment.due_date == datetime(2024, 6, 1)

    async def test_not_found(self):
        with pytest.raises(NotFoundError):
            await client_with(lambda request: httpx.Response(404)).get_subscription("sub_missing")

    async def test_server_error_is_transient(self):
        with pytest.raises(TransientGatewayError) as exc_info:
            await client_with(lambda request: httpx.Response(500, text="oops")).get_payment("pay_1")

        assert exc_info.value.reason == "oops"

    async def test_network_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransientGatewayError):
            await client_with(handler).get_subscription("sub_123")
