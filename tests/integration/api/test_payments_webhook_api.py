"""Integration tests for the payment gateway webhook endpoint"""

import pytest
from httpx import AsyncClient
from sqlmodel import select

from src.domain.credit_purchase import CreditPurchase, PurchaseStatus
from src.domain.ledger_entry import LedgerEntry
from src.domain.payment import Payment
from src.domain.user_account import UserAccount
from src.domain.webhook_event import WebhookEvent


def payment_event(event, payment_id="pay_1", customer="cus_1", **payment):
    body = {"id": payment_id, "customer": customer, "subscription": "sub_1", "value": 89.9, "dueDate": "2024-07-10"}
    body.update(payment)
    return {"event": event, "payment": body}


async def ledger_entries(session):
    return (await session.execute(select(LedgerEntry))).scalars().all()


class TestWebhookAuthentication:
    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient, db_session, seeded):
        response = await client.post("/payments/webhook", json=payment_event("PAYMENT_CONFIRMED"))

        assert response.status_code == 401
        assert (await db_session.execute(select(WebhookEvent))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_wrong_token(self, client: AsyncClient, seeded):
        response = await client.post(
            "/payments/webhook",
            headers={"asaas-access-token": "forged"},
            json=payment_event("PAYMENT_CONFIRMED"),
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_body_not_json(self, client: AsyncClient, seeded, webhook_headers):
        response = await client.post(
            "/payments/webhook",
            headers={**webhook_headers, "Content-Type": "application/json"},
            content=b"not json",
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_payment_event_without_customer(self, client: AsyncClient, seeded, webhook_headers):
        response = await client.post(
            "/payments/webhook",
            headers=webhook_headers,
            json={"event": "PAYMENT_CONFIRMED", "payment": {"id": "pay_1"}},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestPaymentEvents:
    @pytest.mark.asyncio
    async def test_confirmed_subscription_payment_renews_once(
        self, client: AsyncClient, db_session, seeded, webhook_headers
    ):
        """
        Given: An active subscriber mid-cycle
        When: PAYMENT_CONFIRMED is delivered twice
        Then: Credits renew once, the second delivery is acknowledged as duplicate
        """
        first = await client.post("/payments/webhook", headers=webhook_headers, json=payment_event("PAYMENT_CONFIRMED"))
        second = await client.post("/payments/webhook", headers=webhook_headers, json=payment_event("PAYMENT_CONFIRMED"))

        assert first.status_code == 200
        assert first.json()["processed"] is True
        assert second.status_code == 200
        assert second.json()["duplicate"] is True

        account = await db_session.get(UserAccount, seeded.user_id, populate_existing=True)
        assert account.credits_used == 0
        assert account.credits_limit == 500
        assert account.subscription_status == "ACTIVE"

        entries = await ledger_entries(db_session)
        assert len(entries) == 1
        assert entries[0].kind == "EARNED"
        assert entries[0].source == "SUBSCRIPTION"
        assert entries[0].amount == 500
        assert entries[0].reference_id == "pay_1"

    @pytest.mark.asyncio
    async def test_overdue_payment_changes_status_only(
        self, client: AsyncClient, db_session, seeded, webhook_headers
    ):
        response = await client.post("/payments/webhook", headers=webhook_headers, json=payment_event("PAYMENT_OVERDUE"))

        assert response.status_code == 200
        account = await db_session.get(UserAccount, seeded.user_id, populate_existing=True)
        assert account.subscription_status == "OVERDUE"
        assert account.credits_used == 100
        assert await ledger_entries(db_session) == []

        payment = (await db_session.execute(select(Payment).where(Payment.gateway_payment_id == "pay_1"))).scalars().one()
        assert payment.status == "OVERDUE"

    @pytest.mark.asyncio
    async def test_confirmed_package_payment_grants_credits(
        self, client: AsyncClient, db_session, seeded, webhook_headers
    ):
        db_session.add(
            CreditPurchase(
                id="pkg_2",
                user_id=seeded.user_id,
                package_name="Pro pack",
                credit_amount=250,
                status=PurchaseStatus.PENDING,
                gateway_checkout_id="chk_9",
            )
        )
        await db_session.commit()

        response = await client.post(
            "/payments/webhook",
            headers=webhook_headers,
            json=payment_event("PAYMENT_CONFIRMED", payment_id="pay_pkg", subscription=None, checkoutSession="chk_9"),
        )

        assert response.status_code == 200
        account = await db_session.get(UserAccount, seeded.user_id, populate_existing=True)
        assert account.credits_balance == 350
        assert account.credits_used == 100

        package = await db_session.get(CreditPurchase, "pkg_2", populate_existing=True)
        assert package.status == "CONFIRMED"
        assert package.valid_until is not None

        entries = await ledger_entries(db_session)
        assert [(e.kind, e.source, e.amount) for e in entries] == [("EARNED", "PURCHASE", 250)]

    @pytest.mark.asyncio
    async def test_unknown_customer_is_stored_for_retry(
        self, client: AsyncClient, db_session, seeded, webhook_headers
    ):
        response = await client.post(
            "/payments/webhook",
            headers=webhook_headers,
            json=payment_event("PAYMENT_CONFIRMED", payment_id="pay_x", customer="cus_unknown"),
        )

        assert response.status_code == 200
        assert response.json()["processed"] is False

        event = (await db_session.execute(
            select(WebhookEvent).execution_options(populate_existing=True)
        )).scalars().one()
        assert event.processed is False
        assert event.retry_count == 1
        assert "USER_NOT_FOUND" in event.processing_error

    @pytest.mark.asyncio
    async def test_unknown_event_type_is_acknowledged(
        self, client: AsyncClient, db_session, seeded, webhook_headers
    ):
        response = await client.post(
            "/payments/webhook",
            headers=webhook_headers,
            json={"event": "INVOICE_CREATED", "invoice": {"id": "inv_1"}},
        )

        assert response.status_code == 200
        assert response.json()["processed"] is True
        event = (await db_session.execute(select(WebhookEvent))).scalars().one()
        assert event.payload["invoice"] == {"id": "inv_1"}


class TestOutOfOrderDelivery:
    @pytest.mark.asyncio
    async def test_created_after_confirmed_keeps_subscriber_active(
        self, client: AsyncClient, db_session, seeded, webhook_headers, cron_headers
    ):
        """
        Given: PAYMENT_CONFIRMED processed for a past-due charge
        When: Its PAYMENT_CREATED arrives late and the inconsistency job runs
        Then: The payment stays CONFIRMED and the subscriber stays ACTIVE
        """
        await client.post("/payments/webhook", headers=webhook_headers, json=payment_event("PAYMENT_CONFIRMED"))
        late = await client.post("/payments/webhook", headers=webhook_headers, json=payment_event("PAYMENT_CREATED"))
        assert late.json()["processed"] is True

        cron = await client.get("/cron/verify-payment-inconsistencies", headers=cron_headers)

        assert cron.json()["pending_payments_now_overdue"] == 0
        payment = (await db_session.execute(
            select(Payment).where(Payment.gateway_payment_id == "pay_1").execution_options(populate_existing=True)
        )).scalars().one()
        assert payment.status == "CONFIRMED"
        account = await db_session.get(UserAccount, seeded.user_id, populate_existing=True)
        assert account.subscription_status == "ACTIVE"

    @pytest.mark.asyncio
    async def test_overdue_after_confirmed_is_ignored(
        self, client: AsyncClient, db_session, seeded, webhook_headers
    ):
        await client.post("/payments/webhook", headers=webhook_headers, json=payment_event("PAYMENT_CONFIRMED"))
        await client.post("/payments/webhook", headers=webhook_headers, json=payment_event("PAYMENT_OVERDUE"))

        account = await db_session.get(UserAccount, seeded.user_id, populate_existing=True)
        assert account.subscription_status == "ACTIVE"
