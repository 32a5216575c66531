"""Webhook event handlers

One coroutine per gateway event family, selected through EVENT_HANDLERS.
Handlers re-derive target state (set status = X, upsert payment) so a replayed
event converges to the same result. Credit grants go through the balance use
cases and their idempotency guards.

A handler raises to signal failure; the processor leaves the event
unprocessed for the retry queue.
"""

import logging
from datetime import date, datetime
from typing import Awaitable, Callable, Dict, Optional
from libs.result import Result
from src.app.errors import BillingError, ErrorCode, NotFoundError, ValidationError
from src.app.repositories.credit_purchase_repository import CreditPurchaseRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.credits.dtos import GrantPurchasedCreditsCommandDTO, RenewCreditsCommandDTO
from src.app.use_cases.credits.grant_purchased_credits import GrantPurchasedCredits
from src.app.use_cases.credits.renew_subscription_credits import RenewSubscriptionCredits
from src.app.use_cases.subscriptions.dtos import UpdateSubscriptionStatusCommandDTO
from src.app.use_cases.subscriptions.update_subscription_status import UpdateSubscriptionStatus
from src.domain.credit_purchase import PurchaseStatus
from src.domain.payment import Payment, PaymentStatus, PaymentType
from src.domain.user_account import BillingCycle, SubscriptionStatus, UserAccount
from src.domain.webhook_event import WebhookEventType
from .dtos import GatewayPaymentPayload, WebhookPayloadDTO

logger = logging.getLogger(__name__)


def _as_datetime(value: Optional[date]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime(value.year, value.month, value.day)


def _billing_cycle(raw: Optional[str]) -> Optional[BillingCycle]:
    try:
        return BillingCycle(raw) if raw else None
    except ValueError:
        return None


# A payment leaves these states only through a refund, a cancellation or PAYMENT_RESTORED
SETTLED_PAYMENT_STATUSES = {PaymentStatus.CONFIRMED, PaymentStatus.REFUNDED, PaymentStatus.CANCELLED}
OPEN_PAYMENT_STATUSES = {PaymentStatus.PENDING, PaymentStatus.OVERDUE}


def can_move_payment(current: PaymentStatus, target: PaymentStatus, reopen: bool = False) -> bool:
    """Late PENDING/OVERDUE deliveries never move a settled payment backwards"""
    if target not in OPEN_PAYMENT_STATUSES or current not in SETTLED_PAYMENT_STATUSES:
        return True
    return reopen and current != PaymentStatus.CONFIRMED


def unwrap(result: Result):
    """Turn an error Result of a nested use case into an exception"""
    if result.is_err():
        raise BillingError(result.error.message, code=result.error.code, reason=result.error.reason)
    return result.value


class WebhookHandlers:
    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        payment_repo: PaymentRepository,
        purchase_repo: CreditPurchaseRepository,
        renew_credits: RenewSubscriptionCredits,
        grant_credits: GrantPurchasedCredits,
        update_status: UpdateSubscriptionStatus,
        gateway: Optional[PaymentGateway] = None,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.payment_repo = payment_repo
        self.purchase_repo = purchase_repo
        self.renew_credits = renew_credits
        self.grant_credits = grant_credits
        self.update_status = update_status
        self.gateway = gateway

    async def handle(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        handler = EVENT_HANDLERS[event_type]
        await handler(self, event_type, payload, now)

    # Lookups

    async def _user_by_customer(self, customer_id: Optional[str]) -> UserAccount:
        if not customer_id:
            raise ValidationError("Event carries no customer id")
        account = await self.user_repo.get_by_customer_id(customer_id)
        if not account:
            raise NotFoundError(f"No user for customer {customer_id}", code=ErrorCode.USER_NOT_FOUND)
        return account

    async def _subscription_customer(self, payload: WebhookPayloadDTO) -> Optional[str]:
        if payload.subscription.customer:
            return payload.subscription.customer
        if self.gateway is None:
            return None
        subscription = await self.gateway.get_subscription(payload.subscription.id)
        return subscription.customer

    async def _upsert_payment(
        self,
        account: UserAccount,
        payment: GatewayPaymentPayload,
        status: Optional[PaymentStatus],
        now: datetime,
        reopen: bool = False,
    ) -> Payment:
        """
        Create or refresh the local payment record

        status=None keeps the current one. A status that would move a settled
        record back to PENDING/OVERDUE is ignored unless reopen is set.
        """
        record = await self.payment_repo.get_by_gateway_id(payment.id)

        if record is None:
            purchase = await self.purchase_repo.find_by_gateway_reference(
                payment_id=payment.id,
                checkout_ids=(payment.checkout_session, payment.external_reference),
            )
            record = Payment(
                user_id=account.id,
                gateway_payment_id=payment.id,
                type=PaymentType.CREDIT_PURCHASE if purchase else PaymentType.SUBSCRIPTION,
                status=status or PaymentStatus.PENDING,
                plan_id=None if purchase else account.plan_id,
                billing_cycle=None if purchase else account.billing_cycle,
                created_at=now,
                updated_at=now,
            )
            if payment.value is not None:
                record.value = payment.value
            record.due_date = _as_datetime(payment.due_date)
            if record.status == PaymentStatus.CONFIRMED:
                record.confirmed_date = now
            return await self.payment_repo.create(record)

        if status is not None and not can_move_payment(record.status, status, reopen):
            logger.info(f"Payment {payment.id} stays {record.status.value}, ignoring late {status.value}")
            status = None
        if status is not None:
            if status == PaymentStatus.CONFIRMED and record.status != PaymentStatus.CONFIRMED:
                record.confirmed_date = now
            record.status = status
        if payment.value is not None:
            record.value = payment.value
        if payment.due_date is not None:
            record.due_date = _as_datetime(payment.due_date)
        return await self.payment_repo.update(record)

    async def _set_status(
        self,
        user_id: str,
        status: SubscriptionStatus,
        now: datetime,
        **fields,
    ) -> None:
        unwrap(
            await self.update_status.execute(
                UpdateSubscriptionStatusCommandDTO(user_id=user_id, status=status, **fields),
                now=now,
            )
        )

    # Payment events

    async def payment_received(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        """PAYMENT_CONFIRMED / PAYMENT_RECEIVED: grant package credits or renew the subscription"""
        payment = payload.payment
        account = await self._user_by_customer(payment.customer)
        user_id = account.id

        purchase = await self.purchase_repo.find_by_gateway_reference(
            payment_id=payment.id,
            checkout_ids=(payment.checkout_session, payment.external_reference),
        )
        record = await self._upsert_payment(account, payment, PaymentStatus.CONFIRMED, now)

        if purchase:
            package_id = purchase.id
            await self.uow.commit()
            grant = unwrap(
                await self.grant_credits.execute(
                    GrantPurchasedCreditsCommandDTO(package_id=package_id, gateway_payment_id=payment.id),
                    now=now,
                )
            )
            logger.info(
                f"{event_type.value} {payment.id}: package {package_id} of user {user_id} "
                f"{'granted' if grant.granted else 'already granted'}"
            )
            return

        # The payment record's first sighting anchors the cycle; replays hit the renewal guard
        cycle_start = record.created_at
        plan_id = record.plan_id or account.plan_id
        billing_cycle = record.billing_cycle or account.billing_cycle
        await self.uow.commit()

        if plan_id:
            renewal = unwrap(
                await self.renew_credits.execute(
                    RenewCreditsCommandDTO(
                        user_id=user_id,
                        plan_id=plan_id,
                        billing_cycle=billing_cycle,
                        cycle_start=cycle_start,
                        reference_id=payment.id,
                    ),
                    now=now,
                )
            )
            logger.info(
                f"{event_type.value} {payment.id}: subscription credits of user {user_id} "
                f"{'renewed' if renewal.renewed else 'already renewed'}"
            )
        else:
            logger.warning(f"{event_type.value} {payment.id}: user {user_id} has no plan, activating without credits")

        await self._set_status(
            user_id,
            SubscriptionStatus.ACTIVE,
            now,
            subscription_id=payment.subscription,
            plan_id=plan_id,
            billing_cycle=billing_cycle,
        )

    async def payment_overdue(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        account = await self._user_by_customer(payload.payment.customer)
        user_id = account.id
        record = await self._upsert_payment(account, payload.payment, PaymentStatus.OVERDUE, now)
        overdue_subscription = record.type == PaymentType.SUBSCRIPTION and record.status == PaymentStatus.OVERDUE
        await self.uow.commit()

        if overdue_subscription:
            await self._set_status(user_id, SubscriptionStatus.OVERDUE, now)

    async def payment_cancelled(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        """PAYMENT_DELETED / PAYMENT_REFUNDED"""
        payment = payload.payment
        account = await self._user_by_customer(payment.customer)
        user_id = account.id
        status = PaymentStatus.REFUNDED if event_type == WebhookEventType.PAYMENT_REFUNDED else PaymentStatus.CANCELLED
        record = await self._upsert_payment(account, payment, status, now)
        is_subscription = record.type == PaymentType.SUBSCRIPTION

        if not is_subscription:
            purchase = await self.purchase_repo.find_by_gateway_reference(
                payment_id=payment.id,
                checkout_ids=(payment.checkout_session, payment.external_reference),
            )
            if purchase and purchase.status == PurchaseStatus.PENDING:
                purchase.status = (
                    PurchaseStatus.REFUNDED if status == PaymentStatus.REFUNDED else PurchaseStatus.CANCELLED
                )
                await self.purchase_repo.update(purchase)
            elif purchase and purchase.status == PurchaseStatus.CONFIRMED:
                logger.warning(
                    f"{event_type.value} {payment.id}: package {purchase.id} of user {user_id} "
                    f"was already granted, credits need manual review"
                )
        await self.uow.commit()

        if is_subscription:
            await self._set_status(user_id, SubscriptionStatus.CANCELLED, now)

    async def payment_unauthorized(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        account = await self._user_by_customer(payload.payment.customer)
        await self._set_status(account.id, SubscriptionStatus.PAYMENT_FAILED, now)

    async def payment_chargeback(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        account = await self._user_by_customer(payload.payment.customer)
        await self._set_status(account.id, SubscriptionStatus.CHARGEBACK, now)

    async def payment_upserted(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        """
        PAYMENT_CREATED / PAYMENT_UPDATED / PAYMENT_RESTORED: mirror the payment record

        New records start PENDING. Only PAYMENT_RESTORED reopens a cancelled or
        refunded record; deliveries arriving after confirmation keep its status.
        """
        account = await self._user_by_customer(payload.payment.customer)
        restored = event_type == WebhookEventType.PAYMENT_RESTORED
        status = PaymentStatus.PENDING if restored else None
        record = await self._upsert_payment(account, payload.payment, status, now, reopen=restored)

        if record.type == PaymentType.SUBSCRIPTION and record.status == PaymentStatus.PENDING and record.due_date:
            locked = await self.user_repo.get_by_id(account.id, for_update=True)
            locked.next_due_date = record.due_date
            await self.user_repo.update(locked)
        await self.uow.commit()

    async def payment_informational(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        logger.info(
            f"{event_type.value} for payment {payload.payment_id} "
            f"(customer {payload.payment.customer if payload.payment else None})"
        )

    # Subscription events

    async def subscription_status(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        """SUBSCRIPTION_EXPIRED / CANCELLED / REACTIVATED"""
        account = await self._user_by_customer(await self._subscription_customer(payload))
        status = SUBSCRIPTION_EVENT_STATUS[event_type]
        await self._set_status(
            account.id,
            status,
            now,
            subscription_id=payload.subscription.id,
            subscription_ends_at=_as_datetime(payload.subscription.end_date),
        )

    async def subscription_linked(self, event_type: WebhookEventType, payload: WebhookPayloadDTO, now: datetime) -> None:
        """SUBSCRIPTION_CREATED / UPDATED: link the subscription and its schedule"""
        subscription = payload.subscription
        customer_id = await self._subscription_customer(payload)
        account = await self._user_by_customer(customer_id)

        locked = await self.user_repo.get_by_id(account.id, for_update=True)
        locked.subscription_id = subscription.id
        if subscription.next_due_date:
            locked.next_due_date = _as_datetime(subscription.next_due_date)
        cycle = _billing_cycle(subscription.cycle)
        if cycle:
            locked.billing_cycle = cycle
        if locked.subscription_status is None:
            locked.subscription_status = SubscriptionStatus.PENDING
        await self.user_repo.update(locked)
        await self.uow.commit()
        logger.info(f"{event_type.value}: subscription {subscription.id} linked to user {account.id}")


SUBSCRIPTION_EVENT_STATUS = {
    WebhookEventType.SUBSCRIPTION_EXPIRED: SubscriptionStatus.EXPIRED,
    WebhookEventType.SUBSCRIPTION_CANCELLED: SubscriptionStatus.CANCELLED,
    WebhookEventType.SUBSCRIPTION_REACTIVATED: SubscriptionStatus.ACTIVE,
}

Handler = Callable[[WebhookHandlers, WebhookEventType, WebhookPayloadDTO, datetime], Awaitable[None]]

EVENT_HANDLERS: Dict[WebhookEventType, Handler] = {
    WebhookEventType.PAYMENT_CONFIRMED: WebhookHandlers.payment_received,
    WebhookEventType.PAYMENT_RECEIVED: WebhookHandlers.payment_received,
    WebhookEventType.PAYMENT_OVERDUE: WebhookHandlers.payment_overdue,
    WebhookEventType.PAYMENT_DELETED: WebhookHandlers.payment_cancelled,
    WebhookEventType.PAYMENT_REFUNDED: WebhookHandlers.payment_cancelled,
    WebhookEventType.PAYMENT_UNAUTHORIZED: WebhookHandlers.payment_unauthorized,
    WebhookEventType.PAYMENT_CHARGEBACK_REQUESTED: WebhookHandlers.payment_chargeback,
    WebhookEventType.PAYMENT_CREATED: WebhookHandlers.payment_upserted,
    WebhookEventType.PAYMENT_UPDATED: WebhookHandlers.payment_upserted,
    WebhookEventType.PAYMENT_RESTORED: WebhookHandlers.payment_upserted,
    WebhookEventType.PAYMENT_CHARGEBACK_DISPUTE: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_AWAITING_CHARGEBACK_REVERSAL: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_AWAITING_RISK_ANALYSIS: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_APPROVED_BY_RISK_ANALYSIS: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_REPROVED_BY_RISK_ANALYSIS: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_REFUND_IN_PROGRESS: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_CREDITED: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_ANTICIPATED: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_CHECKOUT_VIEWED: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_DUNNING_RECEIVED: WebhookHandlers.payment_informational,
    WebhookEventType.PAYMENT_DUNNING_REQUESTED: WebhookHandlers.payment_informational,
    WebhookEventType.SUBSCRIPTION_CREATED: WebhookHandlers.subscription_linked,
    WebhookEventType.SUBSCRIPTION_UPDATED: WebhookHandlers.subscription_linked,
    WebhookEventType.SUBSCRIPTION_EXPIRED: WebhookHandlers.subscription_status,
    WebhookEventType.SUBSCRIPTION_CANCELLED: WebhookHandlers.subscription_status,
    WebhookEventType.SUBSCRIPTION_REACTIVATED: WebhookHandlers.subscription_status,
}

_unhandled = set(WebhookEventType) - set(EVENT_HANDLERS)
if _unhandled:
    raise RuntimeError(f"Webhook event types without handler: {sorted(t.value for t in _unhandled)}")
