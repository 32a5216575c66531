"""Use case wiring

Builds repositories and use cases bound to one database session. Shared by
the API dependencies and the background workers.
"""

from datetime import timedelta
from typing import Optional
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories import (
    SqlAlchemyCreditPurchaseRepository,
    SqlAlchemyLedgerEntryRepository,
    SqlAlchemyPaymentRepository,
    SqlAlchemySubscriptionPlanRepository,
    SqlAlchemyUserAccountRepository,
    SqlAlchemyWebhookEventRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.realtime_notifier import RealtimeNotifier
from src.app.use_cases.credits import (
    AdjustCredits,
    ExpirePurchasePackage,
    ExpireYearlySubscriptionCredits,
    GetAvailableCredits,
    GrantPurchasedCredits,
    ListLedgerEntries,
    RecomputeAllLedgers,
    RecomputeLedger,
    RenewSubscriptionCredits,
    SpendCredits,
)
from src.app.use_cases.reconciliation import (
    DetectBalanceDrift,
    ExpirePurchasedCredits,
    ExpireYearlyCredits,
    RenewMonthlyCredits,
    SyncNextDueDates,
    VerifyPaymentInconsistencies,
    VerifySubscriptions,
)
from src.app.use_cases.subscriptions import CreatePlan, UpdateSubscriptionStatus
from src.app.use_cases.webhooks import (
    ListDeadLetteredEvents,
    ReceiveWebhook,
    RetryWebhookEvents,
    WebhookHandlers,
    WebhookProcessor,
)


class BillingServices:
    """
    Repositories and use cases sharing one session and unit of work

    ``config`` is any object exposing the ApplicationConfig attributes.
    """

    def __init__(
        self,
        session: AsyncSession,
        config,
        notifier: Optional[RealtimeNotifier] = None,
        gateway: Optional[PaymentGateway] = None,
    ):
        self.session = session
        self.config = config
        self.notifier = notifier
        self.gateway = gateway

        self.uow = SqlAlchemyUnitOfWork(session)
        self.user_repo = SqlAlchemyUserAccountRepository(session)
        self.ledger_repo = SqlAlchemyLedgerEntryRepository(session)
        self.purchase_repo = SqlAlchemyCreditPurchaseRepository(session)
        self.payment_repo = SqlAlchemyPaymentRepository(session)
        self.event_repo = SqlAlchemyWebhookEventRepository(session)
        self.plan_repo = SqlAlchemySubscriptionPlanRepository(session)

    @property
    def grace_period(self) -> timedelta:
        return timedelta(hours=self.config.SUBSCRIPTION_GRACE_PERIOD_HOURS)

    @property
    def batch_size(self) -> int:
        return self.config.JOB_BATCH_SIZE

    @property
    def max_retries(self) -> int:
        return self.config.WEBHOOK_MAX_RETRIES

    # Credits

    def get_available_credits(self) -> GetAvailableCredits:
        return GetAvailableCredits(self.user_repo, grace_period=self.grace_period)

    def adjust_credits(self) -> AdjustCredits:
        return AdjustCredits(
            self.uow,
            self.user_repo,
            self.ledger_repo,
            notifier=self.notifier,
            grace_period=self.grace_period,
            reason_min_length=self.config.ADMIN_REASON_MIN_LENGTH,
        )

    def renew_credits(self) -> RenewSubscriptionCredits:
        return RenewSubscriptionCredits(
            self.uow,
            self.user_repo,
            self.ledger_repo,
            self.plan_repo,
            notifier=self.notifier,
            grace_period=self.grace_period,
        )

    def spend_credits(self) -> SpendCredits:
        return SpendCredits(
            self.uow,
            self.user_repo,
            self.ledger_repo,
            self.purchase_repo,
            notifier=self.notifier,
            grace_period=self.grace_period,
        )

    def grant_purchased_credits(self) -> GrantPurchasedCredits:
        return GrantPurchasedCredits(
            self.uow,
            self.user_repo,
            self.ledger_repo,
            self.purchase_repo,
            notifier=self.notifier,
            grace_period=self.grace_period,
            validity_days=self.config.PURCHASED_CREDITS_VALIDITY_DAYS,
        )

    def expire_purchase_package(self) -> ExpirePurchasePackage:
        return ExpirePurchasePackage(
            self.uow,
            self.user_repo,
            self.ledger_repo,
            self.purchase_repo,
            notifier=self.notifier,
            grace_period=self.grace_period,
        )

    def expire_yearly_subscription_credits(self) -> ExpireYearlySubscriptionCredits:
        return ExpireYearlySubscriptionCredits(
            self.uow,
            self.user_repo,
            self.ledger_repo,
            notifier=self.notifier,
            grace_period=self.grace_period,
        )

    def recompute_ledger(self) -> RecomputeLedger:
        return RecomputeLedger(self.uow, self.user_repo, self.ledger_repo, grace_period=self.grace_period)

    def recompute_all_ledgers(self) -> RecomputeAllLedgers:
        return RecomputeAllLedgers(self.ledger_repo, self.recompute_ledger())

    def list_ledger_entries(self) -> ListLedgerEntries:
        return ListLedgerEntries(self.user_repo, self.ledger_repo)

    # Subscriptions

    def update_subscription_status(self) -> UpdateSubscriptionStatus:
        return UpdateSubscriptionStatus(self.uow, self.user_repo)

    def create_plan(self) -> CreatePlan:
        return CreatePlan(self.uow, self.plan_repo)

    # Webhooks

    def webhook_processor(self) -> WebhookProcessor:
        handlers = WebhookHandlers(
            self.uow,
            self.user_repo,
            self.payment_repo,
            self.purchase_repo,
            renew_credits=self.renew_credits(),
            grant_credits=self.grant_purchased_credits(),
            update_status=self.update_subscription_status(),
            gateway=self.gateway,
        )
        return WebhookProcessor(self.uow, self.event_repo, handlers, max_retries=self.max_retries)

    def receive_webhook(self) -> ReceiveWebhook:
        return ReceiveWebhook(
            self.uow,
            self.event_repo,
            self.webhook_processor(),
            webhook_token=self.config.WEBHOOK_TOKEN,
        )

    def retry_webhook_events(self) -> RetryWebhookEvents:
        return RetryWebhookEvents(
            self.event_repo,
            self.webhook_processor(),
            max_retries=self.max_retries,
            min_age=timedelta(seconds=self.config.WEBHOOK_RETRY_MIN_AGE_SECONDS),
            batch_size=self.batch_size,
        )

    def list_dead_lettered_events(self) -> ListDeadLetteredEvents:
        return ListDeadLetteredEvents(self.event_repo, max_retries=self.max_retries)

    # Reconciliation

    def expire_purchased_credits(self) -> ExpirePurchasedCredits:
        return ExpirePurchasedCredits(self.purchase_repo, self.expire_purchase_package(), batch_size=self.batch_size)

    def expire_yearly_credits(self) -> ExpireYearlyCredits:
        return ExpireYearlyCredits(
            self.user_repo, self.expire_yearly_subscription_credits(), batch_size=self.batch_size
        )

    def verify_payment_inconsistencies(self) -> VerifyPaymentInconsistencies:
        return VerifyPaymentInconsistencies(
            self.uow,
            self.user_repo,
            self.payment_repo,
            self.update_subscription_status(),
            batch_size=self.batch_size,
        )

    def sync_next_due_dates(self) -> SyncNextDueDates:
        return SyncNextDueDates(self.uow, self.user_repo, gateway=self.gateway, batch_size=self.batch_size)

    def detect_balance_drift(self) -> DetectBalanceDrift:
        return DetectBalanceDrift(self.user_repo, self.purchase_repo)

    def renew_monthly_credits(self) -> RenewMonthlyCredits:
        return RenewMonthlyCredits(
            self.user_repo, self.renew_credits(), grace_period=self.grace_period, batch_size=self.batch_size
        )

    def verify_subscriptions(self) -> VerifySubscriptions:
        return VerifySubscriptions(
            self.user_repo,
            self.update_subscription_status(),
            gateway=self.gateway,
            annual_grace=timedelta(days=self.config.ANNUAL_EXPIRY_GRACE_DAYS),
            batch_size=self.batch_size,
        )
