"""Scheduled Job Routes

Endpoints hit by an external scheduler. All require
``Authorization: Bearer <CRON_SECRET>``.
"""

from fastapi import APIRouter, Depends
from src.adapter.factory import BillingServices
from src.api.error import ClientError
from src.app.use_cases.reconciliation.dtos import (
    BalanceDriftReportDTO,
    ExpirePurchasedCreditsResultDTO,
    ExpireYearlyCreditsResultDTO,
    PaymentInconsistencyResultDTO,
    RenewMonthlyCreditsResultDTO,
    SyncNextDueDatesResultDTO,
    VerifySubscriptionsResultDTO,
)
from src.depends import get_services, require_cron_secret

router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(require_cron_secret)])


@router.get("/retry-webhooks")
async def retry_webhooks(services: BillingServices = Depends(get_services)):
    """
    Retry failed webhook events older than the minimum age.

    **Example response:**
    ```json
    {"success": true, "results": {"total": 3, "success": 2, "failed": 1, "maxRetriesReached": 1}}
    ```
    """
    result = await services.retry_webhook_events().execute()
    if result.is_err():
        raise ClientError(result.error)
    return {"success": True, "results": result.value.model_dump(by_alias=True)}


@router.get("/expire-credits", response_model=ExpirePurchasedCreditsResultDTO)
async def expire_credits(services: BillingServices = Depends(get_services)):
    """Expire purchased credit packages past their validity."""
    result = await services.expire_purchased_credits().execute()
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.get("/expire-yearly-credits", response_model=ExpireYearlyCreditsResultDTO)
async def expire_yearly_credits(services: BillingServices = Depends(get_services)):
    """Expire yearly subscription credits whose cycle has ended."""
    result = await services.expire_yearly_credits().execute()
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.get("/verify-payment-inconsistencies", response_model=PaymentInconsistencyResultDTO)
async def verify_payment_inconsistencies(services: BillingServices = Depends(get_services)):
    result = await services.verify_payment_inconsistencies().execute()
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.get("/sync-next-due-dates", response_model=SyncNextDueDatesResultDTO)
async def sync_next_due_dates(services: BillingServices = Depends(get_services)):
    result = await services.sync_next_due_dates().execute()
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.get("/detect-balance-drift", response_model=BalanceDriftReportDTO)
async def detect_balance_drift(services: BillingServices = Depends(get_services)):
    """Report users whose purchased pool differs from their live packages. Read-only."""
    result = await services.detect_balance_drift().execute()
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.get("/renew-credits", response_model=RenewMonthlyCreditsResultDTO)
async def renew_credits(services: BillingServices = Depends(get_services)):
    """
    Renew monthly subscription credits whose cycle lapsed without a payment webhook.

    Users already renewed for the cycle are counted as ``already_renewed``.
    """
    result = await services.renew_monthly_credits().execute()
    if result.is_err():
        raise ClientError(result.error)
    return result.value


@router.get("/verify-subscriptions", response_model=VerifySubscriptionsResultDTO)
async def verify_subscriptions(services: BillingServices = Depends(get_services)):
    """Re-check ACTIVE subscriptions against the gateway and expire ended yearly ones."""
    result = await services.verify_subscriptions().execute()
    if result.is_err():
        raise ClientError(result.error)
    return result.value
