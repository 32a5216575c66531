"""Admin API Routes

Operator endpoints. Every route requires ``Authorization: Bearer
<ADMIN_API_TOKEN>`` and ``X-Admin-User-Id`` naming a user with role ADMIN.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from src.adapter.factory import BillingServices
from src.api.error import ClientError
from src.api.schemas.admin_request import AdjustCreditsRequestSchema, RenewCreditsRequestSchema
from src.app.use_cases.credits.dtos import (
    AdjustCreditsCommandDTO,
    AdjustCreditsResponseDTO,
    RecomputeAllLedgersResponseDTO,
    RecomputeLedgerResponseDTO,
    RenewCreditsCommandDTO,
    RenewCreditsResponseDTO,
)
from src.app.use_cases.subscriptions.dtos import CreatePlanCommandDTO, PlanResponseDTO
from src.app.use_cases.webhooks.dtos import DeadLetterPageDTO
from src.depends import get_services, require_admin

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/credits/users/{user_id}/adjust",
    response_model=AdjustCreditsResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Validation error",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "VALIDATION_ERROR",
                            "message": "Reason must have at least 10 characters",
                            "reason": None
                        }
                    }
                }
            }
        },
        404: {"description": "User not found"},
    },
)
async def adjust_credits(
    user_id: str,
    request: AdjustCreditsRequestSchema,
    admin_id: str = Depends(require_admin),
    services: BillingServices = Depends(get_services),
):
    """
    Manually add or remove credits from one pool of a user.

    Removals are clamped at zero. The response carries balance snapshots
    from before and after the adjustment.

    **Request body:**
    - `type` (required): PLAN or PURCHASED
    - `operation` (required): ADD or REMOVE
    - `amount` (required): Credits, must be > 0
    - `reason` (required): Audit reason, at least 10 characters
    """
    command = AdjustCreditsCommandDTO(
        user_id=user_id,
        pool=request.type,
        operation=request.operation,
        amount=request.amount,
        reason=request.reason,
        admin_id=admin_id,
    )

    result = await services.adjust_credits().execute(command)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post("/credits/users/{user_id}/renew", response_model=RenewCreditsResponseDTO)
async def renew_credits(
    user_id: str,
    request: Optional[RenewCreditsRequestSchema] = None,
    admin_id: str = Depends(require_admin),
    services: BillingServices = Depends(get_services),
):
    """Grant a fresh subscription cycle of credits to a user."""
    request = request or RenewCreditsRequestSchema()
    command = RenewCreditsCommandDTO(
        user_id=user_id,
        plan_id=request.plan_id,
        billing_cycle=request.billing_cycle,
        cycle_start=request.cycle_start,
        reference_id=f"admin:{admin_id}",
        admin_id=admin_id,
    )

    result = await services.renew_credits().execute(command)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post("/credits/users/{user_id}/recompute", response_model=RecomputeLedgerResponseDTO)
async def recompute_ledger(
    user_id: str,
    admin_id: str = Depends(require_admin),
    services: BillingServices = Depends(get_services),
):
    """Rewrite the balance_after chain of a user's ledger from the current balance."""
    result = await services.recompute_ledger().execute(user_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post("/credit-transactions/recalculate", response_model=RecomputeAllLedgersResponseDTO)
async def recompute_all_ledgers(
    admin_id: str = Depends(require_admin),
    services: BillingServices = Depends(get_services),
):
    """Recompute the ledger of every user with entries."""
    result = await services.recompute_all_ledgers().execute()

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get("/webhooks/dead-letter", response_model=DeadLetterPageDTO)
async def list_dead_lettered_events(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    admin_id: str = Depends(require_admin),
    services: BillingServices = Depends(get_services),
):
    """List webhook events that exhausted their retries."""
    result = await services.list_dead_lettered_events().execute(limit=limit, offset=offset)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get("/subscription-plans", response_model=List[PlanResponseDTO])
async def list_plans(
    admin_id: str = Depends(require_admin),
    services: BillingServices = Depends(get_services),
):
    plans = await services.plan_repo.list_active()
    return [PlanResponseDTO.model_validate(plan, from_attributes=True) for plan in plans]


@router.post("/subscription-plans", response_model=PlanResponseDTO, status_code=status.HTTP_201_CREATED)
async def create_plan(
    request: CreatePlanCommandDTO,
    admin_id: str = Depends(require_admin),
    services: BillingServices = Depends(get_services),
):
    result = await services.create_plan().execute(request)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
