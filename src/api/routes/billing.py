"""Billing API Routes

FastAPI routes for user-facing credit operations.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from src.adapter.factory import BillingServices
from src.api.error import ClientError
from src.api.schemas.billing_request import SpendCreditsRequestSchema
from src.app.use_cases.credits.dtos import (
    AvailableCreditsDTO,
    LedgerPageDTO,
    SpendCreditsCommandDTO,
    SpendCreditsResponseDTO,
)
from src.depends import get_services

router = APIRouter(prefix="/billing/credits", tags=["Billing"])


@router.get(
    "/users/{user_id}/balance",
    response_model=AvailableCreditsDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {
            "description": "User not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "USER_NOT_FOUND",
                            "message": "User user_123 not found",
                            "reason": None
                        }
                    }
                }
            }
        }
    }
)
async def get_balance(
    user_id: str,
    services: BillingServices = Depends(get_services),
):
    """
    Get the credits a user can spend right now.

    **Example response:**
    ```json
    {"user_id": "user_123", "subscription": 400, "purchased": 100, "total": 500}
    ```
    """
    result = await services.get_available_credits().execute(user_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get("/users/{user_id}/transactions", response_model=LedgerPageDTO)
async def list_transactions(
    user_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    services: BillingServices = Depends(get_services),
):
    """List ledger entries of a user, newest first."""
    result = await services.list_ledger_entries().execute(user_id, limit=limit, offset=offset)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/users/{user_id}/spend",
    response_model=SpendCreditsResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {
            "description": "Insufficient credits",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_CREDITS",
                            "message": "Insufficient credits. Required: 100, Available: 50",
                            "reason": None
                        }
                    }
                }
            }
        }
    }
)
async def spend_credits(
    user_id: str,
    request: SpendCreditsRequestSchema,
    services: BillingServices = Depends(get_services),
):
    """
    Consume credits: subscription pool first, then purchased packages
    expiring soonest.

    **Returns:**
    - 200: Credits consumed
    - 402: Not enough credits, nothing was changed
    - 404: User not found
    """
    command = SpendCreditsCommandDTO(
        user_id=user_id,
        amount=request.amount,
        source=request.source,
        description=request.description,
        reference_id=request.reference_id,
    )

    result = await services.spend_credits().execute(command)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get("/users/{user_id}/events")
async def stream_credit_events(user_id: str, request: Request):
    """
    Server-sent stream of a user's credit updates.

    Opens with a ``hello`` event, then one ``credits_updated`` event per
    committed mutation published by this process.
    """
    queue_notifier = request.app.state.queue_notifier
    queue = queue_notifier.subscribe(user_id)

    async def gen():
        try:
            yield "event: hello\ndata: {}\n\n"
            while True:
                event = await queue.get()
                yield "event: credits_updated\ndata: " + event.model_dump_json() + "\n\n"
        finally:
            queue_notifier.unsubscribe(user_id, queue)

    return StreamingResponse(gen(), media_type="text/event-stream")
