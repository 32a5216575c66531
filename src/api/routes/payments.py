"""Payment Gateway Webhook Route"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, status
from libs.result import Error
from src.adapter.factory import BillingServices
from src.api.error import ClientError
from src.app.errors import ErrorCode
from src.app.use_cases.webhooks.dtos import WebhookAckDTO
from src.depends import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "/webhook",
    response_model=WebhookAckDTO,
    status_code=status.HTTP_200_OK,
    responses={
        401: {"description": "Invalid webhook token"},
        400: {"description": "Malformed payload"},
    },
)
async def receive_webhook(
    request: Request,
    asaas_access_token: Optional[str] = Header(default=None, alias="asaas-access-token"),
    services: BillingServices = Depends(get_services),
):
    """
    Receive a payment gateway notification.

    The event is stored before processing. Processing failures still return
    200: the event stays unprocessed and is picked up by the retry job.

    **Returns:**
    - 200: Event accepted (possibly as a duplicate)
    - 401: Missing or invalid `asaas-access-token`
    - 400: Body is not a valid gateway event
    """
    try:
        body = await request.json()
    except ValueError:
        raise ClientError(Error(code=ErrorCode.VALIDATION_ERROR, message="Body must be JSON"))
    if not isinstance(body, dict):
        raise ClientError(Error(code=ErrorCode.VALIDATION_ERROR, message="Body must be a JSON object"))

    result = await services.receive_webhook().execute(body, asaas_access_token)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
