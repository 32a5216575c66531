"""API error mapping

Turns ``libs.result.Error`` values returned by use cases into HTTP responses
of the form ``{"error": {"code", "message", "reason"}}``.
"""

import logging
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from libs.result import Error
from src.app.errors import ErrorCode

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.INSUFFICIENT_CREDITS: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorCode.PLAN_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.GATEWAY_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    "CONFLICT": status.HTTP_409_CONFLICT,
}


def status_for(error: Error) -> int:
    if error.code in STATUS_BY_CODE:
        return STATUS_BY_CODE[error.code]
    if error.code.endswith("NOT_FOUND"):
        return status.HTTP_404_NOT_FOUND
    if error.code.endswith("_FAILED"):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


class ClientError(Exception):
    """Raised by routes to return a structured error response"""

    def __init__(self, error: Error, status_code: Optional[int] = None):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code or status_for(error)


def error_body(error: Error) -> dict:
    return {"error": {"code": error.code, "message": error.message, "reason": error.reason}}


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error.code} {exc.error.reason}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = Error(
        code=ErrorCode.VALIDATION_ERROR,
        message="Invalid request parameters",
        reason="; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        ),
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(error))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClientError, client_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
