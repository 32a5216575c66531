"""Application error taxonomy

Use cases raise these internally and hand them to callers as
``libs.result.Error`` values. The API layer maps ``code`` to an HTTP status.
"""

from typing import Optional
from libs.result import Error


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    PACKAGE_NOT_FOUND = "PACKAGE_NOT_FOUND"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    PLAN_ALREADY_EXISTS = "PLAN_ALREADY_EXISTS"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    GATEWAY_UNAVAILABLE = "GATEWAY_UNAVAILABLE"


class BillingError(Exception):
    """Base class of expected application failures"""

    default_code = "BILLING_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.reason = reason

    def to_error(self) -> Error:
        return Error(code=self.code, message=self.message, reason=self.reason)


class ValidationError(BillingError):
    """Malformed or missing required fields; rejected before side effects"""
    default_code = ErrorCode.VALIDATION_ERROR


class AuthorizationError(BillingError):
    """Missing/invalid secret or role; rejected before side effects"""
    default_code = ErrorCode.UNAUTHORIZED


class NotFoundError(BillingError):
    """Referenced user, package, payment or plan does not exist"""
    default_code = "NOT_FOUND"


class ConflictError(BillingError):
    """Duplicate unique key"""
    default_code = "CONFLICT"


class InsufficientCreditsError(BillingError):
    default_code = ErrorCode.INSUFFICIENT_CREDITS


class TransientGatewayError(BillingError):
    """Payment gateway call failed; the caller should retry later"""
    default_code = ErrorCode.GATEWAY_UNAVAILABLE

