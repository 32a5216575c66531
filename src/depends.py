import hmac
from typing import AsyncIterator, Optional
from fastapi import Depends, Header, Request
from sqlmodel.ext.asyncio.session import AsyncSession
from libs.result import Error
from src.adapter.factory import BillingServices
from src.adapter.repositories.user_account_repository import SqlAlchemyUserAccountRepository
from src.adapter.services.database import Database
from src.api.error import ClientError
from src.app.errors import ErrorCode
from src.domain.user_account import UserRole


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_session(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    async with database.session() as session:
        yield session


def get_services(request: Request, session: AsyncSession = Depends(get_session)) -> BillingServices:
    state = request.app.state
    return BillingServices(
        session,
        state.config,
        notifier=getattr(state, "notifier", None),
        gateway=getattr(state, "gateway", None),
    )


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def _unauthorized(message: str) -> ClientError:
    return ClientError(Error(code=ErrorCode.UNAUTHORIZED, message=message))


def _check_secret(expected: Optional[str], authorization: Optional[str], name: str) -> None:
    if not expected:
        raise _unauthorized(f"{name} is not configured")
    token = _bearer_token(authorization)
    if token is None or not hmac.compare_digest(token, expected):
        raise _unauthorized("Invalid or missing bearer token")


async def require_cron_secret(request: Request, authorization: Optional[str] = Header(default=None)) -> None:
    _check_secret(request.app.state.config.CRON_SECRET, authorization, "CRON_SECRET")


async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    x_admin_user_id: Optional[str] = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> str:
    """Returns the id of the authenticated admin user"""
    _check_secret(request.app.state.config.ADMIN_API_TOKEN, authorization, "ADMIN_API_TOKEN")
    if not x_admin_user_id:
        raise _unauthorized("Missing X-Admin-User-Id header")

    admin = await SqlAlchemyUserAccountRepository(session).get_by_id(x_admin_user_id)
    if admin is None:
        raise _unauthorized("Unknown admin user")
    if admin.role != UserRole.ADMIN:
        raise ClientError(Error(code=ErrorCode.FORBIDDEN, message="Admin role required"))
    return admin.id
