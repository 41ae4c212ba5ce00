from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.auth import Role
from src.core.config import get_settings
from src.domain import User
from src.domain.services.authorization import (
    AuthorizationGate,
    ForbiddenError,
    UnauthenticatedError,
)
from src.domain.services.reset_codes import ResetCodeRegistry, ResetCodeStore
from src.infrastructure.db.session import get_session
from src.infrastructure.repositories.users import UserRepository
from src.infrastructure.reset_store import build_reset_store
from src.libs.resend_client import MailerProtocol, ResendClient

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Provide an async SQLAlchemy session for API handlers."""
    async for session in get_session():
        yield session


def read_session_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
) -> str | None:
    """Return the session credential from the cookie, else the bearer header."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def get_authorization_gate(
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> AuthorizationGate:
    return AuthorizationGate(UserRepository(session))


async def get_current_user(
    token: str | None = Depends(read_session_token),  # noqa: B008
    gate: AuthorizationGate = Depends(get_authorization_gate),  # noqa: B008
) -> User:
    """Resolve the authenticated user from the session credential."""
    try:
        return await gate.authorize(token)
    except UnauthenticatedError as exc:
        raise _unauthorized(str(exc)) from exc


def require_roles(*roles: Role | str) -> Callable[..., Awaitable[User]]:
    """Dependency factory enforcing that the authenticated user has one of the required roles."""
    if not roles:
        raise ValueError("At least one role is required")
    required = frozenset(Role.parse(role) for role in roles)

    async def dependency(
        token: str | None = Depends(read_session_token),  # noqa: B008
        gate: AuthorizationGate = Depends(get_authorization_gate),  # noqa: B008
    ) -> User:
        try:
            return await gate.authorize(token, required)
        except UnauthenticatedError as exc:
            raise _unauthorized(str(exc)) from exc
        except ForbiddenError as exc:
            raise _forbidden(str(exc)) from exc

    return dependency


@lru_cache
def get_reset_store() -> ResetCodeStore:
    """Process-wide reset-code store selected by configuration."""
    return build_reset_store(get_settings())


async def close_reset_store() -> None:
    """Release the cached store, if one was built, at shutdown."""
    if get_reset_store.cache_info().currsize:
        await get_reset_store().close()
        get_reset_store.cache_clear()


def get_reset_registry() -> ResetCodeRegistry:
    return ResetCodeRegistry(get_reset_store())


def get_mailer() -> MailerProtocol:
    return ResendClient()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
