"""Request authentication and role enforcement."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

import structlog
from src.core.auth import Role, TokenError, verify_token
from src.domain.models import User

logger = structlog.get_logger()


class AuthorizationError(Exception):
    """Base exception for gate failures."""


class UnauthenticatedError(AuthorizationError):
    """Missing, invalid or expired credential, or unknown account."""


class ForbiddenError(AuthorizationError):
    """Valid identity without one of the required roles."""


class CredentialStore(Protocol):
    async def get_user(self, user_id: str) -> User | None: ...


class AuthorizationGate:
    """Resolve the caller behind a bearer credential.

    Bad tokens and unknown accounts raise the same ``UnauthenticatedError``
    so callers cannot tell which accounts exist.
    """

    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    async def authorize(
        self,
        token: str | None,
        required_roles: Iterable[Role] | None = None,
    ) -> User:
        if not token:
            raise UnauthenticatedError("Not authenticated")

        try:
            claims = verify_token(token)
        except TokenError as exc:
            await logger.ainfo("authorization_token_rejected", reason=type(exc).__name__)
            raise UnauthenticatedError("Not authenticated") from exc

        user = await self.store.get_user(claims.user_id)
        if user is None:
            await logger.ainfo("authorization_unknown_user", user_id=claims.user_id)
            raise UnauthenticatedError("Not authenticated")

        if required_roles is not None:
            allowed = frozenset(required_roles)
            if user.role not in allowed:
                await logger.awarning(
                    "authorization_denied",
                    user_id=user.user_id,
                    role=user.role.value,
                    required=sorted(role.value for role in allowed),
                )
                raise ForbiddenError("Insufficient role privileges")

        return user
