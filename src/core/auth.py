from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

import jwt
from src.core.config import get_settings


class Role(str, Enum):
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        """Return the matching role or raise ``ValueError`` for unknown values."""
        if isinstance(value, Role):
            return value
        try:
            return cls(value.upper())
        except ValueError as exc:
            raise ValueError(f"Unsupported role: {value}") from exc


class TokenError(Exception):
    """Raised when a token cannot be decoded or validated."""


class InvalidSignatureError(TokenError):
    """Token signature does not match the configured secret."""


class TokenExpiredError(TokenError):
    """Token validity window has elapsed."""


class MalformedTokenError(TokenError):
    """Token is not a well-formed credential issued by this service."""


@dataclass(slots=True, frozen=True)
class TokenClaims:
    """Decoded contents of a session credential."""

    user_id: str
    issued_at: datetime
    expires_at: datetime


def issue_token(
    user_id: str,
    *,
    expires_delta: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    """Generate a signed, time-bound session credential for ``user_id``."""
    if not user_id:
        raise ValueError("user_id is required")

    settings = get_settings()
    issued_at = now or datetime.now(UTC)
    ttl = expires_delta or timedelta(seconds=settings.access_token_ttl_seconds)
    payload = {
        "sub": user_id,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + ttl).timestamp()),
        "iss": settings.app_name,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, *, now: datetime | None = None) -> TokenClaims:
    """Verify ``token`` and return its claims.

    Expiry is checked against the verifier's wall clock (or ``now``) with no
    leeway: a credential is valid only while ``now < exp``.
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.app_name,
            options={
                "require": ["sub", "iat", "exp", "iss"],
                "verify_exp": False,
                "verify_iat": False,
            },
        )
    except jwt.InvalidSignatureError as exc:
        raise InvalidSignatureError("Invalid token signature") from exc
    except jwt.PyJWTError as exc:  # pragma: no cover - third-party raises numerous subclasses
        raise MalformedTokenError("Malformed token") from exc

    subject = payload.get("sub")
    issued_at = payload.get("iat")
    expires_at = payload.get("exp")
    if not isinstance(subject, str) or not subject:
        raise MalformedTokenError("Token missing subject")
    if not isinstance(issued_at, int) or not isinstance(expires_at, int):
        raise MalformedTokenError("Token timestamps must be integers")

    current = (now or datetime.now(UTC)).timestamp()
    if current >= expires_at:
        raise TokenExpiredError("Token has expired")

    return TokenClaims(
        user_id=subject,
        issued_at=datetime.fromtimestamp(issued_at, UTC),
        expires_at=datetime.fromtimestamp(expires_at, UTC),
    )
