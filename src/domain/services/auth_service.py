"""Authentication service with password hashing and account management."""

from __future__ import annotations

from datetime import timedelta

import structlog
from passlib.context import CryptContext
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.auth import Role, issue_token
from src.core.config import get_settings
from src.domain.models import User
from src.infrastructure.db.models import UserModel
from src.infrastructure.repositories.users import UserRepository, to_domain_user

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthError(Exception):
    """Base exception for authentication errors."""

    pass


class UserExistsError(AuthError):
    """Raised when attempting to register with existing email."""

    pass


class InvalidCredentialsError(AuthError):
    """Raised when login credentials are invalid."""

    pass


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


class AuthService:
    """Service for registration, login and password updates."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)

    async def register_user(self, *, email: str, name: str, password: str) -> User:
        """Create a STUDENT account. Other roles are assigned administratively."""
        return await self.create_account(
            email=email, name=name, password=password, role=Role.STUDENT
        )

    async def create_account(
        self, *, email: str, name: str, password: str, role: Role
    ) -> User:
        await logger.ainfo("register_attempt", email=email, role=role.value)

        user = UserModel(
            email=email.lower(),
            name=name,
            hashed_password=hash_password(password),
            role=role,
        )

        try:
            self.session.add(user)
            await self.session.commit()
            await self.session.refresh(user)
        except IntegrityError as exc:
            await self.session.rollback()
            await logger.awarning("register_duplicate_email", email=email)
            raise UserExistsError("User with this email already exists") from exc

        await logger.ainfo("register_success", user_id=user.id)
        return to_domain_user(user)

    async def login(self, *, email: str, password: str) -> tuple[User, str]:
        """
        Authenticate user with email and password.

        Returns:
            the resolved user and a freshly issued session token
        """
        await logger.ainfo("login_attempt", email=email)

        user = await self.users.get_by_email(email)

        # Same error for both cases to avoid user enumeration
        if user is None:
            await logger.awarning("login_user_not_found", email=email)
            raise InvalidCredentialsError("Invalid credentials")

        if not verify_password(password, user.hashed_password):
            await logger.awarning("login_invalid_password", user_id=user.id)
            raise InvalidCredentialsError("Invalid credentials")

        settings = get_settings()
        token = issue_token(
            user.id, expires_delta=timedelta(seconds=settings.access_token_ttl_seconds)
        )

        await logger.ainfo("login_success", user_id=user.id)
        return to_domain_user(user), token

    async def set_password(self, user_id: str, new_password: str) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(hashed_password=hash_password(new_password))
        )
        await self.session.commit()
        await logger.ainfo("password_changed", user_id=user_id)
