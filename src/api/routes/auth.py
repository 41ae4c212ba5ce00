"""Authentication routes - register, login, logout, password recovery."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_db_session, get_mailer, get_reset_registry
from src.api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RequestResetRequest,
    ResetPasswordRequest,
    UserResponse,
)
from src.core.config import get_settings
from src.domain.services.auth_service import (
    AuthService,
    InvalidCredentialsError,
    UserExistsError,
)
from src.domain.services.password_reset import PasswordResetService
from src.domain.services.reset_codes import ResetCodeError, ResetCodeRegistry
from src.libs.resend_client import MailerProtocol

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new student",
)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    """Register a new student account."""
    service = AuthService(session)

    try:
        user = await service.register_user(
            email=payload.email,
            name=payload.name,
            password=payload.password,
        )
    except UserExistsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc

    return UserResponse.from_domain(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User login",
    description="Authenticate with email and password; sets the session cookie.",
)
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    settings = get_settings()
    service = AuthService(session)

    try:
        user, token = await service.login(email=payload.email, password=payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.access_token_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return LoginResponse(
        user=UserResponse.from_domain(user),
        access_token=token,
        expires_in=settings.access_token_ttl_seconds,
    )


@router.post("/logout", response_model=MessageResponse, summary="Clear the session cookie")
async def logout(response: Response) -> MessageResponse:
    """Expire the session cookie. Succeeds whether or not a session existed."""
    settings = get_settings()
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return MessageResponse(message="Logged out successfully")


@router.post(
    "/request-reset",
    response_model=MessageResponse,
    summary="Send a password reset code",
)
async def request_reset(
    payload: RequestResetRequest,
    session: AsyncSession = Depends(get_db_session),
    registry: ResetCodeRegistry = Depends(get_reset_registry),
    mailer: MailerProtocol = Depends(get_mailer),
) -> MessageResponse:
    service = PasswordResetService(AuthService(session), registry, mailer)
    await service.request_reset(payload.email)
    # Same answer whether or not the account exists
    return MessageResponse(message="If an account exists, a reset code was sent.")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Reset password with a code",
)
async def reset_password(
    payload: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db_session),
    registry: ResetCodeRegistry = Depends(get_reset_registry),
    mailer: MailerProtocol = Depends(get_mailer),
) -> MessageResponse:
    service = PasswordResetService(AuthService(session), registry, mailer)

    try:
        await service.reset_password(payload.email, payload.code, payload.new_password)
    except ResetCodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invalid code or expired",
        ) from exc

    return MessageResponse(message="Password has been reset")
