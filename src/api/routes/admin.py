"""Staff account creation; ADMIN only."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_db_session, require_roles
from src.api.schemas.auth import RegisterRequest, UserResponse
from src.core.auth import Role
from src.domain import User
from src.domain.services.auth_service import AuthService, UserExistsError

logger = structlog.get_logger()
router = APIRouter(prefix="/admin", tags=["admin"])


async def _create_staff(
    session: AsyncSession, payload: RegisterRequest, role: Role, admin: User
) -> UserResponse:
    try:
        user = await AuthService(session).create_account(
            email=payload.email, name=payload.name, password=payload.password, role=role
        )
    except UserExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    await logger.ainfo(
        "staff_account_created", user_id=user.user_id, role=role.value, admin_id=admin.user_id
    )
    return UserResponse.from_domain(user)


@router.post(
    "/instructors",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create instructor account",
)
async def create_instructor(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
    admin: User = Depends(require_roles(Role.ADMIN)),
) -> UserResponse:
    return await _create_staff(session, payload, Role.INSTRUCTOR, admin)


@router.post(
    "/admins",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create admin account",
)
async def create_admin(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
    admin: User = Depends(require_roles(Role.ADMIN)),
) -> UserResponse:
    return await _create_staff(session, payload, Role.ADMIN, admin)
