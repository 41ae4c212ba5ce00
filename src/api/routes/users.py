from __future__ import annotations

from fastapi import APIRouter, Depends
from src.api.deps import get_current_user
from src.api.schemas.auth import UserResponse
from src.domain import User

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse, summary="Get current user")
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the account behind the current session credential."""
    return UserResponse.from_domain(user)
