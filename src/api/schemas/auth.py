"""Pydantic schemas for authentication and account endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field
from src.core.auth import Role
from src.domain import User

# --- Request Schemas ---


class RegisterRequest(BaseModel):
    """Request schema for user registration."""

    email: EmailStr = Field(..., description="User email address")
    name: str = Field(..., min_length=1, max_length=128, description="Display name")
    password: str = Field(
        ...,
        min_length=8,
        max_length=72,
        description="Password (8-72 characters)",
    )


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class RequestResetRequest(BaseModel):
    """Request schema for starting password recovery."""

    email: EmailStr = Field(..., description="Account email address")


class ResetPasswordRequest(BaseModel):
    """Request schema for completing password recovery."""

    email: EmailStr = Field(..., description="Account email address")
    code: str = Field(..., min_length=1, max_length=32, description="Code received by email")
    new_password: str = Field(
        ...,
        min_length=8,
        max_length=72,
        description="New password (8-72 characters)",
    )


# --- Response Schemas ---


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="User email")
    role: Role = Field(..., description="User role")
    created_at: datetime | None = Field(None, description="Account creation timestamp")

    @classmethod
    def from_domain(cls, user: User) -> UserResponse:
        return cls(
            id=user.user_id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
        )


class LoginResponse(BaseModel):
    """Response schema for user login; the token is also set as a cookie."""

    message: str = Field(default="Login successful")
    user: UserResponse
    access_token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token TTL in seconds")


class MessageResponse(BaseModel):
    message: str
