from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from src.domain.models import User
from src.infrastructure.db.models import UserModel


def to_domain_user(model: UserModel) -> User:
    return User(
        user_id=model.id,
        name=model.name,
        email=model.email,
        role=model.role,
        created_at=model.created_at,
    )


class UserRepository:
    """Credential store backed by the ``users`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: str) -> User | None:
        model = await self.session.get(UserModel, user_id)
        if model is None:
            return None
        return to_domain_user(model)

    async def get_by_email(self, email: str) -> UserModel | None:
        stmt = select(UserModel).where(UserModel.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
