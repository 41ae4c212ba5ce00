from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.core.auth import Role, issue_token
from src.domain import PaymentStatus, User
from src.domain.services.auth_service import hash_password
from src.infrastructure.db.models import CourseModel, PaymentModel, UserModel
from src.infrastructure.repositories.users import to_domain_user

DEFAULT_PASSWORD = "password123"


@lru_cache
def _password_hash(password: str) -> str:
    return hash_password(password)


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user_id)}"}


def cookie_headers(user_id: str) -> dict[str, str]:
    return {"Cookie": f"token={issue_token(user_id)}"}


async def create_user(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    email: str = "student@example.com",
    name: str = "Test Student",
    role: Role = Role.STUDENT,
    password: str = DEFAULT_PASSWORD,
) -> User:
    async with session_factory() as session:
        model = UserModel(
            email=email,
            name=name,
            role=role,
            hashed_password=_password_hash(password),
        )
        session.add(model)
        await session.commit()
        await session.refresh(model)
        return to_domain_user(model)


async def create_course(
    session_factory: async_sessionmaker[AsyncSession], *, title: str = "Combined Maths"
) -> str:
    async with session_factory() as session:
        course = CourseModel(title=title)
        session.add(course)
        await session.commit()
        return course.id


async def create_payment(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    student_id: str,
    course_id: str,
    reference_number: str | None = None,
    status: PaymentStatus = PaymentStatus.PENDING,
    receipt_url: str = "/uploads/receipts/receipt.png",
) -> str:
    async with session_factory() as session:
        payment = PaymentModel(
            student_id=student_id,
            course_id=course_id,
            reference_number=reference_number,
            receipt_url=receipt_url,
            status=status,
        )
        session.add(payment)
        await session.commit()
        return payment.id


async def get_payment_row(
    session_factory: async_sessionmaker[AsyncSession], payment_id: str
) -> PaymentModel | None:
    async with session_factory() as session:
        return await session.get(PaymentModel, payment_id)
