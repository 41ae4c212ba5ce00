from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from src.core.auth import Role


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(slots=True, frozen=True)
class User:
    """Represents an authenticated actor within the system."""

    user_id: str
    name: str
    email: str
    role: Role
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class ResetRecord:
    """Outstanding password-reset code for one user."""

    code: str
    expires_at: float
    attempts: int = 0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(slots=True, frozen=True)
class Payment:
    """A receipt submission for one course by one student."""

    payment_id: str
    student_id: str
    course_id: str
    reference_number: str | None
    receipt_url: str
    status: PaymentStatus
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True, frozen=True)
class PaymentVerification:
    """Read-only projection used by the verify-by-reference flow."""

    payment_id: str
    status: PaymentStatus
    reference_number: str
    receipt_url: str
    processed_at: datetime
    student_id: str
    student_name: str
    student_email: str
    course_id: str
    course_title: str


@dataclass(slots=True, frozen=True)
class PaymentSummary:
    """Row of the admin payment review list."""

    payment_id: str
    status: PaymentStatus
    receipt_url: str
    reference_number: str | None
    created_at: datetime
    student_name: str
    course_id: str
    course_title: str
