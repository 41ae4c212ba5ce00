"""Pydantic schemas for payment review endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from src.domain import Payment, PaymentStatus, PaymentSummary, PaymentVerification


class PaymentSubmitRequest(BaseModel):
    course_id: str = Field(..., min_length=1, max_length=36)
    receipt_url: str = Field(..., min_length=1, max_length=512, description="Uploaded receipt")
    reference_number: str | None = Field(None, max_length=64)


class ApprovePaymentRequest(BaseModel):
    reference_number: str | None = Field(
        None, max_length=64, description="Bank reference recorded with the approval"
    )


class PaymentResponse(BaseModel):
    id: str
    student_id: str
    course_id: str
    reference_number: str | None
    receipt_url: str
    status: PaymentStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, payment: Payment) -> PaymentResponse:
        return cls(
            id=payment.payment_id,
            student_id=payment.student_id,
            course_id=payment.course_id,
            reference_number=payment.reference_number,
            receipt_url=payment.receipt_url,
            status=payment.status,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
        )


class PaymentSummaryResponse(BaseModel):
    id: str
    status: PaymentStatus
    receipt_url: str
    reference_number: str | None
    created_at: datetime
    student_name: str
    course_id: str
    course_title: str

    @classmethod
    def from_domain(cls, summary: PaymentSummary) -> PaymentSummaryResponse:
        return cls(
            id=summary.payment_id,
            status=summary.status,
            receipt_url=summary.receipt_url,
            reference_number=summary.reference_number,
            created_at=summary.created_at,
            student_name=summary.student_name,
            course_id=summary.course_id,
            course_title=summary.course_title,
        )


class VerifiedStudent(BaseModel):
    id: str
    name: str
    email: str


class VerifiedCourse(BaseModel):
    id: str
    title: str


class PaymentVerificationResponse(BaseModel):
    """Payment joined with its student and course."""

    payment_id: str
    status: PaymentStatus
    reference_number: str
    receipt_url: str
    processed_at: datetime
    student: VerifiedStudent
    course: VerifiedCourse

    @classmethod
    def from_domain(cls, verification: PaymentVerification) -> PaymentVerificationResponse:
        return cls(
            payment_id=verification.payment_id,
            status=verification.status,
            reference_number=verification.reference_number,
            receipt_url=verification.receipt_url,
            processed_at=verification.processed_at,
            student=VerifiedStudent(
                id=verification.student_id,
                name=verification.student_name,
                email=verification.student_email,
            ),
            course=VerifiedCourse(id=verification.course_id, title=verification.course_title),
        )
