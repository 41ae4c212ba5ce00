"""
Payment review workflow.

    PENDING --approve--> APPROVED
    PENDING --reject---> REJECTED

APPROVED and REJECTED are terminal. Both transitions are compare-and-swap
writes on the status column, so of two concurrent admin actions on one
payment exactly one succeeds and the other sees
``PaymentNotFoundOrProcessedError``.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import IntegrityError
from src.domain.models import Payment, PaymentStatus, PaymentSummary, PaymentVerification
from src.infrastructure.repositories.payments import PaymentRepository

logger = structlog.get_logger()


class PaymentError(Exception):
    """Base exception for payment workflow errors."""


class PaymentNotFoundOrProcessedError(PaymentError):
    """Payment does not exist or is no longer PENDING."""


class PaymentNotFoundError(PaymentError):
    """No payment carries the requested reference number."""


class PaymentConflictError(PaymentError):
    """Submission clashes with an existing payment."""


class PaymentAlreadySubmittedError(PaymentConflictError):
    """A pending or approved payment already exists for the course."""


class ReferenceNumberConflictError(PaymentConflictError):
    """Reference number already belongs to another payment."""


class CourseNotFoundError(PaymentError):
    """Submission names a course that does not exist."""


class PaymentWorkflow:
    """Owns payment status transitions and the read-only projections."""

    def __init__(
        self,
        repository: PaymentRepository,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self._clock = clock or (lambda: datetime.now(UTC))

    async def approve(self, payment_id: str, *, reference_number: str | None = None) -> Payment:
        """Approve a PENDING payment, optionally recording its bank reference."""
        if reference_number is not None:
            reference_number = reference_number.strip() or None

        return await self._transition(
            payment_id, PaymentStatus.APPROVED, reference_number=reference_number
        )

    async def reject(self, payment_id: str) -> Payment:
        return await self._transition(payment_id, PaymentStatus.REJECTED)

    async def _transition(
        self,
        payment_id: str,
        target: PaymentStatus,
        *,
        reference_number: str | None = None,
    ) -> Payment:
        try:
            payment = await self.repository.transition(
                payment_id,
                target,
                updated_at=self._clock(),
                reference_number=reference_number,
            )
        except IntegrityError as exc:
            await logger.awarning(
                "payment_reference_conflict",
                payment_id=payment_id,
                reference_number=reference_number,
            )
            raise ReferenceNumberConflictError(
                "This reference number has already been used."
            ) from exc

        if payment is None:
            await logger.ainfo(
                "payment_transition_refused", payment_id=payment_id, target=target.value
            )
            raise PaymentNotFoundOrProcessedError("Payment not found or already processed")

        await logger.ainfo(
            f"payment_{target.value.lower()}",
            payment_id=payment.payment_id,
            student_id=payment.student_id,
            course_id=payment.course_id,
        )
        return payment

    async def lookup_by_reference(self, reference_number: str) -> PaymentVerification:
        """Return the payment/student/course projection for a reference number."""
        reference_number = reference_number.strip()
        if not reference_number:
            raise ValueError("Reference number is required.")

        verification = await self.repository.find_verification(reference_number)
        if verification is None:
            raise PaymentNotFoundError("No payment found for this reference number")
        return verification

    async def list_payments(self) -> list[PaymentSummary]:
        return await self.repository.list_summaries()

    async def submit(
        self,
        *,
        student_id: str,
        course_id: str,
        receipt_url: str,
        reference_number: str | None = None,
    ) -> Payment:
        """Record a new PENDING receipt for ``course_id``.

        A REJECTED payment for the same course is replaced; a PENDING or
        APPROVED one blocks the submission.
        """
        if reference_number is not None:
            reference_number = reference_number.strip() or None

        if not await self.repository.course_exists(course_id):
            raise CourseNotFoundError(f"Course {course_id} not found")

        existing = await self.repository.find_for_enrollment(student_id, course_id)
        if existing is not None and existing.status is not PaymentStatus.REJECTED:
            raise PaymentAlreadySubmittedError(
                "A payment for this course is already pending or has been approved."
            )

        if reference_number and await self.repository.reference_in_use(reference_number):
            raise ReferenceNumberConflictError("This reference number has already been used.")

        try:
            payment = await self.repository.replace_rejected_and_create(
                student_id=student_id,
                course_id=course_id,
                receipt_url=receipt_url,
                reference_number=reference_number,
                rejected_payment_id=existing.payment_id if existing else None,
            )
        except IntegrityError as exc:
            await logger.awarning(
                "payment_submission_conflict", student_id=student_id, course_id=course_id
            )
            raise PaymentConflictError("Payment conflicts with an existing submission.") from exc

        await logger.ainfo(
            "payment_submitted",
            payment_id=payment.payment_id,
            student_id=student_id,
            course_id=course_id,
            replaced=existing.payment_id if existing else None,
        )
        return payment
