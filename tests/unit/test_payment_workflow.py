"""Unit tests for the payment review workflow."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from src.core.auth import Role
from src.domain import PaymentStatus
from src.domain.services.payments import (
    CourseNotFoundError,
    PaymentAlreadySubmittedError,
    PaymentNotFoundError,
    PaymentNotFoundOrProcessedError,
    PaymentWorkflow,
    ReferenceNumberConflictError,
)
from src.infrastructure.repositories.payments import PaymentRepository

from tests.utils import create_course, create_payment, create_user, get_payment_row

REVIEW_TIME = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


class Workflows:
    """Hands out a workflow bound to a fresh session, like one request each."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory
        self._sessions: list[AsyncSession] = []
        self.now = REVIEW_TIME

    def __call__(self) -> PaymentWorkflow:
        session = self.session_factory()
        self._sessions.append(session)
        return PaymentWorkflow(PaymentRepository(session), clock=lambda: self.now)

    async def close(self) -> None:
        for session in self._sessions:
            await session.close()


@pytest.fixture
async def workflows(session_factory: async_sessionmaker[AsyncSession]):
    factory = Workflows(session_factory)
    yield factory
    await factory.close()


@pytest.fixture
async def enrollment(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, str]:
    student = await create_user(session_factory, name="Nimal Perera", email="nimal@example.com")
    course_id = await create_course(session_factory, title="A/L Physics")
    return {"student_id": student.user_id, "course_id": course_id}


class TestTransitions:
    @pytest.mark.asyncio
    async def test_reject_scenario_with_reference_lookup(
        self, session_factory, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        payment_id = await create_payment(
            session_factory, reference_number="REF-1001", **enrollment
        )

        found = await workflows().lookup_by_reference("REF-1001")
        assert found.payment_id == payment_id
        assert found.status is PaymentStatus.PENDING
        assert found.student_name == "Nimal Perera"
        assert found.student_email == "nimal@example.com"
        assert found.course_title == "A/L Physics"

        rejected = await workflows().reject(payment_id)
        assert rejected.status is PaymentStatus.REJECTED

        with pytest.raises(PaymentNotFoundOrProcessedError):
            await workflows().reject(payment_id)

        found = await workflows().lookup_by_reference("REF-1001")
        assert found.status is PaymentStatus.REJECTED

    @pytest.mark.asyncio
    async def test_approve_sets_status_and_timestamp(
        self, session_factory, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        payment_id = await create_payment(session_factory, **enrollment)

        approved = await workflows().approve(payment_id)

        assert approved.status is PaymentStatus.APPROVED
        row = await get_payment_row(session_factory, payment_id)
        assert row.status is PaymentStatus.APPROVED
        assert row.updated_at.replace(tzinfo=None) == REVIEW_TIME.replace(tzinfo=None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("terminal", [PaymentStatus.APPROVED, PaymentStatus.REJECTED])
    @pytest.mark.parametrize("action", ["approve", "reject"])
    async def test_terminal_payments_never_change(
        self,
        session_factory,
        workflows: Workflows,
        enrollment: dict[str, str],
        terminal: PaymentStatus,
        action: str,
    ) -> None:
        payment_id = await create_payment(session_factory, status=terminal, **enrollment)
        before = await get_payment_row(session_factory, payment_id)

        workflows.now = REVIEW_TIME + timedelta(hours=1)
        with pytest.raises(PaymentNotFoundOrProcessedError):
            await getattr(workflows(), action)(payment_id)

        after = await get_payment_row(session_factory, payment_id)
        assert after.status is terminal
        assert after.updated_at == before.updated_at

    @pytest.mark.asyncio
    async def test_unknown_payment_reports_same_error(self, workflows: Workflows) -> None:
        with pytest.raises(PaymentNotFoundOrProcessedError) as exc_info:
            await workflows().approve("no-such-payment")

        assert str(exc_info.value) == "Payment not found or already processed"

    @pytest.mark.asyncio
    async def test_approve_records_reference_number(
        self, session_factory, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        payment_id = await create_payment(session_factory, **enrollment)

        approved = await workflows().approve(payment_id, reference_number="  BOC-7781 ")

        assert approved.reference_number == "BOC-7781"
        found = await workflows().lookup_by_reference("BOC-7781")
        assert found.status is PaymentStatus.APPROVED

    @pytest.mark.asyncio
    async def test_approve_with_taken_reference_leaves_payment_pending(
        self, session_factory, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        other_course = await create_course(session_factory, title="Chemistry")
        await create_payment(
            session_factory,
            student_id=enrollment["student_id"],
            course_id=other_course,
            reference_number="DUP-1",
        )
        payment_id = await create_payment(session_factory, **enrollment)

        with pytest.raises(ReferenceNumberConflictError):
            await workflows().approve(payment_id, reference_number="DUP-1")

        row = await get_payment_row(session_factory, payment_id)
        assert row.status is PaymentStatus.PENDING


class TestLookup:
    @pytest.mark.asyncio
    async def test_unknown_reference(self, workflows: Workflows) -> None:
        with pytest.raises(PaymentNotFoundError):
            await workflows().lookup_by_reference("REF-404")

    @pytest.mark.asyncio
    async def test_blank_reference(self, workflows: Workflows) -> None:
        with pytest.raises(ValueError):
            await workflows().lookup_by_reference("   ")

    @pytest.mark.asyncio
    async def test_lookup_does_not_mutate(
        self, session_factory, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        payment_id = await create_payment(
            session_factory, reference_number="REF-2002", **enrollment
        )
        before = await get_payment_row(session_factory, payment_id)

        await workflows().lookup_by_reference(" REF-2002 ")

        after = await get_payment_row(session_factory, payment_id)
        assert (after.status, after.updated_at) == (before.status, before.updated_at)


class TestSubmission:
    @pytest.mark.asyncio
    async def test_submit_creates_pending_payment(
        self, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        payment = await workflows().submit(
            receipt_url="/uploads/receipts/a.png", reference_number="REF-9", **enrollment
        )

        assert payment.status is PaymentStatus.PENDING
        assert payment.reference_number == "REF-9"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("existing", [PaymentStatus.PENDING, PaymentStatus.APPROVED])
    async def test_open_payment_blocks_resubmission(
        self,
        session_factory,
        workflows: Workflows,
        enrollment: dict[str, str],
        existing: PaymentStatus,
    ) -> None:
        await create_payment(session_factory, status=existing, **enrollment)

        with pytest.raises(PaymentAlreadySubmittedError):
            await workflows().submit(receipt_url="/uploads/receipts/b.png", **enrollment)

    @pytest.mark.asyncio
    async def test_rejected_payment_is_replaced(
        self, session_factory, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        old_id = await create_payment(
            session_factory, status=PaymentStatus.REJECTED, **enrollment
        )

        payment = await workflows().submit(receipt_url="/uploads/receipts/c.png", **enrollment)

        assert payment.payment_id != old_id
        assert payment.status is PaymentStatus.PENDING
        assert await get_payment_row(session_factory, old_id) is None

    @pytest.mark.asyncio
    async def test_duplicate_reference_is_refused(
        self, session_factory, workflows: Workflows, enrollment: dict[str, str]
    ) -> None:
        other_course = await create_course(session_factory, title="Biology")
        await create_payment(
            session_factory,
            student_id=enrollment["student_id"],
            course_id=other_course,
            reference_number="REF-1",
        )

        with pytest.raises(ReferenceNumberConflictError):
            await workflows().submit(
                receipt_url="/uploads/receipts/d.png", reference_number="REF-1", **enrollment
            )

    @pytest.mark.asyncio
    async def test_unknown_course(self, workflows: Workflows, enrollment: dict[str, str]) -> None:
        with pytest.raises(CourseNotFoundError):
            await workflows().submit(
                student_id=enrollment["student_id"],
                course_id="missing-course",
                receipt_url="/uploads/receipts/e.png",
            )


class TestListing:
    @pytest.mark.asyncio
    async def test_pending_payments_come_first(
        self, session_factory, workflows: Workflows
    ) -> None:
        course_id = await create_course(session_factory)
        statuses = [PaymentStatus.APPROVED, PaymentStatus.PENDING, PaymentStatus.REJECTED]
        for index, status in enumerate(statuses):
            student = await create_user(
                session_factory, email=f"s{index}@example.com", role=Role.STUDENT
            )
            await create_payment(
                session_factory, student_id=student.user_id, course_id=course_id, status=status
            )

        summaries = await workflows().list_payments()

        assert len(summaries) == 3
        assert summaries[0].status is PaymentStatus.PENDING
        assert {s.course_title for s in summaries} == {"Combined Maths"}
