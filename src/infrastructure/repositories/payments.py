"""SQL access for payment records.

Status changes go through :meth:`PaymentRepository.transition`, a single
``UPDATE ... WHERE status = 'PENDING'``. Nothing in this module reads a
status and then writes it back.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from src.domain.models import Payment, PaymentStatus, PaymentSummary, PaymentVerification
from src.infrastructure.db.models import CourseModel, PaymentModel, UserModel


def to_domain_payment(model: PaymentModel) -> Payment:
    return Payment(
        payment_id=model.id,
        student_id=model.student_id,
        course_id=model.course_id,
        reference_number=model.reference_number,
        receipt_url=model.receipt_url,
        status=model.status,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class PaymentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def transition(
        self,
        payment_id: str,
        target: PaymentStatus,
        *,
        updated_at: datetime,
        reference_number: str | None = None,
    ) -> Payment | None:
        """Move a PENDING payment to ``target`` in one conditional write.

        Returns ``None`` when no row matched, i.e. the payment does not exist
        or has already left PENDING. Raises ``IntegrityError`` when the
        supplied reference number is already taken.
        """
        values: dict[str, object] = {"status": target, "updated_at": updated_at}
        if reference_number is not None:
            values["reference_number"] = reference_number

        stmt = (
            update(PaymentModel)
            .where(
                PaymentModel.id == payment_id,
                PaymentModel.status == PaymentStatus.PENDING,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self.session.execute(stmt)
        except IntegrityError:
            await self.session.rollback()
            raise

        if result.rowcount != 1:
            await self.session.rollback()
            return None

        model = await self.session.get(PaymentModel, payment_id, populate_existing=True)
        await self.session.commit()
        if model is None:  # pragma: no cover - row matched the update above
            return None
        return to_domain_payment(model)

    async def find_verification(self, reference_number: str) -> PaymentVerification | None:
        stmt = (
            select(PaymentModel, UserModel, CourseModel)
            .join(UserModel, PaymentModel.student_id == UserModel.id)
            .join(CourseModel, PaymentModel.course_id == CourseModel.id)
            .where(PaymentModel.reference_number == reference_number)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None

        payment, student, course = row
        return PaymentVerification(
            payment_id=payment.id,
            status=payment.status,
            reference_number=reference_number,
            receipt_url=payment.receipt_url,
            processed_at=payment.updated_at,
            student_id=student.id,
            student_name=student.name,
            student_email=student.email,
            course_id=course.id,
            course_title=course.title,
        )

    async def list_summaries(self) -> list[PaymentSummary]:
        pending_first = case((PaymentModel.status == PaymentStatus.PENDING, 0), else_=1)
        stmt = (
            select(PaymentModel, UserModel.name, CourseModel.title)
            .join(UserModel, PaymentModel.student_id == UserModel.id)
            .join(CourseModel, PaymentModel.course_id == CourseModel.id)
            .order_by(pending_first, PaymentModel.created_at.desc(), PaymentModel.id)
        )
        rows = (await self.session.execute(stmt)).all()
        return [
            PaymentSummary(
                payment_id=payment.id,
                status=payment.status,
                receipt_url=payment.receipt_url,
                reference_number=payment.reference_number,
                created_at=payment.created_at,
                student_name=student_name,
                course_id=payment.course_id,
                course_title=course_title,
            )
            for payment, student_name, course_title in rows
        ]

    async def find_for_enrollment(self, student_id: str, course_id: str) -> Payment | None:
        stmt = select(PaymentModel).where(
            PaymentModel.student_id == student_id,
            PaymentModel.course_id == course_id,
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return to_domain_payment(model) if model else None

    async def reference_in_use(self, reference_number: str) -> bool:
        stmt = select(PaymentModel.id).where(PaymentModel.reference_number == reference_number)
        return (await self.session.execute(stmt)).first() is not None

    async def course_exists(self, course_id: str) -> bool:
        return await self.session.get(CourseModel, course_id) is not None

    async def replace_rejected_and_create(
        self,
        *,
        student_id: str,
        course_id: str,
        receipt_url: str,
        reference_number: str | None,
        rejected_payment_id: str | None = None,
    ) -> Payment:
        """Insert a PENDING payment, first removing a REJECTED predecessor.

        The delete is conditional on the predecessor still being REJECTED and
        both statements commit together.
        """
        try:
            if rejected_payment_id is not None:
                await self.session.execute(
                    delete(PaymentModel).where(
                        PaymentModel.id == rejected_payment_id,
                        PaymentModel.status == PaymentStatus.REJECTED,
                    )
                )

            model = PaymentModel(
                student_id=student_id,
                course_id=course_id,
                receipt_url=receipt_url,
                reference_number=reference_number,
                status=PaymentStatus.PENDING,
            )
            self.session.add(model)
            await self.session.flush()
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise

        await self.session.refresh(model)
        return to_domain_payment(model)
