"""Payment submission and admin review routes."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_db_session, require_roles
from src.api.schemas.payments import (
    ApprovePaymentRequest,
    PaymentResponse,
    PaymentSubmitRequest,
    PaymentSummaryResponse,
    PaymentVerificationResponse,
)
from src.core.auth import Role
from src.domain import User
from src.domain.services.payments import (
    CourseNotFoundError,
    PaymentConflictError,
    PaymentNotFoundError,
    PaymentNotFoundOrProcessedError,
    PaymentWorkflow,
)
from src.infrastructure.repositories.payments import PaymentRepository

logger = structlog.get_logger()
router = APIRouter(prefix="/payments", tags=["payments"])


def get_payment_workflow(
    session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> PaymentWorkflow:
    return PaymentWorkflow(PaymentRepository(session))


@router.get("", response_model=list[PaymentSummaryResponse], summary="List payments for review")
async def list_payments(
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
    user: User = Depends(require_roles(Role.ADMIN)),
) -> list[PaymentSummaryResponse]:
    """Pending payments first, newest first within each group."""
    summaries = await workflow.list_payments()
    return [PaymentSummaryResponse.from_domain(summary) for summary in summaries]


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a payment receipt",
)
async def submit_payment(
    payload: PaymentSubmitRequest,
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
    user: User = Depends(require_roles(Role.STUDENT)),
) -> PaymentResponse:
    try:
        payment = await workflow.submit(
            student_id=user.user_id,
            course_id=payload.course_id,
            receipt_url=payload.receipt_url,
            reference_number=payload.reference_number,
        )
    except CourseNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PaymentConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return PaymentResponse.from_domain(payment)


@router.get(
    "/verify/{reference_number}",
    response_model=PaymentVerificationResponse,
    summary="Look up a payment by reference number",
    description="Public receipt confirmation; no session required.",
)
async def verify_reference(
    reference_number: str,
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
) -> PaymentVerificationResponse:
    try:
        verification = await workflow.lookup_by_reference(reference_number)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PaymentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return PaymentVerificationResponse.from_domain(verification)


@router.patch("/{payment_id}/approve", response_model=PaymentResponse, summary="Approve payment")
async def approve_payment(
    payment_id: str,
    payload: ApprovePaymentRequest | None = Body(default=None),  # noqa: B008
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
    user: User = Depends(require_roles(Role.ADMIN)),
) -> PaymentResponse:
    reference_number = payload.reference_number if payload else None

    try:
        payment = await workflow.approve(payment_id, reference_number=reference_number)
    except PaymentNotFoundOrProcessedError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PaymentConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    await logger.ainfo("payment_review", action="approve", admin_id=user.user_id)
    return PaymentResponse.from_domain(payment)


@router.patch("/{payment_id}/reject", response_model=PaymentResponse, summary="Reject payment")
async def reject_payment(
    payment_id: str,
    workflow: PaymentWorkflow = Depends(get_payment_workflow),
    user: User = Depends(require_roles(Role.ADMIN)),
) -> PaymentResponse:
    try:
        payment = await workflow.reject(payment_id)
    except PaymentNotFoundOrProcessedError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    await logger.ainfo("payment_review", action="reject", admin_id=user.user_id)
    return PaymentResponse.from_domain(payment)
