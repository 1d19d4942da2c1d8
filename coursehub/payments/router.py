"""Payment API endpoints.

No real gateway is involved: ``/payments/{id}/process`` is where the payment
outcome (COMPLETED, FAILED or REFUNDED) is reported.
"""

from uuid import UUID

from fastapi import APIRouter, status

from coursehub.auth.dependencies import CurrentUser, StaffUser
from coursehub.payments.dependencies import PaymentServiceDep
from coursehub.payments.models import Payment, PaymentStatus
from coursehub.payments.schemas import (
    InitiatePaymentRequest,
    InitiatePaymentResponse,
    PaymentResponse,
    PaymentStatsResponse,
    ProcessPaymentRequest,
)


router = APIRouter(prefix="/payments", tags=["payments"])


def _to_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(**payment.to_dict())


@router.post(
    "/initiate",
    response_model=InitiatePaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a payment for a course",
    responses={400: {"description": "Course not published or amount mismatch"}},
)
async def initiate_payment(
    data: InitiatePaymentRequest,
    user: CurrentUser,
    payment_service: PaymentServiceDep,
) -> InitiatePaymentResponse:
    payment = await payment_service.initiate(user, data.course_id, data.amount, data.provider)
    return InitiatePaymentResponse(
        payment=_to_response(payment),
        payment_url=f"/payments/{payment.id}/process",
        transaction_id=payment.transaction_id,
    )


@router.post(
    "/{payment_id}/process",
    response_model=PaymentResponse,
    summary="Report a payment outcome",
)
async def process_payment(
    payment_id: UUID,
    data: ProcessPaymentRequest,
    user: CurrentUser,
    payment_service: PaymentServiceDep,
) -> PaymentResponse:
    """Completing a payment enrolls the payer; repeats are no-ops."""
    payment = await payment_service.process(
        user,
        payment_id,
        PaymentStatus(data.status),
        data.external_transaction_id,
    )
    return _to_response(payment)


@router.get("/my", response_model=list[PaymentResponse], summary="List my payments")
async def list_my_payments(
    user: CurrentUser,
    payment_service: PaymentServiceDep,
) -> list[PaymentResponse]:
    return [_to_response(p) for p in await payment_service.list_my_payments(user)]


@router.get(
    "/stats",
    response_model=PaymentStatsResponse,
    summary="Revenue statistics (instructor: own courses, admin: platform)",
)
async def payment_stats(
    user: StaffUser,
    payment_service: PaymentServiceDep,
) -> PaymentStatsResponse:
    return await payment_service.get_stats(user)


@router.get(
    "/course/{course_id}",
    response_model=list[PaymentResponse],
    summary="List a course's payments (owner or admin)",
)
async def list_course_payments(
    course_id: UUID,
    user: StaffUser,
    payment_service: PaymentServiceDep,
) -> list[PaymentResponse]:
    payments = await payment_service.list_course_payments(user, course_id)
    return [_to_response(p) for p in payments]


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get payment",
    responses={404: {"description": "Payment not found"}},
)
async def get_payment(
    payment_id: UUID,
    user: CurrentUser,
    payment_service: PaymentServiceDep,
) -> PaymentResponse:
    return _to_response(await payment_service.get_payment(user, payment_id))
