"""Pydantic schemas for payments."""

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from coursehub.payments.models import PaymentStatus


class InitiatePaymentRequest(BaseModel):
    course_id: UUID
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    provider: str | None = Field(None, max_length=50, description="Defaults to paypal")


class ProcessPaymentRequest(BaseModel):
    """Outcome reported for a pending payment."""

    status: Literal["COMPLETED", "FAILED", "REFUNDED"]
    external_transaction_id: str | None = Field(None, max_length=200)


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    enrollment_id: UUID | None = None
    amount: Decimal
    currency: str
    status: PaymentStatus
    provider: str
    transaction_id: str
    external_transaction_id: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    completed_at: datetime | None = None


class InitiatePaymentResponse(BaseModel):
    payment: PaymentResponse
    payment_url: str = Field(..., description="Where to report the payment outcome")
    transaction_id: str


class CourseRevenue(BaseModel):
    course_id: UUID
    title: str
    revenue: Decimal
    completed_payments: int


class PaymentStatsResponse(BaseModel):
    """Revenue over COMPLETED payments."""

    total_revenue: Decimal
    monthly_revenue: Decimal
    completed_payments: int
    pending_payments: int
    failed_payments: int
    courses: list[CourseRevenue]
