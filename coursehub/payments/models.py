"""Database models for payments.

Cassandra table definitions for:
- payments: main table by payment id
- payments_by_user: a payer's history, newest first
- payments_by_course: a course's ledger, read by revenue statistics
"""

import secrets
import time
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursehub.auth.models import ensure_utc_aware


class PaymentStatus(str, Enum):
    """PENDING moves once to one of the terminal states."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


TERMINAL_STATUSES = frozenset(
    {PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.REFUNDED}
)


PAYMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.payments (
    id UUID PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    amount DECIMAL,
    currency TEXT,
    status TEXT,
    provider TEXT,
    transaction_id TEXT,
    external_transaction_id TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    completed_at TIMESTAMP
)
"""

PAYMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.payments_by_user (
    user_id UUID,
    created_at TIMESTAMP,
    payment_id UUID,
    PRIMARY KEY (user_id, created_at, payment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, payment_id ASC)
"""

PAYMENTS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.payments_by_course (
    course_id UUID,
    created_at TIMESTAMP,
    payment_id UUID,
    PRIMARY KEY (course_id, created_at, payment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, payment_id ASC)
"""

PAYMENTS_TABLES_CQL = [
    PAYMENTS_TABLE_CQL,
    PAYMENTS_BY_USER_TABLE_CQL,
    PAYMENTS_BY_COURSE_TABLE_CQL,
]


def generate_transaction_id(now: datetime | None = None) -> str:
    """Locally minted reference: ``txn_<epoch millis>_<random>``."""
    millis = int((now.timestamp() if now else time.time()) * 1000)
    return f"txn_{millis}_{secrets.token_hex(6)}"


class Payment:
    """A single charge for a course."""

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        amount: Decimal,
        currency: str,
        provider: str,
        transaction_id: str | None = None,
        id: UUID | None = None,
        enrollment_id: UUID | None = None,
        status: str = PaymentStatus.PENDING.value,
        external_transaction_id: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        completed_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.enrollment_id = enrollment_id
        self.amount = Decimal(amount)
        self.currency = currency
        self.status = status
        self.provider = provider
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.transaction_id = transaction_id or generate_transaction_id(self.created_at)
        self.external_transaction_id = external_transaction_id
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at
        self.completed_at = ensure_utc_aware(completed_at)

    @property
    def is_terminal(self) -> bool:
        return PaymentStatus(self.status) in TERMINAL_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value

    @classmethod
    def from_row(cls, row: Any) -> "Payment":
        return cls(
            id=row.id,
            user_id=row.user_id,
            course_id=row.course_id,
            enrollment_id=row.enrollment_id,
            amount=row.amount,
            currency=row.currency,
            status=row.status,
            provider=row.provider,
            transaction_id=row.transaction_id,
            external_transaction_id=row.external_transaction_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            completed_at=row.completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "enrollment_id": self.enrollment_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "provider": self.provider,
            "transaction_id": self.transaction_id,
            "external_transaction_id": self.external_transaction_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
        }

    def __repr__(self) -> str:
        return f"<Payment {self.transaction_id} ({self.status})>"
