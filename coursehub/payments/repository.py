"""Cassandra persistence for payments."""

from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from coursehub.payments.models import Payment, PaymentStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session


class PaymentRepository:
    """Payments and their per-payer / per-course ledgers.

    Status only leaves PENDING through ``transition``, a conditional update,
    so a repeated completion callback can never apply twice.
    """

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.payments
            (id, user_id, course_id, enrollment_id, amount, currency, status,
             provider, transaction_id, external_transaction_id, created_at,
             updated_at, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.payments_by_user (user_id, created_at, payment_id)
            VALUES (?, ?, ?)
        """)

        self._insert_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.payments_by_course (course_id, created_at, payment_id)
            VALUES (?, ?, ?)
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.payments WHERE id = ?
        """)

        self._transition = self.session.prepare(f"""
            UPDATE {self.keyspace}.payments
            SET status = ?, enrollment_id = ?, external_transaction_id = ?,
                updated_at = ?, completed_at = ?
            WHERE id = ? IF status = ?
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT payment_id FROM {self.keyspace}.payments_by_user WHERE user_id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT payment_id FROM {self.keyspace}.payments_by_course WHERE course_id = ?
        """)

    async def create(self, payment: Payment) -> None:
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._insert,
            [
                payment.id,
                payment.user_id,
                payment.course_id,
                payment.enrollment_id,
                payment.amount,
                payment.currency,
                payment.status,
                payment.provider,
                payment.transaction_id,
                payment.external_transaction_id,
                payment.created_at,
                payment.updated_at,
                payment.completed_at,
            ],
        )
        batch.add(self._insert_by_user, [payment.user_id, payment.created_at, payment.id])
        batch.add(
            self._insert_by_course, [payment.course_id, payment.created_at, payment.id]
        )
        await self.session.aexecute(batch)

    async def get(self, payment_id: UUID) -> Payment | None:
        result = await self.session.aexecute(self._get, [payment_id])
        row = result.one()
        return Payment.from_row(row) if row else None

    async def transition(self, payment: Payment) -> bool:
        """Persist ``payment``'s new status if the stored one is still PENDING.

        Returns:
            False if another caller already moved the payment out of PENDING
        """
        result = await self.session.aexecute(
            self._transition,
            [
                payment.status,
                payment.enrollment_id,
                payment.external_transaction_id,
                payment.updated_at,
                payment.completed_at,
                payment.id,
                PaymentStatus.PENDING.value,
            ],
        )
        return bool(result.was_applied)

    async def _resolve(self, rows) -> list[Payment]:
        payments = []
        for row in rows:
            payment = await self.get(row.payment_id)
            if payment:
                payments.append(payment)
        return payments

    async def list_by_user(self, user_id: UUID) -> list[Payment]:
        """A payer's payments, newest first."""
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        return await self._resolve(rows)

    async def list_by_course(self, course_id: UUID) -> list[Payment]:
        """A course's payments, newest first."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return await self._resolve(rows)
