"""Cassandra persistence for enrollments and lesson completions."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from coursehub.enrollments.models import Enrollment


if TYPE_CHECKING:
    from cassandra.cluster import Session


class EnrollmentRepository:
    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._claim_pair = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollment_pairs (user_id, course_id, enrollment_id)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)

        self._release_pair = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollment_pairs
            WHERE user_id = ? AND course_id = ? IF enrollment_id = ?
        """)

        self._get_pair = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollment_pairs
            WHERE user_id = ? AND course_id = ?
        """)

        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (id, user_id, course_id, status, progress, completed, enrolled_at,
             completed_at, cancelled_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments WHERE id = ?
        """)

        self._insert_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user (user_id, course_id, enrollment_id)
            VALUES (?, ?, ?)
        """)

        self._insert_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_course
            (course_id, user_id, enrollment_id)
            VALUES (?, ?, ?)
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_user WHERE user_id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.enrollments_by_course
            WHERE course_id = ?
        """)

        self._mark_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_completions
            (enrollment_id, lesson_id, completed_at)
            VALUES (?, ?, ?)
        """)

        self._list_completions = self.session.prepare(f"""
            SELECT lesson_id FROM {self.keyspace}.lesson_completions
            WHERE enrollment_id = ?
        """)

    def _params(self, enrollment: Enrollment) -> list:
        return [
            enrollment.id,
            enrollment.user_id,
            enrollment.course_id,
            enrollment.status,
            enrollment.progress,
            enrollment.completed,
            enrollment.enrolled_at,
            enrollment.completed_at,
            enrollment.cancelled_at,
            enrollment.updated_at,
        ]

    async def claim(self, user_id: UUID, course_id: UUID, enrollment_id: UUID) -> bool:
        """Reserve the (user, course) pair for a new enrollment.

        Returns:
            False if the pair already has an enrollment
        """
        result = await self.session.aexecute(
            self._claim_pair, [user_id, course_id, enrollment_id]
        )
        return bool(result.was_applied)

    async def release(self, user_id: UUID, course_id: UUID, enrollment_id: UUID) -> None:
        """Give back a claim whose enrollment was never created."""
        await self.session.aexecute(
            self._release_pair, [user_id, course_id, enrollment_id]
        )

    async def find_id(self, user_id: UUID, course_id: UUID) -> UUID | None:
        result = await self.session.aexecute(self._get_pair, [user_id, course_id])
        row = result.one()
        return row.enrollment_id if row else None

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        result = await self.session.aexecute(self._get, [enrollment_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def create(self, enrollment: Enrollment) -> None:
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._insert, self._params(enrollment))
        batch.add(
            self._insert_by_user,
            [enrollment.user_id, enrollment.course_id, enrollment.id],
        )
        batch.add(
            self._insert_by_course,
            [enrollment.course_id, enrollment.user_id, enrollment.id],
        )
        await self.session.aexecute(batch)

    async def save(self, enrollment: Enrollment) -> None:
        enrollment.updated_at = enrollment.updated_at or datetime.now(UTC)
        await self.session.aexecute(self._insert, self._params(enrollment))

    async def _resolve(self, rows) -> list[Enrollment]:
        enrollments = []
        for row in rows:
            enrollment = await self.get(row.enrollment_id)
            if enrollment:
                enrollments.append(enrollment)
        return sorted(enrollments, key=lambda e: e.enrolled_at, reverse=True)

    async def list_by_user(self, user_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        return await self._resolve(rows)

    async def list_by_course(self, course_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return await self._resolve(rows)

    async def mark_lesson_complete(
        self, enrollment_id: UUID, lesson_id: UUID, completed_at: datetime | None = None
    ) -> None:
        """Record a completed lesson (idempotent)."""
        await self.session.aexecute(
            self._mark_lesson,
            [enrollment_id, lesson_id, completed_at or datetime.now(UTC)],
        )

    async def completed_lessons(self, enrollment_id: UUID) -> set[UUID]:
        rows = await self.session.aexecute(self._list_completions, [enrollment_id])
        return {row.lesson_id for row in rows}
