"""Cassandra persistence for reviews and their rating aggregate."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.reviews.models import Review


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ReviewRepository:
    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert_if_absent = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.reviews
            (course_id, user_id, id, rating, comment, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?) IF NOT EXISTS
        """)

        self._insert_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.reviews_by_id (id, course_id, user_id)
            VALUES (?, ?, ?)
        """)

        self._get_key_by_id = self.session.prepare(f"""
            SELECT course_id, user_id FROM {self.keyspace}.reviews_by_id WHERE id = ?
        """)

        self._get_for_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reviews WHERE course_id = ? AND user_id = ?
        """)

        self._update = self.session.prepare(f"""
            UPDATE {self.keyspace}.reviews SET rating = ?, comment = ?, updated_at = ?
            WHERE course_id = ? AND user_id = ? IF rating = ?
        """)

        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.reviews WHERE course_id = ? AND user_id = ?
            IF rating = ?
        """)

        self._delete_by_id = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.reviews_by_id WHERE id = ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.reviews WHERE course_id = ?
        """)

        self._adjust_totals = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_rating_totals
            SET rating_count = rating_count + ?, rating_sum = rating_sum + ?
            WHERE course_id = ?
        """)

        self._get_totals = self.session.prepare(f"""
            SELECT rating_count, rating_sum FROM {self.keyspace}.course_rating_totals
            WHERE course_id = ?
        """)

    async def create(self, review: Review) -> bool:
        """Insert a review unless the user already reviewed the course.

        Returns:
            False if a review for the (course, user) pair already exists
        """
        result = await self.session.aexecute(
            self._insert_if_absent,
            [
                review.course_id,
                review.user_id,
                review.id,
                review.rating,
                review.comment,
                review.created_at,
                review.updated_at,
            ],
        )
        if not result.was_applied:
            return False

        await self.session.aexecute(
            self._insert_by_id, [review.id, review.course_id, review.user_id]
        )
        return True

    async def get(self, review_id: UUID) -> Review | None:
        result = await self.session.aexecute(self._get_key_by_id, [review_id])
        key = result.one()
        if not key:
            return None
        return await self.get_for_user(key.course_id, key.user_id)

    async def get_for_user(self, course_id: UUID, user_id: UUID) -> Review | None:
        result = await self.session.aexecute(self._get_for_user, [course_id, user_id])
        row = result.one()
        return Review.from_row(row) if row else None

    async def save(self, review: Review, previous_rating: int) -> bool:
        """Write rating and comment if the stored rating is still ``previous_rating``.

        Returns:
            False if the review was changed or removed concurrently
        """
        review.updated_at = datetime.now(UTC)
        result = await self.session.aexecute(
            self._update,
            [
                review.rating,
                review.comment,
                review.updated_at,
                review.course_id,
                review.user_id,
                previous_rating,
            ],
        )
        return bool(result.was_applied)

    async def delete(self, review: Review) -> bool:
        """Remove a review and its id lookup row if its rating is unchanged.

        Returns:
            False if the review was changed or already removed
        """
        result = await self.session.aexecute(
            self._delete, [review.course_id, review.user_id, review.rating]
        )
        if not result.was_applied:
            return False

        await self.session.aexecute(self._delete_by_id, [review.id])
        return True

    async def list_by_course(self, course_id: UUID) -> list[Review]:
        """All reviews of a course, newest first."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        reviews = [Review.from_row(row) for row in rows]
        return sorted(reviews, key=lambda r: r.created_at, reverse=True)

    async def adjust_totals(self, course_id: UUID, count_delta: int, sum_delta: int) -> None:
        """Apply a change to the per-course (count, sum) counters."""
        await self.session.aexecute(
            self._adjust_totals, [count_delta, sum_delta, course_id]
        )

    async def get_totals(self, course_id: UUID) -> tuple[int, int]:
        """Return (review count, rating sum) for a course."""
        result = await self.session.aexecute(self._get_totals, [course_id])
        row = result.one()
        if not row:
            return 0, 0
        return row.rating_count or 0, row.rating_sum or 0
