"""Cassandra persistence for the activity log."""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from coursehub.activity.models import ActivityLog, day_bucket


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ActivityRepository:
    """Writes each entry to every timeline it belongs to."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_by_day = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.activity_by_day
            (day, created_at, id, type, actor_id, target_user_id, course_id,
             enrollment_id, payment_id, details)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.activity_by_user
            (user_id, created_at, id, type, actor_id, target_user_id, course_id,
             enrollment_id, payment_id, details)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.activity_by_course
            (course_id, created_at, id, type, actor_id, target_user_id,
             enrollment_id, payment_id, details)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._list_by_day = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.activity_by_day WHERE day = ? LIMIT ?
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.activity_by_user WHERE user_id = ? LIMIT ?
        """)

        self._list_by_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.activity_by_course
            WHERE course_id = ? LIMIT ?
        """)

    async def insert(self, entry: ActivityLog) -> None:
        common = [
            entry.created_at,
            entry.id,
            entry.type,
            entry.actor_id,
            entry.target_user_id,
        ]

        batch = BatchStatement(batch_type=BatchType.UNLOGGED)
        batch.add(
            self._insert_by_day,
            [
                day_bucket(entry.created_at),
                *common,
                entry.course_id,
                entry.enrollment_id,
                entry.payment_id,
                entry.details,
            ],
        )

        user_ids = {uid for uid in (entry.actor_id, entry.target_user_id) if uid}
        for user_id in user_ids:
            batch.add(
                self._insert_by_user,
                [
                    user_id,
                    *common,
                    entry.course_id,
                    entry.enrollment_id,
                    entry.payment_id,
                    entry.details,
                ],
            )

        if entry.course_id:
            batch.add(
                self._insert_by_course,
                [
                    entry.course_id,
                    *common,
                    entry.enrollment_id,
                    entry.payment_id,
                    entry.details,
                ],
            )

        await self.session.aexecute(batch)

    async def list_by_user(self, user_id: UUID, limit: int) -> list[ActivityLog]:
        rows = await self.session.aexecute(self._list_by_user, [user_id, limit])
        return [ActivityLog.from_row(row) for row in rows]

    async def list_by_course(self, course_id: UUID, limit: int) -> list[ActivityLog]:
        rows = await self.session.aexecute(self._list_by_course, [course_id, limit])
        return [ActivityLog.from_row(row) for row in rows]

    async def list_recent(self, limit: int, days: int = 30) -> list[ActivityLog]:
        """Most recent entries across the platform, walking back day by day."""
        entries: list[ActivityLog] = []
        today = datetime.now(UTC).date()

        for offset in range(days):
            remaining = limit - len(entries)
            if remaining <= 0:
                break
            bucket = day_bucket(today - timedelta(days=offset))
            rows = await self.session.aexecute(self._list_by_day, [bucket, remaining])
            entries.extend(ActivityLog.from_row(row) for row in rows)

        return entries
