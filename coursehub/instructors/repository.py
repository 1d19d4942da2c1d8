"""Cassandra persistence for instructor applications."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from coursehub.core.pagination import LISTING_PAGE_SIZE
from coursehub.instructors.models import InstructorApplication


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ApplicationRepository:
    """Applications plus their per-user and per-status index tables."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.instructor_applications
            (id, user_id, bio, expertise, status, reason, reviewed_by, reviewed_at,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.instructor_applications WHERE id = ?
        """)

        self._insert_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.applications_by_user
            (user_id, created_at, id, status)
            VALUES (?, ?, ?, ?)
        """)

        self._list_by_user = self.session.prepare(f"""
            SELECT id FROM {self.keyspace}.applications_by_user WHERE user_id = ?
        """)

        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.applications_by_status
            (status, created_at, id, user_id)
            VALUES (?, ?, ?, ?)
        """)

        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.applications_by_status
            WHERE status = ? AND created_at = ? AND id = ?
        """)

        self._list_by_status = self.session.prepare(f"""
            SELECT id FROM {self.keyspace}.applications_by_status
            WHERE status = ?
        """)
        self._list_by_status.fetch_size = LISTING_PAGE_SIZE

    def _params(self, app: InstructorApplication) -> list:
        return [
            app.id,
            app.user_id,
            app.bio,
            app.expertise,
            app.status,
            app.reason,
            app.reviewed_by,
            app.reviewed_at,
            app.created_at,
            app.updated_at,
        ]

    async def create(self, app: InstructorApplication) -> None:
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._insert, self._params(app))
        batch.add(
            self._insert_by_user, [app.user_id, app.created_at, app.id, app.status]
        )
        batch.add(
            self._insert_by_status, [app.status, app.created_at, app.id, app.user_id]
        )
        await self.session.aexecute(batch)

    async def save(self, app: InstructorApplication, previous_status: str) -> None:
        """Persist a reviewed application and move it between status queues."""
        app.updated_at = datetime.now(UTC)

        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._insert, self._params(app))
        batch.add(
            self._insert_by_user, [app.user_id, app.created_at, app.id, app.status]
        )
        if previous_status != app.status:
            batch.add(self._delete_by_status, [previous_status, app.created_at, app.id])
        batch.add(
            self._insert_by_status, [app.status, app.created_at, app.id, app.user_id]
        )
        await self.session.aexecute(batch)

    async def get(self, application_id: UUID) -> InstructorApplication | None:
        result = await self.session.aexecute(self._get, [application_id])
        row = result.one()
        return InstructorApplication.from_row(row) if row else None

    async def _resolve(self, rows) -> list[InstructorApplication]:
        apps = []
        for row in rows:
            app = await self.get(row.id)
            if app:
                apps.append(app)
        return apps

    async def list_by_user(self, user_id: UUID) -> list[InstructorApplication]:
        """All applications of a user, newest first."""
        rows = await self.session.aexecute(self._list_by_user, [user_id])
        return await self._resolve(rows)

    async def list_by_status(self, status: str) -> list[InstructorApplication]:
        """Every application in one status, paged through by the driver."""
        rows = await self.session.aexecute(self._list_by_status, [status])
        return await self._resolve(rows)
