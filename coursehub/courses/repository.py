"""Cassandra persistence for courses, modules, lessons and resources."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from coursehub.core.errors import ConflictError
from coursehub.core.logging import get_logger
from coursehub.core.pagination import LISTING_PAGE_SIZE
from coursehub.courses.models import Course, Lesson, LessonResource, Module


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)

# Compare-and-set attempts on the enrollment counter before giving up
MAX_COUNTER_ATTEMPTS = 10


class CourseRepository:
    """Courses, their listing lookups and the live enrollment counter.

    The counter column is only ever written through ``adjust_enrollment_count``
    (a conditional update), never by ``update_details`` or ``transition``.
    """

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, instructor_id, title, description, price, category, level,
             thumbnail_url, capacity, status, rejection_reason, enrollment_count,
             published_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._update_details = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET title = ?, description = ?, price = ?, category = ?, level = ?,
                thumbnail_url = ?, capacity = ?, updated_at = ?
            WHERE id = ?
        """)

        self._transition = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET status = ?, rejection_reason = ?, published_at = ?, updated_at = ?
            WHERE id = ? IF status = ?
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._get_count = self.session.prepare(f"""
            SELECT enrollment_count FROM {self.keyspace}.courses WHERE id = ?
        """)

        self._cas_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses SET enrollment_count = ?
            WHERE id = ? IF enrollment_count = ?
        """)

        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_status (status, created_at, course_id)
            VALUES (?, ?, ?)
        """)

        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_status
            WHERE status = ? AND created_at = ? AND course_id = ?
        """)

        self._list_by_status = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_status
            WHERE status = ?
        """)
        self._list_by_status.fetch_size = LISTING_PAGE_SIZE

        self._insert_by_instructor = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_instructor
            (instructor_id, created_at, course_id)
            VALUES (?, ?, ?)
        """)

        self._delete_by_instructor = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.courses_by_instructor
            WHERE instructor_id = ? AND created_at = ? AND course_id = ?
        """)

        self._list_by_instructor = self.session.prepare(f"""
            SELECT course_id FROM {self.keyspace}.courses_by_instructor
            WHERE instructor_id = ?
        """)

    async def get(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def create(self, course: Course) -> None:
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(
            self._insert,
            [
                course.id,
                course.instructor_id,
                course.title,
                course.description,
                course.price,
                course.category,
                course.level,
                course.thumbnail_url,
                course.capacity,
                course.status,
                course.rejection_reason,
                course.enrollment_count,
                course.published_at,
                course.created_at,
                course.updated_at,
            ],
        )
        batch.add(self._insert_by_status, [course.status, course.created_at, course.id])
        batch.add(
            self._insert_by_instructor,
            [course.instructor_id, course.created_at, course.id],
        )
        await self.session.aexecute(batch)

    async def update_details(self, course: Course) -> None:
        """Persist the descriptive fields only.

        Status, rejection reason, publication time and the counter are left to
        ``transition`` and ``adjust_enrollment_count``, so an edit made from a
        stale read never undoes a concurrent lifecycle change.
        """
        course.updated_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_details,
            [
                course.title,
                course.description,
                course.price,
                course.category,
                course.level,
                course.thumbnail_url,
                course.capacity,
                course.updated_at,
                course.id,
            ],
        )

    async def transition(self, course: Course, previous_status: str) -> bool:
        """Move a course to ``course.status`` if it is still in ``previous_status``.

        The status lookup row is only moved once the conditional update applied.

        Returns:
            False if another writer changed the status first
        """
        course.updated_at = datetime.now(UTC)
        result = await self.session.aexecute(
            self._transition,
            [
                course.status,
                course.rejection_reason,
                course.published_at,
                course.updated_at,
                course.id,
                previous_status,
            ],
        )
        if not result.was_applied:
            return False

        if previous_status != course.status:
            batch = BatchStatement(batch_type=BatchType.LOGGED)
            batch.add(
                self._delete_by_status, [previous_status, course.created_at, course.id]
            )
            batch.add(
                self._insert_by_status, [course.status, course.created_at, course.id]
            )
            await self.session.aexecute(batch)
        return True

    async def delete(self, course: Course) -> None:
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._delete, [course.id])
        batch.add(self._delete_by_status, [course.status, course.created_at, course.id])
        batch.add(
            self._delete_by_instructor,
            [course.instructor_id, course.created_at, course.id],
        )
        await self.session.aexecute(batch)

    async def _resolve(self, rows) -> list[Course]:
        courses = []
        for row in rows:
            course = await self.get(row.course_id)
            if course:
                courses.append(course)
        return courses

    async def list_by_status(self, status: str) -> list[Course]:
        """Every course in one lifecycle state, newest first.

        Iterating the result set fetches further pages from the driver.
        """
        rows = await self.session.aexecute(self._list_by_status, [status])
        return await self._resolve(rows)

    async def list_by_instructor(self, instructor_id: UUID) -> list[Course]:
        rows = await self.session.aexecute(self._list_by_instructor, [instructor_id])
        return await self._resolve(rows)

    async def adjust_enrollment_count(
        self, course_id: UUID, delta: int, capacity: int | None = None
    ) -> bool:
        """Atomically add ``delta`` to the live enrollment counter.

        Increments respect ``capacity``; decrements never go below zero.

        Returns:
            False if an increment would exceed the capacity

        Raises:
            ConflictError: If the counter kept changing under contention
        """
        for _ in range(MAX_COUNTER_ATTEMPTS):
            result = await self.session.aexecute(self._get_count, [course_id])
            row = result.one()
            current = (row.enrollment_count or 0) if row else 0

            if delta > 0 and capacity is not None and current + delta > capacity:
                return False

            new_value = max(0, current + delta)
            cas = await self.session.aexecute(
                self._cas_count, [new_value, course_id, current]
            )
            if cas.was_applied:
                return True

        logger.warning("enrollment_counter_contention", course_id=str(course_id))
        raise ConflictError("Course enrollment is busy, please retry")


class ModuleRepository:
    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules
            (course_id, id, title, description, sort_order, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.modules WHERE course_id = ? AND id = ?
        """)

        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.modules WHERE course_id = ?
        """)

        self._set_order = self.session.prepare(f"""
            UPDATE {self.keyspace}.modules SET sort_order = ?, updated_at = ?
            WHERE course_id = ? AND id = ?
        """)

        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.modules WHERE course_id = ? AND id = ?
        """)

        self._delete_by_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.modules WHERE course_id = ?
        """)

    async def list_by_course(self, course_id: UUID) -> list[Module]:
        """Modules of a course in display order."""
        rows = await self.session.aexecute(self._list, [course_id])
        return sorted((Module.from_row(r) for r in rows), key=lambda m: m.sort_order)

    async def get(self, course_id: UUID, module_id: UUID) -> Module | None:
        result = await self.session.aexecute(self._get, [course_id, module_id])
        row = result.one()
        return Module.from_row(row) if row else None

    async def save(self, module: Module) -> None:
        await self.session.aexecute(
            self._insert,
            [
                module.course_id,
                module.id,
                module.title,
                module.description,
                module.sort_order,
                module.created_at,
                module.updated_at,
            ],
        )

    async def update_orders(self, modules: list[Module]) -> None:
        if not modules:
            return
        now = datetime.now(UTC)
        batch = BatchStatement(batch_type=BatchType.UNLOGGED)
        for module in modules:
            module.updated_at = now
            batch.add(self._set_order, [module.sort_order, now, module.course_id, module.id])
        await self.session.aexecute(batch)

    async def delete(self, course_id: UUID, module_id: UUID) -> None:
        await self.session.aexecute(self._delete, [course_id, module_id])

    async def delete_by_course(self, course_id: UUID) -> None:
        await self.session.aexecute(self._delete_by_course, [course_id])


class LessonRepository:
    """Lessons (partitioned by module) and their resources."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons
            (module_id, id, course_id, title, content_type, content, video_url,
             duration_minutes, sort_order, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE module_id = ? AND id = ?
        """)

        self._list = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lessons WHERE module_id = ?
        """)

        self._set_order = self.session.prepare(f"""
            UPDATE {self.keyspace}.lessons SET sort_order = ?, updated_at = ?
            WHERE module_id = ? AND id = ?
        """)

        self._delete = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons WHERE module_id = ? AND id = ?
        """)

        self._delete_by_module = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lessons WHERE module_id = ?
        """)

        self._insert_resource = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_resources
            (lesson_id, id, title, url, resource_type, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        self._list_resources = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.lesson_resources WHERE lesson_id = ?
        """)

        self._delete_resources = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lesson_resources WHERE lesson_id = ?
        """)

    async def list_by_module(self, module_id: UUID) -> list[Lesson]:
        """Lessons of a module in display order."""
        rows = await self.session.aexecute(self._list, [module_id])
        lessons = [Lesson.from_row(r) for r in rows]
        return sorted(lessons, key=lambda lesson: lesson.sort_order)

    async def get(self, module_id: UUID, lesson_id: UUID) -> Lesson | None:
        result = await self.session.aexecute(self._get, [module_id, lesson_id])
        row = result.one()
        return Lesson.from_row(row) if row else None

    async def save(self, lesson: Lesson) -> None:
        await self.session.aexecute(
            self._insert,
            [
                lesson.module_id,
                lesson.id,
                lesson.course_id,
                lesson.title,
                lesson.content_type,
                lesson.content,
                lesson.video_url,
                lesson.duration_minutes,
                lesson.sort_order,
                lesson.status,
                lesson.created_at,
                lesson.updated_at,
            ],
        )

    async def update_orders(self, lessons: list[Lesson]) -> None:
        if not lessons:
            return
        now = datetime.now(UTC)
        batch = BatchStatement(batch_type=BatchType.UNLOGGED)
        for lesson in lessons:
            lesson.updated_at = now
            batch.add(self._set_order, [lesson.sort_order, now, lesson.module_id, lesson.id])
        await self.session.aexecute(batch)

    async def delete(self, module_id: UUID, lesson_id: UUID) -> None:
        await self.session.aexecute(self._delete, [module_id, lesson_id])

    async def delete_by_module(self, module_id: UUID) -> None:
        await self.session.aexecute(self._delete_by_module, [module_id])

    async def save_resource(self, resource: LessonResource) -> None:
        await self.session.aexecute(
            self._insert_resource,
            [
                resource.lesson_id,
                resource.id,
                resource.title,
                resource.url,
                resource.resource_type,
                resource.created_at,
            ],
        )

    async def list_resources(self, lesson_id: UUID) -> list[LessonResource]:
        rows = await self.session.aexecute(self._list_resources, [lesson_id])
        return sorted(
            (LessonResource.from_row(r) for r in rows), key=lambda r: r.created_at
        )

    async def delete_resources(self, lesson_id: UUID) -> None:
        await self.session.aexecute(self._delete_resources, [lesson_id])
