"""Database models for enrollments.

Cassandra table definitions for:
- enrollments: main table by enrollment id
- enrollment_pairs: one row per (user, course), claimed with ``IF NOT EXISTS``
  so a user holds at most one enrollment per course
- enrollments_by_user / enrollments_by_course: listing lookups
- lesson_completions: lessons an enrollment has completed
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursehub.auth.models import ensure_utc_aware


class EnrollmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    id UUID PRIMARY KEY,
    user_id UUID,
    course_id UUID,
    status TEXT,
    progress INT,
    completed BOOLEAN,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    cancelled_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

ENROLLMENT_PAIRS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollment_pairs (
    user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    PRIMARY KEY ((user_id, course_id))
)
"""

ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    PRIMARY KEY (user_id, course_id)
)
"""

ENROLLMENTS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_course (
    course_id UUID,
    user_id UUID,
    enrollment_id UUID,
    PRIMARY KEY (course_id, user_id)
)
"""

LESSON_COMPLETIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_completions (
    enrollment_id UUID,
    lesson_id UUID,
    completed_at TIMESTAMP,
    PRIMARY KEY (enrollment_id, lesson_id)
)
"""

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENT_PAIRS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
    ENROLLMENTS_BY_COURSE_TABLE_CQL,
    LESSON_COMPLETIONS_TABLE_CQL,
]

FULL_PROGRESS = 100


def progress_from_lessons(completed: int, total: int) -> int:
    """Completion percentage from lesson counts (integer, floor).

    Examples:
        >>> progress_from_lessons(1, 3)
        33
        >>> progress_from_lessons(0, 0)
        0
    """
    if total <= 0:
        return 0
    return min(FULL_PROGRESS, completed * FULL_PROGRESS // total)


class Enrollment:
    """Link between a user and a course, carrying progress.

    ``completed`` is always ``progress >= 100``; use ``set_progress`` rather
    than assigning the fields directly.
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        status: str = EnrollmentStatus.ACTIVE.value,
        progress: int = 0,
        completed: bool = False,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        cancelled_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.course_id = course_id
        self.status = status
        self.progress = progress
        self.completed = completed
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.cancelled_at = ensure_utc_aware(cancelled_at)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_cancelled(self) -> bool:
        return self.status == EnrollmentStatus.CANCELLED.value

    def set_progress(self, progress: int, now: datetime | None = None) -> bool:
        """Apply a progress value and derive completion.

        Returns:
            True if this call moved the enrollment into COMPLETED
        """
        now = now or datetime.now(UTC)
        was_completed = self.completed

        self.progress = progress
        self.completed = progress >= FULL_PROGRESS
        if self.completed:
            self.status = EnrollmentStatus.COMPLETED.value
            self.completed_at = self.completed_at or now
        else:
            self.status = EnrollmentStatus.ACTIVE.value
            self.completed_at = None
        self.updated_at = now

        return self.completed and not was_completed

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        return cls(
            id=row.id,
            user_id=row.user_id,
            course_id=row.course_id,
            status=row.status,
            progress=row.progress or 0,
            completed=bool(row.completed),
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
            cancelled_at=row.cancelled_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "status": self.status,
            "progress": self.progress,
            "completed": self.completed,
            "enrolled_at": self.enrolled_at,
            "completed_at": self.completed_at,
            "cancelled_at": self.cancelled_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Enrollment {self.id} ({self.status}, {self.progress}%)>"
