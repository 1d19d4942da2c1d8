"""Database models for the activity log.

The log is append-only. Every entry is written to a day bucket (platform feed)
and additionally to the actor's, target user's and course's timelines when
those are known. Rows are never updated or deleted by the application.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursehub.auth.models import ensure_utc_aware


ACTIVITY_BY_DAY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.activity_by_day (
    day TEXT,
    created_at TIMESTAMP,
    id UUID,
    type TEXT,
    actor_id UUID,
    target_user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    payment_id UUID,
    details MAP<TEXT, TEXT>,
    PRIMARY KEY (day, created_at, id)
) WITH CLUSTERING ORDER BY (created_at DESC, id ASC)
"""

ACTIVITY_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.activity_by_user (
    user_id UUID,
    created_at TIMESTAMP,
    id UUID,
    type TEXT,
    actor_id UUID,
    target_user_id UUID,
    course_id UUID,
    enrollment_id UUID,
    payment_id UUID,
    details MAP<TEXT, TEXT>,
    PRIMARY KEY (user_id, created_at, id)
) WITH CLUSTERING ORDER BY (created_at DESC, id ASC)
"""

ACTIVITY_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.activity_by_course (
    course_id UUID,
    created_at TIMESTAMP,
    id UUID,
    type TEXT,
    actor_id UUID,
    target_user_id UUID,
    enrollment_id UUID,
    payment_id UUID,
    details MAP<TEXT, TEXT>,
    PRIMARY KEY (course_id, created_at, id)
) WITH CLUSTERING ORDER BY (created_at DESC, id ASC)
"""

ACTIVITY_TABLES_CQL = [
    ACTIVITY_BY_DAY_TABLE_CQL,
    ACTIVITY_BY_USER_TABLE_CQL,
    ACTIVITY_BY_COURSE_TABLE_CQL,
]


class ActivityType(str, Enum):
    """Kinds of audited events."""

    USER_REGISTERED = "USER_REGISTERED"
    USER_VERIFIED = "USER_VERIFIED"
    USER_LOGIN = "USER_LOGIN"
    INSTRUCTOR_APPLIED = "INSTRUCTOR_APPLIED"
    INSTRUCTOR_APPROVED = "INSTRUCTOR_APPROVED"
    INSTRUCTOR_REJECTED = "INSTRUCTOR_REJECTED"
    COURSE_CREATED = "COURSE_CREATED"
    COURSE_UPDATED = "COURSE_UPDATED"
    COURSE_DELETED = "COURSE_DELETED"
    COURSE_SUBMITTED = "COURSE_SUBMITTED"
    COURSE_APPROVED = "COURSE_APPROVED"
    COURSE_REJECTED = "COURSE_REJECTED"
    COURSE_PUBLISHED = "COURSE_PUBLISHED"
    ENROLLMENT_CREATED = "ENROLLMENT_CREATED"
    ENROLLMENT_CANCELLED = "ENROLLMENT_CANCELLED"
    ENROLLMENT_COMPLETED = "ENROLLMENT_COMPLETED"
    LESSON_COMPLETED = "LESSON_COMPLETED"
    PAYMENT_INITIATED = "PAYMENT_INITIATED"
    PAYMENT_COMPLETED = "PAYMENT_COMPLETED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_REFUNDED = "PAYMENT_REFUNDED"
    REVIEW_ADDED = "REVIEW_ADDED"
    REVIEW_UPDATED = "REVIEW_UPDATED"
    REVIEW_DELETED = "REVIEW_DELETED"


def day_bucket(moment: datetime | date) -> str:
    return moment.strftime("%Y-%m-%d")


class ActivityLog:
    """A single audit entry."""

    def __init__(
        self,
        type: str,
        actor_id: UUID | None = None,
        id: UUID | None = None,
        target_user_id: UUID | None = None,
        course_id: UUID | None = None,
        enrollment_id: UUID | None = None,
        payment_id: UUID | None = None,
        details: dict[str, str] | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.type = type
        self.actor_id = actor_id
        self.target_user_id = target_user_id
        self.course_id = course_id
        self.enrollment_id = enrollment_id
        self.payment_id = payment_id
        self.details = dict(details or {})
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "ActivityLog":
        return cls(
            id=row.id,
            type=row.type,
            actor_id=row.actor_id,
            target_user_id=row.target_user_id,
            course_id=getattr(row, "course_id", None),
            enrollment_id=row.enrollment_id,
            payment_id=row.payment_id,
            details=dict(row.details or {}),
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "actor_id": self.actor_id,
            "target_user_id": self.target_user_id,
            "course_id": self.course_id,
            "enrollment_id": self.enrollment_id,
            "payment_id": self.payment_id,
            "details": self.details,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<ActivityLog {self.type} actor={self.actor_id}>"
