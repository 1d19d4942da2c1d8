"""Database models for instructor applications.

Cassandra table definitions for:
- instructor_applications: main table by application id
- applications_by_user: an applicant's history, newest first
- applications_by_status: admin review queues (PENDING, APPROVED, REJECTED)
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursehub.auth.models import ensure_utc_aware


class ApplicationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


APPLICATIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.instructor_applications (
    id UUID PRIMARY KEY,
    user_id UUID,
    bio TEXT,
    expertise TEXT,
    status TEXT,
    reason TEXT,
    reviewed_by UUID,
    reviewed_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

APPLICATIONS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.applications_by_user (
    user_id UUID,
    created_at TIMESTAMP,
    id UUID,
    status TEXT,
    PRIMARY KEY (user_id, created_at, id)
) WITH CLUSTERING ORDER BY (created_at DESC, id ASC)
"""

APPLICATIONS_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.applications_by_status (
    status TEXT,
    created_at TIMESTAMP,
    id UUID,
    user_id UUID,
    PRIMARY KEY (status, created_at, id)
) WITH CLUSTERING ORDER BY (created_at DESC, id ASC)
"""

INSTRUCTORS_TABLES_CQL = [
    APPLICATIONS_TABLE_CQL,
    APPLICATIONS_BY_USER_TABLE_CQL,
    APPLICATIONS_BY_STATUS_TABLE_CQL,
]


class InstructorApplication:
    """Request by a user to be granted the INSTRUCTOR role."""

    def __init__(
        self,
        user_id: UUID,
        bio: str | None = None,
        expertise: str | None = None,
        id: UUID | None = None,
        status: str = ApplicationStatus.PENDING.value,
        reason: str | None = None,
        reviewed_by: UUID | None = None,
        reviewed_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.user_id = user_id
        self.bio = bio
        self.expertise = expertise
        self.status = status
        self.reason = reason
        self.reviewed_by = reviewed_by
        self.reviewed_at = ensure_utc_aware(reviewed_at)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_pending(self) -> bool:
        return self.status == ApplicationStatus.PENDING.value

    @classmethod
    def from_row(cls, row: Any) -> "InstructorApplication":
        return cls(
            id=row.id,
            user_id=row.user_id,
            bio=row.bio,
            expertise=row.expertise,
            status=row.status,
            reason=row.reason,
            reviewed_by=row.reviewed_by,
            reviewed_at=row.reviewed_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "bio": self.bio,
            "expertise": self.expertise,
            "status": self.status,
            "reason": self.reason,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<InstructorApplication {self.id} user={self.user_id} ({self.status})>"
