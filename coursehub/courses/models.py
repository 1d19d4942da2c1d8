"""Database models for the course catalog.

Cassandra table definitions for:
- courses: main course table (holds the live enrollment counter)
- courses_by_status / courses_by_instructor: listing lookups
- modules: ordered children of a course
- lessons: ordered children of a module
- lesson_resources: attachments of a lesson

Sibling order is stored in ``sort_order`` (``order`` is a reserved CQL word)
and kept dense and zero-based by the services.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursehub.auth.models import ensure_utc_aware


class CourseStatus(str, Enum):
    """Course review lifecycle."""

    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"


class CourseLevel(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class LessonStatus(str, Enum):
    """Lesson visibility, independent of the parent course status."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class LessonContentType(str, Enum):
    VIDEO = "VIDEO"
    ARTICLE = "ARTICLE"
    QUIZ = "QUIZ"
    ASSIGNMENT = "ASSIGNMENT"
    RESOURCE = "RESOURCE"


class ResourceType(str, Enum):
    LINK = "LINK"
    PDF = "PDF"
    FILE = "FILE"
    VIDEO = "VIDEO"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    instructor_id UUID,
    title TEXT,
    description TEXT,
    price DECIMAL,
    category TEXT,
    level TEXT,
    thumbnail_url TEXT,
    capacity INT,
    status TEXT,
    rejection_reason TEXT,
    enrollment_count INT,
    published_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSES_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_status (
    status TEXT,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY (status, created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

COURSES_BY_INSTRUCTOR_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_instructor (
    instructor_id UUID,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY (instructor_id, created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    course_id UUID,
    id UUID,
    title TEXT,
    description TEXT,
    sort_order INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, id)
)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    module_id UUID,
    id UUID,
    course_id UUID,
    title TEXT,
    content_type TEXT,
    content TEXT,
    video_url TEXT,
    duration_minutes INT,
    sort_order INT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (module_id, id)
)
"""

LESSON_RESOURCES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_resources (
    lesson_id UUID,
    id UUID,
    title TEXT,
    url TEXT,
    resource_type TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY (lesson_id, id)
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSES_BY_STATUS_TABLE_CQL,
    COURSES_BY_INSTRUCTOR_TABLE_CQL,
    MODULE_TABLE_CQL,
    LESSON_TABLE_CQL,
    LESSON_RESOURCES_TABLE_CQL,
]


# ==============================================================================
# Model Classes
# ==============================================================================


class Course:
    """Course entity.

    Attributes:
        instructor_id: Owning instructor
        price: Non-negative price in the platform currency
        capacity: Maximum live enrollments, None for unbounded
        status: Review lifecycle state (see CourseStatus)
        rejection_reason: Set when an admin rejects the course
        enrollment_count: Live (non-cancelled) enrollments
    """

    def __init__(
        self,
        instructor_id: UUID,
        title: str,
        description: str | None = None,
        price: Decimal = Decimal("0"),
        category: str | None = None,
        level: str | None = None,
        thumbnail_url: str | None = None,
        capacity: int | None = None,
        id: UUID | None = None,
        status: str = CourseStatus.DRAFT.value,
        rejection_reason: str | None = None,
        enrollment_count: int = 0,
        published_at: datetime | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.instructor_id = instructor_id
        self.title = title
        self.description = description
        self.price = Decimal(price)
        self.category = category
        self.level = level
        self.thumbnail_url = thumbnail_url
        self.capacity = capacity
        self.status = status
        self.rejection_reason = rejection_reason
        self.enrollment_count = enrollment_count
        self.published_at = ensure_utc_aware(published_at)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_published(self) -> bool:
        return self.status == CourseStatus.PUBLISHED.value

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.enrollment_count >= self.capacity

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        return cls(
            id=row.id,
            instructor_id=row.instructor_id,
            title=row.title,
            description=row.description,
            price=row.price if row.price is not None else Decimal("0"),
            category=row.category,
            level=row.level,
            thumbnail_url=row.thumbnail_url,
            capacity=row.capacity,
            status=row.status,
            rejection_reason=row.rejection_reason,
            enrollment_count=row.enrollment_count or 0,
            published_at=row.published_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "instructor_id": self.instructor_id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "category": self.category,
            "level": self.level,
            "thumbnail_url": self.thumbnail_url,
            "capacity": self.capacity,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "enrollment_count": self.enrollment_count,
            "published_at": self.published_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.title!r} ({self.status})>"


class Module:
    """Ordered section of a course."""

    def __init__(
        self,
        course_id: UUID,
        title: str,
        description: str | None = None,
        sort_order: int = 0,
        id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title
        self.description = description
        self.sort_order = sort_order
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title,
            description=row.description,
            sort_order=row.sort_order or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Module {self.title!r} #{self.sort_order}>"


class Lesson:
    """Ordered unit of content inside a module."""

    def __init__(
        self,
        module_id: UUID,
        course_id: UUID,
        title: str,
        content_type: str = LessonContentType.ARTICLE.value,
        content: str | None = None,
        video_url: str | None = None,
        duration_minutes: int | None = None,
        sort_order: int = 0,
        status: str = LessonStatus.DRAFT.value,
        id: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.module_id = module_id
        self.course_id = course_id
        self.title = title
        self.content_type = content_type
        self.content = content
        self.video_url = video_url
        self.duration_minutes = duration_minutes
        self.sort_order = sort_order
        self.status = status
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_published(self) -> bool:
        return self.status == LessonStatus.PUBLISHED.value

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        return cls(
            id=row.id,
            module_id=row.module_id,
            course_id=row.course_id,
            title=row.title,
            content_type=row.content_type,
            content=row.content,
            video_url=row.video_url,
            duration_minutes=row.duration_minutes,
            sort_order=row.sort_order or 0,
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Lesson {self.title!r} #{self.sort_order} ({self.status})>"


class LessonResource:
    def __init__(
        self,
        lesson_id: UUID,
        title: str,
        url: str,
        resource_type: str = ResourceType.LINK.value,
        id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.lesson_id = lesson_id
        self.title = title
        self.url = url
        self.resource_type = resource_type
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "LessonResource":
        return cls(
            id=row.id,
            lesson_id=row.lesson_id,
            title=row.title,
            url=row.url,
            resource_type=row.resource_type,
            created_at=row.created_at,
        )
