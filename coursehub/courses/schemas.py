"""Pydantic schemas for the course catalog.

Request and response models for:
- Courses: CRUD, review lifecycle and public listing
- Modules and lessons: CRUD, ordering and publication
- Lesson resources
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from coursehub.core.pagination import PaginationMeta
from coursehub.courses.models import (
    CourseLevel,
    CourseStatus,
    LessonContentType,
    LessonStatus,
    ResourceType,
)


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request; new courses always start as DRAFT."""

    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str | None = Field(None, max_length=5000)
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    category: str | None = Field(None, max_length=100, description="Free-text category")
    level: CourseLevel | None = None
    thumbnail_url: str | None = Field(None, max_length=500)
    capacity: int | None = Field(
        None, ge=1, description="Maximum live enrollments (None = unbounded)"
    )

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()


class UpdateCourseRequest(BaseModel):
    """Descriptive fields only; status changes go through the lifecycle endpoints."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    category: str | None = Field(None, max_length=100)
    level: CourseLevel | None = None
    thumbnail_url: str | None = Field(None, max_length=500)
    capacity: int | None = Field(None, ge=1)


class RejectCourseRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "A rejection reason is required"
            raise ValueError(msg)
        return v.strip()


class CourseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    instructor_id: UUID
    title: str
    description: str | None = None
    price: Decimal
    category: str | None = None
    level: CourseLevel | None = None
    thumbnail_url: str | None = None
    capacity: int | None = None
    status: CourseStatus
    rejection_reason: str | None = None
    enrollment_count: int = 0
    average_rating: float | None = Field(None, description="Mean rating, one decimal")
    total_reviews: int = 0
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class CourseListResponse(BaseModel):
    items: list[CourseResponse]
    pagination: PaginationMeta


# ==============================================================================
# Module / Lesson Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    order: int | None = Field(None, ge=0, description="Position; omitted appends")


class UpdateModuleRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)


class ReorderRequest(BaseModel):
    order: int = Field(..., ge=0, description="New zero-based position")


class CreateLessonRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content_type: LessonContentType = LessonContentType.ARTICLE
    content: str | None = Field(None, max_length=100_000)
    video_url: str | None = Field(None, max_length=500)
    duration_minutes: int | None = Field(None, ge=0)
    order: int | None = Field(None, ge=0, description="Position; omitted appends")


class UpdateLessonRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    content_type: LessonContentType | None = None
    content: str | None = Field(None, max_length=100_000)
    video_url: str | None = Field(None, max_length=500)
    duration_minutes: int | None = Field(None, ge=0)


class CreateResourceRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., min_length=1, max_length=1000)
    resource_type: ResourceType = ResourceType.LINK


class ResourceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lesson_id: UUID
    title: str
    url: str
    resource_type: ResourceType
    created_at: datetime


class LessonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    module_id: UUID
    course_id: UUID
    title: str
    content_type: LessonContentType
    content: str | None = None
    video_url: str | None = None
    duration_minutes: int | None = None
    order: int = Field(..., validation_alias=AliasChoices("sort_order", "order"))
    status: LessonStatus
    resources: list[ResourceResponse] = []
    created_at: datetime
    updated_at: datetime | None = None


class ModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    order: int = Field(..., validation_alias=AliasChoices("sort_order", "order"))
    lessons: list[LessonResponse] = []
    created_at: datetime
    updated_at: datetime | None = None


class CourseDetailResponse(CourseResponse):
    """Course with its ordered modules and lessons."""

    modules: list[ModuleResponse] = []
