"""Pydantic schemas for enrollments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from coursehub.enrollments.models import EnrollmentStatus


class EnrollRequest(BaseModel):
    course_id: UUID


class UpdateProgressRequest(BaseModel):
    progress: int = Field(..., ge=0, le=100, description="Completion percentage")


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    course_title: str | None = None
    status: EnrollmentStatus
    progress: int = Field(..., ge=0, le=100)
    completed: bool
    enrolled_at: datetime
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    updated_at: datetime | None = None


class LessonCompletionResponse(BaseModel):
    enrollment: EnrollmentResponse
    lesson_id: UUID
    completed_lessons: int
    total_lessons: int


class EnrollmentStatsResponse(BaseModel):
    """Totals over a course's live (non-cancelled) enrollments."""

    total_enrollments: int
    completed_enrollments: int
    completion_rate: float = Field(..., description="Completed share, in percent")
    average_progress: float


class LessonAnalytics(BaseModel):
    lesson_id: UUID
    module_id: UUID
    title: str
    published: bool
    completed_count: int


class StudentActivity(BaseModel):
    enrollment_id: UUID
    user_id: UUID
    status: EnrollmentStatus
    progress: int
    completed: bool
    lessons_completed: int
    last_activity: datetime


class CourseAnalyticsResponse(BaseModel):
    course_id: UUID
    enrollments: EnrollmentStatsResponse
    lessons: list[LessonAnalytics]
    students: list[StudentActivity]
