"""Response schemas for role dashboards."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from coursehub.activity.schemas import ActivityResponse


class EnrollmentTotals(BaseModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    cancelled: int = 0


class StudentDashboard(BaseModel):
    enrollments: EnrollmentTotals
    average_progress: float = Field(0.0, description="Mean progress of live enrollments")
    recent_activity: list[ActivityResponse]


class CoursePerformance(BaseModel):
    course_id: UUID
    title: str
    status: str
    students: int
    earnings: Decimal
    average_rating: float | None = None
    total_reviews: int = 0


class InstructorDashboard(BaseModel):
    courses_by_status: dict[str, int]
    total_courses: int
    total_students: int
    total_earnings: Decimal
    courses: list[CoursePerformance]


class AdminDashboard(BaseModel):
    users_by_role: dict[str, int]
    total_users: int
    courses_by_status: dict[str, int]
    total_courses: int
    total_revenue: Decimal
    pending_instructor_applications: int
    pending_course_reviews: int
