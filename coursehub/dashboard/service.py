"""Dashboard query service.

Aggregates are computed on read from the per-resource lookup tables; there
is no pre-aggregated store behind them.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from coursehub.activity.schemas import ActivityResponse
from coursehub.auth.permissions import UserRole
from coursehub.core.logging import get_logger
from coursehub.courses.models import CourseStatus
from coursehub.dashboard.schemas import (
    AdminDashboard,
    CoursePerformance,
    EnrollmentTotals,
    InstructorDashboard,
    StudentDashboard,
)
from coursehub.enrollments.models import EnrollmentStatus
from coursehub.instructors.models import ApplicationStatus
from coursehub.reviews.models import average_rating


if TYPE_CHECKING:
    from coursehub.activity.service import ActivityService
    from coursehub.auth.repository import UserRepository
    from coursehub.auth.schemas import AuthenticatedUser
    from coursehub.courses.models import Course
    from coursehub.courses.repository import CourseRepository
    from coursehub.enrollments.repository import EnrollmentRepository
    from coursehub.instructors.repository import ApplicationRepository
    from coursehub.payments.repository import PaymentRepository
    from coursehub.reviews.repository import ReviewRepository


logger = get_logger(__name__)

RECENT_ACTIVITY_LIMIT = 10


class DashboardService:
    """Per-role summaries for the student, instructor and admin home pages."""

    def __init__(
        self,
        users: "UserRepository",
        courses: "CourseRepository",
        enrollments: "EnrollmentRepository",
        payments: "PaymentRepository",
        reviews: "ReviewRepository",
        applications: "ApplicationRepository",
        activity: "ActivityService",
    ) -> None:
        self.users = users
        self.courses = courses
        self.enrollments = enrollments
        self.payments = payments
        self.reviews = reviews
        self.applications = applications
        self.activity = activity

    # ==========================================================================
    # Student
    # ==========================================================================

    async def student(self, actor: "AuthenticatedUser") -> StudentDashboard:
        enrollments = await self.enrollments.list_by_user(actor.id)
        totals = EnrollmentTotals(total=len(enrollments))
        live = []
        for enrollment in enrollments:
            if enrollment.status == EnrollmentStatus.ACTIVE.value:
                totals.active += 1
            elif enrollment.status == EnrollmentStatus.COMPLETED.value:
                totals.completed += 1
            else:
                totals.cancelled += 1
                continue
            live.append(enrollment.progress)

        recent = await self.activity.get_user_activities(actor.id, RECENT_ACTIVITY_LIMIT)
        return StudentDashboard(
            enrollments=totals,
            average_progress=round(sum(live) / len(live), 1) if live else 0.0,
            recent_activity=[ActivityResponse(**e.to_dict()) for e in recent],
        )

    # ==========================================================================
    # Instructor
    # ==========================================================================

    async def _earnings(self, course: "Course") -> Decimal:
        return sum(
            (p.amount for p in await self.payments.list_by_course(course.id) if p.is_completed),
            Decimal("0"),
        )

    async def instructor(self, actor: "AuthenticatedUser") -> InstructorDashboard:
        courses = await self.courses.list_by_instructor(actor.id)
        by_status = dict.fromkeys((s.value for s in CourseStatus), 0)
        performance: list[CoursePerformance] = []

        for course in courses:
            by_status[course.status] = by_status.get(course.status, 0) + 1
            count, total = await self.reviews.get_totals(course.id)
            performance.append(
                CoursePerformance(
                    course_id=course.id,
                    title=course.title,
                    status=course.status,
                    students=course.enrollment_count,
                    earnings=await self._earnings(course),
                    average_rating=average_rating(count, total),
                    total_reviews=count,
                )
            )

        return InstructorDashboard(
            courses_by_status=by_status,
            total_courses=len(courses),
            total_students=sum(p.students for p in performance),
            total_earnings=sum((p.earnings for p in performance), Decimal("0")),
            courses=performance,
        )

    # ==========================================================================
    # Admin
    # ==========================================================================

    async def admin(self) -> AdminDashboard:
        users = await self.users.list_users()
        by_role = dict.fromkeys((r.value for r in UserRole), 0)
        for user in users:
            by_role[user.role] = by_role.get(user.role, 0) + 1

        by_status: dict[str, int] = {}
        revenue = Decimal("0")
        for status in CourseStatus:
            courses = await self.courses.list_by_status(status.value)
            by_status[status.value] = len(courses)
            for course in courses:
                revenue += await self._earnings(course)

        pending = await self.applications.list_by_status(ApplicationStatus.PENDING.value)

        logger.debug("admin_dashboard_computed", users=len(users))
        return AdminDashboard(
            users_by_role=by_role,
            total_users=len(users),
            courses_by_status=by_status,
            total_courses=sum(by_status.values()),
            total_revenue=revenue,
            pending_instructor_applications=len(pending),
            pending_course_reviews=by_status[CourseStatus.PENDING_REVIEW.value],
        )
