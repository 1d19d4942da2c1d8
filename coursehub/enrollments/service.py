"""Enrollment service layer.

Business logic for:
- Enrolling in PUBLISHED courses within capacity
- Progress, derived from completed published lessons
- Cancellation
- Ownership-gated reads, completion stats and lesson analytics
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.activity.models import ActivityType
from coursehub.auth.permissions import can_view_course_enrollments
from coursehub.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from coursehub.core.logging import get_logger
from coursehub.courses.service import CourseNotFoundError, load_outline
from coursehub.enrollments.models import (
    FULL_PROGRESS,
    Enrollment,
    EnrollmentStatus,
    progress_from_lessons,
)
from coursehub.enrollments.schemas import (
    CourseAnalyticsResponse,
    EnrollmentStatsResponse,
    LessonAnalytics,
    StudentActivity,
)


if TYPE_CHECKING:
    from coursehub.activity.service import ActivityService
    from coursehub.auth.schemas import AuthenticatedUser
    from coursehub.courses.models import Course
    from coursehub.courses.repository import (
        CourseRepository,
        LessonRepository,
        ModuleRepository,
    )
    from coursehub.enrollments.repository import EnrollmentRepository


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentNotFoundError(NotFoundError):
    default_message = "Enrollment not found"
    default_code = "enrollment_not_found"


class AlreadyEnrolledError(ConflictError):
    default_message = "Already enrolled in this course"
    default_code = "already_enrolled"


class CourseNotPublishedError(BadRequestError):
    default_message = "Course is not available for enrollment"
    default_code = "course_not_published"


class CourseFullError(BadRequestError):
    default_message = "Course is full"
    default_code = "course_full"


class EnrollmentCancelledError(BadRequestError):
    default_message = "Enrollment is cancelled"
    default_code = "enrollment_cancelled"


class NotEnrolledUserError(ForbiddenError):
    default_message = "Only the enrolled user can do this"
    default_code = "not_enrolled_user"


def summarize_enrollments(enrollments: list[Enrollment]) -> EnrollmentStatsResponse:
    total = len(enrollments)
    if not total:
        return EnrollmentStatsResponse(
            total_enrollments=0,
            completed_enrollments=0,
            completion_rate=0.0,
            average_progress=0.0,
        )
    completed = sum(1 for e in enrollments if e.completed)
    return EnrollmentStatsResponse(
        total_enrollments=total,
        completed_enrollments=completed,
        completion_rate=round(completed * 100 / total, 2),
        average_progress=round(sum(e.progress for e in enrollments) / total, 2),
    )


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    def __init__(
        self,
        enrollments: "EnrollmentRepository",
        courses: "CourseRepository",
        modules: "ModuleRepository",
        lessons: "LessonRepository",
        activity: "ActivityService",
    ):
        self.enrollments = enrollments
        self.courses = courses
        self.modules = modules
        self.lessons = lessons
        self.activity = activity

    # --------------------------------------------------------------------------
    # Enroll / cancel
    # --------------------------------------------------------------------------

    async def enroll(self, actor: "AuthenticatedUser", course_id: UUID) -> Enrollment:
        """Enroll the caller; see ``enroll_user``."""
        return await self.enroll_user(actor.id, course_id)

    async def enroll_user(self, user_id: UUID, course_id: UUID) -> Enrollment:
        """Enroll a user in a published course.

        The (user, course) claim and the seat reservation are both conditional
        writes; a failed reservation gives the claim back, and a failed insert
        gives back both.

        Raises:
            CourseNotFoundError: Unknown course
            CourseNotPublishedError: Course status is not PUBLISHED
            AlreadyEnrolledError: The pair already has an enrollment
            CourseFullError: Capacity reached
        """
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError
        if not course.is_published:
            raise CourseNotPublishedError

        enrollment = Enrollment(user_id=user_id, course_id=course.id)
        if not await self.enrollments.claim(user_id, course.id, enrollment.id):
            raise AlreadyEnrolledError

        try:
            reserved = await self._reserve_seat(course)
        except Exception:
            await self.enrollments.release(user_id, course.id, enrollment.id)
            raise
        if not reserved:
            await self.enrollments.release(user_id, course.id, enrollment.id)
            raise CourseFullError

        try:
            await self.enrollments.create(enrollment)
        except Exception:
            await self._give_back_seat(course.id)
            await self.enrollments.release(user_id, course.id, enrollment.id)
            raise

        logger.info(
            "enrollment_created",
            enrollment_id=str(enrollment.id),
            course_id=str(course.id),
        )
        await self.activity.log_activity(
            ActivityType.ENROLLMENT_CREATED,
            user_id,
            target_user_id=course.instructor_id,
            course_id=course.id,
            enrollment_id=enrollment.id,
        )
        return enrollment

    async def _reserve_seat(self, course: "Course") -> bool:
        """Take one seat on the course's live enrollment counter."""
        return await self.courses.adjust_enrollment_count(
            course.id, 1, capacity=course.capacity
        )

    async def _give_back_seat(self, course_id: UUID) -> None:
        await self.courses.adjust_enrollment_count(course_id, -1)

    async def ensure_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment:
        """Return a user's enrollment in a course, creating it if needed.

        Used when a payment completes: an existing enrollment is reused (a
        cancelled one is reactivated), so the pair never gets a second row.
        """
        existing_id = await self.enrollments.find_id(user_id, course_id)
        existing = await self.enrollments.get(existing_id) if existing_id else None
        if existing is None:
            return await self.enroll_user(user_id, course_id)

        if existing.is_cancelled:
            course = await self.courses.get(course_id)
            if not course:
                raise CourseNotFoundError
            if not await self._reserve_seat(course):
                raise CourseFullError
            existing.cancelled_at = None
            existing.set_progress(existing.progress)
            try:
                await self.enrollments.save(existing)
            except Exception:
                await self._give_back_seat(course.id)
                raise
            logger.info("enrollment_reactivated", enrollment_id=str(existing.id))

        return existing

    async def cancel(self, actor: "AuthenticatedUser", enrollment_id: UUID) -> Enrollment:
        """Cancel the caller's enrollment and free its seat.

        The seat is freed before the status is written and taken back if the
        write fails, so a failure leaves the enrollment active with its seat
        still counted.

        Raises:
            NotEnrolledUserError: Caller is not the enrolled user
            EnrollmentCancelledError: Already cancelled
        """
        enrollment = await self._own_enrollment(actor, enrollment_id)
        if enrollment.is_cancelled:
            raise EnrollmentCancelledError("Enrollment is already cancelled")

        await self._give_back_seat(enrollment.course_id)

        previous_status = enrollment.status
        now = datetime.now(UTC)
        enrollment.status = EnrollmentStatus.CANCELLED.value
        enrollment.cancelled_at = now
        enrollment.updated_at = now
        try:
            await self.enrollments.save(enrollment)
        except Exception:
            enrollment.status = previous_status
            enrollment.cancelled_at = None
            await self.courses.adjust_enrollment_count(enrollment.course_id, 1)
            raise

        logger.info("enrollment_cancelled", enrollment_id=str(enrollment.id))
        await self.activity.log_activity(
            ActivityType.ENROLLMENT_CANCELLED,
            actor.id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
        )
        return enrollment

    # --------------------------------------------------------------------------
    # Progress
    # --------------------------------------------------------------------------

    async def update_progress(
        self, actor: "AuthenticatedUser", enrollment_id: UUID, progress: int
    ) -> Enrollment:
        """Set a caller-supplied percentage (kept for older clients).

        Raises:
            BadRequestError: Progress outside [0, 100]
        """
        if not 0 <= progress <= FULL_PROGRESS:
            raise BadRequestError("Progress must be between 0 and 100")

        enrollment = await self._own_enrollment(actor, enrollment_id)
        if enrollment.is_cancelled:
            raise EnrollmentCancelledError

        became_complete = enrollment.set_progress(progress)
        await self.enrollments.save(enrollment)

        if became_complete:
            await self._log_completed(actor, enrollment)
        return enrollment

    async def complete_lesson(
        self, actor: "AuthenticatedUser", enrollment_id: UUID, lesson_id: UUID
    ) -> tuple[Enrollment, int, int]:
        """Record a completed lesson and recompute progress.

        Returns:
            Tuple of (enrollment, completed published lessons, published lessons)
        """
        enrollment = await self._own_enrollment(actor, enrollment_id)
        if enrollment.is_cancelled:
            raise EnrollmentCancelledError

        outline = await load_outline(self.modules, self.lessons, enrollment.course_id)
        published = {
            lesson.id
            for _, lessons in outline
            for lesson in lessons
            if lesson.is_published
        }
        if lesson_id not in published:
            raise NotFoundError("Lesson not found in this course")

        await self.enrollments.mark_lesson_complete(enrollment.id, lesson_id)
        done = await self.enrollments.completed_lessons(enrollment.id) & published

        became_complete = enrollment.set_progress(
            progress_from_lessons(len(done), len(published))
        )
        await self.enrollments.save(enrollment)

        await self.activity.log_activity(
            ActivityType.LESSON_COMPLETED,
            actor.id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
            details={"lesson_id": lesson_id, "progress": enrollment.progress},
        )
        if became_complete:
            await self._log_completed(actor, enrollment)

        return enrollment, len(done), len(published)

    async def _log_completed(
        self, actor: "AuthenticatedUser", enrollment: Enrollment
    ) -> None:
        logger.info("enrollment_completed", enrollment_id=str(enrollment.id))
        await self.activity.log_activity(
            ActivityType.ENROLLMENT_COMPLETED,
            actor.id,
            course_id=enrollment.course_id,
            enrollment_id=enrollment.id,
        )

    # --------------------------------------------------------------------------
    # Reads
    # --------------------------------------------------------------------------

    async def _require(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self.enrollments.get(enrollment_id)
        if not enrollment:
            raise EnrollmentNotFoundError
        return enrollment

    async def _own_enrollment(
        self, actor: "AuthenticatedUser", enrollment_id: UUID
    ) -> Enrollment:
        enrollment = await self._require(enrollment_id)
        if str(enrollment.user_id) != str(actor.id):
            raise NotEnrolledUserError
        return enrollment

    async def get_enrollment(
        self, actor: "AuthenticatedUser", enrollment_id: UUID
    ) -> Enrollment:
        """Visible to the enrolled user, the course owner and admins."""
        enrollment = await self._require(enrollment_id)
        if str(enrollment.user_id) == str(actor.id):
            return enrollment

        course = await self.courses.get(enrollment.course_id)
        if course and can_view_course_enrollments(actor, course):
            return enrollment
        raise ForbiddenError("You do not have access to this enrollment")

    async def get_for_user(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        enrollment_id = await self.enrollments.find_id(user_id, course_id)
        if not enrollment_id:
            return None
        return await self.enrollments.get(enrollment_id)

    async def list_my_enrollments(self, actor: "AuthenticatedUser") -> list[Enrollment]:
        return await self.enrollments.list_by_user(actor.id)

    async def _viewable_course(self, actor: "AuthenticatedUser", course_id: UUID) -> "Course":
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError
        if not can_view_course_enrollments(actor, course):
            raise ForbiddenError("Only the course owner or an admin can view enrollments")
        return course

    async def list_course_enrollments(
        self, actor: "AuthenticatedUser", course_id: UUID
    ) -> list[Enrollment]:
        """Enrollments of a course, for its owner or an admin."""
        await self._viewable_course(actor, course_id)
        return await self.enrollments.list_by_course(course_id)

    async def _live_enrollments(self, course_id: UUID) -> list[Enrollment]:
        enrollments = await self.enrollments.list_by_course(course_id)
        return [e for e in enrollments if not e.is_cancelled]

    async def course_stats(
        self, actor: "AuthenticatedUser", course_id: UUID
    ) -> EnrollmentStatsResponse:
        """Completion totals of a course, for its owner or an admin."""
        await self._viewable_course(actor, course_id)
        return summarize_enrollments(await self._live_enrollments(course_id))

    async def course_analytics(
        self, actor: "AuthenticatedUser", course_id: UUID
    ) -> CourseAnalyticsResponse:
        """Per-lesson completion counts and per-student progress of a course.

        Only live enrollments count; completions of lessons that were later
        deleted are ignored.
        """
        course = await self._viewable_course(actor, course_id)
        enrollments = await self._live_enrollments(course.id)
        outline = await load_outline(self.modules, self.lessons, course.id)
        completions = {lesson.id: 0 for _, lessons in outline for lesson in lessons}

        students = []
        for enrollment in enrollments:
            done = await self.enrollments.completed_lessons(enrollment.id)
            done = {lesson_id for lesson_id in done if lesson_id in completions}
            for lesson_id in done:
                completions[lesson_id] += 1
            students.append(
                StudentActivity(
                    enrollment_id=enrollment.id,
                    user_id=enrollment.user_id,
                    status=EnrollmentStatus(enrollment.status),
                    progress=enrollment.progress,
                    completed=enrollment.completed,
                    lessons_completed=len(done),
                    last_activity=enrollment.updated_at or enrollment.enrolled_at,
                )
            )

        lessons = [
            LessonAnalytics(
                lesson_id=lesson.id,
                module_id=module.id,
                title=lesson.title,
                published=lesson.is_published,
                completed_count=completions[lesson.id],
            )
            for module, module_lessons in outline
            for lesson in module_lessons
        ]
        return CourseAnalyticsResponse(
            course_id=course.id,
            enrollments=summarize_enrollments(enrollments),
            lessons=lessons,
            students=students,
        )

    async def course_titles(self, enrollments: list[Enrollment]) -> dict[UUID, str]:
        titles: dict[UUID, str] = {}
        for course_id in {e.course_id for e in enrollments}:
            course = await self.courses.get(course_id)
            if course:
                titles[course_id] = course.title
        return titles
