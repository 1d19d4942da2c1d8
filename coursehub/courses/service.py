"""Course catalog service layer.

Business logic for:
- Course CRUD and the DRAFT -> PENDING_REVIEW -> APPROVED -> PUBLISHED
  lifecycle (or REJECTED with a reason)
- Public listing with filters and pagination
- Modules and lessons with dense zero-based ordering
- Lesson publication and resources
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.activity.models import ActivityType
from coursehub.auth.permissions import can_create_course, can_manage_course, owns_course
from coursehub.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from coursehub.core.logging import get_logger
from coursehub.core.pagination import PaginationMeta, paginate
from coursehub.courses import ordering
from coursehub.courses.models import (
    Course,
    CourseStatus,
    Lesson,
    LessonResource,
    LessonStatus,
    Module,
)
from coursehub.courses.schemas import (
    CourseDetailResponse,
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateModuleRequest,
    CreateResourceRequest,
    LessonResponse,
    ModuleResponse,
    ResourceResponse,
    UpdateCourseRequest,
    UpdateLessonRequest,
    UpdateModuleRequest,
)
from coursehub.reviews.models import average_rating


if TYPE_CHECKING:
    from coursehub.activity.service import ActivityService
    from coursehub.auth.schemas import AuthenticatedUser
    from coursehub.courses.repository import (
        CourseRepository,
        LessonRepository,
        ModuleRepository,
    )
    from coursehub.reviews.repository import ReviewRepository


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseNotFoundError(NotFoundError):
    default_message = "Course not found"
    default_code = "course_not_found"


class ModuleNotFoundError(NotFoundError):
    default_message = "Module not found"
    default_code = "module_not_found"


class LessonNotFoundError(NotFoundError):
    default_message = "Lesson not found"
    default_code = "lesson_not_found"


class InvalidCourseStatusError(BadRequestError):
    default_code = "invalid_course_status"


class CourseAccessDeniedError(ForbiddenError):
    default_message = "You do not have permission to manage this course"
    default_code = "course_access_denied"


class CourseHasEnrollmentsError(ConflictError):
    default_message = "Course has active enrollments and cannot be deleted"
    default_code = "course_has_enrollments"


class CourseStatusChangedError(ConflictError):
    default_message = "Course status changed concurrently, please retry"
    default_code = "course_status_changed"


# ==============================================================================
# Shared helpers
# ==============================================================================


async def load_outline(
    modules: "ModuleRepository",
    lessons: "LessonRepository",
    course_id: UUID,
) -> list[tuple[Module, list[Lesson]]]:
    """Modules of a course with their lessons, both in display order."""
    outline = []
    for module in await modules.list_by_course(course_id):
        outline.append((module, await lessons.list_by_module(module.id)))
    return outline


def lesson_response(
    lesson: Lesson, resources: list[LessonResource] | None = None
) -> LessonResponse:
    return LessonResponse(
        id=lesson.id,
        module_id=lesson.module_id,
        course_id=lesson.course_id,
        title=lesson.title,
        content_type=lesson.content_type,
        content=lesson.content,
        video_url=lesson.video_url,
        duration_minutes=lesson.duration_minutes,
        sort_order=lesson.sort_order,
        status=lesson.status,
        resources=[ResourceResponse.model_validate(r) for r in resources or []],
        created_at=lesson.created_at,
        updated_at=lesson.updated_at,
    )


def module_response(
    module: Module, lessons: list[LessonResponse] | None = None
) -> ModuleResponse:
    return ModuleResponse(
        id=module.id,
        course_id=module.course_id,
        title=module.title,
        description=module.description,
        sort_order=module.sort_order,
        lessons=lessons or [],
        created_at=module.created_at,
        updated_at=module.updated_at,
    )


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Course CRUD, review lifecycle and catalog listing."""

    def __init__(
        self,
        courses: "CourseRepository",
        modules: "ModuleRepository",
        lessons: "LessonRepository",
        activity: "ActivityService",
        reviews: "ReviewRepository | None" = None,
    ):
        self.courses = courses
        self.modules = modules
        self.lessons = lessons
        self.activity = activity
        self.reviews = reviews

    # --------------------------------------------------------------------------
    # Lookups
    # --------------------------------------------------------------------------

    async def get_course(self, course_id: UUID) -> Course | None:
        return await self.courses.get(course_id)

    async def require_course(self, course_id: UUID) -> Course:
        course = await self.courses.get(course_id)
        if not course:
            raise CourseNotFoundError
        return course

    async def require_managed_course(
        self, actor: "AuthenticatedUser", course_id: UUID
    ) -> Course:
        """Load a course the caller owns (or any course for an admin)."""
        course = await self.require_course(course_id)
        if not can_manage_course(actor, course):
            raise CourseAccessDeniedError
        return course

    async def require_visible_course(
        self, course_id: UUID, actor: "AuthenticatedUser | None"
    ) -> Course:
        """Load a course the caller may see.

        Unpublished courses exist only for their owner and admins.
        """
        course = await self.require_course(course_id)
        if course.is_published:
            return course
        if actor is not None and can_manage_course(actor, course):
            return course
        raise CourseNotFoundError

    async def to_response(self, course: Course) -> CourseResponse:
        count, total = (0, 0)
        if self.reviews:
            count, total = await self.reviews.get_totals(course.id)
        return CourseResponse(
            **course.to_dict(),
            average_rating=average_rating(count, total),
            total_reviews=count,
        )

    # --------------------------------------------------------------------------
    # CRUD
    # --------------------------------------------------------------------------

    async def create_course(
        self, actor: "AuthenticatedUser", data: CreateCourseRequest
    ) -> Course:
        """Create a DRAFT course owned by the caller.

        Raises:
            ForbiddenError: Caller is not an approved instructor
        """
        if not can_create_course(actor):
            raise ForbiddenError("Only approved instructors can create courses")

        course = Course(
            instructor_id=actor.id,
            title=data.title,
            description=data.description,
            price=data.price,
            category=data.category,
            level=data.level.value if data.level else None,
            thumbnail_url=data.thumbnail_url,
            capacity=data.capacity,
            status=CourseStatus.DRAFT.value,
        )
        await self.courses.create(course)

        logger.info("course_created", course_id=str(course.id))
        await self.activity.log_activity(
            ActivityType.COURSE_CREATED,
            actor.id,
            course_id=course.id,
            details={"title": course.title},
        )
        return course

    async def get_course_detail(
        self, course_id: UUID, actor: "AuthenticatedUser | None"
    ) -> CourseDetailResponse:
        """Course with its outline; non-managers only see published lessons."""
        course = await self.require_visible_course(course_id, actor)
        manager = actor is not None and can_manage_course(actor, course)

        modules = []
        for module, lessons in await load_outline(self.modules, self.lessons, course.id):
            visible = [lesson for lesson in lessons if manager or lesson.is_published]
            lesson_items = [
                lesson_response(lesson, await self.lessons.list_resources(lesson.id))
                for lesson in visible
            ]
            modules.append(module_response(module, lesson_items))

        base = await self.to_response(course)
        return CourseDetailResponse(**base.model_dump(), modules=modules)

    async def update_course(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        data: UpdateCourseRequest,
    ) -> Course:
        course = await self.require_managed_course(actor, course_id)

        updates = data.model_dump(exclude_unset=True)
        for field, value in updates.items():
            if field in ("title", "price") and value is None:
                continue
            if field == "level" and value is not None:
                value = value.value if hasattr(value, "value") else value
            setattr(course, field, value)

        await self.courses.update_details(course)

        logger.info("course_updated", course_id=str(course.id), fields=list(updates))
        await self.activity.log_activity(
            ActivityType.COURSE_UPDATED,
            actor.id,
            course_id=course.id,
            details={"fields": ",".join(sorted(updates))},
        )
        return course

    async def delete_course(self, actor: "AuthenticatedUser", course_id: UUID) -> None:
        """Delete a course with its modules, lessons and resources.

        Raises:
            CourseHasEnrollmentsError: While live enrollments exist
        """
        course = await self.require_managed_course(actor, course_id)
        if course.enrollment_count > 0:
            raise CourseHasEnrollmentsError

        for module, lessons in await load_outline(self.modules, self.lessons, course.id):
            for lesson in lessons:
                await self.lessons.delete_resources(lesson.id)
            await self.lessons.delete_by_module(module.id)
        await self.modules.delete_by_course(course.id)
        await self.courses.delete(course)

        logger.info("course_deleted", course_id=str(course.id))
        await self.activity.log_activity(
            ActivityType.COURSE_DELETED,
            actor.id,
            target_user_id=course.instructor_id,
            course_id=course.id,
            details={"title": course.title},
        )

    # --------------------------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------------------------

    async def _transition(
        self,
        course: Course,
        new_status: CourseStatus,
        actor: "AuthenticatedUser",
        activity_type: ActivityType,
        reason: str | None = None,
    ) -> Course:
        """Apply a lifecycle change conditioned on the status just checked.

        Raises:
            CourseStatusChangedError: Another writer moved the course first
        """
        previous = course.status
        course.status = new_status.value
        if new_status == CourseStatus.REJECTED:
            course.rejection_reason = reason
        elif new_status in (CourseStatus.PENDING_REVIEW, CourseStatus.APPROVED):
            course.rejection_reason = None
        if new_status == CourseStatus.PUBLISHED:
            course.published_at = datetime.now(UTC)

        if not await self.courses.transition(course, previous):
            raise CourseStatusChangedError

        logger.info(
            "course_status_changed",
            course_id=str(course.id),
            from_status=previous,
            to_status=course.status,
        )
        await self.activity.log_activity(
            activity_type,
            actor.id,
            target_user_id=course.instructor_id,
            course_id=course.id,
            details={"from": previous, "to": course.status, "reason": reason},
        )
        return course

    async def submit_for_review(
        self, actor: "AuthenticatedUser", course_id: UUID
    ) -> Course:
        """Owner submits a DRAFT course for admin review."""
        course = await self.require_course(course_id)
        if not owns_course(actor, course):
            raise CourseAccessDeniedError("Only the course owner can submit it for review")
        if course.status != CourseStatus.DRAFT.value:
            raise InvalidCourseStatusError("Only DRAFT courses can be submitted for review")
        return await self._transition(
            course, CourseStatus.PENDING_REVIEW, actor, ActivityType.COURSE_SUBMITTED
        )

    async def approve(self, admin: "AuthenticatedUser", course_id: UUID) -> Course:
        course = await self.require_course(course_id)
        if course.status != CourseStatus.PENDING_REVIEW.value:
            raise InvalidCourseStatusError("Only courses pending review can be approved")
        return await self._transition(
            course, CourseStatus.APPROVED, admin, ActivityType.COURSE_APPROVED
        )

    async def reject(
        self, admin: "AuthenticatedUser", course_id: UUID, reason: str
    ) -> Course:
        if not reason or not reason.strip():
            raise BadRequestError("A rejection reason is required")
        course = await self.require_course(course_id)
        if course.status != CourseStatus.PENDING_REVIEW.value:
            raise InvalidCourseStatusError("Only courses pending review can be rejected")
        return await self._transition(
            course,
            CourseStatus.REJECTED,
            admin,
            ActivityType.COURSE_REJECTED,
            reason=reason.strip(),
        )

    async def publish(self, actor: "AuthenticatedUser", course_id: UUID) -> Course:
        """Owner publishes an APPROVED course."""
        course = await self.require_course(course_id)
        if not owns_course(actor, course):
            raise CourseAccessDeniedError("Only the course owner can publish it")
        if course.status != CourseStatus.APPROVED.value:
            raise InvalidCourseStatusError("Only APPROVED courses can be published")
        return await self._transition(
            course, CourseStatus.PUBLISHED, actor, ActivityType.COURSE_PUBLISHED
        )

    # --------------------------------------------------------------------------
    # Listings
    # --------------------------------------------------------------------------

    async def list_published(
        self,
        page: int = 1,
        limit: int = 10,
        category: str | None = None,
        level: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        search: str | None = None,
    ) -> tuple[list[CourseResponse], PaginationMeta]:
        """Public catalog, newest first."""
        courses = await self.courses.list_by_status(CourseStatus.PUBLISHED.value)

        def matches(course: Course) -> bool:
            if category and (course.category or "").lower() != category.lower():
                return False
            if level and course.level != level:
                return False
            if min_price is not None and course.price < min_price:
                return False
            if max_price is not None and course.price > max_price:
                return False
            if search:
                needle = search.lower()
                haystack = f"{course.title} {course.description or ''}".lower()
                if needle not in haystack:
                    return False
            return True

        page_items, meta = paginate([c for c in courses if matches(c)], page, limit)
        return [await self.to_response(c) for c in page_items], meta

    async def list_instructor_courses(self, actor: "AuthenticatedUser") -> list[Course]:
        return await self.courses.list_by_instructor(actor.id)

    async def list_pending(self) -> list[Course]:
        """Admin review queue."""
        return await self.courses.list_by_status(CourseStatus.PENDING_REVIEW.value)


# ==============================================================================
# Module Service
# ==============================================================================


class ModuleService:
    """Modules of a course; every mutation requires owner or admin."""

    def __init__(
        self,
        course_service: CourseService,
        modules: "ModuleRepository",
        lessons: "LessonRepository",
    ):
        self.course_service = course_service
        self.modules = modules
        self.lessons = lessons

    async def require_module(self, course_id: UUID, module_id: UUID) -> Module:
        module = await self.modules.get(course_id, module_id)
        if not module:
            raise ModuleNotFoundError
        return module

    async def create_module(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        data: CreateModuleRequest,
    ) -> Module:
        """Insert a module at ``data.order`` (appended when omitted)."""
        course = await self.course_service.require_managed_course(actor, course_id)

        siblings = await self.modules.list_by_course(course.id)
        module = Module(course_id=course.id, title=data.title, description=data.description)
        shifted = ordering.insert(siblings, module, data.order)

        await self.modules.update_orders(shifted)
        await self.modules.save(module)

        logger.info("module_created", course_id=str(course.id), module_id=str(module.id))
        return module

    async def list_modules(
        self, course_id: UUID, actor: "AuthenticatedUser | None"
    ) -> list[ModuleResponse]:
        course = await self.course_service.require_visible_course(course_id, actor)
        manager = actor is not None and can_manage_course(actor, course)

        result = []
        for module, lessons in await load_outline(self.modules, self.lessons, course.id):
            visible = [lesson for lesson in lessons if manager or lesson.is_published]
            result.append(module_response(module, [lesson_response(x) for x in visible]))
        return result

    async def update_module(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        data: UpdateModuleRequest,
    ) -> Module:
        await self.course_service.require_managed_course(actor, course_id)
        module = await self.require_module(course_id, module_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "title" and value is None:
                continue
            setattr(module, field, value)
        module.updated_at = datetime.now(UTC)

        await self.modules.save(module)
        return module

    async def reorder_module(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        position: int,
    ) -> Module:
        await self.course_service.require_managed_course(actor, course_id)
        await self.require_module(course_id, module_id)

        siblings = await self.modules.list_by_course(course_id)
        changed = ordering.move(siblings, module_id, position)
        await self.modules.update_orders(changed)

        return next(m for m in siblings if m.id == module_id)

    async def delete_module(
        self, actor: "AuthenticatedUser", course_id: UUID, module_id: UUID
    ) -> None:
        """Delete a module with its lessons and compact the remaining orders."""
        await self.course_service.require_managed_course(actor, course_id)
        module = await self.require_module(course_id, module_id)

        for lesson in await self.lessons.list_by_module(module.id):
            await self.lessons.delete_resources(lesson.id)
        await self.lessons.delete_by_module(module.id)
        await self.modules.delete(course_id, module.id)

        siblings = await self.modules.list_by_course(course_id)
        await self.modules.update_orders(ordering.remove(siblings, module.id))

        logger.info("module_deleted", course_id=str(course_id), module_id=str(module_id))


# ==============================================================================
# Lesson Service
# ==============================================================================


class LessonService:
    """Lessons of a module and their resources."""

    def __init__(
        self,
        course_service: CourseService,
        module_service: ModuleService,
        lessons: "LessonRepository",
    ):
        self.course_service = course_service
        self.module_service = module_service
        self.lessons = lessons

    async def _managed_module(
        self, actor: "AuthenticatedUser", course_id: UUID, module_id: UUID
    ) -> Module:
        await self.course_service.require_managed_course(actor, course_id)
        return await self.module_service.require_module(course_id, module_id)

    async def require_lesson(self, module_id: UUID, lesson_id: UUID) -> Lesson:
        lesson = await self.lessons.get(module_id, lesson_id)
        if not lesson:
            raise LessonNotFoundError
        return lesson

    async def create_lesson(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        data: CreateLessonRequest,
    ) -> Lesson:
        """Insert a DRAFT lesson at ``data.order`` (appended when omitted)."""
        module = await self._managed_module(actor, course_id, module_id)

        siblings = await self.lessons.list_by_module(module.id)
        lesson = Lesson(
            module_id=module.id,
            course_id=course_id,
            title=data.title,
            content_type=data.content_type.value,
            content=data.content,
            video_url=data.video_url,
            duration_minutes=data.duration_minutes,
            status=LessonStatus.DRAFT.value,
        )
        shifted = ordering.insert(siblings, lesson, data.order)

        await self.lessons.update_orders(shifted)
        await self.lessons.save(lesson)

        logger.info("lesson_created", module_id=str(module.id), lesson_id=str(lesson.id))
        return lesson

    async def list_lessons(
        self,
        course_id: UUID,
        module_id: UUID,
        actor: "AuthenticatedUser | None",
    ) -> list[Lesson]:
        course = await self.course_service.require_visible_course(course_id, actor)
        await self.module_service.require_module(course_id, module_id)
        manager = actor is not None and can_manage_course(actor, course)

        lessons = await self.lessons.list_by_module(module_id)
        return [lesson for lesson in lessons if manager or lesson.is_published]

    async def update_lesson(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        lesson_id: UUID,
        data: UpdateLessonRequest,
    ) -> Lesson:
        await self._managed_module(actor, course_id, module_id)
        lesson = await self.require_lesson(module_id, lesson_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if field == "content_type":
                if value is None:
                    continue
                value = value.value if hasattr(value, "value") else value
            if field == "title" and value is None:
                continue
            setattr(lesson, field, value)
        lesson.updated_at = datetime.now(UTC)

        await self.lessons.save(lesson)
        return lesson

    async def reorder_lesson(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        lesson_id: UUID,
        position: int,
    ) -> Lesson:
        await self._managed_module(actor, course_id, module_id)
        await self.require_lesson(module_id, lesson_id)

        siblings = await self.lessons.list_by_module(module_id)
        changed = ordering.move(siblings, lesson_id, position)
        await self.lessons.update_orders(changed)

        return next(lesson for lesson in siblings if lesson.id == lesson_id)

    async def publish_lesson(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        lesson_id: UUID,
    ) -> Lesson:
        await self._managed_module(actor, course_id, module_id)
        lesson = await self.require_lesson(module_id, lesson_id)
        if lesson.is_published:
            return lesson

        lesson.status = LessonStatus.PUBLISHED.value
        lesson.updated_at = datetime.now(UTC)
        await self.lessons.save(lesson)

        logger.info("lesson_published", lesson_id=str(lesson.id))
        return lesson

    async def delete_lesson(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        lesson_id: UUID,
    ) -> None:
        await self._managed_module(actor, course_id, module_id)
        lesson = await self.require_lesson(module_id, lesson_id)

        await self.lessons.delete_resources(lesson.id)
        await self.lessons.delete(module_id, lesson.id)

        siblings = await self.lessons.list_by_module(module_id)
        await self.lessons.update_orders(ordering.remove(siblings, lesson.id))

    async def add_resource(
        self,
        actor: "AuthenticatedUser",
        course_id: UUID,
        module_id: UUID,
        lesson_id: UUID,
        data: CreateResourceRequest,
    ) -> LessonResource:
        await self._managed_module(actor, course_id, module_id)
        lesson = await self.require_lesson(module_id, lesson_id)

        resource = LessonResource(
            lesson_id=lesson.id,
            title=data.title,
            url=data.url,
            resource_type=data.resource_type.value,
        )
        await self.lessons.save_resource(resource)
        return resource
