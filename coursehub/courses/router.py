"""Course catalog API endpoints.

Provides routes for:
- Courses: public listing, CRUD and review lifecycle
- Modules: nested under a course
- Lessons and resources: nested under a module
"""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Query, status

from coursehub.auth.dependencies import AdminUser, CurrentUser, InstructorUser, OptionalUser
from coursehub.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from coursehub.courses.dependencies import (
    CourseServiceDep,
    LessonServiceDep,
    ModuleServiceDep,
)
from coursehub.courses.models import CourseLevel
from coursehub.courses.schemas import (
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateModuleRequest,
    CreateResourceRequest,
    LessonResponse,
    ModuleResponse,
    RejectCourseRequest,
    ReorderRequest,
    ResourceResponse,
    UpdateCourseRequest,
    UpdateLessonRequest,
    UpdateModuleRequest,
)
from coursehub.courses.service import lesson_response, module_response


router = APIRouter(prefix="/courses", tags=["courses"])


# ==============================================================================
# Course Endpoints
# ==============================================================================


@router.get(
    "",
    response_model=CourseListResponse,
    summary="List published courses",
)
async def list_published_courses(
    course_service: CourseServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    category: str | None = Query(None, max_length=100),
    level: CourseLevel | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    search: str | None = Query(None, max_length=200, description="Title/description text"),
) -> CourseListResponse:
    """Public catalog with filters; each item carries its average rating."""
    items, meta = await course_service.list_published(
        page=page,
        limit=limit,
        category=category,
        level=level.value if level else None,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )
    return CourseListResponse(items=items, pagination=meta)


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course (instructor)",
    responses={403: {"description": "Caller is not an approved instructor"}},
)
async def create_course(
    data: CreateCourseRequest,
    user: CurrentUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    course = await course_service.create_course(user, data)
    return await course_service.to_response(course)


@router.get(
    "/my",
    response_model=list[CourseResponse],
    summary="List my courses (instructor)",
)
async def list_my_courses(
    user: InstructorUser,
    course_service: CourseServiceDep,
) -> list[CourseResponse]:
    """All courses owned by the caller, in every status."""
    courses = await course_service.list_instructor_courses(user)
    return [await course_service.to_response(c) for c in courses]


@router.get(
    "/pending",
    response_model=list[CourseResponse],
    summary="Review queue (admin)",
)
async def list_pending_courses(
    _admin: AdminUser,
    course_service: CourseServiceDep,
) -> list[CourseResponse]:
    courses = await course_service.list_pending()
    return [await course_service.to_response(c) for c in courses]


@router.get(
    "/{course_id}",
    response_model=CourseDetailResponse,
    summary="Get course with modules and lessons",
    responses={404: {"description": "Course not found"}},
)
async def get_course(
    course_id: UUID,
    course_service: CourseServiceDep,
    user: OptionalUser,
) -> CourseDetailResponse:
    """Unpublished courses are only visible to their owner and admins."""
    return await course_service.get_course_detail(course_id, user)


@router.put(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    course_id: UUID,
    data: UpdateCourseRequest,
    user: CurrentUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    course = await course_service.update_course(user, course_id, data)
    return await course_service.to_response(course)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
    responses={409: {"description": "Course has live enrollments"}},
)
async def delete_course(
    course_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
) -> None:
    await course_service.delete_course(user, course_id)


@router.patch("/{course_id}/submit", response_model=CourseResponse, summary="Submit for review")
async def submit_course(
    course_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    course = await course_service.submit_for_review(user, course_id)
    return await course_service.to_response(course)


@router.patch("/{course_id}/approve", response_model=CourseResponse, summary="Approve (admin)")
async def approve_course(
    course_id: UUID,
    admin: AdminUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    course = await course_service.approve(admin, course_id)
    return await course_service.to_response(course)


@router.patch("/{course_id}/reject", response_model=CourseResponse, summary="Reject (admin)")
async def reject_course(
    course_id: UUID,
    data: RejectCourseRequest,
    admin: AdminUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    course = await course_service.reject(admin, course_id, data.reason)
    return await course_service.to_response(course)


@router.patch("/{course_id}/publish", response_model=CourseResponse, summary="Publish")
async def publish_course(
    course_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    course = await course_service.publish(user, course_id)
    return await course_service.to_response(course)


# ==============================================================================
# Module Endpoints
# ==============================================================================


@router.post(
    "/{course_id}/modules",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create module",
)
async def create_module(
    course_id: UUID,
    data: CreateModuleRequest,
    user: CurrentUser,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    module = await module_service.create_module(user, course_id, data)
    return module_response(module)


@router.get(
    "/{course_id}/modules",
    response_model=list[ModuleResponse],
    summary="List modules with lessons",
)
async def list_modules(
    course_id: UUID,
    user: OptionalUser,
    module_service: ModuleServiceDep,
) -> list[ModuleResponse]:
    return await module_service.list_modules(course_id, user)


@router.put(
    "/{course_id}/modules/{module_id}",
    response_model=ModuleResponse,
    summary="Update module",
)
async def update_module(
    course_id: UUID,
    module_id: UUID,
    data: UpdateModuleRequest,
    user: CurrentUser,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    module = await module_service.update_module(user, course_id, module_id, data)
    return module_response(module)


@router.patch(
    "/{course_id}/modules/{module_id}/reorder",
    response_model=ModuleResponse,
    summary="Move module to a new position",
)
async def reorder_module(
    course_id: UUID,
    module_id: UUID,
    data: ReorderRequest,
    user: CurrentUser,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    module = await module_service.reorder_module(user, course_id, module_id, data.order)
    return module_response(module)


@router.delete(
    "/{course_id}/modules/{module_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete module and its lessons",
)
async def delete_module(
    course_id: UUID,
    module_id: UUID,
    user: CurrentUser,
    module_service: ModuleServiceDep,
) -> None:
    await module_service.delete_module(user, course_id, module_id)


# ==============================================================================
# Lesson Endpoints
# ==============================================================================


@router.post(
    "/{course_id}/modules/{module_id}/lessons",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create lesson",
)
async def create_lesson(
    course_id: UUID,
    module_id: UUID,
    data: CreateLessonRequest,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    lesson = await lesson_service.create_lesson(user, course_id, module_id, data)
    return lesson_response(lesson)


@router.get(
    "/{course_id}/modules/{module_id}/lessons",
    response_model=list[LessonResponse],
    summary="List lessons",
)
async def list_lessons(
    course_id: UUID,
    module_id: UUID,
    user: OptionalUser,
    lesson_service: LessonServiceDep,
) -> list[LessonResponse]:
    lessons = await lesson_service.list_lessons(course_id, module_id, user)
    return [lesson_response(lesson) for lesson in lessons]


@router.put(
    "/{course_id}/modules/{module_id}/lessons/{lesson_id}",
    response_model=LessonResponse,
    summary="Update lesson",
)
async def update_lesson(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    data: UpdateLessonRequest,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    lesson = await lesson_service.update_lesson(user, course_id, module_id, lesson_id, data)
    return lesson_response(lesson)


@router.patch(
    "/{course_id}/modules/{module_id}/lessons/{lesson_id}/reorder",
    response_model=LessonResponse,
    summary="Move lesson to a new position",
)
async def reorder_lesson(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    data: ReorderRequest,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    lesson = await lesson_service.reorder_lesson(
        user, course_id, module_id, lesson_id, data.order
    )
    return lesson_response(lesson)


@router.patch(
    "/{course_id}/modules/{module_id}/lessons/{lesson_id}/publish",
    response_model=LessonResponse,
    summary="Publish lesson",
)
async def publish_lesson(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    lesson = await lesson_service.publish_lesson(user, course_id, module_id, lesson_id)
    return lesson_response(lesson)


@router.delete(
    "/{course_id}/modules/{module_id}/lessons/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete lesson",
)
async def delete_lesson(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
) -> None:
    await lesson_service.delete_lesson(user, course_id, module_id, lesson_id)


@router.post(
    "/{course_id}/modules/{module_id}/lessons/{lesson_id}/resources",
    response_model=ResourceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Attach a resource to a lesson",
)
async def add_resource(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    data: CreateResourceRequest,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
) -> ResourceResponse:
    resource = await lesson_service.add_resource(
        user, course_id, module_id, lesson_id, data
    )
    return ResourceResponse.model_validate(resource)
